"""
Exception hierarchy raised by the StoryWeaver pipeline.
"""

from __future__ import annotations


class StoryWeaverError(Exception):
    """Base class for all StoryWeaver errors."""


class InvalidStorySettings(StoryWeaverError, ValueError):
    """Raised when story creation settings fail validation."""


class PlanningFailed(StoryWeaverError):
    """
    Raised when the structure planning stage cannot produce a usable story.

    The underlying service error (or validation error) is available as ``cause``.
    """

    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"Story planning failed: {cause}")
        self.cause = cause


class StoryNotFound(StoryWeaverError, KeyError):
    """Raised when a story id is not present in the collection."""

    def __init__(self, story_id: str) -> None:
        super().__init__(story_id)
        self.story_id = story_id

    def __str__(self) -> str:
        return f"Story '{self.story_id}' is not in the collection."
