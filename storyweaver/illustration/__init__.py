"""
Illustration generation for story pages and covers.
"""

from .prompting import IllustrationPrompt, build_cover_prompt, build_illustration_prompt
from .replicate_service import ReplicateIllustrationRenderer, normalize_image_outputs
from .stage import (
    Degraded,
    IllustrationOutcome,
    IllustrationRenderer,
    IllustrationStage,
    Rendered,
    is_placeholder,
    placeholder_image_url,
)

__all__ = [
    "Degraded",
    "IllustrationOutcome",
    "IllustrationPrompt",
    "IllustrationRenderer",
    "IllustrationStage",
    "Rendered",
    "ReplicateIllustrationRenderer",
    "build_cover_prompt",
    "build_illustration_prompt",
    "is_placeholder",
    "normalize_image_outputs",
    "placeholder_image_url",
]
