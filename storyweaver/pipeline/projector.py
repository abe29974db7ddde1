"""
State projector: the single owner of the story collection and the active story.

Every method is synchronous. Under asyncio that makes each projection a single
uninterrupted state change, so observers never see a half-applied update.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable

from storyweaver.common import get_logger
from storyweaver.story import Story, StoryPage

from .store import CollectionStore, InMemoryCollectionStore

logger = get_logger("pipeline.projector")

ProjectionListener = Callable[[Story], None]

_PROJECTABLE_FIELDS = frozenset({"title", "description", "pages", "cover_image", "is_public"})


class StoryProjector:
    """
    Applies story updates to the collection and, when ids match, to the active story.

    The collection is ordered front to back, newest first. Updates replace a
    story in place and never reorder it.
    """

    def __init__(self, store: CollectionStore | None = None, stories: list[Story] | None = None) -> None:
        self._store = store or InMemoryCollectionStore()
        self._stories: list[Story] = list(stories or [])
        self._active: Story | None = None
        self._listeners: list[ProjectionListener] = []

    @classmethod
    def from_store(cls, store: CollectionStore) -> "StoryProjector":
        """Create a projector seeded with the persisted collection."""
        stories = store.load()
        logger.info("Loaded %d stories from the collection store", len(stories))
        return cls(store=store, stories=stories)

    @property
    def stories(self) -> tuple[Story, ...]:
        return tuple(self._stories)

    @property
    def active_story(self) -> Story | None:
        return self._active

    def get(self, story_id: str) -> Story | None:
        index = self._index_of(story_id)
        return None if index is None else self._stories[index]

    def subscribe(self, listener: ProjectionListener) -> Callable[[], None]:
        """Register a listener for every projected story; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def insert(self, story: Story, *, activate: bool = True) -> Story:
        if self._index_of(story.id) is not None:
            raise ValueError(f"Story '{story.id}' is already in the collection.")
        self._stories.insert(0, story)
        if activate:
            self._active = story
        self._commit(story)
        return story

    def project(self, story_id: str, *, strict: bool = True, **changes: Any) -> Story | None:
        """
        Replace whole fields of a story. Unknown ids are silently ignored.

        With ``strict=False`` a failing save is logged and the in-memory
        projection still stands.
        """
        unknown = set(changes) - _PROJECTABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be projected: {', '.join(sorted(unknown))}")

        index = self._index_of(story_id)
        if index is None:
            logger.debug("Dropping projection for missing story %s", story_id)
            return None

        updated = replace(self._stories[index], **changes)
        return self._apply(index, updated, strict=strict)

    def project_page(
        self,
        story_id: str,
        page_index: int,
        page: StoryPage,
        *,
        strict: bool = True,
    ) -> Story | None:
        """
        Replace one page, building the new page tuple from the current stored story.
        """
        current = self.get(story_id)
        if current is None:
            logger.debug("Dropping page %d projection for missing story %s", page_index, story_id)
            return None
        return self.project(story_id, strict=strict, pages=current.with_page(page_index, page).pages)

    def save_story(self, story: Story) -> Story | None:
        """Swap in an edited story and make it the active one."""
        index = self._index_of(story.id)
        if index is None:
            return None
        self._active = story
        return self._apply(index, story)

    def delete(self, story_id: str) -> bool:
        index = self._index_of(story_id)
        if index is None:
            return False
        del self._stories[index]
        if self._active is not None and self._active.id == story_id:
            self._active = None
        self._store.save(self._stories)
        logger.info("Deleted story %s", story_id)
        return True

    def activate(self, story_id: str) -> Story | None:
        story = self.get(story_id)
        self._active = story
        return story

    def deactivate(self) -> None:
        self._active = None

    def _apply(self, index: int, updated: Story, *, strict: bool = True) -> Story:
        self._stories[index] = updated
        if self._active is not None and self._active.id == updated.id:
            self._active = updated
        self._commit(updated, strict=strict)
        return updated

    def _commit(self, story: Story, *, strict: bool = True) -> None:
        try:
            self._store.save(self._stories)
        except Exception:
            if strict:
                raise
            logger.exception("Saving the collection failed after updating story %s", story.id)
        for listener in list(self._listeners):
            try:
                listener(story)
            except Exception:
                logger.exception("Projection listener failed for story %s", story.id)

    def _index_of(self, story_id: str) -> int | None:
        for index, story in enumerate(self._stories):
            if story.id == story_id:
                return index
        return None
