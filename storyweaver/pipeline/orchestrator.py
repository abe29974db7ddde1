"""
Drives story creation: structure planning, then sequential illustration.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Mapping, Protocol

from storyweaver.common import CompletionCallable, get_logger
from storyweaver.errors import PlanningFailed, StoryNotFound
from storyweaver.illustration import (
    IllustrationStage,
    Rendered,
    ReplicateIllustrationRenderer,
    build_cover_prompt,
)
from storyweaver.story import Story, StorySettings, StoryStructure, StoryStructurePlanner

from .projector import StoryProjector

logger = get_logger("pipeline")

ProgressCallback = Callable[[str, dict[str, Any]], None]


class StructurePlanner(Protocol):
    async def plan_structure(self, settings: StorySettings) -> StoryStructure | Mapping[str, Any]: ...


class StoryGenerationOrchestrator:
    """
    High-level coordinator for story creation and page re-illustration.

    ``create_story`` returns as soon as planning succeeds and the pending story
    has been projected. Illustration continues in a background task that renders
    the cover, then every page in order, one service call at a time.
    """

    def __init__(
        self,
        *,
        projector: StoryProjector | None = None,
        planner: StructurePlanner | None = None,
        illustration_stage: IllustrationStage | None = None,
        story_model: str | None = None,
        story_api_key: str | None = None,
        completion_fn: CompletionCallable | None = None,
        image_model: str | None = None,
        image_api_token: str | None = None,
    ) -> None:
        self._projector = projector or StoryProjector()
        self._planner = planner or StoryStructurePlanner(
            api_key=story_api_key,
            model=story_model,
            completion_fn=completion_fn,
        )
        self._illustrations = illustration_stage or IllustrationStage(
            ReplicateIllustrationRenderer(
                api_token=image_api_token,
                model_identifier=image_model,
            )
        )
        self._tasks: dict[str, asyncio.Task[None]] = {}

    @property
    def projector(self) -> StoryProjector:
        return self._projector

    def in_flight(self) -> list[str]:
        """Return ids of stories whose illustration pipeline is still running."""
        return [story_id for story_id, task in self._tasks.items() if not task.done()]

    async def create_story(
        self,
        settings: StorySettings | Mapping[str, Any],
        *,
        progress_callback: ProgressCallback | None = None,
    ) -> Story:
        """
        Plan a story, project it with every page pending, and start illustrating.

        Raises
        ------
        PlanningFailed
            If the planning service errors or returns an unusable structure,
            including one whose page count differs from the request. No story
            is added to the collection in that case.
        """
        if not isinstance(settings, StorySettings):
            settings = StorySettings.from_mapping(settings)

        self._notify(
            progress_callback,
            "planning:started",
            topic=settings.topic,
            page_count=settings.page_count,
        )
        try:
            structure = await self._planner.plan_structure(settings)
            if not isinstance(structure, StoryStructure):
                structure = StoryStructure.from_mapping(structure)
            if len(structure.pages) != settings.page_count:
                raise ValueError(
                    f"Planned {len(structure.pages)} pages, expected {settings.page_count}."
                )
        except Exception as exc:
            logger.error("Story planning failed for topic %r: %s", settings.topic, exc)
            self._notify(progress_callback, "planning:failed", error=str(exc))
            raise PlanningFailed(exc) from exc

        self._notify(
            progress_callback,
            "planning:complete",
            title=structure.title,
            total_pages=len(structure.pages),
        )

        story = Story.from_structure(structure, settings)
        self._projector.insert(story, activate=True)
        logger.info("Story %s planned: %r (%d pages)", story.id, story.title, len(story.pages))
        self._notify(
            progress_callback,
            "story:projected",
            story_id=story.id,
            total_pages=len(story.pages),
        )

        self._start_illustration(story, progress_callback)
        return story

    def resume_pending(self, *, progress_callback: ProgressCallback | None = None) -> list[str]:
        """
        Restart illustration for stored stories left with pending pages.

        Useful after loading a collection persisted mid-pipeline. Stories that
        already have a running pipeline are skipped.
        """
        resumed: list[str] = []
        for story in self._projector.stories:
            if story.is_illustrating and story.id not in self.in_flight():
                self._start_illustration(story, progress_callback)
                resumed.append(story.id)
        return resumed

    async def wait_for_illustrations(self, story_id: str | None = None) -> None:
        """Wait until one story's (or every) illustration pipeline has settled."""
        if story_id is not None:
            task = self._tasks.get(story_id)
            tasks = [task] if task is not None else []
        else:
            tasks = list(self._tasks.values())

        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def regenerate_page_image(
        self,
        story_id: str,
        page_index: int,
        *,
        progress_callback: ProgressCallback | None = None,
    ) -> Story:
        """
        Re-illustrate a single page and persist the result.

        The new page is written against the story as it is stored when the call
        settles, so pages illustrated concurrently by the creation pipeline are
        kept. If both target the same page, the last write wins.
        """
        story = self._projector.get(story_id)
        if story is None:
            raise StoryNotFound(story_id)
        if not 0 <= page_index < len(story.pages):
            raise IndexError(
                f"Page index {page_index} is out of range for a {len(story.pages)}-page story."
            )

        page = story.pages[page_index]
        outcome = await self._illustrations.illustrate(page.image_prompt, story.art_style)
        updated = self._projector.project_page(
            story_id,
            page_index,
            page.mark_illustrated(outcome.image_url),
        )
        if updated is None:
            raise StoryNotFound(story_id)

        self._notify(
            progress_callback,
            "page:regenerated",
            story_id=story_id,
            page_number=page.page_number,
            degraded=outcome.degraded,
        )
        return updated

    def _start_illustration(self, story: Story, progress_callback: ProgressCallback | None) -> None:
        task = asyncio.create_task(
            self._illustrate_story(story, progress_callback),
            name=f"illustrate-{story.id}",
        )
        self._tasks[story.id] = task
        task.add_done_callback(lambda finished, sid=story.id: self._forget_task(sid, finished))

    async def _illustrate_story(
        self,
        story: Story,
        progress_callback: ProgressCallback | None,
    ) -> None:
        story_id = story.id
        total_pages = len(story.pages)

        if story.pages and story.cover_image is None:
            cover_prompt = build_cover_prompt(story.pages[0].image_prompt, story.title)
            outcome = await self._illustrations.illustrate(cover_prompt, story.art_style)
            # A placeholder is not a cover; leave it absent.
            if isinstance(outcome, Rendered):
                self._projector.project(story_id, strict=False, cover_image=outcome.image_url)
            self._notify(
                progress_callback,
                "cover:done",
                story_id=story_id,
                degraded=outcome.degraded,
            )

        for index, page in enumerate(story.pages):
            current = self._projector.get(story_id)
            if current is None:
                logger.info("Story %s was deleted, stopping illustration", story_id)
                return
            # Pages regenerated while the pipeline was busy elsewhere are done.
            if not current.pages[index].is_loading_image:
                continue

            self._notify(
                progress_callback,
                "page:processing",
                story_id=story_id,
                page_number=page.page_number,
                total_pages=total_pages,
            )
            outcome = await self._illustrations.illustrate(page.image_prompt, story.art_style)
            self._projector.project_page(
                story_id,
                index,
                page.mark_illustrated(outcome.image_url),
                strict=False,
            )
            self._notify(
                progress_callback,
                "page:done",
                story_id=story_id,
                page_number=page.page_number,
                total_pages=total_pages,
                degraded=outcome.degraded,
            )

        logger.info("Story %s illustration complete", story_id)
        self._notify(progress_callback, "illustration:complete", story_id=story_id)

    def _forget_task(self, story_id: str, task: asyncio.Task[None]) -> None:
        if self._tasks.get(story_id) is task:
            del self._tasks[story_id]
        if task.cancelled():
            logger.info("Illustration for story %s was cancelled", story_id)
        elif task.exception() is not None:
            logger.error(
                "Illustration for story %s crashed",
                story_id,
                exc_info=task.exception(),
            )

    @staticmethod
    def _notify(
        callback: ProgressCallback | None,
        stage: str,
        **payload: Any,
    ) -> None:
        if callback is None:
            return
        try:
            callback(stage, payload)
        except Exception:
            logger.exception("Progress callback failed at stage %s", stage)
