"""
CLI to create, resume, or re-illustrate stories in a YAML story library.

Usage:
    python scripts/run_story_pipeline.py \
        --topic "a toaster on Mars" \
        --genre Sci-Fi \
        --age-group "Preschool (3-5)" \
        --art-style Watercolor \
        --pages 3

    python scripts/run_story_pipeline.py --regenerate STORY_ID --page 2
    python scripts/run_story_pipeline.py --resume

Environment variables (a local .env file is honoured):
    OPENAI_API_KEY / LITELLM_API_KEY   - planning model credentials
    STORYWEAVER_STORY_MODEL            - planning model override
    REPLICATE_API_TOKEN                - required for illustration
    REPLICATE_MODEL                    - illustration model override
    STORYWEAVER_LIBRARY                - library file (default: story_library.yaml)
    STORYWEAVER_LOG_LEVEL              - logging level (default: WARNING)
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from typing import Any, Dict

from dotenv import load_dotenv
from tqdm.auto import tqdm

from storyweaver import (
    PlanningFailed,
    StoryGenerationOrchestrator,
    StoryNotFound,
    StoryProjector,
    StorySettings,
    YamlCollectionStore,
)
from storyweaver.common import configure_logging
from storyweaver.illustration import is_placeholder
from storyweaver.story import AGE_GROUPS, ART_STYLES, DEFAULT_PAGE_COUNT, GENRES


class ProgressTracker:
    """
    Provides user-friendly command-line progress updates for the story pipeline.
    """

    def __init__(self) -> None:
        self._page_bar: tqdm | None = None

    def __call__(self, stage: str, payload: Dict[str, Any]) -> None:
        match stage:
            case "planning:started":
                self._write(
                    f"[1/3] Planning a {payload.get('page_count')}-page story "
                    f"about {payload.get('topic')!r}..."
                )
            case "planning:complete":
                self._write(f"[1/3] Planned \"{payload.get('title')}\".")
            case "planning:failed":
                self._write(f"[1/3] Planning failed: {payload.get('error')}")
            case "story:projected":
                total = payload.get("total_pages", 0)
                self._write(f"[2/3] Story saved with {total} pages. Illustrating...")
                self._page_bar = tqdm(total=total, desc="Illustrated pages", unit="page")
            case "cover:done":
                suffix = " (placeholder skipped)" if payload.get("degraded") else ""
                self._write(f"[2/3] Cover illustration finished{suffix}.")
            case "page:processing":
                if self._page_bar is not None:
                    self._page_bar.set_description(f"Page {payload.get('page_number')}")
            case "page:done":
                if self._page_bar is not None:
                    self._page_bar.update(1)
            case "illustration:complete":
                self.close()
                self._write("[3/3] Illustration complete.")
            case "page:regenerated":
                note = " with a placeholder" if payload.get("degraded") else ""
                self._write(f"Page {payload.get('page_number')} re-illustrated{note}.")

    def close(self) -> None:
        if self._page_bar is not None:
            self._page_bar.close()
            self._page_bar = None

    @staticmethod
    def _write(message: str) -> None:
        tqdm.write(message)


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the StoryWeaver generation pipeline.")
    parser.add_argument("--topic", help="What the story should be about.")
    parser.add_argument("--genre", default=GENRES[0], help=f"Genre (e.g. {', '.join(GENRES)}).")
    parser.add_argument(
        "--age-group",
        default=AGE_GROUPS[1],
        help=f"Target age group (e.g. {', '.join(AGE_GROUPS)}).",
    )
    parser.add_argument(
        "--art-style",
        default=ART_STYLES[0],
        help=f"Illustration style (e.g. {', '.join(ART_STYLES)}).",
    )
    parser.add_argument(
        "--pages",
        type=int,
        default=DEFAULT_PAGE_COUNT,
        help="Number of pages to plan.",
    )
    parser.add_argument(
        "--library",
        default=os.getenv("STORYWEAVER_LIBRARY", "story_library.yaml"),
        help="YAML file holding the story library.",
    )
    parser.add_argument(
        "--regenerate",
        metavar="STORY_ID",
        default=None,
        help="Re-illustrate a page of an existing story instead of creating one.",
    )
    parser.add_argument(
        "--page",
        type=int,
        default=1,
        help="1-based page number used with --regenerate.",
    )
    parser.add_argument(
        "--resume",
        action="store_true",
        help="Finish illustrating stories left with pending pages.",
    )
    args = parser.parse_args(argv)
    if not args.regenerate and not args.resume and not args.topic:
        parser.error("--topic is required when creating a story.")
    return args


async def run(args: argparse.Namespace) -> int:
    store = YamlCollectionStore(args.library)
    orchestrator = StoryGenerationOrchestrator(projector=StoryProjector.from_store(store))
    tracker = ProgressTracker()

    try:
        if args.regenerate:
            story = await orchestrator.regenerate_page_image(
                args.regenerate,
                args.page - 1,
                progress_callback=tracker,
            )
        elif args.resume:
            resumed = orchestrator.resume_pending(progress_callback=tracker)
            tqdm.write(f"Resuming {len(resumed)} stories.")
            await orchestrator.wait_for_illustrations()
            return 0
        else:
            settings = StorySettings(
                topic=args.topic,
                genre=args.genre,
                age_group=args.age_group,
                art_style=args.art_style,
                page_count=args.pages,
            )
            story = await orchestrator.create_story(settings, progress_callback=tracker)
            await orchestrator.wait_for_illustrations(story.id)
            story = orchestrator.projector.get(story.id) or story
    except PlanningFailed as exc:
        print(f"Failed to generate story: {exc.cause}", file=sys.stderr)
        return 1
    except (StoryNotFound, IndexError) as exc:
        print(str(exc), file=sys.stderr)
        return 2
    finally:
        tracker.close()

    _print_story_summary(story)
    print(f"Saved story library to {store.path}")
    return 0


def _print_story_summary(story) -> None:
    tqdm.write(f"Story {story.id}: {story.title}")
    tqdm.write(f"  Cover: {story.cover_image or '(none)'}")
    for page in story.pages:
        marker = " [placeholder]" if is_placeholder(page.image_url) else ""
        tqdm.write(f"  Page {page.page_number}: {page.image_url}{marker}")


def main(argv: list[str]) -> int:
    load_dotenv()
    configure_logging(os.getenv("STORYWEAVER_LOG_LEVEL", "WARNING"))
    return asyncio.run(run(parse_args(argv)))


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
