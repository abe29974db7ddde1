import asyncio
from datetime import datetime, timezone

import pytest

from storyweaver.illustration import IllustrationStage
from storyweaver.pipeline import InMemoryCollectionStore, StoryGenerationOrchestrator, StoryProjector
from storyweaver.story import Story, StorySettings, StoryStructure


def make_structure_payload(page_count: int = 3, title: str = "The Toaster Who Went to Mars") -> dict:
    return {
        "title": title,
        "description": "A brave little toaster explores the red planet.",
        "pages": [
            {
                "page_number": number,
                "text": f"Page {number} of the toaster's journey.",
                "image_prompt": f"scene-{number}: a chrome toaster on red dunes",
            }
            for number in range(1, page_count + 1)
        ],
    }


class FakePlanner:
    """Stands in for the planning service."""

    def __init__(self, payload=None, error: Exception | None = None):
        self.payload = payload
        self.error = error
        self.calls: list[StorySettings] = []

    async def plan_structure(self, settings: StorySettings):
        self.calls.append(settings)
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        if self.payload is not None:
            return self.payload
        return StoryStructure.from_mapping(make_structure_payload(settings.page_count))


class FakeRenderer:
    """
    Stands in for the image service.

    ``fail_when`` markers make matching prompts raise; ``gates`` markers make
    matching prompts wait on an asyncio.Event before returning.
    """

    def __init__(self, fail_when=(), empty_when=()):
        self.fail_when = tuple(fail_when)
        self.empty_when = tuple(empty_when)
        self.gates: dict[str, asyncio.Event] = {}
        self.arrived: dict[str, asyncio.Event] = {}
        self.prompts: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.on_call = None

    def gate(self, marker: str) -> asyncio.Event:
        self.gates[marker] = asyncio.Event()
        self.arrived[marker] = asyncio.Event()
        return self.gates[marker]

    async def render_illustration(self, prompt):
        text = prompt.positive
        self.prompts.append(text)
        call_number = len(self.prompts)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.on_call is not None:
                self.on_call(text)
            for marker, gate in self.gates.items():
                if marker in text:
                    self.arrived[marker].set()
                    await gate.wait()
            await asyncio.sleep(0)
            if any(marker in text for marker in self.fail_when):
                raise ConnectionError("simulated network error")
            if any(marker in text for marker in self.empty_when):
                return ""
            url = f"https://images.test/{call_number}.png"
            return url
        finally:
            self.in_flight -= 1


class FailingStore(InMemoryCollectionStore):
    """In-memory store whose saves raise from the ``fail_from``-th call on."""

    def __init__(self, fail_from: int):
        super().__init__()
        self.fail_from = fail_from
        self.attempts = 0

    def save(self, stories):
        self.attempts += 1
        if self.attempts >= self.fail_from:
            raise OSError("disk full")
        super().save(stories)


@pytest.fixture(name="settings")
def settings_fixture():
    return StorySettings(
        topic="a toaster on Mars",
        genre="Sci-Fi",
        age_group="Preschool (3-5)",
        art_style="Watercolor",
        page_count=3,
    )


@pytest.fixture(name="store")
def store_fixture():
    return InMemoryCollectionStore()


@pytest.fixture(name="projector")
def projector_fixture(store):
    return StoryProjector(store=store)


@pytest.fixture(name="renderer")
def renderer_fixture():
    return FakeRenderer()


@pytest.fixture(name="planner")
def planner_fixture():
    return FakePlanner()


@pytest.fixture(name="reported_failures")
def reported_failures_fixture():
    return []


@pytest.fixture(name="orchestrator")
def orchestrator_fixture(projector, planner, renderer, reported_failures):
    stage = IllustrationStage(
        renderer,
        failure_reporter=lambda prompt, cause: reported_failures.append((prompt, cause)),
    )
    return StoryGenerationOrchestrator(
        projector=projector,
        planner=planner,
        illustration_stage=stage,
    )


@pytest.fixture(name="sample_story")
def sample_story_fixture(settings):
    structure = StoryStructure.from_mapping(make_structure_payload(3))
    return Story.from_structure(
        structure,
        settings,
        story_id="story-1",
        created_at=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
    )
