import asyncio

import pytest

from conftest import FakeRenderer
from storyweaver.illustration import (
    Degraded,
    IllustrationStage,
    Rendered,
    ReplicateIllustrationRenderer,
    build_illustration_prompt,
    is_placeholder,
    normalize_image_outputs,
    placeholder_image_url,
)


def test_illustrate_returns_rendered_image():
    renderer = FakeRenderer()
    stage = IllustrationStage(renderer)

    outcome = asyncio.run(stage.illustrate("a toaster on dunes", "Watercolor"))

    assert isinstance(outcome, Rendered)
    assert outcome.degraded is False
    assert outcome.image_url == "https://images.test/1.png"
    assert renderer.prompts == [
        "Create a Watercolor style illustration. a toaster on dunes. High quality, detailed, colorful."
    ]


def test_illustrate_degrades_on_service_error():
    reported = []
    stage = IllustrationStage(
        FakeRenderer(fail_when=["dunes"]),
        failure_reporter=lambda prompt, cause: reported.append((prompt, cause)),
    )

    outcome = asyncio.run(stage.illustrate("a toaster on dunes", "Watercolor"))

    assert isinstance(outcome, Degraded)
    assert outcome.degraded is True
    assert isinstance(outcome.cause, ConnectionError)
    assert is_placeholder(outcome.image_url)
    assert outcome.image_url == placeholder_image_url("a toaster on dunes")
    assert reported == [("a toaster on dunes", outcome.cause)]


def test_illustrate_degrades_on_empty_result():
    stage = IllustrationStage(FakeRenderer(empty_when=["dunes"]))

    outcome = asyncio.run(stage.illustrate("a toaster on dunes", "Watercolor"))

    assert isinstance(outcome, Degraded)
    assert isinstance(outcome.cause, RuntimeError)


def test_illustrate_degrades_on_invalid_prompt():
    stage = IllustrationStage(FakeRenderer())

    outcome = asyncio.run(stage.illustrate("   ", "Watercolor"))

    assert isinstance(outcome, Degraded)
    assert outcome.image_url


def test_broken_failure_reporter_does_not_escape():
    def explode(prompt, cause):
        raise RuntimeError("reporter down")

    stage = IllustrationStage(FakeRenderer(fail_when=["dunes"]), failure_reporter=explode)

    outcome = asyncio.run(stage.illustrate("a toaster on dunes", "Watercolor"))

    assert isinstance(outcome, Degraded)


def test_placeholder_is_stable_per_prompt():
    assert placeholder_image_url("a") == placeholder_image_url("a")
    assert placeholder_image_url("a") != placeholder_image_url("b")
    assert placeholder_image_url("a").startswith("https://picsum.photos/seed/")
    assert not is_placeholder("https://images.test/1.png")
    assert not is_placeholder(None)


class FakeFileOutput:
    def __init__(self, url):
        self.url = url

    def __iter__(self):
        return iter([b"\x89PNG"])


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, []),
        ("https://a/1.png", ["https://a/1.png"]),
        (["https://a/1.png", "https://a/2.png"], ["https://a/1.png", "https://a/2.png"]),
        (list("https://a/1.png"), ["https://a/1.png"]),
        ([FakeFileOutput("https://a/3.png")], ["https://a/3.png"]),
        ([], []),
        ("", []),
    ],
)
def test_normalize_image_outputs(raw, expected):
    assert normalize_image_outputs(raw) == expected


class FakeReplicateClient:
    def __init__(self, output):
        self.output = output
        self.calls = []

    async def async_run(self, ref, input, **kwargs):
        self.calls.append((ref, input, kwargs))
        return self.output


def test_replicate_renderer_builds_flux_payload(monkeypatch):
    monkeypatch.delenv("REPLICATE_MODEL", raising=False)
    client = FakeReplicateClient(["https://replicate.delivery/out.png"])
    renderer = ReplicateIllustrationRenderer(client=client)

    url = asyncio.run(
        renderer.render_illustration(build_illustration_prompt("a toaster", "Cartoon"), seed=7)
    )

    assert url == "https://replicate.delivery/out.png"
    ref, payload, kwargs = client.calls[0]
    assert ref == "black-forest-labs/flux-schnell"
    assert payload["prompt"].startswith("Create a Cartoon style illustration.")
    assert payload["seed"] == 7
    assert kwargs == {"use_file_output": False}


def test_replicate_renderer_raises_on_empty_output():
    renderer = ReplicateIllustrationRenderer(
        client=FakeReplicateClient([]),
        model_identifier="stability-ai/sdxl:abc123",
    )

    with pytest.raises(RuntimeError):
        asyncio.run(renderer.render_illustration(build_illustration_prompt("a toaster", "Sketch")))


def test_replicate_renderer_rejects_unknown_model():
    renderer = ReplicateIllustrationRenderer(
        client=FakeReplicateClient(["x"]),
        model_identifier="someone/unknown-model",
    )

    with pytest.raises(ValueError):
        asyncio.run(renderer.render_illustration(build_illustration_prompt("a toaster", "Sketch")))


def test_replicate_renderer_requires_token(monkeypatch):
    monkeypatch.delenv("REPLICATE_API_TOKEN", raising=False)
    with pytest.raises(ValueError):
        ReplicateIllustrationRenderer()
