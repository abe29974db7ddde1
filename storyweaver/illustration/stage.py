"""
Illustration stage: one prompt in, one usable image reference out.

Rendering failures never escape this stage. They are logged, reported to the
optional failure reporter, and replaced by a placeholder image so a story can
always finish illustrating.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Callable, Protocol, Union

from storyweaver.common import get_logger

from .prompting import IllustrationPrompt, build_illustration_prompt

logger = get_logger("illustration")

PLACEHOLDER_URL_PREFIX = "https://picsum.photos/seed/"
PLACEHOLDER_SIZE = (800, 600)

FailureReporter = Callable[[str, BaseException], None]


class IllustrationRenderer(Protocol):
    async def render_illustration(self, prompt: IllustrationPrompt) -> str: ...


@dataclass(frozen=True)
class Rendered:
    """The service produced a real illustration."""

    image_url: str

    @property
    def degraded(self) -> bool:
        return False


@dataclass(frozen=True)
class Degraded:
    """The service failed; ``image_url`` points at a placeholder image."""

    image_url: str
    cause: BaseException

    @property
    def degraded(self) -> bool:
        return True


IllustrationOutcome = Union[Rendered, Degraded]


def placeholder_image_url(prompt: str) -> str:
    """Return a generic stand-in image, stable for a given prompt."""
    digest = hashlib.sha1(prompt.encode("utf-8")).hexdigest()[:12]
    width, height = PLACEHOLDER_SIZE
    return f"{PLACEHOLDER_URL_PREFIX}{digest}/{width}/{height}"


def is_placeholder(image_url: str | None) -> bool:
    return bool(image_url) and image_url.startswith(PLACEHOLDER_URL_PREFIX)


class IllustrationStage:
    """
    Generates one illustration per call with graceful fallback on failure.
    """

    def __init__(
        self,
        renderer: IllustrationRenderer,
        *,
        failure_reporter: FailureReporter | None = None,
    ) -> None:
        self._renderer = renderer
        self._failure_reporter = failure_reporter

    async def illustrate(self, prompt: str, art_style: str) -> IllustrationOutcome:
        try:
            final_prompt = build_illustration_prompt(prompt, art_style)
            image_url = await self._renderer.render_illustration(final_prompt)
            if not isinstance(image_url, str) or not image_url.strip():
                raise RuntimeError("Illustration service returned an empty image reference.")
        except Exception as exc:
            logger.warning("Illustration failed, using placeholder: %s", exc, exc_info=True)
            self._report(prompt, exc)
            return Degraded(image_url=placeholder_image_url(prompt or art_style), cause=exc)

        return Rendered(image_url=image_url.strip())

    def _report(self, prompt: str, cause: BaseException) -> None:
        if self._failure_reporter is None:
            return
        try:
            self._failure_reporter(prompt, cause)
        except Exception:
            logger.exception("Illustration failure reporter raised")
