"""
Prompt construction utilities for story illustration.
"""

from __future__ import annotations

from dataclasses import dataclass

QUALITY_QUALIFIERS = "High quality, detailed, colorful"

NEGATIVE_PROMPT = (
    "text, letters, watermark, logo, signature, blurry, low resolution, "
    "distorted anatomy, extra limbs, frightening imagery"
)

COVER_PREFIX = "Cover art for a story"


@dataclass(frozen=True)
class IllustrationPrompt:
    """Container for the positive and negative prompts passed to the image model."""

    positive: str
    negative: str = NEGATIVE_PROMPT


def build_illustration_prompt(scene_description: str, art_style: str) -> IllustrationPrompt:
    """
    Embed the art style and quality qualifiers into a scene description.
    """
    if not scene_description or not scene_description.strip():
        raise ValueError("scene_description must be a non-empty string.")

    if not art_style or not art_style.strip():
        raise ValueError("art_style must be a non-empty string.")

    scene = scene_description.strip().rstrip(".")
    positive_prompt = (
        f"Create a {art_style.strip()} style illustration. {scene}. {QUALITY_QUALIFIERS}."
    )
    return IllustrationPrompt(positive=positive_prompt)


def build_cover_prompt(first_page_prompt: str, title: str | None = None) -> str:
    """
    Derive the cover scene description from the opening page and the story title.
    """
    if not first_page_prompt or not first_page_prompt.strip():
        raise ValueError("first_page_prompt must be a non-empty string.")

    scene = first_page_prompt.strip()
    if title and title.strip():
        return f'{COVER_PREFIX} titled "{title.strip()}" about: {scene}'
    return f"{COVER_PREFIX} about: {scene}"
