"""
Prompt construction utilities for the story structure planning stage.
"""

from __future__ import annotations

from dataclasses import dataclass

from .models import StorySettings

STRUCTURE_SCHEMA_GUIDANCE = """Respond with valid JSON matching this schema:
{
  "title": "string, a short captivating story title",
  "description": "string, 1-2 sentences summarizing the story",
  "pages": [
    {
      "page_number": 1,
      "text": "string, the narrative text printed on this page",
      "image_prompt": "string, a detailed visual description of the scene for an AI image generator"
    },
    ...
  ]
}

Do not include commentary outside the JSON."""


@dataclass(frozen=True)
class StructurePrompt:
    """
    Container for the system and user prompts passed to the planning model.
    """

    system: str
    user: str


def build_structure_prompt(settings: StorySettings) -> StructurePrompt:
    """
    Build the prompt pair used to solicit a paginated story skeleton from the LLM.
    """
    system_prompt = f"""You are a children's author and picture-book art director.
You plan short illustrated stories: you write the text for each page and describe the matching illustration.

Writing directives:
- The story must be engaging and appropriate for the target age group.
- Keep a clear beginning, middle, and satisfying ending across the pages.
- Keep each page's text short enough to sit beside a full-page illustration.
- Describe recurring characters the same way on every page so illustrations stay consistent.
- Write every image prompt as a self-contained visual scene description in the style of {settings.art_style}.
- Use child-safe, inclusive language only.

{STRUCTURE_SCHEMA_GUIDANCE}"""

    user_prompt = f"""Create a story based on the following settings:
- Topic: {settings.topic}
- Genre: {settings.genre}
- Target age: {settings.age_group}
- Art style: {settings.art_style}
- Length: exactly {settings.page_count} pages, numbered from 1.

Respond with the JSON story structure only."""

    return StructurePrompt(system=system_prompt, user=user_prompt)
