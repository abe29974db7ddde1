"""
Service layer for planning story structures via LiteLLM-compatible models.
"""

from __future__ import annotations

import os
from typing import Any

from storyweaver.common import ChatResult, CompletionCallable, call_chat_completion, get_logger

from .models import StorySettings, StoryStructure
from .prompting import StructurePrompt, build_structure_prompt

logger = get_logger("story.planner")


class StoryStructurePlanner:
    """
    Turns story settings into a titled, paginated skeleton using an LLM.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        completion_fn: CompletionCallable | None = None,
    ) -> None:
        self._api_key = api_key or os.getenv("OPENAI_API_KEY") or os.getenv("LITELLM_API_KEY")
        self._model = (
            model
            or os.getenv("STORYWEAVER_STORY_MODEL")
            or os.getenv("LITELLM_STORY_MODEL")
            or os.getenv("LITELLM_MODEL")
            or "gpt-4.1-mini"
        )
        self._completion_fn: CompletionCallable = completion_fn or call_chat_completion

    @property
    def model(self) -> str:
        """Return the model identifier in use."""
        return self._model

    async def plan_structure(
        self,
        settings: StorySettings,
        *,
        temperature: float = 0.8,
        max_output_tokens: int = 4000,
        **response_kwargs: Any,
    ) -> StoryStructure:
        """
        Invoke the configured LLM and validate the returned story structure.
        """
        prompt: StructurePrompt = build_structure_prompt(settings)
        response_kwargs.setdefault("response_format", {"type": "json_object"})

        logger.debug(
            "Planning %s-page story with %s (topic=%r)",
            settings.page_count,
            self._model,
            settings.topic,
        )
        result: ChatResult = await self._completion_fn(
            model=self._model,
            messages=[
                {"role": "system", "content": prompt.system},
                {"role": "user", "content": prompt.user},
            ],
            temperature=temperature,
            max_tokens=max_output_tokens,
            api_key=self._api_key,
            **response_kwargs,
        )

        if not result.text:
            raise RuntimeError("LLM response did not contain any text content.")

        return StoryStructure.from_mapping(result.json_object())
