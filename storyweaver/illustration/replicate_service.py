"""
Integration with Replicate for story illustration rendering.
"""

from __future__ import annotations

import os
from collections.abc import Iterable as IterableABC
from typing import Any, Callable

import replicate

from .prompting import IllustrationPrompt

DEFAULT_MODEL = "black-forest-labs/flux-schnell"


def _build_flux_input(*, prompt: IllustrationPrompt) -> dict[str, Any]:
    return {
        "prompt": prompt.positive,
        "aspect_ratio": "4:3",
        "output_format": "png",
        "num_outputs": 1,
    }


def _build_sdxl_input(*, prompt: IllustrationPrompt) -> dict[str, Any]:
    return {
        "prompt": prompt.positive,
        "negative_prompt": prompt.negative,
        "width": 1024,
        "height": 768,
        "num_outputs": 1,
    }


_MODEL_INPUT_BUILDERS: dict[str, Callable[..., dict[str, Any]]] = {
    "black-forest-labs/flux-schnell": _build_flux_input,
    "black-forest-labs/flux-dev": _build_flux_input,
    "black-forest-labs/flux-1.1-pro": _build_flux_input,
    "stability-ai/sdxl": _build_sdxl_input,
}


def _build_replicate_input_payload(
    *,
    model_identifier: str,
    prompt: IllustrationPrompt,
) -> dict[str, Any]:
    normalized_identifier = model_identifier.strip().lower()
    builder = _MODEL_INPUT_BUILDERS.get(normalized_identifier)
    if builder is None and ":" in normalized_identifier:
        base_identifier = normalized_identifier.split(":", maxsplit=1)[0]
        builder = _MODEL_INPUT_BUILDERS.get(base_identifier)
    if builder is None:
        supported_models = ", ".join(sorted(_MODEL_INPUT_BUILDERS))
        raise ValueError(
            "Model identifier "
            f"'{model_identifier}' is not configured with a default input payload. "
            f"Supported models: {supported_models}."
        )

    return builder(prompt=prompt)


class ReplicateIllustrationRenderer:
    """
    Async wrapper around the Replicate client for page and cover illustrations.

    Parameters
    ----------
    api_token:
        Replicate API token. Falls back to ``REPLICATE_API_TOKEN`` environment variable.
    model_identifier:
        Model string in the ``owner/model`` or ``owner/model:version`` format. Falls back
        to ``REPLICATE_MODEL`` and then to :data:`DEFAULT_MODEL`.
    client:
        Optional pre-configured :class:`replicate.Client`. Mainly useful for testing.
    """

    def __init__(
        self,
        *,
        api_token: str | None = None,
        model_identifier: str | None = None,
        client: replicate.Client | None = None,
    ) -> None:
        self._api_token = api_token or os.getenv("REPLICATE_API_TOKEN")
        if not self._api_token and not client:
            raise ValueError(
                "Replicate API token is required. Set REPLICATE_API_TOKEN or pass api_token."
            )

        self._model_identifier = (
            model_identifier or os.getenv("REPLICATE_MODEL") or DEFAULT_MODEL
        )
        self._client = client or replicate.Client(api_token=self._api_token)

    @property
    def model_identifier(self) -> str:
        """Return the model identifier currently used."""
        return self._model_identifier

    async def render_illustration(
        self,
        prompt: IllustrationPrompt,
        **model_kwargs: Any,
    ) -> str:
        """
        Render one illustration and return the URL of the first produced image.

        Raises
        ------
        RuntimeError
            If the model produced no image reference.
        """
        replicate_input = _build_replicate_input_payload(
            model_identifier=self._model_identifier,
            prompt=prompt,
        )
        # Allow the caller to tweak model-specific knobs (e.g., seed, guidance).
        replicate_input.update(model_kwargs)

        outputs = await self._client.async_run(
            self._model_identifier,
            input=replicate_input,
            use_file_output=False,
        )
        urls = normalize_image_outputs(outputs)
        if not urls:
            raise RuntimeError("Replicate returned no image outputs.")
        return urls[0]


def normalize_image_outputs(raw: Any) -> list[str]:
    """
    Normalize the image outputs returned by Replicate into a list of URL strings.
    """

    if raw is None:
        return []

    if isinstance(raw, str):
        return [raw] if raw.strip() else []

    if isinstance(raw, bytes):
        decoded = raw.decode("utf-8", errors="ignore")
        return [decoded] if decoded.strip() else []

    # FileOutput objects are iterable over image bytes; use their URL instead.
    url = getattr(raw, "url", None)
    if isinstance(url, str):
        return [url] if url.strip() else []

    if isinstance(raw, IterableABC):
        collected = list(raw)
        if not collected:
            return []

        if all(isinstance(item, str) and len(item) == 1 for item in collected):
            return ["".join(collected)]

        normalized: list[str] = []
        for item in collected:
            if item is not None:
                normalized.extend(normalize_image_outputs(item))
        return normalized

    return [str(raw)]
