"""
Async chat completions over LiteLLM, with helpers for JSON-mode replies.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, MutableMapping, Sequence

from litellm import acompletion

from .logger import get_logger

logger = get_logger("llm")

ChatMessage = Mapping[str, Any]

_FENCE = "```"


@dataclass
class ChatResult:
    """
    Text of the first choice plus the provider metadata worth keeping.
    """

    text: str
    raw: Any
    finish_reason: str | None = None
    usage: dict[str, int] = field(default_factory=dict)

    @property
    def truncated(self) -> bool:
        return self.finish_reason == "length"

    def json_object(self) -> dict[str, Any]:
        """
        Parse the reply as a JSON object, tolerating a Markdown code fence.

        Raises ``ValueError`` when the text is not JSON or not an object.
        """
        text = _strip_code_fence(self.text)
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as exc:
            hint = " (reply was cut off at the token limit)" if self.truncated else ""
            raise ValueError(f"Failed to parse model reply as JSON{hint}.") from exc

        if not isinstance(parsed, dict):
            raise ValueError("Model reply JSON must be an object.")
        return parsed


CompletionCallable = Callable[..., Awaitable[ChatResult]]


def _strip_code_fence(text: str) -> str:
    text = text.strip()
    if not text.startswith(_FENCE):
        return text
    text = text.strip("`")
    # Drop the info string, e.g. ```json
    first_line, _, rest = text.partition("\n")
    if first_line.strip().isalpha():
        text = rest
    return text.strip()


def _field(source: Any, name: str) -> Any:
    # LiteLLM returns ModelResponse objects; fakes and proxies often return dicts.
    if isinstance(source, Mapping):
        return source[name]
    return getattr(source, name)


def _read_choice(response: Any) -> tuple[Any, str | None]:
    try:
        choice = _field(response, "choices")[0]
        content = _field(_field(choice, "message"), "content")
    except (AttributeError, KeyError, IndexError, TypeError) as exc:
        raise RuntimeError("Unexpected LiteLLM response format.") from exc

    try:
        finish_reason = _field(choice, "finish_reason")
    except (AttributeError, KeyError):
        finish_reason = None
    return content, finish_reason


def _read_usage(response: Any) -> dict[str, int]:
    try:
        usage = _field(response, "usage")
    except (AttributeError, KeyError):
        return {}
    counts: dict[str, int] = {}
    for name in ("prompt_tokens", "completion_tokens", "total_tokens"):
        try:
            value = _field(usage, name)
        except (AttributeError, KeyError, TypeError):
            continue
        if isinstance(value, int):
            counts[name] = value
    return counts


async def call_chat_completion(
    *,
    model: str,
    messages: Sequence[ChatMessage],
    temperature: float | None = None,
    max_tokens: int | None = None,
    api_key: str | None = None,
    **extra_kwargs: Any,
) -> ChatResult:
    """
    Await LiteLLM's ``acompletion`` and return the first choice as a ``ChatResult``.

    Optional arguments left as ``None`` are not sent, so provider defaults apply.
    Anything else (``response_format``, ``num_retries``, ...) is passed through.
    """
    optional = {"temperature": temperature, "max_tokens": max_tokens, "api_key": api_key}
    payload: MutableMapping[str, Any] = {"model": model, "messages": list(messages)}
    payload.update({key: value for key, value in optional.items() if value is not None})
    payload.update(extra_kwargs)

    logger.debug("Requesting completion from %s (%d messages)", model, len(payload["messages"]))
    response = await acompletion(**payload)

    content, finish_reason = _read_choice(response)
    result = ChatResult(
        text=str(content or "").strip(),
        raw=response,
        finish_reason=finish_reason,
        usage=_read_usage(response),
    )
    if result.truncated:
        logger.warning("Completion from %s stopped at the token limit", model)
    logger.debug("Completion from %s finished (%s, usage=%s)", model, finish_reason, result.usage)
    return result
