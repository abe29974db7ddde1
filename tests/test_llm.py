import asyncio
from types import SimpleNamespace

import pytest

from storyweaver.common import ChatResult, call_chat_completion
from storyweaver.common import llm


def install_fake_acompletion(monkeypatch, response):
    calls: list[dict] = []

    async def fake_acompletion(**kwargs):
        calls.append(kwargs)
        return response

    monkeypatch.setattr(llm, "acompletion", fake_acompletion)
    return calls


def test_call_chat_completion_reads_model_response_objects(monkeypatch):
    """Attribute-style responses, as LiteLLM returns them, are understood."""
    response = SimpleNamespace(
        choices=[
            SimpleNamespace(
                message=SimpleNamespace(content="  {\"title\": \"Moon\"}  "),
                finish_reason="stop",
            )
        ],
        usage=SimpleNamespace(prompt_tokens=12, completion_tokens=5, total_tokens=17),
    )
    calls = install_fake_acompletion(monkeypatch, response)

    result = asyncio.run(
        call_chat_completion(
            model="test-model",
            messages=[{"role": "user", "content": "hi"}],
            temperature=0.5,
            response_format={"type": "json_object"},
        )
    )

    assert result.text == '{"title": "Moon"}'
    assert result.finish_reason == "stop"
    assert result.usage == {"prompt_tokens": 12, "completion_tokens": 5, "total_tokens": 17}
    assert calls[0]["temperature"] == 0.5
    assert calls[0]["response_format"] == {"type": "json_object"}
    assert "max_tokens" not in calls[0]
    assert "api_key" not in calls[0]


def test_call_chat_completion_reads_mapping_responses(monkeypatch):
    install_fake_acompletion(monkeypatch, {"choices": [{"message": {"content": None}}]})

    result = asyncio.run(call_chat_completion(model="m", messages=[]))

    assert result.text == ""
    assert result.finish_reason is None
    assert result.usage == {}


def test_call_chat_completion_rejects_malformed_responses(monkeypatch):
    install_fake_acompletion(monkeypatch, {"choices": []})

    with pytest.raises(RuntimeError):
        asyncio.run(call_chat_completion(model="m", messages=[]))


@pytest.mark.parametrize(
    "text",
    [
        '{"title": "Moon"}',
        '```json\n{"title": "Moon"}\n```',
        '```\n{"title": "Moon"}\n```',
    ],
)
def test_json_object_accepts_plain_and_fenced_replies(text):
    assert ChatResult(text=text, raw=None).json_object() == {"title": "Moon"}


def test_json_object_rejects_non_objects():
    with pytest.raises(ValueError):
        ChatResult(text="[1, 2]", raw=None).json_object()


def test_json_object_mentions_truncation():
    result = ChatResult(text='{"title": "Mo', raw=None, finish_reason="length")

    assert result.truncated
    with pytest.raises(ValueError, match="token limit"):
        result.json_object()
