# tests/unit/llm/test_unit_adapters.py — v1
"""Tests for llm/adapters/* — mocked SDK clients, no network."""

from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import BaseModel

from llmpipe.core.errors import (
    ProviderQuotaExceeded,
    ProviderTransportError,
    ProviderUnavailable,
)
from llmpipe.llm.adapters.anthropic_adapter import AnthropicAdapter
from llmpipe.llm.adapters.google_adapter import GoogleAdapter
from llmpipe.llm.adapters.ollama_adapter import OllamaAdapter
from llmpipe.llm.adapters.openai_adapter import OpenAIAdapter
from llmpipe.llm.models import Message


class Answer(BaseModel):
    answer: int


class StatusError(Exception):
    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


USER = [Message(role="user", content="What is 2+2?")]


def _anthropic_sdk(*blocks) -> MagicMock:
    sdk = MagicMock()
    sdk.messages.create = AsyncMock(return_value=SimpleNamespace(
        content=list(blocks),
        usage=SimpleNamespace(input_tokens=7, output_tokens=3),
        model="claude-test",
    ))
    return sdk


def _openai_sdk(content: str | None = "4") -> MagicMock:
    sdk = MagicMock()
    sdk.chat.completions.create = AsyncMock(return_value=SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=5, completion_tokens=1),
    ))
    return sdk


class TestAnthropicAdapter:
    @pytest.mark.asyncio
    async def test_text_reply_and_system_out_of_band(self):
        sdk = _anthropic_sdk(SimpleNamespace(type="text", text="4"))
        adapter = AnthropicAdapter(model="claude-test", client=sdk)

        resp = await adapter.complete(USER, system="Be terse", max_tokens=16)

        assert resp.content == "4"
        assert resp.total_tokens == 10
        assert resp.provider == "anthropic"
        request = sdk.messages.create.await_args.kwargs
        assert request["system"] == "Be terse"
        assert request["messages"] == [{"role": "user", "content": "What is 2+2?"}]
        assert request["max_tokens"] == 16

    @pytest.mark.asyncio
    async def test_structured_reply_via_tool(self):
        sdk = _anthropic_sdk(SimpleNamespace(type="tool_use", input={"answer": 4}))
        adapter = AnthropicAdapter(client=sdk)

        resp = await adapter.complete(USER, response_format=Answer)

        assert json.loads(resp.content) == {"answer": 4}
        assert sdk.messages.create.await_args.kwargs["tool_choice"]["type"] == "tool"

    @pytest.mark.asyncio
    async def test_rate_limit_becomes_quota_error(self):
        sdk = MagicMock()
        sdk.messages.create = AsyncMock(side_effect=StatusError("rate limited", 429))
        with pytest.raises(ProviderQuotaExceeded):
            await AnthropicAdapter(client=sdk).complete(USER)

    def test_configuration(self):
        assert not AnthropicAdapter(api_key="").is_configured
        assert AnthropicAdapter(api_key="sk-ant").is_configured


class TestOpenAIAdapter:
    @pytest.mark.asyncio
    async def test_compatible_provider_name(self):
        sdk = _openai_sdk("4")
        adapter = OpenAIAdapter(model="deepseek-chat", provider="deepseek", client=sdk)

        resp = await adapter.complete(USER, system="Be terse")

        assert resp.content == "4"
        assert resp.provider == "deepseek"
        messages = sdk.chat.completions.create.await_args.kwargs["messages"]
        assert messages[0] == {"role": "system", "content": "Be terse"}

    @pytest.mark.asyncio
    async def test_null_content_is_empty_text(self):
        resp = await OpenAIAdapter(client=_openai_sdk(None)).complete(USER)
        assert resp.content == ""

    @pytest.mark.asyncio
    async def test_json_schema_response_format(self):
        sdk = _openai_sdk('{"answer": 4}')
        await OpenAIAdapter(client=sdk).complete(USER, response_format=Answer)
        fmt = sdk.chat.completions.create.await_args.kwargs["response_format"]
        assert fmt["json_schema"]["name"] == "Answer"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error, expected", [
        (StatusError("bad key", 401), ProviderUnavailable),
        (StatusError("upstream", 503), ProviderTransportError),
        (Exception("You exceeded your current quota"), ProviderQuotaExceeded),
    ])
    async def test_error_translation(self, error, expected):
        sdk = MagicMock()
        sdk.chat.completions.create = AsyncMock(side_effect=error)
        with pytest.raises(expected) as exc_info:
            await OpenAIAdapter(provider="mistral", client=sdk).complete(USER)
        assert exc_info.value.provider == "mistral"


class TestGoogleAdapter:
    @pytest.mark.asyncio
    async def test_roles_and_system_instruction(self):
        model = MagicMock()
        model.generate_content_async = AsyncMock(return_value=SimpleNamespace(
            text="4",
            usage_metadata=SimpleNamespace(prompt_token_count=6, candidates_token_count=1),
        ))
        factory = MagicMock(return_value=model)
        adapter = GoogleAdapter(model="gemini-test", model_factory=factory)
        history = [
            Message(role="user", content="hi"),
            Message(role="assistant", content="hello"),
            Message(role="user", content="What is 2+2?"),
        ]

        resp = await adapter.complete(history, system="Be terse")

        assert resp.content == "4"
        assert resp.input_tokens == 6
        factory.assert_called_once_with("gemini-test", system_instruction="Be terse")
        contents = model.generate_content_async.await_args.args[0]
        assert [c["role"] for c in contents] == ["user", "model", "user"]

    @pytest.mark.asyncio
    async def test_resource_exhausted_is_quota(self):
        class ResourceExhausted(Exception):
            pass

        model = MagicMock()
        model.generate_content_async = AsyncMock(side_effect=ResourceExhausted("429 limit"))
        adapter = GoogleAdapter(model_factory=MagicMock(return_value=model))
        with pytest.raises(ProviderQuotaExceeded):
            await adapter.complete(USER)


class TestOllamaAdapter:
    @pytest.mark.asyncio
    async def test_chat_reply(self):
        sdk = MagicMock()
        sdk.chat = AsyncMock(return_value={
            "message": {"content": "4"}, "prompt_eval_count": 9, "eval_count": 1,
        })
        adapter = OllamaAdapter(model="llama3", client=sdk)

        resp = await adapter.complete(USER, response_format=Answer, temperature=0.0)

        assert resp.content == "4"
        assert resp.total_tokens == 10
        request = sdk.chat.await_args.kwargs
        assert request["format"] == "json"
        assert request["options"]["temperature"] == 0.0
        assert adapter.is_configured

    @pytest.mark.asyncio
    async def test_daemon_down_is_transport(self):
        sdk = MagicMock()
        sdk.chat = AsyncMock(side_effect=ConnectionRefusedError("connection refused"))
        with pytest.raises(ProviderTransportError):
            await OllamaAdapter(client=sdk).complete(USER)
