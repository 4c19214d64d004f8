# src/llm/adapters/anthropic_adapter.py — v4
"""Anthropic Claude adapter implementing BaseLLMClient.

Structured outputs go through a forced tool call so the reply is JSON.
SDK exceptions leave this module as ProviderError subclasses.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

from pydantic import BaseModel

from llmpipe.llm.base_client import BaseLLMClient
from llmpipe.llm.failure_classifier import to_provider_error
from llmpipe.llm.models import LLMResponse, Message

logger = logging.getLogger(__name__)

_STRUCTURED_TOOL = "structured_output"


class AnthropicAdapter(BaseLLMClient):
    """Adapter for Anthropic Claude models."""

    def __init__(
        self,
        model: str = "claude-sonnet-4-20250514",
        api_key: str | None = None,
        client: Any = None,
        **kwargs: Any,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._sdk_client = client

    def _client(self) -> Any:
        if self._sdk_client is None:
            import anthropic

            self._sdk_client = anthropic.AsyncAnthropic(api_key=self._api_key or "")
        return self._sdk_client

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.2,
        response_format: type[BaseModel] | None = None,
    ) -> LLMResponse:
        request = self._request(messages, system, max_tokens, temperature, response_format)

        start = time.monotonic()
        try:
            response = await self._client().messages.create(**request)
        except Exception as e:
            raise to_provider_error("anthropic", e) from e
        latency_ms = int((time.monotonic() - start) * 1000)

        return LLMResponse(
            content=_reply_text(response, structured=response_format is not None),
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=getattr(response, "model", None) or self._model,
            provider="anthropic",
            latency_ms=latency_ms,
            raw_response=response,
        )

    @property
    def provider_name(self) -> str:
        return "anthropic"

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key) or self._sdk_client is not None

    def _request(
        self,
        messages: list[Message],
        system: str | None,
        max_tokens: int,
        temperature: float,
        response_format: type[BaseModel] | None,
    ) -> dict[str, Any]:
        # system prompt travels out-of-band
        system_text = [system] if system else []
        turns = []
        for m in messages:
            if m.role == "system":
                system_text.append(m.content)
            else:
                turns.append({"role": m.role, "content": m.content})

        request: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": turns,
        }
        if system_text:
            request["system"] = "\n\n".join(system_text)
        if response_format is not None:
            request["tools"] = [{
                "name": _STRUCTURED_TOOL,
                "description": "Return the answer as structured data",
                "input_schema": response_format.model_json_schema(),
            }]
            request["tool_choice"] = {"type": "tool", "name": _STRUCTURED_TOOL}
        return request


def _reply_text(response: Any, structured: bool) -> str:
    blocks = list(response.content or [])
    if structured:
        for block in blocks:
            if getattr(block, "type", None) == "tool_use":
                return json.dumps(block.input)
        logger.debug("No %s tool call in reply, using text blocks", _STRUCTURED_TOOL)
    return "".join(
        block.text for block in blocks if getattr(block, "type", None) == "text"
    )
