# src/llm/adapters/openai_adapter.py — v3
"""OpenAI chat-completions adapter implementing BaseLLMClient.

Also serves OpenAI-compatible endpoints (DeepSeek, Mistral) through
``base_url`` and ``provider``.
"""

from __future__ import annotations

import time
from typing import Any

from pydantic import BaseModel

from llmpipe.llm.base_client import BaseLLMClient
from llmpipe.llm.failure_classifier import to_provider_error
from llmpipe.llm.models import LLMResponse, Message


class OpenAIAdapter(BaseLLMClient):
    """OpenAI (or compatible) chat model."""

    def __init__(
        self,
        model: str = "gpt-4o",
        api_key: str = "",
        base_url: str | None = None,
        provider: str = "openai",
        client: Any = None,
        **kwargs: Any,
    ):
        self._model = model
        self._api_key = api_key
        self._base_url = base_url
        self._provider = provider
        self._sdk_client = client

    def _client(self) -> Any:
        if self._sdk_client is None:
            import openai

            self._sdk_client = openai.AsyncOpenAI(
                api_key=self._api_key, base_url=self._base_url,
            )
        return self._sdk_client

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.2,
        response_format: type[BaseModel] | None = None,
    ) -> LLMResponse:
        chat = [{"role": "system", "content": system}] if system else []
        chat.extend({"role": m.role, "content": m.content} for m in messages)

        request: dict[str, Any] = {
            "model": self._model,
            "messages": chat,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if response_format is not None:
            request["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": response_format.__name__,
                    "schema": response_format.model_json_schema(),
                },
            }

        t0 = time.monotonic()
        try:
            resp = await self._client().chat.completions.create(**request)
        except Exception as e:
            raise to_provider_error(self._provider, e) from e
        latency = int((time.monotonic() - t0) * 1000)

        usage = resp.usage
        text = resp.choices[0].message.content if resp.choices else None
        return LLMResponse(
            content=text or "",
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=self._model,
            provider=self._provider,
            latency_ms=latency,
            raw_response=resp,
        )

    @property
    def provider_name(self) -> str:
        return self._provider

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key) or self._sdk_client is not None
