# src/llm/adapters/ollama_adapter.py — v3
"""Ollama local model adapter implementing BaseLLMClient.

No credentials are needed, so the adapter always reports itself as
configured; an unreachable daemon surfaces as a transport failure.
"""

from __future__ import annotations

import time
from typing import Any

from pydantic import BaseModel

from llmpipe.llm.base_client import BaseLLMClient
from llmpipe.llm.failure_classifier import to_provider_error
from llmpipe.llm.models import LLMResponse, Message


class OllamaAdapter(BaseLLMClient):
    """Ollama local inference adapter."""

    def __init__(
        self,
        model: str = "llama3",
        base_url: str = "http://localhost:11434",
        client: Any = None,
        **kwargs: Any,
    ):
        self._model = model
        self._base_url = base_url
        self._sdk_client = client

    def _client(self) -> Any:
        if self._sdk_client is None:
            import ollama

            self._sdk_client = ollama.AsyncClient(host=self._base_url)
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
            "options": {"num_predict": max_tokens, "temperature": temperature},
        }
        if response_format is not None:
            request["format"] = "json"

        t0 = time.monotonic()
        try:
            resp = await self._client().chat(**request)
        except Exception as e:
            raise to_provider_error("ollama", e) from e
        latency = int((time.monotonic() - t0) * 1000)

        return LLMResponse(
            content=resp["message"]["content"] or "",
            input_tokens=resp.get("prompt_eval_count") or 0,
            output_tokens=resp.get("eval_count") or 0,
            model=self._model,
            provider="ollama",
            latency_ms=latency,
            raw_response=resp,
        )

    @property
    def provider_name(self) -> str:
        return "ollama"
