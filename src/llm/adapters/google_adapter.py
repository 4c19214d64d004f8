# src/llm/adapters/google_adapter.py — v3
"""Google Gemini adapter implementing BaseLLMClient (google-generativeai)."""

from __future__ import annotations

import time
from typing import Any

from pydantic import BaseModel

from llmpipe.llm.base_client import BaseLLMClient
from llmpipe.llm.failure_classifier import to_provider_error
from llmpipe.llm.models import LLMResponse, Message


class GoogleAdapter(BaseLLMClient):
    """Google Gemini adapter."""

    def __init__(
        self,
        model: str = "gemini-1.5-pro",
        api_key: str = "",
        model_factory: Any = None,
        **kwargs: Any,
    ):
        self._model = model
        self._api_key = api_key
        self._model_factory = model_factory

    def _generative_model(self, system: str | None) -> Any:
        """A GenerativeModel bound to this call's system instruction."""
        if self._model_factory is not None:
            return self._model_factory(self._model, system_instruction=system)
        import google.generativeai as genai

        genai.configure(api_key=self._api_key)
        return genai.GenerativeModel(self._model, system_instruction=system)

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.2,
        response_format: type[BaseModel] | None = None,
    ) -> LLMResponse:
        # Gemini has no system role inside contents
        instructions = [system] if system else []
        contents = []
        for m in messages:
            if m.role == "system":
                instructions.append(m.content)
                continue
            contents.append({
                "role": "model" if m.role == "assistant" else "user",
                "parts": [{"text": m.content}],
            })

        generation_config: dict[str, Any] = {
            "max_output_tokens": max_tokens,
            "temperature": temperature,
        }
        if response_format is not None:
            generation_config["response_mime_type"] = "application/json"
            generation_config["response_schema"] = response_format.model_json_schema()

        model = self._generative_model("\n\n".join(instructions) or None)
        t0 = time.monotonic()
        try:
            resp = await model.generate_content_async(
                contents, generation_config=generation_config,
            )
        except Exception as e:
            raise to_provider_error("google", e) from e
        latency = int((time.monotonic() - t0) * 1000)

        try:
            text = resp.text or ""
        except ValueError:
            # blocked or empty candidate
            text = ""

        usage = getattr(resp, "usage_metadata", None)
        return LLMResponse(
            content=text,
            input_tokens=getattr(usage, "prompt_token_count", 0) or 0,
            output_tokens=getattr(usage, "candidates_token_count", 0) or 0,
            model=self._model,
            provider="google",
            latency_ms=latency,
            raw_response=resp,
        )

    @property
    def provider_name(self) -> str:
        return "google"

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key) or self._model_factory is not None
