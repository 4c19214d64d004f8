# src/llm/base_client.py — v3
"""Provider adapter contract.

Adapters translate SDK exceptions into ProviderError subclasses; the router
classifies whatever escapes and records it in the fallback chain.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel

from llmpipe.llm.models import LLMResponse, Message


class BaseLLMClient(ABC):

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.2,
        response_format: type[BaseModel] | None = None,
    ) -> LLMResponse:
        """One completion for ``messages``.

        ``response_format`` asks the provider for JSON matching the model's
        schema where the SDK supports it; the text still goes through
        recovery.
        """

    @property
    @abstractmethod
    def provider_name(self) -> str: ...

    @property
    def is_configured(self) -> bool:
        """False when a call cannot succeed for lack of credentials."""
        return True
