# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides scripted fake LLM clients, a deterministic embedder, settings and
router builders. No network: every provider is a fake.
"""

from __future__ import annotations

import asyncio
import hashlib
import math
from typing import Any

import pytest
from pydantic import BaseModel

from llmpipe.cache.memory_store import MemoryCacheStore
from llmpipe.cache.response_cache import ResponseCache
from llmpipe.config.settings import Settings
from llmpipe.llm.base_client import BaseLLMClient
from llmpipe.llm.models import LLMResponse, Message
from llmpipe.router.models import ProviderSlot
from llmpipe.router.provider_router import ProviderRouter


class FakeLLMClient(BaseLLMClient):
    """Scripted client: each call pops the next outcome.

    An outcome is a reply string, an exception instance (raised), or a
    float (seconds to sleep before replying with the default, for timeouts).
    """

    def __init__(
        self,
        name: str = "fake",
        default_response: str = '{"result": "mock"}',
        outcomes: list[Any] | None = None,
        configured: bool = True,
    ) -> None:
        self._name = name
        self._default_response = default_response
        self._outcomes = list(outcomes or [])
        self._configured = configured
        self.calls: list[dict[str, Any]] = []

    def set_outcomes(self, *outcomes: Any) -> None:
        self._outcomes = list(outcomes)

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.2,
        response_format: type[BaseModel] | None = None,
    ) -> LLMResponse:
        self.calls.append({
            "messages": messages, "system": system,
            "max_tokens": max_tokens, "temperature": temperature,
            "response_format": response_format,
        })
        outcome = self._outcomes.pop(0) if self._outcomes else self._default_response
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, float):
            await asyncio.sleep(outcome)
            outcome = self._default_response
        return LLMResponse(
            content=outcome, input_tokens=12, output_tokens=len(outcome) // 4,
            model=f"{self._name}-model", provider=self._name, latency_ms=5,
        )

    @property
    def provider_name(self) -> str:
        return self._name

    @property
    def is_configured(self) -> bool:
        return self._configured


class HashEmbedder:
    """Deterministic embedder: identical normalized text → identical vector."""

    def __init__(self, dimensions: int = 32) -> None:
        self._dims = dimensions
        self.call_count = 0

    def _text_to_vec(self, text: str) -> list[float]:
        digest = hashlib.sha256(text.encode()).hexdigest()
        raw = [int(digest[i:i + 2], 16) / 255.0 - 0.5 for i in range(0, self._dims * 2, 2)]
        norm = math.sqrt(sum(x * x for x in raw)) or 1.0
        return [x / norm for x in raw]

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        self.call_count += len(texts)
        return [self._text_to_vec(t) for t in texts]

    async def embed_query(self, query: str) -> list[float]:
        self.call_count += 1
        return self._text_to_vec(query)

    @property
    def dimensions(self) -> int:
        return self._dims

    @property
    def provider_name(self) -> str:
        return "hash"


def make_slot(client: FakeLLMClient, timeout_s: float = 1.0) -> ProviderSlot:
    return ProviderSlot(
        name=client.provider_name, client=client,
        model=f"{client.provider_name}-model", timeout_s=timeout_s,
    )


# === FIXTURES ===


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(_env_file=None, llm_provider_chain="openai:gpt-4o")


@pytest.fixture
def response_cache() -> ResponseCache:
    return ResponseCache(store=MemoryCacheStore())


@pytest.fixture
def make_router():
    """Build a router over fake clients."""

    def _make(*clients: FakeLLMClient, cache: ResponseCache | None = None, **kwargs: Any) -> ProviderRouter:
        return ProviderRouter([make_slot(c) for c in clients], cache=cache, **kwargs)

    return _make


@pytest.fixture
def make_client():
    """Factory for scripted FakeLLMClient instances."""

    def _make(name: str = "fake", *outcomes: Any, configured: bool = True,
              default_response: str = '{"result": "mock"}') -> FakeLLMClient:
        return FakeLLMClient(
            name=name, outcomes=list(outcomes), configured=configured,
            default_response=default_response,
        )

    return _make


@pytest.fixture
def hash_embedder() -> HashEmbedder:
    return HashEmbedder()
