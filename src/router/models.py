# src/router/models.py — v1
"""Router domain models: ProviderAttempt, TokenUsage, InvocationResult,
InvocationOptions, ProviderSlot.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from llmpipe.llm.base_client import BaseLLMClient

CACHE_PROVIDER = "cache"


class ErrorKind(str, Enum):
    """Failure category of a single provider attempt."""

    NONE = "none"
    QUOTA = "quota"
    TRANSPORT = "transport"
    UNKNOWN = "unknown"


class CacheKind(str, Enum):
    """Which cache layer served a result."""

    NONE = "none"
    EXACT = "exact"
    SEMANTIC = "semantic"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProviderAttempt(BaseModel):
    """One entry of the fallback chain."""

    provider: str
    model: str = ""
    success: bool
    error_kind: ErrorKind = ErrorKind.NONE
    error_message: str | None = None
    latency_ms: float = 0.0
    timestamp: datetime = Field(default_factory=_utcnow)


class TokenUsage(BaseModel):
    """Token accounting reported by the provider."""

    prompt: int = 0
    completion: int = 0
    total: int = 0


class InvocationResult(BaseModel):
    """Terminal result of one router invocation."""

    text: str
    provider: str
    model: str = ""
    token_usage: TokenUsage | None = None
    latency_ms: float = 0.0
    fallback_chain: list[ProviderAttempt] = Field(min_length=1)
    from_cache: bool = False
    cache_kind: CacheKind = CacheKind.NONE


class InvocationOptions(BaseModel):
    """Per-call options.

    ``task`` names the kind of call (e.g. ``generate_agent``); tasks listed in
    SEMANTIC_CACHE_EXCLUDED_TASKS never use the semantic cache. ``result_type``
    selects the cache TTL policy.
    """

    skip_cache: bool = False
    allow_semantic_cache: bool = True
    task: str | None = None
    result_type: str = "default"
    provider: str | None = None
    system: str | None = None
    max_tokens: int | None = None
    temperature: float | None = None
    response_format: Any = None
    expect_json: bool = False
    schema_hint: Any = None


@dataclass(frozen=True)
class ProviderSlot:
    """A configured provider in the fallback chain."""

    name: str
    client: BaseLLMClient
    model: str = ""
    timeout_s: float = 10.0
