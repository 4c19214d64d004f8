# src/cache/models.py — v2
"""Cache domain models: CacheEntry, CacheLookupResult."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Literal

from pydantic import BaseModel, Field

from llmpipe.router.models import InvocationResult


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CacheEntry(BaseModel):
    """Cached provider result keyed by the normalized-prompt hash.

    ``prompt``, ``simhash`` and ``embedding`` feed the semantic lookup;
    ``result_type`` selected the TTL at write time.
    """

    key: str
    value: InvocationResult
    ttl_seconds: int
    created_at: datetime = Field(default_factory=_utcnow)
    prompt: str = ""
    simhash: str = ""
    embedding: list[float] | None = None
    result_type: str = "default"

    @property
    def expires_at(self) -> datetime:
        return self.created_at + timedelta(seconds=self.ttl_seconds)

    def is_expired(self, now: datetime | None = None) -> bool:
        """True once the TTL has elapsed. A TTL <= 0 never expires."""
        if self.ttl_seconds <= 0:
            return False
        return (now or _utcnow()) >= self.expires_at


class CacheLookupResult(BaseModel):
    """Result of an exact-then-semantic lookup."""

    hit_level: Literal["exact", "semantic"] | None = None
    entry: CacheEntry | None = None
    similarity_score: float | None = None

    @property
    def is_hit(self) -> bool:
        return self.entry is not None
