# src/cache/base_cache_store.py — v2
"""Abstract cache store interface.

Backends never return expired entries.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from llmpipe.cache.models import CacheEntry
from llmpipe.router.models import InvocationResult


class BaseCacheStore(ABC):
    """Unified interface for cache storage backends."""

    @abstractmethod
    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve a live cache entry by key."""

    @abstractmethod
    async def put(self, key: str, entry: CacheEntry) -> None:
        """Store cache entry (upsert)."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove cache entry."""

    @abstractmethod
    async def list_entries(self) -> list[CacheEntry]:
        """List all live entries (used by the semantic scan)."""

    async def set(self, key: str, value: InvocationResult, ttl_seconds: int) -> CacheEntry:
        """Store a bare result under key with the given TTL."""
        entry = CacheEntry(key=key, value=value, ttl_seconds=ttl_seconds)
        await self.put(key, entry)
        return entry

    async def purge_expired(self) -> int:
        """Delete expired entries. Returns the number removed."""
        return 0

    def close(self) -> None:
        """Release backend resources."""
