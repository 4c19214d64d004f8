# src/cache/memory_store.py — v1
"""In-process cache store (default CACHE_BACKEND=memory).

Bounded by CACHE_MAX_ENTRIES; the oldest entry is evicted first. All
operations run without awaiting, so no lock is needed under asyncio.
"""

from __future__ import annotations

import logging
from collections import OrderedDict

from llmpipe.cache.base_cache_store import BaseCacheStore
from llmpipe.cache.models import CacheEntry

logger = logging.getLogger(__name__)


class MemoryCacheStore(BaseCacheStore):
    """Dict-backed cache with size bound and TTL expiry."""

    def __init__(self, max_entries: int = 2048) -> None:
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._max_entries = max_entries

    async def get(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired():
            del self._entries[key]
            return None
        return entry

    async def put(self, key: str, entry: CacheEntry) -> None:
        self._entries.pop(key, None)
        self._entries[key] = entry
        while self._max_entries > 0 and len(self._entries) > self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Evicted cache entry %s (max_entries=%d)", evicted, self._max_entries)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def list_entries(self) -> list[CacheEntry]:
        return [e for e in self._entries.values() if not e.is_expired()]

    async def purge_expired(self) -> int:
        expired = [k for k, e in self._entries.items() if e.is_expired()]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
