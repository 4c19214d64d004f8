# src/cache/redis_store.py — v2
"""Redis-based cache store (CACHE_BACKEND=redis).

TTL is delegated to Redis (SET ... EX). A key index set backs
list_entries; keys that Redis already expired are dropped from the index
lazily.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from llmpipe.cache.base_cache_store import BaseCacheStore
from llmpipe.cache.models import CacheEntry

logger = logging.getLogger(__name__)

_KEY_PREFIX = "llmpipe:cache:"
_INDEX_KEY = "llmpipe:cache:__index__"


class RedisCacheStore(BaseCacheStore):
    """Redis-backed cache store for multi-instance deployments."""

    def __init__(self, redis_url: str = "", client: object | None = None) -> None:
        if client is None:
            import redis

            client = redis.Redis.from_url(redis_url, decode_responses=True)
        self._client = client

    async def get(self, key: str) -> CacheEntry | None:
        data = self._client.get(f"{_KEY_PREFIX}{key}")
        if data is None:
            return None
        try:
            entry = CacheEntry.model_validate_json(data)
        except ValidationError as e:
            logger.warning("Failed to deserialize cache entry %s: %s", key, e)
            return None
        if entry.is_expired():
            return None
        return entry

    async def put(self, key: str, entry: CacheEntry) -> None:
        redis_key = f"{_KEY_PREFIX}{key}"
        if entry.ttl_seconds > 0:
            self._client.set(redis_key, entry.model_dump_json(), ex=entry.ttl_seconds)
        else:
            self._client.set(redis_key, entry.model_dump_json())
        self._client.sadd(_INDEX_KEY, key)

    async def delete(self, key: str) -> None:
        self._client.delete(f"{_KEY_PREFIX}{key}")
        self._client.srem(_INDEX_KEY, key)

    async def list_entries(self) -> list[CacheEntry]:
        entries: list[CacheEntry] = []
        for key in sorted(self._client.smembers(_INDEX_KEY)):
            entry = await self.get(key)
            if entry is None:
                self._client.srem(_INDEX_KEY, key)
                continue
            entries.append(entry)
        return entries

    async def purge_expired(self) -> int:
        """Drop index members whose keys Redis has already expired."""
        removed = 0
        for key in list(self._client.smembers(_INDEX_KEY)):
            if not self._client.exists(f"{_KEY_PREFIX}{key}"):
                self._client.srem(_INDEX_KEY, key)
                removed += 1
        return removed

    def close(self) -> None:
        """Close the Redis connection."""
        self._client.close()
