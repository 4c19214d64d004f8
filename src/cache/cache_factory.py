# src/cache/cache_factory.py — v3
"""Factory for cache store and ResponseCache instantiation."""

from __future__ import annotations

import logging
from pathlib import Path

from llmpipe.cache.base_cache_store import BaseCacheStore
from llmpipe.cache.response_cache import ResponseCache, TtlPolicy
from llmpipe.config.settings import Settings
from llmpipe.embeddings.base_embedder import BaseEmbedder

logger = logging.getLogger(__name__)


def create_cache_store(settings: Settings | None = None) -> BaseCacheStore:
    """Instantiate the configured cache backend (memory when no settings)."""
    backend = "memory" if settings is None else settings.cache_backend

    if backend == "memory":
        from llmpipe.cache.memory_store import MemoryCacheStore

        max_entries = 2048 if settings is None else settings.cache_max_entries
        return MemoryCacheStore(max_entries=max_entries)

    assert settings is not None
    cache_root = Path(settings.cache_root).expanduser()

    if backend == "json":
        from llmpipe.cache.json_store import JsonCacheStore

        return JsonCacheStore(cache_root=cache_root)

    if backend == "sqlite":
        from llmpipe.cache.sqlite_store import SqliteCacheStore

        return SqliteCacheStore(db_path=cache_root / "llmpipe_cache.db")

    if backend == "redis":
        from llmpipe.cache.redis_store import RedisCacheStore

        if not settings.cache_redis_url:
            raise ValueError("CACHE_REDIS_URL must be set when CACHE_BACKEND=redis")
        return RedisCacheStore(redis_url=settings.cache_redis_url)

    raise ValueError(f"Unsupported cache backend: {backend!r}")


def create_response_cache(
    settings: Settings,
    embedder: BaseEmbedder | None = None,
    store: BaseCacheStore | None = None,
) -> ResponseCache | None:
    """Build the exact + semantic cache, or None when CACHE_ENABLED=false."""
    if not settings.cache_enabled:
        logger.info("Response cache disabled")
        return None
    return ResponseCache(
        store=store or create_cache_store(settings),
        ttl_policy=TtlPolicy(
            default_seconds=settings.cache_ttl_seconds,
            overrides=settings.cache_ttl_overrides_map,
        ),
        semantic_enabled=settings.semantic_cache_enabled,
        embedder=embedder,
        embedding_threshold=settings.semantic_cache_threshold,
        simhash_threshold=settings.semantic_simhash_threshold,
    )
