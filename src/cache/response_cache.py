# src/cache/response_cache.py — v1
"""Exact + semantic response cache in front of the provider router.

Lookup order is exact first, semantic second. The semantic layer compares
the prompt against every live entry: by embedding cosine when an embedder
is configured, otherwise by SimHash similarity. Only successful provider
results are ever stored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from llmpipe.cache.base_cache_store import BaseCacheStore
from llmpipe.cache.fingerprint import (
    normalize_prompt,
    prompt_key,
    prompt_simhash,
    simhash_similarity,
)
from llmpipe.cache.models import CacheEntry, CacheLookupResult
from llmpipe.embeddings.base_embedder import BaseEmbedder
from llmpipe.embeddings.similarity import best_cosine_match
from llmpipe.router.models import CacheKind, InvocationResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TtlPolicy:
    """Default TTL with per-result-type overrides (seconds)."""

    default_seconds: int = 60 * 60 * 24 * 7
    overrides: dict[str, int] = field(default_factory=dict)

    def ttl_for(self, result_type: str) -> int:
        return self.overrides.get(result_type.lower(), self.default_seconds)


class ResponseCache:
    """Two-layer cache keyed by prompt."""

    def __init__(
        self,
        store: BaseCacheStore,
        ttl_policy: TtlPolicy | None = None,
        semantic_enabled: bool = True,
        embedder: BaseEmbedder | None = None,
        embedding_threshold: float = 0.92,
        simhash_threshold: float = 0.9,
    ) -> None:
        self._store = store
        self._ttl = ttl_policy or TtlPolicy()
        self._semantic_enabled = semantic_enabled
        self._embedder = embedder
        self._embedding_threshold = embedding_threshold
        self._simhash_threshold = simhash_threshold

    @property
    def store(self) -> BaseCacheStore:
        return self._store

    async def get(self, key: str) -> CacheEntry | None:
        return await self._store.get(key)

    async def set(self, key: str, value: InvocationResult, ttl_seconds: int) -> CacheEntry:
        return await self._store.set(key, value, ttl_seconds)

    async def lookup(self, prompt: str, allow_semantic: bool = True) -> CacheLookupResult:
        """Exact lookup, then semantic lookup when allowed."""
        entry = await self._store.get(prompt_key(prompt))
        if entry is not None:
            return CacheLookupResult(hit_level="exact", entry=entry, similarity_score=1.0)

        if not (allow_semantic and self._semantic_enabled):
            return CacheLookupResult()

        return await self._semantic_lookup(prompt)

    async def store(
        self, prompt: str, result: InvocationResult, result_type: str = "default",
    ) -> CacheEntry | None:
        """Write a provider result. Cache hits and failed results are ignored."""
        if result.from_cache or not result.fallback_chain[-1].success:
            return None

        embedding = None
        if self._semantic_enabled and self._embedder is not None:
            try:
                embedding = await self._embedder.embed_query(normalize_prompt(prompt))
            except Exception as e:
                logger.warning("Embedding failed, entry stored without vector: %s", e)

        entry = CacheEntry(
            key=prompt_key(prompt),
            value=result.model_copy(
                update={"from_cache": False, "cache_kind": CacheKind.NONE}
            ),
            ttl_seconds=self._ttl.ttl_for(result_type),
            prompt=normalize_prompt(prompt),
            simhash=prompt_simhash(prompt),
            embedding=embedding,
            result_type=result_type,
        )
        await self._store.put(entry.key, entry)
        logger.debug("Cached %s result (ttl=%ds)", result_type, entry.ttl_seconds)
        return entry

    async def invalidate(self, prompt: str) -> None:
        await self._store.delete(prompt_key(prompt))

    async def _semantic_lookup(self, prompt: str) -> CacheLookupResult:
        entries = await self._store.list_entries()
        if not entries:
            return CacheLookupResult()

        if self._embedder is not None:
            hit = await self._embedding_match(prompt, entries)
            if hit is not None:
                return hit
            return CacheLookupResult()

        query_hash = prompt_simhash(prompt)
        best: tuple[float, CacheEntry] | None = None
        for entry in entries:
            if not entry.simhash:
                continue
            score = simhash_similarity(query_hash, entry.simhash)
            if best is None or score > best[0]:
                best = (score, entry)

        if best is not None and best[0] >= self._simhash_threshold:
            return CacheLookupResult(
                hit_level="semantic", entry=best[1], similarity_score=best[0],
            )
        return CacheLookupResult()

    async def _embedding_match(
        self, prompt: str, entries: list[CacheEntry],
    ) -> CacheLookupResult | None:
        assert self._embedder is not None
        candidates = [e for e in entries if e.embedding]
        if not candidates:
            return None
        try:
            query = await self._embedder.embed_query(normalize_prompt(prompt))
        except Exception as e:
            logger.warning("Embedding failed, semantic lookup skipped: %s", e)
            return None

        match = best_cosine_match(query, [e.embedding or [] for e in candidates])
        if match is None:
            return None
        index, score = match
        if score < self._embedding_threshold:
            return None
        return CacheLookupResult(
            hit_level="semantic", entry=candidates[index], similarity_score=score,
        )
