# src/embeddings/base_embedder.py — v3
"""Embedding seam for the semantic cache layer.

The cache only ever embeds one normalized prompt at a time; batch
embedding exists for warming an index from stored entries.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseEmbedder(ABC):

    @abstractmethod
    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Vectors for ``texts``, in input order."""

    async def embed_query(self, query: str) -> list[float]:
        (vector,) = await self.embed_texts([query])
        return vector

    @property
    @abstractmethod
    def dimensions(self) -> int: ...

    @property
    def provider_name(self) -> str:
        return type(self).__name__.removesuffix("Embedder").lower()
