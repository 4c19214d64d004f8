# src/embeddings/openai_embedder.py — v3
"""OpenAI embeddings for semantic cache lookups (text-embedding-3-*)."""

from __future__ import annotations

from typing import Any

from llmpipe.embeddings.base_embedder import BaseEmbedder
from llmpipe.llm.failure_classifier import to_provider_error


class OpenAIEmbedder(BaseEmbedder):

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        api_key: str | None = None,
        dimensions: int = 1536,
        client: Any = None,
    ) -> None:
        self._model = model
        self._api_key = api_key
        self._dimensions = dimensions
        self._sdk_client = client

    def _client(self) -> Any:
        if self._sdk_client is None:
            import openai

            self._sdk_client = openai.AsyncOpenAI(api_key=self._api_key or "")
        return self._sdk_client

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        try:
            response = await self._client().embeddings.create(
                input=texts, model=self._model, dimensions=self._dimensions,
            )
        except Exception as e:
            raise to_provider_error("openai", e) from e
        # the API may return rows out of order
        rows = sorted(response.data, key=lambda item: item.index)
        return [list(item.embedding) for item in rows]

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def model(self) -> str:
        return self._model
