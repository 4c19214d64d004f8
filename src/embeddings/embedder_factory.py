# src/embeddings/embedder_factory.py — v2
"""Factory: instantiate embedding provider from configuration.

EMBEDDING_PROVIDER=none disables embeddings; the semantic cache then falls
back to SimHash similarity.
"""

from __future__ import annotations

import logging

from llmpipe.config.settings import Settings
from llmpipe.embeddings.base_embedder import BaseEmbedder

logger = logging.getLogger(__name__)


def create_embedder(settings: Settings) -> BaseEmbedder | None:
    """Instantiate the configured embedding provider, or None."""
    if settings.embedding_provider == "none":
        return None

    if settings.embedding_provider == "openai":
        from llmpipe.embeddings.openai_embedder import OpenAIEmbedder

        if not settings.openai_api_key:
            logger.warning(
                "EMBEDDING_PROVIDER=openai without OPENAI_API_KEY; "
                "semantic cache falls back to SimHash"
            )
            return None
        logger.debug("Creating embedder: provider=openai, model=%s", settings.embedding_model)
        return OpenAIEmbedder(
            model=settings.embedding_model,
            api_key=settings.openai_api_key,
            dimensions=settings.embedding_dimensions,
        )

    raise ValueError(f"Unsupported embedding provider: {settings.embedding_provider!r}")
