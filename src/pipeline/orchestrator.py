# src/pipeline/orchestrator.py — v2
"""Pipeline orchestrator.

Composes the stages for one call:
  cache → provider chain → cache write → JSON recovery
and, for entity creation, a similarity check against the caller's corpus
before any provider is called.

Batches run through a fixed-size pool; each item is isolated, so one
failure never aborts the others.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Iterable, Sequence

from llmpipe.logging.context import get_context, log_context, new_request_id
from llmpipe.pipeline.models import BatchItemResult, EntityCreationResult, PipelineResult
from llmpipe.recovery.engine import ResponseRecoveryEngine
from llmpipe.recovery.schema import validate_agent_schema
from llmpipe.router.models import InvocationOptions
from llmpipe.similarity.matcher import CorpusLoader, SimilarityMatcher
from llmpipe.similarity.models import Candidate, SimilarityScore

if TYPE_CHECKING:
    from llmpipe.config.settings import Settings
    from llmpipe.router.provider_router import ProviderRouter
    from llmpipe.tracking.stats import ProviderStats

logger = logging.getLogger(__name__)

ENTITY_TASK = "generate_agent"


class Orchestrator:
    """Entry point for consumers of the pipeline.

    Args:
        router: Provider router (owns the response cache).
        recovery: Recovery engine for structured output.
        matcher: Similarity matcher for entity deduplication.
        batch_concurrency: Pool size for invoke_batch.
    """

    def __init__(
        self,
        router: ProviderRouter,
        recovery: ResponseRecoveryEngine | None = None,
        matcher: SimilarityMatcher | None = None,
        batch_concurrency: int = 4,
    ) -> None:
        self._router = router
        self._recovery = recovery or ResponseRecoveryEngine(generator=router)
        self._matcher = matcher or SimilarityMatcher()
        self._batch_concurrency = batch_concurrency

    @property
    def router(self) -> ProviderRouter:
        return self._router

    async def invoke(
        self, prompt: str, options: InvocationOptions | None = None,
    ) -> PipelineResult:
        """Run one prompt through cache, providers and (optionally) recovery.

        Raises:
            AllProvidersFailed: No provider produced text.
        """
        opts = options or InvocationOptions()
        with log_context(request_id=get_context().request_id or new_request_id()):
            invocation = await self._router.invoke(prompt, opts)
            recovery = None
            if opts.expect_json:
                recovery = await self._recovery.recover(invocation.text, opts.schema_hint)
            return PipelineResult(invocation=invocation, recovery=recovery)

    async def create_entity(
        self,
        prompt: str,
        description: str,
        name: str | None = None,
        corpus: Iterable[Candidate] | CorpusLoader | None = None,
        options: InvocationOptions | None = None,
        threshold: float | None = None,
    ) -> EntityCreationResult:
        """Return an existing near-duplicate, or generate a new entity.

        The corpus check runs first; a match means no provider is called.
        """
        with log_context(request_id=get_context().request_id or new_request_id()):
            match = await self._find_duplicate(description, name, corpus, threshold)
            if match is not None:
                logger.info("Reusing existing entity %s instead of generating", match.candidate_id)
                return EntityCreationResult(duplicate_of=match)

            opts = options or InvocationOptions()
            opts = opts.model_copy(update={
                "expect_json": True,
                "task": opts.task or ENTITY_TASK,
            })
            result = await self.invoke(prompt, opts)
            valid = None
            if result.recovery is not None and result.recovery.success and opts.schema_hint is None:
                valid = validate_agent_schema(result.recovery.parsed_data)
                if not valid:
                    logger.warning("Generated entity lacks name, description or code")
            return EntityCreationResult(
                invocation=result.invocation,
                recovery=result.recovery,
                valid=valid,
            )

    async def invoke_batch(
        self,
        prompts: Sequence[str],
        options: InvocationOptions | None = None,
        concurrency: int | None = None,
    ) -> list[BatchItemResult]:
        """Invoke many prompts concurrently; results keep input order."""
        limit = concurrency or self._batch_concurrency
        semaphore = asyncio.Semaphore(limit)
        start = time.monotonic()

        async def run_one(index: int, prompt: str) -> PipelineResult:
            async with semaphore:
                with log_context(request_id=new_request_id()):
                    return await self.invoke(prompt, options)

        tasks = [run_one(i, p) for i, p in enumerate(prompts)]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        results: list[BatchItemResult] = []
        for index, outcome in enumerate(outcomes):
            if isinstance(outcome, BaseException):
                logger.warning("Batch item %d failed: %s", index, outcome)
                results.append(BatchItemResult(
                    index=index,
                    success=False,
                    error=str(outcome) or type(outcome).__name__,
                    error_type=type(outcome).__name__,
                ))
            else:
                results.append(BatchItemResult(index=index, success=True, result=outcome))

        failed = sum(1 for r in results if not r.success)
        logger.info(
            "Batch complete: %d ok, %d failed in %.1fs (concurrency %d)",
            len(results) - failed, failed, time.monotonic() - start, limit,
        )
        return results

    async def _find_duplicate(
        self,
        description: str,
        name: str | None,
        corpus: Iterable[Candidate] | CorpusLoader | None,
        threshold: float | None,
    ) -> SimilarityScore | None:
        if corpus is None:
            return None
        if callable(corpus):
            return await self._matcher.find_best_match_async(description, name, corpus, threshold)
        return self._matcher.find_best_match(description, name, corpus, threshold)


def build_orchestrator(
    settings: Settings, stats: ProviderStats | None = None,
) -> Orchestrator:
    """Wire cache, router, recovery and matcher from settings."""
    from llmpipe.cache.cache_factory import create_response_cache
    from llmpipe.embeddings.embedder_factory import create_embedder
    from llmpipe.router.provider_router import build_router
    from llmpipe.similarity.models import SimilarityConfig

    embedder = create_embedder(settings) if settings.semantic_cache_enabled else None
    cache = create_response_cache(settings, embedder=embedder)
    router = build_router(settings, cache=cache, stats=stats)
    recovery = ResponseRecoveryEngine(
        generator=router if settings.recovery_assisted_enabled else None,
    )
    matcher = SimilarityMatcher(SimilarityConfig.from_settings(settings))
    return Orchestrator(
        router,
        recovery=recovery,
        matcher=matcher,
        batch_concurrency=settings.batch_concurrency,
    )
