# src/router/provider_router.py — v1
"""Ordered fallback over LLM providers.

The router is an explicit value: build it once with its provider slots and
optional ResponseCache, then pass it to every caller. Providers are tried
strictly in sequence; the first success ends the invocation. Every attempt,
failed or not, is appended to the fallback chain.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Iterable

from llmpipe.core.errors import AllProvidersFailed, ProviderError, ProviderUnavailable
from llmpipe.llm.failure_classifier import classify_error
from llmpipe.llm.models import LLMResponse, Message
from llmpipe.logging.context import log_context
from llmpipe.router.models import (
    CACHE_PROVIDER,
    CacheKind,
    ErrorKind,
    InvocationOptions,
    InvocationResult,
    ProviderAttempt,
    ProviderSlot,
    TokenUsage,
)

if TYPE_CHECKING:
    from llmpipe.cache.response_cache import ResponseCache
    from llmpipe.config.settings import Settings
    from llmpipe.tracking.stats import ProviderStats

logger = logging.getLogger(__name__)


class ProviderRouter:
    """Sequential provider fallback with exact and semantic cache in front."""

    def __init__(
        self,
        slots: Iterable[ProviderSlot],
        cache: ResponseCache | None = None,
        stats: ProviderStats | None = None,
        semantic_excluded_tasks: Iterable[str] = (),
        default_max_tokens: int = 4096,
        default_temperature: float = 0.2,
    ) -> None:
        self._slots = list(slots)
        self._cache = cache
        self._stats = stats
        self._semantic_excluded = {t.lower() for t in semantic_excluded_tasks}
        self._default_max_tokens = default_max_tokens
        self._default_temperature = default_temperature

    @property
    def providers(self) -> list[str]:
        """Provider names in priority order."""
        return [s.name for s in self._slots]

    @property
    def cache(self) -> ResponseCache | None:
        return self._cache

    async def invoke(
        self, prompt: str, options: InvocationOptions | None = None,
    ) -> InvocationResult:
        """Run the prompt through cache and then the provider chain.

        Raises:
            AllProvidersFailed: Every provider was attempted and failed.
            asyncio.CancelledError: Propagated as-is; remaining providers
                are skipped.
        """
        opts = options or InvocationOptions()
        allow_semantic = self._semantic_allowed(opts)

        if self._cache is not None and not opts.skip_cache:
            cached = await self._from_cache(prompt, allow_semantic)
            if cached is not None:
                return cached

        chain: list[ProviderAttempt] = []
        for slot in self._ordered_slots(opts.provider):
            with log_context(provider=slot.name):
                response = await self._attempt(slot, prompt, opts, chain)
            if response is None:
                continue

            result = InvocationResult(
                text=response.content,
                provider=slot.name,
                model=response.model or slot.model,
                token_usage=TokenUsage(
                    prompt=response.input_tokens,
                    completion=response.output_tokens,
                    total=response.total_tokens,
                ),
                latency_ms=chain[-1].latency_ms,
                fallback_chain=chain,
            )
            if chain[0].provider != slot.name:
                logger.info(
                    "Provider %s succeeded after %d failed attempt(s)",
                    slot.name, len(chain) - 1,
                )
            await self._write_cache(prompt, result, opts.result_type)
            return result

        error = AllProvidersFailed(chain)
        logger.error("%s", error)
        raise error

    # --- Internals ---

    def _semantic_allowed(self, opts: InvocationOptions) -> bool:
        if not opts.allow_semantic_cache:
            return False
        return (opts.task or "").lower() not in self._semantic_excluded

    def _ordered_slots(self, preferred: str | None) -> list[ProviderSlot]:
        """Move the preferred provider (if configured) to the head."""
        if not preferred:
            return list(self._slots)
        head = [s for s in self._slots if s.name == preferred]
        if not head:
            logger.warning("Preferred provider %r is not in the chain", preferred)
        return head + [s for s in self._slots if s.name != preferred]

    async def _attempt(
        self,
        slot: ProviderSlot,
        prompt: str,
        opts: InvocationOptions,
        chain: list[ProviderAttempt],
    ) -> LLMResponse | None:
        """Call one provider; append its attempt; return the response on success."""
        start = time.monotonic()
        try:
            if not slot.client.is_configured:
                raise ProviderUnavailable(slot.name, "provider is not configured")
            response = await asyncio.wait_for(
                slot.client.complete(
                    messages=[Message.user(prompt)],
                    system=opts.system,
                    max_tokens=opts.max_tokens or self._default_max_tokens,
                    temperature=(
                        self._default_temperature
                        if opts.temperature is None else opts.temperature
                    ),
                    response_format=opts.response_format,
                ),
                timeout=slot.timeout_s,
            )
            if response.blank:
                raise ProviderError(slot.name, "No response from provider")
        except asyncio.CancelledError:
            raise
        except asyncio.TimeoutError:
            self._record(chain, ProviderAttempt(
                provider=slot.name,
                model=slot.model,
                success=False,
                error_kind=ErrorKind.TRANSPORT,
                error_message=f"timed out after {slot.timeout_s:.1f}s",
                latency_ms=_elapsed_ms(start),
            ))
            logger.warning("Provider %s timed out after %.1fs", slot.name, slot.timeout_s)
            return None
        except Exception as e:
            kind = classify_error(e)
            self._record(chain, ProviderAttempt(
                provider=slot.name,
                model=slot.model,
                success=False,
                error_kind=kind,
                error_message=f"{type(e).__name__}: {e}",
                latency_ms=_elapsed_ms(start),
            ))
            logger.warning("Provider %s failed (%s): %s", slot.name, kind.value, e)
            return None

        self._record(chain, ProviderAttempt(
            provider=slot.name,
            model=response.model or slot.model,
            success=True,
            latency_ms=_elapsed_ms(start),
        ))
        logger.debug(
            "Provider %s answered in %.0fms (%d tokens)",
            slot.name, chain[-1].latency_ms, response.total_tokens,
        )
        return response

    def _record(self, chain: list[ProviderAttempt], attempt: ProviderAttempt) -> None:
        chain.append(attempt)
        if self._stats is not None:
            self._stats.record(attempt)

    async def _from_cache(
        self, prompt: str, allow_semantic: bool,
    ) -> InvocationResult | None:
        assert self._cache is not None
        start = time.monotonic()
        try:
            lookup = await self._cache.lookup(prompt, allow_semantic=allow_semantic)
        except Exception as e:
            logger.warning("Cache lookup failed, continuing without cache: %s", e)
            return None
        if lookup.entry is None or lookup.hit_level is None:
            return None

        latency = _elapsed_ms(start)
        kind = CacheKind(lookup.hit_level)
        attempt = ProviderAttempt(
            provider=CACHE_PROVIDER, success=True, latency_ms=latency,
        )
        if self._stats is not None:
            self._stats.record(attempt)
        logger.info(
            "Cache hit (%s, similarity=%.3f)",
            kind.value, lookup.similarity_score or 0.0,
        )
        return lookup.entry.value.model_copy(update={
            "from_cache": True,
            "cache_kind": kind,
            "latency_ms": latency,
            "fallback_chain": [attempt],
        })

    async def _write_cache(
        self, prompt: str, result: InvocationResult, result_type: str,
    ) -> None:
        if self._cache is None:
            return
        try:
            await self._cache.store(prompt, result, result_type=result_type)
        except Exception as e:
            logger.warning("Cache write failed (result still returned): %s", e)


def _elapsed_ms(start: float) -> float:
    return round((time.monotonic() - start) * 1000, 3)


def build_router(
    settings: Settings,
    cache: ResponseCache | None = None,
    stats: ProviderStats | None = None,
) -> ProviderRouter:
    """Build a router whose chain comes from LLM_PROVIDER_CHAIN."""
    from llmpipe.llm.client_factory import create_llm_client
    from llmpipe.llm.config import resolve_chain

    slots = [
        ProviderSlot(
            name=a.provider,
            client=create_llm_client(a.provider, a.model, settings),
            model=a.model,
            timeout_s=a.timeout_s,
        )
        for a in resolve_chain(settings)
    ]
    logger.info("Provider chain: %s", " → ".join(s.name for s in slots))
    return ProviderRouter(
        slots,
        cache=cache,
        stats=stats,
        semantic_excluded_tasks=settings.semantic_cache_excluded_tasks_list,
        default_max_tokens=settings.llm_max_tokens,
        default_temperature=settings.llm_default_temperature,
    )
