# src/tracking/stats.py — v1
"""Per-provider attempt statistics, fed by the router.

Keeps every attempt for post-run export plus running aggregates.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from llmpipe.router.models import CACHE_PROVIDER, ProviderAttempt
from llmpipe.tracking.models import ProviderCallStats, StatsSummary

logger = logging.getLogger(__name__)


class ProviderStats:
    """Accumulates ProviderAttempt records during a process lifetime."""

    def __init__(self) -> None:
        self._attempts: list[ProviderAttempt] = []
        self._by_provider: dict[str, ProviderCallStats] = {}

    def record(self, attempt: ProviderAttempt) -> None:
        """Add one attempt to the aggregates."""
        self._attempts.append(attempt)
        stats = self._by_provider.setdefault(
            attempt.provider, ProviderCallStats(provider=attempt.provider)
        )
        stats.attempts += 1
        stats.total_latency_ms += attempt.latency_ms
        stats.max_latency_ms = max(stats.max_latency_ms, attempt.latency_ms)
        if attempt.success:
            stats.successes += 1
        else:
            stats.failures += 1
            kind = attempt.error_kind.value
            stats.failures_by_kind[kind] = stats.failures_by_kind.get(kind, 0) + 1

    @property
    def attempts(self) -> list[ProviderAttempt]:
        """All recorded attempts."""
        return list(self._attempts)

    def for_provider(self, provider: str) -> ProviderCallStats | None:
        return self._by_provider.get(provider)

    def summary(self) -> StatsSummary:
        cache = self._by_provider.get(CACHE_PROVIDER)
        return StatsSummary(
            total_attempts=len(self._attempts),
            cache_hits=cache.successes if cache else 0,
            providers=sorted(
                (s.model_copy(deep=True) for s in self._by_provider.values()),
                key=lambda s: s.provider,
            ),
        )

    def reset(self) -> None:
        self._attempts.clear()
        self._by_provider.clear()

    def save(self, path: Path) -> None:
        """Save all attempts to a JSON Lines file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            for attempt in self._attempts:
                f.write(json.dumps(attempt.model_dump(mode="json")) + "\n")
        logger.debug("Saved %d provider attempts to %s", len(self._attempts), path)
