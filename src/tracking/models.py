# src/tracking/models.py — v2
"""Tracking domain models: per-provider aggregated call statistics."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ProviderCallStats(BaseModel):
    """Aggregated attempts for one provider (or the synthetic "cache")."""

    provider: str
    attempts: int = 0
    successes: int = 0
    failures: int = 0
    failures_by_kind: dict[str, int] = Field(default_factory=dict)
    total_latency_ms: float = 0.0
    max_latency_ms: float = 0.0

    @property
    def avg_latency_ms(self) -> float:
        return self.total_latency_ms / self.attempts if self.attempts else 0.0

    @property
    def success_rate(self) -> float:
        return self.successes / self.attempts if self.attempts else 0.0


class StatsSummary(BaseModel):
    """Snapshot for health dashboards."""

    total_attempts: int
    cache_hits: int
    providers: list[ProviderCallStats]
