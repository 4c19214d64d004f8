# src/core/errors.py — v1
"""Error taxonomy for the invocation pipeline.

Per-provider and per-strategy errors are caught and recorded by the router
and the recovery engine; only the aggregate errors (AllProvidersFailed,
RecoveryFailed) reach callers, always carrying the full diagnostic chain.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from llmpipe.recovery.models import StageAttempt
    from llmpipe.router.models import ProviderAttempt


class PipelineError(Exception):
    """Base class for all llmpipe errors."""


class ConfigurationError(PipelineError):
    """Raised when configuration is internally inconsistent."""


class ProviderError(PipelineError):
    """A single provider call failed."""

    error_kind = "unknown"

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        super().__init__(f"{provider}: {message}")


class ProviderUnavailable(ProviderError):
    """Provider is missing credentials or configuration (skip, don't retry)."""


class ProviderQuotaExceeded(ProviderError):
    """Provider rejected the call for quota, billing or rate-limit reasons."""

    error_kind = "quota"


class ProviderTransportError(ProviderError):
    """Network, timeout or upstream server failure."""

    error_kind = "transport"


class AllProvidersFailed(PipelineError):
    """Every configured provider was attempted and none succeeded."""

    def __init__(self, fallback_chain: list[ProviderAttempt]) -> None:
        self.fallback_chain = list(fallback_chain)
        summary = ", ".join(
            f"{a.provider}={a.error_kind.value}" for a in self.fallback_chain
        ) or "no providers configured"
        super().__init__(
            f"All {len(self.fallback_chain)} LLM providers failed ({summary})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Structured error object for API responses."""
        return {
            "error": "all_providers_failed",
            "message": str(self),
            "fallback_chain": [a.model_dump(mode="json") for a in self.fallback_chain],
        }


class RecoveryFailed(PipelineError):
    """Every recovery strategy failed to produce structured data."""

    def __init__(self, attempts: list[StageAttempt], last_error: str | None) -> None:
        self.attempts = list(attempts)
        self.last_error = last_error
        super().__init__(
            f"JSON recovery failed after {len(self.attempts)} strategies: {last_error}"
        )

    def to_dict(self) -> dict[str, Any]:
        """Structured error object for API responses."""
        return {
            "error": "recovery_failed",
            "message": str(self),
            "attempts": [a.model_dump(mode="json") for a in self.attempts],
        }


class SimilarityLookupFailed(PipelineError):
    """The corpus could not be fetched; callers degrade to 'no match'."""
