# src/pipeline/models.py — v1
"""Pipeline result models returned to callers."""

from __future__ import annotations

from pydantic import BaseModel

from llmpipe.recovery.models import RecoveryResult
from llmpipe.router.models import InvocationResult
from llmpipe.similarity.models import SimilarityScore


class PipelineResult(BaseModel):
    """Provider result plus, when structured output was expected, its recovery."""

    invocation: InvocationResult
    recovery: RecoveryResult | None = None

    @property
    def data(self):
        """Recovered structured data, if any."""
        if self.recovery is None or not self.recovery.success:
            return None
        return self.recovery.parsed_data


class EntityCreationResult(BaseModel):
    """Either an existing near-duplicate or a newly generated entity."""

    duplicate_of: SimilarityScore | None = None
    invocation: InvocationResult | None = None
    recovery: RecoveryResult | None = None
    valid: bool | None = None

    @property
    def is_duplicate(self) -> bool:
        return self.duplicate_of is not None


class BatchItemResult(BaseModel):
    """Outcome of one batch item; failures never abort siblings."""

    index: int
    success: bool
    result: PipelineResult | None = None
    error: str | None = None
    error_type: str | None = None
