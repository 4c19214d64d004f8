# src/recovery/models.py — v1
"""Recovery domain models: RecoveryMethod, StageAttempt, RecoveryResult."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class RecoveryMethod(str, Enum):
    """Ladder stage that produced (or failed to produce) the data."""

    DIRECT = "direct"
    SYNTACTIC_CLEANUP = "syntactic_cleanup"
    STRUCTURAL_REPAIR = "structural_repair"
    ASSISTED_REPAIR = "assisted_repair"
    ASSISTED_EXTRACTION = "assisted_extraction"
    FAILED = "failed"


class StageAttempt(BaseModel):
    """One strategy run: outcome and failure reason."""

    method: RecoveryMethod
    success: bool
    skipped: bool = False
    error: str | None = None
    latency_ms: float = 0.0


class RecoveryResult(BaseModel):
    """Outcome of the recovery ladder.

    Low-confidence results are returned as-is; callers decide whether the
    confidence is good enough.
    """

    success: bool
    parsed_data: Any = None
    method: RecoveryMethod
    confidence: float = Field(ge=0.0, le=1.0)
    original_error: str | None = None
    attempts: list[StageAttempt] = Field(default_factory=list)
    defaulted_fields: list[str] = Field(default_factory=list)
