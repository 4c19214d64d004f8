# src/similarity/models.py — v1
"""Similarity domain models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from llmpipe.config.settings import Settings


class MatchType(str, Enum):
    EXACT = "exact"
    FUZZY = "fuzzy"
    PARTIAL = "partial"
    NONE = "none"


class Candidate(BaseModel):
    """A corpus row supplied by the caller."""

    id: str
    description: str
    name: str | None = None


class ComponentScores(BaseModel):
    """Breakdown of an overall score.

    ``lexical`` and ``domain_bonus`` belong to the description comparison.
    ``name`` is None when the query carried no name.
    """

    lexical: float = 0.0
    domain_bonus: float = 0.0
    description: float = 0.0
    name: float | None = None


class SimilarityScore(BaseModel):
    candidate_id: str
    overall_score: float = Field(ge=0.0, le=1.0)
    component_scores: ComponentScores
    match_type: MatchType


@dataclass(frozen=True)
class SimilarityConfig:
    """Tunable weights and acceptance threshold.

    The defaults were tuned by hand on a small corpus and are expected to
    be recalibrated.
    """

    threshold: float = 0.15
    lexical_weight: float = 0.7
    domain_weight: float = 0.3
    description_weight: float = 0.8
    name_weight: float = 0.2
    no_domain_step: float = 0.03
    no_domain_cap: float = 0.05
    domain_ratio_weight: float = 0.6
    overlap_step: float = 0.15
    overlap_cap: float = 0.4
    bonus_cap: float = 0.6
    exact_band: float = 0.9
    fuzzy_band: float = 0.8

    @classmethod
    def from_settings(cls, settings: Settings) -> SimilarityConfig:
        return cls(
            threshold=settings.similarity_threshold,
            lexical_weight=settings.similarity_lexical_weight,
            domain_weight=settings.similarity_domain_weight,
            description_weight=settings.similarity_description_weight,
            name_weight=settings.similarity_name_weight,
        )
