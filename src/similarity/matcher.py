# src/similarity/matcher.py — v2
"""Near-duplicate detection of a new entity request against a corpus.

Text similarity is Jaccard over meaningful words plus a domain bonus:

    text = lexical_weight * jaccard + domain_weight * bonus

where the bonus is small (at most 0.05) unless both texts share a keyword
domain. The overall score is
``description_weight * description + name_weight * name``, with the name
term 0 when the query has no name.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable

from llmpipe.core.errors import SimilarityLookupFailed
from llmpipe.similarity.domains import DOMAIN_TERMS, STOP_WORDS, domains_of
from llmpipe.similarity.models import (
    Candidate,
    ComponentScores,
    MatchType,
    SimilarityConfig,
    SimilarityScore,
)

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9]")

CorpusLoader = Callable[[], Awaitable[Iterable[Candidate]]]


@dataclass(frozen=True)
class TextSimilarity:
    score: float
    lexical: float
    domain_bonus: float


class SimilarityMatcher:
    """Scores candidates and picks the best one above threshold."""

    def __init__(
        self,
        config: SimilarityConfig | None = None,
        domains: dict[str, tuple[str, ...]] | None = None,
        stop_words: frozenset[str] | None = None,
    ) -> None:
        self._config = config or SimilarityConfig()
        self._domains = DOMAIN_TERMS if domains is None else domains
        self._stop_words = STOP_WORDS if stop_words is None else stop_words

    @property
    def config(self) -> SimilarityConfig:
        return self._config

    def meaningful_words(self, text: str) -> set[str]:
        """Lowercased words longer than two characters, minus stop words."""
        words: set[str] = set()
        for raw in text.lower().split():
            if len(raw) <= 2 or raw in self._stop_words:
                continue
            word = _NON_ALNUM.sub("", raw)
            if len(word) > 2:
                words.add(word)
        return words

    def compare(self, text_a: str, text_b: str) -> TextSimilarity:
        """Domain-aware similarity of two texts, in [0, 1]."""
        a = text_a.lower()
        b = text_b.lower()
        if not a or not b:
            return TextSimilarity(0.0, 0.0, 0.0)
        if a == b:
            return TextSimilarity(1.0, 1.0, 0.0)

        words_a = self.meaningful_words(a)
        words_b = self.meaningful_words(b)
        if not words_a or not words_b:
            return TextSimilarity(0.0, 0.0, 0.0)

        overlap = words_a & words_b
        lexical = len(overlap) / len(words_a | words_b)
        bonus = self._domain_bonus(a, b, len(overlap))
        cfg = self._config
        score = cfg.lexical_weight * lexical + cfg.domain_weight * bonus
        return TextSimilarity(_clamp(score), lexical, bonus)

    def score(
        self,
        query_text: str,
        query_name: str | None,
        candidate: Candidate,
        threshold: float | None = None,
    ) -> SimilarityScore:
        """Score one candidate against the query.

        A missing query name contributes 0 to the name share, so an identical
        description alone tops out at ``description_weight``.
        """
        cfg = self._config
        desc = self.compare(query_text, candidate.description)
        name_score: float | None = None
        if query_name:
            name_score = self.compare(query_name, candidate.name or "").score
        overall = _clamp(
            cfg.description_weight * desc.score + cfg.name_weight * (name_score or 0.0)
        )
        return SimilarityScore(
            candidate_id=candidate.id,
            overall_score=overall,
            component_scores=ComponentScores(
                lexical=desc.lexical,
                domain_bonus=desc.domain_bonus,
                description=desc.score,
                name=name_score,
            ),
            match_type=self._match_type(
                overall, cfg.threshold if threshold is None else threshold,
            ),
        )

    def rank(
        self,
        query_text: str,
        query_name: str | None,
        candidates: Iterable[Candidate],
        limit: int | None = 5,
        threshold: float | None = None,
    ) -> list[SimilarityScore]:
        """All candidates scored, best first (stable for ties)."""
        scores = [self.score(query_text, query_name, c, threshold) for c in candidates]
        scores.sort(key=lambda s: s.overall_score, reverse=True)
        return scores if limit is None else scores[:limit]

    def find_best_match(
        self,
        query_text: str,
        query_name: str | None,
        candidates: Iterable[Candidate],
        threshold: float | None = None,
    ) -> SimilarityScore | None:
        """Best candidate if its overall score reaches the threshold, else None.

        An empty corpus and a corpus with only weak matches give the same
        answer.
        """
        limit = self._config.threshold if threshold is None else threshold
        ranked = self.rank(query_text, query_name, candidates, limit=None, threshold=limit)
        if not ranked:
            logger.debug("Similarity check against empty corpus")
            return None

        logger.debug(
            "Top similarity scores",
            extra={"data": {
                "threshold": limit,
                "top": [
                    {"id": s.candidate_id, "score": round(s.overall_score, 4)}
                    for s in ranked[:5]
                ],
            }},
        )
        best = ranked[0]
        if best.overall_score >= limit:
            logger.info(
                "Similar entity found: %s (score %.3f, %s)",
                best.candidate_id, best.overall_score, best.match_type.value,
            )
            return best
        logger.debug("No candidate reaches threshold %.2f (best %.3f)", limit, best.overall_score)
        return None

    async def find_best_match_async(
        self,
        query_text: str,
        query_name: str | None,
        corpus_loader: CorpusLoader,
        threshold: float | None = None,
    ) -> SimilarityScore | None:
        """Fetch the corpus, then match. A failed fetch degrades to None."""
        try:
            candidates = await self._load(corpus_loader)
        except SimilarityLookupFailed as e:
            logger.warning("Similarity check skipped: %s", e)
            return None
        return self.find_best_match(query_text, query_name, candidates, threshold)

    @staticmethod
    async def _load(corpus_loader: CorpusLoader) -> list[Candidate]:
        try:
            return list(await corpus_loader())
        except Exception as e:
            raise SimilarityLookupFailed(f"corpus fetch failed: {e}") from e

    def _domain_bonus(self, a: str, b: str, overlap: int) -> float:
        cfg = self._config
        shared = domains_of(a, self._domains) & domains_of(b, self._domains)
        common = [self._domains[name] for name in sorted(shared)]
        if not common:
            return min(overlap * cfg.no_domain_step, cfg.no_domain_cap)

        total = sum(len(terms) for terms in common)
        matched = sum(1 for terms in common for t in terms if t in a and t in b)
        ratio = matched / total if total else 0.0
        overlap_bonus = min(overlap * cfg.overlap_step, cfg.overlap_cap) if overlap else 0.0
        return min(ratio * cfg.domain_ratio_weight + overlap_bonus, cfg.bonus_cap)

    def _match_type(self, overall: float, threshold: float) -> MatchType:
        if overall < threshold or overall <= 0.0:
            return MatchType.NONE
        if overall > self._config.exact_band:
            return MatchType.EXACT
        if overall > self._config.fuzzy_band:
            return MatchType.FUZZY
        return MatchType.PARTIAL


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))
