# tests/unit/similarity/test_unit_matcher.py — v2
"""Tests for similarity/matcher.py — near-duplicate entity detection."""

from __future__ import annotations

import pytest

from llmpipe.similarity.domains import domains_of
from llmpipe.similarity.matcher import SimilarityMatcher
from llmpipe.similarity.models import Candidate, MatchType, SimilarityConfig


@pytest.fixture
def matcher() -> SimilarityMatcher:
    return SimilarityMatcher()


class TestCompare:
    def test_identical_texts(self, matcher):
        assert matcher.compare("Play my Spotify playlist", "play my spotify playlist").score == 1.0

    def test_empty_text_scores_zero(self, matcher):
        assert matcher.compare("", "anything").score == 0.0

    def test_only_stop_words_scores_zero(self, matcher):
        assert matcher.compare("the and of", "weather forecast").score == 0.0

    def test_unrelated_domains(self, matcher):
        sim = matcher.compare("weather forecast app", "send email reminders")
        assert sim.lexical == 0.0
        assert sim.score == 0.0

    def test_shared_domain_adds_bonus(self, matcher):
        sim = matcher.compare("weather forecast app", "check tomorrow's weather")
        assert sim.lexical == pytest.approx(0.2)
        assert sim.domain_bonus == pytest.approx(1 / 7 * 0.6 + 0.15)
        assert sim.score == pytest.approx(0.7 * 0.2 + 0.3 * (1 / 7 * 0.6 + 0.15))

    def test_custom_domains_drive_bonus(self):
        matcher = SimilarityMatcher(domains={"colors": ("blue", "green")})
        sim = matcher.compare("blue green yellow", "blue green yellow purple")
        # both color terms shared: ratio 1.0, overlap bonus capped
        assert sim.domain_bonus == pytest.approx(0.6)

    def test_overlap_without_domain_is_capped(self, matcher):
        sim = matcher.compare("blue green yellow", "blue green yellow purple")
        assert sim.lexical == pytest.approx(0.75)
        assert sim.domain_bonus == pytest.approx(0.05)

    def test_meaningful_words(self, matcher):
        assert matcher.meaningful_words("The Agent reads my e-mail, quickly!") == {
            "reads", "email", "quickly",
        }


class TestFindBestMatch:
    def test_no_match_below_threshold(self, matcher):
        corpus = [Candidate(id="c1", description="send email reminders")]
        assert matcher.find_best_match("weather forecast app", None, corpus) is None

    def test_match_above_threshold(self, matcher):
        corpus = [
            Candidate(id="c1", description="send email reminders"),
            Candidate(id="c2", description="check tomorrow's weather"),
        ]
        best = matcher.find_best_match("weather forecast app", None, corpus)
        assert best is not None
        assert best.candidate_id == "c2"
        assert best.match_type == MatchType.PARTIAL
        assert best.component_scores.name is None
        assert best.overall_score == pytest.approx(0.8 * best.component_scores.description)

    def test_missing_name_counts_as_zero(self, matcher):
        # description alone scores 0.187, weighted down to 0.1499
        corpus = [Candidate(id="c2", description="check tomorrow's weather")]
        scored = matcher.rank("weather forecast app daily", None, corpus)[0]
        assert scored.component_scores.description == pytest.approx(0.18738, abs=1e-4)
        assert scored.overall_score == pytest.approx(0.14990, abs=1e-4)
        assert matcher.find_best_match("weather forecast app daily", None, corpus) is None

    def test_identical_description_without_name(self, matcher):
        corpus = [Candidate(id="c1", description="Weather forecast app")]
        best = matcher.find_best_match("weather forecast app", None, corpus)
        assert best.component_scores.description == 1.0
        assert best.overall_score == pytest.approx(0.8)
        assert best.match_type == MatchType.PARTIAL

    def test_identical_description_and_name_is_exact(self, matcher):
        corpus = [Candidate(id="c1", description="Weather forecast app", name="Forecaster")]
        best = matcher.find_best_match("weather forecast app", "forecaster", corpus)
        assert best.overall_score == 1.0
        assert best.match_type == MatchType.EXACT

    def test_name_weighting(self, matcher):
        corpus = [Candidate(id="c1", description="weather forecast app")]
        best = matcher.find_best_match("weather forecast app", "forecaster", corpus)
        assert best.overall_score == pytest.approx(0.8)
        assert best.component_scores.name == 0.0
        assert best.match_type == MatchType.PARTIAL

    def test_matching_name(self, matcher):
        corpus = [Candidate(id="c1", description="weather forecast app", name="Weather Bot")]
        best = matcher.find_best_match("weather forecast app", "weather bot", corpus)
        assert best.overall_score == 1.0

    def test_empty_corpus(self, matcher):
        assert matcher.find_best_match("anything", None, []) is None

    def test_custom_threshold(self, matcher):
        corpus = [Candidate(id="c2", description="check tomorrow's weather")]
        assert matcher.find_best_match("weather forecast app", None, corpus, threshold=0.5) is None


class TestRank:
    def test_sorted_and_limited(self, matcher):
        corpus = [
            Candidate(id=f"c{i}", description=text)
            for i, text in enumerate([
                "send email reminders",
                "weather forecast app",
                "check tomorrow's weather",
                "backup my documents folder",
                "play a spotify playlist",
                "launch the service at boot",
            ])
        ]
        ranked = matcher.rank("weather forecast app", None, corpus)
        assert len(ranked) == 5
        assert ranked[0].candidate_id == "c1"
        assert ranked[1].candidate_id == "c2"
        scores = [s.overall_score for s in ranked]
        assert scores == sorted(scores, reverse=True)


class TestAsyncLoader:
    @pytest.mark.asyncio
    async def test_loader_failure_degrades_to_no_match(self, matcher):
        async def broken():
            raise ConnectionError("db unreachable")

        assert await matcher.find_best_match_async("weather", None, broken) is None

    @pytest.mark.asyncio
    async def test_loader_success(self, matcher):
        async def loader():
            return [Candidate(id="w", description="weather forecast app")]

        best = await matcher.find_best_match_async("weather forecast app", None, loader)
        assert best.candidate_id == "w"


class TestConfig:
    def test_from_settings(self, settings):
        custom = settings.model_copy(update={"similarity_threshold": 0.4})
        assert SimilarityConfig.from_settings(custom).threshold == 0.4

    def test_domains_of(self):
        assert domains_of("Email me a reminder when it will rain") == {
            "email", "scheduling", "weather",
        }
