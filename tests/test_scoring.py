"""Tests for guidance credibility scoring."""

from datetime import date

import pytest

from guidance_credibility.guidance.periods import PeriodResolver
from guidance_credibility.models import GuidanceStatement, LanguageMetrics
from guidance_credibility.scoring import (
    ScoringEngine,
    badge_for,
    language_risk,
    pair_sort_key,
    relative_error,
    round_half_up,
    score_pairs,
    stddev,
)
from guidance_credibility.store.repository import GuidancePair, Repository


def pair(fy, fp, mid, actual, period_id=1, period_end=None) -> GuidancePair:
    return GuidancePair(
        period_id=period_id,
        fy=fy,
        fp=fp,
        period_end=period_end,
        metric="revenue",
        guided_mid=mid,
        actual_value=actual,
    )


def metrics(hedges: float, uncertainty: float) -> LanguageMetrics:
    return LanguageMetrics(
        words_total=1000,
        hedges_per_k=hedges,
        negations_per_k=0.0,
        uncertainty_per_k=uncertainty,
        vague_per_k=0.0,
    )


class TestFormulas:
    """Tests for the individual scoring formulas."""

    def test_relative_error(self):
        """Test relative error and its cap at 0.5."""
        assert relative_error(500, 510) == pytest.approx(0.02)
        assert relative_error(500, 2000) == 0.5

    def test_population_stddev(self):
        """Test the population standard deviation."""
        assert stddev([]) == 0.0
        assert stddev([0.1, 0.3]) == pytest.approx(0.1)

    def test_language_risk(self):
        """Test the language risk penalty and its floor."""
        assert language_risk(None) == 100.0
        assert language_risk(metrics(20.0, 5.0)) == 85.0
        assert language_risk(metrics(300.0, 0.0)) == 0.0

    @pytest.mark.parametrize("gci, badge", [(82, "High"), (80, "High"), (65, "Medium"), (60, "Medium"), (40, "Low")])
    def test_badges(self, gci: float, badge: str):
        """Test badge thresholds."""
        assert badge_for(gci) == badge

    def test_round_half_up(self):
        """Test that halves round up rather than to even."""
        assert round_half_up(97.5) == 98
        assert round_half_up(96.5) == 97
        assert round_half_up(96.49) == 96


class TestScorePairs:
    """Tests for score_pairs."""

    def test_single_pair(self):
        """Test the sub-scores of a single scored pair."""
        breakdown = score_pairs([pair(2025, "Q2", 500.0, 510.0)], None)

        assert breakdown.tra == pytest.approx(98.0)
        assert breakdown.cvp == pytest.approx(100.0)
        assert breakdown.lr == 100.0
        assert breakdown.gci == pytest.approx(0.5 * 98 + 0.2 * 100 + 0.3 * 100)
        assert breakdown.badge == "High"

    def test_no_usable_pairs(self):
        """Test that zero and missing midpoints are skipped."""
        breakdown = score_pairs([pair(2025, "Q2", 0.0, 510.0), pair(2025, "Q3", None, 1.0)], None)

        assert breakdown.tra == 0.0
        assert breakdown.cvp == 100.0
        assert breakdown.gci == pytest.approx(50.0)
        assert breakdown.badge == "Low"

    def test_only_four_most_recent_periods_scored(self):
        """Test that only the four most recent periods are scored."""
        pairs = [
            pair(2024, "Q1", 100.0, 150.0, period_id=1),
            pair(2024, "Q2", 100.0, 100.0, period_id=2),
            pair(2024, "Q3", 100.0, 100.0, period_id=3),
            pair(2024, "Q4", 100.0, 100.0, period_id=4),
            pair(2025, "Q1", 100.0, 100.0, period_id=5),
        ]
        breakdown = score_pairs(pairs, None)

        assert [(p.fy, p.fp) for p in breakdown.periods] == [
            (2025, "Q1"),
            (2024, "Q4"),
            (2024, "Q3"),
            (2024, "Q2"),
        ]
        assert breakdown.tra == pytest.approx(100.0)
        assert [p.period_id for p in breakdown.periods] == [5, 4, 3, 2]

    def test_ordering_is_explicit(self):
        """Test the most-recent-first sort key."""
        pairs = [
            pair(None, None, 1, 1, period_id=9),
            pair(2025, "FY", 1, 1, period_id=1),
            pair(2025, "Q4", 1, 1, period_id=2),
            pair(2025, "Q4", 1, 1, period_id=3, period_end=date(2025, 6, 30)),
            pair(2026, None, 1, 1, period_id=4),
        ]
        ordered = sorted(pairs, key=pair_sort_key, reverse=True)

        assert [p.period_id for p in ordered] == [4, 1, 3, 2, 9]

    def test_deterministic(self):
        """Test that input order does not change the scores."""
        pairs = [pair(2025, "Q1", 100.0, 103.0), pair(2025, "Q2", 200.0, 190.0, period_id=2)]
        first = score_pairs(pairs, metrics(10.0, 4.0))
        second = score_pairs(list(reversed(pairs)), metrics(10.0, 4.0))

        assert (first.tra, first.cvp, first.lr, first.gci) == (second.tra, second.cvp, second.lr, second.gci)


def guidance(low: float, high: float, segment: str | None = None) -> GuidanceStatement:
    return GuidanceStatement(
        metric="revenue",
        min_value=low,
        max_value=high,
        units="USD_M",
        basis="unknown",
        extracted_text="We expect revenue ...",
        segment=segment,
    )


class TestScoringEngine:
    """Tests for ScoringEngine.compute_all."""

    def _seed(self, repository: Repository, company_id: int) -> int:
        resolver = PeriodResolver(repository)
        older = resolver.resolve(company_id, 2025, "Q1")
        latest = resolver.resolve(company_id, 2025, "Q2")
        repository.add_guidance(older, [guidance(490, 510)])
        repository.upsert_actual(older, "revenue", 510.0, "USD_M")
        repository.add_guidance(latest, [guidance(990, 1010), guidance(10, 20, "Intelligent Cloud")])
        repository.upsert_actual(latest, "revenue", 1000.0, "USD_M")
        return latest

    def test_scores_and_persists_against_latest_period(self, repository: Repository, company_id: int):
        """Test that the card is scored and stored against the latest period."""
        latest = self._seed(repository, company_id)

        cards = ScoringEngine(repository).compute_all()

        assert len(cards) == 1
        card = cards[0]
        assert card.ticker == "MSFT"
        assert (card.fy, card.fp, card.period_id) == (2025, "Q2", latest)
        # errors 0.0 and 0.02: TRA 99, CVP 90, LR 100, GCI 97.5 rounds up
        assert (card.tra, card.cvp, card.lr) == (99, 90, 100)
        assert card.gci == 98
        assert card.badge == "High"
        assert card.rationale == "Auto-computed based on guidance vs actuals and language metrics."

        stored = repository.list_scores()
        assert [(s.ticker, s.gci, s.period_id) for s in stored] == [("MSFT", 98, latest)]

    def test_rescoring_is_idempotent(self, repository: Repository, company_id: int):
        """Test that scoring twice keeps one score row."""
        self._seed(repository, company_id)
        engine = ScoringEngine(repository)

        first = engine.compute_all()
        second = engine.compute_all()

        assert [c.to_dict() for c in first] == [c.to_dict() for c in second]
        assert len(repository.list_scores()) == 1

    def test_language_metrics_lower_the_score(self, repository: Repository, company_id: int):
        """Test that stored language metrics lower LR."""
        self._seed(repository, company_id)
        period_id = PeriodResolver(repository).resolve(company_id, None, "FY")
        repository.add_language_metrics(period_id, metrics(40.0, 10.0))

        card = ScoringEngine(repository).compute_all()[0]

        assert card.lr == 70

    def test_company_without_pairs_is_not_scored(self, repository: Repository, company_id: int):
        """Test that guidance without actuals produces no card."""
        period_id = PeriodResolver(repository).resolve(company_id, 2025, "Q1")
        repository.add_guidance(period_id, [guidance(490, 510)])

        assert ScoringEngine(repository).compute_all() == []

    def test_skipped_latest_period_does_not_label_the_card(self, repository: Repository, company_id: int):
        """Test that period, fy and fp all come from the latest scored period."""
        scored = self._seed(repository, company_id)
        unscored = PeriodResolver(repository).resolve(company_id, 2025, "Q3")
        repository.add_guidance(unscored, [guidance(0, 0)])
        repository.upsert_actual(unscored, "revenue", 1000.0, "USD_M")

        card = ScoringEngine(repository).compute_all()[0]

        assert (card.fy, card.fp, card.period_id) == (2025, "Q2", scored)
        assert repository.list_scores()[0].period_id == scored
