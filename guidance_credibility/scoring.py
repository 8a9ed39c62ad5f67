"""
Guidance credibility scoring.

Sub-scores, each on 0-100:
- TRA (track record accuracy): 100 * (1 - mean clamped relative error)
- CVP (consistency): 100 * (1 - min(stddev of errors / 0.1, 1))
- LR (language risk): 100 - (0.5 * hedges/k + 1.0 * uncertainty/k)

GCI = 0.5 * TRA + 0.2 * CVP + 0.3 * LR, badged High (>= 80),
Medium (>= 60) or Low.
"""

import math
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

from guidance_credibility.models import LanguageMetrics, ScoreCard
from guidance_credibility.store.repository import GuidancePair, Repository

MAX_ERROR = 0.5
CVP_SCALE = 0.1
SCORED_PERIODS = 4

TRA_WEIGHT = 0.5
CVP_WEIGHT = 0.2
LR_WEIGHT = 0.3

HIGH = "High"
MEDIUM = "Medium"
LOW = "Low"

RATIONALE = "Auto-computed based on guidance vs actuals and language metrics."

# Later periods rank higher; None ranks below every quarter
_FP_RANK = {"FY": 5, "Q4": 4, "Q3": 3, "Q2": 2, "Q1": 1}


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def stddev(values: list[float]) -> float:
    """Population standard deviation; 0 for an empty list."""
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    return math.sqrt(sum((v - mean) ** 2 for v in values) / len(values))


def relative_error(guided_mid: float, actual: float) -> float:
    return clamp(abs(actual - guided_mid) / abs(guided_mid), 0.0, MAX_ERROR)


def track_record_accuracy(errors: list[float]) -> float:
    if not errors:
        return 0.0
    return 100 * (1 - sum(errors) / len(errors))


def consistency(errors: list[float]) -> float:
    return 100 * (1 - min(stddev(errors) / CVP_SCALE, 1))


def language_risk(metrics: LanguageMetrics | None) -> float:
    """LR from hedge and uncertainty rates; no metrics scores 100."""
    if metrics is None:
        return 100.0
    raw = 0.5 * (metrics.hedges_per_k or 0) + 1.0 * (metrics.uncertainty_per_k or 0)
    return clamp(100 - raw, 0.0, 100.0)


def badge_for(gci: float) -> str:
    if gci >= 80:
        return HIGH
    if gci >= 60:
        return MEDIUM
    return LOW


def round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def pair_sort_key(pair: GuidancePair) -> tuple:
    """Most recent first: fy, fp rank, period end, period id (all descending, None last)."""
    return (
        pair.fy is not None,
        pair.fy or 0,
        _FP_RANK.get((pair.fp or "").upper(), 0),
        pair.period_end is not None,
        pair.period_end.toordinal() if pair.period_end else 0,
        pair.period_id,
    )


@dataclass
class PeriodErrors:
    """Errors of one scored (fy, fp) group; period_id is its most recent pair."""

    fy: int | None
    fp: str | None
    period_id: int | None = None
    errors: list[float] = field(default_factory=list)


@dataclass
class ScoreBreakdown:
    """Unrounded sub-scores for one company."""

    tra: float
    cvp: float
    lr: float
    gci: float
    badge: str
    periods: list[PeriodErrors]


def score_pairs(pairs: list[GuidancePair], metrics: LanguageMetrics | None) -> ScoreBreakdown:
    """
    Score a company from its guidance/actual pairs and latest language metrics.

    Pairs are grouped by (fy, fp) in most-recent-first order and the first
    four groups are scored. Pairs without a usable guided midpoint or
    actual are skipped.
    """
    groups: dict[tuple, PeriodErrors] = {}
    for pair in sorted(pairs, key=pair_sort_key, reverse=True):
        if pair.guided_mid is None or pair.actual_value is None or pair.guided_mid == 0:
            continue
        key = (pair.fy, pair.fp)
        group = groups.setdefault(key, PeriodErrors(fy=pair.fy, fp=pair.fp, period_id=pair.period_id))
        group.errors.append(relative_error(pair.guided_mid, pair.actual_value))

    periods = list(groups.values())[:SCORED_PERIODS]
    errors = [e for period in periods for e in period.errors]

    tra = track_record_accuracy(errors)
    cvp = consistency(errors)
    lr = language_risk(metrics)
    gci = TRA_WEIGHT * tra + CVP_WEIGHT * cvp + LR_WEIGHT * lr
    return ScoreBreakdown(tra=tra, cvp=cvp, lr=lr, gci=gci, badge=badge_for(gci), periods=periods)


class ScoringEngine:
    """Computes and persists a score for every company with guidance and actuals."""

    def __init__(self, repository: Repository, verbose: bool = False):
        self.repository = repository
        self.verbose = verbose

    def _log(self, message: str) -> None:
        """Print a message if verbose mode is enabled."""
        if self.verbose:
            print(message)

    def compute_all(self) -> list[ScoreCard]:
        """
        Score every company that has at least one guidance/actual pair.

        Returns:
            ScoreCards in ticker order; each is also upserted against the
            period of the company's most recent scored pair
        """
        cards: list[ScoreCard] = []

        for company in self.repository.companies_with_pairs():
            pairs = self.repository.guidance_with_actuals(company.id)
            if not pairs:
                continue

            breakdown = score_pairs(pairs, self.repository.latest_language_metrics(company.id))
            # Label and period come from the same pair: the newest scored one,
            # or the newest pair overall when none was usable
            if breakdown.periods:
                anchor = breakdown.periods[0]
            else:
                newest = max(pairs, key=pair_sort_key)
                anchor = PeriodErrors(fy=newest.fy, fp=newest.fp, period_id=newest.period_id)

            card = ScoreCard(
                ticker=company.ticker,
                period_id=anchor.period_id,
                fy=anchor.fy,
                fp=anchor.fp,
                tra=round_half_up(breakdown.tra),
                cvp=round_half_up(breakdown.cvp),
                lr=round_half_up(breakdown.lr),
                gci=round_half_up(breakdown.gci),
                badge=breakdown.badge,
                rationale=RATIONALE,
            )
            self.repository.upsert_score(
                period_id=card.period_id,
                tra=card.tra,
                cvp=card.cvp,
                lr=card.lr,
                gci=card.gci,
                badge=card.badge,
                rationale=card.rationale,
            )
            self._log(f"  {card.ticker}: GCI {card.gci} ({card.badge})")
            cards.append(card)

        return cards
