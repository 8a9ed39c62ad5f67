"""
Alignment of guided metrics with reported actuals.

Actuals come from the XBRL company-concept API. For each stored
(period, metric) that carries guidance, the reported value of the same
fiscal year and period is picked and upserted next to it.
"""

from datetime import date

from guidance_credibility.errors import ParseFailureError, UpstreamUnavailableError
from guidance_credibility.guidance.periods import PeriodResolver
from guidance_credibility.models import (
    EPS_DILUTED,
    PER_SHARE,
    REVENUE,
    USD_MILLIONS,
)
from guidance_credibility.sources.sec_edgar.client import SecClient
from guidance_credibility.store.orm import Company
from guidance_credibility.store.repository import Repository

# Tags are tried in order; the first one that yields a value wins
METRIC_TAGS: dict[str, tuple[str, ...]] = {
    REVENUE: ("Revenues", "RevenueFromContractWithCustomerExcludingAssessedTax"),
    EPS_DILUTED: ("EarningsPerShareDiluted",),
}

METRIC_UNITS = {REVENUE: USD_MILLIONS, EPS_DILUTED: PER_SHARE}

RECENT_REVENUE_PERIODS = 4


def concept_series(concept: dict | None) -> list[dict]:
    """Reported entries of a company-concept payload (USD or USD per share)."""
    units = concept.get("units") if isinstance(concept, dict) else None
    if not isinstance(units, dict):
        return []
    series = units.get("USD") or units.get("USD/shares") or []
    return [entry for entry in series if isinstance(entry, dict)] if isinstance(series, list) else []


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _chronological_key(entry: dict) -> tuple[str, str]:
    return (entry.get("end") or "", entry.get("filed") or "")


def pick_aligned_value(concept: dict | None, fy: int | None, fp: str | None) -> float | None:
    """
    Pick the reported value for a fiscal year and period.

    A None fy or fp does not constrain the match. Without a match the
    chronologically latest numeric entry (by end date, then filing date)
    is returned.
    """
    series = [entry for entry in concept_series(concept) if _is_number(entry.get("val"))]
    if not series:
        return None

    for entry in series:
        if fy is not None and entry.get("fy") != fy:
            continue
        if fp is not None and str(entry.get("fp") or "").upper() != fp.upper():
            continue
        return entry["val"]

    return max(series, key=_chronological_key)["val"]


def scale_value(metric: str, value: float) -> float:
    """Convert a reported value to the metric's canonical units."""
    if metric == REVENUE:
        return round(value / 1_000_000, 2)
    return value


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


class ActualsAligner:
    """
    Fetches and stores actuals for the guided periods of a company.

    This class handles:
    - Mapping metrics to us-gaap tags, with a fallback revenue tag
    - Aligning reported entries to guided fiscal periods
    - Upserting one actual per (period, metric)
    - Mirroring the most recent reported revenue into their own periods
    """

    def __init__(
        self,
        client: SecClient,
        repository: Repository,
        resolver: PeriodResolver,
        verbose: bool = False,
    ):
        """
        Initialize the actuals aligner.

        Args:
            client: SEC client for the company-concept API
            repository: Store holding guidance and actuals
            resolver: Period resolver for mirrored revenue periods
            verbose: Whether to print progress messages
        """
        self.client = client
        self.repository = repository
        self.resolver = resolver
        self.verbose = verbose
        self._concepts: dict[tuple[str, str], dict | None] = {}

    def _log(self, message: str) -> None:
        """Print a message if verbose mode is enabled."""
        if self.verbose:
            print(message)

    def _concept(self, cik: str, tag: str) -> dict | None:
        key = (cik, tag)
        if key not in self._concepts:
            try:
                self._concepts[key] = self.client.get_company_concept(cik, tag)
            except (UpstreamUnavailableError, ParseFailureError) as e:
                self._log(f"  Concept {tag} unavailable: {e}")
                self._concepts[key] = None
        return self._concepts[key]

    def lookup(self, cik: str, metric: str, fy: int | None, fp: str | None) -> tuple[str, float] | None:
        """
        Find the reported value for a metric and period.

        Returns:
            Tuple of (tag, raw value) or None when no tag reports a value
        """
        for tag in METRIC_TAGS.get(metric, ()):
            value = pick_aligned_value(self._concept(cik, tag), fy, fp)
            if value is not None:
                return tag, value
        return None

    def align(self, company: Company) -> int:
        """
        Upsert actuals for every guided (period, metric) of a company.

        Returns:
            Number of actuals written, including mirrored revenue periods
        """
        self._concepts.clear()
        written = 0

        for period_id, fy, fp, metric in self.repository.guidance_pairs(company.id):
            found = self.lookup(company.cik, metric, fy, fp)
            if found is None:
                self._log(f"  No reported {metric} for {fy or '-'} {fp or '-'}")
                continue
            tag, value = found
            self.repository.upsert_actual(
                period_id=period_id,
                metric=metric,
                actual_value=scale_value(metric, value),
                units=METRIC_UNITS[metric],
                source_tag=f"us-gaap:{tag}",
                source_api_url=self.client.concept_url(company.cik, tag),
            )
            written += 1

        written += self.mirror_recent_revenue(company)
        self._log(f"  {written} actuals stored for {company.ticker}")
        return written

    def mirror_recent_revenue(self, company: Company) -> int:
        """Store the most recent reported revenue entries under their own periods."""
        for tag in METRIC_TAGS[REVENUE]:
            series = [
                entry
                for entry in concept_series(self._concept(company.cik, tag))
                if _is_number(entry.get("val"))
            ]
            if series:
                break
        else:
            return 0

        seen: set[tuple] = set()
        written = 0
        for entry in sorted(series, key=_chronological_key, reverse=True):
            key = (entry.get("fy"), entry.get("fp"), entry.get("end"))
            if key in seen:
                continue
            seen.add(key)

            period_id = self.resolver.resolve(
                company.id,
                entry.get("fy"),
                entry.get("fp"),
                _parse_date(entry.get("end")),
            )
            self.repository.upsert_actual(
                period_id=period_id,
                metric=REVENUE,
                actual_value=scale_value(REVENUE, entry["val"]),
                units=USD_MILLIONS,
                source_tag=f"us-gaap:{tag}",
                source_api_url=self.client.concept_url(company.cik, tag),
            )
            written += 1
            if written >= RECENT_REVENUE_PERIODS:
                break

        return written
