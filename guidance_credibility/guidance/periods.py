"""
Fiscal period inference and resolution.

infer_period reads the fiscal year and period a guidance snippet talks
about. PeriodResolver maps a (company, fy, fp, period_end) key to a stored
period, creating it on first sight.
"""

import re
from datetime import date

from guidance_credibility.store.orm import Period
from guidance_credibility.store.repository import Repository

_FY_PATTERNS = (
    re.compile(r"\bFY\s*'?(\d{4})\b", re.IGNORECASE),
    re.compile(r"\bfiscal\s+(?:year\s+)?(\d{4})\b", re.IGNORECASE),
)
_FP_PATTERN = re.compile(r"\b(Q[1-4]|FY)(?![A-Za-z])", re.IGNORECASE)
_ORDINAL_QUARTER = re.compile(r"\b(first|second|third|fourth)\s+(?:fiscal\s+)?quarter\b", re.IGNORECASE)
_ORDINALS = {"first": "Q1", "second": "Q2", "third": "Q3", "fourth": "Q4"}

_URL_FIELDS = ("source_filing_url", "source_exhibit_url", "transcript_url")


def infer_period(snippet: str) -> tuple[int | None, str | None]:
    """
    Infer (fy, fp) from a guidance snippet.

    Returns:
        Tuple of (fiscal year or None, "Q1".."Q4"/"FY" or None)
    """
    fy = None
    for pattern in _FY_PATTERNS:
        match = pattern.search(snippet)
        if match:
            fy = int(match.group(1))
            break

    fp = None
    match = _FP_PATTERN.search(snippet)
    if match:
        fp = match.group(1).upper()
    else:
        match = _ORDINAL_QUARTER.search(snippet)
        if match:
            fp = _ORDINALS[match.group(1).lower()]

    return fy, fp


class PeriodResolver:
    """Finds or creates periods by their identity key."""

    def __init__(self, repository: Repository, verbose: bool = False):
        self.repository = repository
        self.verbose = verbose

    def _log(self, message: str) -> None:
        """Print a message if verbose mode is enabled."""
        if self.verbose:
            print(message)

    def resolve(
        self,
        company_id: int,
        fy: int | None,
        fp: str | None,
        period_end: date | None = None,
        *,
        source_filing_url: str | None = None,
        source_exhibit_url: str | None = None,
        transcript_url: str | None = None,
    ) -> int:
        """
        Return the id of the period matching the key, creating it if needed.

        On a match only empty URL fields are filled in; URLs already stored
        are never replaced or cleared.
        """
        urls = {
            "source_filing_url": source_filing_url,
            "source_exhibit_url": source_exhibit_url,
            "transcript_url": transcript_url,
        }

        with self.repository.session() as session:
            period = self.repository.find_period(session, company_id, fy, fp, period_end)
            if period is None:
                period = Period(company_id=company_id, fy=fy, fp=fp, period_end=period_end, **urls)
                session.add(period)
                session.flush()
                self._log(f"  New period {fy or '-'} {fp or '-'} (id={period.id})")
                return period.id

            for field_name in _URL_FIELDS:
                if urls[field_name] and not getattr(period, field_name):
                    setattr(period, field_name, urls[field_name])
            return period.id
