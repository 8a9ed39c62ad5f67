"""
Filing discovery from the EDGAR submissions index.

The submissions endpoint returns the company's recent filings as parallel
arrays (form, accessionNumber, primaryDocument, filingDate, ...). This
module zips them into FilingRef objects and selects candidates by form type.
"""

from dataclasses import dataclass, field
from typing import Iterator

from guidance_credibility.errors import ParseFailureError
from guidance_credibility.sources.sec_edgar.client import SecClient

ARCHIVES_URL = "https://www.sec.gov/Archives/edgar/data"


@dataclass
class FilingRef:
    """A single filing listed in the submissions index."""

    cik: str
    accession_number: str
    form: str
    primary_document: str
    filing_date: str
    report_date: str | None = None
    items: list[str] = field(default_factory=list)

    @property
    def base_url(self) -> str:
        return f"{ARCHIVES_URL}/{int(self.cik)}/{self.accession_number.replace('-', '')}"

    @property
    def index_url(self) -> str:
        return f"{self.base_url}/{self.accession_number}-index.htm"

    @property
    def primary_url(self) -> str:
        return f"{self.base_url}/{self.primary_document}"

    @property
    def viewer_url(self) -> str:
        return (
            "https://www.sec.gov/ixviewer/doc?action=display&source="
            f"{self.accession_number}"
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "cik": self.cik,
            "accession_number": self.accession_number,
            "form": self.form,
            "primary_document": self.primary_document,
            "filing_date": self.filing_date,
            "report_date": self.report_date,
            "items": self.items,
        }


def iter_recent_filings(cik: str, submissions: dict) -> Iterator[FilingRef]:
    """
    Zip the parallel arrays of a submissions payload into FilingRefs.

    Raises:
        ParseFailureError: If the arrays are missing their required columns
    """
    recent = (submissions or {}).get("filings", {}).get("recent")
    if not recent:
        return

    try:
        forms = recent["form"]
        accessions = recent["accessionNumber"]
        documents = recent["primaryDocument"]
        dates = recent["filingDate"]
    except (KeyError, TypeError) as e:
        raise ParseFailureError(f"Submissions index for CIK {cik} is malformed: {e}") from e

    report_dates = recent.get("reportDate") or []
    items = recent.get("items") or []

    for idx, form in enumerate(forms):
        if idx >= len(accessions) or idx >= len(documents):
            break
        item_list = items[idx] if idx < len(items) else ""
        yield FilingRef(
            cik=cik,
            accession_number=accessions[idx],
            form=form,
            primary_document=documents[idx],
            filing_date=dates[idx] if idx < len(dates) else "",
            report_date=(report_dates[idx] or None) if idx < len(report_dates) else None,
            items=[i.strip() for i in item_list.split(",") if i.strip()],
        )


class FilingLocator:
    """Selects candidate filings of a form type for a company."""

    def __init__(self, client: SecClient, verbose: bool = False):
        self.client = client
        self.verbose = verbose

    def _log(self, message: str) -> None:
        """Print a message if verbose mode is enabled."""
        if self.verbose:
            print(message)

    def get_filings(
        self,
        cik: str,
        form: str = "8-K",
        limit: int | None = 8,
        item: str | None = None,
    ) -> list[FilingRef]:
        """
        Get candidate filings from the submissions index.

        Args:
            cik: 10-digit CIK
            form: Form type (e.g., "8-K", "10-Q")
            limit: Maximum number of filings to return
            item: Optional 8-K item number the filing must report (e.g., "2.02")

        Returns:
            FilingRefs in index order (most recent first)
        """
        submissions = self.client.get_submissions(cik)
        filings = [
            filing
            for filing in iter_recent_filings(cik, submissions)
            if filing.form == form and (item is None or item in filing.items)
        ]
        if limit:
            filings = filings[:limit]

        self._log(f"Found {len(filings)} {form} filings")
        return filings
