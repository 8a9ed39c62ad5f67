"""Shared fixtures and fakes for guidance credibility tests."""

from pathlib import Path

import pytest

from guidance_credibility.config import Settings
from guidance_credibility.errors import UpstreamUnavailableError
from guidance_credibility.sources.sec_edgar.client import SecClient
from guidance_credibility.sources.sec_edgar.filings import FilingRef
from guidance_credibility.store.repository import Repository

MSFT_CIK = "0000789019"

PRESS_RELEASE_HTML = """
<html><body>
<p>Microsoft Cloud Strength Drives Second Quarter Results</p>
<p>Business Outlook. For the third quarter, revenue is expected to be $5.2 billion, plus or minus 2%.
We expect non-GAAP diluted EPS of $1.52 to $1.56 for Q3.</p>
</body></html>
"""

DEFERRED_HTML = """
<html><body>
<p>Second Quarter Results.</p>
<p>The company will provide forward-looking guidance on the earnings call at 5:30 p.m. ET.</p>
</body></html>
"""

INDEX_HTML = """
<html><body>
<table class="tableFile" summary="Document Format Files">
<tr><th>Seq</th><th>Description</th><th>Document</th><th>Type</th><th>Size</th></tr>
<tr><td>1</td><td>8-K</td><td><a href="/Archives/edgar/data/789019/000095017025010491/msft-20250129.htm">msft-20250129.htm</a></td><td>8-K</td><td>40000</td></tr>
<tr><td>2</td><td>PRESS RELEASE</td><td><a href="/Archives/edgar/data/789019/000095017025010491/msft-ex99_1.htm">msft-ex99_1.htm</a></td><td>EX-99.1</td><td>90000</td></tr>
<tr><td>3</td><td>INVESTOR METRICS</td><td><a href="/Archives/edgar/data/789019/000095017025010491/msft-ex99_2.htm">msft-ex99_2.htm</a></td><td>EX-99.2</td><td>30000</td></tr>
<tr><td>4</td><td>COVER PAGE</td><td><a href="/Archives/edgar/data/789019/000095017025010491/R1.htm">R1.htm</a></td><td>XML</td><td>2000</td></tr>
</table>
</body></html>
"""


class FakeClient(SecClient):
    """
    SecClient whose network is a dictionary of canned responses.

    A response value that is an exception instance is raised instead of
    returned. Every fetched URL is recorded in order.
    """

    def __init__(
        self,
        responses: dict | None = None,
        submissions: dict | None = None,
        concepts: dict | None = None,
    ):
        self.responses = responses or {}
        self.submissions = submissions or {}
        self.concepts = concepts or {}
        self.fetched: list[str] = []
        self.verbose = False

    def fetch(self, url: str) -> tuple[bytes, str]:
        self.fetched.append(url)
        response = self.responses.get(url)
        if response is None:
            raise UpstreamUnavailableError(url, status=404)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, tuple):
            return response
        return response.encode("utf-8"), "text/html"

    def get_submissions(self, cik: str) -> dict:
        return self.submissions.get(cik, {})

    def get_company_concept(self, cik: str, tag: str) -> dict:
        concept = self.concepts.get(tag)
        if concept is None:
            raise UpstreamUnavailableError(self.concept_url(cik, tag), status=404)
        if isinstance(concept, Exception):
            raise concept
        return concept


def make_filing(
    accession_number: str = "0000950170-25-010491",
    primary_document: str = "msft-20250129.htm",
    form: str = "8-K",
    filing_date: str = "2025-01-29",
    report_date: str | None = "2025-01-29",
    items: list[str] | None = None,
) -> FilingRef:
    """Create a FilingRef for Microsoft's Q2 FY2025 earnings 8-K by default."""
    return FilingRef(
        cik=MSFT_CIK,
        accession_number=accession_number,
        form=form,
        primary_document=primary_document,
        filing_date=filing_date,
        report_date=report_date,
        items=items if items is not None else ["2.02", "9.01"],
    )


def make_submissions(filings: list[FilingRef]) -> dict:
    """Build a submissions payload with the parallel-array layout EDGAR uses."""
    return {
        "cik": MSFT_CIK,
        "name": "MICROSOFT CORP",
        "filings": {
            "recent": {
                "accessionNumber": [f.accession_number for f in filings],
                "form": [f.form for f in filings],
                "primaryDocument": [f.primary_document for f in filings],
                "filingDate": [f.filing_date for f in filings],
                "reportDate": [f.report_date or "" for f in filings],
                "items": [",".join(f.items) for f in filings],
            }
        },
    }


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test outputs."""
    return tmp_path


@pytest.fixture
def repository(temp_dir: Path) -> Repository:
    """Repository backed by a fresh SQLite file."""
    return Repository(f"sqlite:///{temp_dir / 'gci.db'}")


@pytest.fixture
def company_id(repository: Repository) -> int:
    return repository.upsert_company("MSFT", MSFT_CIK, "MICROSOFT CORP")


@pytest.fixture
def settings(temp_dir: Path) -> Settings:
    return Settings(
        edgar_identity="Test User test@example.com",
        database_url=f"sqlite:///{temp_dir / 'gci.db'}",
        cache_dir=temp_dir / "cache",
        exhibit_dir=temp_dir / "exhibits",
        fallback_delay=0,
    )
