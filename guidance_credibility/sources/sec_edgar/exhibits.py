"""
Exhibit discovery and retrieval for SEC filings.

Discovery reads a filing's index page and classifies the rows of its
document table as exhibits. Retrieval downloads an exhibit, reduces it to
normalized plain text and keeps that text on disk at:
{text_dir}/{cik}/{accession_number}/{file_name}.txt
"""

import re
from pathlib import Path
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from guidance_credibility.errors import ParseFailureError, UpstreamUnavailableError
from guidance_credibility.models import ExhibitRef
from guidance_credibility.sources.documents import content_type_for, document_to_text
from guidance_credibility.sources.sec_edgar.client import SecClient
from guidance_credibility.sources.sec_edgar.filings import FilingRef

SEC_ROOT = "https://www.sec.gov"
PRIMARY_DOCUMENT = "primary"


class ExhibitDiscoverer:
    """
    Enumerates the exhibits attached to a filing.

    A row of the index page's document table is an exhibit when its
    declared type ("EX-99.1"), its text ("Exhibit 99.1", "99.1") or its
    file name ("ex99-1.htm", "d12345dex991.htm") carries an exhibit number
    of one of the configured series.
    """

    def __init__(
        self,
        client: SecClient,
        series: tuple[str, ...] = ("99",),
        verbose: bool = False,
    ):
        """
        Initialize the exhibit discoverer.

        Args:
            client: SEC client used to fetch index pages
            series: Exhibit number series to keep (e.g. "99" for press releases)
            verbose: Whether to print progress messages
        """
        self.client = client
        self.series = series
        self.verbose = verbose

        alternatives = "|".join(re.escape(s) for s in series)
        self._type_pattern = re.compile(rf"^\s*EX-({alternatives})(?:\.(\d{{1,2}}))?\b", re.I)
        self._text_pattern = re.compile(
            rf"(?<![\d.])(?:EX-|Exhibit\s*)?({alternatives})\.(\d{{1,2}})(?![\d])", re.I
        )
        self._file_pattern = re.compile(
            rf"ex(?:hibit)?[-_]?({alternatives})(?:[-_.]?(\d{{1,2}}))?(?!\d)", re.I
        )

    def _log(self, message: str) -> None:
        """Print a message if verbose mode is enabled."""
        if self.verbose:
            print(message)

    @staticmethod
    def _exhibit_number(match: re.Match) -> str:
        major, minor = match.group(1), match.group(2)
        return f"{major}.{minor}" if minor else major

    def classify(self, declared_types: list[str], row_text: str, file_name: str) -> str | None:
        """
        Return the exhibit number of a document row, or None if it is not an exhibit.

        The declared type is checked first, then the row text, then the file name.
        """
        for declared in declared_types:
            match = self._type_pattern.search(declared)
            if match:
                return self._exhibit_number(match)

        match = self._text_pattern.search(row_text)
        if match:
            return self._exhibit_number(match)

        match = self._file_pattern.search(file_name)
        if match:
            return self._exhibit_number(match)
        return None

    @staticmethod
    def _absolute_url(href: str, filing: FilingRef) -> str:
        # Inline XBRL viewer links wrap the archive path
        if href.startswith("/ix?doc="):
            href = href[len("/ix?doc="):]
        if href.startswith("http"):
            return href
        if href.startswith("/"):
            return urljoin(SEC_ROOT, href)
        return f"{filing.base_url}/{href}"

    def primary_fallback(self, filing: FilingRef) -> ExhibitRef:
        """Synthesized entry for the filing's primary document."""
        return ExhibitRef(
            exhibit_no=PRIMARY_DOCUMENT,
            url=filing.primary_url,
            file_name=filing.primary_document,
            content_type=content_type_for(filing.primary_document),
            description=filing.form,
            is_primary=True,
        )

    def parse_index(self, html: str, filing: FilingRef) -> list[ExhibitRef]:
        """Classify the anchor rows of an index page, in discovery order."""
        soup = BeautifulSoup(html, "html.parser")
        exhibits: list[ExhibitRef] = []
        seen: set[tuple[str, str]] = set()

        for row in soup.find_all("tr"):
            anchor = row.find("a", href=True)
            if anchor is None:
                continue

            href = anchor["href"].strip()
            url = self._absolute_url(href, filing)
            file_name = url.rsplit("/", 1)[-1]
            cells = [cell.get_text(" ", strip=True) for cell in row.find_all("td")]
            row_text = " ".join(cells)

            exhibit_no = self.classify(cells, row_text, file_name)
            if exhibit_no is None:
                continue

            key = (exhibit_no, url)
            if key in seen:
                continue
            seen.add(key)

            description = cells[1] if len(cells) > 1 else ""
            exhibits.append(
                ExhibitRef(
                    exhibit_no=exhibit_no,
                    url=url,
                    file_name=file_name,
                    content_type=content_type_for(file_name),
                    description=description,
                )
            )

        return exhibits

    def discover(self, filing: FilingRef) -> list[ExhibitRef]:
        """
        List the exhibits of a filing.

        Returns:
            Exhibits in discovery order, or a single primary-document entry
            when the index page is unavailable or lists no exhibit
        """
        try:
            html = self.client.get_text(filing.index_url)
            exhibits = self.parse_index(html, filing)
        except (UpstreamUnavailableError, ParseFailureError) as e:
            self._log(f"  Index unavailable for {filing.accession_number}: {e}")
            exhibits = []

        if not exhibits:
            self._log(f"  No exhibits found in {filing.accession_number}, using primary document")
            return [self.primary_fallback(filing)]

        self._log(f"  Found {len(exhibits)} exhibits in {filing.accession_number}")
        return exhibits


class ExhibitFetcher:
    """
    Downloads exhibits and reduces them to normalized plain text.

    Normalized text is kept on disk so that re-running extraction over the
    same filing does not download it again.
    """

    def __init__(self, client: SecClient, text_dir: Path | str | None = None, verbose: bool = False):
        """
        Initialize the exhibit fetcher.

        Args:
            client: SEC client used to download documents
            text_dir: Directory for normalized text (None disables the text cache)
            verbose: Whether to print progress messages
        """
        self.client = client
        self.text_dir = Path(text_dir) if text_dir else None
        self.verbose = verbose

    def _log(self, message: str) -> None:
        """Print a message if verbose mode is enabled."""
        if self.verbose:
            print(message)

    def text_path(self, filing: FilingRef, exhibit: ExhibitRef) -> Path | None:
        if self.text_dir is None:
            return None
        return self.text_dir / filing.cik / filing.accession_number / f"{exhibit.file_name}.txt"

    def fetch(
        self,
        filing: FilingRef,
        exhibit: ExhibitRef,
        replace_existing: bool = False,
    ) -> tuple[str, Path | None]:
        """
        Fetch an exhibit as normalized text.

        Args:
            filing: Filing the exhibit belongs to
            exhibit: Exhibit to fetch
            replace_existing: Whether to re-download text that is already cached

        Returns:
            Tuple of (normalized text, cached text path or None)

        Raises:
            UpstreamUnavailableError: If the document cannot be downloaded
            ParseFailureError: If the document cannot be reduced to text
        """
        path = self.text_path(filing, exhibit)
        if path is not None and path.exists() and not replace_existing:
            self._log(f"  Skipped (exists): {path.name}")
            return path.read_text(encoding="utf-8"), path

        content, header = self.client.fetch(exhibit.url)
        content_type = content_type_for(exhibit.file_name, header)
        text = document_to_text(content, content_type)

        if path is not None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
            self._log(f"  Saved text: {path.name}")
        return text, path
