"""
Guidance extraction from filing documents.

GuidanceExtractor turns normalized text into GuidanceStatements.
FilingGuidanceProcessor walks the documents of one filing in order and
stops at the first document that yields any statement.
"""

from guidance_credibility.errors import ParseFailureError, UpstreamUnavailableError
from guidance_credibility.guidance.patterns import (
    RangeMatch,
    defers_guidance_to_call,
    detect_basis,
    match_dollar_range,
    match_eps_range,
    match_midpoint_percent,
    match_segment_ranges,
)
from guidance_credibility.guidance.periods import infer_period
from guidance_credibility.guidance.text import guidance_candidates
from guidance_credibility.models import (
    EPS_DILUTED,
    REVENUE,
    DocumentOutcome,
    ExhibitRef,
    FilingExtraction,
    GuidanceStatement,
)
from guidance_credibility.sources.sec_edgar.exhibits import ExhibitDiscoverer, ExhibitFetcher
from guidance_credibility.sources.sec_edgar.filings import FilingRef

PRESS_RELEASE_EXHIBIT = "99.1"


class GuidanceExtractor:
    """
    Extracts numeric guidance statements from plain text.

    Per candidate sentence, revenue statements come from the first of:
    midpoint plus or minus a percentage, named-segment ranges (one
    statement per segment), a plain dollar range. EPS ranges are matched
    independently.
    """

    def _statement(
        self,
        metric: str,
        found: RangeMatch,
        sentence: str,
        source_url: str | None,
    ) -> GuidanceStatement:
        fy, fp = infer_period(sentence)
        return GuidanceStatement(
            metric=metric,
            min_value=found.low,
            max_value=found.high,
            units=found.units,
            basis=detect_basis(sentence),
            extracted_text=sentence,
            fy=fy,
            fp=fp,
            segment=found.segment,
            source_url=source_url,
        )

    def extract(
        self,
        text: str,
        source_url: str | None = None,
        issuer: str | None = None,
    ) -> list[GuidanceStatement]:
        """
        Extract guidance statements from document text.

        Args:
            text: Plain document text
            source_url: URL recorded on every statement
            issuer: Company name; "<issuer> revenue" is consolidated revenue

        Returns:
            Statements in sentence order
        """
        statements: list[GuidanceStatement] = []

        for sentence in guidance_candidates(text):
            midpoint = match_midpoint_percent(sentence)
            if midpoint is not None:
                revenue = [midpoint]
            else:
                revenue = match_segment_ranges(sentence, issuer=issuer)
                if not revenue:
                    plain = match_dollar_range(sentence)
                    revenue = [plain] if plain is not None else []

            for found in revenue:
                statements.append(self._statement(REVENUE, found, sentence, source_url))

            eps = match_eps_range(sentence)
            if eps is not None:
                statements.append(self._statement(EPS_DILUTED, eps, sentence, source_url))

        return statements


class FilingGuidanceProcessor:
    """
    Runs guidance extraction over the documents of a filing.

    This class handles:
    - Ordering documents: discovered exhibits, then the primary document
    - Suppressing exhibit 99.1 when it defers guidance to the earnings call
    - Recording per-document fetch/parse failures as no match
    - Stopping after the first document that yields statements
    """

    def __init__(
        self,
        discoverer: ExhibitDiscoverer,
        fetcher: ExhibitFetcher,
        extractor: GuidanceExtractor | None = None,
        verbose: bool = False,
    ):
        """
        Initialize the filing guidance processor.

        Args:
            discoverer: Lists the exhibits of a filing
            fetcher: Downloads and normalizes exhibit text
            extractor: Text-level guidance extractor
            verbose: Whether to print progress messages
        """
        self.discoverer = discoverer
        self.fetcher = fetcher
        self.extractor = extractor or GuidanceExtractor()
        self.verbose = verbose

    def _log(self, message: str) -> None:
        """Print a message if verbose mode is enabled."""
        if self.verbose:
            print(message)

    def documents(self, filing: FilingRef) -> list[ExhibitRef]:
        """Documents to examine, in order; the primary document is appended if not listed."""
        documents = list(self.discoverer.discover(filing))
        if not any(doc.url == filing.primary_url for doc in documents):
            documents.append(self.discoverer.primary_fallback(filing))
        return documents

    def process_document(
        self,
        filing: FilingRef,
        exhibit: ExhibitRef,
        issuer: str | None = None,
    ) -> DocumentOutcome:
        """Fetch one document and extract its statements."""
        outcome = DocumentOutcome(exhibit=exhibit)
        try:
            text, outcome.text_path = self.fetcher.fetch(filing, exhibit)
        except (UpstreamUnavailableError, ParseFailureError) as e:
            self._log(f"  Failed: {exhibit.url} ({e})")
            outcome.error = str(e)
            return outcome

        if exhibit.exhibit_no == PRESS_RELEASE_EXHIBIT and defers_guidance_to_call(text):
            self._log(f"  Exhibit {exhibit.exhibit_no} defers guidance to the earnings call")
            outcome.deferred_guidance = True
            return outcome

        outcome.statements = self.extractor.extract(text, source_url=exhibit.url, issuer=issuer)
        return outcome

    def process(self, filing: FilingRef, issuer: str | None = None) -> FilingExtraction:
        """
        Extract guidance from a filing.

        Args:
            filing: Filing to examine
            issuer: Filer name, so its own name is not taken for a segment

        Returns:
            FilingExtraction listing every document examined; documents after
            the first one with statements are not fetched
        """
        result = FilingExtraction(
            accession_number=filing.accession_number,
            filing_url=filing.viewer_url,
        )

        for exhibit in self.documents(filing):
            outcome = self.process_document(filing, exhibit, issuer)
            result.documents.append(outcome)
            if outcome.statements:
                self._log(f"  {len(outcome.statements)} statements from {exhibit.file_name}")
                break

        return result
