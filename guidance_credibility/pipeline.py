"""
Batch operations over tickers.

GuidancePipeline wires the SEC client, extraction, alignment, language
analysis and scoring components around one Repository, and runs each
operation ticker by ticker. A failing ticker is recorded next to the
successful ones instead of aborting the batch.
"""

from datetime import date
from typing import Callable, Iterable

from guidance_credibility.actuals import ActualsAligner
from guidance_credibility.config import Settings
from guidance_credibility.errors import NotFoundError
from guidance_credibility.guidance.extractor import FilingGuidanceProcessor, GuidanceExtractor
from guidance_credibility.guidance.periods import PeriodResolver
from guidance_credibility.language import LanguageAnalyzer
from guidance_credibility.models import (
    FilingExtraction,
    GuidanceStatement,
    ScoreCard,
    TickerResult,
)
from guidance_credibility.scoring import ScoringEngine
from guidance_credibility.sources.issuer_sites.adapters import IssuerAdapterRegistry
from guidance_credibility.sources.sec_edgar.client import RequestQueue, ResponseCache, SecClient
from guidance_credibility.sources.sec_edgar.exhibits import ExhibitDiscoverer, ExhibitFetcher
from guidance_credibility.sources.sec_edgar.filings import FilingLocator, FilingRef
from guidance_credibility.sources.sec_edgar.identity import CompanyIdentity, resolve_identifier
from guidance_credibility.store.orm import Company
from guidance_credibility.store.repository import Repository


def normalize_tickers(tickers: Iterable[str] | str | None) -> list[str]:
    """Upper-case, strip and drop empty tickers; a string is split on commas."""
    if tickers is None:
        return []
    if isinstance(tickers, str):
        tickers = tickers.split(",")
    return [t.strip().upper() for t in tickers if t and t.strip()]


def _filing_date(filing: FilingRef) -> date | None:
    for value in (filing.report_date, filing.filing_date):
        if value:
            try:
                return date.fromisoformat(value)
            except ValueError:
                continue
    return None


class GuidancePipeline:
    """
    Runs the guidance credibility operations for batches of tickers.

    This class coordinates:
    - Resolving tickers and registering companies
    - Extracting guidance from recent filings, with issuer fallbacks
    - Aligning guided periods with reported actuals
    - Analysing filing language
    - Computing and persisting scores
    """

    def __init__(
        self,
        settings: Settings,
        repository: Repository | None = None,
        client: SecClient | None = None,
        adapters: IssuerAdapterRegistry | None = None,
        identity_resolver: Callable[[str, str | None], CompanyIdentity] = resolve_identifier,
        verbose: bool = False,
    ):
        """
        Initialize the pipeline.

        Args:
            settings: Runtime settings
            repository: Store (created from settings.database_url if omitted)
            client: SEC client (created from settings if omitted)
            adapters: Issuer fallback registry (built-in profiles if omitted)
            identity_resolver: Ticker to CIK lookup
            verbose: Whether to print progress messages
        """
        self.settings = settings
        self.verbose = verbose
        self.repository = repository or Repository(settings.database_url)
        self.client = client or SecClient(
            user_agent=settings.edgar_identity,
            queue=RequestQueue(settings.min_request_interval, verbose=verbose),
            cache=ResponseCache(settings.cache_dir, settings.cache_ttl_seconds),
            timeout=settings.http_timeout,
            verbose=verbose,
        )
        self._identity_resolver = identity_resolver

        self.resolver = PeriodResolver(self.repository, verbose=verbose)
        self.locator = FilingLocator(self.client, verbose=verbose)
        self.processor = FilingGuidanceProcessor(
            ExhibitDiscoverer(self.client, verbose=verbose),
            ExhibitFetcher(self.client, text_dir=settings.exhibit_dir, verbose=verbose),
            GuidanceExtractor(),
            verbose=verbose,
        )
        self.adapters = adapters or IssuerAdapterRegistry(
            self.client, delay=settings.fallback_delay, verbose=verbose
        )
        self.aligner = ActualsAligner(self.client, self.repository, self.resolver, verbose=verbose)
        self.analyzer = LanguageAnalyzer(
            self.client,
            self.locator,
            self.repository,
            self.resolver,
            form=settings.form,
            verbose=verbose,
        )
        self.scoring = ScoringEngine(self.repository, verbose=verbose)

    def _log(self, message: str) -> None:
        """Print a message if verbose mode is enabled."""
        if self.verbose:
            print(message)

    def _run_batch(
        self,
        tickers: Iterable[str] | str | None,
        operation: Callable[[str], TickerResult],
    ) -> list[TickerResult]:
        results: list[TickerResult] = []
        for ticker in normalize_tickers(tickers):
            self._log(f"Processing: {ticker}")
            try:
                result = operation(ticker)
            except Exception as e:
                self._log(f"  Failed: {e}")
                result = TickerResult(ticker=ticker, success=False, error=str(e))
            results.append(result)
        return results

    def _require_company(self, ticker: str) -> Company:
        company = self.repository.get_company(ticker)
        if company is None:
            raise NotFoundError(f"Unknown company: {ticker}")
        return company

    # Identity and filings

    def resolve_identifier(self, ticker: str) -> CompanyIdentity:
        """Resolve a ticker to its 10-digit CIK and name."""
        return self._identity_resolver(ticker, self.settings.edgar_identity)

    def _import_one(self, ticker: str) -> TickerResult:
        identity = self.resolve_identifier(ticker)
        self.repository.upsert_company(identity.ticker, identity.cik, identity.name)
        filings = self.locator.get_filings(identity.cik, form=self.settings.form, limit=None)
        return TickerResult(
            ticker=identity.ticker,
            success=True,
            count=len(filings),
            details={"cik": identity.cik, "name": identity.name},
        )

    def import_filings(self, tickers) -> list[TickerResult]:
        """Register companies and warm the submissions cache."""
        return self._run_batch(tickers, self._import_one)

    # Guidance

    def _persist_statements(
        self,
        company: Company,
        statements: list[GuidanceStatement],
        filing_url: str | None = None,
    ) -> int:
        written = 0
        for statement in statements:
            period_id = self.resolver.resolve(
                company.id,
                statement.fy,
                statement.fp,
                source_filing_url=filing_url,
                source_exhibit_url=statement.source_url,
            )
            written += self.repository.add_guidance(period_id, [statement])
        return written

    def _persist_extraction(self, company: Company, filing: FilingRef, extraction: FilingExtraction) -> int:
        filing_period = self.resolver.resolve(
            company.id,
            None,
            None,
            _filing_date(filing),
            source_filing_url=extraction.filing_url,
        )
        for document in extraction.documents:
            self.repository.add_exhibit(
                filing_period,
                document.exhibit,
                text_path=document.text_path,
                deferred_guidance=document.deferred_guidance,
            )
        return self._persist_statements(company, extraction.statements, extraction.filing_url)

    def _extract_one(self, ticker: str) -> TickerResult:
        company = self._require_company(ticker)
        filings = self.locator.get_filings(
            company.cik, form=self.settings.form, limit=self.settings.max_filings
        )

        count = 0
        for filing in filings:
            self._log(f"  Filing: {filing.form} ({filing.filing_date}) - {filing.accession_number}")
            extraction = self.processor.process(filing, issuer=company.name)
            count += self._persist_extraction(company, filing, extraction)

        details: dict = {"filings": len(filings)}
        if count == 0 and self.adapters.supports(ticker):
            self._log(f"  No guidance in filings, trying issuer fallbacks for {ticker}")
            fallback = self.adapters.extract(ticker)
            count = self._persist_statements(company, fallback.statements)
            details["fallback"] = fallback.strategy

        return TickerResult(ticker=ticker, success=True, count=count, details=details)

    def extract_guidance(self, tickers) -> list[TickerResult]:
        """Extract and store guidance; each result carries the statement count."""
        return self._run_batch(tickers, self._extract_one)

    # Actuals, language, scores

    def _actuals_one(self, ticker: str) -> TickerResult:
        company = self._require_company(ticker)
        written = self.aligner.align(company)
        return TickerResult(ticker=ticker, success=True, count=written)

    def pull_actuals(self, tickers) -> list[TickerResult]:
        return self._run_batch(tickers, self._actuals_one)

    def _language_one(self, ticker: str) -> TickerResult:
        metrics = self.analyzer.analyze_company(ticker)
        return TickerResult(
            ticker=ticker,
            success=True,
            words_total=metrics.words_total,
            details={
                "hedges_per_k": metrics.hedges_per_k,
                "uncertainty_per_k": metrics.uncertainty_per_k,
            },
        )

    def analyze_language(self, tickers) -> list[TickerResult]:
        return self._run_batch(tickers, self._language_one)

    def compute_scores(self) -> list[ScoreCard]:
        return self.scoring.compute_all()

    def run_all(self, tickers) -> dict:
        """Run every operation in order for the tickers, then score."""
        tickers = normalize_tickers(tickers)
        return {
            "import_filings": self.import_filings(tickers),
            "extract_guidance": self.extract_guidance(tickers),
            "pull_actuals": self.pull_actuals(tickers),
            "analyze_language": self.analyze_language(tickers),
            "compute_scores": self.compute_scores(),
        }
