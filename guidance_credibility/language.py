"""
Language-risk metrics for management commentary.

Counts hedging, negation, uncertainty and vague-phrase lexicon hits per
1000 words. The latest filing's primary document stands in for the
earnings-call transcript; when the text carries a question-and-answer
section only that part is analysed.
"""

import re

from guidance_credibility.errors import NotFoundError
from guidance_credibility.guidance.periods import PeriodResolver
from guidance_credibility.models import (
    PREPARED_REMARKS,
    QUESTIONS_AND_ANSWERS,
    LanguageMetrics,
)
from guidance_credibility.sources.documents import content_type_for, document_to_text
from guidance_credibility.sources.sec_edgar.client import SecClient
from guidance_credibility.sources.sec_edgar.filings import FilingLocator
from guidance_credibility.store.repository import Repository

HEDGES = (
    "may", "might", "could", "approximately", "around", "about", "likely",
    "possible", "potential", "expect", "estimate", "anticipate", "forecast", "project",
)
NEGATIONS = ("not", "no", "never", "none", "without")
UNCERTAINTY = ("uncertain", "visibility", "headwinds", "challenging", "volatility", "risk", "cautious")
VAGUE = ("somewhat", "kind of", "relatively", "roughly", "sort of")

_WORD = re.compile(r"[A-Za-z0-9']+")
QA_MARKER = re.compile(r"\b(?:question[-\s]and[-\s]answer|questions\s+and\s+answers|Q\s*&\s*A)\b", re.IGNORECASE)


def tokenize(text: str) -> list[str]:
    return [word.lower() for word in _WORD.findall(text)]


def count_hits(words: list[str], lexicon: tuple[str, ...]) -> int:
    """Count lexicon hits; multi-word entries match as consecutive words."""
    hits = 0
    for entry in lexicon:
        phrase = entry.split()
        size = len(phrase)
        if size == 1:
            hits += sum(1 for word in words if word == phrase[0])
            continue
        hits += sum(1 for i in range(len(words) - size + 1) if words[i:i + size] == phrase)
    return hits


def per_thousand(hits: int, words_total: int) -> float:
    return hits * 1000 / (words_total or 1)


def split_sections(text: str) -> tuple[str, str]:
    """
    Split text at the first question-and-answer marker.

    Returns:
        Tuple of (section label, text to analyse)
    """
    match = QA_MARKER.search(text)
    if match is None:
        return PREPARED_REMARKS, text
    return QUESTIONS_AND_ANSWERS, text[match.end():]


def analyze_text(text: str) -> LanguageMetrics:
    """Compute lexicon rates for a block of text."""
    section, body = split_sections(text)
    words = tokenize(body)
    total = len(words)
    return LanguageMetrics(
        words_total=total,
        hedges_per_k=per_thousand(count_hits(words, HEDGES), total),
        negations_per_k=per_thousand(count_hits(words, NEGATIONS), total),
        uncertainty_per_k=per_thousand(count_hits(words, UNCERTAINTY), total),
        vague_per_k=per_thousand(count_hits(words, VAGUE), total),
        source_section=section,
    )


def empty_metrics() -> LanguageMetrics:
    return LanguageMetrics(
        words_total=0,
        hedges_per_k=0.0,
        negations_per_k=0.0,
        uncertainty_per_k=0.0,
        vague_per_k=0.0,
    )


class LanguageAnalyzer:
    """Analyses and stores language metrics for a company's latest filing."""

    def __init__(
        self,
        client: SecClient,
        locator: FilingLocator,
        repository: Repository,
        resolver: PeriodResolver,
        form: str = "8-K",
        verbose: bool = False,
    ):
        """
        Initialize the language analyzer.

        Args:
            client: SEC client used to download the filing document
            locator: Filing locator for the company's latest filing
            repository: Store for language metrics
            resolver: Period resolver for the company's FY period
            form: Form type whose latest filing is analysed
            verbose: Whether to print progress messages
        """
        self.client = client
        self.locator = locator
        self.repository = repository
        self.resolver = resolver
        self.form = form
        self.verbose = verbose

    def _log(self, message: str) -> None:
        """Print a message if verbose mode is enabled."""
        if self.verbose:
            print(message)

    def analyze_company(self, ticker: str) -> LanguageMetrics:
        """
        Analyse the latest filing of a stored company and persist the result.

        Raises:
            NotFoundError: If the company has not been imported
            UpstreamUnavailableError: If the filing document cannot be fetched
            ParseFailureError: If the filing document cannot be reduced to text
        """
        company = self.repository.get_company(ticker)
        if company is None:
            raise NotFoundError(f"Unknown company: {ticker}")

        filings = self.locator.get_filings(company.cik, form=self.form, limit=1)
        if not filings:
            self._log(f"  No {self.form} filing for {company.ticker}")
            metrics = empty_metrics()
            document_url = None
        else:
            filing = filings[0]
            document_url = filing.primary_url
            content, header = self.client.fetch(document_url)
            text = document_to_text(content, content_type_for(filing.primary_document, header))
            metrics = analyze_text(text)
            self._log(
                f"  {metrics.words_total} words ({metrics.source_section}), "
                f"hedges/k={metrics.hedges_per_k:.2f}, uncertainty/k={metrics.uncertainty_per_k:.2f}"
            )

        period_id = self.resolver.resolve(company.id, None, "FY", transcript_url=document_url)
        self.repository.add_language_metrics(period_id, metrics)
        return metrics
