"""
Issuer-specific guidance fallbacks.

Some issuers publish their outlook on investor-relations pages rather than
in a filed exhibit, or word it in a way the generic patterns miss. An
IssuerProfile names where to look and how to parse what is found there;
the registry tries, in order:

1. the profile's primary URLs
2. same-domain links on the crawl seed pages whose URL or anchor text
   contains one of the profile's keywords
3. links on the profile's index page

The first strategy that yields any statement wins. A fixed delay separates
successive fetches so the issuer's site is not hammered.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, Iterator
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from guidance_credibility.errors import ParseFailureError, UpstreamUnavailableError
from guidance_credibility.guidance.patterns import (
    detect_basis,
    match_midpoint_percent,
    match_segment_ranges,
)
from guidance_credibility.guidance.periods import infer_period
from guidance_credibility.guidance.text import guidance_candidates
from guidance_credibility.models import REVENUE, GuidanceStatement
from guidance_credibility.sources.documents import HTML, content_type_for, document_to_text
from guidance_credibility.sources.sec_edgar.client import SecClient

Parser = Callable[[str, str], list[GuidanceStatement]]

DEFAULT_LINK_KEYWORDS = ("outlook", "transcript", "remarks")
MAX_CRAWL_LINKS = 10


def segment_range_parser(segments: tuple[str, ...]) -> Parser:
    """Parser for revenue ranges scoped to one of the named segments."""

    def parse(text: str, url: str) -> list[GuidanceStatement]:
        statements = []
        for sentence in guidance_candidates(text):
            fy, fp = infer_period(sentence)
            for found in match_segment_ranges(sentence, segments=segments):
                statements.append(
                    GuidanceStatement(
                        metric=REVENUE,
                        min_value=found.low,
                        max_value=found.high,
                        units=found.units,
                        basis=detect_basis(sentence),
                        extracted_text=sentence,
                        fy=fy,
                        fp=fp,
                        segment=found.segment,
                        source_url=url,
                    )
                )
        return statements

    return parse


def percent_band_parser() -> Parser:
    """Parser for consolidated revenue given as a midpoint plus or minus a percentage."""

    def parse(text: str, url: str) -> list[GuidanceStatement]:
        statements = []
        for sentence in guidance_candidates(text):
            found = match_midpoint_percent(sentence)
            if found is None:
                continue
            fy, fp = infer_period(sentence)
            statements.append(
                GuidanceStatement(
                    metric=REVENUE,
                    min_value=found.low,
                    max_value=found.high,
                    units=found.units,
                    basis=detect_basis(sentence),
                    extracted_text=sentence,
                    fy=fy,
                    fp=fp,
                    source_url=url,
                )
            )
        return statements

    return parse


@dataclass
class IssuerProfile:
    """Where an issuer publishes guidance and how to read it."""

    ticker: str
    parser: Parser
    primary_urls: tuple[str, ...] = ()
    crawl_seeds: tuple[str, ...] = ()
    link_keywords: tuple[str, ...] = DEFAULT_LINK_KEYWORDS
    index_url: str | None = None


@dataclass
class AdapterResult:
    """Outcome of the fallback strategies for one ticker."""

    ticker: str
    strategy: str | None = None
    statements: list[GuidanceStatement] = field(default_factory=list)
    attempted_urls: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "ticker": self.ticker,
            "strategy": self.strategy,
            "statements": [s.to_dict() for s in self.statements],
            "attempted_urls": self.attempted_urls,
        }


BUILTIN_PROFILES = (
    IssuerProfile(
        ticker="MSFT",
        parser=segment_range_parser(
            ("Productivity and Business Processes", "Intelligent Cloud", "More Personal Computing")
        ),
        primary_urls=("https://www.microsoft.com/en-us/investor/earnings/default",),
        crawl_seeds=("https://www.microsoft.com/en-us/investor",),
        index_url="https://www.microsoft.com/en-us/investor/earnings/default",
    ),
    IssuerProfile(
        ticker="NVDA",
        parser=percent_band_parser(),
        primary_urls=("https://investor.nvidia.com/financial-info/financial-reports/default.aspx",),
        crawl_seeds=("https://nvidianews.nvidia.com/news",),
        index_url="https://investor.nvidia.com/financial-info/quarterly-results/default.aspx",
    ),
)


class IssuerAdapterRegistry:
    """
    Registry of issuer profiles and the fallback strategies that use them.

    Fetch and parse failures on a single page count as no match; the next
    page or strategy is tried.
    """

    def __init__(
        self,
        client: SecClient,
        profiles: tuple[IssuerProfile, ...] | list[IssuerProfile] | None = None,
        delay: float = 0.6,
        sleep: Callable[[float], None] = time.sleep,
        verbose: bool = False,
    ):
        """
        Initialize the adapter registry.

        Args:
            client: HTTP client used to fetch issuer pages
            profiles: Profiles to register (built-in profiles if omitted)
            delay: Seconds to wait between successive fetch attempts
            sleep: Function used to wait out the delay
            verbose: Whether to print progress messages
        """
        self.client = client
        self.delay = delay
        self.verbose = verbose
        self._sleep = sleep
        self._profiles: dict[str, IssuerProfile] = {}

        for profile in BUILTIN_PROFILES if profiles is None else profiles:
            self.register(profile)

    def _log(self, message: str) -> None:
        """Print a message if verbose mode is enabled."""
        if self.verbose:
            print(message)

    def register(self, profile: IssuerProfile) -> None:
        """Add or replace the profile for a ticker."""
        self._profiles[profile.ticker.upper()] = profile

    def supports(self, ticker: str) -> bool:
        return ticker.upper() in self._profiles

    @property
    def tickers(self) -> list[str]:
        return sorted(self._profiles)

    def _fetch(self, url: str, result: AdapterResult) -> tuple[bytes, str] | None:
        # Spacing is per extract call; attempted_urls is its fetch count
        if result.attempted_urls:
            self._sleep(self.delay)
        result.attempted_urls.append(url)
        try:
            return self.client.fetch(url)
        except UpstreamUnavailableError as e:
            self._log(f"  Fetch failed: {e}")
            return None

    def _page_text(self, url: str, result: AdapterResult) -> str | None:
        fetched = self._fetch(url, result)
        if fetched is None:
            return None
        content, header = fetched
        try:
            return document_to_text(content, content_type_for(url, header))
        except ParseFailureError as e:
            self._log(f"  Unreadable page {url}: {e}")
            return None

    def _parse_pages(self, profile: IssuerProfile, urls, result: AdapterResult) -> list[GuidanceStatement]:
        for url in urls:
            text = self._page_text(url, result)
            if not text:
                continue
            statements = profile.parser(text, url)
            if statements:
                return statements
        return []

    def _links(self, url: str, result: AdapterResult) -> list[tuple[str, str]]:
        """(absolute URL, anchor text) of every link on an HTML page."""
        fetched = self._fetch(url, result)
        if fetched is None:
            return []
        content, header = fetched
        if content_type_for(url, header) != HTML:
            return []
        soup = BeautifulSoup(content.decode("utf-8", errors="replace"), "html.parser")
        return [
            (urljoin(url, anchor["href"].strip()), anchor.get_text(" ", strip=True))
            for anchor in soup.find_all("a", href=True)
        ]

    def _keyword_links(self, profile: IssuerProfile, result: AdapterResult) -> Iterator[str]:
        seen: set[str] = set()
        for seed in profile.crawl_seeds:
            domain = urlparse(seed).netloc
            for link, label in self._links(seed, result):
                if urlparse(link).netloc != domain or link in seen:
                    continue
                haystack = f"{link} {label}".lower()
                if any(keyword in haystack for keyword in profile.link_keywords):
                    seen.add(link)
                    yield link
                    if len(seen) >= MAX_CRAWL_LINKS:
                        return

    def _index_links(self, profile: IssuerProfile, result: AdapterResult) -> Iterator[str]:
        if not profile.index_url:
            return
        seen: set[str] = set()
        for link, _ in self._links(profile.index_url, result):
            if link.startswith("http") and link not in seen:
                seen.add(link)
                yield link
                if len(seen) >= MAX_CRAWL_LINKS:
                    return

    def extract(self, ticker: str) -> AdapterResult:
        """
        Run the fallback strategies for a ticker.

        Returns:
            AdapterResult with the statements of the first successful
            strategy, or no statements if the ticker has no profile or
            every strategy came up empty
        """
        ticker = ticker.upper()
        result = AdapterResult(ticker=ticker)
        profile = self._profiles.get(ticker)
        if profile is None:
            return result

        strategies = (
            ("primary", lambda: iter(profile.primary_urls)),
            ("crawl", lambda: self._keyword_links(profile, result)),
            ("index", lambda: self._index_links(profile, result)),
        )
        for name, urls in strategies:
            statements = self._parse_pages(profile, urls(), result)
            if statements:
                self._log(f"  {ticker}: {len(statements)} statements via {name}")
                result.strategy = name
                result.statements = statements
                return result

        self._log(f"  {ticker}: no fallback guidance found")
        return result
