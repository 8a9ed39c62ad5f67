"""
SEC EDGAR retrieval module.

Provides the rate-limited client, ticker resolution, filing location and
exhibit discovery and retrieval.
"""

from guidance_credibility.sources.sec_edgar.client import RequestQueue, ResponseCache, SecClient
from guidance_credibility.sources.sec_edgar.exhibits import ExhibitDiscoverer, ExhibitFetcher
from guidance_credibility.sources.sec_edgar.filings import FilingLocator, FilingRef

__all__ = [
    "RequestQueue",
    "ResponseCache",
    "SecClient",
    "ExhibitDiscoverer",
    "ExhibitFetcher",
    "FilingLocator",
    "FilingRef",
]
