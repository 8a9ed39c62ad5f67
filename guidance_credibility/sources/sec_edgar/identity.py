"""
Ticker to CIK resolution using edgartools.

edgartools keeps its own ticker map and local cache; this module only
adapts its Company lookup to the pipeline's error taxonomy.
"""

from dataclasses import dataclass

from edgar import Company, set_identity

from guidance_credibility.errors import NotFoundError


@dataclass
class CompanyIdentity:
    """Resolved identity of a listed company."""

    ticker: str
    cik: str
    name: str


def to_cik10(cik: int | str) -> str:
    """Left-pad a numeric CIK to the 10-digit form used by EDGAR endpoints."""
    return str(int(cik)).zfill(10)


def resolve_identifier(ticker: str, identity: str | None = None) -> CompanyIdentity:
    """
    Resolve a ticker symbol to its EDGAR identity.

    Args:
        ticker: Stock ticker symbol
        identity: SEC EDGAR identity string (name and email)

    Returns:
        CompanyIdentity with a 10-digit CIK

    Raises:
        NotFoundError: If EDGAR does not know the ticker
    """
    ticker = ticker.strip().upper()
    if identity:
        set_identity(identity)

    try:
        company = Company(ticker)
    except Exception as e:
        raise NotFoundError(f"Ticker not found: {ticker} ({e})") from e

    cik = getattr(company, "cik", None)
    if not cik or getattr(company, "not_found", False):
        raise NotFoundError(f"Ticker not found: {ticker}")

    return CompanyIdentity(ticker=ticker, cik=to_cik10(cik), name=company.name or ticker)
