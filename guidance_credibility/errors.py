"""
Exception types for the guidance credibility pipeline.

Batch operations catch these per ticker and record them next to successes,
so one failing company never aborts the whole run.
"""


class GuidanceCredibilityError(Exception):
    """Base class for all pipeline errors."""


class NotFoundError(GuidanceCredibilityError):
    """Raised for an unknown ticker, company or identifier."""


class UpstreamUnavailableError(GuidanceCredibilityError):
    """Raised when a remote source answers with a non-success response."""

    def __init__(self, url: str, status: int | None = None, reason: str | None = None):
        self.url = url
        self.status = status
        detail = f"HTTP {status}" if status is not None else (reason or "request failed")
        super().__init__(f"{detail}: {url}")


class ParseFailureError(GuidanceCredibilityError):
    """Raised when a JSON, HTML or PDF payload cannot be interpreted."""


class PersistenceError(GuidanceCredibilityError):
    """Raised when a write to the relational store fails."""
