"""
Runtime configuration loaded from the environment.

Values are read from environment variables (optionally populated from a
.env file via python-dotenv). EDGAR_IDENTITY is required: SEC EDGAR asks
every client to identify itself, and the same string is used as the HTTP
User-Agent and as the edgartools identity.
"""

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass
class Settings:
    """Settings shared by every pipeline component."""

    edgar_identity: str
    database_url: str = "sqlite:///data/gci.db"
    cache_dir: Path = Path(".cache/sec")
    exhibit_dir: Path = Path(".cache/exhibits")
    cache_ttl_seconds: float = 24 * 60 * 60
    min_request_interval: float = 0.1
    fallback_delay: float = 0.6
    max_filings: int = 8
    form: str = "8-K"
    http_timeout: float = 30.0

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from environment variables.

        Raises:
            ValueError: If EDGAR_IDENTITY environment variable is not set
        """
        identity = os.environ.get("EDGAR_IDENTITY")
        if not identity:
            raise ValueError(
                "EDGAR_IDENTITY environment variable is required. "
                "Add EDGAR_IDENTITY=FirstName LastName your-email@example.com to your .env file."
            )

        return cls(
            edgar_identity=identity,
            database_url=os.environ.get("GCI_DATABASE_URL", cls.database_url),
            cache_dir=Path(os.environ.get("GCI_CACHE_DIR", str(cls.cache_dir))),
            exhibit_dir=Path(os.environ.get("GCI_EXHIBIT_DIR", str(cls.exhibit_dir))),
            cache_ttl_seconds=float(os.environ.get("GCI_CACHE_TTL_HOURS", "24")) * 60 * 60,
            min_request_interval=float(
                os.environ.get("GCI_MIN_REQUEST_INTERVAL", str(cls.min_request_interval))
            ),
            fallback_delay=float(os.environ.get("GCI_FALLBACK_DELAY", str(cls.fallback_delay))),
            max_filings=int(os.environ.get("GCI_MAX_FILINGS", str(cls.max_filings))),
            form=os.environ.get("GCI_FORM", cls.form),
            http_timeout=float(os.environ.get("GCI_HTTP_TIMEOUT", str(cls.http_timeout))),
        )
