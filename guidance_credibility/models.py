"""
Data models for guidance extraction and scoring.

These models provide deterministic output structures for each pipeline
stage, enabling consistent testing and verification of outputs.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any

REVENUE = "revenue"
EPS_DILUTED = "eps_diluted"

USD_MILLIONS = "USD_M"
PER_SHARE = "EPS"

GAAP = "GAAP"
NON_GAAP = "non-GAAP"
UNKNOWN_BASIS = "unknown"

PREPARED_REMARKS = "Prepared"
QUESTIONS_AND_ANSWERS = "Q&A"


def json_serializer(obj: Any) -> str:
    """JSON serializer for objects not serializable by default json code."""
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Path):
        return str(obj)
    raise TypeError(f"Type {type(obj)} not serializable")


@dataclass
class GuidanceStatement:
    """A numeric guidance range extracted from a document."""

    metric: str
    min_value: float
    max_value: float
    units: str
    basis: str
    extracted_text: str
    fy: int | None = None
    fp: str | None = None
    segment: str | None = None
    source_url: str | None = None

    def __post_init__(self) -> None:
        if self.min_value > self.max_value:
            self.min_value, self.max_value = self.max_value, self.min_value

    @property
    def midpoint(self) -> float:
        return (self.min_value + self.max_value) / 2

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "metric": self.metric,
            "min": self.min_value,
            "max": self.max_value,
            "units": self.units,
            "basis": self.basis,
            "fy": self.fy,
            "fp": self.fp,
            "segment": self.segment,
            "extracted_text": self.extracted_text,
            "source_url": self.source_url,
        }


@dataclass
class ExhibitRef:
    """A document attached to a filing, as listed on its index page."""

    exhibit_no: str
    url: str
    file_name: str
    content_type: str
    description: str = ""
    is_primary: bool = False

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "exhibit_no": self.exhibit_no,
            "url": self.url,
            "file_name": self.file_name,
            "content_type": self.content_type,
            "description": self.description,
            "is_primary": self.is_primary,
        }


@dataclass
class DocumentOutcome:
    """Represents one document examined while extracting a filing."""

    exhibit: ExhibitRef
    text_path: Path | None = None
    deferred_guidance: bool = False
    statements: list[GuidanceStatement] = field(default_factory=list)
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "exhibit": self.exhibit.to_dict(),
            "text_path": str(self.text_path) if self.text_path else None,
            "deferred_guidance": self.deferred_guidance,
            "statements": len(self.statements),
            "success": self.success,
            "error": self.error,
        }


@dataclass
class FilingExtraction:
    """Result of running guidance extraction over one filing."""

    accession_number: str
    filing_url: str
    documents: list[DocumentOutcome] = field(default_factory=list)

    @property
    def statements(self) -> list[GuidanceStatement]:
        """Statements from the matching document (at most one document matches)."""
        for document in self.documents:
            if document.statements:
                return document.statements
        return []

    @property
    def matched_document(self) -> DocumentOutcome | None:
        for document in self.documents:
            if document.statements:
                return document
        return None

    @property
    def failed_documents(self) -> list[str]:
        """List of document URLs that failed to fetch or parse."""
        return [doc.exhibit.url for doc in self.documents if not doc.success]

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "accession_number": self.accession_number,
            "filing_url": self.filing_url,
            "statements": [s.to_dict() for s in self.statements],
            "documents": [doc.to_dict() for doc in self.documents],
            "failed_documents": self.failed_documents,
        }


@dataclass
class LanguageMetrics:
    """Lexicon hit rates for a block of text, per 1000 words."""

    words_total: int
    hedges_per_k: float
    negations_per_k: float
    uncertainty_per_k: float
    vague_per_k: float
    source_section: str = PREPARED_REMARKS

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "words_total": self.words_total,
            "hedges_per_k": self.hedges_per_k,
            "negations_per_k": self.negations_per_k,
            "uncertainty_per_k": self.uncertainty_per_k,
            "vague_per_k": self.vague_per_k,
            "source_section": self.source_section,
        }


@dataclass
class ScoreCard:
    """Credibility scores for one company, as persisted."""

    ticker: str
    period_id: int
    fy: int | None
    fp: str | None
    tra: int
    cvp: int
    lr: int
    gci: int
    badge: str
    rationale: str = ""

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "ticker": self.ticker,
            "period_id": self.period_id,
            "fy": self.fy,
            "fp": self.fp,
            "tra": self.tra,
            "cvp": self.cvp,
            "lr": self.lr,
            "gci": self.gci,
            "badge": self.badge,
            "rationale": self.rationale,
        }


@dataclass
class TickerResult:
    """Outcome of one ticker within a batch operation."""

    ticker: str
    success: bool
    error: str | None = None
    count: int | None = None
    words_total: int | None = None
    details: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        data: dict[str, Any] = {"ticker": self.ticker, "ok": self.success}
        if self.error is not None:
            data["error"] = self.error
        if self.count is not None:
            data["count"] = self.count
        if self.words_total is not None:
            data["words_total"] = self.words_total
        data.update(self.details)
        return data
