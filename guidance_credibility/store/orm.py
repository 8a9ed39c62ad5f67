"""
SQLAlchemy ORM models for guidance credibility data.

Tables:
- companies: one row per ticker; cik is the external id
- periods: fiscal periods, keyed by (company, fy, fp, period_end)
- guidance: append-only extracted guidance ranges
- actuals: one reported value per (period, metric)
- exhibits: append-only audit trail of documents examined
- language_metrics: one row per language analysis run
- scores: one score row per period
"""

from datetime import date

from sqlalchemy import (
    Boolean,
    Date,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class Company(Base):
    __tablename__ = "companies"

    id: Mapped[int] = mapped_column(primary_key=True)
    ticker: Mapped[str] = mapped_column(String(16), unique=True, nullable=False)
    cik: Mapped[str] = mapped_column(String(10), nullable=False)
    name: Mapped[str | None] = mapped_column(String(255))


class Period(Base):
    __tablename__ = "periods"

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False)
    fy: Mapped[int | None] = mapped_column(Integer)
    fp: Mapped[str | None] = mapped_column(String(4))
    period_end: Mapped[date | None] = mapped_column(Date)
    source_filing_url: Mapped[str | None] = mapped_column(Text)
    source_exhibit_url: Mapped[str | None] = mapped_column(Text)
    transcript_url: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        Index("idx_periods_company", "company_id", "fy", "fp"),
    )


class Guidance(Base):
    __tablename__ = "guidance"

    id: Mapped[int] = mapped_column(primary_key=True)
    period_id: Mapped[int] = mapped_column(ForeignKey("periods.id"), nullable=False)
    metric: Mapped[str] = mapped_column(String(32), nullable=False)
    min_value: Mapped[float] = mapped_column(Float, nullable=False)
    max_value: Mapped[float] = mapped_column(Float, nullable=False)
    units: Mapped[str] = mapped_column(String(16), nullable=False)
    basis: Mapped[str] = mapped_column(String(16), nullable=False)
    extracted_text: Mapped[str] = mapped_column(Text, nullable=False)
    segment: Mapped[str | None] = mapped_column(String(255))
    source_url: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        Index("idx_guidance_period_metric", "period_id", "metric"),
    )


class Actual(Base):
    __tablename__ = "actuals"

    id: Mapped[int] = mapped_column(primary_key=True)
    period_id: Mapped[int] = mapped_column(ForeignKey("periods.id"), nullable=False)
    metric: Mapped[str] = mapped_column(String(32), nullable=False)
    actual_value: Mapped[float] = mapped_column(Float, nullable=False)
    units: Mapped[str] = mapped_column(String(16), nullable=False)
    source_tag: Mapped[str | None] = mapped_column(String(128))
    source_api_url: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        UniqueConstraint("period_id", "metric", name="uq_actuals_period_metric"),
    )


class Exhibit(Base):
    __tablename__ = "exhibits"

    id: Mapped[int] = mapped_column(primary_key=True)
    period_id: Mapped[int] = mapped_column(ForeignKey("periods.id"), nullable=False)
    exhibit_no: Mapped[str] = mapped_column(String(16), nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    content_type: Mapped[str | None] = mapped_column(String(64))
    file_name: Mapped[str | None] = mapped_column(String(255))
    text_cache_path: Mapped[str | None] = mapped_column(Text)
    deferred_guidance_flag: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class LanguageMetric(Base):
    __tablename__ = "language_metrics"

    id: Mapped[int] = mapped_column(primary_key=True)
    period_id: Mapped[int] = mapped_column(ForeignKey("periods.id"), nullable=False)
    words_total: Mapped[int] = mapped_column(Integer, nullable=False)
    hedges_per_k: Mapped[float] = mapped_column(Float, nullable=False)
    negations_per_k: Mapped[float] = mapped_column(Float, nullable=False)
    uncertainty_per_k: Mapped[float] = mapped_column(Float, nullable=False)
    vague_per_k: Mapped[float] = mapped_column(Float, nullable=False)
    source_section: Mapped[str] = mapped_column(String(16), nullable=False)


class Score(Base):
    __tablename__ = "scores"

    id: Mapped[int] = mapped_column(primary_key=True)
    period_id: Mapped[int] = mapped_column(ForeignKey("periods.id"), unique=True, nullable=False)
    tra: Mapped[int] = mapped_column(Integer, nullable=False)
    cvp: Mapped[int] = mapped_column(Integer, nullable=False)
    lr: Mapped[int] = mapped_column(Integer, nullable=False)
    gci: Mapped[int] = mapped_column(Integer, nullable=False)
    badge: Mapped[str] = mapped_column(String(16), nullable=False)
    rationale: Mapped[str | None] = mapped_column(Text)
