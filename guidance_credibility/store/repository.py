"""
Relational store access.

The Repository owns the SQLAlchemy engine and exposes the reads and writes
the pipeline stages need. Actuals and scores are replaced through the
dialect's INSERT ... ON CONFLICT DO UPDATE so that a re-run never leaves
duplicates behind.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Iterator

from sqlalchemy import create_engine, select, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from guidance_credibility.errors import PersistenceError
from guidance_credibility.models import (
    ExhibitRef,
    GuidanceStatement,
    LanguageMetrics,
    ScoreCard,
)
from guidance_credibility.store.orm import (
    Actual,
    Base,
    Company,
    Exhibit,
    Guidance,
    LanguageMetric,
    Period,
    Score,
)

# Columns added after the first schema release: (table, column, DDL type)
SCHEMA_MIGRATIONS = [
    ("guidance", "segment", "VARCHAR(255)"),
    ("periods", "transcript_url", "TEXT"),
    ("exhibits", "deferred_guidance_flag", "BOOLEAN NOT NULL DEFAULT FALSE"),
]

_IGNORABLE_DDL_ERRORS = ("duplicate column", "already exists")


@dataclass
class GuidancePair:
    """A consolidated guidance row joined to the actual of the same period and metric."""

    period_id: int
    fy: int | None
    fp: str | None
    period_end: date | None
    metric: str
    guided_mid: float | None
    actual_value: float | None


def null_safe_equals(column, value):
    """Equality that treats NULL as equal to NULL."""
    if value is None:
        return column.is_(None)
    return column == value


class Repository:
    """
    Reads and writes the guidance credibility schema.

    This class handles:
    - Engine setup (in-memory SQLite shares one connection)
    - Schema creation and additive column migrations
    - Transaction scoping with PersistenceError on failure
    - Atomic upserts for actuals and scores
    """

    def __init__(self, database_url: str, echo: bool = False):
        """
        Initialize the repository and make sure the schema exists.

        Args:
            database_url: SQLAlchemy database URL
            echo: Whether to log emitted SQL
        """
        self.database_url = database_url

        kwargs: dict = {"echo": echo}
        if database_url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                kwargs["poolclass"] = StaticPool
            else:
                db_path = database_url.split("///", 1)[-1]
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        try:
            self.engine = create_engine(database_url, **kwargs)
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not initialize store at {database_url}: {e}") from e

        self._sessions = sessionmaker(self.engine, expire_on_commit=False)
        self._migrate()

    def _migrate(self) -> None:
        """Apply additive column migrations, ignoring ones already in place."""
        for table, column, ddl_type in SCHEMA_MIGRATIONS:
            statement = text(f"ALTER TABLE {table} ADD COLUMN {column} {ddl_type}")
            try:
                with self.engine.begin() as conn:
                    conn.execute(statement)
            except DBAPIError as e:
                message = str(e.orig).lower()
                if not any(marker in message for marker in _IGNORABLE_DDL_ERRORS):
                    raise PersistenceError(f"Migration failed for {table}.{column}: {e}") from e

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Transactional session; commits on success, rolls back on error."""
        session = self._sessions()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError(str(e)) from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _insert(self, model):
        dialect = self.engine.dialect.name
        if dialect == "postgresql":
            return postgresql.insert(model)
        if dialect == "sqlite":
            return sqlite.insert(model)
        raise PersistenceError(f"Upsert not supported for dialect: {dialect}")

    # Companies

    def upsert_company(self, ticker: str, cik: str, name: str | None = None) -> int:
        """Create the company once per ticker; later calls only refresh the name."""
        ticker = ticker.upper()
        with self.session() as session:
            company = session.scalars(select(Company).where(Company.ticker == ticker)).first()
            if company is None:
                company = Company(ticker=ticker, cik=cik, name=name)
                session.add(company)
                session.flush()
            elif name:
                company.name = name
            return company.id

    def get_company(self, ticker: str) -> Company | None:
        with self.session() as session:
            return session.scalars(
                select(Company).where(Company.ticker == ticker.upper())
            ).first()

    def list_companies(self) -> list[Company]:
        with self.session() as session:
            return list(session.scalars(select(Company).order_by(Company.ticker)))

    # Periods

    def find_period(
        self,
        session: Session,
        company_id: int,
        fy: int | None,
        fp: str | None,
        period_end: date | None,
    ) -> Period | None:
        """Exact match on the period identity key, NULL matching NULL."""
        return session.scalars(
            select(Period)
            .where(
                Period.company_id == company_id,
                null_safe_equals(Period.fy, fy),
                null_safe_equals(Period.fp, fp),
                null_safe_equals(Period.period_end, period_end),
            )
            .order_by(Period.id)
        ).first()

    def get_period(self, period_id: int) -> Period | None:
        with self.session() as session:
            return session.get(Period, period_id)

    def count_periods(self, company_id: int) -> int:
        with self.session() as session:
            return len(session.scalars(select(Period.id).where(Period.company_id == company_id)).all())

    # Guidance and exhibits

    def add_guidance(self, period_id: int, statements: list[GuidanceStatement]) -> int:
        """Append guidance rows to a period. Returns the number of rows written."""
        with self.session() as session:
            for statement in statements:
                session.add(
                    Guidance(
                        period_id=period_id,
                        metric=statement.metric,
                        min_value=statement.min_value,
                        max_value=statement.max_value,
                        units=statement.units,
                        basis=statement.basis,
                        extracted_text=statement.extracted_text,
                        segment=statement.segment,
                        source_url=statement.source_url,
                    )
                )
        return len(statements)

    def add_exhibit(
        self,
        period_id: int,
        exhibit: ExhibitRef,
        text_path: Path | None = None,
        deferred_guidance: bool = False,
    ) -> int:
        with self.session() as session:
            row = Exhibit(
                period_id=period_id,
                exhibit_no=exhibit.exhibit_no,
                url=exhibit.url,
                content_type=exhibit.content_type,
                file_name=exhibit.file_name,
                text_cache_path=str(text_path) if text_path else None,
                deferred_guidance_flag=deferred_guidance,
            )
            session.add(row)
            session.flush()
            return row.id

    def list_exhibits(self, period_id: int) -> list[Exhibit]:
        with self.session() as session:
            return list(
                session.scalars(select(Exhibit).where(Exhibit.period_id == period_id).order_by(Exhibit.id))
            )

    def list_guidance(self, company_id: int) -> list[Guidance]:
        with self.session() as session:
            return list(
                session.scalars(
                    select(Guidance)
                    .join(Period, Guidance.period_id == Period.id)
                    .where(Period.company_id == company_id)
                    .order_by(Guidance.id)
                )
            )

    def guidance_pairs(self, company_id: int) -> list[tuple[int, int | None, str | None, str]]:
        """Distinct (period_id, fy, fp, metric) combinations that carry guidance."""
        with self.session() as session:
            rows = session.execute(
                select(Period.id, Period.fy, Period.fp, Guidance.metric)
                .join(Guidance, Guidance.period_id == Period.id)
                .where(Period.company_id == company_id)
                .distinct()
                .order_by(Period.id, Guidance.metric)
            ).all()
        return [tuple(row) for row in rows]

    # Actuals

    def upsert_actual(
        self,
        period_id: int,
        metric: str,
        actual_value: float,
        units: str,
        source_tag: str | None = None,
        source_api_url: str | None = None,
    ) -> None:
        """Insert or replace the actual for (period, metric) in one statement."""
        values = {
            "period_id": period_id,
            "metric": metric,
            "actual_value": actual_value,
            "units": units,
            "source_tag": source_tag,
            "source_api_url": source_api_url,
        }
        stmt = self._insert(Actual).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["period_id", "metric"],
            set_={
                "actual_value": stmt.excluded.actual_value,
                "units": stmt.excluded.units,
                "source_tag": stmt.excluded.source_tag,
                "source_api_url": stmt.excluded.source_api_url,
            },
        )
        with self.session() as session:
            session.execute(stmt)

    def list_actuals(self, period_id: int) -> list[Actual]:
        with self.session() as session:
            return list(
                session.scalars(select(Actual).where(Actual.period_id == period_id).order_by(Actual.metric))
            )

    # Language metrics

    def add_language_metrics(self, period_id: int, metrics: LanguageMetrics) -> int:
        with self.session() as session:
            row = LanguageMetric(
                period_id=period_id,
                words_total=metrics.words_total,
                hedges_per_k=metrics.hedges_per_k,
                negations_per_k=metrics.negations_per_k,
                uncertainty_per_k=metrics.uncertainty_per_k,
                vague_per_k=metrics.vague_per_k,
                source_section=metrics.source_section,
            )
            session.add(row)
            session.flush()
            return row.id

    def latest_language_metrics(self, company_id: int) -> LanguageMetrics | None:
        """Most recently stored language metrics for any period of the company."""
        with self.session() as session:
            row = session.scalars(
                select(LanguageMetric)
                .join(Period, LanguageMetric.period_id == Period.id)
                .where(Period.company_id == company_id)
                .order_by(LanguageMetric.id.desc())
            ).first()
        if row is None:
            return None
        return LanguageMetrics(
            words_total=row.words_total,
            hedges_per_k=row.hedges_per_k,
            negations_per_k=row.negations_per_k,
            uncertainty_per_k=row.uncertainty_per_k,
            vague_per_k=row.vague_per_k,
            source_section=row.source_section,
        )

    # Scoring inputs and outputs

    def guidance_with_actuals(self, company_id: int) -> list[GuidancePair]:
        """Consolidated guidance joined to actuals; ordering is left to the caller."""
        guided_mid = (Guidance.min_value + Guidance.max_value) / 2
        with self.session() as session:
            rows = session.execute(
                select(
                    Period.id,
                    Period.fy,
                    Period.fp,
                    Period.period_end,
                    Guidance.metric,
                    guided_mid,
                    Actual.actual_value,
                )
                .join(Guidance, Guidance.period_id == Period.id)
                .join(
                    Actual,
                    (Actual.period_id == Guidance.period_id) & (Actual.metric == Guidance.metric),
                )
                .where(Period.company_id == company_id, Guidance.segment.is_(None))
                .order_by(Period.id, Guidance.id)
            ).all()
        return [GuidancePair(*row) for row in rows]

    def companies_with_pairs(self) -> list[Company]:
        """Companies with at least one consolidated guidance row that has a matching actual."""
        with self.session() as session:
            company_ids = (
                select(Period.company_id)
                .join(Guidance, Guidance.period_id == Period.id)
                .join(
                    Actual,
                    (Actual.period_id == Guidance.period_id) & (Actual.metric == Guidance.metric),
                )
                .where(Guidance.segment.is_(None))
            )
            return list(
                session.scalars(
                    select(Company).where(Company.id.in_(company_ids)).order_by(Company.ticker)
                )
            )

    def upsert_score(
        self,
        period_id: int,
        tra: int,
        cvp: int,
        lr: int,
        gci: int,
        badge: str,
        rationale: str = "",
    ) -> None:
        """Insert or replace the score of a period in one statement."""
        stmt = self._insert(Score).values(
            period_id=period_id, tra=tra, cvp=cvp, lr=lr, gci=gci, badge=badge, rationale=rationale
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["period_id"],
            set_={
                "tra": stmt.excluded.tra,
                "cvp": stmt.excluded.cvp,
                "lr": stmt.excluded.lr,
                "gci": stmt.excluded.gci,
                "badge": stmt.excluded.badge,
                "rationale": stmt.excluded.rationale,
            },
        )
        with self.session() as session:
            session.execute(stmt)

    def list_scores(self) -> list[ScoreCard]:
        """All persisted scores with their company and period."""
        with self.session() as session:
            rows = session.execute(
                select(Company.ticker, Score, Period.fy, Period.fp)
                .join(Period, Score.period_id == Period.id)
                .join(Company, Period.company_id == Company.id)
                .order_by(Company.ticker, Score.id)
            ).all()
        return [
            ScoreCard(
                ticker=ticker,
                period_id=score.period_id,
                fy=fy,
                fp=fp,
                tra=score.tra,
                cvp=score.cvp,
                lr=score.lr,
                gci=score.gci,
                badge=score.badge,
                rationale=score.rationale or "",
            )
            for ticker, score, fy, fp in rows
        ]
