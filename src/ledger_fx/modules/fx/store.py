from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time, timedelta

from sqlalchemy import ColumnElement, delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ledger_fx.core.logging import get_logger, log_event
from ledger_fx.modules.fx.currency import normalize_currency_code
from ledger_fx.modules.fx.errors import InvalidFilter, InvalidRate, PersistenceError
from ledger_fx.modules.fx.models import ExchangeRate, ExchangeRateSource
from ledger_fx.modules.fx.parser import ParsedRate

logger = get_logger(__name__)


@dataclass
class SaveReport:
    attempted: int = 0
    succeeded: int = 0
    errors: list[PersistenceError] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return self.attempted - self.succeeded

    @property
    def ok(self) -> bool:
        return not self.errors


def day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min, tzinfo=UTC)
    return start, start + timedelta(days=1)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def coerce_source(source: str | ExchangeRateSource) -> ExchangeRateSource:
    try:
        return ExchangeRateSource(source)
    except ValueError as e:
        allowed = ", ".join(s.value for s in ExchangeRateSource)
        raise InvalidRate(f"source must be one of: {allowed}") from e


def validate_rate(rate: float) -> float:
    rate = float(rate)
    if not math.isfinite(rate) or rate <= 0:
        raise InvalidRate("rate must be a positive number")
    return rate


def add_rate(
    session: Session,
    *,
    from_currency: str,
    to_currency: str,
    rate: float,
    rate_date: datetime | None = None,
    source: str | ExchangeRateSource = ExchangeRateSource.MANUAL,
) -> ExchangeRate:
    from_currency = from_currency.strip()
    to_currency = to_currency.strip()
    if not from_currency or not to_currency:
        raise InvalidRate("from_currency and to_currency are required")

    fx = ExchangeRate(
        from_currency=from_currency,
        to_currency=to_currency,
        rate=validate_rate(rate),
        rate_date=_as_utc(rate_date) if rate_date else datetime.now(UTC),
        source=coerce_source(source),
    )
    session.add(fx)
    session.commit()
    session.refresh(fx)
    return fx


def save_rates(
    session: Session,
    rates: Iterable[ParsedRate],
    *,
    source: ExchangeRateSource = ExchangeRateSource.SCRAPER,
) -> SaveReport:
    """Insert parsed rates one row at a time.

    Rows are committed individually: a failure leaves earlier rows in place and is
    recorded on the report instead of aborting the loop.
    """
    report = SaveReport()
    for r in rates:
        report.attempted += 1
        try:
            add_rate(
                session,
                from_currency=r.from_currency,
                to_currency=r.to_currency,
                rate=r.rate,
                rate_date=datetime.combine(r.rate_date, time.min, tzinfo=UTC),
                source=source,
            )
        except (SQLAlchemyError, InvalidRate) as e:
            session.rollback()
            err = PersistenceError(f"{r.from_currency}->{r.to_currency}: {e}")
            report.errors.append(err)
            log_event(
                logger,
                "fx.store.row_failed",
                level=logging.ERROR,
                from_currency=r.from_currency,
                to_currency=r.to_currency,
                error=str(e),
            )
            continue
        report.succeeded += 1
    return report


def _latest_first(stmt):
    return stmt.order_by(
        ExchangeRate.rate_date.desc(), ExchangeRate.created_at.desc(), ExchangeRate.id.desc()
    )


def latest_rate(session: Session, *, from_currency: str, to_currency: str) -> ExchangeRate | None:
    return session.scalar(
        _latest_first(
            select(ExchangeRate).where(
                ExchangeRate.from_currency == from_currency,
                ExchangeRate.to_currency == to_currency,
            )
        ).limit(1)
    )


def _code_matches(column, code: str) -> ColumnElement[bool]:
    return or_(column == code, column.like(f"%({code})"))


def latest_rate_for_codes(
    session: Session, *, from_code: str, to_code: str
) -> ExchangeRate | None:
    """Most recent observation whose identifiers normalize to the given codes.

    Matches bare codes (``"USD"``) as well as display strings (``"US Dollar (USD)"``).
    """
    stmt = _latest_first(
        select(ExchangeRate).where(
            _code_matches(ExchangeRate.from_currency, from_code),
            _code_matches(ExchangeRate.to_currency, to_code),
        )
    )
    # LIKE is case-insensitive on some backends; confirm the exact code in Python.
    for fx in session.scalars(stmt):
        if (
            normalize_currency_code(fx.from_currency) == from_code
            and normalize_currency_code(fx.to_currency) == to_code
        ):
            return fx
    return None


def count_scraper_rates(session: Session, *, from_currency: str, day: date) -> int:
    start, end = day_bounds(day)
    return session.scalar(
        select(func.count())
        .select_from(ExchangeRate)
        .where(
            ExchangeRate.from_currency == from_currency,
            ExchangeRate.source == ExchangeRateSource.SCRAPER,
            ExchangeRate.rate_date >= start,
            ExchangeRate.rate_date < end,
        )
    ) or 0


def is_up_to_date(session: Session, *, from_currency: str, day: date) -> bool:
    """True when scraped rates for ``from_currency`` already cover ``day``."""
    return count_scraper_rates(session, from_currency=from_currency, day=day) > 0


def _filters(
    *,
    from_currency: str | None = None,
    to_currency: str | None = None,
    day: date | None = None,
    source: str | ExchangeRateSource | None = None,
) -> list[ColumnElement[bool]]:
    conditions: list[ColumnElement[bool]] = []
    if from_currency:
        conditions.append(ExchangeRate.from_currency == from_currency)
    if to_currency:
        conditions.append(ExchangeRate.to_currency == to_currency)
    if day:
        start, end = day_bounds(day)
        conditions.append(ExchangeRate.rate_date >= start)
        conditions.append(ExchangeRate.rate_date < end)
    if source:
        conditions.append(ExchangeRate.source == coerce_source(source))
    return conditions


def bulk_delete(
    session: Session,
    *,
    from_currency: str | None = None,
    day: date | None = None,
    source: str | ExchangeRateSource | None = None,
) -> int:
    conditions = _filters(from_currency=from_currency, day=day, source=source)
    if not conditions:
        raise InvalidFilter("At least one of from_currency, date or source is required")
    result = session.execute(delete(ExchangeRate).where(*conditions))
    session.commit()
    return result.rowcount or 0


def get_rate(session: Session, *, rate_id: int) -> ExchangeRate | None:
    return session.scalar(select(ExchangeRate).where(ExchangeRate.id == rate_id))


def update_rate(
    session: Session,
    *,
    fx: ExchangeRate,
    rate: float | None = None,
    source: str | ExchangeRateSource | None = None,
) -> ExchangeRate:
    if rate is not None:
        fx.rate = validate_rate(rate)
    if source is not None:
        fx.source = coerce_source(source)
    session.add(fx)
    session.commit()
    session.refresh(fx)
    return fx


def delete_rate(session: Session, *, fx: ExchangeRate) -> None:
    session.delete(fx)
    session.commit()


def list_rates(
    session: Session,
    *,
    page: int = 1,
    page_size: int = 50,
    from_currency: str | None = None,
    to_currency: str | None = None,
    day: date | None = None,
    source: str | ExchangeRateSource | None = None,
) -> tuple[list[ExchangeRate], int]:
    conditions = _filters(
        from_currency=from_currency, to_currency=to_currency, day=day, source=source
    )
    total = session.scalar(select(func.count()).select_from(ExchangeRate).where(*conditions)) or 0
    items = list(
        session.scalars(
            select(ExchangeRate)
            .where(*conditions)
            .order_by(ExchangeRate.rate_date.desc(), ExchangeRate.from_currency, ExchangeRate.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
    )
    return items, total


def known_currencies(session: Session) -> list[str]:
    codes: set[str] = set()
    for from_currency, to_currency in session.execute(
        select(ExchangeRate.from_currency, ExchangeRate.to_currency).distinct()
    ):
        codes.add(normalize_currency_code(from_currency))
        codes.add(normalize_currency_code(to_currency))
    return sorted(codes)
