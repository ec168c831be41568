from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from ledger_fx.core.config import settings
from ledger_fx.core.db import SessionLocal
from ledger_fx.modules.fx.client import RatesPageFetcher
from ledger_fx.modules.fx.errors import InvalidFilter, InvalidRate
from ledger_fx.modules.fx.ingestion import IngestResult, RateIngestor, normalize_requested_currency
from ledger_fx.modules.fx.models import ExchangeRate
from ledger_fx.modules.fx.resolver import RateResolver
from ledger_fx.modules.fx.schemas import ConversionOut, ExchangeRateCreate, ExchangeRateUpdate
from ledger_fx.modules.fx.store import add_rate, bulk_delete, get_rate, update_rate


def get_rate_or_404(session: Session, *, rate_id: int) -> ExchangeRate:
    fx = get_rate(session, rate_id=rate_id)
    if not fx:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exchange rate not found")
    return fx


def create_manual_rate(session: Session, *, payload: ExchangeRateCreate) -> ExchangeRate:
    try:
        return add_rate(session, **payload.model_dump())
    except InvalidRate as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e


def correct_rate(session: Session, *, rate_id: int, payload: ExchangeRateUpdate) -> ExchangeRate:
    fx = get_rate_or_404(session, rate_id=rate_id)
    try:
        return update_rate(session, fx=fx, **payload.model_dump(exclude_unset=True))
    except InvalidRate as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e


def delete_rates_matching(
    session: Session,
    *,
    from_currency: str | None = None,
    day: date | None = None,
    source: str | None = None,
) -> int:
    try:
        return bulk_delete(session, from_currency=from_currency, day=day, source=source)
    except (InvalidFilter, InvalidRate) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e


def convert_amount(
    session: Session, *, from_currency: str, to_currency: str, amount: float
) -> ConversionOut:
    """Convert using strict resolution; an unknown pair is a 404, never a silent 1.0."""
    rate = RateResolver(session).resolve(from_currency, to_currency)
    if rate is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No rate found from {from_currency} to {to_currency}",
        )
    return ConversionOut(
        from_currency=from_currency,
        to_currency=to_currency,
        amount=amount,
        rate=rate,
        converted_amount=amount * rate,
    )


def format_conversion(
    session: Session, *, amount: float, from_currency: str, to_currency: str
) -> str:
    """Render ``amount`` in ``to_currency`` for display; unresolvable pairs render at parity."""
    rate = RateResolver(session).resolve_for_display(from_currency, to_currency)
    return f"{amount:.2f} {from_currency} = {amount * rate:.2f} {to_currency} (rate: {rate:.6f})"


def run_ingestion(currencies: Sequence[str] | None = None) -> dict[str, IngestResult]:
    requested = [
        normalize_requested_currency(c) for c in (currencies or settings.fx_default_currencies)
    ]
    with RatesPageFetcher() as fetcher:
        return RateIngestor(SessionLocal, fetcher).ingest_many(requested)
