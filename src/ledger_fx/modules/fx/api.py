from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from ledger_fx.core.db import db_session
from ledger_fx.modules.fx.models import ExchangeRateSource
from ledger_fx.modules.fx.schemas import (
    BulkDeleteOut,
    ConversionIn,
    ConversionOut,
    ExchangeRateCreate,
    ExchangeRateOut,
    ExchangeRatePage,
    ExchangeRateUpdate,
    IngestIn,
    IngestResultOut,
)
from ledger_fx.modules.fx.service import (
    convert_amount,
    correct_rate,
    create_manual_rate,
    delete_rates_matching,
    get_rate_or_404,
    run_ingestion,
)
from ledger_fx.modules.fx.store import delete_rate, list_rates

router = APIRouter(tags=["fx"])


@router.get("/exchange-rates", response_model=ExchangeRatePage)
def list_rates_endpoint(
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=50, ge=1, le=500),
    from_currency: str | None = None,
    to_currency: str | None = None,
    source: ExchangeRateSource | None = None,
    day: date | None = Query(default=None, alias="date"),
    session: Session = Depends(db_session),
) -> ExchangeRatePage:
    items, total = list_rates(
        session,
        page=page,
        page_size=page_size,
        from_currency=from_currency,
        to_currency=to_currency,
        day=day,
        source=source,
    )
    return ExchangeRatePage(
        items=[ExchangeRateOut.model_validate(fx, from_attributes=True) for fx in items],
        page=page,
        page_size=page_size,
        total=total,
    )


@router.post("/exchange-rates", response_model=ExchangeRateOut, status_code=201)
def create_rate_endpoint(
    payload: ExchangeRateCreate,
    session: Session = Depends(db_session),
) -> ExchangeRateOut:
    fx = create_manual_rate(session, payload=payload)
    return ExchangeRateOut.model_validate(fx, from_attributes=True)


@router.delete("/exchange-rates", response_model=BulkDeleteOut)
def bulk_delete_endpoint(
    from_currency: str | None = None,
    day: date | None = Query(default=None, alias="date"),
    source: ExchangeRateSource | None = None,
    session: Session = Depends(db_session),
) -> BulkDeleteOut:
    deleted = delete_rates_matching(session, from_currency=from_currency, day=day, source=source)
    return BulkDeleteOut(deleted=deleted)


@router.post("/exchange-rates/convert", response_model=ConversionOut)
def convert_endpoint(
    payload: ConversionIn,
    session: Session = Depends(db_session),
) -> ConversionOut:
    return convert_amount(
        session,
        from_currency=payload.from_currency,
        to_currency=payload.to_currency,
        amount=payload.amount,
    )


@router.post("/exchange-rates/ingest", response_model=list[IngestResultOut])
def ingest_endpoint(payload: IngestIn) -> list[IngestResultOut]:
    try:
        results = run_ingestion(payload.currencies)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return [IngestResultOut(**r.as_dict()) for r in results.values()]


@router.get("/exchange-rates/{rate_id}", response_model=ExchangeRateOut)
def get_rate_endpoint(rate_id: int, session: Session = Depends(db_session)) -> ExchangeRateOut:
    fx = get_rate_or_404(session, rate_id=rate_id)
    return ExchangeRateOut.model_validate(fx, from_attributes=True)


@router.put("/exchange-rates/{rate_id}", response_model=ExchangeRateOut)
def update_rate_endpoint(
    rate_id: int,
    payload: ExchangeRateUpdate,
    session: Session = Depends(db_session),
) -> ExchangeRateOut:
    fx = correct_rate(session, rate_id=rate_id, payload=payload)
    return ExchangeRateOut.model_validate(fx, from_attributes=True)


@router.delete("/exchange-rates/{rate_id}")
def delete_rate_endpoint(rate_id: int, session: Session = Depends(db_session)) -> Response:
    fx = get_rate_or_404(session, rate_id=rate_id)
    delete_rate(session, fx=fx)
    return Response(status_code=204)
