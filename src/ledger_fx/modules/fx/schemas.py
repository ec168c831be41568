from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field

from ledger_fx.modules.fx.models import ExchangeRateSource


class ExchangeRateCreate(BaseModel):
    from_currency: str = Field(min_length=1)
    to_currency: str = Field(min_length=1)
    rate: float = Field(gt=0)
    rate_date: datetime | None = None
    source: ExchangeRateSource = ExchangeRateSource.MANUAL


class ExchangeRateUpdate(BaseModel):
    rate: float | None = Field(default=None, gt=0)
    source: ExchangeRateSource | None = None


class ExchangeRateOut(BaseModel):
    id: int
    from_currency: str
    to_currency: str
    rate: float
    rate_date: datetime
    source: ExchangeRateSource
    created_at: datetime
    updated_at: datetime


class ExchangeRatePage(BaseModel):
    items: list[ExchangeRateOut]
    page: int
    page_size: int
    total: int


class ConversionIn(BaseModel):
    from_currency: str = Field(min_length=1)
    to_currency: str = Field(min_length=1)
    amount: float


class ConversionOut(BaseModel):
    from_currency: str
    to_currency: str
    amount: float
    rate: float
    converted_amount: float


class BulkDeleteOut(BaseModel):
    deleted: int


class IngestIn(BaseModel):
    currencies: list[str] = Field(default_factory=list)


class IngestResultOut(BaseModel):
    currency: str
    state: str
    rate_date: date | None
    rows_parsed: int
    was_up_to_date: bool
    rows_attempted: int
    rows_stored: int
    errors: list[str]
    error: str | None
