from __future__ import annotations

import enum
import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date

from sqlalchemy.orm import Session

from ledger_fx.core.config import settings
from ledger_fx.core.logging import get_logger, log_event, monotonic_ms
from ledger_fx.modules.fx.client import RatesFetcher
from ledger_fx.modules.fx.errors import FxError
from ledger_fx.modules.fx.parser import RatesDocument, extract_as_of, parse_rate_table
from ledger_fx.modules.fx.store import SaveReport, is_up_to_date, save_rates
from ledger_fx.modules.fx.timestamps import Clock, utc_clock

logger = get_logger(__name__)


class IngestState(str, enum.Enum):
    FETCH_FAILED = "fetch_failed"
    FRESH = "fresh"
    PARSE_FAILED = "parse_failed"
    REJECTED = "rejected"
    STORE_ERROR = "store_error"
    STORED = "stored"


@dataclass
class IngestResult:
    currency: str
    state: IngestState
    rate_date: date | None = None
    rows_parsed: int = 0
    report: SaveReport = field(default_factory=SaveReport)
    error: str | None = None

    @property
    def was_up_to_date(self) -> bool:
        return self.state == IngestState.FRESH

    @property
    def ok(self) -> bool:
        return self.state in {IngestState.FRESH, IngestState.STORED}

    def as_dict(self) -> dict:
        return {
            "currency": self.currency,
            "state": self.state.value,
            "rate_date": self.rate_date.isoformat() if self.rate_date else None,
            "rows_parsed": self.rows_parsed,
            "was_up_to_date": self.was_up_to_date,
            "rows_attempted": self.report.attempted,
            "rows_stored": self.report.succeeded,
            "errors": [str(e) for e in self.report.errors],
            "error": self.error,
        }


def normalize_requested_currency(value: str) -> str:
    code = value.strip().upper()
    if not code:
        raise ValueError("currency must not be empty")
    return code


class RateIngestor:
    """Fetch, date, freshness-check, parse and store rate tables, one base currency at a time.

    The page is always fetched: its as-of date is only known from the document, and
    the freshness check needs that date. Only parsing and storing are skipped when the
    store already holds scraped rates for that currency and day.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        fetcher: RatesFetcher,
        *,
        delay_seconds: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Clock = utc_clock,
    ) -> None:
        self.session_factory = session_factory
        self.fetcher = fetcher
        self.delay_seconds = (
            settings.fx_batch_delay_seconds if delay_seconds is None else delay_seconds
        )
        self.sleep = sleep
        self.clock = clock

    def ingest(self, currency: str) -> IngestResult:
        currency = normalize_requested_currency(currency)
        start = time.monotonic()

        try:
            html = self.fetcher.fetch(currency)
        except FxError as e:
            return self._failed(currency, IngestState.FETCH_FAILED, e, start=start)

        try:
            document = RatesDocument.parse(html)
        except FxError as e:
            return self._failed(currency, IngestState.PARSE_FAILED, e, start=start)
        rate_date = extract_as_of(document, clock=self.clock)

        with self.session_factory() as session:
            if is_up_to_date(session, from_currency=currency, day=rate_date):
                log_event(
                    logger,
                    "fx.ingest.fresh",
                    currency=currency,
                    rate_date=rate_date.isoformat(),
                    duration_ms=monotonic_ms(start),
                )
                return IngestResult(currency=currency, state=IngestState.FRESH, rate_date=rate_date)

            try:
                rates = parse_rate_table(document, from_currency=currency, rate_date=rate_date)
            except FxError as e:
                return self._failed(
                    currency, IngestState.PARSE_FAILED, e, start=start, rate_date=rate_date
                )
            log_event(logger, "fx.ingest.parsed", currency=currency, rows=len(rates))

            report = save_rates(session, rates)

        state = IngestState.STORED if report.ok else IngestState.STORE_ERROR
        log_event(
            logger,
            "fx.ingest.stored",
            level=logging.INFO if report.ok else logging.WARNING,
            currency=currency,
            rate_date=rate_date.isoformat(),
            rows_attempted=report.attempted,
            rows_stored=report.succeeded,
            duration_ms=monotonic_ms(start),
        )
        return IngestResult(
            currency=currency,
            state=state,
            rate_date=rate_date,
            rows_parsed=len(rates),
            report=report,
            error=f"{report.failed} of {report.attempted} rows failed" if not report.ok else None,
        )

    def ingest_many(self, currencies: Iterable[str]) -> dict[str, IngestResult]:
        results: dict[str, IngestResult] = {}
        for i, currency in enumerate(currencies):
            if i:
                self.sleep(self.delay_seconds)
            try:
                code = normalize_requested_currency(currency)
            except ValueError as e:
                results[currency.strip()] = self._failed(
                    currency.strip(), IngestState.REJECTED, e, start=time.monotonic()
                )
                continue
            result = self.ingest(code)
            results[result.currency] = result
        return results

    def _failed(
        self,
        currency: str,
        state: IngestState,
        error: Exception,
        *,
        start: float,
        rate_date: date | None = None,
    ) -> IngestResult:
        log_event(
            logger,
            "fx.ingest.failed",
            level=logging.ERROR,
            currency=currency,
            state=state.value,
            error=str(error),
            duration_ms=monotonic_ms(start),
        )
        return IngestResult(currency=currency, state=state, rate_date=rate_date, error=str(error))

