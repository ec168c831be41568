from __future__ import annotations

from datetime import UTC, date, datetime

import pytest
from sqlalchemy import func, select

from ledger_fx.core.db import SessionLocal
from ledger_fx.modules.fx.errors import InvalidFilter, InvalidRate
from ledger_fx.modules.fx.models import ExchangeRate, ExchangeRateSource
from ledger_fx.modules.fx.parser import ParsedRate
from ledger_fx.modules.fx.store import (
    add_rate,
    bulk_delete,
    count_scraper_rates,
    is_up_to_date,
    known_currencies,
    latest_rate,
    latest_rate_for_codes,
    list_rates,
    save_rates,
    update_rate,
)


def _count(session) -> int:
    return session.scalar(select(func.count()).select_from(ExchangeRate))


def _at(day: int, hour: int = 0) -> datetime:
    return datetime(2025, 1, day, hour, tzinfo=UTC)


def test_latest_rate_prefers_most_recent_rate_date():
    with SessionLocal() as session:
        add_rate(session, from_currency="CAD", to_currency="USD", rate=0.70, rate_date=_at(14))
        add_rate(session, from_currency="CAD", to_currency="USD", rate=0.72, rate_date=_at(16))
        add_rate(session, from_currency="CAD", to_currency="USD", rate=0.71, rate_date=_at(15))

        fx = latest_rate(session, from_currency="CAD", to_currency="USD")
        assert fx is not None
        assert fx.rate == 0.72


def test_multiple_observations_per_day_are_allowed():
    with SessionLocal() as session:
        for rate in (0.70, 0.71):
            add_rate(
                session,
                from_currency="CAD",
                to_currency="USD",
                rate=rate,
                rate_date=_at(15),
                source=ExchangeRateSource.SCRAPER,
            )
        assert _count(session) == 2


def test_latest_rate_for_codes_matches_display_strings():
    with SessionLocal() as session:
        add_rate(
            session, from_currency="CAD", to_currency="US Dollar (USD)", rate=0.7, rate_date=_at(15)
        )
        add_rate(session, from_currency="CAD", to_currency="USD", rate=0.69, rate_date=_at(14))
        add_rate(
            session, from_currency="CAD", to_currency="Fake (usd)", rate=9.9, rate_date=_at(20)
        )

        fx = latest_rate_for_codes(session, from_code="CAD", to_code="USD")
        assert fx is not None
        assert fx.rate == 0.7
        assert latest_rate_for_codes(session, from_code="CAD", to_code="EUR") is None


@pytest.mark.parametrize(
    "kwargs",
    [
        {"from_currency": "CAD", "to_currency": "USD", "rate": 0},
        {"from_currency": "CAD", "to_currency": "USD", "rate": -1.5},
        {"from_currency": "CAD", "to_currency": "USD", "rate": float("nan")},
        {"from_currency": " ", "to_currency": "USD", "rate": 1.0},
        {"from_currency": "CAD", "to_currency": "", "rate": 1.0},
        {"from_currency": "CAD", "to_currency": "USD", "rate": 1.0, "source": "guess"},
    ],
)
def test_add_rate_rejects_invalid_observations(kwargs):
    with SessionLocal() as session:
        with pytest.raises(InvalidRate):
            add_rate(session, **kwargs)
        assert _count(session) == 0


def test_freshness_only_counts_scraper_rows_for_that_day():
    with SessionLocal() as session:
        add_rate(
            session,
            from_currency="CAD",
            to_currency="USD",
            rate=0.7,
            rate_date=_at(15, 23),
            source=ExchangeRateSource.MANUAL,
        )
        assert not is_up_to_date(session, from_currency="CAD", day=date(2025, 1, 15))

        add_rate(
            session,
            from_currency="CAD",
            to_currency="USD",
            rate=0.7,
            rate_date=_at(15, 23),
            source=ExchangeRateSource.SCRAPER,
        )
        assert count_scraper_rates(session, from_currency="CAD", day=date(2025, 1, 15)) == 1
        assert is_up_to_date(session, from_currency="CAD", day=date(2025, 1, 15))
        assert not is_up_to_date(session, from_currency="CAD", day=date(2025, 1, 16))
        assert not is_up_to_date(session, from_currency="USD", day=date(2025, 1, 15))


def test_save_rates_reports_failures_and_keeps_earlier_rows():
    day = date(2025, 1, 15)
    rates = [
        ParsedRate("CAD", "US Dollar (USD)", 0.715, day),
        ParsedRate("CAD", "Broken (BRK)", -3.0, day),
        ParsedRate("CAD", "Euro (EUR)", 0.661, day),
    ]
    with SessionLocal() as session:
        report = save_rates(session, rates)

        assert report.attempted == 3
        assert report.succeeded == 2
        assert report.failed == 1
        assert not report.ok
        assert "Broken (BRK)" in str(report.errors[0])

        stored = list(session.scalars(select(ExchangeRate).order_by(ExchangeRate.id)))
        assert [fx.to_currency for fx in stored] == ["US Dollar (USD)", "Euro (EUR)"]
        assert {fx.source for fx in stored} == {ExchangeRateSource.SCRAPER}
        assert is_up_to_date(session, from_currency="CAD", day=day)


def test_bulk_delete_without_filters_is_rejected():
    with SessionLocal() as session:
        add_rate(session, from_currency="CAD", to_currency="USD", rate=0.7)
        with pytest.raises(InvalidFilter):
            bulk_delete(session)
        with pytest.raises(InvalidFilter):
            bulk_delete(session, from_currency="", source=None)
        assert _count(session) == 1


def test_bulk_delete_combines_filters():
    with SessionLocal() as session:
        add_rate(
            session,
            from_currency="CAD",
            to_currency="USD",
            rate=0.7,
            rate_date=_at(15),
            source="scraper",
        )
        add_rate(
            session,
            from_currency="CAD",
            to_currency="EUR",
            rate=0.66,
            rate_date=_at(15),
            source="manual",
        )
        add_rate(
            session,
            from_currency="CAD",
            to_currency="EUR",
            rate=0.65,
            rate_date=_at(14),
            source="scraper",
        )
        add_rate(
            session,
            from_currency="USD",
            to_currency="EUR",
            rate=0.9,
            rate_date=_at(15),
            source="scraper",
        )

        deleted = bulk_delete(
            session, from_currency="CAD", day=date(2025, 1, 15), source="scraper"
        )
        assert deleted == 1
        assert _count(session) == 3

        assert bulk_delete(session, source=ExchangeRateSource.SCRAPER) == 2
        assert _count(session) == 1


def test_update_rate_corrects_rate_and_source():
    with SessionLocal() as session:
        fx = add_rate(session, from_currency="CAD", to_currency="USD", rate=0.7)
        updated = update_rate(session, fx=fx, rate=0.71, source="bank")
        assert updated.rate == 0.71
        assert updated.source == ExchangeRateSource.BANK

        with pytest.raises(InvalidRate):
            update_rate(session, fx=fx, rate=0)


def test_list_rates_filters_and_paginates():
    with SessionLocal() as session:
        for day in (13, 14, 15):
            add_rate(
                session, from_currency="CAD", to_currency="USD", rate=0.7, rate_date=_at(day)
            )
        add_rate(session, from_currency="USD", to_currency="EUR", rate=0.9, rate_date=_at(15))

        items, total = list_rates(session, page=1, page_size=2, from_currency="CAD")
        assert total == 3
        assert len(items) == 2
        assert items[0].rate_date.day == 15

        items, total = list_rates(session, page=2, page_size=2, from_currency="CAD")
        assert total == 3
        assert len(items) == 1

        _, total = list_rates(session, day=date(2025, 1, 15))
        assert total == 2


def test_known_currencies_normalizes_display_strings():
    with SessionLocal() as session:
        add_rate(session, from_currency="CAD", to_currency="US Dollar (USD)", rate=0.7)
        add_rate(session, from_currency="EUR", to_currency="GBP", rate=0.85)
        assert known_currencies(session) == ["CAD", "EUR", "GBP", "USD"]
