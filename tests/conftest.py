from __future__ import annotations

import os
from datetime import UTC, datetime

import pytest

# Set env before any ledger_fx imports (settings/engine are created at import time).
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///./.ledger_fx_test.db")
os.environ.setdefault("FX_BATCH_DELAY_SECONDS", "0")


@pytest.fixture(autouse=True)
def _reset_db() -> None:
    import ledger_fx.models  # noqa: F401
    from ledger_fx.core.db import engine
    from ledger_fx.core.models import Base

    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)

    yield


@pytest.fixture
def fixed_clock():
    now = datetime(2025, 3, 1, 12, 30, tzinfo=UTC)
    return lambda: now


@pytest.fixture
def rates_page():
    """Build an HTML page shaped like the x-rates table page."""

    def _build(
        *,
        base: str = "CAD",
        timestamp: str | None = "Jan 15, 2025 17:00 UTC",
        rows: list[tuple[str, str | None, str]] = (),
    ) -> str:
        marker = f'<span class="ratesTimestamp">{timestamp}</span>' if timestamp is not None else ""
        body = []
        for name, code, rate in rows:
            href = f"https://www.x-rates.com/graph/?from={base}&amp;to={code}" if code else ""
            link = f"<a href='{href}'>{rate}</a>" if code else rate
            body.append(
                f"<tr><td>{name}</td><td class='rtRates'>{link}</td>"
                f"<td class='rtRates'>1.0</td></tr>"
            )
        return (
            "<!DOCTYPE html><html><head><title>Rates</title></head><body>"
            '<div class="moduleContent">'
            f"<span>Rates table</span>{marker}"
            '<table class="ratesTable" cellspacing="0">'
            "<thead><tr><th>Top 10</th><th>1.00</th></tr></thead>"
            f"<tbody><tr><td>Japanese Yen</td><td class='rtRates'>"
            f"<a href='https://www.x-rates.com/graph/?from={base}&amp;to=JPY'>108.1</a>"
            "</td></tr></tbody></table>"
            '<table class="tablesorter ratesTable" cellspacing="0">'
            f"<thead><tr><th>Currency</th><th>1.00 {base}</th>"
            f"<th>inv. 1.00 {base}</th></tr></thead>"
            f"<tbody>{''.join(body)}</tbody></table>"
            "</div></body></html>"
        )

    return _build
