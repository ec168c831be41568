from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, date, datetime

from ledger_fx.core.logging import get_logger, log_event

logger = get_logger(__name__)

Clock = Callable[[], datetime]

# Tried in order; the first pattern that parses wins. strptime's %d also
# accepts a day without a leading zero, so "Dec 6, 2024" needs no extra pattern.
TIMESTAMP_FORMATS: tuple[str, ...] = (
    "%b %d, %Y",  # Dec 06, 2024
    "%B %d, %Y",  # December 06, 2024
)


def utc_clock() -> datetime:
    return datetime.now(UTC)


def today_utc(clock: Clock = utc_clock) -> date:
    return clock().astimezone(UTC).date()


def _date_part(text: str) -> str:
    head = text.strip().split(" UTC", 1)[0]
    return " ".join(head.split()[:3])


def parse_rates_timestamp(text: str, *, clock: Clock = utc_clock) -> date:
    """Parse an "as of" marker such as ``"Dec 06, 2024 16:00 UTC"``.

    Falls back to the current UTC date when no known format matches.
    """
    value = _date_part(text)
    for fmt in TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue

    fallback = today_utc(clock)
    log_event(
        logger,
        "fx.timestamp.unparsable",
        level=logging.WARNING,
        raw=text.strip(),
        fallback_date=fallback.isoformat(),
    )
    return fallback
