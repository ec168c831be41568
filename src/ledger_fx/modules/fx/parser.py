from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date
from html.parser import HTMLParser

from ledger_fx.core.logging import get_logger, log_event
from ledger_fx.modules.fx.errors import MalformedDocument, NoDataFound
from ledger_fx.modules.fx.timestamps import Clock, parse_rates_timestamp, today_utc, utc_clock

logger = get_logger(__name__)

TIMESTAMP_CLASS = "ratesTimestamp"
TABLE_CLASS = "tablesorter"


@dataclass(frozen=True)
class ParsedRate:
    from_currency: str
    to_currency: str
    rate: float
    rate_date: date


@dataclass
class _Cell:
    parts: list[str] = field(default_factory=list)
    href: str | None = None

    @property
    def text(self) -> str:
        return "".join(self.parts).strip()


@dataclass
class RatesDocument:
    """The two pieces of a rates page we care about: the as-of marker and the rate table."""

    timestamp_text: str | None
    rows: list[list[_Cell]]

    @classmethod
    def parse(cls, html: str) -> RatesDocument:
        p = _RatesPageParser()
        try:
            p.feed(html)
            p.close()
        except Exception as e:
            raise MalformedDocument(f"Unreadable rates page: {e}") from e
        timestamp = "".join(p.timestamp_parts) if p.timestamp_found else None
        return cls(timestamp_text=timestamp, rows=p.rows)


def _classes(attrs: list[tuple[str, str | None]]) -> set[str]:
    for name, value in attrs:
        if name == "class" and value:
            return set(value.split())
    return set()


class _RatesPageParser(HTMLParser):
    # Rows under <thead>/<tfoot> are ignored; everything else in the table is a body row,
    # matching how browsers insert an implicit <tbody>.

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.timestamp_found = False
        self.timestamp_parts: list[str] = []
        self._ts_tag: str | None = None
        self._ts_depth = 0

        self.rows: list[list[_Cell]] = []
        self._table_done = False
        self._table_depth = 0
        self._section: str | None = None
        self._row: list[_Cell] | None = None
        self._cell: _Cell | None = None

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if self._ts_tag is not None:
            if tag == self._ts_tag:
                self._ts_depth += 1
        elif not self.timestamp_found and TIMESTAMP_CLASS in _classes(attrs):
            self.timestamp_found = True
            self._ts_tag = tag
            self._ts_depth = 1

        if self._table_done:
            return
        if tag == "table":
            if self._table_depth:
                self._table_depth += 1
            elif TABLE_CLASS in _classes(attrs):
                self._table_depth = 1
            return
        if self._table_depth != 1:
            return

        if tag in {"thead", "tbody", "tfoot"}:
            self._close_row()
            self._section = tag
        elif tag == "tr":
            self._close_row()
            if self._section not in {"thead", "tfoot"}:
                self._row = []
        elif tag in {"td", "th"}:
            self._close_cell()
            if self._row is not None and tag == "td":
                self._cell = _Cell()
        elif tag == "a" and self._cell is not None and self._cell.href is None:
            self._cell.href = dict(attrs).get("href")

    def handle_endtag(self, tag: str) -> None:
        if self._ts_tag is not None and tag == self._ts_tag:
            self._ts_depth -= 1
            if self._ts_depth == 0:
                self._ts_tag = None

        if self._table_done or not self._table_depth:
            return
        if tag == "table":
            self._table_depth -= 1
            if self._table_depth == 0:
                self._close_row()
                self._table_done = True
            return
        if self._table_depth != 1:
            return

        if tag in {"td", "th"}:
            self._close_cell()
        elif tag == "tr":
            self._close_row()
        elif tag in {"thead", "tbody", "tfoot"}:
            self._close_row()
            self._section = None

    def handle_data(self, data: str) -> None:
        if self._ts_tag is not None:
            self.timestamp_parts.append(data)
        if self._cell is not None and self._table_depth == 1:
            self._cell.parts.append(data)

    def _close_cell(self) -> None:
        if self._cell is not None and self._row is not None:
            self._row.append(self._cell)
        self._cell = None

    def _close_row(self) -> None:
        self._close_cell()
        if self._row is not None:
            self.rows.append(self._row)
        self._row = None


def _as_document(document: str | RatesDocument) -> RatesDocument:
    if isinstance(document, RatesDocument):
        return document
    return RatesDocument.parse(document)


def extract_currency_code_from_href(href: str) -> str | None:
    pos = href.find("to=")
    if pos < 0:
        return None
    code = href[pos + 3 :].split("&", 1)[0]
    return code or None


def extract_as_of(document: str | RatesDocument, *, clock: Clock = utc_clock) -> date:
    """Return the date the page reports its rates for, or today (UTC) if it does not say."""
    doc = _as_document(document)
    if doc.timestamp_text is None:
        fallback = today_utc(clock)
        log_event(
            logger,
            "fx.timestamp.missing",
            level=logging.WARNING,
            fallback_date=fallback.isoformat(),
        )
        return fallback

    rate_date = parse_rates_timestamp(doc.timestamp_text, clock=clock)
    log_event(
        logger,
        "fx.timestamp.parsed",
        raw=doc.timestamp_text.strip(),
        rate_date=rate_date.isoformat(),
    )
    return rate_date


def _parse_rate(text: str) -> float | None:
    # float() also accepts "1_000"
    if "_" in text:
        return None
    try:
        value = float(text.replace(",", ""))
    except ValueError:
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return value


def parse_rate_table(
    document: str | RatesDocument, *, from_currency: str, rate_date: date
) -> list[ParsedRate]:
    doc = _as_document(document)
    rates: list[ParsedRate] = []
    for cells in doc.rows:
        if len(cells) < 2:
            continue
        name = cells[0].text
        code = extract_currency_code_from_href(cells[1].href) if cells[1].href else None
        rate = _parse_rate(cells[1].text)
        if rate is None:
            continue
        if code and name:
            to_currency = f"{name} ({code})"
        else:
            to_currency = code or name
        if not to_currency:
            continue
        rates.append(
            ParsedRate(
                from_currency=from_currency,
                to_currency=to_currency,
                rate=rate,
                rate_date=rate_date,
            )
        )

    if not rates:
        raise NoDataFound(f"No exchange rate rows found for {from_currency}")
    return rates
