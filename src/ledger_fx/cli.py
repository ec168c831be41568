"""Batch trigger for exchange-rate ingestion.

    ledger-fx-scrape          # CAD, USD, EUR, GBP
    ledger-fx-scrape JPY      # a single base currency
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence

from ledger_fx.bootstrap import bootstrap
from ledger_fx.core.config import settings
from ledger_fx.modules.fx.ingestion import IngestResult, IngestState
from ledger_fx.modules.fx.service import run_ingestion


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ledger-fx-scrape",
        description="Fetch and store exchange rates for one or more base currencies.",
    )
    parser.add_argument(
        "currency",
        nargs="?",
        help=f"base currency code (default: {' '.join(settings.fx_default_currencies)})",
    )
    return parser


def _summary_line(result: IngestResult) -> str:
    if result.state == IngestState.FRESH:
        detail = f"already up to date for {result.rate_date}"
    elif result.state == IngestState.STORED:
        detail = f"stored {result.report.succeeded} rates for {result.rate_date}"
    elif result.state == IngestState.STORE_ERROR:
        detail = (
            f"stored {result.report.succeeded} of {result.report.attempted} rates "
            f"for {result.rate_date}"
        )
    else:
        detail = f"error: {result.error}"
    return f"{result.currency:<6}{result.state.value:<14}{detail}"


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    bootstrap()
    currencies = [args.currency] if args.currency else None
    try:
        results = run_ingestion(currencies)
    except ValueError as e:
        print(f"ledger-fx-scrape: {e}", file=sys.stderr)
        return 2

    for result in results.values():
        print(_summary_line(result))
    return 0 if all(r.ok for r in results.values()) else 1


if __name__ == "__main__":
    sys.exit(main())
