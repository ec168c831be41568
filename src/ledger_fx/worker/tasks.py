from __future__ import annotations

# Ensure all models are registered before any task runs
# isort: off
import ledger_fx.models  # noqa: F401
# isort: on

import time

from ledger_fx.core.logging import (
    get_logger,
    log_event,
    log_exception,
    monotonic_ms,
    reset_task_context,
    set_task_context,
)
from ledger_fx.worker.celery_app import celery_app

logger = get_logger(__name__)


@celery_app.task(name="ingest_exchange_rates", bind=True)
def ingest_exchange_rates_task(self, currencies: list[str] | None = None) -> list[dict]:
    from ledger_fx.modules.fx.service import run_ingestion

    task_id = getattr(self.request, "id", None)
    token = set_task_context(task_id)
    start = time.monotonic()
    log_event(
        logger,
        "celery.task.start",
        task_name="ingest_exchange_rates",
        celery_task_id=task_id,
        currencies=currencies,
    )
    try:
        results = run_ingestion(currencies)
        log_event(
            logger,
            "celery.task.finish",
            task_name="ingest_exchange_rates",
            celery_task_id=task_id,
            failed=[c for c, r in results.items() if not r.ok],
            duration_ms=monotonic_ms(start),
        )
        return [r.as_dict() for r in results.values()]
    except Exception:
        log_exception(
            logger,
            "celery.task.error",
            task_name="ingest_exchange_rates",
            celery_task_id=task_id,
            duration_ms=monotonic_ms(start),
        )
        raise
    finally:
        reset_task_context(token)
