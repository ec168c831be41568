from __future__ import annotations

import logging
from typing import Protocol

import httpx

from ledger_fx.core.config import settings
from ledger_fx.core.logging import get_logger, log_event
from ledger_fx.modules.fx.errors import NetworkError

logger = get_logger(__name__)


class RatesFetcher(Protocol):
    def fetch(self, currency: str) -> str: ...


class RatesPageFetcher:
    """Fetches the rate table page for one base currency."""

    def __init__(
        self,
        client: httpx.Client | None = None,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        user_agent: str | None = None,
    ) -> None:
        self.base_url = base_url or settings.fx_source_url
        self._client = client or httpx.Client(
            timeout=timeout or settings.fx_http_timeout_seconds,
            headers={"User-Agent": user_agent or settings.fx_user_agent},
            follow_redirects=True,
        )

    def fetch(self, currency: str) -> str:
        log_event(logger, "fx.fetch.start", currency=currency, url=self.base_url)
        try:
            resp = self._client.get(self.base_url, params={"from": currency, "amount": 1})
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            log_event(
                logger,
                "fx.fetch.error",
                level=logging.WARNING,
                currency=currency,
                status_code=e.response.status_code,
            )
            raise NetworkError(f"HTTP error {e.response.status_code} for {currency}") from e
        except httpx.HTTPError as e:
            log_event(
                logger, "fx.fetch.error", level=logging.WARNING, currency=currency, error=str(e)
            )
            raise NetworkError(f"Request failed for {currency}: {e}") from e
        return resp.text

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> RatesPageFetcher:
        return self

    def __exit__(self, *exc) -> None:
        self.close()
