from __future__ import annotations

import httpx
import pytest

from ledger_fx.modules.fx.client import RatesPageFetcher
from ledger_fx.modules.fx.errors import NetworkError


def _fetcher(handler) -> RatesPageFetcher:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return RatesPageFetcher(client, base_url="https://rates.example/table/")


def test_fetch_requests_templated_url():
    seen: list[httpx.URL] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url)
        return httpx.Response(200, text="<html>ok</html>")

    with _fetcher(handler) as fetcher:
        assert fetcher.fetch("CAD") == "<html>ok</html>"

    assert seen[0].host == "rates.example"
    assert seen[0].path == "/table/"
    assert seen[0].params["from"] == "CAD"
    assert seen[0].params["amount"] == "1"


def test_fetch_non_success_status_is_a_network_error():
    with _fetcher(lambda request: httpx.Response(503, text="busy")) as fetcher:
        with pytest.raises(NetworkError, match="503"):
            fetcher.fetch("CAD")


def test_fetch_transport_failure_is_a_network_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    with _fetcher(handler) as fetcher:
        with pytest.raises(NetworkError):
            fetcher.fetch("CAD")


def test_default_client_uses_configured_timeout_and_user_agent():
    fetcher = RatesPageFetcher(timeout=3.0, user_agent="ledger-test")
    try:
        assert fetcher._client.timeout.connect == 3.0
        assert fetcher._client.headers["User-Agent"] == "ledger-test"
    finally:
        fetcher.close()
