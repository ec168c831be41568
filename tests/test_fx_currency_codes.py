from __future__ import annotations

import pytest

from ledger_fx.modules.fx.currency import CurrencyCode, normalize_currency_code


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("US Dollar (USD)", "USD"),
        ("Euro (EUR)", "EUR"),
        ("Bitcoin (XBTC)", "XBTC"),
        ("Some Unit (FX)", "FX"),
        ("USD", "USD"),
        ("Canadian Dollar", "Canadian Dollar"),
        ("Dollar (usd)", "Dollar (usd)"),
        ("Thing (ABCDE)", "Thing (ABCDE)"),
        ("Euro (EUR) rate", "Euro (EUR) rate"),
        ("", ""),
    ],
)
def test_normalize_currency_code(value, expected):
    assert normalize_currency_code(value) == expected


def test_currency_code_keeps_display_label():
    cur = CurrencyCode.parse("US Dollar (USD)")
    assert cur.code == "USD"
    assert cur.label == "US Dollar"
    assert str(cur) == "US Dollar (USD)"


def test_currency_code_from_bare_code_has_no_label():
    cur = CurrencyCode.parse("CAD")
    assert cur == CurrencyCode(code="CAD")
    assert cur.display == "CAD"
    assert cur.matches("Canadian Dollar (CAD)")
    assert not cur.matches("USD")
