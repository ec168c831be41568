from __future__ import annotations

import re
from dataclasses import dataclass

# "US Dollar (USD)" -> "USD"; the code must close the string.
_TRAILING_CODE_RE = re.compile(r"\(([A-Z]{2,4})\)\s*$")


def normalize_currency_code(value: str) -> str:
    """Return the canonical code embedded in a display string, or the value unchanged.

    Scraped target currencies look like ``"US Dollar (USD)"`` while accounts and
    manual entries carry bare codes such as ``"USD"``. Any string is accepted.
    """
    m = _TRAILING_CODE_RE.search(value)
    return m.group(1) if m else value


@dataclass(frozen=True)
class CurrencyCode:
    code: str
    label: str | None = None

    @classmethod
    def parse(cls, value: str) -> CurrencyCode:
        m = _TRAILING_CODE_RE.search(value)
        if not m:
            return cls(code=value)
        label = value[: m.start()].strip() or None
        return cls(code=m.group(1), label=label)

    @property
    def display(self) -> str:
        return f"{self.label} ({self.code})" if self.label else self.code

    def __str__(self) -> str:
        return self.display

    def matches(self, other: str | CurrencyCode) -> bool:
        if isinstance(other, CurrencyCode):
            return self.code == other.code
        return self.code == normalize_currency_code(other)
