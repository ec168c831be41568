from __future__ import annotations


class FxError(Exception):
    """Base class for exchange-rate subsystem failures."""


class NetworkError(FxError):
    """The rates page could not be fetched (transport error or non-2xx status)."""


class NoDataFound(FxError):
    """The fetched document yielded no parsable rate rows."""


class PersistenceError(FxError):
    """A single observation could not be written."""


class InvalidFilter(FxError, ValueError):
    """A bulk delete was requested without any filter field."""


class InvalidRate(FxError, ValueError):
    """An observation failed validation (non-positive rate, empty currency, bad source)."""


class MalformedDocument(FxError):
    """The fetched document could not be tokenized as HTML."""
