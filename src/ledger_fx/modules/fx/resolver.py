from __future__ import annotations

import enum
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from ledger_fx.core.config import settings
from ledger_fx.core.logging import get_logger, log_event
from ledger_fx.modules.fx.currency import CurrencyCode
from ledger_fx.modules.fx.store import known_currencies, latest_rate_for_codes

logger = get_logger(__name__)


class ResolutionMethod(str, enum.Enum):
    IDENTITY = "identity"
    DIRECT = "direct"
    INVERSE = "inverse"
    TRIANGULATED = "triangulated"


@dataclass(frozen=True)
class RateLeg:
    from_currency: str
    to_currency: str
    rate: float
    inverted: bool
    observation_id: int
    rate_date: datetime


@dataclass(frozen=True)
class ResolvedRate:
    from_currency: str
    to_currency: str
    rate: float
    method: ResolutionMethod
    via: str | None = None
    legs: tuple[RateLeg, ...] = ()


class RateResolver:
    """Answers "how many ``to`` per one ``from``" from stored observations.

    Lookup order: identity, latest direct observation, latest inverse observation,
    then two-hop triangulation through an ordered list of intermediate currencies.
    The first intermediate for which both legs resolve wins; legs are not checked
    for date proximity against each other.
    """

    def __init__(
        self,
        session: Session,
        *,
        intermediates: Sequence[str] | None = None,
        search_store_currencies: bool | None = None,
    ) -> None:
        self.session = session
        self.intermediates = tuple(
            settings.fx_triangulation_currencies if intermediates is None else intermediates
        )
        self.search_store_currencies = (
            settings.fx_triangulate_via_store
            if search_store_currencies is None
            else search_store_currencies
        )

    def _leg(self, from_code: str, to_code: str) -> RateLeg | None:
        fx = latest_rate_for_codes(self.session, from_code=from_code, to_code=to_code)
        if fx:
            return RateLeg(from_code, to_code, fx.rate, False, fx.id, fx.rate_date)
        fx = latest_rate_for_codes(self.session, from_code=to_code, to_code=from_code)
        if fx:
            return RateLeg(from_code, to_code, 1.0 / fx.rate, True, fx.id, fx.rate_date)
        return None

    def _candidates(self, from_code: str, to_code: str) -> list[str]:
        candidates = [c for c in self.intermediates if c not in (from_code, to_code)]
        if self.search_store_currencies:
            seen = set(candidates) | {from_code, to_code}
            candidates += [c for c in known_currencies(self.session) if c not in seen]
        return candidates

    def resolve_strict(self, from_currency: str, to_currency: str) -> ResolvedRate | None:
        from_code = CurrencyCode.parse(from_currency.strip()).code
        to_code = CurrencyCode.parse(to_currency.strip()).code

        if from_code == to_code:
            return ResolvedRate(from_code, to_code, 1.0, ResolutionMethod.IDENTITY)

        leg = self._leg(from_code, to_code)
        if leg:
            method = ResolutionMethod.INVERSE if leg.inverted else ResolutionMethod.DIRECT
            return ResolvedRate(from_code, to_code, leg.rate, method, legs=(leg,))

        for via in self._candidates(from_code, to_code):
            first = self._leg(from_code, via)
            if not first:
                continue
            second = self._leg(via, to_code)
            if not second:
                continue
            return ResolvedRate(
                from_code,
                to_code,
                first.rate * second.rate,
                ResolutionMethod.TRIANGULATED,
                via=via,
                legs=(first, second),
            )

        log_event(logger, "fx.resolve.miss", from_currency=from_code, to_currency=to_code)
        return None

    def resolve(self, from_currency: str, to_currency: str) -> float | None:
        resolved = self.resolve_strict(from_currency, to_currency)
        return resolved.rate if resolved else None

    def resolve_for_display(
        self, from_currency: str, to_currency: str, *, default: float | None = None
    ) -> float:
        """Like :meth:`resolve` but never misses: unresolvable pairs render at ``default``."""
        resolved = self.resolve_strict(from_currency, to_currency)
        if resolved:
            return resolved.rate
        fallback = settings.fx_display_default_rate if default is None else default
        log_event(
            logger,
            "fx.resolve.display_default",
            level=logging.WARNING,
            from_currency=from_currency,
            to_currency=to_currency,
            rate=fallback,
        )
        return fallback
