from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Enum, Float, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_fx.core.models import Base, IntegerPrimaryKey, Timestamped


class ExchangeRateSource(str, enum.Enum):
    API = "api"
    BANK = "bank"
    MANUAL = "manual"
    SCRAPER = "scraper"


class ExchangeRate(IntegerPrimaryKey, Timestamped, Base):
    """One observed rate: ``rate`` units of ``to_currency`` per unit of ``from_currency``."""

    __tablename__ = "fx_exchange_rate"
    __table_args__ = (
        CheckConstraint("rate > 0", name="ck_fx_exchange_rate_positive"),
        Index("ix_fx_exchange_rate_pair_date", "from_currency", "to_currency", "rate_date"),
    )

    from_currency: Mapped[str] = mapped_column(String(100), index=True)
    to_currency: Mapped[str] = mapped_column(String(100))
    rate: Mapped[float] = mapped_column(Float)
    rate_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    source: Mapped[ExchangeRateSource] = mapped_column(
        Enum(
            ExchangeRateSource,
            native_enum=False,
            values_callable=lambda e: [m.value for m in e],
            length=20,
        ),
        index=True,
    )

    def __repr__(self) -> str:
        return (
            f"<ExchangeRate(id={self.id}, {self.from_currency}->{self.to_currency}="
            f"{self.rate}, date={self.rate_date}, source={self.source.value})>"
        )
