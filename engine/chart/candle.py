"""
Candle

OHLCV value object and the accumulation rule applied by the chart store.

Candles are immutable: every accumulation returns a new Candle, so the
snapshot handed to an observer never changes underneath it.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from ..errors import InvalidTradeError

PriceLike = Union[Decimal, int, float, str]


def to_price(value: PriceLike) -> Decimal:
    """
    Convert a price input to Decimal.

    Floats go through their shortest repr so 0.1 stays 0.1.

    Raises:
        InvalidTradeError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise InvalidTradeError(f"Invalid price: {value!r}")
    try:
        price = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidTradeError(f"Invalid price: {value!r}") from None
    if not price.is_finite():
        raise InvalidTradeError(f"Invalid price: {value!r}")
    return price


def check_volume(volume: int) -> int:
    """Validate a traded volume (non-negative integer)"""
    if isinstance(volume, bool) or not isinstance(volume, int):
        raise InvalidTradeError(f"Volume must be an integer, got {volume!r}")
    if volume < 0:
        raise InvalidTradeError(f"Volume must be non-negative, got {volume}")
    return volume


@dataclass(frozen=True)
class PriceUpdate:
    """A trade carrying a price"""
    price: Decimal
    volume: int = 0


@dataclass(frozen=True)
class VolumeOnlyUpdate:
    """A volume-only update (e.g. partial fill report) that leaves OHLC alone"""
    volume: int


TradeUpdate = Union[PriceUpdate, VolumeOnlyUpdate]


@dataclass(frozen=True)
class Candle:
    """OHLCV aggregate for one bucket"""
    bucket_start: datetime
    open: Optional[Decimal] = None
    high: Optional[Decimal] = None
    low: Optional[Decimal] = None
    close: Optional[Decimal] = None
    volume: int = 0
    turnover: Optional[Decimal] = None

    @classmethod
    def open_at(
        cls, bucket_start: datetime, price: Optional[Decimal] = None, volume: int = 0
    ) -> "Candle":
        """
        Construct a candle with open=high=low=close=price.

        Args:
            bucket_start: Start instant of the bucket
            price: Seed price, or None for a candle with no price yet
            volume: Initial volume
        """
        return cls(
            bucket_start=bucket_start,
            open=price,
            high=price,
            low=price,
            close=price,
            volume=volume,
        )

    @property
    def is_empty(self) -> bool:
        """True until the first price-bearing update"""
        return self.open is None

    def add_trade(self, price: Decimal, volume: int) -> "Candle":
        """Accumulate a priced trade"""
        notional = price * volume
        turnover = notional if self.turnover is None else self.turnover + notional
        if self.is_empty:
            return replace(
                self,
                open=price,
                high=price,
                low=price,
                close=price,
                volume=self.volume + volume,
                turnover=turnover,
            )
        return replace(
            self,
            high=max(self.high, price),
            low=min(self.low, price),
            close=price,
            volume=self.volume + volume,
            turnover=turnover,
        )

    def add_volume(self, volume: int) -> "Candle":
        """Accumulate volume without touching OHLC"""
        return replace(self, volume=self.volume + volume)

    def apply(self, update: TradeUpdate) -> "Candle":
        if isinstance(update, PriceUpdate):
            return self.add_trade(update.price, update.volume)
        if isinstance(update, VolumeOnlyUpdate):
            return self.add_volume(update.volume)
        raise TypeError(f"Unknown trade update: {update!r}")
