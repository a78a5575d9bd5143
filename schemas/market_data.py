"""
Market Data Types

Wire messages exchanged with the candle chart service over NATS.
Prices travel as decimal strings so no precision is lost in JSON.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional
import json

from engine.chart.candle import Candle, to_price


def _parse_timestamp(value) -> datetime:
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if not isinstance(value, datetime):
        raise ValueError(f"Invalid timestamp: {value!r}")
    return value


def _decimal_str(value: Optional[Decimal]) -> Optional[str]:
    return None if value is None else str(value)


def _optional_decimal(value) -> Optional[Decimal]:
    return None if value is None else to_price(value)


@dataclass
class Trade:
    """Trade event from the market feed; price is None for volume-only updates"""
    symbol: str
    timestamp: datetime
    price: Optional[Decimal]
    volume: int = 0

    @property
    def is_volume_only(self) -> bool:
        return self.price is None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization"""
        return {
            "symbol": self.symbol,
            "timestamp": self.timestamp.isoformat(),
            "price": _decimal_str(self.price),
            "volume": self.volume,
        }

    def to_json(self) -> str:
        """Serialize to JSON string"""
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict) -> "Trade":
        """Create Trade from dictionary"""
        volume = data.get("volume") or 0
        if isinstance(volume, float) and volume.is_integer():
            volume = int(volume)
        return cls(
            symbol=data["symbol"],
            timestamp=_parse_timestamp(data["timestamp"]),
            price=_optional_decimal(data.get("price")),
            volume=volume,
        )

    @classmethod
    def from_json(cls, json_str: str) -> "Trade":
        """Deserialize from JSON string"""
        return cls.from_dict(json.loads(json_str))


@dataclass
class CandleMessage:
    """Candle update published for downstream consumers"""
    symbol: str
    timeframe: str  # '1m', '5m', '1h', '1d', ...
    timestamp: datetime  # bucket start
    open: Optional[Decimal]
    high: Optional[Decimal]
    low: Optional[Decimal]
    close: Optional[Decimal]
    volume: int = 0
    turnover: Optional[Decimal] = None

    @classmethod
    def from_candle(cls, symbol: str, timeframe: str, candle: Candle) -> "CandleMessage":
        return cls(
            symbol=symbol,
            timeframe=timeframe,
            timestamp=candle.bucket_start,
            open=candle.open,
            high=candle.high,
            low=candle.low,
            close=candle.close,
            volume=candle.volume,
            turnover=candle.turnover,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization"""
        return {
            "symbol": self.symbol,
            "timeframe": self.timeframe,
            "timestamp": self.timestamp.isoformat(),
            "open": _decimal_str(self.open),
            "high": _decimal_str(self.high),
            "low": _decimal_str(self.low),
            "close": _decimal_str(self.close),
            "volume": self.volume,
            "turnover": _decimal_str(self.turnover),
        }

    def to_json(self) -> str:
        """Serialize to JSON string"""
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict) -> "CandleMessage":
        """Create CandleMessage from dictionary"""
        return cls(
            symbol=data["symbol"],
            timeframe=data["timeframe"],
            timestamp=_parse_timestamp(data["timestamp"]),
            open=_optional_decimal(data.get("open")),
            high=_optional_decimal(data.get("high")),
            low=_optional_decimal(data.get("low")),
            close=_optional_decimal(data.get("close")),
            volume=data.get("volume", 0),
            turnover=_optional_decimal(data.get("turnover")),
        )

    @classmethod
    def from_json(cls, json_str: str) -> "CandleMessage":
        """Deserialize from JSON string"""
        return cls.from_dict(json.loads(json_str))
