"""
Chart Module

Candle value object, session calendar, bucketing function and the
lock-protected candle store.
"""

from .bucketing import TimeSeries
from .calendar import SessionCalendar, SessionWindow
from .candle import Candle, PriceUpdate, TradeUpdate, VolumeOnlyUpdate
from ..errors import (
    ChartError,
    ChartStoppedError,
    ConfigurationError,
    InvalidTradeError,
    NoNextBucketError,
    OutOfOrderError,
    OutsideSessionError,
)
from .notifier import ChangeNotifier
from .period import Period
from .store import CandleChart

__all__ = [
    "Candle",
    "CandleChart",
    "ChangeNotifier",
    "ChartError",
    "ChartStoppedError",
    "ConfigurationError",
    "InvalidTradeError",
    "NoNextBucketError",
    "OutOfOrderError",
    "OutsideSessionError",
    "Period",
    "PriceUpdate",
    "SessionCalendar",
    "SessionWindow",
    "TimeSeries",
    "TradeUpdate",
    "VolumeOnlyUpdate",
]
