"""
Chart Periods

Supported candle granularities. The value of each member is its
timeframe code, the same code used in topic names and config files.
"""

from enum import Enum
from typing import Optional


class Period(Enum):
    """Candle granularity"""
    MINUTE = "1m"
    FIVE_MINUTE = "5m"
    QUARTER_HOUR = "15m"
    HALF_HOUR = "30m"
    HOUR = "1h"
    DAY = "1d"
    WEEK = "1w"
    MONTH = "1mo"
    YEAR = "1y"

    @property
    def minutes(self) -> Optional[int]:
        """Fixed length in minutes for sub-day periods, None otherwise"""
        return _INTRADAY_MINUTES.get(self)

    @property
    def is_intraday(self) -> bool:
        return self in _INTRADAY_MINUTES

    @classmethod
    def from_code(cls, code: str) -> "Period":
        """
        Resolve a timeframe code such as "5m" or "1d".

        Raises:
            ValueError: If the code is not a supported timeframe
        """
        try:
            return cls(code.strip())
        except ValueError:
            supported = ", ".join(p.value for p in cls)
            raise ValueError(
                f"Unsupported timeframe: {code!r} (supported: {supported})"
            ) from None


_INTRADAY_MINUTES = {
    Period.MINUTE: 1,
    Period.FIVE_MINUTE: 5,
    Period.QUARTER_HOUR: 15,
    Period.HALF_HOUR: 30,
    Period.HOUR: 60,
}
