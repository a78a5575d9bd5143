"""
Schemas

Typed wire messages for trades and candle updates.
"""

from schemas.market_data import CandleMessage, Trade

__all__ = [
    "CandleMessage",
    "Trade",
]
