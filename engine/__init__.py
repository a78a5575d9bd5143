"""
Candle Chart Engine

Core aggregation engine: candles, session calendar, bucketing, the
chart store, its rollover scheduler and chart configuration.
"""
