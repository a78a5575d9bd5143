"""
Candle Aggregation Service

Subscribes to trades for one symbol on NATS, feeds them into a CandleChart
and publishes every candle update.
"""

from dataflow.candle_aggregation.aggregator import ChartAggregator

__all__ = ["ChartAggregator"]
