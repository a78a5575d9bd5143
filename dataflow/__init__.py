"""
Dataflow Layer

Event I/O around the candle chart engine. Contains:
- adapters: NATS client adapter and topic names
- candle_aggregation: trades from NATS into a chart, candle updates back out
"""
