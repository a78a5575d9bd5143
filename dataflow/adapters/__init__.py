"""
NATS Adapters

NATS client wrapper and topic builders for the candle chart service.
"""

from dataflow.adapters.nats_client import NatsClient, NatsConfig, Topics

__all__ = ["NatsClient", "NatsConfig", "Topics"]
