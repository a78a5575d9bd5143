"""
Scheduler Module

Background rollover that keeps a candle open at every bucket boundary.
"""

from .rollover import DEFAULT_RETRY_INTERVAL, RolloverScheduler, SchedulerState

__all__ = [
    "DEFAULT_RETRY_INTERVAL",
    "RolloverScheduler",
    "SchedulerState",
]
