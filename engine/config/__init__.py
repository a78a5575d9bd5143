"""
Config Module

YAML chart configuration loading and validation.
"""

from .loader import ChartConfig, ConfigLoader, DailySessionConfig, SessionConfig

__all__ = [
    "ChartConfig",
    "ConfigLoader",
    "DailySessionConfig",
    "SessionConfig",
]
