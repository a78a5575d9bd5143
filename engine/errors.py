"""
Chart Errors

Error taxonomy for the candle chart engine. Ingestion and configuration
errors are raised to the caller; the rollover scheduler logs and retries.
"""


class ChartError(Exception):
    """Base class for all candle chart errors"""


class ConfigurationError(ChartError, ValueError):
    """Invalid session window, timezone or chart configuration"""


class NoNextBucketError(ChartError):
    """No trading session is reachable within the calendar's scan horizon"""


class OutOfOrderError(ChartError):
    """Trade bucket precedes the current candle"""


class ChartStoppedError(ChartError):
    """Operation attempted after the chart was stopped"""


class InvalidTradeError(ChartError, ValueError):
    """Malformed trade input (naive timestamp, bad price or volume)"""


class OutsideSessionError(ChartError):
    """Instant does not fall inside any configured session window"""
