"""
Config Loader

Loads chart configurations from YAML files.
Converts YAML specifications into session calendars and candle charts.
"""

import yaml
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Callable, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
import logging

from ..chart.calendar import WEEKDAYS, SessionCalendar
from ..chart.period import Period
from ..chart.store import CandleChart
from ..errors import ConfigurationError

logger = logging.getLogger(__name__)


class SessionConfig(BaseModel):
    """One explicit session window"""
    start: datetime
    end: datetime


class DailySessionConfig(BaseModel):
    """Session template expanded into one window per trading day"""
    first_day: date
    last_day: date
    open: time
    close: time
    weekdays: List[int] = Field(default_factory=lambda: list(WEEKDAYS))
    holidays: List[date] = Field(default_factory=list)

    @field_validator("weekdays")
    @classmethod
    def _check_weekdays(cls, value: List[int]) -> List[int]:
        bad = [d for d in value if not 0 <= d <= 6]
        if bad:
            raise ValueError(f"weekdays must be 0 (Monday) to 6 (Sunday), got {bad}")
        return value


class ChartConfig(BaseModel):
    """Complete chart configuration for a symbol"""
    symbol: str
    period: Period
    timezone: str = "UTC"
    sessions: List[SessionConfig] = Field(default_factory=list)
    daily_sessions: List[DailySessionConfig] = Field(default_factory=list)
    retry_interval_seconds: float = Field(default=3600.0, gt=0)

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {value}")
        return value

    @model_validator(mode="after")
    def _check_sessions(self) -> "ChartConfig":
        if not self.sessions and not self.daily_sessions:
            raise ValueError(f"No sessions configured for {self.symbol}")
        return self

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def build_calendar(self) -> SessionCalendar:
        """
        Build the session calendar.

        Naive session instants are read in the chart timezone.

        Raises:
            ConfigurationError: If a window is invalid
        """
        tz = self.tz
        calendar = SessionCalendar(tz)

        for template in self.daily_sessions:
            calendar.add_daily_sessions(
                template.first_day,
                template.last_day,
                template.open,
                template.close,
                weekdays=template.weekdays,
                holidays=template.holidays,
            )

        # Explicit windows override templated days
        for session in self.sessions:
            start = session.start if session.start.tzinfo else session.start.replace(tzinfo=tz)
            end = session.end if session.end.tzinfo else session.end.replace(tzinfo=tz)
            calendar.append_window(start, end)

        return calendar

    def build_chart(
        self, clock: Optional[Callable[[], datetime]] = None
    ) -> CandleChart:
        """
        Build a candle chart for this configuration.

        Raises:
            ConfigurationError: If the sessions are invalid
            NoNextBucketError: If no session lies ahead of now
        """
        calendar = self.build_calendar()
        return CandleChart(
            self.period,
            calendar,
            clock=clock,
            retry_interval=timedelta(seconds=self.retry_interval_seconds),
        )


class ConfigLoader:
    """
    Loads chart configs from YAML.

    The loader:
    1. Finds {config_dir}/charts/{symbol}.yaml
    2. Loads and validates it as a ChartConfig
    3. Reports any YAML or validation problem as ConfigurationError

    Example usage:
        loader = ConfigLoader(Path("config"))
        config = loader.load_chart("ES")
        chart = config.build_chart()
    """

    def __init__(self, config_dir: Path):
        """
        Initialize loader with config directory.

        Args:
            config_dir: Root config directory (contains charts/ subdirectory)
        """
        self.config_dir = Path(config_dir)
        logger.info(f"Initialized ConfigLoader with config_dir: {config_dir}")

    def chart_path(self, symbol: str) -> Path:
        return self.config_dir / "charts" / f"{symbol}.yaml"

    def load_chart(self, symbol: str) -> ChartConfig:
        """
        Load the chart config for a symbol.

        Args:
            symbol: Trading symbol (e.g., "ES", "BTCUSDT")

        Returns:
            Validated ChartConfig

        Raises:
            ConfigurationError: If the file is missing or invalid
        """
        path = self.chart_path(symbol)
        if not path.exists():
            raise ConfigurationError(
                f"No chart config for symbol: {symbol}. Expected: {path}"
            )

        config = self.load_file(path)
        if config.symbol != symbol:
            logger.warning(
                f"Symbol mismatch in {path.name}: "
                f"expected {symbol}, got {config.symbol}"
            )

        logger.info(
            f"Loaded chart config for {symbol}: {config.period.value}, "
            f"{len(config.sessions)} sessions, "
            f"{len(config.daily_sessions)} daily templates"
        )
        return config

    @staticmethod
    def load_file(path: Path) -> ChartConfig:
        """Load and validate a single YAML chart config"""
        try:
            with open(path) as f:
                raw = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load {path}: {e}")
            raise ConfigurationError(f"Failed to load {path}: {e}") from e

        if not isinstance(raw, dict):
            raise ConfigurationError(f"Chart config {path} must be a mapping")

        try:
            return ChartConfig(**raw)
        except ValidationError as e:
            logger.error(f"Invalid chart config {path}: {e}")
            raise ConfigurationError(f"Invalid chart config {path}: {e}") from e
