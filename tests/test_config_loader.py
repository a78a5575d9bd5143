from datetime import date, datetime, timezone
from pathlib import Path
from textwrap import dedent
from zoneinfo import ZoneInfo

import pytest

from engine.chart import ConfigurationError, Period
from engine.config import ChartConfig, ConfigLoader

REPO_CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


def _write_chart(tmp_path: Path, symbol: str, body: str) -> ConfigLoader:
    charts = tmp_path / "charts"
    charts.mkdir(exist_ok=True)
    (charts / f"{symbol}.yaml").write_text(dedent(body))
    return ConfigLoader(tmp_path)


def test_load_chart_with_templates_and_overrides(tmp_path) -> None:
    loader = _write_chart(
        tmp_path,
        "ES",
        """
        symbol: ES
        period: "5m"
        timezone: America/New_York
        daily_sessions:
          - first_day: 2023-07-24
            last_day: 2023-07-28
            open: "09:30"
            close: "16:00"
            holidays: [2023-07-26]
        sessions:
          - start: "2023-07-28T09:30:00"
            end: "2023-07-28T13:00:00"
        """,
    )

    config = loader.load_chart("ES")
    assert config.period is Period.FIVE_MINUTE
    assert config.retry_interval_seconds == 3600

    calendar = config.build_calendar()
    tz = ZoneInfo("America/New_York")
    assert calendar.timezone == tz
    assert len(calendar) == 4
    assert calendar.lookup(date(2023, 7, 26)) is None
    assert calendar.lookup(date(2023, 7, 27)).end == datetime(2023, 7, 27, 16, tzinfo=tz)
    assert calendar.lookup(date(2023, 7, 28)).end == datetime(2023, 7, 28, 13, tzinfo=tz)


def test_build_chart_uses_config(tmp_path) -> None:
    loader = _write_chart(
        tmp_path,
        "BTC",
        """
        symbol: BTC
        period: "1h"
        retry_interval_seconds: 30
        sessions:
          - start: "2023-07-27T00:00:00Z"
            end: "2023-07-28T00:00:00Z"
        """,
    )

    chart = loader.load_chart("BTC").build_chart(
        clock=lambda: datetime(2023, 7, 27, 10, 15, tzinfo=timezone.utc)
    )
    assert chart.period is Period.HOUR
    assert chart.scheduler.retry_interval.total_seconds() == 30
    assert chart.series.next_bucket_start(
        datetime(2023, 7, 27, 10, 15, tzinfo=timezone.utc)
    ) == datetime(2023, 7, 27, 11, tzinfo=timezone.utc)


def test_missing_config_file(tmp_path) -> None:
    with pytest.raises(ConfigurationError):
        ConfigLoader(tmp_path).load_chart("NQ")


@pytest.mark.parametrize(
    "body",
    [
        "symbol: X\nperiod: 2m\nsessions: [{start: '2023-07-27T00:00:00Z', end: '2023-07-28T00:00:00Z'}]\n",
        "symbol: X\nperiod: 1m\ntimezone: Mars/Olympus\nsessions: [{start: '2023-07-27T00:00:00Z', end: '2023-07-28T00:00:00Z'}]\n",
        "symbol: X\nperiod: 1m\n",
        "symbol: X\nperiod: 1m\nretry_interval_seconds: 0\nsessions: [{start: '2023-07-27T00:00:00Z', end: '2023-07-28T00:00:00Z'}]\n",
        "- not\n- a mapping\n",
        "symbol: [unclosed\n",
    ],
)
def test_invalid_config_rejected(tmp_path, body) -> None:
    loader = _write_chart(tmp_path, "X", body)
    with pytest.raises(ConfigurationError):
        loader.load_chart("X")


def test_reversed_session_rejected_when_building(tmp_path) -> None:
    config = ChartConfig(
        symbol="X",
        period="1m",
        sessions=[{"start": "2023-07-27T16:00:00Z", "end": "2023-07-27T09:30:00Z"}],
    )
    with pytest.raises(ConfigurationError):
        config.build_calendar()


def test_shipped_configs_load() -> None:
    loader = ConfigLoader(REPO_CONFIG_DIR)

    es = loader.load_chart("ES")
    assert es.period is Period.FIVE_MINUTE
    es_calendar = es.build_calendar()
    assert es_calendar.lookup(date(2026, 12, 25)) is None
    assert es_calendar.lookup(date(2026, 11, 27)).end.hour == 13

    btc = loader.load_chart("BTCUSDT")
    chart = btc.build_chart(clock=lambda: datetime(2026, 10, 17, 12, 0, 30, tzinfo=timezone.utc))
    assert chart.series.next_bucket_start(
        datetime(2026, 10, 17, 12, 0, 30, tzinfo=timezone.utc)
    ) == datetime(2026, 10, 17, 12, 1, tzinfo=timezone.utc)
