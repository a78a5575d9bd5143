import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from dataflow.candle_aggregation import ChartAggregator
from engine.chart import CandleChart, Period, SessionCalendar


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class FakeNatsClient:
    """Records subscriptions and published payloads in memory"""

    def __init__(self):
        self.handlers = {}
        self.queues = {}
        self.published = []

    async def subscribe(self, subject, callback, queue=None):
        self.handlers[subject] = callback
        self.queues[subject] = queue

    async def unsubscribe(self, subject):
        self.handlers.pop(subject, None)

    async def publish_json(self, subject, data):
        self.published.append((subject, json.loads(data)))


class FakeMsg:
    def __init__(self, payload):
        self.data = (payload if isinstance(payload, str) else json.dumps(payload)).encode()


def _trade(ts: str, price, volume: int, symbol: str = "ES") -> FakeMsg:
    return FakeMsg({"symbol": symbol, "timestamp": ts, "price": price, "volume": volume})


@pytest.fixture
def chart() -> CandleChart:
    calendar = SessionCalendar()
    calendar.append_window(_utc(2023, 7, 27), _utc(2023, 7, 28))
    # Frozen clock: the scheduler never reaches its first wake
    return CandleChart(Period.MINUTE, calendar, clock=lambda: _utc(2023, 7, 27, 10))


@pytest.mark.asyncio
async def test_trades_are_recorded_and_published(chart) -> None:
    nats = FakeNatsClient()
    aggregator = ChartAggregator(nats, chart, "ES")
    await aggregator.start()

    assert aggregator.trade_topic in nats.handlers
    assert nats.queues[aggregator.trade_topic] == "chart-ES-1m"
    handle = nats.handlers[aggregator.trade_topic]

    await handle(_trade("2023-07-27T10:00:05Z", "12", 1))
    await handle(_trade("2023-07-27T10:00:15Z", None, 4))
    await handle(_trade("2023-07-27T10:05:05Z", "13.5", 2))

    await aggregator.stop()

    assert aggregator.trade_topic not in nats.handlers
    assert chart.stopped
    assert aggregator.trades_recorded == 3
    assert aggregator.trades_rejected == 0
    assert aggregator.candles_published == 3

    subjects = {subject for subject, _ in nats.published}
    assert subjects == {"candles.ES.1m"}

    payloads = [payload for _, payload in nats.published]
    assert payloads[0]["timestamp"] == "2023-07-27T10:01:00+00:00"
    assert payloads[0]["close"] == "12"
    assert payloads[1]["volume"] == 5
    assert payloads[1]["close"] == "12"
    assert payloads[2]["timestamp"] == "2023-07-27T10:06:00+00:00"
    assert payloads[2]["open"] == "12"
    assert payloads[2]["close"] == "13.5"
    assert payloads[2]["turnover"] == "27.0"

    assert (await chart.current()).close == Decimal("13.5")


@pytest.mark.asyncio
async def test_bad_trades_are_rejected(chart) -> None:
    nats = FakeNatsClient()
    aggregator = ChartAggregator(nats, chart, "ES")
    await aggregator.start()
    handle = nats.handlers[aggregator.trade_topic]

    await handle(_trade("2023-07-27T10:05:05Z", "12", 1))
    await handle(FakeMsg("not json"))
    await handle(_trade("2023-07-27T10:05:06Z", "12", 1, symbol="NQ"))
    await handle(_trade("2023-07-27T10:05:07Z", "abc", 1))
    await handle(_trade("2023-07-27T10:00:10Z", "11", 1))

    await aggregator.stop()

    assert aggregator.trades_recorded == 1
    assert aggregator.trades_rejected == 4
    assert aggregator.candles_published == 1
    assert len(chart) == 1
