"""
Candle Aggregator

Bridges NATS trades into a CandleChart and publishes every candle update.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Optional

from dataflow.adapters.nats_client import NatsClient, NatsConfig, Topics
from engine.chart import Candle, CandleChart, ChartError
from engine.config import ConfigLoader
from schemas.market_data import CandleMessage, Trade

logger = logging.getLogger(__name__)


class ChartAggregator:
    """
    Feeds trades for one symbol into a chart.

    Trades arrive on trades.raw.{symbol}; a trade without a price is a
    volume-only update. Chart observers run synchronously, so updates are
    queued and published to candles.{symbol}.{timeframe} by a separate task.
    """

    def __init__(self, nats_client: NatsClient, chart: CandleChart, symbol: str):
        self.nats = nats_client
        self.chart = chart
        self.symbol = symbol
        self.timeframe = chart.period.value
        self._queue: asyncio.Queue = asyncio.Queue()
        self._publish_task: Optional[asyncio.Task] = None

        # Metrics
        self.trades_recorded = 0
        self.trades_rejected = 0
        self.candles_published = 0

        chart.register_observer(self._on_candle)

    @property
    def trade_topic(self) -> str:
        return Topics.trades_raw(self.symbol)

    @property
    def candle_topic(self) -> str:
        return Topics.candles(self.symbol, self.timeframe)

    def _on_candle(self, candle: Candle) -> None:
        self._queue.put_nowait(candle)

    async def _handle_trade(self, msg) -> None:
        """Handle incoming trade message"""
        try:
            trade = Trade.from_json(msg.data.decode())
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Failed to parse trade: {e}")
            self.trades_rejected += 1
            return

        if trade.symbol != self.symbol:
            logger.warning(
                f"Received trade for wrong symbol: {trade.symbol} (expected {self.symbol})"
            )
            self.trades_rejected += 1
            return

        try:
            if trade.is_volume_only:
                await self.chart.record_volume_only(trade.timestamp, trade.volume)
            else:
                await self.chart.record_trade(trade.timestamp, trade.price, trade.volume)
        except ChartError as e:
            logger.warning(f"Rejected trade {trade.timestamp.isoformat()}: {e}")
            self.trades_rejected += 1
            return

        self.trades_recorded += 1

    async def _publish_candles(self) -> None:
        """Publish queued candle updates until cancelled"""
        while True:
            candle = await self._queue.get()
            try:
                await self._publish_candle(candle)
            finally:
                self._queue.task_done()

    async def _publish_candle(self, candle: Candle) -> None:
        message = CandleMessage.from_candle(self.symbol, self.timeframe, candle)
        try:
            await self.nats.publish_json(self.candle_topic, message.to_json())
        except Exception as e:
            logger.error(f"Failed to publish candle: {e}")
            return

        self.candles_published += 1
        logger.debug(
            f"Published candle: {self.symbol} {self.timeframe} "
            f"{candle.bucket_start.isoformat()} O={candle.open} H={candle.high} "
            f"L={candle.low} C={candle.close} V={candle.volume}"
        )

    async def start(self) -> None:
        """Start publishing, the chart's rollover and the trade subscription"""
        logger.info(f"Starting candle aggregator for {self.symbol} ({self.timeframe})")
        self._publish_task = asyncio.create_task(self._publish_candles())
        await self.chart.start()
        await self.nats.subscribe(
            self.trade_topic,
            self._handle_trade,
            queue=f"chart-{Topics._sanitize(self.symbol)}-{self.timeframe}",
        )
        logger.info("Candle aggregator started")

    async def stop(self) -> None:
        """Stop ingesting, stop the chart and flush queued updates"""
        await self.nats.unsubscribe(self.trade_topic)
        await self.chart.stop()

        if self._publish_task is not None:
            await self._queue.join()
            self._publish_task.cancel()
            try:
                await self._publish_task
            except asyncio.CancelledError:
                pass
            self._publish_task = None

        logger.info(
            f"Candle aggregator stopped. Recorded {self.trades_recorded} trades, "
            f"rejected {self.trades_rejected}, published {self.candles_published} candles"
        )


async def main():
    """
    Main entry point.

    Environment Variables:
        SYMBOL: Trading symbol (default: "ES")
        CONFIG_DIR: Config directory path (default: "config")
        NATS_SERVERS: NATS server URLs (default: "nats://localhost:4222")
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    symbol = os.getenv("SYMBOL", "ES")
    config_dir = Path(os.getenv("CONFIG_DIR", "config"))

    config = ConfigLoader(config_dir).load_chart(symbol)
    chart = config.build_chart()

    nats_client = NatsClient(NatsConfig.from_env())
    aggregator = ChartAggregator(nats_client, chart, symbol)

    try:
        await nats_client.connect()
        await aggregator.start()
        logger.info("Candle aggregator running. Press Ctrl+C to stop.")
        while True:
            await asyncio.sleep(60)
            logger.info(
                f"Stats [{symbol}]: {aggregator.trades_recorded} trades, "
                f"{len(chart)} candles, {aggregator.candles_published} published"
            )
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("Shutting down...")
    finally:
        await aggregator.stop()
        await nats_client.close()


def run() -> None:
    """Console script entry point"""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
