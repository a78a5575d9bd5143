"""
Candle Chart Store

Aggregates trades for one instrument into period candles. Keeps the
chronological candle history, an index by bucket start, and a rollover
scheduler that opens a continuation candle at every bucket boundary.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Callable, Dict, List, Optional

from ..errors import ChartStoppedError, ConfigurationError, OutOfOrderError
from ..scheduler.rollover import DEFAULT_RETRY_INTERVAL, RolloverScheduler
from .bucketing import TimeSeries
from .calendar import SessionCalendar, SessionWindow
from .candle import (
    Candle,
    PriceLike,
    PriceUpdate,
    TradeUpdate,
    VolumeOnlyUpdate,
    check_volume,
    to_price,
)
from .notifier import Observer, ChangeNotifier
from .period import Period

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _instant(t: datetime) -> datetime:
    # Index keys and ordering use UTC so ambiguous local wall times never collide
    return t.astimezone(timezone.utc)


class CandleChart:
    """
    Live OHLCV chart for a single instrument.

    All reads and writes of the history go through one asyncio.Lock.
    Observers are called after the lock is released and must not call
    back into the chart synchronously.

    Example usage:
        calendar = SessionCalendar()
        calendar.append_window(session_open, session_close)

        chart = CandleChart(Period.MINUTE, calendar)
        chart.register_observer(lambda candle: print(candle))
        await chart.start()

        await chart.record_trade(trade_time, Decimal("101.5"), 3)
        ...
        await chart.stop()
    """

    def __init__(
        self,
        period: Period,
        calendar: SessionCalendar,
        tz: Optional[tzinfo] = None,
        clock: Optional[Clock] = None,
        retry_interval: timedelta = DEFAULT_RETRY_INTERVAL,
    ):
        """
        Initialize the chart.

        Args:
            period: Candle granularity
            calendar: Session calendar with at least one reachable session
            tz: Timezone for bucketing; must match the calendar's if given
            clock: Returns the current aware instant (defaults to UTC now)
            retry_interval: Scheduler wake interval when no next bucket exists

        Raises:
            ConfigurationError: If tz disagrees with the calendar timezone
            NoNextBucketError: If no bucket is reachable from now
        """
        if tz is not None and tz != calendar.timezone:
            raise ConfigurationError(
                f"Chart timezone {tz} differs from calendar timezone {calendar.timezone}"
            )

        self.series = TimeSeries(period, calendar)
        self._clock = clock or utc_now
        self._lock = asyncio.Lock()
        self._candles: List[Candle] = []
        self._index: Dict[datetime, int] = {}
        self._notifier = ChangeNotifier()
        self._stopped = False

        first_bucket = self.series.next_bucket_start(self._clock())
        self._scheduler = RolloverScheduler(
            self, clock=self._clock, retry_interval=retry_interval
        )

        logger.info(
            f"Initialized {period.value} chart ({calendar.timezone}), "
            f"first bucket {first_bucket.isoformat()}"
        )

    @property
    def period(self) -> Period:
        return self.series.period

    @property
    def calendar(self) -> SessionCalendar:
        return self.series.calendar

    @property
    def scheduler(self) -> RolloverScheduler:
        return self._scheduler

    @property
    def stopped(self) -> bool:
        return self._stopped

    def __len__(self) -> int:
        return len(self._candles)

    # -- observers and configuration ---------------------------------------

    def register_observer(self, observer: Observer) -> None:
        """Subscribe to candle creations and updates"""
        self._notifier.subscribe(observer)

    def unregister_observer(self, observer: Observer) -> bool:
        return self._notifier.unsubscribe(observer)

    def append_session_window(self, start: datetime, end: datetime) -> SessionWindow:
        return self.calendar.append_window(start, end)

    # -- ingestion ---------------------------------------------------------

    async def record_trade(
        self, t: datetime, price: PriceLike, volume: int
    ) -> Candle:
        """
        Record a priced trade.

        Returns:
            The updated (or newly opened) candle

        Raises:
            ChartStoppedError: If the chart was stopped
            OutOfOrderError: If the trade's bucket precedes the current candle
            NoNextBucketError: If no session follows t
            InvalidTradeError: On naive t, bad price or bad volume
        """
        update = PriceUpdate(price=to_price(price), volume=check_volume(volume))
        return await self._ingest(t, update)

    async def record_volume_only(self, t: datetime, volume: int) -> Candle:
        """Record volume without a price; OHLC of the bucket stays untouched"""
        return await self._ingest(t, VolumeOnlyUpdate(volume=check_volume(volume)))

    async def record_empty(self, t: datetime) -> Optional[Candle]:
        """
        Make sure the bucket for t exists.

        Opens a continuation candle seeded with the current close when the
        bucket is missing; otherwise does nothing.

        Returns:
            The new candle, or None if the bucket already existed
        """
        self._check_running()
        bucket = self.series.next_bucket_start(t)
        key = _instant(bucket)

        async with self._lock:
            self._check_running()
            if key in self._index:
                return None
            current = self._current()
            self._check_order(key, current)
            candle = self._open_candle(bucket, current)
            self._append(key, candle)

        self._notifier.notify(candle)
        return candle

    async def _ingest(self, t: datetime, update: TradeUpdate) -> Candle:
        self._check_running()
        bucket = self.series.next_bucket_start(t)
        key = _instant(bucket)

        async with self._lock:
            self._check_running()
            current = self._current()
            self._check_order(key, current)

            index = self._index.get(key)
            if index is not None:
                candle = self._candles[index].apply(update)
                self._candles[index] = candle
            else:
                candle = self._open_candle(bucket, current).apply(update)
                self._append(key, candle)

        self._notifier.notify(candle)
        return candle

    def _check_running(self) -> None:
        if self._stopped:
            raise ChartStoppedError(f"{self.period.value} chart is stopped")

    def _check_order(self, key: datetime, current: Optional[Candle]) -> None:
        if current is not None and key < _instant(current.bucket_start):
            raise OutOfOrderError(
                f"Bucket {key.isoformat()} precedes current candle "
                f"{current.bucket_start.isoformat()}"
            )

    def _open_candle(self, bucket: datetime, current: Optional[Candle]) -> Candle:
        seed = current.close if current is not None else None
        return Candle.open_at(bucket, seed)

    def _append(self, key: datetime, candle: Candle) -> None:
        if self._candles and key <= _instant(self._candles[-1].bucket_start):
            raise OutOfOrderError(f"History regression at {key.isoformat()}")
        self._index[key] = len(self._candles)
        self._candles.append(candle)
        logger.debug(
            f"Opened {self.period.value} candle {candle.bucket_start.isoformat()} "
            f"(open={candle.open})"
        )

    def _current(self) -> Optional[Candle]:
        return self._candles[-1] if self._candles else None

    # -- queries -----------------------------------------------------------

    async def current(self) -> Optional[Candle]:
        """Latest (in-progress) candle"""
        async with self._lock:
            return self._current()

    async def previous(self) -> Optional[Candle]:
        """Candle before the current one"""
        async with self._lock:
            return self._candles[-2] if len(self._candles) > 1 else None

    async def candles(self) -> List[Candle]:
        """Snapshot of the history, oldest first"""
        async with self._lock:
            return list(self._candles)

    async def get(self, bucket_start: datetime) -> Optional[Candle]:
        async with self._lock:
            index = self._index.get(_instant(bucket_start))
            return self._candles[index] if index is not None else None

    # -- lifecycle ---------------------------------------------------------

    async def start(self) -> None:
        """Start the rollover scheduler"""
        self._check_running()
        await self._scheduler.start()

    async def stop(self) -> None:
        """Stop the rollover scheduler and reject further ingestion. Idempotent."""
        async with self._lock:
            already_stopped = self._stopped
            self._stopped = True
        await self._scheduler.stop()
        if not already_stopped:
            logger.info(
                f"Stopped {self.period.value} chart with {len(self._candles)} candles"
            )
