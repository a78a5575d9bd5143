"""
Rollover Scheduler

Background task that wakes at every bucket boundary and makes sure the
chart has a candle for the new bucket, even when no trades arrive.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional

from ..errors import ChartError, ChartStoppedError, OutOfOrderError

if TYPE_CHECKING:
    from ..chart.store import CandleChart

logger = logging.getLogger(__name__)

DEFAULT_RETRY_INTERVAL = timedelta(hours=1)


class SchedulerState(Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    FIRED = "fired"
    RESCHEDULED = "rescheduled"
    STOPPED = "stopped"


class RolloverScheduler:
    """
    Self-rescheduling rollover task, one per chart.

    The scheduler:
    1. Computes the next bucket start from the clock
    2. Sleeps until then (interrupted immediately by stop())
    3. Calls chart.record_empty(now) to open the continuation candle
    4. Computes the next wake; if bucketing fails it logs the error and
       retries after `retry_interval`

    All writes go through the chart's lock, so the scheduler runs safely
    alongside trade ingestion.
    """

    def __init__(
        self,
        chart: "CandleChart",
        clock: Callable[[], datetime],
        retry_interval: timedelta = DEFAULT_RETRY_INTERVAL,
    ):
        self._chart = chart
        self._clock = clock
        self.retry_interval = retry_interval
        self.state = SchedulerState.IDLE
        self.next_wake: Optional[datetime] = None
        self.fired_count = 0
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """
        Arm the first wake-up and start the background task.

        Raises:
            NoNextBucketError: If no bucket is reachable from now
            RuntimeError: If the scheduler was already stopped
        """
        if self._stop_event.is_set():
            raise RuntimeError("Rollover scheduler is stopped and cannot restart")
        if self._task is not None:
            return

        self.next_wake = self._chart.series.next_bucket_start(self._clock())
        self.state = SchedulerState.SCHEDULED
        self._task = asyncio.create_task(self._run())
        logger.info(f"Rollover scheduler started, first wake at {self.next_wake.isoformat()}")

    async def stop(self) -> None:
        """Cancel the pending wake-up and end the task. Safe to call repeatedly."""
        self._stop_event.set()
        task, self._task = self._task, None
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.error(f"Rollover scheduler ended with error: {e}", exc_info=True)
            logger.info(f"Rollover scheduler stopped after {self.fired_count} rollovers")

        self.state = SchedulerState.STOPPED

    async def _sleep_until(self, wake: datetime) -> bool:
        """Sleep until `wake`; returns False if stop was requested meanwhile"""
        delay = max((wake - self._clock()).total_seconds(), 0.0)
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return True
        return False

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            if not await self._sleep_until(self.next_wake):
                break

            self.state = SchedulerState.FIRED
            self.fired_count += 1
            now = self._clock()

            try:
                candle = await self._chart.record_empty(now)
                if candle is not None:
                    logger.debug(f"Rollover opened candle {candle.bucket_start.isoformat()}")
            except ChartStoppedError:
                break
            except OutOfOrderError as e:
                logger.debug(f"Rollover skipped, chart already ahead: {e}")
            except ChartError as e:
                logger.warning(f"Rollover at {now.isoformat()} failed: {e}")

            try:
                self.next_wake = self._chart.series.next_bucket_start(now)
            except ChartError as e:
                self.next_wake = now + self.retry_interval
                logger.error(
                    f"Cannot compute next bucket after {now.isoformat()}: {e}; "
                    f"retrying at {self.next_wake.astimezone(timezone.utc).isoformat()}"
                )
            self.state = SchedulerState.RESCHEDULED

        self.state = SchedulerState.STOPPED
