"""
Bucketing

Maps wall-clock instants to period-aligned bucket starts in the calendar's
timezone, skipping time outside configured trading sessions.

Calendar arithmetic:
- 1m/5m/15m/30m/1h: floor truncates the local wall clock; the next bucket
  is the floor plus the period's fixed duration in absolute time.
- 1d/1w/1mo/1y: floor is local midnight of the day, of the ISO week's
  Monday, of the first of the month, of January 1st; the next bucket is
  local midnight one calendar day/7 days/month/year after the floor.

Bucket starts are half-open within a session window: a candidate landing
exactly on a window's end belongs to the next session. A candidate after
midnight is first checked against the previous day's overnight window.
"""

import logging
from datetime import date, datetime, timedelta, timezone

from ..errors import InvalidTradeError, NoNextBucketError, OutsideSessionError
from .calendar import SessionCalendar
from .period import Period

logger = logging.getLogger(__name__)


class TimeSeries:
    """
    Pure bucketing function over (period, session calendar, timezone).

    Example usage:
        series = TimeSeries(Period.MINUTE, calendar)
        bucket = series.next_bucket_start(trade_time)
    """

    def __init__(self, period: Period, calendar: SessionCalendar):
        self.period = period
        self.calendar = calendar

    @property
    def timezone(self):
        return self.calendar.timezone

    def _local(self, t: datetime) -> datetime:
        if t.tzinfo is None:
            raise InvalidTradeError(f"Timestamp must be timezone-aware: {t}")
        return t.astimezone(self.timezone)

    def _midnight(self, day: date) -> datetime:
        return datetime(day.year, day.month, day.day, tzinfo=self.timezone)

    def floor_to_bucket(self, t: datetime) -> datetime:
        """Start of the bucket literally containing t"""
        local = self._local(t)
        minutes = self.period.minutes
        if minutes is not None:
            of_day = local.hour * 60 + local.minute
            floored = of_day - of_day % minutes
            return local.replace(
                hour=floored // 60, minute=floored % 60, second=0, microsecond=0
            )

        day = local.date()
        if self.period is Period.WEEK:
            day -= timedelta(days=day.weekday())
        elif self.period is Period.MONTH:
            day = day.replace(day=1)
        elif self.period is Period.YEAR:
            day = day.replace(month=1, day=1)
        return self._midnight(day)

    def _advance(self, bucket: datetime) -> datetime:
        minutes = self.period.minutes
        if minutes is not None:
            utc = bucket.astimezone(timezone.utc) + timedelta(minutes=minutes)
            return utc.astimezone(self.timezone)

        day = bucket.date()
        if self.period is Period.DAY:
            day += timedelta(days=1)
        elif self.period is Period.WEEK:
            day += timedelta(days=7)
        elif self.period is Period.MONTH:
            day = date(day.year + day.month // 12, day.month % 12 + 1, 1)
        else:
            day = date(day.year + 1, 1, 1)
        return self._midnight(day)

    def next_bucket_start(self, t: datetime) -> datetime:
        """
        Start of the bucket a trade at t is attributed to.

        This is the bucket after the one containing t, moved forward to the
        next session when it falls outside trading time.

        Raises:
            NoNextBucketError: If no session exists up to the calendar's
                latest configured day
        """
        candidate = self._advance(self.floor_to_bucket(t))
        if self.calendar.overnight_window(candidate) is not None:
            return candidate

        day = self.calendar.day_of(candidate)
        window = self.calendar.lookup(day)
        if window is not None:
            if window.start < candidate < window.end:
                return candidate
            if candidate <= window.start:
                return window.start.astimezone(self.timezone)

        latest = self.calendar.latest_day
        day += timedelta(days=1)
        while latest is not None and day <= latest:
            window = self.calendar.lookup(day)
            if window is not None:
                return window.start.astimezone(self.timezone)
            day += timedelta(days=1)

        raise NoNextBucketError(
            f"No trading session after {candidate.isoformat()} "
            f"(calendar ends {latest})"
        )

    def is_within_session(self, t: datetime) -> bool:
        return self.calendar.window_containing(self._local(t)) is not None

    def bucket_of(self, t: datetime) -> datetime:
        """
        Floor t to its bucket, requiring t to be inside a session.

        Raises:
            OutsideSessionError: If t is outside every session window
        """
        if not self.is_within_session(t):
            raise OutsideSessionError(f"{t.isoformat()} is outside trading sessions")
        return self.floor_to_bucket(t)
