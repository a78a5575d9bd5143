"""
Session Calendar

Trading-session windows keyed by canonical day. The canonical day of a
window is the calendar date of its start in the calendar's timezone.

A window may run past midnight (overnight sessions) but must close by the
end of the following day, so an instant is covered either by its own
day's window or by the previous day's.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Dict, Iterable, Iterator, Optional, Union

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

WEEKDAYS = (0, 1, 2, 3, 4)


@dataclass(frozen=True)
class SessionWindow:
    """Permitted trading interval within one day"""
    start: datetime
    end: datetime

    def contains(self, t: datetime) -> bool:
        """Closed on both ends: start <= t <= end"""
        return self.start <= t <= self.end


class SessionCalendar:
    """
    Mapping from canonical day to its session window.

    Example usage:
        calendar = SessionCalendar(ZoneInfo("America/New_York"))
        calendar.add_daily_sessions(date(2024, 1, 2), date(2024, 1, 31),
                                    time(9, 30), time(16, 0))
        calendar.lookup(date(2024, 1, 2))
    """

    def __init__(self, tz: tzinfo = timezone.utc):
        self.timezone = tz
        self._windows: Dict[date, SessionWindow] = {}

    def __len__(self) -> int:
        return len(self._windows)

    def __contains__(self, day: object) -> bool:
        return isinstance(day, (date, datetime)) and self.lookup(day) is not None

    def __iter__(self) -> Iterator[date]:
        return iter(sorted(self._windows))

    def day_of(self, t: datetime) -> date:
        """Canonical day of an aware instant"""
        return t.astimezone(self.timezone).date()

    @property
    def latest_day(self) -> Optional[date]:
        """Last configured day; bounds the forward scan for the next session"""
        return max(self._windows) if self._windows else None

    def append_window(self, start: datetime, end: datetime) -> SessionWindow:
        """
        Register (or overwrite) the window for the day of `start`.

        Raises:
            ConfigurationError: If an instant is naive, end <= start, or the
                window ends after the day following its start
        """
        if start.tzinfo is None or end.tzinfo is None:
            raise ConfigurationError(
                f"Session window needs timezone-aware instants: {start} - {end}"
            )
        if end <= start:
            raise ConfigurationError(
                f"Session window end {end.isoformat()} is not after start "
                f"{start.isoformat()}"
            )

        day = self.day_of(start)
        # Midnight closing the following day is still allowed
        if end > datetime.combine(day + timedelta(days=2), time(), tzinfo=self.timezone):
            raise ConfigurationError(
                f"Session window opening {start.isoformat()} must close by the end "
                f"of the following day, got {end.isoformat()}"
            )

        window = SessionWindow(start=start, end=end)
        if day in self._windows:
            logger.debug(f"Overwriting session window for {day}")
        self._windows[day] = window
        return window

    def lookup(self, day: Union[date, datetime]) -> Optional[SessionWindow]:
        """Window configured for a day (a date, or any instant on that day)"""
        if isinstance(day, datetime):
            day = self.day_of(day)
        return self._windows.get(day)

    def overnight_window(self, t: datetime) -> Optional[SessionWindow]:
        """Previous day's window if it is still open at t (start < t < end)"""
        window = self._windows.get(self.day_of(t) - timedelta(days=1))
        if window is not None and window.start < t < window.end:
            return window
        return None

    def window_containing(self, t: datetime) -> Optional[SessionWindow]:
        """
        Window covering the instant t, closed on both ends.

        Checks t's own day first, then an overnight window opened the day
        before.
        """
        day = self.day_of(t)
        for candidate_day in (day, day - timedelta(days=1)):
            window = self._windows.get(candidate_day)
            if window is not None and window.contains(t):
                return window
        return None

    def add_daily_sessions(
        self,
        first_day: date,
        last_day: date,
        open_time: time,
        close_time: time,
        weekdays: Iterable[int] = WEEKDAYS,
        holidays: Iterable[date] = (),
    ) -> int:
        """
        Materialise one window per trading day in [first_day, last_day].

        A close_time at or before open_time closes on the following day, so
        00:00-00:00 describes a full 24h session.

        Args:
            first_day: First calendar day (inclusive)
            last_day: Last calendar day (inclusive)
            open_time: Local session open
            close_time: Local session close
            weekdays: Trading weekdays, Monday=0 (default Monday-Friday)
            holidays: Days to skip

        Returns:
            Number of windows added
        """
        if last_day < first_day:
            raise ConfigurationError(f"Empty day range: {first_day} - {last_day}")

        trading_days = set(weekdays)
        skipped = set(holidays)
        added = 0
        day = first_day
        while day <= last_day:
            if day.weekday() in trading_days and day not in skipped:
                start = datetime.combine(day, open_time, tzinfo=self.timezone)
                close_day = day if close_time > open_time else day + timedelta(days=1)
                end = datetime.combine(close_day, close_time, tzinfo=self.timezone)
                self.append_window(start, end)
                added += 1
            day += timedelta(days=1)

        logger.info(f"Added {added} daily sessions from {first_day} to {last_day}")
        return added
