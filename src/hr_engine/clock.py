"""Clock capability.

Core operations never read process-global time; they are handed a clock that
yields aware datetimes in the company timezone.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Protocol
from zoneinfo import ZoneInfo


class Clock(Protocol):
    """Source of the current time."""

    @property
    def tz(self) -> ZoneInfo: ...

    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock in a fixed timezone."""

    def __init__(self, tz_name: str = "Asia/Kuala_Lumpur"):
        self._tz = ZoneInfo(tz_name)

    @property
    def tz(self) -> ZoneInfo:
        return self._tz

    def now(self) -> datetime:
        return datetime.now(self._tz)


class FixedClock:
    """Clock pinned to a settable instant (tests, replays)."""

    def __init__(self, at: datetime, tz_name: str = "Asia/Kuala_Lumpur"):
        self._tz = ZoneInfo(tz_name)
        self._now = at if at.tzinfo else at.replace(tzinfo=self._tz)

    @property
    def tz(self) -> ZoneInfo:
        return self._tz

    def now(self) -> datetime:
        return self._now.astimezone(self._tz)

    def set(self, at: datetime) -> None:
        self._now = at if at.tzinfo else at.replace(tzinfo=self._tz)

    def set_time(self, hh_mm: str) -> None:
        """Move to a time of day on the current date, e.g. ``"09:30"``."""
        hours, minutes = (int(p) for p in hh_mm.split(":")[:2])
        current = self.now()
        self._now = datetime.combine(current.date(), time(hours, minutes), self._tz)

    def advance(self, delta: timedelta) -> None:
        self._now = self._now + delta


def today(clock: Clock) -> date:
    """Current calendar date in the clock's timezone."""
    return clock.now().date()


def time_of_day(clock: Clock) -> time:
    """Current ``HH:MM:SS`` in the clock's timezone."""
    return clock.now().time().replace(microsecond=0, tzinfo=None)
