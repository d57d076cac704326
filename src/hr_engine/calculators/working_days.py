"""Working-day arithmetic over holiday calendars."""

from __future__ import annotations

import calendar
from collections.abc import Collection, Iterator
from datetime import date, timedelta

# date.weekday(): Monday=0 ... Sunday=6
SUNDAY = 6


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield every date from start to end inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def is_working_day(day: date, holidays: Collection[date]) -> bool:
    """Sundays and holidays are off; Saturday is a working day."""
    return day.weekday() != SUNDAY and day not in holidays


def count_working_days(start: date, end: date, holidays: Collection[date]) -> int:
    """Count working days in [start, end]; zero when end precedes start."""
    return sum(1 for day in iter_dates(start, end) if is_working_day(day, holidays))


def calendar_days(start: date, end: date) -> int:
    """Inclusive calendar-day count."""
    return max(0, (end - start).days + 1)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last date of a month."""
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


def intersect(
    start: date, end: date, period_start: date, period_end: date
) -> tuple[date, date] | None:
    """Overlap of two inclusive ranges, or None."""
    lo = max(start, period_start)
    hi = min(end, period_end)
    if lo > hi:
        return None
    return lo, hi


def ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """Inclusive-range overlap test."""
    return a_start <= b_end and b_start <= a_end
