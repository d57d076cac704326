"""Tests for working-day arithmetic."""

from datetime import date

from hr_engine.calculators.working_days import (
    calendar_days,
    count_working_days,
    intersect,
    is_working_day,
    month_bounds,
    ranges_overlap,
)


class TestCountWorkingDays:
    """Test working-day counts over holiday sets."""

    def test_public_holiday_excluded(self):
        """Christmas Eve to Boxing Day with Christmas off is two days."""
        holidays = {date(2025, 12, 25)}

        assert count_working_days(date(2025, 12, 24), date(2025, 12, 26), holidays) == 2

    def test_sunday_excluded_saturday_counted(self):
        """2025-12-06 is a Saturday and 2025-12-07 a Sunday."""
        assert is_working_day(date(2025, 12, 6), set()) is True
        assert is_working_day(date(2025, 12, 7), set()) is False
        assert count_working_days(date(2025, 12, 1), date(2025, 12, 7), set()) == 6

    def test_reversed_range_is_zero(self):
        assert count_working_days(date(2025, 12, 10), date(2025, 12, 9), set()) == 0

    def test_single_day(self):
        assert count_working_days(date(2025, 12, 2), date(2025, 12, 2), set()) == 1
        assert count_working_days(date(2025, 12, 25), date(2025, 12, 25), {date(2025, 12, 25)}) == 0

    def test_additive_over_adjacent_ranges(self):
        """count(a, c) == count(a, b) + count(b + 1, c)."""
        holidays = {date(2025, 12, 25), date(2025, 12, 31)}
        whole = count_working_days(date(2025, 12, 1), date(2025, 12, 31), holidays)
        first = count_working_days(date(2025, 12, 1), date(2025, 12, 15), holidays)
        second = count_working_days(date(2025, 12, 16), date(2025, 12, 31), holidays)

        assert whole == first + second
        assert whole == 25


class TestRanges:
    """Test date range helpers."""

    def test_month_bounds_leap_year(self):
        assert month_bounds(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))
        assert month_bounds(2025, 12) == (date(2025, 12, 1), date(2025, 12, 31))

    def test_intersect(self):
        """Leave crossing a month end is clipped to the month."""
        start, end = month_bounds(2025, 11)

        assert intersect(date(2025, 11, 28), date(2025, 12, 3), start, end) == (
            date(2025, 11, 28),
            date(2025, 11, 30),
        )
        assert intersect(date(2025, 12, 1), date(2025, 12, 3), start, end) is None

    def test_inclusive_overlap(self):
        """Ranges sharing one end date overlap."""
        assert ranges_overlap(
            date(2025, 6, 10), date(2025, 6, 12), date(2025, 6, 12), date(2025, 6, 13)
        )
        assert not ranges_overlap(
            date(2025, 6, 10), date(2025, 6, 12), date(2025, 6, 13), date(2025, 6, 14)
        )

    def test_calendar_days(self):
        assert calendar_days(date(2025, 12, 1), date(2025, 12, 7)) == 7
        assert calendar_days(date(2025, 12, 7), date(2025, 12, 1)) == 0
