"""Work time and overtime computation for a four-action timecard."""

from __future__ import annotations

from datetime import time

from hr_engine.calculators.types import WorkTime


def minutes_of_day(value: time) -> int:
    """Minute index of a time of day; seconds are ignored."""
    return value.hour * 60 + value.minute


def _span(start: time | None, end: time | None) -> int:
    if start is None or end is None:
        return 0
    return max(0, minutes_of_day(end) - minutes_of_day(start))


def compute_work_time(
    clock_in_1: time | None,
    clock_out_1: time | None,
    clock_in_2: time | None,
    clock_out_2: time | None,
    standard_minutes: int,
    full_time: bool = True,
) -> WorkTime:
    """Compute work, break and overtime minutes.

    Morning is out1 - in1 and afternoon is out2 - in2 when both ends are
    present. A day with only in1 and out2 has no recorded break and counts
    out2 - in1.
    """
    if clock_in_1 is None:
        return WorkTime(work_minutes=0, break_minutes=0, ot_minutes=0, ot_flagged=False)

    if clock_out_1 is None and clock_in_2 is None:
        work = _span(clock_in_1, clock_out_2)
    else:
        work = _span(clock_in_1, clock_out_1) + _span(clock_in_2, clock_out_2)

    break_minutes = _span(clock_out_1, clock_in_2)
    ot = max(0, work - standard_minutes)

    return WorkTime(
        work_minutes=work,
        break_minutes=break_minutes,
        ot_minutes=ot,
        ot_flagged=full_time and ot > 0,
    )
