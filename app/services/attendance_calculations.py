"""
Attendance status and work-hour calculations.

Pure functions: callers persist the results.
"""
from datetime import datetime, time
from typing import Optional, Union

from app.core.exceptions import ValidationError
from app.models.attendance import AttendanceStatus

# Break deductions an hourly employee may choose at clock-out
BREAK_OPTIONS = (0.0, 0.5, 1.0, 1.5, 2.0, 2.5, 3.0)

TimeLike = Union[str, time, None]


def time_to_seconds(value: TimeLike) -> int:
    """Seconds since midnight for 'HH:MM[:SS]' strings or time objects."""
    if not value:
        return 0
    if isinstance(value, time):
        return value.hour * 3600 + value.minute * 60 + value.second
    parts = [int(p) for p in str(value).split(":")]
    parts += [0] * (3 - len(parts))
    return parts[0] * 3600 + parts[1] * 60 + parts[2]


def determine_attendance_status(
    clock_in: TimeLike,
    clock_out: TimeLike,
    work_start: TimeLike = "09:00:00",
    work_end: TimeLike = "18:00:00",
) -> str:
    """
    Late if clock-in is strictly after work start, early leave if clock-out is
    strictly before work end. A missing clock-out is never an early leave.
    """
    is_late = clock_in is not None and time_to_seconds(clock_in) > time_to_seconds(work_start)
    is_early_leave = clock_out is not None and time_to_seconds(clock_out) < time_to_seconds(work_end)

    if is_late and is_early_leave:
        return AttendanceStatus.LATE_EARLY_LEAVE.value
    if is_late:
        return AttendanceStatus.LATE.value
    if is_early_leave:
        return AttendanceStatus.EARLY_LEAVE.value
    return AttendanceStatus.NORMAL.value


def calculate_work_hours(
    clock_in: datetime,
    clock_out: datetime,
    break_hours: float = 0.0,
) -> float:
    """Net hours between two timestamps, minus the break, floored at 0 and rounded to 2 places."""
    if clock_out < clock_in:
        return 0.0
    total_hours = (clock_out - clock_in).total_seconds() / 3600
    return round(max(0.0, total_hours - (break_hours or 0.0)), 2)


def validate_break_hours(break_hours: Optional[float]) -> float:
    if break_hours is None:
        raise ValidationError("Break duration is required for hourly employees")
    if float(break_hours) not in BREAK_OPTIONS:
        raise ValidationError(
            f"Invalid break duration {break_hours}",
            details={"allowed": list(BREAK_OPTIONS)},
        )
    return float(break_hours)
