"""
Civil-calendar time utilities.

Timestamps are stored in UTC. Every business decision that depends on "the
day" (work date, grant date, last reset date) uses the civil date of the
configured time zone, obtained through an injected CivilClock instead of the
server's wall clock.
"""
import calendar
import re
from datetime import date, datetime, time, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.core.exceptions import ValidationError

_YEAR_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


class CivilClock:
    """Source of "now" and "today" in the configured civil time zone."""

    def __init__(self, tz_name: Optional[str] = None):
        self.tz = ZoneInfo(tz_name or settings.timezone)

    def now(self) -> datetime:
        return datetime.now(timezone.utc).astimezone(self.tz)

    def today(self) -> date:
        return self.now().date()


_default_clock = CivilClock()


def get_clock() -> CivilClock:
    """FastAPI dependency; overridden in tests to pin the date."""
    return _default_clock


def civil_zone() -> ZoneInfo:
    return _default_clock.tz


def to_storage(value: datetime) -> datetime:
    """Normalize a timestamp to UTC for persistence. Naive input is civil time."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=civil_zone())
    return value.astimezone(timezone.utc)


def to_civil(value: datetime) -> datetime:
    """Convert a stored timestamp to civil time. Naive input is UTC (SQLite drops tzinfo)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(civil_zone())


def civil_time_string(value: Optional[datetime]) -> Optional[str]:
    """HH:MM:SS of a stored timestamp in civil time."""
    if value is None:
        return None
    return to_civil(value).strftime("%H:%M:%S")


def combine_civil(work_date: date, time_of_day: time) -> datetime:
    return datetime.combine(work_date, time_of_day, tzinfo=civil_zone())


def add_months(value: date, months: int) -> date:
    """Calendar month arithmetic; the day is clamped to the target month's length."""
    index = value.month - 1 + months
    year = value.year + index // 12
    month = index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def years_of_service(onboard_date: date, target_date: date) -> int:
    """Whole years elapsed; the current year counts only once its anniversary is reached."""
    years = target_date.year - onboard_date.year
    if (target_date.month, target_date.day) < (onboard_date.month, onboard_date.day):
        years -= 1
    return years


def months_of_service(onboard_date: date, target_date: date) -> int:
    months = (target_date.year - onboard_date.year) * 12 + (target_date.month - onboard_date.month)
    if target_date.day < onboard_date.day:
        months -= 1
    return months


def parse_year_month(year_month: str) -> Tuple[int, int]:
    match = _YEAR_MONTH_RE.match(year_month or "")
    if not match:
        raise ValidationError(f"Invalid month '{year_month}', expected YYYY-MM")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise ValidationError(f"Invalid month '{year_month}', expected YYYY-MM")
    return year, month


def month_bounds(year_month: str) -> Tuple[date, date]:
    """First and last calendar day of a YYYY-MM month."""
    year, month = parse_year_month(year_month)
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def parse_time_of_day(value: Optional[str], default: str) -> time:
    raw = value or default
    try:
        return time.fromisoformat(raw)
    except ValueError:
        raise ValidationError(f"Invalid time of day '{raw}', expected HH:MM[:SS]")
