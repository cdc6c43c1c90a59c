"""Clock and date helpers for Taskmate.

The parser and planner never read the system clock; callers get "now" from
here (in the user's configured timezone) and pass it in explicitly.
"""

import logging
from datetime import datetime, timedelta

import pytz

from taskmate.config import settings
from taskmate.services.scheduling import TimeInterval

logger = logging.getLogger(__name__)


def relocalize(dt: datetime) -> datetime:
    """Re-derive the UTC offset of a pytz-aware wall-clock time.

    pytz pins a fixed offset on every aware datetime, so `replace` and
    timedelta arithmetic keep the old offset across a DST change. Naive
    datetimes and non-pytz zones come back unchanged.
    """
    zone = getattr(dt.tzinfo, "zone", None)
    if zone is None:
        return dt
    return pytz.timezone(zone).localize(dt.replace(tzinfo=None))


def start_of_day(dt: datetime) -> datetime:
    return relocalize(dt.replace(hour=0, minute=0, second=0, microsecond=0))


def end_of_day(dt: datetime) -> datetime:
    return relocalize(dt.replace(hour=23, minute=59, second=59, microsecond=999999))


class TimezoneService:
    """Reads the wall clock in the user's timezone.

    Unknown timezone names fall back to UTC.
    """

    def __init__(self, default_timezone: str | None = None):
        self._default_tz_name = default_timezone or settings.user_timezone
        try:
            self._default_tz = pytz.timezone(self._default_tz_name)
        except pytz.UnknownTimeZoneError:
            logger.warning(f"Unknown timezone {self._default_tz_name!r}, using UTC")
            self._default_tz_name = "UTC"
            self._default_tz = pytz.UTC

    @property
    def default_timezone(self) -> str:
        return self._default_tz_name

    def now(self) -> datetime:
        """Current time in the user's timezone."""
        return datetime.now(self._default_tz)

    def today(self) -> datetime:
        """Midnight today in the user's timezone."""
        return self.localize(start_of_day(self.now()).replace(tzinfo=None))

    def localize(self, dt: datetime) -> datetime:
        """Attach the user's timezone to a naive datetime, or convert an aware one."""
        if dt.tzinfo is None:
            return self._default_tz.localize(dt)
        return dt.astimezone(self._default_tz)


def today_range(now: datetime) -> TimeInterval:
    """Today as ``[midnight, next midnight)``."""
    start = start_of_day(now)
    return TimeInterval(start=start, end=start + timedelta(days=1))


def next_days_range(now: datetime, days: int = 7) -> TimeInterval:
    """The next ``days`` calendar days starting at today's midnight."""
    start = start_of_day(now)
    return TimeInterval(start=start, end=start + timedelta(days=days))


def is_overdue(due_date: datetime | None, now: datetime, completed: bool = False) -> bool:
    """A task is overdue when it has a due date in the past and is not done."""
    if due_date is None or completed:
        return False
    return due_date < now


def _ordinal(day: int) -> str:
    if 11 <= day % 100 <= 13:
        return f"{day}th"
    suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    return f"{day}{suffix}"


def format_date(dt: datetime | None) -> str | None:
    """Long form, e.g. "December 25th, 2024"."""
    if dt is None:
        return None
    return f"{dt.strftime('%B')} {_ordinal(dt.day)}, {dt.year}"


def format_date_short(dt: datetime | None) -> str | None:
    """Short form, e.g. "12/25/2024"."""
    if dt is None:
        return None
    return dt.strftime("%m/%d/%Y")


def format_time(dt: datetime | None) -> str | None:
    """Clock time, e.g. "3:00 PM"."""
    if dt is None:
        return None
    return dt.strftime("%I:%M %p").lstrip("0")


# Module-level singleton
_timezone_service: TimezoneService | None = None


def get_timezone_service() -> TimezoneService:
    """Get or create the global TimezoneService instance."""
    global _timezone_service
    if _timezone_service is None:
        _timezone_service = TimezoneService()
    return _timezone_service


def reset_timezone_service() -> None:
    """Drop the global TimezoneService (used after settings change)."""
    global _timezone_service
    _timezone_service = None


def now() -> datetime:
    """Current time in the user's timezone."""
    return get_timezone_service().now()
