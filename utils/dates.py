"""
utils/dates.py
--------------
Local-time date helpers: date keys, reminder times and relative days.
"""

import re
from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta

from config import TIMEZONE

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def local_tz() -> ZoneInfo:
    """The configured application time zone."""
    return ZoneInfo(TIMEZONE)


def now_local() -> datetime:
    """Current time as an aware datetime in the application time zone."""
    return datetime.now(local_tz())


def to_date_key(value: date) -> str:
    """
    Format a date as "YYYY-MM-DD" using its local calendar fields.

    An aware datetime keeps its own wall-clock day (no conversion to UTC),
    so late-evening charges are not shifted onto the next day.
    """
    if isinstance(value, datetime):
        value = value.date()
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def from_date_key(key: str) -> date:
    """Parse a "YYYY-MM-DD" key back into a date."""
    year, month, day = (int(part) for part in key.split("-"))
    return date(year, month, day)


def parse_notification_time(value: str) -> time:
    """
    Parse a reminder time of day.

    Args:
        value: "HH:mm", 24-hour clock.

    Raises:
        ValueError: If the string is not a valid time.
    """
    match = _TIME_RE.match((value or "").strip())
    if not match:
        raise ValueError(f"Invalid time {value!r}, expected HH:mm")
    return time(int(match.group(1)), int(match.group(2)))


def days_until(target: date, today: date) -> int:
    """Whole days from today to target; negative when target is in the past."""
    if isinstance(target, datetime):
        target = target.date()
    if isinstance(today, datetime):
        today = today.date()
    return (target - today).days


def subscription_age(start: date, today: date) -> tuple[int, int, int]:
    """
    How long a subscription has been running.

    Returns:
        (years, months, days); all zero when start is in the future.
    """
    if isinstance(today, datetime):
        today = today.date()
    if start > today:
        return 0, 0, 0
    age = relativedelta(today, start)
    return age.years, age.months, age.days
