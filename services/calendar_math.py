"""
services/calendar_math.py
-------------------------
Date-only stepping of a calendar date by one billing cycle.
All other services go through `advance` for cycle arithmetic.
"""

from datetime import date, datetime

from models.recurrence import Recurrence


def _as_date(value: date) -> date:
    # datetime is a date subclass; drop the time of day
    return value.date() if isinstance(value, datetime) else value


def advance(day: date, recurrence: Recurrence) -> date:
    """
    Step a calendar date forward by exactly one cycle.

    daily +1 day, weekly +7 days, monthly +1 calendar month, yearly +1
    calendar year (both clamped to the end of a shorter month), custom
    +interval days.

    Month steps start from the given date, not from the original anchor,
    so a clamped day stays clamped: Jan 31 -> Feb 29 -> Mar 29.

    Args:
        day: The date to step from (a datetime is truncated to its date).
        recurrence: A validated billing cycle.

    Returns:
        A new date one cycle later; the input is not modified.
    """
    return _as_date(day) + recurrence.delta(1)
