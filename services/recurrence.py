"""
services/recurrence.py
----------------------
Next-payment and charge-history calculations for a billing cycle.

Comparisons are date-only: the reference instant is truncated to its
calendar day (in its own time zone when aware), and a charge on day D
counts as "happened" from the first moment of D.

Cycle dates are produced by stepping with `advance` from the start date,
one cycle at a time. Fixed-length cycles (daily, weekly, custom) reach
the same date by a single jump, so they skip the walk.
"""

from datetime import date, datetime, timedelta

from models.recurrence import Recurrence
from models.subscription import Subscription
from services.calendar_math import advance


def _day_of(instant: date) -> date:
    return instant.date() if isinstance(instant, datetime) else instant


def _walk_past(anchor: date, recurrence: Recurrence, day: date) -> tuple[int, date]:
    """
    Step from the anchor until the first cycle date after `day`.

    Returns:
        (cycle dates on or before `day`, first cycle date after `day`).
    """
    if anchor > day:
        return 0, anchor

    fixed = recurrence.fixed_days
    if fixed:
        count = (day - anchor).days // fixed + 1
        return count, anchor + timedelta(days=count * fixed)

    count, current = 0, anchor
    while current <= day:
        count += 1
        current = advance(current, recurrence)
    return count, current


def next_occurrence_at_or_after(anchor: date, recurrence: Recurrence, reference: datetime) -> date:
    """
    First cycle date strictly after the reference instant's calendar day.

    Args:
        anchor: First charge date (subscription start).
        recurrence: A validated billing cycle.
        reference: The query instant ("now"); a plain date is accepted too.

    Returns:
        `anchor` unchanged when it is already after the reference day,
        otherwise the first later cycle date.
    """
    _, upcoming = _walk_past(_day_of(anchor), recurrence, _day_of(reference))
    return upcoming


def occurrences_since(anchor: date, recurrence: Recurrence, reference: datetime) -> int:
    """
    Number of charges (the anchor included) on or before the reference day.

    Returns:
        0 when the anchor is still in the future or missing.
    """
    if anchor is None:
        return 0
    count, _ = _walk_past(_day_of(anchor), recurrence, _day_of(reference))
    return count


def occurrences_between(anchor: date, recurrence: Recurrence, start: date, end: date) -> list[date]:
    """All cycle dates d with start <= d <= end (never before the anchor)."""
    anchor, start, end = _day_of(anchor), _day_of(start), _day_of(end)
    if end < start or end < anchor:
        return []

    current = anchor
    if anchor < start:
        _, current = _walk_past(anchor, recurrence, start - timedelta(days=1))
    dates = []
    while current <= end:
        dates.append(current)
        current = advance(current, recurrence)
    return dates


# ── Subscription helpers ──────────────────────────────────


def next_payment_date(sub: Subscription, now: datetime) -> date:
    """Live next charge, always recomputed from the start date (never from the cached field)."""
    return next_occurrence_at_or_after(sub.start_date, sub.recurrence, now)


def charges_since_start(sub: Subscription, now: datetime) -> int:
    """How many times the subscription has been charged so far."""
    return occurrences_since(sub.start_date, sub.recurrence, now)


def total_spent(sub: Subscription, now: datetime) -> float:
    """Cumulative spend: charges so far times the per-cycle price."""
    return charges_since_start(sub, now) * sub.price
