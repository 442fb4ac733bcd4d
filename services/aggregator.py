"""
services/aggregator.py
----------------------
Portfolio totals, groupings and insights over the whole subscription list.

Anything ordered by "next payment" recomputes it from the start date;
the cached `next_payment_date` field may be stale once a cycle has passed.
"""

from dataclasses import dataclass
from datetime import date, datetime
from fractions import Fraction
from typing import Optional

from dateutil.relativedelta import relativedelta

from models.subscription import Subscription
from services.amounts import monthly_amount, period_amount, yearly_amount
from services.recurrence import next_payment_date, occurrences_between, total_spent
from utils.dates import days_until, to_date_key

UNCATEGORIZED = "Uncategorized"


@dataclass(frozen=True)
class CategoryShare:
    """Spend of one category over a period and its share of the total."""
    name: str
    amount: Fraction
    percentage: float


@dataclass(frozen=True)
class UpcomingPayment:
    """A subscription with its live next charge date."""
    subscription: Subscription
    date: date
    days_until: int
    amount: Fraction


def _amount(sub: Subscription, period: str) -> Fraction:
    return period_amount(sub.price, sub.frequency, sub.custom_interval_days, period)


def _category(sub: Subscription) -> str:
    return sub.category or UNCATEGORIZED


# ── Totals ────────────────────────────────────────────────


def total_monthly(subs: list[Subscription]) -> Fraction:
    """Sum of every subscription's monthly equivalent."""
    return sum((monthly_amount(s.price, s.frequency, s.custom_interval_days) for s in subs), Fraction(0))


def total_yearly(subs: list[Subscription]) -> Fraction:
    """Sum of every subscription's yearly equivalent."""
    return sum((yearly_amount(s.price, s.frequency, s.custom_interval_days) for s in subs), Fraction(0))


# ── Ordering and grouping ─────────────────────────────────


def sorted_by_next_payment(subs: list[Subscription], now: datetime) -> list[Subscription]:
    """All subscriptions, soonest live next payment first (stable for ties)."""
    return sorted(subs, key=lambda s: next_payment_date(s, now))


def group_by_category(subs: list[Subscription], now: datetime) -> dict[str, list[Subscription]]:
    """
    Partition by category.

    Groups appear in order of first appearance; members are sorted by live
    next payment date, ties kept in insertion order.
    """
    groups: dict[str, list[Subscription]] = {}
    for sub in subs:
        groups.setdefault(_category(sub), [])
    for sub in sorted_by_next_payment(subs, now):
        groups[_category(sub)].append(sub)
    return groups


def category_breakdown(subs: list[Subscription], period: str = "month") -> list[CategoryShare]:
    """Per-category spend for 'month' or 'year', with percentages of the total (one decimal)."""
    totals: dict[str, Fraction] = {}
    for sub in subs:
        key = _category(sub)
        totals[key] = totals.get(key, Fraction(0)) + _amount(sub, period)

    grand_total = sum(totals.values(), Fraction(0))
    return [
        CategoryShare(
            name=name,
            amount=amount,
            percentage=round(float(amount / grand_total * 100), 1) if grand_total else 0.0,
        )
        for name, amount in totals.items()
    ]


# ── Insights ──────────────────────────────────────────────


def highest_payment(subs: list[Subscription], period: str = "month") -> Optional[tuple[Subscription, Fraction]]:
    """The most expensive subscription over the period (first one wins ties)."""
    best = None
    for sub in subs:
        amount = _amount(sub, period)
        if best is None or amount > best[1]:
            best = (sub, amount)
    return best


def dominant_category(subs: list[Subscription], period: str = "month") -> Optional[CategoryShare]:
    """The category with the largest share of the period's spend."""
    shares = category_breakdown(subs, period)
    if not shares:
        return None
    return max(shares, key=lambda share: share.amount)


def upcoming_payments(
    subs: list[Subscription],
    now: datetime,
    limit: int = 5,
    period: str = "month",
) -> list[UpcomingPayment]:
    """The next `limit` charges, soonest first."""
    today = now.date() if isinstance(now, datetime) else now
    upcoming = []
    for sub in sorted_by_next_payment(subs, now)[:limit]:
        due = next_payment_date(sub, now)
        upcoming.append(
            UpcomingPayment(
                subscription=sub,
                date=due,
                days_until=days_until(due, today),
                amount=_amount(sub, period),
            )
        )
    return upcoming


def most_accumulated(subs: list[Subscription], now: datetime) -> Optional[tuple[Subscription, float]]:
    """The subscription that has cost the most since it started."""
    best = None
    for sub in subs:
        spent = total_spent(sub, now)
        if best is None or spent > best[1]:
            best = (sub, spent)
    return best


# ── Calendar ──────────────────────────────────────────────


def payment_calendar(
    subs: list[Subscription],
    start: date,
    end: Optional[date] = None,
    horizon_months: int = 6,
) -> dict[str, list[Subscription]]:
    """
    Every charge between start and end, keyed by local "YYYY-MM-DD".

    Args:
        subs: Subscriptions to place on the calendar.
        start: First day of the window.
        end: Last day of the window; defaults to start + horizon_months.
        horizon_months: Window length when end is not given.

    Returns:
        Date keys in chronological order, each with the subscriptions
        charged that day in list order.
    """
    if isinstance(start, datetime):
        start = start.date()
    if end is None:
        end = start + relativedelta(months=horizon_months)

    events: dict[str, list[Subscription]] = {}
    for sub in subs:
        for day in occurrences_between(sub.start_date, sub.recurrence, start, end):
            events.setdefault(to_date_key(day), []).append(sub)
    return dict(sorted(events.items()))
