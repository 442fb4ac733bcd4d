"""
services/amounts.py
-------------------
Converts a per-cycle price into monthly and yearly equivalents.

These are display approximations with fixed averages (30.44 days and
4.33 weeks per month, 365 days and 52 weeks per year), not exact
calendar conversions, so figures do not change from one month to the next.

Amounts are exact fractions of the stored price: a yearly price spread
over twelve months multiplies back to the same price. Convert with
float() or format_money() only when showing a figure.
"""

from fractions import Fraction
from typing import Optional

from models.recurrence import Frequency

DAYS_PER_MONTH = Fraction("30.44")
WEEKS_PER_MONTH = Fraction("4.33")
DAYS_PER_YEAR = 365
WEEKS_PER_YEAR = 52
DEFAULT_CUSTOM_INTERVAL_DAYS = 30


def _interval(custom_interval_days: Optional[int]) -> int:
    # Best-effort display fallback only; scheduling never uses this default
    if custom_interval_days is None:
        custom_interval_days = DEFAULT_CUSTOM_INTERVAL_DAYS
    return max(1, int(custom_interval_days))


def monthly_amount(price: float, frequency: Frequency, custom_interval_days: Optional[int] = None) -> Fraction:
    """Price of one cycle expressed per calendar month."""
    frequency = Frequency(frequency)
    price = Fraction(price)
    if frequency is Frequency.DAILY:
        return price * DAYS_PER_MONTH
    if frequency is Frequency.WEEKLY:
        return price * WEEKS_PER_MONTH
    if frequency is Frequency.MONTHLY:
        return price
    if frequency is Frequency.YEARLY:
        return price / 12
    return price * DAYS_PER_MONTH / _interval(custom_interval_days)


def yearly_amount(price: float, frequency: Frequency, custom_interval_days: Optional[int] = None) -> Fraction:
    """Price of one cycle expressed per calendar year."""
    frequency = Frequency(frequency)
    price = Fraction(price)
    if frequency is Frequency.DAILY:
        return price * DAYS_PER_YEAR
    if frequency is Frequency.WEEKLY:
        return price * WEEKS_PER_YEAR
    if frequency is Frequency.MONTHLY:
        return price * 12
    if frequency is Frequency.YEARLY:
        return price
    return price * DAYS_PER_YEAR / _interval(custom_interval_days)


def period_amount(price: float, frequency: Frequency, custom_interval_days: Optional[int], period: str) -> Fraction:
    """Monthly amount for period 'month', yearly amount for 'year'."""
    if period == "month":
        return monthly_amount(price, frequency, custom_interval_days)
    if period == "year":
        return yearly_amount(price, frequency, custom_interval_days)
    raise ValueError(f"period must be 'month' or 'year', got {period!r}")
