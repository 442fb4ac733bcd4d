"""
models/recurrence.py
--------------------
Billing frequency of a subscription, as a single tagged value.

Every per-frequency decision (how far one cycle reaches) is made here and
in services/calendar_math.py; no other module branches on the frequency.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from dateutil.relativedelta import relativedelta

from models.errors import InvalidConfiguration


class Frequency(str, Enum):
    """How often a subscription is charged."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"


@dataclass(frozen=True)
class Recurrence:
    """
    A validated billing cycle.

    Attributes:
        frequency: The billing frequency.
        interval_days: Cycle length in days, only for Frequency.CUSTOM.
    """
    frequency: Frequency
    interval_days: Optional[int] = None

    def __post_init__(self) -> None:
        if not isinstance(self.frequency, Frequency):
            try:
                object.__setattr__(self, "frequency", Frequency(self.frequency))
            except ValueError as e:
                raise InvalidConfiguration(f"Unknown frequency: {self.frequency!r}") from e

        if self.frequency is Frequency.CUSTOM:
            if self.interval_days is None or int(self.interval_days) < 1:
                raise InvalidConfiguration(
                    f"Custom frequency needs a positive interval, got {self.interval_days!r}"
                )
            object.__setattr__(self, "interval_days", int(self.interval_days))
        elif self.interval_days is not None:
            object.__setattr__(self, "interval_days", None)

    # ── Constructors ──────────────────────────────────────

    @classmethod
    def daily(cls) -> "Recurrence":
        return cls(Frequency.DAILY)

    @classmethod
    def weekly(cls) -> "Recurrence":
        return cls(Frequency.WEEKLY)

    @classmethod
    def monthly(cls) -> "Recurrence":
        return cls(Frequency.MONTHLY)

    @classmethod
    def yearly(cls) -> "Recurrence":
        return cls(Frequency.YEARLY)

    @classmethod
    def custom(cls, interval_days: int) -> "Recurrence":
        return cls(Frequency.CUSTOM, interval_days)

    @classmethod
    def of(cls, frequency: "Frequency | str", custom_interval_days: Optional[int] = None) -> "Recurrence":
        """
        Build a recurrence from a stored frequency and optional interval.

        The interval is only kept for custom frequencies; forms carry a
        default interval for every frequency, so a stray value is ignored.

        Raises:
            InvalidConfiguration: Unknown frequency, or custom without a positive interval.
        """
        return cls(frequency, custom_interval_days)

    # ── Cycle length ──────────────────────────────────────

    @property
    def fixed_days(self) -> Optional[int]:
        """Cycle length in days when it never varies, else None (months, years)."""
        if self.frequency is Frequency.DAILY:
            return 1
        if self.frequency is Frequency.WEEKLY:
            return 7
        if self.frequency is Frequency.CUSTOM:
            return self.interval_days
        return None

    @property
    def months(self) -> int:
        """Cycle length in calendar months for month-based frequencies, else 0."""
        if self.frequency is Frequency.MONTHLY:
            return 1
        if self.frequency is Frequency.YEARLY:
            return 12
        return 0

    def delta(self, cycles: int = 1) -> relativedelta:
        """
        The offset covered by `cycles` consecutive cycles.

        relativedelta clamps month and year steps to the last day of the
        target month (Jan 31 + 1 month = Feb 28/29, Feb 29 + 1 year = Feb 28).
        """
        if self.frequency is Frequency.MONTHLY:
            return relativedelta(months=cycles)
        if self.frequency is Frequency.YEARLY:
            return relativedelta(years=cycles)
        return relativedelta(days=self.fixed_days * cycles)

    def __str__(self) -> str:
        if self.frequency is Frequency.CUSTOM:
            return f"every {self.interval_days} days"
        return self.frequency.value
