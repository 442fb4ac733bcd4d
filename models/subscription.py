"""
models/subscription.py
----------------------
Domain model for tracked subscriptions (streaming, utilities, etc.).
"""

import math
import random
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from models.recurrence import Frequency, Recurrence
from utils.dates import parse_notification_time

CATEGORIES: list[str] = [
    "Home",
    "Entertainment",
    "Culture",
    "Sport",
    "Music",
    "Mobility",
    "Productivity",
    "News",
    "Gaming",
    "Food",
    "Work",
    "Education",
    "Other",
]
DEFAULT_CATEGORY = "Other"

PREDEFINED_COLORS: list[str] = [
    "#2196F3",  # blue
    "#4CAF50",  # green
    "#FF9800",  # orange
    "#9C27B0",  # purple
    "#F44336",  # red
    "#00BCD4",  # cyan
    "#FFC107",  # amber
    "#795548",  # brown
    "#607D8B",  # blue grey
    "#E91E63",  # pink
    "#3F51B5",  # indigo
    "#8BC34A",  # light green
]

MAX_DAYS_BEFORE_PAYMENT = 30


def random_color() -> str:
    """Pick a color from the predefined palette."""
    return random.choice(PREDEFINED_COLORS)


def _to_date(value) -> Optional[date]:
    """Accept a date, a datetime or an ISO string and keep only the calendar date."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _to_datetime(value) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


@dataclass
class ReminderSettings:
    """
    Per-subscription reminder preferences.

    Attributes:
        enabled: Whether reminders are wanted for this subscription.
        days_before_payment: How many days before the charge to remind (0-30).
        notification_time: Time of day of the reminder, "HH:mm".
    """
    enabled: bool = True
    days_before_payment: int = 3
    notification_time: str = "09:00"

    def __post_init__(self) -> None:
        if not 0 <= int(self.days_before_payment) <= MAX_DAYS_BEFORE_PAYMENT:
            raise ValueError(
                f"days_before_payment must be between 0 and {MAX_DAYS_BEFORE_PAYMENT}, "
                f"got {self.days_before_payment}"
            )
        self.days_before_payment = int(self.days_before_payment)
        parse_notification_time(self.notification_time)

    def to_dict(self) -> dict:
        return {
            "enabled": self.enabled,
            "daysBeforePayment": self.days_before_payment,
            "notificationTime": self.notification_time,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ReminderSettings":
        return cls(
            enabled=bool(data.get("enabled", True)),
            days_before_payment=data.get("daysBeforePayment", 3),
            notification_time=data.get("notificationTime", "09:00"),
        )


@dataclass(frozen=True)
class NotificationPreferences:
    """Application-wide notification switches, passed explicitly to the scheduler."""
    notifications_enabled: bool = True
    reminders_enabled: bool = True
    currency_symbol: str = "€"


@dataclass
class Subscription:
    """
    Represents a recurring charge the user is tracking.

    Attributes:
        id: Opaque unique id, assigned at creation and never reused.
        name: Friendly name (e.g. 'Netflix', 'Electricity').
        start_date: Date of the first charge; anchor for all recurrence math.
        frequency: How often the price is charged.
        price: Amount charged once per cycle (not normalized).
        custom_interval_days: Cycle length in days when frequency is 'custom'.
        category: One of CATEGORIES.
        reminder: Per-subscription reminder preferences.
        scheduled_reminder_ids: Handles returned by the reminder delivery backend.
        next_payment_date: Cached next charge, refreshed on every create/update.
        color: Hex display color.
        payment_method: Free text, e.g. "Visa *1234", "PayPal".
        description: Optional note.
        account: Email or user name of the account.
        created_at: Timestamp when the record was created.
        updated_at: Timestamp of the last edit.
    """
    id: str
    name: str
    start_date: date
    frequency: Frequency
    price: float
    custom_interval_days: Optional[int] = None
    category: str = DEFAULT_CATEGORY
    reminder: ReminderSettings = field(default_factory=ReminderSettings)
    scheduled_reminder_ids: list[str] = field(default_factory=list)
    next_payment_date: Optional[date] = None
    color: str = PREDEFINED_COLORS[0]
    payment_method: Optional[str] = None
    description: Optional[str] = None
    account: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not isinstance(self.frequency, Frequency):
            self.frequency = Frequency(self.frequency)

    @property
    def recurrence(self) -> Recurrence:
        """
        The validated billing cycle.

        Raises:
            InvalidConfiguration: Custom frequency without a positive interval.
        """
        return Recurrence.of(self.frequency, self.custom_interval_days)

    def __str__(self) -> str:
        status = "🔔" if self.reminder.enabled else "🔕"
        return f"{status} {self.name}: {self.price:.2f} ({self.recurrence}) - Next: {self.next_payment_date}"

    # ── Serialization ─────────────────────────────────────

    def to_dict(self) -> dict:
        """JSON-ready representation, dates as ISO strings."""
        return {
            "id": self.id,
            "name": self.name,
            "startDate": self.start_date.isoformat(),
            "frequency": self.frequency.value,
            "customIntervalDays": self.custom_interval_days,
            "price": self.price,
            "category": self.category,
            "color": self.color,
            "paymentMethod": self.payment_method,
            "description": self.description,
            "account": self.account,
            "notifications": self.reminder.to_dict(),
            "notificationIds": list(self.scheduled_reminder_ids),
            "nextPaymentDate": self.next_payment_date.isoformat() if self.next_payment_date else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Subscription":
        """
        Rebuild a subscription from `to_dict` output (full ISO timestamps are accepted for dates).

        Raises:
            InvalidConfiguration: Custom frequency without a positive interval.
            KeyError: A required field is missing.
            ValueError: Malformed fields, or a non-finite or negative price.
        """
        sub = cls(
            id=str(data["id"]),
            name=data["name"],
            start_date=_to_date(data["startDate"]),
            frequency=Frequency(data["frequency"]),
            price=float(data.get("price") or 0),
            custom_interval_days=data.get("customIntervalDays"),
            category=data.get("category") or DEFAULT_CATEGORY,
            reminder=ReminderSettings.from_dict(data.get("notifications") or {}),
            scheduled_reminder_ids=list(data.get("notificationIds") or []),
            next_payment_date=_to_date(data.get("nextPaymentDate")),
            color=data.get("color") or PREDEFINED_COLORS[0],
            payment_method=data.get("paymentMethod"),
            description=data.get("description"),
            account=data.get("account"),
            created_at=_to_datetime(data.get("createdAt")),
            updated_at=_to_datetime(data.get("updatedAt")),
        )
        Recurrence.of(sub.frequency, sub.custom_interval_days)
        if not math.isfinite(sub.price) or sub.price < 0:
            raise ValueError(f"Subscription {sub.id} has an invalid price: {sub.price}")
        return sub


@dataclass
class SubscriptionForm:
    """User input for creating or editing a subscription."""
    name: str
    start_date: date
    frequency: Frequency
    price: float
    custom_interval_days: Optional[int] = 30
    category: str = DEFAULT_CATEGORY
    reminder: ReminderSettings = field(default_factory=ReminderSettings)
    color: Optional[str] = None
    payment_method: Optional[str] = None
    description: Optional[str] = None
    account: Optional[str] = None

    def validate(self) -> None:
        """
        Check the form before it reaches the store.

        Raises:
            ValueError: Empty name, negative or non-finite price, unknown category.
            InvalidConfiguration: Unrepresentable recurrence.
        """
        if not (self.name or "").strip():
            raise ValueError("Name is required")
        if not math.isfinite(self.price) or self.price < 0:
            raise ValueError(f"Price must be a non-negative amount, got {self.price}")
        if self.category not in CATEGORIES:
            raise ValueError(f"Unknown category: {self.category!r}")
        Recurrence.of(self.frequency, self.custom_interval_days)
