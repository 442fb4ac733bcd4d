"""
Shared fixtures: subscription factory and an in-memory reminder delivery
backend that records every call in order.
"""
from datetime import date

import pytest

from models.errors import DeliveryFailure, PermissionDenied
from models.recurrence import Frequency
from models.subscription import ReminderSettings, Subscription
from services.reminder_delivery import ReminderDelivery


class FakeDelivery(ReminderDelivery):
    """Records calls as tuples in `log`; failures are switched on per test."""

    def __init__(self):
        self.log: list[tuple] = []
        self.requests = []
        self.denied = False
        self.fail_on_calls: set[int] = set()  # 1-based schedule() call numbers
        self.fail_cancel = False
        self.fail_cancel_all = False
        self._calls = 0

    async def ensure_permission(self) -> None:
        self.log.append(("permission",))
        if self.denied:
            raise PermissionDenied("notifications not allowed")

    async def schedule(self, request) -> str:
        self._calls += 1
        if self._calls in self.fail_on_calls:
            self.log.append(("schedule_failed", request.fire_at))
            raise DeliveryFailure("backend rejected")
        handle = f"h{self._calls}"
        self.requests.append(request)
        self.log.append(("schedule", handle))
        return handle

    async def cancel(self, handle: str) -> None:
        self.log.append(("cancel", handle))
        if self.fail_cancel:
            raise DeliveryFailure("cannot cancel")

    async def cancel_all(self) -> None:
        self.log.append(("cancel_all",))
        if self.fail_cancel_all:
            raise DeliveryFailure("cannot cancel all")


@pytest.fixture
def delivery() -> FakeDelivery:
    return FakeDelivery()


@pytest.fixture
def make_sub():
    """Build a Subscription with sensible defaults; override any field by keyword."""
    counter = {"n": 0}

    def _make(**overrides) -> Subscription:
        counter["n"] += 1
        fields = {
            "id": f"sub{counter['n']}",
            "name": f"Sub {counter['n']}",
            "start_date": date(2024, 1, 1),
            "frequency": Frequency.MONTHLY,
            "price": 10.0,
            "reminder": ReminderSettings(enabled=True, days_before_payment=3, notification_time="09:00"),
        }
        fields.update(overrides)
        return Subscription(**fields)

    return _make
