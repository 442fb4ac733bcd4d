"""
services/subscription_service.py
--------------------------------
Business logic for the subscription lifecycle.
Orchestrates the recurrence engine, the reminder scheduler and the repository.
"""

import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Optional

from models.errors import InvalidConfiguration, PermissionDenied
from models.subscription import (
    NotificationPreferences,
    ReminderSettings,
    Subscription,
    SubscriptionForm,
    random_color,
)
from repositories.subscription_repo import SubscriptionRepository
from services.recurrence import next_payment_date
from services.reminder_scheduler import ReminderScheduler
from utils.dates import now_local
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class SaveOutcome:
    """
    Result of a create/update.

    Attributes:
        subscription: The stored version.
        permission_denied: Reminders were switched off because delivery is not permitted.
    """
    subscription: Subscription
    permission_denied: bool = False


def _clean(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None


class SubscriptionService:
    """
    Handles all business logic for tracked subscriptions.

    Responsibilities:
        - Create, edit and delete subscriptions.
        - Keep the cached next payment date fresh on every write.
        - Keep reminders in sync (cancel before reschedule, cancel on delete).
        - Flip the global notification switches.
    """

    def __init__(
        self,
        repo: SubscriptionRepository,
        scheduler: ReminderScheduler,
        preferences: NotificationPreferences,
        clock: Callable[[], datetime] = now_local,
    ):
        self.repo = repo
        self.scheduler = scheduler
        self.preferences = preferences
        self.clock = clock

    # ── Queries ───────────────────────────────────────────

    def get(self, sub_id: str) -> Optional[Subscription]:
        return self.repo.get_by_id(sub_id)

    def list_all(self) -> list[Subscription]:
        return self.repo.get_all()

    # ── Lifecycle ─────────────────────────────────────────

    async def add(self, form: SubscriptionForm, now: Optional[datetime] = None) -> SaveOutcome:
        """
        Create a subscription from user input and schedule its reminders.

        Raises:
            ValueError: Invalid form (InvalidConfiguration for an unrepresentable recurrence).
        """
        form.validate()
        now = now or self.clock()

        sub = Subscription(
            id=uuid.uuid4().hex,
            name=form.name.strip(),
            start_date=form.start_date,
            frequency=form.frequency,
            price=float(form.price),
            custom_interval_days=form.custom_interval_days,
            category=form.category,
            reminder=form.reminder,
            scheduled_reminder_ids=[],
            color=form.color or random_color(),
            payment_method=_clean(form.payment_method),
            description=_clean(form.description),
            account=_clean(form.account),
            created_at=now,
            updated_at=now,
        )
        sub = replace(sub, next_payment_date=next_payment_date(sub, now))
        self.repo.add(sub)

        try:
            handles = await self.scheduler.schedule_upcoming(sub, now, self.preferences)
        except PermissionDenied as e:
            return self._reminders_refused(sub, e)
        return SaveOutcome(self.repo.replace(replace(sub, scheduled_reminder_ids=handles)))

    async def update(
        self, sub_id: str, form: SubscriptionForm, now: Optional[datetime] = None
    ) -> Optional[SaveOutcome]:
        """
        Apply an edit, recompute the next payment and replace the reminders.

        Returns:
            None if the subscription does not exist.
        """
        previous = self.repo.get_by_id(sub_id)
        if previous is None:
            return None
        form.validate()
        now = now or self.clock()

        updated = replace(
            previous,
            name=form.name.strip(),
            start_date=form.start_date,
            frequency=form.frequency,
            price=float(form.price),
            custom_interval_days=form.custom_interval_days,
            category=form.category,
            reminder=form.reminder,
            color=form.color or previous.color,
            payment_method=_clean(form.payment_method) or previous.payment_method,
            description=_clean(form.description) or previous.description,
            account=_clean(form.account) or previous.account,
            scheduled_reminder_ids=[],
            updated_at=now,
        )
        return await self._store_edit(previous, updated, now)

    async def set_reminder(
        self, sub_id: str, reminder: ReminderSettings, now: Optional[datetime] = None
    ) -> Optional[SaveOutcome]:
        """Change only the reminder preferences of a subscription."""
        previous = self.repo.get_by_id(sub_id)
        if previous is None:
            return None
        now = now or self.clock()
        updated = replace(previous, reminder=reminder, scheduled_reminder_ids=[], updated_at=now)
        return await self._store_edit(previous, updated, now)

    async def delete(self, sub_id: str) -> bool:
        """Cancel a subscription's reminders, then remove it."""
        sub = self.repo.get_by_id(sub_id)
        if sub is None:
            return False
        failures = await self.scheduler.cancel_all(sub)
        if failures:
            logger.warning(f"{failures} reminders of '{sub.name}' could not be cancelled")
        return self.repo.delete(sub_id)

    # ── Global switches ───────────────────────────────────

    async def set_notifications_enabled(self, enabled: bool, now: Optional[datetime] = None) -> int:
        self.preferences = replace(self.preferences, notifications_enabled=enabled)
        return await self.rebuild_reminders(now)

    async def set_reminders_enabled(self, enabled: bool, now: Optional[datetime] = None) -> int:
        self.preferences = replace(self.preferences, reminders_enabled=enabled)
        return await self.rebuild_reminders(now)

    async def rebuild_reminders(self, now: Optional[datetime] = None) -> int:
        """
        Resynchronize every subscription's reminders with the delivery backend.

        Returns:
            Total number of reminders scheduled.
        """
        now = now or self.clock()
        subs = self.repo.get_all()
        rebuilt = await self.scheduler.rebuild_all(subs, now, self.preferences)
        for sub in subs:
            refreshed = replace(sub, scheduled_reminder_ids=rebuilt.get(sub.id, []))
            try:
                refreshed = replace(refreshed, next_payment_date=next_payment_date(sub, now))
            except InvalidConfiguration as e:
                logger.error(f"Keeping cached next payment of '{sub.name}': {e}")
            self.repo.replace(refreshed)
        return sum(len(h) for h in rebuilt.values())

    # ── HELPERS ───────────────────────────────────────────

    async def _store_edit(self, previous: Subscription, updated: Subscription, now: datetime) -> SaveOutcome:
        updated = replace(updated, next_payment_date=next_payment_date(updated, now))
        self.repo.replace(updated)
        try:
            handles = await self.scheduler.reschedule_for_edit(previous, updated, now, self.preferences)
        except PermissionDenied as e:
            return self._reminders_refused(updated, e)
        return SaveOutcome(self.repo.replace(replace(updated, scheduled_reminder_ids=handles)))

    def _reminders_refused(self, sub: Subscription, error: PermissionDenied) -> SaveOutcome:
        logger.warning(f"Reminders for '{sub.name}' switched off: {error}")
        muted = replace(
            sub,
            reminder=replace(sub.reminder, enabled=False),
            scheduled_reminder_ids=[],
        )
        return SaveOutcome(self.repo.replace(muted), permission_denied=True)
