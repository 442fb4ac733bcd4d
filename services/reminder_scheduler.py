"""
services/reminder_scheduler.py
------------------------------
Decides when to remind the user about upcoming charges and keeps the
delivery backend in sync when subscriptions are created, edited or deleted.

Workflow:
    1. Skip entirely when notifications, reminders or the subscription's
       own reminder flag are off.
    2. Walk the next N charge dates, from the live next payment date.
    3. Reminder instant = charge date - days_before_payment, at notification_time.
    4. Keep only instants more than a minute in the future.
    5. Hand each one to the delivery backend, one at a time, in order.
"""

from datetime import datetime, timedelta

from models.errors import DeliveryFailure, InvalidConfiguration, PermissionDenied
from models.subscription import NotificationPreferences, Subscription
from services.calendar_math import advance
from services.recurrence import next_occurrence_at_or_after
from services.reminder_delivery import ReminderDelivery, ReminderRequest
from utils.dates import parse_notification_time
from utils.logger import get_logger
from utils.money import format_money

logger = get_logger(__name__)

DEFAULT_HORIZON_CYCLES = 12
MIN_LEAD_TIME = timedelta(seconds=60)


def reminder_instants(sub: Subscription, now: datetime, horizon_cycles: int = DEFAULT_HORIZON_CYCLES) -> list[datetime]:
    """
    Reminder instants for the next `horizon_cycles` charges, oldest first.

    Starts from the live next payment date (recomputed, so a stale cached
    next_payment_date never shifts the schedule) and steps one cycle at a
    time. Instants carry the same tzinfo as `now` (naive in, naive out).
    No eligibility filter is applied.

    Raises:
        InvalidConfiguration: The subscription's recurrence is unrepresentable.
    """
    recurrence = sub.recurrence
    at = parse_notification_time(sub.reminder.notification_time)
    lead = timedelta(days=sub.reminder.days_before_payment)

    charge_day = next_occurrence_at_or_after(sub.start_date, recurrence, now)
    instants = []
    for _ in range(horizon_cycles):
        instants.append(datetime.combine(charge_day - lead, at, tzinfo=now.tzinfo))
        charge_day = advance(charge_day, recurrence)
    return instants


def is_eligible(instant: datetime, now: datetime) -> bool:
    """An instant is worth scheduling only if it is more than MIN_LEAD_TIME away."""
    return instant > now + MIN_LEAD_TIME


def build_request(sub: Subscription, fire_at: datetime, currency_symbol: str) -> ReminderRequest:
    """Title and body shown to the user for one reminder."""
    price = format_money(sub.price, currency_symbol)
    days = sub.reminder.days_before_payment
    if days == 0:
        body = f"{sub.name} is charged today ({price})."
    elif days == 1:
        body = f"1 day left to pay {sub.name} ({price})."
    else:
        body = f"{days} days left to pay {sub.name} ({price})."
    return ReminderRequest(
        fire_at=fire_at,
        title=f"📅 Upcoming payment: {sub.name}",
        body=body,
        correlation_id=sub.id,
    )


class ReminderScheduler:
    """
    Schedules, cancels and rebuilds payment reminders through a delivery backend.

    Holds no state besides the backend; every result is returned to the
    caller, who stores the handles on the subscription.
    """

    def __init__(self, delivery: ReminderDelivery, horizon_cycles: int = DEFAULT_HORIZON_CYCLES):
        self.delivery = delivery
        self.horizon_cycles = horizon_cycles

    async def schedule_upcoming(
        self,
        sub: Subscription,
        now: datetime,
        preferences: NotificationPreferences,
        horizon_cycles: int | None = None,
    ) -> list[str]:
        """
        Schedule the reminders for the subscription's upcoming charges.

        Args:
            sub: The subscription to remind about.
            now: Current instant.
            preferences: Global notification switches and currency symbol.
            horizon_cycles: How many charges ahead to cover (default: scheduler's).

        Returns:
            Handles of the scheduled reminders, in chronological order.
            Empty when reminders are disabled.

        Raises:
            PermissionDenied: The delivery backend may not deliver notifications.
            InvalidConfiguration: The subscription's recurrence is unrepresentable.
        """
        if not preferences.notifications_enabled or not preferences.reminders_enabled:
            logger.debug(f"Reminders globally disabled, nothing scheduled for '{sub.name}'")
            return []
        if not sub.reminder.enabled:
            logger.debug(f"Reminders disabled for '{sub.name}'")
            return []

        cycles = self.horizon_cycles if horizon_cycles is None else horizon_cycles
        instants = reminder_instants(sub, now, cycles)

        await self.delivery.ensure_permission()

        handles: list[str] = []
        failures = 0
        for instant in instants:
            if not is_eligible(instant, now):
                logger.debug(f"Skipping reminder at {instant} for '{sub.name}': past or too close")
                continue
            request = build_request(sub, instant, preferences.currency_symbol)
            try:
                handle = await self.delivery.schedule(request)
            except DeliveryFailure as e:
                failures += 1
                logger.error(f"Failed to schedule reminder at {instant} for '{sub.name}': {e}")
                continue
            handles.append(handle)

        logger.info(
            f"Scheduled {len(handles)} reminders for '{sub.name}'"
            + (f" ({failures} failed)" if failures else "")
        )
        return handles

    async def cancel_all(self, sub: Subscription) -> int:
        """
        Cancel every stored reminder of a subscription, best effort.

        Returns:
            Number of handles that could not be cancelled.
        """
        failures = 0
        for handle in sub.scheduled_reminder_ids or []:
            try:
                await self.delivery.cancel(handle)
            except DeliveryFailure as e:
                failures += 1
                logger.warning(f"Could not cancel reminder {handle} of '{sub.name}': {e}")
        return failures

    async def reschedule_for_edit(
        self,
        old_sub: Subscription,
        new_sub: Subscription,
        now: datetime,
        preferences: NotificationPreferences,
    ) -> list[str]:
        """
        Replace an edited subscription's reminders.

        All previous handles are cancelled (failures only logged) before
        any new reminder is requested.

        Returns:
            The new handle list to store on the subscription.
        """
        await self.cancel_all(old_sub)
        return await self.schedule_upcoming(new_sub, now, preferences)

    async def rebuild_all(
        self,
        subs: list[Subscription],
        now: datetime,
        preferences: NotificationPreferences,
    ) -> dict[str, list[str]]:
        """
        Drop every pending reminder and schedule all subscriptions again.

        Used at startup, when the delivery backend may have lost its state.
        Subscriptions are processed one after another; a failure for one
        leaves it with no reminders and does not undo the others.

        Returns:
            New handle list per subscription id.
        """
        try:
            await self.delivery.cancel_all()
        except DeliveryFailure as e:
            logger.warning(f"Bulk cancel of reminders failed: {e}")

        rebuilt: dict[str, list[str]] = {}
        failed = 0
        for sub in subs:
            try:
                rebuilt[sub.id] = await self.schedule_upcoming(sub, now, preferences)
            except (PermissionDenied, InvalidConfiguration) as e:
                failed += 1
                logger.error(f"Could not schedule reminders for '{sub.name}': {e}")
                rebuilt[sub.id] = []

        logger.info(
            f"Rebuilt reminders for {len(subs)} subscriptions "
            f"({sum(len(h) for h in rebuilt.values())} scheduled, {failed} failed)"
        )
        return rebuilt
