"""
Tests for services/reminder_scheduler.py against the in-memory FakeDelivery.
"""
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from models.errors import InvalidConfiguration, PermissionDenied
from models.recurrence import Frequency
from models.subscription import NotificationPreferences, ReminderSettings
from services.reminder_scheduler import (
    MIN_LEAD_TIME,
    ReminderScheduler,
    build_request,
    is_eligible,
    reminder_instants,
)

PREFS = NotificationPreferences()
NOW = datetime(2024, 1, 10, 12, 0)


@pytest.fixture
def scheduler(delivery):
    return ReminderScheduler(delivery)


# ── reminder_instants ────────────────────────────────────────────────────────

class TestReminderInstants:
    def test_first_instant_and_count(self, make_sub):
        sub = make_sub(start_date=date(2024, 1, 1))
        instants = reminder_instants(sub, NOW, 12)
        assert len(instants) == 12
        assert instants[0] == datetime(2024, 1, 29, 9, 0)
        assert instants[1] == datetime(2024, 2, 27, 9, 0)
        assert instants == sorted(instants)

    def test_recomputed_from_start_not_cache(self, make_sub):
        sub = make_sub(start_date=date(2024, 1, 1), next_payment_date=date(2023, 6, 1))
        assert reminder_instants(sub, NOW, 1) == [datetime(2024, 1, 29, 9, 0)]

    def test_custom_time_and_lead(self, make_sub):
        sub = make_sub(
            start_date=date(2024, 1, 1),
            frequency=Frequency.WEEKLY,
            reminder=ReminderSettings(True, 0, "18:45"),
        )
        assert reminder_instants(sub, NOW, 2) == [datetime(2024, 1, 15, 18, 45), datetime(2024, 1, 22, 18, 45)]

    def test_month_end_start_steps_from_previous_charge(self, make_sub):
        sub = make_sub(start_date=date(2024, 1, 31))
        instants = reminder_instants(sub, datetime(2024, 1, 31, 12, 0), 3)
        assert instants == [
            datetime(2024, 2, 26, 9, 0),
            datetime(2024, 3, 26, 9, 0),
            datetime(2024, 4, 26, 9, 0),
        ]

    def test_aware_now_gives_aware_instants(self, make_sub):
        madrid = ZoneInfo("Europe/Madrid")
        sub = make_sub(start_date=date(2024, 1, 1))
        instants = reminder_instants(sub, datetime(2024, 1, 10, 12, 0, tzinfo=madrid), 1)
        assert instants[0].tzinfo is madrid

    def test_invalid_custom_recurrence(self, make_sub):
        sub = make_sub(frequency=Frequency.CUSTOM, custom_interval_days=None)
        with pytest.raises(InvalidConfiguration):
            reminder_instants(sub, NOW, 3)


class TestEligibility:
    def test_past_not_eligible(self):
        assert not is_eligible(NOW - timedelta(hours=1), NOW)

    def test_exactly_one_minute_not_eligible(self):
        assert not is_eligible(NOW + MIN_LEAD_TIME, NOW)

    def test_just_over_one_minute_eligible(self):
        assert is_eligible(NOW + MIN_LEAD_TIME + timedelta(seconds=1), NOW)


class TestBuildRequest:
    def test_title_body_and_correlation(self, make_sub):
        sub = make_sub(id="abc", name="Netflix", price=12.99)
        request = build_request(sub, datetime(2024, 1, 29, 9, 0), "€")
        assert request.title == "📅 Upcoming payment: Netflix"
        assert request.body == "3 days left to pay Netflix (12,99€)."
        assert request.correlation_id == "abc"
        assert request.fire_at == datetime(2024, 1, 29, 9, 0)

    def test_same_day_body(self, make_sub):
        sub = make_sub(name="Gym", price=30, reminder=ReminderSettings(True, 0, "08:00"))
        assert build_request(sub, NOW, "$").body == "Gym is charged today (30,00$)."


# ── schedule_upcoming ────────────────────────────────────────────────────────

class TestScheduleUpcoming:
    @pytest.mark.asyncio
    async def test_schedules_full_horizon_in_order(self, scheduler, delivery, make_sub):
        handles = await scheduler.schedule_upcoming(make_sub(), NOW, PREFS)
        assert handles == [f"h{i}" for i in range(1, 13)]
        fire_times = [r.fire_at for r in delivery.requests]
        assert fire_times == sorted(fire_times)
        assert delivery.log[0] == ("permission",)

    @pytest.mark.asyncio
    async def test_disabled_subscription_is_noop(self, scheduler, delivery, make_sub):
        sub = make_sub(reminder=ReminderSettings(enabled=False))
        assert await scheduler.schedule_upcoming(sub, NOW, PREFS) == []
        assert delivery.log == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "prefs",
        [
            NotificationPreferences(notifications_enabled=False),
            NotificationPreferences(reminders_enabled=False),
        ],
    )
    async def test_global_switches(self, scheduler, delivery, make_sub, prefs):
        assert await scheduler.schedule_upcoming(make_sub(), NOW, prefs) == []
        assert delivery.log == []

    @pytest.mark.asyncio
    async def test_past_reminder_skipped(self, scheduler, delivery, make_sub):
        sub = make_sub(reminder=ReminderSettings(True, 10, "09:00"))
        # next charge Feb 1, its reminder (Jan 22) already passed
        handles = await scheduler.schedule_upcoming(sub, datetime(2024, 1, 25, 12, 0), PREFS)
        assert len(handles) == 11
        assert delivery.requests[0].fire_at == datetime(2024, 2, 20, 9, 0)

    @pytest.mark.asyncio
    async def test_too_imminent_reminder_skipped(self, scheduler, delivery, make_sub):
        now = datetime(2024, 1, 29, 8, 59, 30)
        handles = await scheduler.schedule_upcoming(make_sub(), now, PREFS)
        assert len(handles) == 11
        assert delivery.requests[0].fire_at == datetime(2024, 2, 27, 9, 0)

    @pytest.mark.asyncio
    async def test_never_within_lead_time(self, scheduler, delivery, make_sub):
        now = datetime(2024, 1, 29, 8, 59, 0)
        await scheduler.schedule_upcoming(make_sub(frequency=Frequency.DAILY), now, PREFS)
        assert delivery.requests
        assert all(r.fire_at > now + MIN_LEAD_TIME for r in delivery.requests)

    @pytest.mark.asyncio
    async def test_delivery_failure_does_not_abort(self, scheduler, delivery, make_sub):
        delivery.fail_on_calls = {2}
        handles = await scheduler.schedule_upcoming(make_sub(), NOW, PREFS)
        assert len(handles) == 11
        assert "h2" not in handles
        assert handles[:2] == ["h1", "h3"]

    @pytest.mark.asyncio
    async def test_permission_denied_propagates(self, scheduler, delivery, make_sub):
        delivery.denied = True
        with pytest.raises(PermissionDenied):
            await scheduler.schedule_upcoming(make_sub(), NOW, PREFS)
        assert delivery.requests == []

    @pytest.mark.asyncio
    async def test_horizon_override(self, scheduler, make_sub):
        handles = await scheduler.schedule_upcoming(make_sub(), NOW, PREFS, horizon_cycles=3)
        assert len(handles) == 3

    @pytest.mark.asyncio
    async def test_invalid_recurrence_fails(self, scheduler, make_sub):
        sub = make_sub(frequency=Frequency.CUSTOM, custom_interval_days=0)
        with pytest.raises(InvalidConfiguration):
            await scheduler.schedule_upcoming(sub, NOW, PREFS)


# ── cancel / reschedule / rebuild ────────────────────────────────────────────

class TestCancelAndReschedule:
    @pytest.mark.asyncio
    async def test_cancel_all_is_best_effort(self, scheduler, delivery, make_sub):
        delivery.fail_cancel = True
        sub = make_sub(scheduled_reminder_ids=["a", "b", "c"])
        failures = await scheduler.cancel_all(sub)
        assert failures == 3
        assert delivery.log == [("cancel", "a"), ("cancel", "b"), ("cancel", "c")]

    @pytest.mark.asyncio
    async def test_cancel_all_without_handles(self, scheduler, delivery, make_sub):
        assert await scheduler.cancel_all(make_sub(scheduled_reminder_ids=[])) == 0
        assert delivery.log == []

    @pytest.mark.asyncio
    async def test_reschedule_cancels_everything_first(self, scheduler, delivery, make_sub):
        delivery.fail_cancel = True
        old = make_sub(id="s", scheduled_reminder_ids=["old1", "old2"])
        new = make_sub(id="s", price=20.0)
        handles = await scheduler.reschedule_for_edit(old, new, NOW, PREFS)

        assert len(handles) == 12
        first_schedule = next(i for i, entry in enumerate(delivery.log) if entry[0] == "schedule")
        cancels = [i for i, entry in enumerate(delivery.log) if entry[0] == "cancel"]
        assert cancels == [0, 1]
        assert max(cancels) < first_schedule

    @pytest.mark.asyncio
    async def test_reschedule_to_disabled_only_cancels(self, scheduler, delivery, make_sub):
        old = make_sub(id="s", scheduled_reminder_ids=["old1"])
        new = make_sub(id="s", reminder=ReminderSettings(enabled=False))
        assert await scheduler.reschedule_for_edit(old, new, NOW, PREFS) == []
        assert delivery.log == [("cancel", "old1")]


class TestRebuildAll:
    @pytest.mark.asyncio
    async def test_bulk_cancel_then_sequential(self, scheduler, delivery, make_sub):
        subs = [make_sub(id="a"), make_sub(id="b")]
        rebuilt = await scheduler.rebuild_all(subs, NOW, PREFS)

        assert delivery.log[0] == ("cancel_all",)
        assert rebuilt["a"] == [f"h{i}" for i in range(1, 13)]
        assert rebuilt["b"] == [f"h{i}" for i in range(13, 25)]

    @pytest.mark.asyncio
    async def test_bad_item_does_not_stop_batch(self, scheduler, delivery, make_sub):
        delivery.fail_cancel_all = True
        subs = [
            make_sub(id="a"),
            make_sub(id="broken", frequency=Frequency.CUSTOM, custom_interval_days=None),
            make_sub(id="c"),
        ]
        rebuilt = await scheduler.rebuild_all(subs, NOW, PREFS)
        assert len(rebuilt["a"]) == 12
        assert rebuilt["broken"] == []
        assert len(rebuilt["c"]) == 12

    @pytest.mark.asyncio
    async def test_permission_denied_leaves_empty_lists(self, scheduler, delivery, make_sub):
        delivery.denied = True
        rebuilt = await scheduler.rebuild_all([make_sub(id="a")], NOW, PREFS)
        assert rebuilt == {"a": []}
