"""
Unit tests for cycle stepping (services/calendar_math.py) and the
Recurrence value (models/recurrence.py).
"""
from datetime import date, datetime, timedelta

import pytest

from models.errors import InvalidConfiguration
from models.recurrence import Frequency, Recurrence
from services.calendar_math import advance


# ── advance ──────────────────────────────────────────────────────────────────

class TestAdvance:
    def test_daily(self):
        assert advance(date(2024, 1, 1), Recurrence.daily()) == date(2024, 1, 2)

    def test_weekly_crosses_year(self):
        assert advance(date(2024, 12, 28), Recurrence.weekly()) == date(2025, 1, 4)

    def test_monthly_keeps_day(self):
        assert advance(date(2024, 3, 15), Recurrence.monthly()) == date(2024, 4, 15)

    def test_monthly_clamps_to_feb_28(self):
        assert advance(date(2023, 1, 31), Recurrence.monthly()) == date(2023, 2, 28)

    def test_monthly_clamps_to_feb_29_on_leap_year(self):
        assert advance(date(2024, 1, 31), Recurrence.monthly()) == date(2024, 2, 29)

    def test_monthly_december_rolls_year(self):
        assert advance(date(2024, 12, 31), Recurrence.monthly()) == date(2025, 1, 31)

    def test_yearly_leap_day_clamps(self):
        assert advance(date(2024, 2, 29), Recurrence.yearly()) == date(2025, 2, 28)

    def test_custom_interval(self):
        assert advance(date(2024, 1, 1), Recurrence.custom(45)) == date(2024, 2, 15)

    def test_datetime_input_is_truncated(self):
        assert advance(datetime(2024, 1, 1, 23, 30), Recurrence.daily()) == date(2024, 1, 2)

    def test_input_untouched(self):
        day = date(2024, 1, 31)
        advance(day, Recurrence.monthly())
        assert day == date(2024, 1, 31)


# ── repeated advance ─────────────────────────────────────────────────────────

class TestRepeatedAdvance:
    def _chain(self, start, recurrence, steps):
        dates = [start]
        for _ in range(steps):
            dates.append(advance(dates[-1], recurrence))
        return dates

    def test_month_end_clamp_carries_forward(self):
        chain = self._chain(date(2024, 1, 31), Recurrence.monthly(), 3)
        assert chain == [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 29), date(2024, 4, 29)]

    def test_leap_day_clamp_carries_forward(self):
        chain = self._chain(date(2020, 2, 29), Recurrence.yearly(), 4)
        assert chain[-1] == date(2024, 2, 28)

    def test_fixed_cycles_stay_on_grid(self):
        chain = self._chain(date(2024, 1, 31), Recurrence.custom(10), 6)
        assert chain[-1] == date(2024, 1, 31) + timedelta(days=60)


# ── Recurrence ───────────────────────────────────────────────────────────────

class TestRecurrence:
    def test_custom_without_interval_rejected(self):
        with pytest.raises(InvalidConfiguration):
            Recurrence(Frequency.CUSTOM)

    @pytest.mark.parametrize("days", [0, -5])
    def test_custom_non_positive_interval_rejected(self, days):
        with pytest.raises(InvalidConfiguration):
            Recurrence.custom(days)

    def test_invalid_configuration_is_a_value_error(self):
        with pytest.raises(ValueError):
            Recurrence.custom(0)

    def test_unknown_frequency_rejected(self):
        with pytest.raises(InvalidConfiguration):
            Recurrence.of("fortnightly")

    def test_stray_interval_ignored_for_fixed_frequencies(self):
        rec = Recurrence.of("monthly", 30)
        assert rec.interval_days is None
        assert rec == Recurrence.monthly()

    def test_string_frequency_accepted(self):
        assert Recurrence.of("custom", 10).fixed_days == 10

    def test_cycle_lengths(self):
        assert Recurrence.daily().fixed_days == 1
        assert Recurrence.weekly().fixed_days == 7
        assert Recurrence.monthly().fixed_days is None
        assert Recurrence.yearly().months == 12

    def test_str(self):
        assert str(Recurrence.custom(45)) == "every 45 days"
        assert str(Recurrence.weekly()) == "weekly"
