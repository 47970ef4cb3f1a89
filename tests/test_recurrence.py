"""
Tests for recurrence generation and the maintenance schedule plan.
"""
from datetime import datetime, timedelta

import pytest

from cadence.services.recurrence import (
    Biweekly,
    WeeklyOnWeekday,
    biweekly_period_end,
    generate_occurrences,
    roll_forward,
)
from cadence.services.schedule_plan import (
    maintenance_occurrences,
    maintenance_task_id,
    review_task_id,
    review_task_name,
)

ANCHOR = datetime(2025, 8, 19, 9, 0)  # Tuesday


class TestBiweekly:

    def test_twelve_occurrences_fourteen_days_apart(self):
        dates = generate_occurrences(ANCHOR, Biweekly(), 12)
        assert len(dates) == 12
        assert dates[0] == ANCHOR
        for prev, cur in zip(dates, dates[1:]):
            assert cur - prev == timedelta(days=14)

    def test_keeps_time_of_day(self):
        dates = generate_occurrences(ANCHOR, Biweekly(), 5)
        assert all((d.hour, d.minute) == (9, 0) for d in dates)

    def test_period_end_is_thirteen_days_later(self):
        assert biweekly_period_end(ANCHOR) == datetime(2025, 9, 1, 9, 0)


class TestWeeklyOnWeekday:

    def test_tuesdays_seven_days_apart(self):
        dates = generate_occurrences(datetime(2025, 8, 20, 10, 0), WeeklyOnWeekday(1), 4)
        assert len(dates) == 4
        assert all(d.weekday() == 1 for d in dates)
        assert dates[0] == datetime(2025, 8, 26, 10, 0)
        for prev, cur in zip(dates, dates[1:]):
            assert cur - prev == timedelta(days=7)

    def test_anchor_on_target_weekday_is_first_occurrence(self):
        dates = generate_occurrences(ANCHOR, WeeklyOnWeekday(1), 2)
        assert dates == [ANCHOR, ANCHOR + timedelta(days=7)]

    def test_each_occurrence_in_its_own_block(self):
        anchor = datetime(2025, 8, 21, 14, 0)  # Thursday
        for i, d in enumerate(generate_occurrences(anchor, WeeklyOnWeekday(4), 6)):
            block_start = anchor + timedelta(days=7 * i)
            assert block_start <= d < block_start + timedelta(days=7)

    def test_invalid_weekday(self):
        with pytest.raises(ValueError):
            WeeklyOnWeekday(7)


class TestHorizon:

    def test_zero_horizon_is_empty(self):
        assert generate_occurrences(ANCHOR, Biweekly(), 0) == []

    def test_negative_horizon_rejected(self):
        with pytest.raises(ValueError):
            generate_occurrences(ANCHOR, Biweekly(), -1)

    def test_unknown_cadence_rejected(self):
        with pytest.raises(TypeError):
            generate_occurrences(ANCHOR, "monthly", 3)

    def test_same_inputs_same_output(self):
        assert generate_occurrences(ANCHOR, WeeklyOnWeekday(4), 8) == \
            generate_occurrences(ANCHOR, WeeklyOnWeekday(4), 8)


class TestRollForward:

    def test_future_anchor_unchanged(self):
        assert roll_forward(ANCHOR, ANCHOR - timedelta(days=3)) == ANCHOR

    def test_now_equal_to_anchor(self):
        assert roll_forward(ANCHOR, ANCHOR) == ANCHOR

    def test_just_past_anchor_moves_one_step(self):
        assert roll_forward(ANCHOR, ANCHOR + timedelta(seconds=1)) == ANCHOR + timedelta(days=14)

    def test_exact_multiple_lands_on_occurrence(self):
        assert roll_forward(ANCHOR, ANCHOR + timedelta(days=28)) == ANCHOR + timedelta(days=28)


class TestSchedulePlan:

    def test_task_ids_and_names(self):
        assert review_task_id(ANCHOR) == "self_review_2025-08-19"
        assert review_task_name(ANCHOR) == "Biweekly Self Review - 2025-08-19"
        assert maintenance_task_id("friday", datetime(2025, 8, 22, 14)) == "maintenance_friday_2025-08-22"

    def test_past_occurrences_dropped(self):
        # Tuesday 11:00: today's 10:00 window has already passed
        now = datetime(2025, 8, 19, 11, 0)
        ids = [o.task_id for o in maintenance_occurrences(now, 2)]
        assert ids == [
            "maintenance_friday_2025-08-22",
            "maintenance_tuesday_2025-08-26",
            "maintenance_friday_2025-08-29",
        ]

    def test_window_times(self):
        occurrences = maintenance_occurrences(datetime(2025, 8, 18), 1)
        by_slot = {o.window.slot: o.run_at for o in occurrences}
        assert by_slot == {
            "tuesday": datetime(2025, 8, 19, 10, 0),
            "friday": datetime(2025, 8, 22, 14, 0),
        }
