"""
Tests for the self-review and maintenance task executors.
"""
import asyncio
from datetime import datetime, timedelta

import pytest

from cadence.infrastructure.exceptions import MaintenanceAnalysisError, TaskPayloadError
from cadence.models.notification import NotificationPriority, NotificationType
from cadence.models.scheduler import (
    AnalysisKind,
    MaintenancePayload,
    ScheduledTask,
    SelfReviewPayload,
    TaskType,
)
from cadence.services.schedule_plan import MAINTENANCE_SCHEDULE
from cadence.services.task_executors import MaintenanceExecutor, SelfReviewExecutor
from tests.fakes import NOW, FakeGenerator


def task_with(payload, type=TaskType.MAINTENANCE, name="Full System Analysis"):
    return ScheduledTask(
        id="task-1",
        name=name,
        type=type,
        schedule="weekly_tuesday",
        next_run=NOW,
        metadata=payload,
    )


FULL = MaintenancePayload(
    analysis_kind=AnalysisKind.FULL_SYSTEM,
    include_dreamstate=True,
    include_creative_intelligence=True,
)


class SlowGenerator(FakeGenerator):
    async def generate_dreamstate_predictions(self):
        await asyncio.sleep(5)


class TestMaintenanceExecutor:

    def test_call_selection_follows_flags(self):
        executor = MaintenanceExecutor(FakeGenerator(), notifications=None)
        tuesday, friday = MAINTENANCE_SCHEDULE
        assert [name for name, _ in executor.select_calls(tuesday.payload)] == [
            "ecosystem_insight", "dreamstate_predictions", "creative_intelligence",
        ]
        assert [name for name, _ in executor.select_calls(friday.payload)] == ["ecosystem_insight"]

    @pytest.mark.asyncio
    async def test_all_calls_succeed(self, services, generator):
        executor = MaintenanceExecutor(generator, services.notifications)

        result = await executor.execute(task_with(FULL), NOW)

        assert result.summary == "3/3 analysis components successful"
        [note] = await services.notifications.list_notifications()
        assert note.title == "Full System Analysis Complete"
        assert note.type == NotificationType.SUCCESS
        assert note.action_url == "/admin/intelligence"

    @pytest.mark.asyncio
    async def test_partial_failure_warns(self, services):
        executor = MaintenanceExecutor(FakeGenerator(failing={"dreamstate_predictions"}), services.notifications)

        result = await executor.execute(task_with(FULL), NOW)

        assert result.details["successful"] == 2
        assert result.details["failures"].keys() == {"dreamstate_predictions"}
        [note] = await services.notifications.list_notifications()
        assert note.title == "Full System Analysis Partially Complete"
        assert note.type == NotificationType.WARNING
        assert note.priority == NotificationPriority.HIGH
        assert "2/3" in note.message

    @pytest.mark.asyncio
    async def test_total_failure_raises(self, services):
        generator = FakeGenerator(failing={"ecosystem_insight", "dreamstate_predictions", "creative_intelligence"})
        executor = MaintenanceExecutor(generator, services.notifications)

        with pytest.raises(MaintenanceAnalysisError) as exc_info:
            await executor.execute(task_with(FULL), NOW)

        assert exc_info.value.task_id == "task-1"
        assert len(exc_info.value.details["failures"]) == 3
        assert await services.notifications.list_notifications() == []

    @pytest.mark.asyncio
    async def test_slow_call_counts_as_failure(self, services):
        executor = MaintenanceExecutor(SlowGenerator(), services.notifications, call_timeout=0.05)

        result = await executor.execute(task_with(FULL), NOW)

        assert result.details["failures"] == {"dreamstate_predictions": "TimeoutError"}

    @pytest.mark.asyncio
    async def test_notification_failure_keeps_result(self, services, generator, monkeypatch):
        async def broken_notify(title, message, **kwargs):
            raise RuntimeError("notification store down")

        monkeypatch.setattr(services.notifications, "notify", broken_notify)
        executor = MaintenanceExecutor(generator, services.notifications)

        result = await executor.execute(task_with(FULL), NOW)

        assert result.details["successful"] == 3
        assert len(generator.calls) == 3

    @pytest.mark.asyncio
    async def test_payload_selecting_nothing(self, services, generator):
        executor = MaintenanceExecutor(generator, services.notifications)
        empty = MaintenancePayload(analysis_kind=AnalysisKind.ECOSYSTEM_HEALTH, include_ecosystem=False)
        with pytest.raises(TaskPayloadError):
            await executor.execute(task_with(empty), NOW)

    @pytest.mark.asyncio
    async def test_wrong_payload_kind(self, services, generator):
        executor = MaintenanceExecutor(generator, services.notifications)
        payload = SelfReviewPayload(period_start=NOW, period_end=NOW + timedelta(days=13))
        with pytest.raises(TaskPayloadError):
            await executor.execute(task_with(payload), NOW)
        assert generator.calls == []


class TestSelfReviewExecutor:

    @pytest.mark.asyncio
    async def test_creates_period_and_starts_analysis(self, services):
        executor = SelfReviewExecutor(services.reviews, services.notifications)
        start = datetime(2025, 8, 5, 9, 0)
        payload = SelfReviewPayload(period_start=start, period_end=start + timedelta(days=13))

        result = await executor.execute(
            task_with(payload, type=TaskType.SELF_REVIEW, name="Biweekly Self Review - 2025-08-05"), NOW
        )
        analysis = await result.background

        period = await services.reviews.get_period(result.details["period_id"])
        assert period.start_date == start
        assert period.end_date == datetime(2025, 8, 18, 9, 0)
        assert period.analysis_results == analysis
        [note] = await services.notifications.list_notifications()
        assert note.title == "Self-Review Period Started"
        assert note.type == NotificationType.INFO

    @pytest.mark.asyncio
    async def test_wrong_payload_kind(self, services):
        executor = SelfReviewExecutor(services.reviews, services.notifications)
        with pytest.raises(TaskPayloadError):
            await executor.execute(task_with(FULL, type=TaskType.SELF_REVIEW), NOW)
        assert await services.reviews.list_periods() == []

    @pytest.mark.asyncio
    async def test_reuses_period_opened_by_earlier_run(self, services):
        executor = SelfReviewExecutor(services.reviews, services.notifications)
        start = datetime(2025, 8, 5, 9, 0)
        name = "Biweekly Self Review - 2025-08-05"
        existing = await services.reviews.create_period(name, start, start + timedelta(days=13))
        payload = SelfReviewPayload(period_start=start, period_end=start + timedelta(days=13))

        result = await executor.execute(task_with(payload, type=TaskType.SELF_REVIEW, name=name), NOW)
        await result.background

        assert result.details["period_id"] == existing.id
        assert [p.id for p in await services.reviews.list_periods()] == [existing.id]

    @pytest.mark.asyncio
    async def test_completed_period_is_not_analysed_again(self, services, analyzer):
        executor = SelfReviewExecutor(services.reviews, services.notifications)
        start = datetime(2025, 8, 5, 9, 0)
        name = "Biweekly Self Review - 2025-08-05"
        payload = SelfReviewPayload(period_start=start, period_end=start + timedelta(days=13))
        task = task_with(payload, type=TaskType.SELF_REVIEW, name=name)

        first = await executor.execute(task, NOW)
        await first.background
        second = await executor.execute(task, NOW)

        assert second.background is None
        assert second.details["period_id"] == first.details["period_id"]
        assert len(analyzer.seen) == 1
