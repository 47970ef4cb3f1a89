"""
Task Executors.

One executor per task type. An executor either returns an ExecutionResult
(the scheduler then completes the task) or raises ExecutorFailureError (the
task stays active and is retried on the next tick).
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import structlog

from cadence.infrastructure.exceptions import (
    MaintenanceAnalysisError,
    TaskPayloadError,
)
from cadence.models.notification import NotificationPriority, NotificationType
from cadence.models.review import ReviewStatus
from cadence.models.scheduler import (
    AnalysisKind,
    MaintenancePayload,
    ScheduledTask,
    SelfReviewPayload,
    TaskType,
)
from cadence.services.collaborators import IntelligenceGenerator
from cadence.services.notification_service import NotificationService
from cadence.services.review_service import SelfReviewService

logger = structlog.get_logger(__name__)

CALENDAR_URL = "/admin/calendar"
INTELLIGENCE_URL = "/admin/intelligence"
DEFAULT_ANALYSIS_TIMEOUT = 120.0


async def notify_safely(notifications: NotificationService, **kwargs) -> bool:
    """Send a notification; a failure is logged and reported as False."""
    try:
        await notifications.notify(**kwargs)
    except Exception as e:
        logger.error("notification_failed", title=kwargs.get("title"), error=str(e))
        return False
    return True


@dataclass
class ExecutionResult:
    task_id: str
    summary: str
    details: Dict[str, Any] = field(default_factory=dict)
    # Work the executor started but did not wait for
    background: Optional[asyncio.Task] = None


class TaskExecutor(ABC):
    task_type: TaskType

    @abstractmethod
    async def execute(self, task: ScheduledTask, now: datetime) -> ExecutionResult:
        ...


# ============================================
# SELF-REVIEW
# ============================================

class SelfReviewExecutor(TaskExecutor):
    """Opens the review period and kicks off its analysis.

    Success means the review was started; the analysis finishes later.
    """
    task_type = TaskType.SELF_REVIEW

    def __init__(self, reviews: SelfReviewService, notifications: NotificationService):
        self.reviews = reviews
        self.notifications = notifications

    async def execute(self, task: ScheduledTask, now: datetime) -> ExecutionResult:
        payload = task.metadata
        if not isinstance(payload, SelfReviewPayload):
            raise TaskPayloadError(task.id, f"Task '{task.id}' does not carry a self-review payload")

        # A previous run may have opened the period before failing to complete
        period = await self.reviews.find_period(task.name, payload.period_start, payload.period_end)
        if period is None:
            period = await self.reviews.create_period(
                title=task.name,
                start_date=payload.period_start,
                end_date=payload.period_end,
                type=payload.review_type,
                scope=payload.scope,
            )
        else:
            logger.info("self_review_period_reused", task_id=task.id, period_id=period.id)

        background = None
        if period.status == ReviewStatus.PENDING:
            background = self.reviews.start_analysis(period.id)

        await notify_safely(
            self.notifications,
            title="Self-Review Period Started",
            message=(
                f"Your {payload.review_type.value} self-review period "
                f"({period.start_date.date().isoformat()} - {period.end_date.date().isoformat()}) "
                "has been created and its analysis is being generated."
            ),
            type=NotificationType.INFO,
            priority=NotificationPriority.MEDIUM,
            action_url=CALENDAR_URL,
            action_label="View Review",
        )

        logger.info("self_review_started", task_id=task.id, period_id=period.id)
        return ExecutionResult(
            task_id=task.id,
            summary=f"Started self-review period {period.id}",
            details={"period_id": period.id},
            background=background,
        )


# ============================================
# MAINTENANCE
# ============================================

class MaintenanceExecutor(TaskExecutor):
    """Runs the analysis calls a maintenance payload selects, concurrently.

    All calls succeed: success notification. Some fail: warning with the
    success ratio. All fail: MaintenanceAnalysisError.
    """
    task_type = TaskType.MAINTENANCE

    def __init__(
        self,
        generator: IntelligenceGenerator,
        notifications: NotificationService,
        call_timeout: float = DEFAULT_ANALYSIS_TIMEOUT,
    ):
        self.generator = generator
        self.notifications = notifications
        self.call_timeout = call_timeout

    def select_calls(self, payload: MaintenancePayload) -> List[Tuple[str, Callable[[], Awaitable[Any]]]]:
        calls = []
        if payload.include_ecosystem:
            calls.append(("ecosystem_insight", self.generator.generate_ecosystem_insight))
        if payload.include_dreamstate:
            calls.append(("dreamstate_predictions", self.generator.generate_dreamstate_predictions))
        if payload.include_creative_intelligence:
            calls.append(("creative_intelligence", self.generator.generate_creative_intelligence))
        return calls

    async def _bounded(self, call: Callable[[], Awaitable[Any]]) -> Any:
        return await asyncio.wait_for(call(), timeout=self.call_timeout)

    async def execute(self, task: ScheduledTask, now: datetime) -> ExecutionResult:
        payload = task.metadata
        if not isinstance(payload, MaintenancePayload):
            raise TaskPayloadError(task.id, f"Task '{task.id}' does not carry a maintenance payload")

        calls = self.select_calls(payload)
        if not calls:
            raise TaskPayloadError(task.id, f"Task '{task.id}' selects no analysis calls")

        results = await asyncio.gather(*(self._bounded(call) for _, call in calls), return_exceptions=True)

        failures = {}
        for (name, _), result in zip(calls, results):
            if isinstance(result, Exception):
                failures[name] = str(result) or type(result).__name__
                logger.warning("maintenance_call_failed", task_id=task.id, call=name, error=failures[name])

        total = len(calls)
        successful = total - len(failures)
        label = "Full System Analysis" if payload.analysis_kind == AnalysisKind.FULL_SYSTEM else "Ecosystem Health Check"

        if successful == 0:
            raise MaintenanceAnalysisError(
                task.id,
                f"All {total} analysis calls failed for '{task.name}'",
                details={"failures": failures},
            )

        if successful == total:
            await notify_safely(
                self.notifications,
                title=f"{label} Complete",
                message=f"{label} finished ({successful}/{total} components successful).",
                type=NotificationType.SUCCESS,
                priority=NotificationPriority.MEDIUM,
                action_url=INTELLIGENCE_URL,
                action_label="View New Insights",
            )
        else:
            await notify_safely(
                self.notifications,
                title=f"{label} Partially Complete",
                message=(
                    f"{label} finished with issues ({successful}/{total} components successful). "
                    f"Failed: {', '.join(sorted(failures))}."
                ),
                type=NotificationType.WARNING,
                priority=NotificationPriority.HIGH,
                action_url=INTELLIGENCE_URL,
                action_label="Check Status",
            )

        logger.info(
            "maintenance_analysis_completed",
            task_id=task.id,
            successful=successful,
            total=total,
        )
        return ExecutionResult(
            task_id=task.id,
            summary=f"{successful}/{total} analysis components successful",
            details={"successful": successful, "total": total, "failures": failures},
        )
