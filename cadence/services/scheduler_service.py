"""
Recurring Task Scheduler for Cadence.

Handles:
- Setup of the default recurring tasks (biweekly self-reviews, Tuesday and
  Friday maintenance), idempotent by deterministic task id
- Due-task processing: each tick runs every active task whose next_run has
  passed, completes it on success and leaves it active on failure
- Pause/resume of individual tasks

Uses APScheduler to tick on an interval. The same tick is reachable over
HTTP and from scripts/process_due_tasks.py.
"""
import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from pydantic import ValidationError

from cadence.db.models import ScheduledTaskModel
from cadence.db.repositories.scheduled_tasks import ScheduledTaskRepository
from cadence.infrastructure.exceptions import (
    ExecutorFailureError,
    InvalidTaskTransitionError,
    NotFoundError,
    TaskPayloadError,
    UnknownTaskTypeError,
)
from cadence.models.notification import NotificationPriority, NotificationType
from cadence.models.review import ReviewScope, ReviewType
from cadence.models.scheduler import (
    ScheduledTask,
    SelfReviewPayload,
    SetupReport,
    TaskStatus,
    TaskType,
)
from cadence.services.notification_service import NotificationService
from cadence.services.recurrence import Biweekly, biweekly_period_end, generate_occurrences, roll_forward
from cadence.services.schedule_plan import (
    BIWEEKLY_REVIEW_SCHEDULE,
    DEFAULT_REVIEW_ANCHOR,
    maintenance_occurrences,
    review_task_id,
    review_task_name,
)
from cadence.services.task_executors import CALENDAR_URL, ExecutionResult, TaskExecutor, notify_safely
from cadence.time_utils import to_naive_utc, utcnow

logger = structlog.get_logger(__name__)

DEFAULT_HORIZON = 12


# ============================================
# TICK RESULTS
# ============================================

@dataclass
class TaskOutcome:
    task_id: str
    name: str
    succeeded: bool
    summary: Optional[str] = None
    error: Optional[str] = None
    duration_seconds: float = 0.0


@dataclass
class TickReport:
    now: datetime
    due: int = 0
    completed: int = 0
    failed: int = 0
    outcomes: List[TaskOutcome] = field(default_factory=list)


def decode_task(row: ScheduledTaskModel) -> ScheduledTask:
    """Row to ScheduledTask, validating the tagged payload."""
    try:
        return ScheduledTask(
            id=row.id,
            name=row.name,
            type=row.type,
            schedule=row.schedule,
            next_run=row.next_run,
            last_run=row.last_run,
            status=row.status,
            metadata=row.metadata_,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
    except ValidationError as e:
        raise TaskPayloadError(
            row.id,
            f"Task '{row.id}' could not be decoded",
            details={"errors": e.errors(include_url=False, include_context=False)},
        ) from e


# ============================================
# TASK SCHEDULER
# ============================================

class TaskScheduler:
    """
    Owns the scheduled_tasks state machine:

        active --(due, executor succeeded)--> completed
        active --(due, executor failed)-----> active (retried next tick)
        active <--(pause / resume)----------> paused
    """

    def __init__(
        self,
        tasks: ScheduledTaskRepository,
        executors: Iterable[TaskExecutor],
        notifications: NotificationService,
        clock: Callable[[], datetime] = utcnow,
        review_anchor: datetime = DEFAULT_REVIEW_ANCHOR,
        horizon: int = DEFAULT_HORIZON,
    ):
        self.tasks = tasks
        self.executors: Dict[TaskType, TaskExecutor] = {e.task_type: e for e in executors}
        self.notifications = notifications
        self.review_anchor = to_naive_utc(review_anchor)
        self.horizon = horizon
        self._clock = clock
        self._tick_lock = asyncio.Lock()

    # ----- setup -----

    async def _insert(self, task: ScheduledTask, now: datetime) -> bool:
        created = await self.tasks.insert_if_absent(
            task.id,
            name=task.name,
            type=task.type.value,
            schedule=task.schedule,
            next_run=task.next_run,
            status=task.status.value,
            metadata_=task.metadata.model_dump(mode="json"),
            created_at=now,
            updated_at=now,
        )
        if created:
            logger.info("scheduled_task_created", task_id=task.id, next_run=task.next_run.isoformat())
        return created

    async def _insert_all(self, tasks: List[ScheduledTask], now: datetime) -> SetupReport:
        report = SetupReport()
        for task in tasks:
            if await self._insert(task, now):
                report.created += 1
                report.task_ids.append(task.id)
            else:
                report.skipped += 1
        return report

    async def create_biweekly_reviews(
        self,
        anchor: Optional[datetime] = None,
        now: Optional[datetime] = None,
        count: Optional[int] = None,
    ) -> SetupReport:
        """Insert the next ``count`` biweekly review tasks, phase-aligned to ``anchor``."""
        now = to_naive_utc(now) if now is not None else self._clock()
        first = roll_forward(to_naive_utc(anchor or self.review_anchor), now)

        tasks = []
        for start in generate_occurrences(first, Biweekly(), count if count is not None else self.horizon):
            tasks.append(ScheduledTask(
                id=review_task_id(start),
                name=review_task_name(start),
                type=TaskType.SELF_REVIEW,
                schedule=BIWEEKLY_REVIEW_SCHEDULE,
                next_run=start,
                status=TaskStatus.ACTIVE,
                metadata=SelfReviewPayload(
                    period_start=start,
                    period_end=biweekly_period_end(start),
                    review_type=ReviewType.BIWEEKLY,
                    scope=ReviewScope(),
                ),
            ))
        return await self._insert_all(tasks, now)

    async def create_maintenance_tasks(
        self, now: Optional[datetime] = None, weeks: Optional[int] = None
    ) -> SetupReport:
        """Insert Tuesday and Friday maintenance tasks for the coming weeks."""
        now = to_naive_utc(now) if now is not None else self._clock()
        tasks = [
            ScheduledTask(
                id=occurrence.task_id,
                name=occurrence.window.title,
                type=TaskType.MAINTENANCE,
                schedule=occurrence.window.schedule,
                next_run=occurrence.run_at,
                status=TaskStatus.ACTIVE,
                metadata=occurrence.window.payload,
            )
            for occurrence in maintenance_occurrences(now, weeks if weeks is not None else self.horizon)
        ]
        return await self._insert_all(tasks, now)

    async def setup_default_tasks(
        self, now: Optional[datetime] = None, review_anchor: Optional[datetime] = None
    ) -> SetupReport:
        """Create every default recurring task. Safe to re-run."""
        now = to_naive_utc(now) if now is not None else self._clock()
        reviews = await self.create_biweekly_reviews(anchor=review_anchor, now=now)
        maintenance = await self.create_maintenance_tasks(now=now)

        report = SetupReport(
            created=reviews.created + maintenance.created,
            skipped=reviews.skipped + maintenance.skipped,
            task_ids=reviews.task_ids + maintenance.task_ids,
        )
        logger.info("default_tasks_setup", created=report.created, skipped=report.skipped)
        return report

    # ----- tick -----

    async def process_due(self, now: Optional[datetime] = None) -> TickReport:
        """Run every due task once. Per-task failures never escape."""
        now = to_naive_utc(now) if now is not None else self._clock()

        async with self._tick_lock:
            rows = await self.tasks.list_due(now)
            report = TickReport(now=now, due=len(rows))

            for row in rows:
                outcome = await self._process_row(row, now)
                report.outcomes.append(outcome)
                if outcome.succeeded:
                    report.completed += 1
                else:
                    report.failed += 1

        logger.info(
            "tick_processed",
            now=now.isoformat(),
            due=report.due,
            completed=report.completed,
            failed=report.failed,
        )
        return report

    async def _process_row(self, row: ScheduledTaskModel, now: datetime) -> TaskOutcome:
        try:
            task = decode_task(row)
        except TaskPayloadError as e:
            return await self._fail(row.id, row.name, e, 0.0)
        return await self.execute_task(task, now)

    async def execute_task(self, task: ScheduledTask, now: datetime) -> TaskOutcome:
        """Dispatch one task and apply the outcome to its row."""
        t0 = time.monotonic()
        logger.info("task_executing", task_id=task.id, type=task.type.value)

        try:
            executor = self.executors.get(task.type)
            if executor is None:
                raise UnknownTaskTypeError(task.id, f"No executor registered for task type '{task.type.value}'")
            result: ExecutionResult = await executor.execute(task, now)
        except Exception as e:
            return await self._fail(task.id, task.name, e, round(time.monotonic() - t0, 2))

        duration = round(time.monotonic() - t0, 2)
        try:
            completed = await self.tasks.mark_completed(task.id, now)
        except Exception as e:
            logger.error("task_completion_failed", task_id=task.id, error=str(e), error_type=type(e).__name__)
            await self._notify_safely(
                title=f"Task Failed: {task.name}",
                message=(
                    f'Scheduled task "{task.name}" ran but could not be marked completed: {e}. '
                    "It stays active and will be retried on the next run."
                ),
                type=NotificationType.ERROR,
                priority=NotificationPriority.HIGH,
            )
            return TaskOutcome(task.id, task.name, False, summary=result.summary, error=str(e), duration_seconds=duration)

        if not completed:
            # Another tick got there first
            logger.warning("task_already_completed", task_id=task.id)
            return TaskOutcome(task.id, task.name, True, summary=result.summary, duration_seconds=duration)

        await self._notify_safely(
            title=f"Task Completed: {task.name}",
            message=f'Scheduled task "{task.name}" has been completed successfully. {result.summary}.',
            type=NotificationType.SUCCESS,
            priority=NotificationPriority.MEDIUM,
        )
        logger.info("task_completed", task_id=task.id, duration=duration, summary=result.summary)
        return TaskOutcome(task.id, task.name, True, summary=result.summary, duration_seconds=duration)

    async def _fail(self, task_id: str, name: str, error: Exception, duration: float) -> TaskOutcome:
        kind = "executor_failure" if isinstance(error, ExecutorFailureError) else "unexpected_error"
        logger.error(
            "task_failed",
            task_id=task_id,
            kind=kind,
            error=str(error),
            error_type=type(error).__name__,
        )
        await self._notify_safely(
            title=f"Task Failed: {name}",
            message=(
                f'Scheduled task "{name}" failed to execute: {error}. '
                "It stays active and will be retried on the next run."
            ),
            type=NotificationType.ERROR,
            priority=NotificationPriority.HIGH,
        )
        return TaskOutcome(task_id, name, False, error=str(error), duration_seconds=duration)

    async def _notify_safely(self, **kwargs) -> None:
        await notify_safely(self.notifications, action_url=CALENDAR_URL, action_label="View Calendar", **kwargs)

    # ----- queries & manual control -----

    async def list_tasks(
        self,
        status: Optional[TaskStatus] = None,
        type: Optional[TaskType] = None,
        limit: int = 100,
    ) -> List[ScheduledTask]:
        rows = await self.tasks.list(
            filters={
                "status": status.value if status else None,
                "type": type.value if type else None,
            },
            order_by="next_run",
            limit=limit,
        )
        tasks = []
        for row in rows:
            try:
                tasks.append(decode_task(row))
            except TaskPayloadError as e:
                logger.warning("scheduled_task_undecodable", task_id=row.id, error=e.message)
        return tasks

    async def get_task(self, task_id: str) -> Optional[ScheduledTask]:
        row = await self.tasks.get_by_id(task_id)
        return decode_task(row) if row is not None else None

    async def _transition(self, task_id: str, from_status: TaskStatus, to_status: TaskStatus) -> ScheduledTask:
        moved = await self.tasks.transition(task_id, from_status.value, to_status.value, now=self._clock())
        task = await self.get_task(task_id)
        if task is None:
            raise NotFoundError("Scheduled task", task_id)
        if not moved and task.status != to_status:
            raise InvalidTaskTransitionError(task_id, task.status.value, to_status.value)
        if moved:
            logger.info("scheduled_task_status_changed", task_id=task_id, status=to_status.value)
        return task

    async def pause_task(self, task_id: str) -> ScheduledTask:
        return await self._transition(task_id, TaskStatus.ACTIVE, TaskStatus.PAUSED)

    async def resume_task(self, task_id: str) -> ScheduledTask:
        return await self._transition(task_id, TaskStatus.PAUSED, TaskStatus.ACTIVE)


# ============================================
# PERIODIC TRIGGER
# ============================================

class SchedulerTrigger:
    """Calls ``process_due`` on an interval via APScheduler."""

    JOB_ID = "process_due_tasks"

    def __init__(self, task_scheduler: TaskScheduler, interval_seconds: int = 60):
        self.task_scheduler = task_scheduler
        self.interval_seconds = interval_seconds
        self.scheduler = AsyncIOScheduler()
        self._running = False

    async def _tick(self):
        try:
            await self.task_scheduler.process_due()
        except Exception as e:
            logger.error("scheduler_tick_failed", error=str(e), error_type=type(e).__name__)

    async def start(self):
        """Start ticking."""
        if self._running:
            logger.warning("scheduler_already_running")
            return

        self.scheduler.add_job(
            self._tick,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=self.JOB_ID,
            name="Process due scheduled tasks",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self.scheduler.start()
        self._running = True
        logger.info("scheduler_started", interval_seconds=self.interval_seconds)

    async def stop(self):
        """Stop the scheduler."""
        if not self._running:
            return

        self.scheduler.shutdown(wait=False)
        self._running = False
        logger.info("scheduler_stopped")

    def get_status(self) -> Dict[str, object]:
        jobs = [
            {
                "id": job.id,
                "name": job.name,
                "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
            }
            for job in self.scheduler.get_jobs()
        ] if self._running else []
        return {
            "running": self._running,
            "interval_seconds": self.interval_seconds,
            "jobs": jobs,
        }
