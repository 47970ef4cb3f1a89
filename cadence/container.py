"""
Service wiring for Cadence.

Everything is constructed once here at process start and passed by
reference. There are no module-level singletons, so tests can swap any
collaborator for a fake.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from fastapi import Request

from cadence.db.repositories.records import SqlIntelligenceSource, SqlJournalSource, SqlReminderSource
from cadence.db.repositories.scheduled_tasks import ScheduledTaskRepository
from cadence.infrastructure.config import Settings
from cadence.services.calendar_service import CalendarService
from cadence.services.calendar_stats import CalendarStatsService
from cadence.services.collaborators import (
    IntelligenceGenerator,
    IntelligenceSource,
    JournalSource,
    MeetingSource,
    ReminderSource,
    ReviewAnalyzer,
)
from cadence.services.event_sources import (
    IntelligenceEventSource,
    JournalEventSource,
    MaintenanceEventSource,
    MeetingEventSource,
    ReminderEventSource,
    SelfReviewEventSource,
)
from cadence.services.notification_service import NotificationService
from cadence.services.remote_sources import HttpIntelligenceGenerator, HttpMeetingSource
from cadence.services.review_service import SelfReviewService
from cadence.services.scheduler_service import SchedulerTrigger, TaskScheduler
from cadence.services.task_executors import MaintenanceExecutor, SelfReviewExecutor
from cadence.time_utils import utcnow


@dataclass
class CadenceServices:
    settings: Settings
    notifications: NotificationService
    reviews: SelfReviewService
    calendar: CalendarService
    stats: CalendarStatsService
    scheduler: TaskScheduler
    trigger: SchedulerTrigger


def build_services(
    settings: Settings,
    *,
    journal: Optional[JournalSource] = None,
    intelligence: Optional[IntelligenceSource] = None,
    reminders: Optional[ReminderSource] = None,
    meetings: Optional[MeetingSource] = None,
    intelligence_generator: Optional[IntelligenceGenerator] = None,
    analyzer: Optional[ReviewAnalyzer] = None,
    clock: Callable[[], datetime] = utcnow,
) -> CadenceServices:
    """Build the service graph. Unset collaborators get their defaults."""
    journal = journal or SqlJournalSource()
    intelligence = intelligence or SqlIntelligenceSource()
    reminders = reminders or SqlReminderSource()
    meetings = meetings or HttpMeetingSource(
        settings.meetings_api_url, timeout=settings.collaborator_timeout_seconds
    )
    intelligence_generator = intelligence_generator or HttpIntelligenceGenerator(
        settings.intelligence_api_url, timeout=settings.collaborator_timeout_seconds
    )

    notifications = NotificationService(unread_limit=settings.unread_notification_limit, clock=clock)
    reviews = SelfReviewService(journal, intelligence, meetings, analyzer=analyzer, clock=clock)

    calendar = CalendarService(
        adapters=[
            JournalEventSource(journal),
            IntelligenceEventSource(intelligence),
            ReminderEventSource(reminders),
            SelfReviewEventSource(reviews),
            MeetingEventSource(meetings),
            MaintenanceEventSource(weeks=settings.maintenance_projection_weeks, clock=clock),
        ],
        adapter_timeout=settings.adapter_timeout_seconds,
        clock=clock,
    )

    tasks = ScheduledTaskRepository()
    stats = CalendarStatsService(calendar, tasks, clock=clock)

    scheduler = TaskScheduler(
        tasks,
        executors=[
            SelfReviewExecutor(reviews, notifications),
            MaintenanceExecutor(
                intelligence_generator,
                notifications,
                call_timeout=settings.analysis_timeout_seconds,
            ),
        ],
        notifications=notifications,
        clock=clock,
        review_anchor=settings.review_anchor,
        horizon=settings.occurrence_horizon,
    )
    trigger = SchedulerTrigger(scheduler, interval_seconds=settings.scheduler_tick_seconds)

    return CadenceServices(
        settings=settings,
        notifications=notifications,
        reviews=reviews,
        calendar=calendar,
        stats=stats,
        scheduler=scheduler,
        trigger=trigger,
    )


def get_services(request: Request) -> CadenceServices:
    """FastAPI dependency: the services built in the app lifespan."""
    return request.app.state.services
