# Services
from cadence.services.calendar_service import CalendarService
from cadence.services.calendar_stats import CalendarStatsService
from cadence.services.notification_service import NotificationService
from cadence.services.review_service import SelfReviewService
from cadence.services.scheduler_service import SchedulerTrigger, TaskScheduler

__all__ = [
    "CalendarService",
    "CalendarStatsService",
    "NotificationService",
    "SelfReviewService",
    "SchedulerTrigger",
    "TaskScheduler",
]
