# Data models
from cadence.models.calendar import (
    CalendarEvent, CalendarFilters, CalendarStats, DateRange, EventMetadata,
    EventPriority, EventStatus, EventType, ImpactLevel, RelatedEntities
)
from cadence.models.notification import AdminNotification, NotificationPriority, NotificationType
from cadence.models.review import (
    ReviewAnalysis, ReviewScope, ReviewStatus, ReviewType, SelfReviewPeriod
)
from cadence.models.scheduler import (
    AnalysisKind, MaintenancePayload, ScheduledTask, SelfReviewPayload,
    SetupReport, TaskStatus, TaskType
)

__all__ = [
    "CalendarEvent", "CalendarFilters", "CalendarStats", "DateRange", "EventMetadata",
    "EventPriority", "EventStatus", "EventType", "ImpactLevel", "RelatedEntities",
    "AdminNotification", "NotificationPriority", "NotificationType",
    "ReviewAnalysis", "ReviewScope", "ReviewStatus", "ReviewType", "SelfReviewPeriod",
    "AnalysisKind", "MaintenancePayload", "ScheduledTask", "SelfReviewPayload",
    "SetupReport", "TaskStatus", "TaskType",
]
