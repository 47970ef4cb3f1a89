"""
Event Source Adapters.

Each adapter turns one collaborator's records into CalendarEvents. Adapters
fail closed: whatever goes wrong inside ``fetch`` is logged and the adapter
contributes an empty list to the merge.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, List, Optional, Tuple

import structlog

from cadence.models.calendar import (
    CalendarEvent,
    CalendarFilters,
    EventMetadata,
    EventPriority,
    EventStatus,
    EventType,
    ImpactLevel,
)
from cadence.models.review import SelfReviewPeriod
from cadence.models.sources import IntelligenceEntry, JournalEntry, Meeting, Reminder
from cadence.services.collaborators import (
    IntelligenceSource,
    JournalSource,
    MeetingSource,
    ReminderSource,
)
from cadence.services.schedule_plan import MaintenanceOccurrence, maintenance_occurrences
from cadence.time_utils import utcnow

logger = structlog.get_logger(__name__)

SUMMARY_LENGTH = 200

IMPACT_TO_PRIORITY = {
    ImpactLevel.LOW: EventPriority.LOW,
    ImpactLevel.MEDIUM: EventPriority.MEDIUM,
    ImpactLevel.HIGH: EventPriority.HIGH,
    ImpactLevel.CRITICAL: EventPriority.URGENT,
}


def summarize(text: str, length: int = SUMMARY_LENGTH) -> str:
    """First ``length`` characters, with an ellipsis when cut."""
    if len(text) <= length:
        return text
    return text[:length] + "..."


def impact_from_score(score: Optional[int]) -> Optional[ImpactLevel]:
    """Map a 1-10 journal impact score onto an impact level."""
    if score is None:
        return None
    if score >= 8:
        return ImpactLevel.CRITICAL
    if score >= 6:
        return ImpactLevel.HIGH
    if score >= 4:
        return ImpactLevel.MEDIUM
    return ImpactLevel.LOW


def _date_bounds(filters: Optional[CalendarFilters]) -> Tuple[Optional[datetime], Optional[datetime]]:
    if filters is None or filters.date_range is None:
        return None, None
    return filters.date_range.start, filters.date_range.end


# ============================================
# BASE ADAPTER
# ============================================

class EventSourceAdapter(ABC):
    """Read-only translator from one data source into CalendarEvents."""

    name: str = "source"
    event_type: EventType
    expensive: bool = False
    # Event ids are "<id_prefix><record id>"; context_field names the EventContext slot
    id_prefix: str = ""
    context_field: Optional[str] = None

    async def fetch(self, filters: Optional[CalendarFilters] = None) -> List[CalendarEvent]:
        """Fetch and map events. Never raises."""
        try:
            return await self._fetch(filters)
        except Exception as e:
            logger.warning(
                "calendar_source_failed",
                source=self.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return []

    @abstractmethod
    async def _fetch(self, filters: Optional[CalendarFilters]) -> List[CalendarEvent]:
        ...

    def record_id(self, event_id: str) -> str:
        """Strip the event id prefix; bare record ids pass through."""
        if self.id_prefix and event_id.startswith(self.id_prefix):
            return event_id[len(self.id_prefix):]
        return event_id

    async def lookup(self, record_id: str):
        """The source record behind an event, or None. May raise."""
        return None


# ============================================
# STORE-BACKED ADAPTERS
# ============================================

class JournalEventSource(EventSourceAdapter):
    name = "journal"
    event_type = EventType.JOURNAL_ENTRY
    id_prefix = "journal_"
    context_field = "journal_entry"

    def __init__(self, source: JournalSource):
        self._source = source

    async def _fetch(self, filters):
        start, end = _date_bounds(filters)
        entries = await self._source.list_journal_entries(start=start, end=end)
        return [self.to_event(entry) for entry in entries]

    async def lookup(self, record_id):
        return await self._source.get_journal_entry(record_id)

    @staticmethod
    def to_event(entry: JournalEntry) -> CalendarEvent:
        return CalendarEvent(
            id=f"journal_{entry.id}",
            title=entry.title,
            date=entry.created_at,
            type=EventType.JOURNAL_ENTRY,
            category=entry.category,
            status=EventStatus.COMPLETED,
            metadata=EventMetadata(
                entry_id=entry.id,
                project_id=entry.project_id,
                project_name=entry.project_name,
                tags=entry.tags,
                impact=impact_from_score(entry.impact),
            ),
            context_summary=summarize(entry.content),
        )


class IntelligenceEventSource(EventSourceAdapter):
    name = "intelligence"
    event_type = EventType.INTELLIGENCE_ENTRY
    id_prefix = "intelligence_"
    context_field = "intelligence_entry"

    def __init__(self, source: IntelligenceSource):
        self._source = source

    async def _fetch(self, filters):
        start, end = _date_bounds(filters)
        entries = await self._source.list_intelligence_entries(start=start, end=end)
        return [self.to_event(entry) for entry in entries]

    async def lookup(self, record_id):
        return await self._source.get_intelligence_entry(record_id)

    @staticmethod
    def to_event(entry: IntelligenceEntry) -> CalendarEvent:
        return CalendarEvent(
            id=f"intelligence_{entry.id}",
            title=entry.title,
            date=entry.created_at,
            type=EventType.INTELLIGENCE_ENTRY,
            category=entry.category,
            priority=IMPACT_TO_PRIORITY[entry.impact],
            status=EventStatus.COMPLETED,
            metadata=EventMetadata(
                entry_id=entry.id,
                tags=entry.tags,
                impact=entry.impact,
                confidence=entry.confidence,
                related_entities=entry.related_entities,
            ),
            context_summary=summarize(entry.content),
        )


class ReminderEventSource(EventSourceAdapter):
    name = "reminders"
    event_type = EventType.REMINDER
    id_prefix = "reminder_"
    context_field = "reminder"

    def __init__(self, source: ReminderSource):
        self._source = source

    async def _fetch(self, filters):
        start, end = _date_bounds(filters)
        reminders = await self._source.list_reminders(start=start, end=end)
        return [self.to_event(reminder) for reminder in reminders]

    async def lookup(self, record_id):
        return await self._source.get_reminder(record_id)

    @staticmethod
    def to_event(reminder: Reminder) -> CalendarEvent:
        return CalendarEvent(
            id=f"reminder_{reminder.id}",
            title=reminder.title,
            date=reminder.due_date,
            type=EventType.REMINDER,
            category=reminder.category,
            priority=reminder.priority,
            status=EventStatus(reminder.status.value),
            metadata=EventMetadata(entry_id=reminder.related_entry_id),
            context_summary=reminder.description or "Reminder",
        )


class SelfReviewEventSource(EventSourceAdapter):
    name = "self_reviews"
    event_type = EventType.SELF_REVIEW
    id_prefix = "review_"
    context_field = "review"

    def __init__(self, reviews):
        # SelfReviewService, or anything with list_periods(start, end) and get_period(id)
        self._reviews = reviews

    async def _fetch(self, filters):
        start, end = _date_bounds(filters)
        periods = await self._reviews.list_periods(start=start, end=end)
        return [self.to_event(period) for period in periods]

    async def lookup(self, record_id):
        return await self._reviews.get_period(record_id)

    @staticmethod
    def to_event(period: SelfReviewPeriod) -> CalendarEvent:
        review_type = period.type.value
        return CalendarEvent(
            id=f"review_{period.id}",
            title=period.title,
            date=period.start_date,
            type=EventType.SELF_REVIEW,
            category=review_type,
            priority=EventPriority.HIGH,
            status=EventStatus(period.status.value),
            metadata=EventMetadata(),
            context_summary=(
                f"{review_type} review period: "
                f"{period.start_date.date().isoformat()} - {period.end_date.date().isoformat()}"
            ),
            detail_path=period.analysis_results.detail_path if period.analysis_results else None,
        )


# ============================================
# REMOTE / COMPUTED ADAPTERS
# ============================================

class MeetingEventSource(EventSourceAdapter):
    """Meetings from the remote archive. Only queried when asked for by type."""
    name = "meetings"
    event_type = EventType.MEETING
    expensive = True

    def __init__(self, source: MeetingSource):
        self._source = source

    async def _fetch(self, filters):
        meetings = await self._source.list_meetings()
        return [self.to_event(meeting) for meeting in meetings]

    @staticmethod
    def to_event(meeting: Meeting) -> CalendarEvent:
        return CalendarEvent(
            id=f"meeting_{meeting.id}",
            title=meeting.title,
            date=meeting.date_recorded,
            type=EventType.MEETING,
            category=meeting.category,
            priority=EventPriority.HIGH if meeting.is_portfolio_relevant else EventPriority.MEDIUM,
            status=EventStatus.COMPLETED,
            metadata=EventMetadata(tags=meeting.participants),
            context_summary=f"Meeting with {', '.join(meeting.participants)}",
        )


class MaintenanceEventSource(EventSourceAdapter):
    """Projected maintenance windows. No storage behind it.

    These are informational; the executable runs are the ScheduledTask rows.
    """
    name = "maintenance"
    event_type = EventType.MAINTENANCE

    def __init__(self, weeks: int = 12, clock: Callable[[], datetime] = utcnow):
        self._weeks = weeks
        self._clock = clock

    async def _fetch(self, filters):
        occurrences = maintenance_occurrences(self._clock(), self._weeks)
        return [self.to_event(occurrence) for occurrence in occurrences]

    @staticmethod
    def to_event(occurrence: MaintenanceOccurrence) -> CalendarEvent:
        window = occurrence.window
        return CalendarEvent(
            id=occurrence.task_id,
            title=window.title,
            date=occurrence.run_at,
            type=EventType.MAINTENANCE,
            category=window.category,
            priority=EventPriority.MEDIUM,
            status=EventStatus.PENDING,
            metadata=EventMetadata(tags=list(window.tags)),
            context_summary=window.summary,
        )
