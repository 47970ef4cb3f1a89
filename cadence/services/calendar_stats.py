"""
Calendar Statistics Engine.

Counts come straight from the cheap store-backed adapters plus a count query
on scheduled_tasks. The meeting adapter is never called and the merged,
filtered timeline is never built.
"""

from collections import Counter
from datetime import datetime
from typing import Callable, List, Optional

import structlog

from cadence.db.repositories.scheduled_tasks import ScheduledTaskRepository
from cadence.models.calendar import CalendarEvent, CalendarStats, EventStatus, EventType
from cadence.models.scheduler import TaskType
from cadence.services.calendar_service import CalendarService
from cadence.time_utils import month_bounds, month_key, utcnow, week_bounds

logger = structlog.get_logger(__name__)

STATS_EVENT_TYPES = (
    EventType.JOURNAL_ENTRY,
    EventType.INTELLIGENCE_ENTRY,
    EventType.REMINDER,
    EventType.SELF_REVIEW,
)


def _count_between(events: List[CalendarEvent], start: datetime, end: datetime) -> int:
    return sum(1 for event in events if start <= event.date < end)


class CalendarStatsService:
    """Aggregate counts for the calendar header."""

    def __init__(
        self,
        calendar: CalendarService,
        tasks: ScheduledTaskRepository,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.calendar = calendar
        self.tasks = tasks
        self._clock = clock

    async def _upcoming_maintenance(self, week_start: datetime, week_end: datetime) -> int:
        try:
            return await self.tasks.count_active_between(TaskType.MAINTENANCE.value, week_start, week_end)
        except Exception as e:
            logger.warning("calendar_stats_source_failed", source="scheduled_tasks", error=str(e))
            return 0

    async def get_stats(self, now: Optional[datetime] = None) -> CalendarStats:
        now = now or self._clock()
        month_start, month_end = month_bounds(now)
        week_start, week_end = week_bounds(now)

        adapters = [
            adapter
            for adapter in (self.calendar.adapter_for(t) for t in STATS_EVENT_TYPES)
            if adapter is not None and not adapter.expensive
        ]
        per_adapter = await self.calendar.collect(None, adapters)
        by_type = {adapter.event_type: events for adapter, events in zip(adapters, per_adapter)}

        journal = by_type.get(EventType.JOURNAL_ENTRY, [])
        intelligence = by_type.get(EventType.INTELLIGENCE_ENTRY, [])
        reminders = by_type.get(EventType.REMINDER, [])
        reviews = by_type.get(EventType.SELF_REVIEW, [])

        all_events = [event for events in per_adapter for event in events]

        stats = CalendarStats(
            total_events=len(all_events),
            events_by_type={t.value: len(by_type.get(t, [])) for t in STATS_EVENT_TYPES},
            events_by_month=dict(Counter(month_key(event.date) for event in all_events)),
            journal_entries_this_month=_count_between(journal, month_start, month_end),
            intelligence_entries_this_month=_count_between(intelligence, month_start, month_end),
            upcoming_reminders=sum(
                1 for event in reminders
                if event.status == EventStatus.PENDING and now <= event.date < week_end
            ),
            upcoming_maintenance=await self._upcoming_maintenance(week_start, week_end),
            completed_self_reviews=sum(1 for event in reviews if event.status == EventStatus.COMPLETED),
            pending_self_reviews=sum(1 for event in reviews if event.status == EventStatus.PENDING),
        )

        logger.info(
            "calendar_stats_calculated",
            total_events=stats.total_events,
            upcoming_reminders=stats.upcoming_reminders,
            upcoming_maintenance=stats.upcoming_maintenance,
        )
        return stats
