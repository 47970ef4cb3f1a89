"""
Calendar Aggregator.

Merges the events of every Event Source Adapter into one timeline: fan out to
the adapters concurrently, join, filter in one pass, sort newest first.
"""

import asyncio
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Sequence

import structlog

from cadence.models.calendar import CalendarEvent, CalendarFilters, DateRange, EventStatus, EventType
from cadence.infrastructure.exceptions import NotFoundError
from cadence.models.sources import EventContext
from cadence.services.event_sources import EventSourceAdapter
from cadence.time_utils import utcnow

logger = structlog.get_logger(__name__)

DEFAULT_ADAPTER_TIMEOUT = 5.0


def matches_filters(event: CalendarEvent, filters: CalendarFilters) -> bool:
    """Composite predicate. Empty collections do not constrain."""
    if filters.types and event.type not in filters.types:
        return False
    if filters.categories and event.category not in filters.categories:
        return False
    if filters.priorities and event.priority not in filters.priorities:
        return False
    if filters.project_ids and event.metadata.project_id not in filters.project_ids:
        return False
    if filters.date_range is not None:
        # Inclusive on both ends
        if not filters.date_range.start <= event.date <= filters.date_range.end:
            return False
    if filters.tags and not set(filters.tags).intersection(event.metadata.tags):
        return False
    if filters.show_completed is False and event.status == EventStatus.COMPLETED:
        return False
    return True


def apply_filters(events: Iterable[CalendarEvent], filters: Optional[CalendarFilters]) -> List[CalendarEvent]:
    if filters is None:
        return list(events)
    return [event for event in events if matches_filters(event, filters)]


class CalendarService:
    """Unified calendar over all event sources."""

    def __init__(
        self,
        adapters: Sequence[EventSourceAdapter],
        adapter_timeout: float = DEFAULT_ADAPTER_TIMEOUT,
        clock: Callable[[], datetime] = utcnow,
    ):
        # Order matters: it is the merge order, and equal dates keep it
        self.adapters = list(adapters)
        self.adapter_timeout = adapter_timeout
        self._clock = clock

    def select_adapters(self, filters: Optional[CalendarFilters]) -> List[EventSourceAdapter]:
        """Adapters whose events the filter's type set could include.

        Expensive adapters run only when their type is asked for by name.
        """
        filters = filters or CalendarFilters()
        selected = []
        for adapter in self.adapters:
            if adapter.expensive:
                if filters.explicitly_requests(adapter.event_type):
                    selected.append(adapter)
            elif filters.wants_type(adapter.event_type):
                selected.append(adapter)
        return selected

    async def _fetch_bounded(self, adapter: EventSourceAdapter, filters: Optional[CalendarFilters]) -> List[CalendarEvent]:
        try:
            return await asyncio.wait_for(adapter.fetch(filters), timeout=self.adapter_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "calendar_source_timeout",
                source=adapter.name,
                timeout=self.adapter_timeout,
            )
            return []

    async def collect(
        self, filters: Optional[CalendarFilters], adapters: Sequence[EventSourceAdapter]
    ) -> List[List[CalendarEvent]]:
        """Run ``adapters`` concurrently; one result list per adapter, in order."""
        results = await asyncio.gather(
            *(self._fetch_bounded(adapter, filters) for adapter in adapters),
            return_exceptions=True,
        )

        collected = []
        for adapter, result in zip(adapters, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.warning(
                    "calendar_source_failed",
                    source=adapter.name,
                    error=str(result),
                    error_type=type(result).__name__,
                )
                collected.append([])
            else:
                collected.append(result)
        return collected

    async def get_events(self, filters: Optional[CalendarFilters] = None) -> List[CalendarEvent]:
        """All matching events, newest first."""
        adapters = self.select_adapters(filters)
        per_adapter = await self.collect(filters, adapters)

        merged = [event for events in per_adapter for event in events]
        events = apply_filters(merged, filters)

        # Stable: equal dates keep adapter order
        events.sort(key=lambda event: event.date, reverse=True)

        logger.debug(
            "calendar_events_aggregated",
            adapters=[adapter.name for adapter in adapters],
            merged=len(merged),
            returned=len(events),
        )
        return events

    async def get_events_in_range(
        self,
        start: datetime,
        end: datetime,
        filters: Optional[CalendarFilters] = None,
    ) -> List[CalendarEvent]:
        """``get_events`` with the date range replaced by [start, end]."""
        base = filters or CalendarFilters()
        ranged = base.model_copy(update={"date_range": DateRange(start=start, end=end)})
        return await self.get_events(ranged)

    def adapter_for(self, event_type: EventType) -> Optional[EventSourceAdapter]:
        for adapter in self.adapters:
            if adapter.event_type == event_type:
                return adapter
        return None

    async def get_event_context(self, event_id: str, event_type: EventType) -> EventContext:
        """The source record behind one event.

        ``event_id`` may be the calendar event id ("journal_<id>") or the bare
        record id. Raises NotFoundError when a record-backed type has no such
        record; collaborator errors propagate.
        """
        context = EventContext(event_id=event_id, type=event_type, generated_at=self._clock())
        adapter = self.adapter_for(event_type)
        if adapter is None or adapter.context_field is None:
            return context

        record_id = adapter.record_id(event_id)
        record = await adapter.lookup(record_id)
        if record is None:
            raise NotFoundError(f"{event_type.value} event", record_id)

        logger.debug("event_context_resolved", type=event_type.value, record_id=record_id)
        return context.model_copy(update={adapter.context_field: record})
