"""
Tests for the calendar aggregator: fan-out, filtering and ordering.
"""
from datetime import datetime

import pytest

from cadence.infrastructure.exceptions import NotFoundError, ServiceUnavailableError
from cadence.models.calendar import (
    CalendarFilters,
    DateRange,
    EventPriority,
    EventStatus,
    EventType,
    ImpactLevel,
)
from cadence.models.review import SelfReviewPeriod
from cadence.models.sources import IntelligenceEntry, JournalEntry, Meeting, Reminder, ReminderStatus
from cadence.services.calendar_service import CalendarService, matches_filters
from cadence.services.event_sources import (
    IntelligenceEventSource,
    JournalEventSource,
    MaintenanceEventSource,
    MeetingEventSource,
    ReminderEventSource,
    SelfReviewEventSource,
)
from tests.fakes import NOW, FakeIntelligence, FakeJournal, FakeMeetings, FakeReminders, FakeReviews


def journal_entry(id, created_at, **kwargs):
    return JournalEntry(id=id, title=f"Journal {id}", created_at=created_at, **kwargs)


def reminder(id, due_date, **kwargs):
    return Reminder(id=id, title=f"Reminder {id}", due_date=due_date, **kwargs)


def make_calendar(
    journal=None,
    intelligence=None,
    reminders=None,
    meetings=None,
    reviews=None,
    maintenance_weeks=0,
    timeout=1.0,
):
    return CalendarService(
        adapters=[
            JournalEventSource(journal or FakeJournal()),
            IntelligenceEventSource(intelligence or FakeIntelligence()),
            ReminderEventSource(reminders or FakeReminders()),
            SelfReviewEventSource(reviews or FakeReviews()),
            MeetingEventSource(meetings or FakeMeetings()),
            MaintenanceEventSource(weeks=maintenance_weeks, clock=lambda: NOW),
        ],
        adapter_timeout=timeout,
        clock=lambda: NOW,
    )


class TestOrdering:

    @pytest.mark.asyncio
    async def test_newest_first(self):
        calendar = make_calendar(
            journal=FakeJournal([journal_entry("j1", datetime(2025, 1, 10))]),
            reminders=FakeReminders([reminder("r1", datetime(2025, 1, 5))]),
        )
        events = await calendar.get_events()
        assert [e.id for e in events] == ["journal_j1", "reminder_r1"]
        assert [e.date for e in events] == [datetime(2025, 1, 10), datetime(2025, 1, 5)]

    @pytest.mark.asyncio
    async def test_equal_dates_keep_adapter_order(self):
        same = datetime(2025, 3, 1, 12)
        calendar = make_calendar(
            journal=FakeJournal([journal_entry("j1", same)]),
            intelligence=FakeIntelligence([IntelligenceEntry(id="i1", title="Insight", created_at=same)]),
            reminders=FakeReminders([reminder("r1", same)]),
        )
        events = await calendar.get_events()
        assert [e.id for e in events] == ["journal_j1", "intelligence_i1", "reminder_r1"]

    @pytest.mark.asyncio
    async def test_repeated_calls_agree(self):
        calendar = make_calendar(
            journal=FakeJournal([journal_entry("j1", datetime(2025, 1, 10)), journal_entry("j2", datetime(2025, 2, 1))]),
            maintenance_weeks=2,
        )
        assert await calendar.get_events() == await calendar.get_events()


class TestAdapterSelection:

    @pytest.mark.asyncio
    async def test_meetings_skipped_without_type_filter(self):
        meetings = FakeMeetings([Meeting(id="m1", title="Sync", date_recorded=datetime(2025, 1, 3))])
        calendar = make_calendar(meetings=meetings)
        events = await calendar.get_events()
        assert meetings.calls == 0
        assert all(e.type != EventType.MEETING for e in events)

    @pytest.mark.asyncio
    async def test_meetings_fetched_when_requested(self):
        meetings = FakeMeetings([Meeting(id="m1", title="Sync", date_recorded=datetime(2025, 1, 3))])
        calendar = make_calendar(meetings=meetings)
        events = await calendar.get_events(CalendarFilters(types=[EventType.MEETING]))
        assert meetings.calls == 1
        assert [e.id for e in events] == ["meeting_m1"]

    @pytest.mark.asyncio
    async def test_unselected_sources_not_queried(self):
        journal = FakeJournal([journal_entry("j1", datetime(2025, 1, 10))])
        reminders = FakeReminders([reminder("r1", datetime(2025, 1, 5))])
        calendar = make_calendar(journal=journal, reminders=reminders)
        events = await calendar.get_events(CalendarFilters(types=[EventType.REMINDER]))
        assert [e.id for e in events] == ["reminder_r1"]
        assert journal.calls == 0


class TestFailureIsolation:

    @pytest.mark.asyncio
    async def test_failing_meeting_source_does_not_hide_journal(self):
        journal = FakeJournal([journal_entry("j1", datetime(2025, 1, 10)), journal_entry("j2", datetime(2025, 1, 11))])
        meetings = FakeMeetings(error=ConnectionError("archive unreachable"))
        calendar = make_calendar(journal=journal, meetings=meetings)

        events = await calendar.get_events(CalendarFilters(types=[EventType.MEETING, EventType.JOURNAL_ENTRY]))

        assert meetings.calls == 1
        assert [e.id for e in events] == ["journal_j2", "journal_j1"]

    @pytest.mark.asyncio
    async def test_slow_source_times_out(self):
        journal = FakeJournal([journal_entry("j1", datetime(2025, 1, 10))])
        meetings = FakeMeetings([Meeting(id="m1", title="Sync", date_recorded=datetime(2025, 1, 3))], delay=2.0)
        calendar = make_calendar(journal=journal, meetings=meetings, timeout=0.05)

        events = await calendar.get_events(CalendarFilters(types=[EventType.MEETING, EventType.JOURNAL_ENTRY]))

        assert [e.id for e in events] == ["journal_j1"]

    @pytest.mark.asyncio
    async def test_every_source_failing_gives_empty_timeline(self):
        boom = RuntimeError("down")
        calendar = make_calendar(
            journal=FakeJournal(error=boom),
            intelligence=FakeIntelligence(error=boom),
            reminders=FakeReminders(error=boom),
        )
        assert await calendar.get_events() == []


class TestFilters:

    @pytest.fixture
    def calendar(self):
        return make_calendar(
            journal=FakeJournal([
                journal_entry("j1", datetime(2025, 1, 10), project_id="p1", tags=["infra"], category="ops"),
                journal_entry("j2", datetime(2025, 1, 12), project_id="p2", tags=["ui"], category="design"),
            ]),
            intelligence=FakeIntelligence([
                IntelligenceEntry(id="i1", title="Risk", impact=ImpactLevel.CRITICAL, created_at=datetime(2025, 1, 11)),
                IntelligenceEntry(id="i2", title="Note", impact=ImpactLevel.LOW, created_at=datetime(2025, 1, 13)),
            ]),
            reminders=FakeReminders([
                reminder("r1", datetime(2025, 1, 15), priority=EventPriority.HIGH),
                reminder("r2", datetime(2025, 1, 16), priority=EventPriority.URGENT, status=ReminderStatus.COMPLETED),
                reminder("r3", datetime(2025, 1, 17), priority=EventPriority.LOW),
            ]),
        )

    @pytest.mark.asyncio
    async def test_priorities_with_completed_hidden(self, calendar):
        events = await calendar.get_events(CalendarFilters(
            priorities=[EventPriority.HIGH, EventPriority.URGENT],
            show_completed=False,
        ))
        assert [e.id for e in events] == ["reminder_r1"]
        for event in events:
            assert event.priority in (EventPriority.HIGH, EventPriority.URGENT)
            assert event.status != EventStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_priorities_alone_keep_completed(self, calendar):
        events = await calendar.get_events(CalendarFilters(priorities=[EventPriority.HIGH, EventPriority.URGENT]))
        assert {e.id for e in events} == {"reminder_r1", "reminder_r2", "intelligence_i1"}

    @pytest.mark.asyncio
    async def test_project_and_tag_filters(self, calendar):
        assert [e.id for e in await calendar.get_events(CalendarFilters(project_ids=["p1"]))] == ["journal_j1"]
        assert [e.id for e in await calendar.get_events(CalendarFilters(tags=["ui", "other"]))] == ["journal_j2"]

    @pytest.mark.asyncio
    async def test_category_filter(self, calendar):
        events = await calendar.get_events(CalendarFilters(categories=["ops"]))
        assert [e.id for e in events] == ["journal_j1"]

    @pytest.mark.asyncio
    async def test_empty_collections_do_not_constrain(self, calendar):
        unfiltered = await calendar.get_events()
        assert await calendar.get_events(CalendarFilters(types=[], tags=[], priorities=[])) == unfiltered
        assert len(unfiltered) == 7

    @pytest.mark.asyncio
    async def test_date_range_is_inclusive(self, calendar):
        events = await calendar.get_events_in_range(datetime(2025, 1, 11), datetime(2025, 1, 13))
        assert [e.id for e in events] == ["intelligence_i2", "journal_j2", "intelligence_i1"]

    @pytest.mark.asyncio
    async def test_range_replaces_existing_range(self, calendar):
        filters = CalendarFilters(
            types=[EventType.REMINDER],
            date_range=DateRange(start=datetime(2024, 1, 1), end=datetime(2024, 2, 1)),
        )
        events = await calendar.get_events_in_range(datetime(2025, 1, 15), datetime(2025, 1, 16), filters)
        assert [e.id for e in events] == ["reminder_r2", "reminder_r1"]

    def test_show_completed_none_shows_everything(self):
        event = JournalEventSource.to_event(journal_entry("j1", datetime(2025, 1, 10)))
        assert matches_filters(event, CalendarFilters(show_completed=None))
        assert matches_filters(event, CalendarFilters(show_completed=True))
        assert not matches_filters(event, CalendarFilters(show_completed=False))


class TestEventContext:

    @pytest.mark.asyncio
    async def test_journal_event_resolves_to_entry(self):
        entry = journal_entry("j1", datetime(2025, 8, 10), content="Shipped the scheduler")
        calendar = make_calendar(journal=FakeJournal([entry]))

        context = await calendar.get_event_context("journal_j1", EventType.JOURNAL_ENTRY)

        assert context.journal_entry == entry
        assert context.reminder is None
        assert context.generated_at == NOW

    @pytest.mark.asyncio
    async def test_bare_record_id_accepted(self):
        item = reminder("r1", datetime(2025, 8, 12))
        calendar = make_calendar(reminders=FakeReminders([item]))

        context = await calendar.get_event_context("r1", EventType.REMINDER)

        assert context.reminder == item

    @pytest.mark.asyncio
    async def test_review_event_resolves_to_period(self):
        period = SelfReviewPeriod(
            id="p1",
            title="Biweekly Self Review - 2025-08-05",
            start_date=datetime(2025, 8, 5, 9),
            end_date=datetime(2025, 8, 18, 9),
        )
        calendar = make_calendar(reviews=FakeReviews([period]))

        context = await calendar.get_event_context("review_p1", EventType.SELF_REVIEW)

        assert context.review == period

    @pytest.mark.asyncio
    async def test_unknown_record(self):
        calendar = make_calendar()
        with pytest.raises(NotFoundError):
            await calendar.get_event_context("intelligence_missing", EventType.INTELLIGENCE_ENTRY)

    @pytest.mark.asyncio
    async def test_types_without_records_carry_none(self):
        meetings = FakeMeetings()
        calendar = make_calendar(meetings=meetings)

        context = await calendar.get_event_context("meeting_m1", EventType.MEETING)

        assert context.type == EventType.MEETING
        assert context.journal_entry is context.review is None
        assert meetings.calls == 0

    @pytest.mark.asyncio
    async def test_source_failure_propagates(self):
        calendar = make_calendar(journal=FakeJournal(error=ServiceUnavailableError("journal", "down")))
        with pytest.raises(ServiceUnavailableError):
            await calendar.get_event_context("journal_j1", EventType.JOURNAL_ENTRY)
