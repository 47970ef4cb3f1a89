"""
Tests for the event source adapters.
"""
from datetime import datetime, timezone

import pytest

from cadence.models.calendar import EventPriority, EventStatus, EventType, ImpactLevel
from cadence.models.review import ReviewAnalysis, ReviewStatus, SelfReviewPeriod
from cadence.models.sources import IntelligenceEntry, JournalEntry, Meeting, Reminder, ReminderStatus
from cadence.services.event_sources import (
    IntelligenceEventSource,
    JournalEventSource,
    MaintenanceEventSource,
    MeetingEventSource,
    ReminderEventSource,
    SelfReviewEventSource,
    impact_from_score,
    summarize,
)
from cadence.services.schedule_plan import maintenance_occurrences
from tests.fakes import NOW, FakeJournal, FakeMeetings


class TestHelpers:

    def test_summarize_short_text_untouched(self):
        assert summarize("a" * 200) == "a" * 200

    def test_summarize_long_text_truncated(self):
        summary = summarize("b" * 250)
        assert len(summary) == 203
        assert summary.endswith("...")

    @pytest.mark.parametrize("score,expected", [
        (None, None),
        (1, ImpactLevel.LOW),
        (4, ImpactLevel.MEDIUM),
        (6, ImpactLevel.HIGH),
        (9, ImpactLevel.CRITICAL),
    ])
    def test_impact_from_score(self, score, expected):
        assert impact_from_score(score) == expected


class TestMapping:

    def test_journal_entry(self):
        entry = JournalEntry(
            id="j1",
            title="Picked the queue design",
            content="x" * 300,
            category="architecture",
            project_id="p1",
            project_name="Cadence",
            tags=["design"],
            impact=8,
            created_at=datetime(2025, 8, 1, 9, tzinfo=timezone.utc),
        )
        event = JournalEventSource.to_event(entry)
        assert event.id == "journal_j1"
        assert event.type == EventType.JOURNAL_ENTRY
        assert event.status == EventStatus.COMPLETED
        assert event.date == datetime(2025, 8, 1, 9)
        assert event.metadata.project_id == "p1"
        assert event.metadata.impact == ImpactLevel.CRITICAL
        assert event.context_summary.endswith("...")

    def test_intelligence_priority_follows_impact(self):
        entry = IntelligenceEntry(
            id="i1",
            title="Module hotspot",
            impact=ImpactLevel.CRITICAL,
            confidence=87.5,
            created_at=datetime(2025, 8, 2),
        )
        event = IntelligenceEventSource.to_event(entry)
        assert event.id == "intelligence_i1"
        assert event.priority == EventPriority.URGENT
        assert event.metadata.confidence == 87.5

    def test_reminder(self):
        reminder = Reminder(
            id="r1",
            title="Renew certificate",
            due_date=datetime(2025, 8, 25),
            priority=EventPriority.HIGH,
            status=ReminderStatus.PENDING,
        )
        event = ReminderEventSource.to_event(reminder)
        assert event.id == "reminder_r1"
        assert event.status == EventStatus.PENDING
        assert event.priority == EventPriority.HIGH
        assert event.context_summary == "Reminder"

    def test_self_review(self):
        period = SelfReviewPeriod(
            id="abc",
            title="Biweekly Self Review - 2025-08-19",
            start_date=datetime(2025, 8, 19, 9),
            end_date=datetime(2025, 9, 1, 9),
            status=ReviewStatus.COMPLETED,
            analysis_results=ReviewAnalysis(overall_progress="ok", detail_path="/reviews/abc.md"),
        )
        event = SelfReviewEventSource.to_event(period)
        assert event.id == "review_abc"
        assert event.priority == EventPriority.HIGH
        assert event.status == EventStatus.COMPLETED
        assert event.detail_path == "/reviews/abc.md"
        assert "2025-08-19 - 2025-09-01" in event.context_summary

    def test_meeting_portfolio_relevance(self):
        meeting = Meeting(
            id="m1",
            title="Roadmap sync",
            date_recorded=datetime(2025, 8, 12),
            participants=["ana", "li"],
            is_portfolio_relevant=True,
        )
        event = MeetingEventSource.to_event(meeting)
        assert event.id == "meeting_m1"
        assert event.priority == EventPriority.HIGH
        assert event.context_summary == "Meeting with ana, li"


class TestFetch:

    @pytest.mark.asyncio
    async def test_failing_source_yields_no_events(self):
        adapter = JournalEventSource(FakeJournal(error=RuntimeError("store down")))
        assert await adapter.fetch() == []

    @pytest.mark.asyncio
    async def test_failing_remote_source_yields_no_events(self):
        adapter = MeetingEventSource(FakeMeetings(error=ConnectionError("archive down")))
        assert await adapter.fetch() == []

    @pytest.mark.asyncio
    async def test_maintenance_projection_matches_task_ids(self):
        adapter = MaintenanceEventSource(weeks=2, clock=lambda: NOW)
        events = await adapter.fetch()
        assert [e.id for e in events] == [o.task_id for o in maintenance_occurrences(NOW, 2)]
        assert all(e.type == EventType.MAINTENANCE and e.status == EventStatus.PENDING for e in events)
