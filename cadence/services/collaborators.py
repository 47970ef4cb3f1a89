"""
Interfaces of the services Cadence reads from or delegates to.

Nothing here is owned by Cadence; default implementations live in
``cadence.db.repositories.records`` (SQL stores), ``remote_sources`` (HTTP
collaborators) and ``review_service.SummaryReviewAnalyzer``.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from cadence.models.review import ReviewAnalysis, SelfReviewPeriod
from cadence.models.sources import IntelligenceEntry, JournalEntry, Meeting, Reminder


class JournalSource(Protocol):
    async def list_journal_entries(
        self, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> List[JournalEntry]: ...

    async def get_journal_entry(self, entry_id: str) -> Optional[JournalEntry]: ...


class IntelligenceSource(Protocol):
    async def list_intelligence_entries(
        self, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> List[IntelligenceEntry]: ...

    async def get_intelligence_entry(self, entry_id: str) -> Optional[IntelligenceEntry]: ...


class ReminderSource(Protocol):
    async def list_reminders(
        self, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> List[Reminder]: ...

    async def get_reminder(self, reminder_id: str) -> Optional[Reminder]: ...


class MeetingSource(Protocol):
    async def list_meetings(self) -> List[Meeting]: ...


class IntelligenceGenerator(Protocol):
    """Long-running analysis generators used by maintenance runs.

    Each call either returns a (free-form) result or raises.
    """

    async def generate_ecosystem_insight(self) -> Any: ...

    async def generate_dreamstate_predictions(self) -> Any: ...

    async def generate_creative_intelligence(self) -> Any: ...


@dataclass
class ReviewData:
    """Everything gathered for one review period, by source."""
    period: SelfReviewPeriod
    journal: List[JournalEntry] = field(default_factory=list)
    intelligence: List[IntelligenceEntry] = field(default_factory=list)
    meetings: List[Meeting] = field(default_factory=list)
    unavailable: Dict[str, str] = field(default_factory=dict)  # source -> error


class ReviewAnalyzer(Protocol):
    async def analyze(self, period: SelfReviewPeriod, data: ReviewData) -> ReviewAnalysis: ...
