"""
Calendar data models for Cadence.

CalendarEvent is a read-only projection: it is rebuilt from source records on
every aggregation request and never persisted.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict
from pydantic import BaseModel, ConfigDict, Field, field_validator

from cadence.time_utils import to_naive_utc


class EventType(str, Enum):
    """Kind of record an event was projected from."""
    JOURNAL_ENTRY = "journal_entry"
    INTELLIGENCE_ENTRY = "intelligence_entry"
    REMINDER = "reminder"
    SELF_REVIEW = "self_review"
    MEETING = "meeting"
    MAINTENANCE = "maintenance"


class EventPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class EventStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    IN_PROGRESS = "in_progress"
    CANCELLED = "cancelled"


class ImpactLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RelatedEntities(BaseModel):
    """Entities an intelligence entry refers to."""
    developers: List[str] = Field(default_factory=list)
    repositories: List[str] = Field(default_factory=list)
    modules: List[str] = Field(default_factory=list)
    projects: List[str] = Field(default_factory=list)


class EventMetadata(BaseModel):
    """Structured bag attached to every event."""
    model_config = ConfigDict(frozen=True)

    entry_id: Optional[str] = None
    project_id: Optional[str] = None
    project_name: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    impact: Optional[ImpactLevel] = None
    confidence: Optional[float] = None
    related_entities: Optional[RelatedEntities] = None


class CalendarEvent(BaseModel):
    """Canonical calendar event merged from every source."""
    model_config = ConfigDict(frozen=True)

    id: str  # "<source prefix>_<source id>", unique across sources
    title: str
    date: datetime
    type: EventType
    category: Optional[str] = None
    priority: Optional[EventPriority] = None
    status: Optional[EventStatus] = None
    metadata: EventMetadata = Field(default_factory=EventMetadata)
    context_summary: str = ""
    detail_path: Optional[str] = None

    @field_validator("date")
    @classmethod
    def _normalise_date(cls, value: datetime) -> datetime:
        return to_naive_utc(value)


class DateRange(BaseModel):
    """Inclusive date range."""
    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def _normalise(cls, value: datetime) -> datetime:
        return to_naive_utc(value)


class CalendarFilters(BaseModel):
    """Composite filter applied to the merged timeline.

    Empty or missing collections mean "no constraint". ``show_completed=False``
    hides completed events; ``None`` and ``True`` show them.
    """
    types: Optional[List[EventType]] = None
    categories: Optional[List[str]] = None
    priorities: Optional[List[EventPriority]] = None
    project_ids: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    date_range: Optional[DateRange] = None
    show_completed: Optional[bool] = None

    def wants_type(self, event_type: EventType) -> bool:
        """False only when a non-empty type set excludes event_type."""
        return not self.types or event_type in self.types

    def explicitly_requests(self, event_type: EventType) -> bool:
        return bool(self.types) and event_type in self.types


class CalendarStats(BaseModel):
    """Aggregate counts for the calendar header."""
    total_events: int = 0
    events_by_type: Dict[str, int] = Field(default_factory=dict)
    events_by_month: Dict[str, int] = Field(default_factory=dict)
    journal_entries_this_month: int = 0
    intelligence_entries_this_month: int = 0
    upcoming_reminders: int = 0
    upcoming_maintenance: int = 0
    completed_self_reviews: int = 0
    pending_self_reviews: int = 0
