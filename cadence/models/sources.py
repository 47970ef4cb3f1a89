"""
Record shapes returned by the external data sources the calendar reads.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator

from cadence.models.calendar import EventPriority, EventType, ImpactLevel, RelatedEntities
from cadence.models.review import SelfReviewPeriod
from cadence.time_utils import to_naive_utc


class ReminderStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class JournalEntry(BaseModel):
    id: str
    title: str
    content: str = ""
    category: Optional[str] = None
    project_id: Optional[str] = None
    project_name: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    impact: Optional[int] = None  # 1-10
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def _normalise(cls, value: datetime) -> datetime:
        return to_naive_utc(value)


class IntelligenceEntry(BaseModel):
    id: str
    title: str
    content: str = ""
    category: Optional[str] = None
    confidence: Optional[float] = None  # 0-100
    impact: ImpactLevel = ImpactLevel.MEDIUM
    tags: List[str] = Field(default_factory=list)
    related_entities: RelatedEntities = Field(default_factory=RelatedEntities)
    is_private: bool = False
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def _normalise(cls, value: datetime) -> datetime:
        return to_naive_utc(value)


class Reminder(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    due_date: datetime
    priority: EventPriority = EventPriority.MEDIUM
    category: Optional[str] = None
    status: ReminderStatus = ReminderStatus.PENDING
    related_entry_id: Optional[str] = None

    @field_validator("due_date")
    @classmethod
    def _normalise(cls, value: datetime) -> datetime:
        return to_naive_utc(value)


class Meeting(BaseModel):
    id: str
    title: str
    date_recorded: datetime
    category: Optional[str] = None
    participants: List[str] = Field(default_factory=list)
    is_portfolio_relevant: bool = False

    @field_validator("date_recorded")
    @classmethod
    def _normalise(cls, value: datetime) -> datetime:
        return to_naive_utc(value)


class EventContext(BaseModel):
    """The source record behind one calendar event, for the detail view.

    At most one record field is set, matching ``type``. Types without a
    backing record (meetings, maintenance windows) carry none.
    """
    event_id: str
    type: EventType
    journal_entry: Optional[JournalEntry] = None
    intelligence_entry: Optional[IntelligenceEntry] = None
    reminder: Optional[Reminder] = None
    review: Optional[SelfReviewPeriod] = None
    generated_at: datetime
