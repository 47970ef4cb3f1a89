"""
SQLAlchemy ORM models for Cadence.

Scheduler-owned tables plus the collaborator tables the default SQL sources
read from. Timestamps are naive UTC.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from cadence.infrastructure.database import Base
from cadence.time_utils import utcnow

# JSONB on PostgreSQL, plain JSON elsewhere (sqlite in tests)
JSONType = JSON(none_as_null=True).with_variant(JSONB(none_as_null=True), "postgresql")


# ---------------------------------------------------------------------------
# Scheduled Tasks
# ---------------------------------------------------------------------------

class ScheduledTaskModel(Base):
    __tablename__ = "scheduled_tasks"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    schedule: Mapped[str] = mapped_column(String(50), nullable=False)
    next_run: Mapped[datetime] = mapped_column(DateTime(), nullable=False)
    last_run: Mapped[Optional[datetime]] = mapped_column(DateTime())
    status: Mapped[str] = mapped_column(String(20), default="active", nullable=False)
    metadata_: Mapped[dict] = mapped_column("metadata", JSONType, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_scheduled_tasks_due", "status", "next_run"),
    )


# ---------------------------------------------------------------------------
# Admin Notifications
# ---------------------------------------------------------------------------

class AdminNotificationModel(Base):
    __tablename__ = "admin_notifications"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(20), default="info")
    priority: Mapped[str] = mapped_column(String(20), default="medium")
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    action_url: Mapped[Optional[str]] = mapped_column(Text)
    action_label: Mapped[Optional[str]] = mapped_column(String(100))
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=utcnow)

    __table_args__ = (
        Index("idx_admin_notifications_created", "created_at"),
    )


# ---------------------------------------------------------------------------
# Self-Review Periods
# ---------------------------------------------------------------------------

class SelfReviewPeriodModel(Base):
    __tablename__ = "self_review_periods"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime(), nullable=False, index=True)
    end_date: Mapped[datetime] = mapped_column(DateTime(), nullable=False)
    type: Mapped[str] = mapped_column(String(20), default="biweekly")
    status: Mapped[str] = mapped_column(String(20), default="pending", index=True)
    scope: Mapped[dict] = mapped_column(JSONType, default=dict)
    analysis_results: Mapped[Optional[dict]] = mapped_column(JSONType)

    created_at: Mapped[datetime] = mapped_column(DateTime(), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(), default=utcnow, onupdate=utcnow)


# ---------------------------------------------------------------------------
# Collaborator tables (read-only from Cadence)
# ---------------------------------------------------------------------------

class JournalEntryModel(Base):
    __tablename__ = "journal_entries"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, default="")
    category: Mapped[Optional[str]] = mapped_column(String(50))
    project_id: Mapped[Optional[str]] = mapped_column(String(64))
    project_name: Mapped[Optional[str]] = mapped_column(String(200))
    tags: Mapped[Optional[list]] = mapped_column(JSONType, default=list)
    impact: Mapped[Optional[int]] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime(), nullable=False, index=True)


class IntelligenceEntryModel(Base):
    __tablename__ = "intelligence_entries"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, default="")
    category: Mapped[Optional[str]] = mapped_column(String(50))
    confidence: Mapped[Optional[float]] = mapped_column(Float)
    impact: Mapped[str] = mapped_column(String(20), default="medium")
    tags: Mapped[Optional[list]] = mapped_column(JSONType, default=list)
    related_entities: Mapped[Optional[dict]] = mapped_column(JSONType)
    is_private: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(), nullable=False, index=True)


class ReminderModel(Base):
    __tablename__ = "reminders"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    due_date: Mapped[datetime] = mapped_column(DateTime(), nullable=False, index=True)
    priority: Mapped[str] = mapped_column(String(20), default="medium")
    category: Mapped[Optional[str]] = mapped_column(String(50))
    status: Mapped[str] = mapped_column(String(20), default="pending", index=True)
    related_entry_id: Mapped[Optional[str]] = mapped_column(String(64))
