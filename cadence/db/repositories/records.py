"""
SQL-backed collaborator sources: journal entries, intelligence entries and
reminders. Read-only; the tables are written by the services that own them.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import select

from cadence.db.models import IntelligenceEntryModel, JournalEntryModel, ReminderModel
from cadence.infrastructure.database import get_session
from cadence.models.calendar import RelatedEntities
from cadence.models.sources import IntelligenceEntry, JournalEntry, Reminder


def _between(stmt, column, start: Optional[datetime], end: Optional[datetime]):
    if start is not None:
        stmt = stmt.where(column >= start)
    if end is not None:
        stmt = stmt.where(column <= end)
    return stmt


def _orm_to_journal(row: JournalEntryModel) -> JournalEntry:
    return JournalEntry(
        id=row.id,
        title=row.title,
        content=row.content or "",
        category=row.category,
        project_id=row.project_id,
        project_name=row.project_name,
        tags=row.tags or [],
        impact=row.impact,
        created_at=row.created_at,
    )


def _orm_to_intelligence(row: IntelligenceEntryModel) -> IntelligenceEntry:
    return IntelligenceEntry(
        id=row.id,
        title=row.title,
        content=row.content or "",
        category=row.category,
        confidence=row.confidence,
        impact=row.impact or "medium",
        tags=row.tags or [],
        related_entities=RelatedEntities(**(row.related_entities or {})),
        is_private=row.is_private,
        created_at=row.created_at,
    )


def _orm_to_reminder(row: ReminderModel) -> Reminder:
    return Reminder(
        id=row.id,
        title=row.title,
        description=row.description,
        due_date=row.due_date,
        priority=row.priority or "medium",
        category=row.category,
        status=row.status or "pending",
        related_entry_id=row.related_entry_id,
    )


class SqlJournalSource:
    """Journal entries from the journal_entries table."""

    async def list_journal_entries(
        self, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> list[JournalEntry]:
        async with get_session() as session:
            stmt = _between(select(JournalEntryModel), JournalEntryModel.created_at, start, end)
            result = await session.execute(stmt.order_by(JournalEntryModel.created_at.desc()))
            return [_orm_to_journal(row) for row in result.scalars().all()]

    async def get_journal_entry(self, entry_id: str) -> Optional[JournalEntry]:
        async with get_session() as session:
            row = await session.get(JournalEntryModel, entry_id)
            return _orm_to_journal(row) if row is not None else None


class SqlIntelligenceSource:
    """Intelligence entries from the intelligence_entries table."""

    async def list_intelligence_entries(
        self, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> list[IntelligenceEntry]:
        async with get_session() as session:
            stmt = _between(
                select(IntelligenceEntryModel), IntelligenceEntryModel.created_at, start, end
            )
            result = await session.execute(stmt.order_by(IntelligenceEntryModel.created_at.desc()))
            return [_orm_to_intelligence(row) for row in result.scalars().all()]

    async def get_intelligence_entry(self, entry_id: str) -> Optional[IntelligenceEntry]:
        async with get_session() as session:
            row = await session.get(IntelligenceEntryModel, entry_id)
            return _orm_to_intelligence(row) if row is not None else None


class SqlReminderSource:
    """Reminders from the reminders table."""

    async def list_reminders(
        self, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> list[Reminder]:
        async with get_session() as session:
            stmt = _between(select(ReminderModel), ReminderModel.due_date, start, end)
            result = await session.execute(stmt.order_by(ReminderModel.due_date.asc()))
            return [_orm_to_reminder(row) for row in result.scalars().all()]

    async def get_reminder(self, reminder_id: str) -> Optional[Reminder]:
        async with get_session() as session:
            row = await session.get(ReminderModel, reminder_id)
            return _orm_to_reminder(row) if row is not None else None
