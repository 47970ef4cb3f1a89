"""
Repository for the scheduled_tasks table.

Status transitions are single conditional UPDATEs so that a task can only
leave ``active`` once, whichever process gets there first.
"""

from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import func, select, update

from cadence.db.models import ScheduledTaskModel
from cadence.db.repositories.base import BaseRepository
from cadence.infrastructure.database import get_session


class ScheduledTaskRepository(BaseRepository[ScheduledTaskModel]):

    def __init__(self):
        super().__init__(ScheduledTaskModel)

    async def list_due(self, now: datetime) -> Sequence[ScheduledTaskModel]:
        """Active tasks with next_run <= now, oldest first."""
        async with get_session() as session:
            stmt = (
                select(ScheduledTaskModel)
                .where(ScheduledTaskModel.status == "active")
                .where(ScheduledTaskModel.next_run <= now)
                .order_by(ScheduledTaskModel.next_run.asc(), ScheduledTaskModel.id.asc())
            )
            result = await session.execute(stmt)
            return result.scalars().all()

    async def transition(
        self,
        task_id: str,
        from_status: str,
        to_status: str,
        *,
        last_run: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> bool:
        """Move a task between statuses only if it is still in ``from_status``.

        Returns True when this call performed the transition.
        """
        values = {"status": to_status}
        if last_run is not None:
            values["last_run"] = last_run
        if now is not None:
            values["updated_at"] = now

        async with get_session() as session:
            stmt = (
                update(ScheduledTaskModel)
                .where(ScheduledTaskModel.id == task_id)
                .where(ScheduledTaskModel.status == from_status)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(stmt)
            return result.rowcount == 1

    async def mark_completed(self, task_id: str, now: datetime) -> bool:
        return await self.transition(task_id, "active", "completed", last_run=now, now=now)

    async def count_active_between(self, task_type: str, start: datetime, end: datetime) -> int:
        """Active tasks of a type with start <= next_run < end."""
        async with get_session() as session:
            stmt = (
                select(func.count())
                .select_from(ScheduledTaskModel)
                .where(ScheduledTaskModel.type == task_type)
                .where(ScheduledTaskModel.status == "active")
                .where(ScheduledTaskModel.next_run >= start)
                .where(ScheduledTaskModel.next_run < end)
            )
            result = await session.execute(stmt)
            return result.scalar_one()
