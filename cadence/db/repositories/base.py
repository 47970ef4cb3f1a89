"""
Base repository with common read/write operations.
"""

from typing import Any, Generic, Optional, Sequence, Type, TypeVar

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError

from cadence.infrastructure.database import Base, get_session

T = TypeVar("T", bound=Base)


class BaseRepository(Generic[T]):
    """Generic async repository for SQLAlchemy models.

    Cadence never deletes rows, so there is no delete here.
    """

    def __init__(self, model: Type[T]):
        self.model = model

    def _apply_filters(self, stmt, filters: dict[str, Any] | None):
        if filters:
            for key, value in filters.items():
                if value is not None and hasattr(self.model, key):
                    stmt = stmt.where(getattr(self.model, key) == value)
        return stmt

    async def get_by_id(self, id: Any) -> Optional[T]:
        """Get a single record by primary key."""
        async with get_session() as session:
            return await session.get(self.model, id)

    async def list(
        self,
        *,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> Sequence[T]:
        """List records with optional filters, ordering, and pagination.

        ``order_by`` takes a column name, prefixed with ``-`` for descending.
        """
        async with get_session() as session:
            stmt = self._apply_filters(select(self.model), filters)

            if order_by and hasattr(self.model, order_by.lstrip("-")):
                col = getattr(self.model, order_by.lstrip("-"))
                stmt = stmt.order_by(col.desc() if order_by.startswith("-") else col)

            if offset:
                stmt = stmt.offset(offset)
            if limit:
                stmt = stmt.limit(limit)

            result = await session.execute(stmt)
            return result.scalars().all()

    async def count(self, filters: dict[str, Any] | None = None) -> int:
        """Count records matching filters."""
        async with get_session() as session:
            stmt = self._apply_filters(select(func.count()).select_from(self.model), filters)
            result = await session.execute(stmt)
            return result.scalar_one()

    async def insert_if_absent(self, id: Any, **kwargs: Any) -> bool:
        """Insert a record unless its primary key already exists.

        Returns True when a row was inserted. A concurrent insert of the same
        key loses on the unique constraint and also returns False.
        """
        try:
            async with get_session() as session:
                if await session.get(self.model, id) is not None:
                    return False
                pk_name = self.model.__table__.primary_key.columns.keys()[0]
                kwargs[pk_name] = id
                session.add(self.model(**kwargs))
            return True
        except IntegrityError:
            return False
