"""
Notification Emitter for Cadence.

Admin notifications record task outcomes for the dashboard. They are insert
only; the single mutable field is ``is_read``. Nothing is ever deleted.
"""

import uuid
from datetime import datetime
from typing import Callable, List, Optional

import structlog
from sqlalchemy import func as sa_func, select, update

from cadence.db.models import AdminNotificationModel
from cadence.infrastructure.database import get_session
from cadence.models.notification import AdminNotification, NotificationPriority, NotificationType
from cadence.time_utils import utcnow

logger = structlog.get_logger(__name__)

DEFAULT_UNREAD_LIMIT = 20


def _orm_to_notification(row: AdminNotificationModel) -> AdminNotification:
    return AdminNotification(
        id=row.id,
        title=row.title,
        message=row.message,
        type=row.type,
        priority=row.priority,
        is_read=row.is_read,
        action_url=row.action_url,
        action_label=row.action_label,
        created_at=row.created_at,
    )


class NotificationService:
    """Service for admin notifications."""

    def __init__(self, unread_limit: int = DEFAULT_UNREAD_LIMIT, clock: Callable[[], datetime] = utcnow):
        self.unread_limit = unread_limit
        self._clock = clock

    async def notify(
        self,
        title: str,
        message: str,
        type: NotificationType = NotificationType.INFO,
        priority: NotificationPriority = NotificationPriority.MEDIUM,
        action_url: Optional[str] = None,
        action_label: Optional[str] = None,
    ) -> AdminNotification:
        """Record a new notification."""
        notification = AdminNotification(
            id=str(uuid.uuid4()),
            title=title,
            message=message,
            type=type,
            priority=priority,
            is_read=False,
            action_url=action_url,
            action_label=action_label,
            created_at=self._clock(),
        )

        async with get_session() as session:
            session.add(AdminNotificationModel(
                id=notification.id,
                title=notification.title,
                message=notification.message,
                type=notification.type.value,
                priority=notification.priority.value,
                is_read=False,
                action_url=action_url,
                action_label=action_label,
                created_at=notification.created_at,
            ))

        logger.info(
            "notification_created",
            id=notification.id,
            type=notification.type.value,
            title=title,
        )
        return notification

    async def get_notification(self, notification_id: str) -> Optional[AdminNotification]:
        """Get a notification by ID."""
        async with get_session() as session:
            row = await session.get(AdminNotificationModel, notification_id)
            return _orm_to_notification(row) if row is not None else None

    async def list_notifications(self, unread_only: bool = False, limit: int = 50) -> List[AdminNotification]:
        """Newest first."""
        async with get_session() as session:
            query = select(AdminNotificationModel)
            if unread_only:
                query = query.where(AdminNotificationModel.is_read == False)  # noqa: E712
            query = query.order_by(AdminNotificationModel.created_at.desc()).limit(limit)

            result = await session.execute(query)
            return [_orm_to_notification(row) for row in result.scalars().all()]

    async def get_unread(self, limit: Optional[int] = None) -> List[AdminNotification]:
        """Unread notifications, newest first."""
        limit = limit if limit is not None else self.unread_limit
        if limit < 0:
            raise ValueError(f"limit must not be negative, got {limit}")
        return await self.list_notifications(unread_only=True, limit=limit)

    async def mark_read(self, notification_id: str) -> Optional[AdminNotification]:
        """Set is_read. Idempotent; returns None for an unknown id."""
        async with get_session() as session:
            await session.execute(
                update(AdminNotificationModel)
                .where(AdminNotificationModel.id == notification_id)
                .values(is_read=True)
                .execution_options(synchronize_session=False)
            )
            row = await session.get(AdminNotificationModel, notification_id)
            if row is None:
                return None
            await session.refresh(row)
            return _orm_to_notification(row)

    async def mark_all_read(self) -> int:
        """Mark every unread notification read. Returns how many changed."""
        async with get_session() as session:
            result = await session.execute(
                update(AdminNotificationModel)
                .where(AdminNotificationModel.is_read == False)  # noqa: E712
                .values(is_read=True)
                .execution_options(synchronize_session=False)
            )
            count = result.rowcount or 0

        logger.info("notifications_marked_read", count=count)
        return count

    async def get_unread_count(self) -> int:
        async with get_session() as session:
            result = await session.execute(
                select(sa_func.count()).select_from(AdminNotificationModel).where(
                    AdminNotificationModel.is_read == False  # noqa: E712
                )
            )
            return result.scalar_one()
