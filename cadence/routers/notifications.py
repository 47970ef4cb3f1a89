"""
Admin notification API endpoints.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from cadence.container import CadenceServices, get_services
from cadence.infrastructure.exceptions import NotFoundError
from cadence.models.notification import AdminNotification

router = APIRouter()


@router.get("", response_model=List[AdminNotification])
async def list_notifications(
    unread_only: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
    services: CadenceServices = Depends(get_services),
):
    """List notifications, newest first."""
    return await services.notifications.list_notifications(unread_only=unread_only, limit=limit)


@router.get("/unread", response_model=List[AdminNotification])
async def get_unread(
    limit: Optional[int] = Query(default=None, ge=1, le=200),
    services: CadenceServices = Depends(get_services),
):
    return await services.notifications.get_unread(limit)


@router.get("/count")
async def get_unread_count(services: CadenceServices = Depends(get_services)):
    """Get count of unread notifications."""
    count = await services.notifications.get_unread_count()
    return {"unread_count": count}


@router.get("/{notification_id}", response_model=AdminNotification)
async def get_notification(notification_id: str, services: CadenceServices = Depends(get_services)):
    notification = await services.notifications.get_notification(notification_id)
    if notification is None:
        raise NotFoundError("Notification", notification_id)
    return notification


@router.post("/read-all")
async def mark_all_read(services: CadenceServices = Depends(get_services)):
    """Mark all notifications as read."""
    count = await services.notifications.mark_all_read()
    return {"status": "success", "marked_count": count}


@router.post("/{notification_id}/read", response_model=AdminNotification)
async def mark_read(notification_id: str, services: CadenceServices = Depends(get_services)):
    """Mark a notification as read. Repeating the call is harmless."""
    notification = await services.notifications.mark_read(notification_id)
    if notification is None:
        raise NotFoundError("Notification", notification_id)
    return notification
