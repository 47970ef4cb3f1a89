"""
Admin notification models for Cadence.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from cadence.time_utils import utcnow


class NotificationType(str, Enum):
    INFO = "info"
    WARNING = "warning"
    SUCCESS = "success"
    ERROR = "error"


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class AdminNotification(BaseModel):
    """User-facing notification. Only ``is_read`` ever changes."""
    id: str
    title: str
    message: str
    type: NotificationType = NotificationType.INFO
    priority: NotificationPriority = NotificationPriority.MEDIUM
    is_read: bool = False
    action_url: Optional[str] = None
    action_label: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
