# Notifications Schemas

from typing import Optional, List
from pydantic import BaseModel
from datetime import datetime
from uuid import UUID


class NotificationPayload(BaseModel):
    """Content of a notification, independent of who receives it."""
    title: str
    message: str
    related_id: Optional[UUID] = None


class NotificationResponse(BaseModel):
    id: str
    title: str
    message: str
    type: Optional[str] = None
    is_read: bool
    related_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class NotificationsListResponse(BaseModel):
    notifications: List[NotificationResponse]
    unread_count: int


class MarkReadRequest(BaseModel):
    notification_ids: List[UUID]


class MarkReadResponse(BaseModel):
    success: bool
    marked_count: int
