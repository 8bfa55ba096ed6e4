# servicehub/modules/messages/schemas.py
"""Pydantic schemas for messages module."""

from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel
from uuid import UUID

from servicehub.common.errors import ActionResponse


class MessageSender(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_photo_url: Optional[str] = None

    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    id: UUID
    booking_id: UUID
    sender_id: UUID
    recipient_id: UUID
    content: str
    is_read: bool
    created_at: datetime
    sender: Optional[MessageSender] = None

    class Config:
        from_attributes = True


class MessageListResponse(BaseModel):
    messages: List[MessageResponse]
    total: int


class SendMessageRequest(BaseModel):
    content: str


class SendMessageResponse(ActionResponse):
    sent_message: Optional[MessageResponse] = None


class MarkReadResponse(BaseModel):
    success: bool
    marked_count: int


class UnreadCountResponse(BaseModel):
    unread_count: int
