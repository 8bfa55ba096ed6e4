# servicehub/modules/conversations/schemas.py
"""Pydantic schemas for derived conversations."""

from typing import Optional, List
from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel


class ConversationBooking(BaseModel):
    """Snapshot of the booking a conversation is about."""
    service_details: str
    scheduled_date: date
    scheduled_time: str  # HH:MM:SS
    status: str


class OtherUser(BaseModel):
    id: UUID
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_photo_url: Optional[str] = None


class ConversationResponse(BaseModel):
    booking_id: UUID
    service_provider_id: UUID
    client_id: UUID
    last_message_date: datetime
    user_is_service_provider: bool
    booking: ConversationBooking
    other_user: OtherUser


class ConversationListResponse(BaseModel):
    conversations: List[ConversationResponse]
    total: int
