# servicehub/modules/bookings/schemas.py
"""Bookings module Pydantic schemas."""

from typing import Optional, List
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field

from servicehub.common.errors import ActionResponse


class BookingStatusAction(str, Enum):
    """Transitions a provider may request; `completed` is never set through the API."""
    CONFIRMED = "confirmed"
    DECLINED = "declined"


# ============================================================================
# REQUEST SCHEMAS
# ============================================================================

class BookingCreateRequest(BaseModel):
    """Request to book a provider. Date and time are normalized by the service."""
    service_provider_id: Optional[str] = None
    service_id: Optional[UUID] = None
    booking_date: str
    booking_time: str
    notes: Optional[str] = None
    duration_hours: Optional[Decimal] = Field(default=None, gt=0)
    total_price: Optional[Decimal] = Field(default=None, ge=0)


class BookingStatusUpdateRequest(BaseModel):
    status: BookingStatusAction


# ============================================================================
# RESPONSE SCHEMAS
# ============================================================================

class BookingResponse(BaseModel):
    id: UUID
    client_id: UUID
    service_provider_id: UUID
    service_id: Optional[UUID] = None
    booking_date: date
    booking_time: str  # HH:MM:SS
    status: str
    notes: Optional[str] = None
    duration_hours: Optional[float] = None
    total_price: Optional[float] = None
    created_at: datetime
    updated_at: datetime
    client_name: Optional[str] = None
    provider_name: Optional[str] = None
    service_name: Optional[str] = None

    class Config:
        from_attributes = True


class BookingListResponse(BaseModel):
    bookings: List[BookingResponse]
    total: int


class BookingActionResponse(ActionResponse):
    """Response for booking writes."""
    booking: Optional[BookingResponse] = None
