# servicehub/modules/bookings/bookings_controller.py
"""Bookings controller with API routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from servicehub.common.database.database import get_db_session
from servicehub.common.errors import ActionResponse, raise_for_failure
from servicehub.common.realtime.hub import RealtimeHub, get_realtime_hub
from servicehub.common.utils.global_messages import GlobalMessages
from servicehub.auth.dependencies import get_current_user
from servicehub.models.models import BookingStatus, Profile
from servicehub.modules.notifications.notifier import Notifier, get_notifier

from . import bookings_service as service
from .schemas import (
    BookingActionResponse, BookingCreateRequest, BookingListResponse,
    BookingResponse, BookingStatusAction, BookingStatusUpdateRequest
)

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("", response_model=BookingActionResponse, status_code=201)
async def create_booking(
    request: BookingCreateRequest,
    db: AsyncSession = Depends(get_db_session),
    hub: RealtimeHub = Depends(get_realtime_hub),
    notifier: Notifier = Depends(get_notifier),
    current_user: Profile = Depends(get_current_user)
):
    """Book a provider, then notify the provider of the request."""
    result = await service.create_booking(db, current_user.id, request, hub=hub)
    raise_for_failure(result)
    await service.notify_booking_request(db, result.booking, notifier)
    return result


@router.get("", response_model=BookingListResponse)
async def get_bookings(
    db: AsyncSession = Depends(get_db_session),
    current_user: Profile = Depends(get_current_user)
):
    """Get bookings the user made or received."""
    return await service.list_bookings(db, current_user.id)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: UUID,
    db: AsyncSession = Depends(get_db_session),
    current_user: Profile = Depends(get_current_user)
):
    """Get a single booking the user takes part in."""
    booking = await service.get_booking(db, booking_id, current_user.id)
    if not booking:
        raise HTTPException(status_code=404, detail=GlobalMessages.BOOKING_NOT_FOUND)
    return booking


@router.put("/{booking_id}/status", response_model=ActionResponse)
async def update_booking_status(
    booking_id: UUID,
    request: BookingStatusUpdateRequest,
    db: AsyncSession = Depends(get_db_session),
    hub: RealtimeHub = Depends(get_realtime_hub),
    notifier: Notifier = Depends(get_notifier),
    current_user: Profile = Depends(get_current_user)
):
    """Accept or decline a pending booking (provider only)."""
    if await service.get_owned_booking(db, booking_id, current_user.id) is None:
        raise HTTPException(status_code=404, detail=GlobalMessages.BOOKING_NOT_FOUND)

    updated = await service.set_booking_status(
        db, booking_id, current_user.id, BookingStatus(request.status.value), notifier, hub=hub
    )
    if not updated:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=GlobalMessages.BOOKING_STATUS_UNCHANGED)

    message = (
        GlobalMessages.BOOKING_CONFIRMED
        if request.status == BookingStatusAction.CONFIRMED
        else GlobalMessages.BOOKING_DECLINED
    )
    return ActionResponse(success=True, message=message)
