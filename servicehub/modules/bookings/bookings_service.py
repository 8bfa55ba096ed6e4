# servicehub/modules/bookings/bookings_service.py
"""Bookings service: the booking record and its status transitions."""

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, update, delete, or_, desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from servicehub.common.errors import ErrorCode
from servicehub.common.realtime.hub import RealtimeHub, RowEvent
from servicehub.common.utils.global_messages import GlobalMessages
from servicehub.common.utils.time_utils import parse_booking_date, parse_booking_time, format_booking_time
from servicehub.models.models import (
    Booking, BookingStatus, NotificationType, Profile, Service, ServiceProvider, to_row
)
from servicehub.modules.notifications.notifications_service import (
    booking_request_payload, booking_confirmed_payload, booking_declined_payload
)
from servicehub.modules.notifications.notifier import Notifier, dispatch_notification
from servicehub.modules.roles.roles_service import get_provider, get_provider_for_user, resolve_role

from .schemas import BookingActionResponse, BookingCreateRequest, BookingListResponse, BookingResponse

logger = logging.getLogger(__name__)

BOOKINGS_TABLE = Booking.__tablename__

DEFAULT_CLIENT_NAME = "Unknown Client"
DEFAULT_PROVIDER_NAME = "Service Provider"
DEFAULT_SERVICE_NAME = "Service"
DEFAULT_REQUESTER_NAME = "A client"


def _build_booking_response(
    booking: Booking,
    client_name: Optional[str] = None,
    provider_name: Optional[str] = None,
    service_name: Optional[str] = None
) -> BookingResponse:
    return BookingResponse(
        id=booking.id,
        client_id=booking.client_id,
        service_provider_id=booking.service_provider_id,
        service_id=booking.service_id,
        booking_date=booking.booking_date,
        booking_time=format_booking_time(booking.booking_time),
        status=booking.status.value,
        notes=booking.notes,
        duration_hours=float(booking.duration_hours) if booking.duration_hours is not None else None,
        total_price=float(booking.total_price) if booking.total_price is not None else None,
        created_at=booking.created_at,
        updated_at=booking.updated_at,
        client_name=client_name,
        provider_name=provider_name,
        service_name=service_name
    )


def _failure(message: str, error_code: ErrorCode) -> BookingActionResponse:
    return BookingActionResponse(success=False, message=message, error_code=error_code)


# ============================================================================
# NAME LOOKUPS (best effort)
# ============================================================================

async def _profile_name(session: AsyncSession, user_id: UUID) -> Optional[str]:
    try:
        profile = await session.get(Profile, user_id)
    except SQLAlchemyError as e:
        logger.warning(f"Could not fetch profile {user_id}: {e}")
        return None
    if profile is None:
        return None
    return profile.display_name or None


async def provider_display_name(session: AsyncSession, provider: ServiceProvider) -> str:
    """Business name, else the owner's name, else a generic label."""
    if provider.business_name:
        return provider.business_name
    return await _profile_name(session, provider.user_id) or DEFAULT_PROVIDER_NAME


async def _names_by_id(session: AsyncSession, model, ids: Iterable[UUID], attribute) -> Dict[UUID, str]:
    ids = {i for i in ids if i is not None}
    if not ids:
        return {}
    try:
        result = await session.execute(select(model).where(model.id.in_(ids)))
    except SQLAlchemyError as e:
        logger.warning(f"Could not fetch {model.__tablename__} for booking details: {e}")
        return {}
    names = {}
    for row in result.scalars().all():
        name = attribute(row)
        if name:
            names[row.id] = name
    return names


# ============================================================================
# LEDGER
# ============================================================================

async def create_booking(
    session: AsyncSession,
    client_id: Optional[UUID],
    request: BookingCreateRequest,
    hub: Optional[RealtimeHub] = None
) -> BookingActionResponse:
    """
    Create a pending booking for the calling client.

    Validates the provider, normalizes date and time and persists the row. Notifying the
    provider is left to the caller (see notify_booking_request).
    """
    if client_id is None:
        return _failure(GlobalMessages.AUTH_REQUIRED, ErrorCode.AUTH_REQUIRED)

    raw_provider_id = (request.service_provider_id or "").strip()
    if not raw_provider_id:
        return _failure(GlobalMessages.PROVIDER_REQUIRED, ErrorCode.VALIDATION_ERROR)
    try:
        provider_id = UUID(raw_provider_id)
    except ValueError:
        return _failure(GlobalMessages.PROVIDER_NOT_FOUND, ErrorCode.VALIDATION_ERROR)

    booking_date = parse_booking_date(request.booking_date)
    if booking_date is None:
        return _failure(GlobalMessages.INVALID_BOOKING_DATE, ErrorCode.VALIDATION_ERROR)

    parsed_time = parse_booking_time(request.booking_time)
    if not parsed_time.ok:
        logger.info(f"Rejected booking time {request.booking_time!r}: {parsed_time.error}")
        return _failure(GlobalMessages.INVALID_BOOKING_TIME, ErrorCode.VALIDATION_ERROR)

    try:
        provider = await get_provider(session, provider_id)
        if provider is None:
            return _failure(GlobalMessages.PROVIDER_NOT_FOUND, ErrorCode.VALIDATION_ERROR)

        if request.service_id is not None:
            service_result = await session.execute(
                select(Service).where(
                    Service.id == request.service_id,
                    Service.service_provider_id == provider.id
                )
            )
            if service_result.scalar_one_or_none() is None:
                return _failure(GlobalMessages.SERVICE_NOT_FOUND, ErrorCode.VALIDATION_ERROR)

        booking = Booking(
            client_id=client_id,
            service_provider_id=provider.id,
            service_id=request.service_id,
            booking_date=booking_date,
            booking_time=parsed_time.value,
            status=BookingStatus.PENDING,
            notes=request.notes,
            duration_hours=request.duration_hours,
            total_price=request.total_price
        )
        session.add(booking)
        await session.commit()
        await session.refresh(booking)
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Error creating booking for client {client_id}: {e}")
        return _failure(GlobalMessages.TRANSPORT_ERROR, ErrorCode.TRANSPORT_ERROR)

    logger.info(f"Booking {booking.id} created by client {client_id} for provider {provider.id}")
    if hub is not None:
        hub.publish(BOOKINGS_TABLE, RowEvent.INSERT, new=to_row(booking))

    return BookingActionResponse(
        success=True,
        message=GlobalMessages.BOOKING_CREATED,
        booking=_build_booking_response(booking)
    )


async def notify_booking_request(session: AsyncSession, booking: BookingResponse, notifier: Notifier) -> bool:
    """Send the provider's owning user one booking_request notification for a new booking."""
    try:
        provider = await get_provider(session, booking.service_provider_id)
    except SQLAlchemyError as e:
        logger.error(f"Could not load provider for booking {booking.id}: {e}")
        return False
    if provider is None:
        logger.error(f"Service provider {booking.service_provider_id} not found for booking {booking.id}")
        return False

    client_name = await _profile_name(session, booking.client_id) or DEFAULT_REQUESTER_NAME
    payload = booking_request_payload(client_name, booking.id)
    return await dispatch_notification(notifier, provider.user_id, NotificationType.BOOKING_REQUEST, payload)


async def get_owned_booking(
    session: AsyncSession,
    booking_id: UUID,
    caller_id: UUID
) -> Optional[Tuple[Booking, ServiceProvider]]:
    """The booking and the caller's provider row, if the caller provides this booking."""
    provider = await get_provider_for_user(session, caller_id)
    if provider is None:
        return None
    result = await session.execute(
        select(Booking).where(
            Booking.id == booking_id,
            Booking.service_provider_id == provider.id
        )
    )
    booking = result.scalar_one_or_none()
    return (booking, provider) if booking is not None else None


async def set_booking_status(
    session: AsyncSession,
    booking_id: UUID,
    caller_id: UUID,
    status: BookingStatus,
    notifier: Notifier,
    hub: Optional[RealtimeHub] = None
) -> bool:
    """
    Confirm or decline a pending booking on behalf of its provider.

    `confirmed` updates the row in place, `declined` deletes it. Both only apply while the
    row is still pending, so of two racing calls exactly one succeeds. The client receives
    one booking_update notification for the transition that won.
    """
    if status not in (BookingStatus.CONFIRMED, BookingStatus.DECLINED):
        return False

    try:
        owned = await get_owned_booking(session, booking_id, caller_id)
        if owned is None:
            logger.warning(f"User {caller_id} tried to update booking {booking_id} they do not provide")
            return False
        booking, provider = owned
        if booking.status != BookingStatus.PENDING:
            return False

        snapshot = to_row(booking)
        client_id = booking.client_id
        booking_date = booking.booking_date
        booking_time = booking.booking_time

        guard = (
            Booking.id == booking_id,
            Booking.service_provider_id == provider.id,
            Booking.status == BookingStatus.PENDING,
        )
        if status == BookingStatus.CONFIRMED:
            stmt = (
                update(Booking)
                .where(*guard)
                .values(status=BookingStatus.CONFIRMED, updated_at=datetime.now(timezone.utc))
                .execution_options(synchronize_session=False)
            )
        else:
            stmt = delete(Booking).where(*guard).execution_options(synchronize_session=False)

        outcome = await session.execute(stmt)
        if outcome.rowcount != 1:
            # Another transition got there first
            await session.rollback()
            logger.info(f"Booking {booking_id} was no longer pending; {status.value} not applied")
            return False
        await session.commit()

        if status == BookingStatus.CONFIRMED:
            await session.refresh(booking)
            new_row = to_row(booking)
        else:
            session.expunge(booking)
            new_row = None
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Error setting booking {booking_id} to {status.value}: {e}")
        return False

    logger.info(f"Booking {booking_id} {status.value} by provider {provider.id}")
    if hub is not None:
        if new_row is not None:
            hub.publish(BOOKINGS_TABLE, RowEvent.UPDATE, new=new_row, old=snapshot)
        else:
            hub.publish(BOOKINGS_TABLE, RowEvent.DELETE, old=snapshot)

    provider_name = await provider_display_name(session, provider)
    if status == BookingStatus.CONFIRMED:
        payload = booking_confirmed_payload(provider_name, booking_date, booking_time, booking_id)
    else:
        payload = booking_declined_payload(provider_name, booking_date, booking_time, booking_id)
    await dispatch_notification(notifier, client_id, NotificationType.BOOKING_UPDATE, payload)
    return True


# ============================================================================
# QUERIES
# ============================================================================

async def list_bookings(session: AsyncSession, viewer_id: UUID) -> BookingListResponse:
    """Bookings where the viewer is the client or owns the provider, newest first, with names."""
    provider = await get_provider_for_user(session, viewer_id)

    query = select(Booking)
    if provider is not None:
        query = query.where(or_(Booking.client_id == viewer_id, Booking.service_provider_id == provider.id))
    else:
        query = query.where(Booking.client_id == viewer_id)
    result = await session.execute(query.order_by(desc(Booking.created_at)))
    bookings = result.scalars().all()

    client_names = await _names_by_id(
        session, Profile, (b.client_id for b in bookings), lambda p: p.display_name
    )
    provider_names = await _names_by_id(
        session, ServiceProvider, (b.service_provider_id for b in bookings), lambda sp: sp.business_name
    )
    service_names = await _names_by_id(
        session, Service, (b.service_id for b in bookings), lambda s: s.business_name
    )

    booking_responses = [
        _build_booking_response(
            booking,
            client_name=client_names.get(booking.client_id, DEFAULT_CLIENT_NAME),
            provider_name=provider_names.get(booking.service_provider_id, DEFAULT_PROVIDER_NAME),
            service_name=service_names.get(booking.service_id, DEFAULT_SERVICE_NAME)
        )
        for booking in bookings
    ]
    return BookingListResponse(bookings=booking_responses, total=len(booking_responses))


async def get_booking_for_participant(
    session: AsyncSession,
    booking_id: UUID,
    viewer_id: UUID
) -> Optional[Booking]:
    """The booking if the viewer is one of its two parties, else None."""
    result = await session.execute(select(Booking).where(Booking.id == booking_id))
    booking = result.scalar_one_or_none()
    if booking is None:
        return None
    resolution = await resolve_role(session, booking, viewer_id)
    return booking if resolution.resolved else None


async def get_booking(session: AsyncSession, booking_id: UUID, viewer_id: UUID) -> Optional[BookingResponse]:
    booking = await get_booking_for_participant(session, booking_id, viewer_id)
    if booking is None:
        return None

    client_name = await _profile_name(session, booking.client_id) or DEFAULT_CLIENT_NAME
    provider = await get_provider(session, booking.service_provider_id)
    provider_name = (provider.business_name if provider else None) or DEFAULT_PROVIDER_NAME
    service_name = DEFAULT_SERVICE_NAME
    if booking.service_id is not None:
        service = await session.get(Service, booking.service_id)
        if service is not None and service.business_name:
            service_name = service.business_name

    return _build_booking_response(booking, client_name, provider_name, service_name)
