# servicehub/modules/messages/messages_service.py
"""Service layer for direct messages about a booking."""

import logging
from typing import Dict, Iterable, Optional
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from servicehub.common.errors import ErrorCode
from servicehub.common.realtime.hub import RealtimeHub, RowEvent
from servicehub.common.utils.global_messages import GlobalMessages
from servicehub.models.models import Booking, Message, NotificationType, Profile, Service, to_row
from servicehub.modules.bookings.bookings_service import get_booking_for_participant
from servicehub.modules.conversations.conversations_service import service_title
from servicehub.modules.notifications.notifications_service import new_message_payload
from servicehub.modules.notifications.notifier import Notifier, dispatch_notification
from servicehub.modules.roles.roles_service import resolve_role

from .schemas import MessageListResponse, MessageResponse, MessageSender, SendMessageResponse

logger = logging.getLogger(__name__)

MESSAGES_TABLE = Message.__tablename__
DEFAULT_SENDER_NAME = "Someone"


def _build_message_response(message: Message, sender: Optional[Profile]) -> MessageResponse:
    """Build MessageResponse from Message model."""
    return MessageResponse(
        id=message.id,
        booking_id=message.booking_id,
        sender_id=message.sender_id,
        recipient_id=message.recipient_id,
        content=message.content,
        is_read=message.is_read,
        created_at=message.created_at,
        sender=MessageSender.model_validate(sender) if sender else None
    )


def message_from_row(row: dict, sender: Optional[Profile] = None) -> MessageResponse:
    """Build MessageResponse from a realtime row payload."""
    data = dict(row)
    data["sender"] = MessageSender.model_validate(sender) if sender else None
    return MessageResponse.model_validate(data)


async def _profiles_by_id(session: AsyncSession, ids: Iterable[UUID]) -> Dict[UUID, Profile]:
    ids = set(ids)
    if not ids:
        return {}
    try:
        result = await session.execute(select(Profile).where(Profile.id.in_(ids)))
    except SQLAlchemyError as e:
        logger.warning(f"Could not fetch sender profiles: {e}")
        return {}
    return {profile.id: profile for profile in result.scalars().all()}


async def get_sender_profile(session: AsyncSession, sender_id: UUID) -> Optional[Profile]:
    profiles = await _profiles_by_id(session, [sender_id])
    return profiles.get(sender_id)


async def get_booking_messages(
    session: AsyncSession,
    booking_id: UUID,
    viewer_id: UUID
) -> Optional[MessageListResponse]:
    """All messages of a booking, oldest first, or None if the viewer is not a party to it."""
    booking = await get_booking_for_participant(session, booking_id, viewer_id)
    if booking is None:
        return None

    result = await session.execute(
        select(Message)
        .where(Message.booking_id == booking_id)
        .order_by(Message.created_at.asc(), Message.id.asc())
    )
    messages = result.scalars().all()
    senders = await _profiles_by_id(session, (m.sender_id for m in messages))

    return MessageListResponse(
        messages=[_build_message_response(m, senders.get(m.sender_id)) for m in messages],
        total=len(messages)
    )


async def send_message(
    session: AsyncSession,
    booking_id: UUID,
    sender_id: Optional[UUID],
    content: str,
    hub: Optional[RealtimeHub] = None
) -> SendMessageResponse:
    """
    Persist a message from one party of a booking to the other.

    The recipient is always derived from the booking, never taken from the caller.
    """
    if sender_id is None:
        return SendMessageResponse(
            success=False, message=GlobalMessages.AUTH_REQUIRED, error_code=ErrorCode.AUTH_REQUIRED
        )
    trimmed = (content or "").strip()
    if not trimmed:
        return SendMessageResponse(
            success=False, message=GlobalMessages.MESSAGE_EMPTY, error_code=ErrorCode.VALIDATION_ERROR
        )

    try:
        booking = await session.get(Booking, booking_id)
        resolution = await resolve_role(session, booking, sender_id) if booking else None
        if resolution is None or not resolution.resolved:
            logger.warning(f"Cannot resolve recipient for booking {booking_id} and sender {sender_id}")
            return SendMessageResponse(
                success=False,
                message=GlobalMessages.RECIPIENT_UNRESOLVED,
                error_code=ErrorCode.RECIPIENT_UNRESOLVED
            )

        message = Message(
            booking_id=booking_id,
            sender_id=sender_id,
            recipient_id=resolution.other_party_id,
            content=trimmed,
            is_read=False
        )
        session.add(message)
        await session.commit()
        await session.refresh(message)
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Error sending message on booking {booking_id}: {e}")
        return SendMessageResponse(
            success=False, message=GlobalMessages.TRANSPORT_ERROR, error_code=ErrorCode.TRANSPORT_ERROR
        )

    if hub is not None:
        hub.publish(MESSAGES_TABLE, RowEvent.INSERT, new=to_row(message))

    sender = await get_sender_profile(session, sender_id)
    return SendMessageResponse(
        success=True,
        message=GlobalMessages.MESSAGE_SENT,
        sent_message=_build_message_response(message, sender)
    )


async def notify_new_message(session_factory, message: MessageResponse, notifier: Notifier) -> bool:
    """Tell the recipient about a new message. Runs after the send has returned."""
    async with session_factory() as session:
        try:
            sender = await session.get(Profile, message.sender_id)
            booking = await session.get(Booking, message.booking_id)
            service = await session.get(Service, booking.service_id) if booking and booking.service_id else None
        except SQLAlchemyError as e:
            logger.warning(f"Could not load details for message {message.id} notification: {e}")
            sender, booking, service = None, None, None

    sender_name = (sender.display_name if sender else "") or DEFAULT_SENDER_NAME
    details = service_title(booking, service) if booking else "Service booking"
    payload = new_message_payload(sender_name, details, message.booking_id)
    return await dispatch_notification(notifier, message.recipient_id, NotificationType.NEW_MESSAGE, payload)


async def mark_messages_read(
    session: AsyncSession,
    booking_id: UUID,
    viewer_id: UUID,
    hub: Optional[RealtimeHub] = None
) -> int:
    """Mark unread messages of a booking addressed to the viewer as read. Returns the count."""
    result = await session.execute(
        select(Message).where(
            Message.booking_id == booking_id,
            Message.recipient_id == viewer_id,
            Message.is_read == False
        )
    )
    messages = result.scalars().all()
    if not messages:
        return 0

    for message in messages:
        message.is_read = True
    await session.commit()

    if hub is not None:
        for message in messages:
            hub.publish(MESSAGES_TABLE, RowEvent.UPDATE, new=to_row(message))
    return len(messages)


async def get_unread_count(session: AsyncSession, viewer_id: UUID) -> int:
    """Unread messages addressed to the viewer across all bookings."""
    result = await session.execute(
        select(func.count(Message.id)).where(
            Message.recipient_id == viewer_id,
            Message.is_read == False
        )
    )
    return result.scalar() or 0
