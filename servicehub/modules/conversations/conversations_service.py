# servicehub/modules/conversations/conversations_service.py
"""
Conversation list for a user.

There is no conversation table. A conversation is every message about one booking, and the
list is recomputed from scratch on each call: derive_conversations is the pure projection,
list_conversations loads its inputs.
"""

import logging
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from servicehub.common.utils.time_utils import format_booking_time
from servicehub.models.models import Booking, Message, Profile, Service, ServiceProvider
from servicehub.modules.roles.roles_service import resolve_role_from

from .schemas import ConversationBooking, ConversationListResponse, ConversationResponse, OtherUser

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_TITLE = "Service booking"
PLACEHOLDER_FIRST_NAME = "User"


def service_title(booking: Booking, service: Optional[Service]) -> str:
    """Service description, else the booking notes, else a generic title."""
    if service is not None and service.description:
        return service.description
    return booking.notes or DEFAULT_SERVICE_TITLE


def _other_user(user_id: UUID, profile: Optional[Profile]) -> OtherUser:
    if profile is None:
        return OtherUser(id=user_id, first_name=PLACEHOLDER_FIRST_NAME, last_name="", profile_photo_url=None)
    return OtherUser(
        id=profile.id,
        first_name=profile.first_name,
        last_name=profile.last_name,
        profile_photo_url=profile.profile_photo_url
    )


def _by_id(rows: Iterable) -> Dict[UUID, object]:
    return {row.id: row for row in rows}


def derive_conversations(
    viewer_id: UUID,
    messages: Iterable[Message],
    bookings: Iterable[Booking],
    providers: Iterable[ServiceProvider],
    profiles: Iterable[Profile],
    services: Iterable[Service]
) -> List[ConversationResponse]:
    """
    Group the viewer's messages by booking into one conversation per booking.

    Bookings that are missing, or whose provider cannot be resolved, are dropped. A missing
    profile for the other party is replaced by a placeholder. Sorted by the latest message,
    newest first.
    """
    last_message_dates = {}
    for message in messages:
        if viewer_id not in (message.sender_id, message.recipient_id):
            continue
        latest = last_message_dates.get(message.booking_id)
        if latest is None or message.created_at > latest:
            last_message_dates[message.booking_id] = message.created_at

    bookings_by_id = _by_id(bookings)
    providers_by_id = _by_id(providers)
    profiles_by_id = _by_id(profiles)
    services_by_id = _by_id(services)

    conversations = []
    for booking_id, last_message_date in last_message_dates.items():
        booking = bookings_by_id.get(booking_id)
        if booking is None:
            continue

        resolution = resolve_role_from(booking, providers_by_id.get(booking.service_provider_id), viewer_id)
        if not resolution.resolved:
            logger.warning(f"Skipping conversation for booking {booking_id}: {resolution.reason}")
            continue

        service = services_by_id.get(booking.service_id) if booking.service_id else None
        conversations.append(ConversationResponse(
            booking_id=booking.id,
            service_provider_id=booking.service_provider_id,
            client_id=booking.client_id,
            last_message_date=last_message_date,
            user_is_service_provider=resolution.is_provider,
            booking=ConversationBooking(
                service_details=service_title(booking, service),
                scheduled_date=booking.booking_date,
                scheduled_time=format_booking_time(booking.booking_time),
                status=booking.status.value
            ),
            other_user=_other_user(
                resolution.other_party_id, profiles_by_id.get(resolution.other_party_id)
            )
        ))

    conversations.sort(key=lambda c: c.last_message_date, reverse=True)
    return conversations


async def _load_optional(session: AsyncSession, model, ids) -> list:
    """Enrichment rows; a failed fetch degrades to defaults instead of failing the list."""
    ids = {i for i in ids if i is not None}
    if not ids:
        return []
    try:
        result = await session.execute(select(model).where(model.id.in_(ids)))
        return list(result.scalars().all())
    except SQLAlchemyError as e:
        logger.warning(f"Could not load {model.__tablename__} for conversations: {e}")
        return []


async def list_conversations(session: AsyncSession, viewer_id: UUID) -> ConversationListResponse:
    """Load the viewer's messages and everything needed to project them into conversations."""
    message_result = await session.execute(
        select(Message).where(
            or_(Message.sender_id == viewer_id, Message.recipient_id == viewer_id)
        )
    )
    messages = list(message_result.scalars().all())

    booking_ids = {m.booking_id for m in messages}
    bookings = []
    if booking_ids:
        booking_result = await session.execute(select(Booking).where(Booking.id.in_(booking_ids)))
        bookings = list(booking_result.scalars().all())

    provider_ids = {b.service_provider_id for b in bookings}
    providers = []
    if provider_ids:
        provider_result = await session.execute(
            select(ServiceProvider).where(ServiceProvider.id.in_(provider_ids))
        )
        providers = list(provider_result.scalars().all())

    party_ids = {b.client_id for b in bookings} | {p.user_id for p in providers}
    profiles = await _load_optional(session, Profile, party_ids)
    services = await _load_optional(session, Service, (b.service_id for b in bookings))

    conversations = derive_conversations(viewer_id, messages, bookings, providers, profiles, services)
    return ConversationListResponse(conversations=conversations, total=len(conversations))
