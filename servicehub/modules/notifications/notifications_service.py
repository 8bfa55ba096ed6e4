# Notifications Service

from datetime import date, time
from typing import List, Optional
from uuid import UUID
from sqlalchemy import select, func, desc
from sqlalchemy.ext.asyncio import AsyncSession

from servicehub.common.realtime.hub import RealtimeHub, RowEvent
from servicehub.common.utils.time_utils import format_booking_date, format_display_time
from servicehub.models.models import Notification, NotificationType, Profile, to_row

from .schemas import NotificationPayload

NOTIFICATIONS_TABLE = Notification.__tablename__


async def get_user_notifications(
    db: AsyncSession,
    user: Profile,
    limit: int = 20,
    unread_only: bool = False
) -> tuple[List[Notification], int]:
    """Get notifications for a user with unread count."""

    # Base query
    query = select(Notification).where(Notification.user_id == user.id)

    if unread_only:
        query = query.where(Notification.is_read == False)

    query = query.order_by(desc(Notification.created_at)).limit(limit)

    result = await db.execute(query)
    notifications = result.scalars().all()

    # Get unread count
    count_query = select(func.count(Notification.id)).where(
        Notification.user_id == user.id,
        Notification.is_read == False
    )
    count_result = await db.execute(count_query)
    unread_count = count_result.scalar() or 0

    return list(notifications), unread_count


async def _mark_read(db: AsyncSession, query, hub: Optional[RealtimeHub]) -> int:
    result = await db.execute(query)
    notifications = result.scalars().all()
    for notification in notifications:
        notification.is_read = True
    await db.commit()

    if hub is not None:
        for notification in notifications:
            hub.publish(NOTIFICATIONS_TABLE, RowEvent.UPDATE, new=to_row(notification))
    return len(notifications)


async def mark_notifications_read(
    db: AsyncSession,
    user: Profile,
    notification_ids: List[UUID],
    hub: Optional[RealtimeHub] = None
) -> int:
    """Mark notifications as read. Returns count of updated notifications."""
    if not notification_ids:
        return 0
    query = select(Notification).where(
        Notification.id.in_(notification_ids),
        Notification.user_id == user.id,
        Notification.is_read == False
    )
    return await _mark_read(db, query, hub)


async def mark_all_read(db: AsyncSession, user: Profile, hub: Optional[RealtimeHub] = None) -> int:
    """Mark all notifications as read for a user."""
    query = select(Notification).where(
        Notification.user_id == user.id,
        Notification.is_read == False
    )
    return await _mark_read(db, query, hub)


async def create_notification(
    db: AsyncSession,
    user_id: UUID,
    title: str,
    message: str,
    notification_type: Optional[NotificationType] = None,
    related_id: Optional[UUID] = None,
    hub: Optional[RealtimeHub] = None
) -> Notification:
    """Create a new notification and publish it to the user's realtime feed."""

    notification = Notification(
        user_id=user_id,
        title=title,
        message=message,
        type=notification_type,
        related_id=related_id,
        is_read=False
    )

    db.add(notification)
    await db.commit()
    await db.refresh(notification)

    if hub is not None:
        hub.publish(NOTIFICATIONS_TABLE, RowEvent.INSERT, new=to_row(notification))

    return notification


async def delete_notification(
    db: AsyncSession,
    user: Profile,
    notification_id: UUID,
    hub: Optional[RealtimeHub] = None
) -> bool:
    """Delete a notification. Returns True if deleted."""

    query = select(Notification).where(
        Notification.id == notification_id,
        Notification.user_id == user.id
    )
    result = await db.execute(query)
    notification = result.scalar_one_or_none()

    if notification:
        old_row = to_row(notification)
        await db.delete(notification)
        await db.commit()
        if hub is not None:
            hub.publish(NOTIFICATIONS_TABLE, RowEvent.DELETE, old=old_row)
        return True

    return False


# ============================================================================
# PAYLOADS
# ============================================================================

def booking_request_payload(client_name: str, booking_id: UUID) -> NotificationPayload:
    return NotificationPayload(
        title="New Booking Request",
        message=f"{client_name} would like to book your services. Review your bookings to accept or decline.",
        related_id=booking_id,
    )


def booking_confirmed_payload(
    provider_name: str,
    booking_date: date,
    booking_time: time,
    booking_id: UUID
) -> NotificationPayload:
    when = f"{format_booking_date(booking_date)} at {format_display_time(booking_time)}"
    return NotificationPayload(
        title="Booking Confirmed!",
        message=(
            f"Great news! {provider_name} has confirmed your booking on {when}. "
            "You can now message your service provider directly."
        ),
        related_id=booking_id,
    )


def booking_declined_payload(
    provider_name: str,
    booking_date: date,
    booking_time: time,
    booking_id: UUID
) -> NotificationPayload:
    when = f"{format_booking_date(booking_date)} at {format_display_time(booking_time)}"
    return NotificationPayload(
        title="Booking Declined",
        message=(
            f"{provider_name} was unable to accommodate your booking request on {when}. "
            "You can search for other available providers or try a different time slot."
        ),
        related_id=booking_id,
    )


def new_message_payload(sender_name: str, service_details: str, booking_id: UUID) -> NotificationPayload:
    return NotificationPayload(
        title="New Message",
        message=f"{sender_name} sent you a message about: {service_details}",
        related_id=booking_id,
    )
