# servicehub/modules/notifications/notifier.py
"""
Notification fan-out.

Domain events (booking requested, confirmed, declined, new message) reach users through a
Notifier. The default DatabaseNotifier writes a notification row in its own session, so a
failure here can never roll back the write that triggered it, then publishes the row and
optionally emails the recipient.
"""

import logging
from typing import Optional, Protocol
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from servicehub.common.config import settings
from servicehub.common.database.database import get_session_factory
from servicehub.common.realtime.hub import RealtimeHub, get_realtime_hub
from servicehub.common.utils.email_service import send_notification_email
from servicehub.models.models import NotificationType, Profile

from . import notifications_service as service
from .schemas import NotificationPayload

logger = logging.getLogger(__name__)

EMAIL_KINDS = {NotificationType.BOOKING_REQUEST, NotificationType.BOOKING_UPDATE}


class Notifier(Protocol):
    async def notify(self, user_id: UUID, kind: NotificationType, payload: NotificationPayload) -> None:
        ...


class DatabaseNotifier:
    def __init__(self, session_factory, hub: Optional[RealtimeHub] = None, email_enabled: Optional[bool] = None):
        self._session_factory = session_factory
        self._hub = hub
        self._email_enabled = settings.EMAIL_NOTIFICATIONS_ENABLED if email_enabled is None else email_enabled

    async def notify(self, user_id: UUID, kind: NotificationType, payload: NotificationPayload) -> None:
        async with self._session_factory() as session:
            notification = await service.create_notification(
                session,
                user_id=user_id,
                title=payload.title,
                message=payload.message,
                notification_type=kind,
                related_id=payload.related_id,
                hub=self._hub,
            )
            logger.info(f"Notification {notification.id} ({kind.value}) created for user {user_id}")

            if self._email_enabled and kind in EMAIL_KINDS:
                await self._send_email(session, user_id, payload)

    async def _send_email(self, session: AsyncSession, user_id: UUID, payload: NotificationPayload) -> None:
        # The in-app notification is already committed; email is best-effort on top of it
        try:
            profile = await session.get(Profile, user_id)
            if profile is None or not profile.email:
                logger.warning(f"No email address for user {user_id}, skipping notification email")
                return
            await send_notification_email(profile.email, profile.first_name, payload.title, payload.message)
        except Exception:
            logger.exception(f"Failed to email notification to user {user_id}")


async def dispatch_notification(
    notifier: Notifier,
    user_id: UUID,
    kind: NotificationType,
    payload: NotificationPayload
) -> bool:
    """Deliver one notification. Failures are logged and reported as False, never raised."""
    try:
        await notifier.notify(user_id, kind, payload)
        return True
    except Exception:
        logger.exception(f"Failed to create {kind.value} notification for user {user_id}")
        return False


def get_notifier(
    session_factory=Depends(get_session_factory),
    hub: RealtimeHub = Depends(get_realtime_hub)
) -> Notifier:
    """FastAPI dependency returning the database-backed notifier."""
    return DatabaseNotifier(session_factory, hub)
