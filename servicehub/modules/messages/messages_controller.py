# servicehub/modules/messages/messages_controller.py
"""Messages controller with API routes."""

from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from servicehub.common.database.database import get_db_session, get_session_factory
from servicehub.common.errors import raise_for_failure
from servicehub.common.realtime.hub import RealtimeHub, get_realtime_hub
from servicehub.common.utils.global_messages import GlobalMessages
from servicehub.auth.dependencies import get_current_user
from servicehub.models.models import Profile
from servicehub.modules.conversations import conversations_service
from servicehub.modules.conversations.schemas import ConversationListResponse
from servicehub.modules.notifications.notifier import Notifier, get_notifier

from . import messages_service as service
from .schemas import (
    MarkReadResponse, MessageListResponse, SendMessageRequest,
    SendMessageResponse, UnreadCountResponse
)

router = APIRouter(prefix="/messages", tags=["Messages"])


@router.get("/conversations", response_model=ConversationListResponse)
async def list_conversations(
    db: AsyncSession = Depends(get_db_session),
    current_user: Profile = Depends(get_current_user)
):
    """Get all conversations for the current user, one per booking."""
    return await conversations_service.list_conversations(db, current_user.id)


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    db: AsyncSession = Depends(get_db_session),
    current_user: Profile = Depends(get_current_user)
):
    """Get number of unread messages addressed to the current user."""
    count = await service.get_unread_count(db, current_user.id)
    return UnreadCountResponse(unread_count=count)


@router.get("/bookings/{booking_id}", response_model=MessageListResponse)
async def get_booking_messages(
    booking_id: UUID,
    db: AsyncSession = Depends(get_db_session),
    current_user: Profile = Depends(get_current_user)
):
    """Get all messages for a booking, oldest first."""
    result = await service.get_booking_messages(db, booking_id, current_user.id)
    if result is None:
        raise HTTPException(status_code=404, detail=GlobalMessages.BOOKING_NOT_FOUND)
    return result


@router.post("/bookings/{booking_id}", response_model=SendMessageResponse, status_code=201)
async def send_message(
    booking_id: UUID,
    request: SendMessageRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db_session),
    hub: RealtimeHub = Depends(get_realtime_hub),
    notifier: Notifier = Depends(get_notifier),
    session_factory=Depends(get_session_factory),
    current_user: Profile = Depends(get_current_user)
):
    """Send a message to the other party of a booking."""
    result = await service.send_message(db, booking_id, current_user.id, request.content, hub=hub)
    raise_for_failure(result)
    background_tasks.add_task(service.notify_new_message, session_factory, result.sent_message, notifier)
    return result


@router.put("/bookings/{booking_id}/read", response_model=MarkReadResponse)
async def mark_messages_read(
    booking_id: UUID,
    db: AsyncSession = Depends(get_db_session),
    hub: RealtimeHub = Depends(get_realtime_hub),
    current_user: Profile = Depends(get_current_user)
):
    """Mark messages in a booking as read by the current user."""
    count = await service.mark_messages_read(db, booking_id, current_user.id, hub=hub)
    return MarkReadResponse(success=True, marked_count=count)
