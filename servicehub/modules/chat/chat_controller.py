# servicehub/modules/chat/chat_controller.py
"""WebSocket endpoint exposing a MessagingChannel to a browser."""

import asyncio
import json
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status

from servicehub.auth.auth_service import get_profile_for_token
from servicehub.common.database.database import get_session_factory
from servicehub.common.errors import ErrorCode
from servicehub.common.realtime.hub import RealtimeHub, RowChange, RowEvent, get_realtime_hub
from servicehub.common.utils.global_messages import GlobalMessages
from servicehub.models.models import Notification
from servicehub.modules.notifications.notifier import Notifier, get_notifier

from .chat_channel import MessagingChannel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["Chat"])


class ChatSocket:
    """Serializes outgoing frames for one socket; listeners and the receive loop share it."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self._lock = asyncio.Lock()

    async def send(self, frame: dict) -> None:
        async with self._lock:
            await self.websocket.send_json(frame)

    async def error(self, error_code: ErrorCode, message: str) -> None:
        await self.send({"type": "error", "error_code": error_code.value, "message": message})


def _parse_booking_id(frame: dict) -> Optional[UUID]:
    try:
        return UUID(str(frame.get("booking_id")))
    except ValueError:
        return None


async def _handle_frame(channel: MessagingChannel, socket: ChatSocket, frame: dict) -> None:
    action = frame.get("action")

    if action == "refresh":
        await channel.refresh()
        return

    if action not in ("open", "send", "mark_read"):
        await socket.error(ErrorCode.VALIDATION_ERROR, f"Unknown action: {action}")
        return

    booking_id = _parse_booking_id(frame)
    if booking_id is None:
        await socket.error(ErrorCode.VALIDATION_ERROR, "A valid booking_id is required.")
        return

    if action == "open":
        found = await channel.open(booking_id)
        if not found:
            await socket.error(ErrorCode.NOT_FOUND, GlobalMessages.BOOKING_NOT_FOUND)
    elif action == "send":
        result = await channel.send(booking_id, frame.get("content") or "")
        if result.success:
            await socket.send({"type": "sent", "message": result.sent_message.model_dump(mode="json")})
        else:
            await socket.error(result.error_code, result.message)
    else:
        await channel.mark_read(booking_id)


@router.websocket("/ws")
async def chat_websocket(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    session_factory=Depends(get_session_factory),
    hub: RealtimeHub = Depends(get_realtime_hub),
    notifier: Notifier = Depends(get_notifier)
):
    """Live conversations, messages and notifications for the token's user."""
    profile = None
    if token:
        async with session_factory() as session:
            profile = await get_profile_for_token(session, token)
    if profile is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    socket = ChatSocket(websocket)
    channel = MessagingChannel(profile.id, session_factory, hub, notifier=notifier)

    async def push_state(kind: str, items: list) -> None:
        frame = {"type": kind, kind: [item.model_dump(mode="json") for item in items]}
        if kind == "messages":
            frame["booking_id"] = str(channel.current_booking_id) if channel.current_booking_id else None
        await socket.send(frame)

    async def push_notification(change: RowChange) -> None:
        await socket.send({"type": "notification", "notification": change.new})

    channel.add_listener(push_state)
    notification_subscription = hub.subscribe(
        Notification.__tablename__,
        push_notification,
        event=RowEvent.INSERT,
        filters={"user_id": profile.id},
    )
    logger.info(f"Chat socket opened for user {profile.id}")

    try:
        await channel.start()
        while True:
            try:
                frame = json.loads(await websocket.receive_text())
            except ValueError:
                frame = None
            if not isinstance(frame, dict):
                await socket.error(ErrorCode.VALIDATION_ERROR, "Frames must be JSON objects.")
                continue
            await _handle_frame(channel, socket, frame)
    except WebSocketDisconnect:
        logger.info(f"Chat socket closed for user {profile.id}")
    finally:
        notification_subscription.unsubscribe()
        await channel.close()
