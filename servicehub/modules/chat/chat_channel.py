# servicehub/modules/chat/chat_channel.py
"""
Live messaging state for one viewer.

A MessagingChannel holds the viewer's conversation list and the message list of the one
conversation they have open, and keeps both current from the realtime hub:

- per-conversation subscriptions (messages filtered by booking_id) append remote inserts
  and patch updates into the open message list;
- inbox subscriptions (messages filtered by sender_id and by recipient_id) recompute the
  conversation list on every insert involving the viewer.

Local sends are appended immediately. The realtime echo of the viewer's own message is
ignored, and any message id already present is never appended twice. A channel belongs to
exactly one viewer; a different viewer gets a new channel.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Set
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from servicehub.common.config import settings
from servicehub.common.errors import ErrorCode
from servicehub.common.realtime.hub import RealtimeHub, RowChange, RowEvent, Subscription
from servicehub.common.utils.global_messages import GlobalMessages
from servicehub.modules.conversations.conversations_service import list_conversations
from servicehub.modules.conversations.schemas import ConversationResponse
from servicehub.modules.messages import messages_service
from servicehub.modules.messages.schemas import MessageResponse, SendMessageResponse
from servicehub.modules.notifications.notifier import Notifier

logger = logging.getLogger(__name__)

MESSAGES_TABLE = messages_service.MESSAGES_TABLE

Listener = Callable[[str, list], Awaitable[None]]


class MessagingChannel:
    def __init__(
        self,
        viewer_id: UUID,
        session_factory,
        hub: RealtimeHub,
        notifier: Optional[Notifier] = None,
        mark_read_delay: Optional[float] = None,
    ):
        self.viewer_id = viewer_id
        self.conversations: List[ConversationResponse] = []
        self.messages: List[MessageResponse] = []
        self.current_booking_id: Optional[UUID] = None
        self.loading = False

        self._session_factory = session_factory
        self._hub = hub
        self._notifier = notifier
        self._mark_read_delay = settings.MARK_READ_DELAY_SECONDS if mark_read_delay is None else mark_read_delay
        self._alive = True
        self._inbox_subscriptions: List[Subscription] = []
        self._conversation_subscriptions: List[Subscription] = []
        self._listeners: List[Listener] = []
        self._mark_read_tasks: Set[asyncio.Task] = set()
        self._notify_tasks: Set[asyncio.Task] = set()

    @property
    def alive(self) -> bool:
        return self._alive

    def add_listener(self, listener: Listener) -> None:
        """Register a coroutine called with ("conversations" | "messages", items) on every change."""
        self._listeners.append(listener)

    async def _emit(self, kind: str, items: list) -> None:
        for listener in list(self._listeners):
            try:
                await listener(kind, items)
            except Exception:
                logger.exception(f"Messaging listener failed on {kind} for viewer {self.viewer_id}")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Subscribe to the viewer's inbox and load the conversation list."""
        for column in ("sender_id", "recipient_id"):
            self._inbox_subscriptions.append(self._hub.subscribe(
                MESSAGES_TABLE,
                self._on_inbox_insert,
                event=RowEvent.INSERT,
                filters={column: self.viewer_id},
            ))
        await self.refresh()

    async def close(self) -> None:
        """Tear down every subscription and drop results of fetches still in flight."""
        self._alive = False
        self._unsubscribe(self._inbox_subscriptions)
        self._unsubscribe(self._conversation_subscriptions)
        self._listeners.clear()
        for task in list(self._mark_read_tasks):
            task.cancel()
        if self._mark_read_tasks:
            await asyncio.gather(*self._mark_read_tasks, return_exceptions=True)

    @staticmethod
    def _unsubscribe(subscriptions: List[Subscription]) -> None:
        for subscription in subscriptions:
            subscription.unsubscribe()
        subscriptions.clear()

    async def drain(self) -> None:
        """Wait until realtime deliveries and the tasks they start have all finished."""
        while True:
            await self._hub.drain()
            pending = [t for t in self._mark_read_tasks | self._notify_tasks if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def refresh(self) -> List[ConversationResponse]:
        """Recompute the conversation list from scratch."""
        self.loading = True
        try:
            async with self._session_factory() as session:
                result = await list_conversations(session, self.viewer_id)
        except SQLAlchemyError as e:
            logger.error(f"Error loading conversations for {self.viewer_id}: {e}")
            return self.conversations
        finally:
            self.loading = False

        if not self._alive:
            return self.conversations
        self.conversations = result.conversations
        await self._emit("conversations", self.conversations)
        return self.conversations

    async def open(self, booking_id: UUID) -> bool:
        """
        Make `booking_id` the open conversation and load its messages.

        Returns False when the booking is not visible to the viewer or cannot be loaded; the
        channel is then left with no open conversation.
        """
        self.current_booking_id = booking_id
        self.messages = []
        self._unsubscribe(self._conversation_subscriptions)
        for event, callback in ((RowEvent.INSERT, self._on_message_insert), (RowEvent.UPDATE, self._on_message_update)):
            self._conversation_subscriptions.append(self._hub.subscribe(
                MESSAGES_TABLE, callback, event=event, filters={"booking_id": booking_id}
            ))

        self.loading = True
        try:
            async with self._session_factory() as session:
                result = await messages_service.get_booking_messages(session, booking_id, self.viewer_id)
        except SQLAlchemyError as e:
            logger.error(f"Error loading messages for booking {booking_id}: {e}")
            result = None
        finally:
            self.loading = False

        # A later open() or close() wins over this fetch
        if not self._alive or self.current_booking_id != booking_id:
            return False

        if result is None:
            self._close_conversation()
            await self._emit("messages", self.messages)
            return False

        self.messages = result.messages
        await self._emit("messages", self.messages)

        if any(m.recipient_id == self.viewer_id and not m.is_read for m in self.messages):
            await self.mark_read(booking_id)
        return True

    def _close_conversation(self) -> None:
        self._unsubscribe(self._conversation_subscriptions)
        self.current_booking_id = None
        self.messages = []

    async def send(self, booking_id: UUID, content: str) -> SendMessageResponse:
        """Persist a message, show it locally at once and notify the recipient in the background."""
        try:
            async with self._session_factory() as session:
                result = await messages_service.send_message(
                    session, booking_id, self.viewer_id, content, hub=self._hub
                )
        except SQLAlchemyError as e:
            logger.error(f"Error sending message on booking {booking_id}: {e}")
            return SendMessageResponse(
                success=False, message=GlobalMessages.TRANSPORT_ERROR, error_code=ErrorCode.TRANSPORT_ERROR
            )

        if not result.success:
            return result

        sent = result.sent_message
        if self._alive and self.current_booking_id == booking_id and not self._has_message(str(sent.id)):
            self.messages = self.messages + [sent]
            await self._emit("messages", self.messages)

        if self._notifier is not None:
            task = asyncio.get_running_loop().create_task(
                messages_service.notify_new_message(self._session_factory, sent, self._notifier)
            )
            self._notify_tasks.add(task)
            task.add_done_callback(self._notify_tasks.discard)
        return result

    async def mark_read(self, booking_id: UUID) -> int:
        """Mark the booking's messages addressed to the viewer as read, remotely and locally."""
        try:
            async with self._session_factory() as session:
                count = await messages_service.mark_messages_read(
                    session, booking_id, self.viewer_id, hub=self._hub
                )
        except SQLAlchemyError as e:
            logger.error(f"Error marking messages read on booking {booking_id}: {e}")
            return 0

        if not self._alive:
            return count
        changed = False
        patched = []
        for message in self.messages:
            if message.booking_id == booking_id and message.recipient_id == self.viewer_id and not message.is_read:
                message = message.model_copy(update={"is_read": True})
                changed = True
            patched.append(message)
        if changed:
            self.messages = patched
            await self._emit("messages", self.messages)
        return count

    # ------------------------------------------------------------------
    # Realtime handlers
    # ------------------------------------------------------------------

    def _has_message(self, message_id: str) -> bool:
        return any(str(m.id) == message_id for m in self.messages)

    def _is_current(self, booking_id: str) -> bool:
        return self._alive and self.current_booking_id is not None and str(self.current_booking_id) == booking_id

    async def _on_message_insert(self, change: RowChange) -> None:
        row = change.new
        if not self._is_current(row.get("booking_id")):
            return
        # Own messages were appended by send()
        if row.get("sender_id") == str(self.viewer_id):
            return

        try:
            async with self._session_factory() as session:
                sender = await messages_service.get_sender_profile(session, UUID(row["sender_id"]))
        except SQLAlchemyError as e:
            logger.warning(f"Could not load sender for message {row.get('id')}: {e}")
            sender = None

        if not self._is_current(row.get("booking_id")) or self._has_message(row["id"]):
            return
        self.messages = self.messages + [messages_service.message_from_row(row, sender)]
        await self._emit("messages", self.messages)

        booking_id = self.current_booking_id
        task = asyncio.get_running_loop().create_task(self._delayed_mark_read(booking_id))
        self._mark_read_tasks.add(task)
        task.add_done_callback(self._mark_read_tasks.discard)

    async def _delayed_mark_read(self, booking_id: UUID) -> None:
        await asyncio.sleep(self._mark_read_delay)
        if self._alive and self.current_booking_id == booking_id:
            await self.mark_read(booking_id)

    async def _on_message_update(self, change: RowChange) -> None:
        row = change.new
        if not self._is_current(row.get("booking_id")):
            return
        changed = False
        patched = []
        for message in self.messages:
            if str(message.id) == row.get("id"):
                updated = messages_service.message_from_row(row).model_copy(update={"sender": message.sender})
                if updated != message:
                    message = updated
                    changed = True
            patched.append(message)
        if changed:
            self.messages = patched
            await self._emit("messages", self.messages)

    async def _on_inbox_insert(self, change: RowChange) -> None:
        if self._alive:
            await self.refresh()
