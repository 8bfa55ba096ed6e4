import uuid

from sqlalchemy import select

from servicehub.common.errors import ErrorCode
from servicehub.common.realtime.hub import RowEvent
from servicehub.models.models import Message, NotificationType
from servicehub.modules.messages import messages_service as service

from conftest import FailingNotifier


async def test_send_derives_recipient_from_booking(session, marketplace, pending_booking):
    from_client = await service.send_message(
        session, pending_booking.id, marketplace.client.id, "  When can you arrive?  "
    )
    from_owner = await service.send_message(
        session, pending_booking.id, marketplace.provider_user.id, "Tomorrow at 2"
    )

    assert from_client.success
    assert from_client.sent_message.recipient_id == marketplace.provider_user.id
    assert from_client.sent_message.content == "When can you arrive?"
    assert from_client.sent_message.sender.first_name == "Amira"
    assert not from_client.sent_message.is_read
    assert from_owner.sent_message.recipient_id == marketplace.client.id


async def test_send_rejects_empty_content(session, marketplace, pending_booking):
    for content in ("", "   ", None):
        result = await service.send_message(session, pending_booking.id, marketplace.client.id, content)
        assert result.error_code == ErrorCode.VALIDATION_ERROR

    rows = await session.execute(select(Message))
    assert rows.scalars().all() == []


async def test_send_requires_sender(session, pending_booking):
    result = await service.send_message(session, pending_booking.id, None, "hi")
    assert result.error_code == ErrorCode.AUTH_REQUIRED


async def test_send_from_outsider_or_unknown_booking_is_unresolved(session, marketplace, pending_booking):
    outsider = await service.send_message(session, pending_booking.id, marketplace.outsider.id, "hi")
    unknown = await service.send_message(session, uuid.uuid4(), marketplace.client.id, "hi")

    assert outsider.error_code == ErrorCode.RECIPIENT_UNRESOLVED
    assert unknown.error_code == ErrorCode.RECIPIENT_UNRESOLVED
    rows = await session.execute(select(Message))
    assert rows.scalars().all() == []


async def test_send_publishes_insert(session, marketplace, pending_booking, hub):
    received = []

    async def on_insert(change):
        received.append(change.new)

    hub.subscribe("messages", on_insert, event=RowEvent.INSERT, filters={"booking_id": pending_booking.id})

    result = await service.send_message(session, pending_booking.id, marketplace.client.id, "hi", hub=hub)
    await hub.drain()

    assert [row["id"] for row in received] == [str(result.sent_message.id)]
    assert received[0]["recipient_id"] == str(marketplace.provider_user.id)


async def test_messages_are_returned_oldest_first_to_participants_only(session, marketplace, pending_booking):
    for content in ("first", "second", "third"):
        await service.send_message(session, pending_booking.id, marketplace.client.id, content)

    listing = await service.get_booking_messages(session, pending_booking.id, marketplace.provider_user.id)

    assert [m.content for m in listing.messages] == ["first", "second", "third"]
    assert listing.total == 3
    assert await service.get_booking_messages(session, pending_booking.id, marketplace.outsider.id) is None


async def test_mark_read_only_touches_messages_addressed_to_viewer(session, marketplace, pending_booking, hub):
    updates = []

    async def on_update(change):
        updates.append(change.new["id"])

    hub.subscribe("messages", on_update, event=RowEvent.UPDATE)

    await service.send_message(session, pending_booking.id, marketplace.client.id, "one")
    await service.send_message(session, pending_booking.id, marketplace.client.id, "two")
    await service.send_message(session, pending_booking.id, marketplace.provider_user.id, "reply")

    assert await service.get_unread_count(session, marketplace.provider_user.id) == 2
    assert await service.get_unread_count(session, marketplace.client.id) == 1

    marked = await service.mark_messages_read(session, pending_booking.id, marketplace.provider_user.id, hub=hub)
    await hub.drain()

    assert marked == 2
    assert len(updates) == 2
    assert await service.get_unread_count(session, marketplace.provider_user.id) == 0
    assert await service.get_unread_count(session, marketplace.client.id) == 1
    assert await service.mark_messages_read(session, pending_booking.id, marketplace.provider_user.id) == 0


async def test_notify_new_message_tells_recipient(session, session_factory, marketplace, pending_booking, notifier):
    sent = await service.send_message(session, pending_booking.id, marketplace.client.id, "hi")

    assert await service.notify_new_message(session_factory, sent.sent_message, notifier)

    assert len(notifier.sent) == 1
    notification = notifier.sent[0]
    assert notification.user_id == marketplace.provider_user.id
    assert notification.kind == NotificationType.NEW_MESSAGE
    assert notification.payload.title == "New Message"
    assert notification.payload.message == (
        "Amira Ben Salah sent you a message about: Leak repair and bathroom fittings"
    )
    assert notification.payload.related_id == pending_booking.id


async def test_notify_new_message_failure_returns_false(session, session_factory, marketplace, pending_booking):
    sent = await service.send_message(session, pending_booking.id, marketplace.client.id, "hi")

    assert not await service.notify_new_message(session_factory, sent.sent_message, FailingNotifier())
