import uuid
from datetime import date, time

from sqlalchemy import select

from servicehub.common.errors import ErrorCode
from servicehub.common.realtime.hub import RowEvent
from servicehub.common.utils.global_messages import GlobalMessages
from servicehub.models.models import Booking, BookingStatus, NotificationType, Profile, ServiceProvider
from servicehub.modules.bookings import bookings_service as service
from servicehub.modules.bookings.schemas import BookingCreateRequest

from conftest import FailingNotifier


def _request(marketplace, **overrides):
    data = dict(
        service_provider_id=str(marketplace.provider.id),
        service_id=marketplace.service.id,
        booking_date="2024-03-01T00:00:00.000Z",
        booking_time="2:30 PM",
        notes="Kitchen sink leaking",
    )
    data.update(overrides)
    return BookingCreateRequest(**data)


async def _stored_booking(session_factory, booking_id):
    async with session_factory() as fresh:
        return await fresh.get(Booking, booking_id)


# ============================================================================
# create_booking
# ============================================================================

async def test_create_booking_normalizes_date_and_time(session, session_factory, marketplace, hub):
    inserted = []

    async def on_insert(change):
        inserted.append(change.new)

    hub.subscribe("bookings", on_insert, event=RowEvent.INSERT)

    result = await service.create_booking(session, marketplace.client.id, _request(marketplace), hub=hub)

    assert result.success
    assert result.message == GlobalMessages.BOOKING_CREATED
    assert result.booking.booking_time == "14:30:00"
    assert result.booking.booking_date == date(2024, 3, 1)
    assert result.booking.status == "pending"

    stored = await _stored_booking(session_factory, result.booking.id)
    assert stored.booking_time == time(14, 30)
    assert stored.booking_date == date(2024, 3, 1)
    assert stored.client_id == marketplace.client.id
    assert stored.status == BookingStatus.PENDING

    await hub.drain()
    assert [row["id"] for row in inserted] == [str(result.booking.id)]


async def test_create_booking_accepts_24_hour_time(session, marketplace):
    result = await service.create_booking(
        session, marketplace.client.id, _request(marketplace, booking_time="09:15")
    )
    assert result.success
    assert result.booking.booking_time == "09:15:00"


async def test_create_booking_rejects_unparseable_time(session, marketplace):
    result = await service.create_booking(
        session, marketplace.client.id, _request(marketplace, booking_time="quarter past nine")
    )

    assert not result.success
    assert result.error_code == ErrorCode.VALIDATION_ERROR
    assert result.message == GlobalMessages.INVALID_BOOKING_TIME
    rows = await session.execute(select(Booking))
    assert rows.scalars().all() == []


async def test_create_booking_rejects_bad_date(session, marketplace):
    result = await service.create_booking(
        session, marketplace.client.id, _request(marketplace, booking_date="next tuesday")
    )
    assert result.error_code == ErrorCode.VALIDATION_ERROR
    assert result.message == GlobalMessages.INVALID_BOOKING_DATE


async def test_create_booking_requires_provider(session, marketplace):
    for provider_id in (None, "", "   "):
        result = await service.create_booking(
            session, marketplace.client.id, _request(marketplace, service_provider_id=provider_id)
        )
        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert result.message == GlobalMessages.PROVIDER_REQUIRED


async def test_create_booking_rejects_unknown_provider(session, marketplace):
    for provider_id in ("not-a-uuid", str(uuid.uuid4())):
        result = await service.create_booking(
            session, marketplace.client.id, _request(marketplace, service_provider_id=provider_id, service_id=None)
        )
        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert result.message == GlobalMessages.PROVIDER_NOT_FOUND


async def test_create_booking_rejects_service_of_another_provider(session, marketplace):
    result = await service.create_booking(
        session, marketplace.client.id, _request(marketplace, service_id=uuid.uuid4())
    )
    assert result.error_code == ErrorCode.VALIDATION_ERROR
    assert result.message == GlobalMessages.SERVICE_NOT_FOUND


async def test_create_booking_requires_caller(session, marketplace):
    result = await service.create_booking(session, None, _request(marketplace))
    assert result.error_code == ErrorCode.AUTH_REQUIRED


# ============================================================================
# notify_booking_request
# ============================================================================

async def test_booking_request_notifies_provider_owner(session, marketplace, notifier):
    created = await service.create_booking(session, marketplace.client.id, _request(marketplace))

    assert await service.notify_booking_request(session, created.booking, notifier)

    assert len(notifier.sent) == 1
    sent = notifier.sent[0]
    assert sent.user_id == marketplace.provider_user.id
    assert sent.kind == NotificationType.BOOKING_REQUEST
    assert sent.payload.title == "New Booking Request"
    assert sent.payload.message.startswith("Amira Ben Salah would like to book your services.")
    assert sent.payload.related_id == created.booking.id


async def test_booking_request_falls_back_to_generic_name(session, marketplace, notifier):
    nameless = Profile(email="nameless@test.com")
    session.add(nameless)
    await session.commit()

    created = await service.create_booking(session, nameless.id, _request(marketplace))
    await service.notify_booking_request(session, created.booking, notifier)

    assert notifier.sent[0].payload.message.startswith("A client would like to book")


async def test_booking_request_failure_is_reported_not_raised(session, marketplace):
    created = await service.create_booking(session, marketplace.client.id, _request(marketplace))

    assert not await service.notify_booking_request(session, created.booking, FailingNotifier())
    assert created.success


# ============================================================================
# set_booking_status
# ============================================================================

async def test_confirm_updates_status_and_notifies_client(
    session, session_factory, marketplace, pending_booking, notifier, hub
):
    updates = []

    async def on_update(change):
        updates.append(change)

    hub.subscribe("bookings", on_update, event=RowEvent.UPDATE)

    updated = await service.set_booking_status(
        session, pending_booking.id, marketplace.provider_user.id, BookingStatus.CONFIRMED, notifier, hub=hub
    )

    assert updated
    stored = await _stored_booking(session_factory, pending_booking.id)
    assert stored.status == BookingStatus.CONFIRMED

    assert len(notifier.sent) == 1
    sent = notifier.sent[0]
    assert sent.user_id == marketplace.client.id
    assert sent.kind == NotificationType.BOOKING_UPDATE
    assert sent.payload.title == "Booking Confirmed!"
    assert "Trabelsi Plumbing" in sent.payload.message
    assert "March 1, 2024 at 2:30 PM" in sent.payload.message

    await hub.drain()
    assert len(updates) == 1
    assert updates[0].new["status"] == "confirmed"
    assert updates[0].old["status"] == "pending"


async def test_decline_deletes_booking_and_notifies_client(
    session, session_factory, marketplace, pending_booking, notifier, hub
):
    deleted = []

    async def on_delete(change):
        deleted.append(change.old["id"])

    hub.subscribe("bookings", on_delete, event=RowEvent.DELETE)

    updated = await service.set_booking_status(
        session, pending_booking.id, marketplace.provider_user.id, BookingStatus.DECLINED, notifier, hub=hub
    )

    assert updated
    assert await _stored_booking(session_factory, pending_booking.id) is None
    assert len(notifier.for_user(marketplace.client.id)) == 1
    assert notifier.sent[0].payload.title == "Booking Declined"
    assert "March 1, 2024 at 2:30 PM" in notifier.sent[0].payload.message

    await hub.drain()
    assert deleted == [str(pending_booking.id)]


async def test_only_owning_provider_can_change_status(session, session_factory, marketplace, pending_booking, notifier):
    for caller in (marketplace.client, marketplace.outsider):
        assert not await service.set_booking_status(
            session, pending_booking.id, caller.id, BookingStatus.CONFIRMED, notifier
        )

    stored = await _stored_booking(session_factory, pending_booking.id)
    assert stored.status == BookingStatus.PENDING
    assert notifier.sent == []


async def test_second_transition_is_rejected(session, marketplace, pending_booking, notifier):
    owner = marketplace.provider_user.id

    assert await service.set_booking_status(session, pending_booking.id, owner, BookingStatus.CONFIRMED, notifier)
    assert not await service.set_booking_status(session, pending_booking.id, owner, BookingStatus.DECLINED, notifier)
    assert not await service.set_booking_status(session, pending_booking.id, owner, BookingStatus.CONFIRMED, notifier)

    assert len(notifier.sent) == 1


async def test_completed_cannot_be_set(session, marketplace, pending_booking, notifier):
    assert not await service.set_booking_status(
        session, pending_booking.id, marketplace.provider_user.id, BookingStatus.COMPLETED, notifier
    )


async def test_transition_survives_notification_failure(session, session_factory, marketplace, pending_booking):
    updated = await service.set_booking_status(
        session, pending_booking.id, marketplace.provider_user.id, BookingStatus.CONFIRMED, FailingNotifier()
    )

    assert updated
    stored = await _stored_booking(session_factory, pending_booking.id)
    assert stored.status == BookingStatus.CONFIRMED


async def test_provider_without_business_name_uses_owner_name(session, notifier):
    client = Profile(first_name="Amira", last_name="Ben Salah", email="a@test.com")
    owner = Profile(first_name="Leila", last_name="Mansour", email="l@test.com")
    session.add_all([client, owner])
    await session.flush()
    provider = ServiceProvider(user_id=owner.id)
    session.add(provider)
    await session.flush()
    booking = Booking(
        client_id=client.id,
        service_provider_id=provider.id,
        booking_date=date(2024, 3, 1),
        booking_time=time(9, 0),
        status=BookingStatus.PENDING,
    )
    session.add(booking)
    await session.commit()

    assert await service.set_booking_status(session, booking.id, owner.id, BookingStatus.CONFIRMED, notifier)
    assert "Leila Mansour has confirmed" in notifier.sent[0].payload.message
    assert "at 9:00 AM" in notifier.sent[0].payload.message


# ============================================================================
# queries
# ============================================================================

async def test_list_bookings_for_both_parties(session, marketplace, pending_booking):
    as_client = await service.list_bookings(session, marketplace.client.id)
    as_provider = await service.list_bookings(session, marketplace.provider_user.id)
    as_outsider = await service.list_bookings(session, marketplace.outsider.id)

    assert [b.id for b in as_client.bookings] == [pending_booking.id]
    assert [b.id for b in as_provider.bookings] == [pending_booking.id]
    assert as_outsider.total == 0

    booking = as_client.bookings[0]
    assert booking.client_name == "Amira Ben Salah"
    assert booking.provider_name == "Trabelsi Plumbing"
    assert booking.service_name == "Plumbing"
    assert booking.booking_time == "14:30:00"


async def test_list_bookings_uses_defaults_for_missing_names(session, marketplace):
    booking = Booking(
        client_id=marketplace.outsider.id,
        service_provider_id=marketplace.provider.id,
        booking_date=date(2024, 3, 2),
        booking_time=time(10, 0),
        status=BookingStatus.PENDING,
    )
    session.add(booking)
    await session.commit()

    result = await service.list_bookings(session, marketplace.outsider.id)

    assert result.bookings[0].service_name == service.DEFAULT_SERVICE_NAME


async def test_get_booking_hidden_from_non_participants(session, marketplace, pending_booking):
    assert await service.get_booking(session, pending_booking.id, marketplace.client.id) is not None
    assert await service.get_booking(session, pending_booking.id, marketplace.provider_user.id) is not None
    assert await service.get_booking(session, pending_booking.id, marketplace.outsider.id) is None
    assert await service.get_booking(session, uuid.uuid4(), marketplace.client.id) is None
