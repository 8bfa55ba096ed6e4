import uuid
from datetime import date, time

from servicehub.models.models import Booking, BookingStatus, ServiceProvider
from servicehub.modules.roles.roles_service import (
    Role, get_provider_for_user, is_provider, other_party, resolve_role, resolve_role_from
)


def _booking(client_id, provider_id):
    return Booking(
        id=uuid.uuid4(),
        client_id=client_id,
        service_provider_id=provider_id,
        booking_date=date(2024, 3, 1),
        booking_time=time(14, 30),
        status=BookingStatus.PENDING,
    )


def test_provider_and_client_resolve_to_each_other():
    client_id, owner_id = uuid.uuid4(), uuid.uuid4()
    provider = ServiceProvider(id=uuid.uuid4(), user_id=owner_id)
    booking = _booking(client_id, provider.id)

    as_provider = resolve_role_from(booking, provider, owner_id)
    as_client = resolve_role_from(booking, provider, client_id)

    assert as_provider.role == Role.PROVIDER
    assert as_provider.other_party_id == client_id
    assert as_client.role == Role.CLIENT
    assert as_client.other_party_id == owner_id


def test_missing_provider_is_unresolvable_not_client():
    client_id = uuid.uuid4()
    booking = _booking(client_id, uuid.uuid4())

    resolution = resolve_role_from(booking, None, client_id)

    assert resolution.role == Role.UNRESOLVABLE
    assert resolution.other_party_id is None
    assert not resolution.resolved


def test_non_participant_is_unresolvable():
    provider = ServiceProvider(id=uuid.uuid4(), user_id=uuid.uuid4())
    booking = _booking(uuid.uuid4(), provider.id)

    assert resolve_role_from(booking, provider, uuid.uuid4()).role == Role.UNRESOLVABLE


def test_provider_row_for_another_booking_is_rejected():
    client_id = uuid.uuid4()
    wrong_provider = ServiceProvider(id=uuid.uuid4(), user_id=uuid.uuid4())
    booking = _booking(client_id, uuid.uuid4())

    assert resolve_role_from(booking, wrong_provider, client_id).role == Role.UNRESOLVABLE


async def test_role_symmetry_against_database(session, marketplace, pending_booking):
    client_id = marketplace.client.id
    owner_id = marketplace.provider_user.id

    assert await is_provider(session, pending_booking, owner_id)
    assert not await is_provider(session, pending_booking, client_id)
    assert await other_party(session, pending_booking, owner_id) == client_id
    assert await other_party(session, pending_booking, client_id) == owner_id

    outsider = await resolve_role(session, pending_booking, marketplace.outsider.id)
    assert outsider.role == Role.UNRESOLVABLE


async def test_get_provider_for_user(session, marketplace):
    provider = await get_provider_for_user(session, marketplace.provider_user.id)
    assert provider.id == marketplace.provider.id
    assert await get_provider_for_user(session, marketplace.client.id) is None
