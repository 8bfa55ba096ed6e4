# tests/conftest.py

import os

# Settings are read at import time; point them at throwaway values before importing the app
os.environ["APP_ENV"] = "development"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["DEBUG"] = "false"
os.environ["EMAIL_NOTIFICATIONS_ENABLED"] = "false"
os.environ["MARK_READ_DELAY_SECONDS"] = "0"

from dataclasses import dataclass
from datetime import date, time
from typing import List
from uuid import UUID

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from servicehub.auth.auth_service import create_access_token
from servicehub.common.realtime.hub import RealtimeHub
from servicehub.models.models import (
    Base, Booking, BookingStatus, NotificationType, Profile, Service, ServiceProvider
)
from servicehub.modules.notifications.schemas import NotificationPayload


@dataclass
class SentNotification:
    user_id: UUID
    kind: NotificationType
    payload: NotificationPayload


class RecordingNotifier:
    """Notifier that keeps every notification in memory."""

    def __init__(self):
        self.sent: List[SentNotification] = []

    async def notify(self, user_id: UUID, kind: NotificationType, payload: NotificationPayload) -> None:
        self.sent.append(SentNotification(user_id, kind, payload))

    def for_user(self, user_id: UUID) -> List[SentNotification]:
        return [n for n in self.sent if n.user_id == user_id]


class FailingNotifier:
    async def notify(self, user_id, kind, payload) -> None:
        raise RuntimeError("notification store unavailable")


@dataclass
class Marketplace:
    client: Profile
    provider_user: Profile
    provider: ServiceProvider
    service: Service
    outsider: Profile


def auth_headers(profile: Profile) -> dict:
    token = create_access_token({"sub": str(profile.id)})
    return {"Authorization": f"Bearer {token}"}


def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'servicehub.db'}"


@pytest_asyncio.fixture
async def engine(tmp_path):
    # One connection per session: channels run several sessions concurrently
    engine = create_async_engine(database_url(tmp_path), poolclass=NullPool, connect_args={"timeout": 15})
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def hub():
    return RealtimeHub()


@pytest.fixture
def notifier():
    return RecordingNotifier()


async def seed_marketplace(session) -> Marketplace:
    client = Profile(first_name="Amira", last_name="Ben Salah", email="amira@test.com")
    provider_user = Profile(first_name="Karim", last_name="Trabelsi", email="karim@test.com")
    outsider = Profile(first_name="Sami", last_name="Haddad", email="sami@test.com")
    session.add_all([client, provider_user, outsider])
    await session.flush()

    provider = ServiceProvider(user_id=provider_user.id, business_name="Trabelsi Plumbing")
    session.add(provider)
    await session.flush()

    service = Service(
        service_provider_id=provider.id,
        business_name="Plumbing",
        description="Leak repair and bathroom fittings",
    )
    session.add(service)
    await session.commit()
    return Marketplace(
        client=client,
        provider_user=provider_user,
        provider=provider,
        service=service,
        outsider=outsider,
    )


async def seed_pending_booking(session, marketplace: Marketplace) -> Booking:
    booking = Booking(
        client_id=marketplace.client.id,
        service_provider_id=marketplace.provider.id,
        service_id=marketplace.service.id,
        booking_date=date(2024, 3, 1),
        booking_time=time(14, 30),
        status=BookingStatus.PENDING,
        notes="Kitchen sink leaking",
    )
    session.add(booking)
    await session.commit()
    await session.refresh(booking)
    return booking


@pytest_asyncio.fixture
async def marketplace(session) -> Marketplace:
    return await seed_marketplace(session)


@pytest_asyncio.fixture
async def pending_booking(session, marketplace) -> Booking:
    return await seed_pending_booking(session, marketplace)
