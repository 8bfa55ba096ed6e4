# scripts/seed_test_data.py
"""
Seed script for ServiceHub testing.
Creates one client and two providers with bookings in every state and a short chat.

Characters:
- CLIENT: Amira Ben Salah - Moving flats in Tunis and needs help fast
- PROVIDER: Karim Trabelsi - Runs "Trabelsi Plumbing", a two-van plumbing business
- PROVIDER: Leila Mansour - Freelance electrician with no business name

No passwords are involved: the script prints a bearer token for each account.

Run: python -m scripts.seed_test_data [--reset]
"""

import asyncio
import sys
from datetime import datetime, date, time, timedelta, timezone
from decimal import Decimal

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from servicehub.common.database.database import async_session
from servicehub.auth.auth_service import create_access_token
from servicehub.models.models import (
    Profile, ServiceProvider, Service, Booking, Message, Notification,
    BookingStatus, NotificationType
)


TOKEN_LIFETIME = timedelta(days=7)


async def clear_existing_data(db: AsyncSession):
    """Clear all test data (if needed for re-seeding)."""
    print("🧹 Clearing existing data...")

    # Delete in reverse order of dependencies
    tables_to_clear = [
        Notification,
        Message,
        Booking,
        Service,
        ServiceProvider,
        Profile,
    ]

    for table in tables_to_clear:
        await db.execute(delete(table))

    await db.commit()
    print("✅ Data cleared")


async def seed_all_data(db: AsyncSession):
    """Main seeding function."""
    print("\n🌱 Starting ServiceHub Test Data Seed")
    print("=" * 50)

    client = await create_client(db)
    karim, plumbing = await create_plumber(db)
    leila, electrics = await create_electrician(db)

    plumbing_service = await create_service(
        db, plumbing, "Trabelsi Plumbing", "Leak repair and bathroom fittings"
    )
    await create_service(db, electrics, "Mansour Electrics", "Socket and lighting installation")

    confirmed = await create_bookings(db, client, plumbing, electrics, plumbing_service)
    await create_chat(db, client, karim, confirmed)
    await create_notifications(db, client, karim, leila, confirmed)

    await db.commit()

    print("\n" + "=" * 50)
    print("✅ Seed complete! Bearer tokens:")
    for profile in (client, karim, leila):
        token = create_access_token({"sub": str(profile.id)}, expires_delta=TOKEN_LIFETIME)
        print(f"   {profile.email}: {token}")
    print("=" * 50 + "\n")


# =============================================================================
# ACCOUNTS
# =============================================================================

async def create_client(db: AsyncSession) -> Profile:
    print("👤 Creating client...")
    client = Profile(
        first_name="Amira",
        last_name="Ben Salah",
        email="amira@test.com",
        phone="+216 20 123 456",
    )
    db.add(client)
    await db.flush()
    return client


async def create_plumber(db: AsyncSession) -> tuple[Profile, ServiceProvider]:
    print("🔧 Creating plumber...")
    user = Profile(first_name="Karim", last_name="Trabelsi", email="karim@test.com")
    db.add(user)
    await db.flush()

    provider = ServiceProvider(user_id=user.id, business_name="Trabelsi Plumbing")
    db.add(provider)
    await db.flush()
    return user, provider


async def create_electrician(db: AsyncSession) -> tuple[Profile, ServiceProvider]:
    print("💡 Creating electrician...")
    user = Profile(first_name="Leila", last_name="Mansour", email="leila@test.com")
    db.add(user)
    await db.flush()

    # No business name: notifications fall back to the owner's name
    provider = ServiceProvider(user_id=user.id)
    db.add(provider)
    await db.flush()
    return user, provider


async def create_service(db: AsyncSession, provider: ServiceProvider, name: str, description: str) -> Service:
    service = Service(
        service_provider_id=provider.id,
        business_name=name,
        description=description,
        is_active=True,
    )
    db.add(service)
    await db.flush()
    return service


# =============================================================================
# BOOKINGS
# =============================================================================

async def create_bookings(
    db: AsyncSession,
    client: Profile,
    plumbing: ServiceProvider,
    electrics: ServiceProvider,
    plumbing_service: Service
) -> Booking:
    """One confirmed plumbing job and one pending electrical request. Returns the confirmed one."""
    print("📅 Creating bookings...")

    confirmed = Booking(
        client_id=client.id,
        service_provider_id=plumbing.id,
        service_id=plumbing_service.id,
        booking_date=date.today() + timedelta(days=3),
        booking_time=time(14, 30),
        status=BookingStatus.CONFIRMED,
        notes="Kitchen sink leaking under the cabinet",
        duration_hours=Decimal("2.00"),
        total_price=Decimal("120.00"),
    )
    db.add(confirmed)

    pending = Booking(
        client_id=client.id,
        service_provider_id=electrics.id,
        booking_date=date.today() + timedelta(days=5),
        booking_time=time(9, 0),
        status=BookingStatus.PENDING,
        notes="Two new sockets in the living room",
        duration_hours=Decimal("1.50"),
    )
    db.add(pending)

    await db.flush()
    return confirmed


async def create_chat(db: AsyncSession, client: Profile, provider_user: Profile, booking: Booking):
    print("💬 Creating chat messages...")

    now = datetime.now(timezone.utc)
    lines = [
        (client, provider_user, "Hi Karim, is 2:30 still good for you?", True),
        (provider_user, client, "Yes, I'll bring a replacement trap just in case.", True),
        (client, provider_user, "When can you arrive?", False),
    ]
    for offset, (sender, recipient, content, is_read) in enumerate(lines):
        db.add(Message(
            booking_id=booking.id,
            sender_id=sender.id,
            recipient_id=recipient.id,
            content=content,
            is_read=is_read,
            created_at=now - timedelta(minutes=30 - offset * 10),
        ))
    await db.flush()


async def create_notifications(
    db: AsyncSession,
    client: Profile,
    karim: Profile,
    leila: Profile,
    confirmed: Booking
):
    print("🔔 Creating notifications...")

    db.add(Notification(
        user_id=client.id,
        type=NotificationType.BOOKING_UPDATE,
        title="Booking Confirmed!",
        message="Great news! Trabelsi Plumbing has confirmed your booking.",
        related_id=confirmed.id,
        is_read=True,
    ))
    db.add(Notification(
        user_id=karim.id,
        type=NotificationType.NEW_MESSAGE,
        title="New Message",
        message="Amira Ben Salah sent you a message about: Leak repair and bathroom fittings",
        related_id=confirmed.id,
        is_read=False,
    ))
    db.add(Notification(
        user_id=leila.id,
        type=NotificationType.BOOKING_REQUEST,
        title="New Booking Request",
        message="Amira Ben Salah would like to book your services. Review your bookings to accept or decline.",
        is_read=False,
    ))
    await db.flush()


# =============================================================================
# MAIN
# =============================================================================

async def main(reset: bool = False):
    """Run the seed script."""
    async with async_session() as db:
        try:
            if reset:
                await clear_existing_data(db)
            await seed_all_data(db)
        except Exception as e:
            await db.rollback()
            print(f"\n❌ Error during seeding: {e}")
            raise


if __name__ == "__main__":
    asyncio.run(main(reset="--reset" in sys.argv))
