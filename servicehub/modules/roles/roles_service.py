# servicehub/modules/roles/roles_service.py
"""
Role resolution: is a user the provider or the client on a booking, and who is the other party.

Bookings reference the provider *profile* (service_providers.id), not the account, so the
provider side is always resolved through service_providers.user_id.
"""

import enum
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from servicehub.models.models import Booking, ServiceProvider


class Role(enum.Enum):
    PROVIDER = "provider"
    CLIENT = "client"
    UNRESOLVABLE = "unresolvable"


@dataclass(frozen=True)
class RoleResolution:
    role: Role
    other_party_id: Optional[UUID] = None
    reason: Optional[str] = None

    @property
    def is_provider(self) -> bool:
        return self.role == Role.PROVIDER

    @property
    def resolved(self) -> bool:
        return self.role != Role.UNRESOLVABLE


def resolve_role_from(
    booking: Booking,
    provider: Optional[ServiceProvider],
    viewer_id: UUID
) -> RoleResolution:
    """Resolve the viewer's role from an already-loaded provider row."""
    if provider is None or provider.id != booking.service_provider_id:
        return RoleResolution(Role.UNRESOLVABLE, reason="service provider not found")
    if viewer_id == provider.user_id:
        return RoleResolution(Role.PROVIDER, other_party_id=booking.client_id)
    if viewer_id == booking.client_id:
        return RoleResolution(Role.CLIENT, other_party_id=provider.user_id)
    return RoleResolution(Role.UNRESOLVABLE, reason="user is not a participant of this booking")


async def get_provider(session: AsyncSession, provider_id: UUID) -> Optional[ServiceProvider]:
    result = await session.execute(
        select(ServiceProvider).where(ServiceProvider.id == provider_id)
    )
    return result.scalar_one_or_none()


async def get_provider_for_user(session: AsyncSession, user_id: UUID) -> Optional[ServiceProvider]:
    """The provider row owned by an account, if any (at most one per account)."""
    result = await session.execute(
        select(ServiceProvider).where(ServiceProvider.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def resolve_role(session: AsyncSession, booking: Booking, viewer_id: UUID) -> RoleResolution:
    provider = await get_provider(session, booking.service_provider_id)
    return resolve_role_from(booking, provider, viewer_id)


async def is_provider(session: AsyncSession, booking: Booking, user_id: UUID) -> bool:
    resolution = await resolve_role(session, booking, user_id)
    return resolution.is_provider


async def other_party(session: AsyncSession, booking: Booking, viewer_id: UUID) -> Optional[UUID]:
    """The other participant's account id, or None when the booking cannot be resolved."""
    resolution = await resolve_role(session, booking, viewer_id)
    return resolution.other_party_id
