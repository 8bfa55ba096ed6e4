# servicehub/auth/auth_service.py

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

import jwt
from jwt.exceptions import InvalidTokenError
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from servicehub.common.config import settings
from servicehub.models.models import Profile


def create_access_token(data: dict, expires_delta: timedelta = None) -> str:
    """Create a JWT token including an expiration date."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta if expires_delta else timedelta(minutes=settings.JWT_EXPIRATION_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_subject(token: str) -> Optional[UUID]:
    """Return the profile id carried in the token's `sub` claim, or None if the token is unusable."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
        subject = payload.get("sub")
        return UUID(subject) if subject else None
    except (InvalidTokenError, ValueError):
        return None


async def get_profile_for_token(db: AsyncSession, token: str) -> Optional[Profile]:
    """Resolve a bearer token to its profile."""
    profile_id = decode_subject(token)
    if profile_id is None:
        return None
    result = await db.execute(select(Profile).where(Profile.id == profile_id))
    return result.scalars().first()
