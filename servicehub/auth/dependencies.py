# servicehub/auth/dependencies.py

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from servicehub.auth.auth_service import get_profile_for_token
from servicehub.common.database.database import get_db_session
from servicehub.common.utils.global_messages import GlobalMessages
from servicehub.models.models import Profile

bearer_scheme = HTTPBearer(auto_error=False)

async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session)
) -> Profile:
    """
    Dependency to retrieve the current profile based on the JWT token provided in the Authorization header.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=GlobalMessages.INVALID_CREDENTIALS,
        headers={"WWW-Authenticate": "Bearer"}
    )
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=GlobalMessages.AUTH_REQUIRED,
            headers={"WWW-Authenticate": "Bearer"}
        )

    profile = await get_profile_for_token(db, credentials.credentials)
    if profile is None:
        raise credentials_exception
    return profile
