# servicehub/auth/auth_controller.py

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from servicehub.auth.dependencies import get_current_user
from servicehub.auth import schemas
from servicehub.common.database.database import get_db_session
from servicehub.models.models import Profile
from servicehub.modules.roles.roles_service import get_provider_for_user

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=schemas.ProfileResponse)
async def get_me(
    db: AsyncSession = Depends(get_db_session),
    current_user: Profile = Depends(get_current_user)
):
    """Get the authenticated profile, including its provider id when the user owns one."""
    provider = await get_provider_for_user(db, current_user.id)
    return schemas.ProfileResponse(
        id=str(current_user.id),
        first_name=current_user.first_name,
        last_name=current_user.last_name,
        email=current_user.email,
        profile_photo_url=current_user.profile_photo_url,
        service_provider_id=str(provider.id) if provider else None,
    )
