# servicehub/auth/schemas.py

from typing import Optional
from pydantic import BaseModel


class ProfileResponse(BaseModel):
    """Profile of the authenticated caller"""
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    profile_photo_url: Optional[str] = None
    service_provider_id: Optional[str] = None

    class Config:
        from_attributes = True
