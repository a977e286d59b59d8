from pydantic import Field
from typing import Optional, List
from datetime import datetime

from transconnect.models.user import UserType
from .base import CamelModel


class UserCreate(CamelModel):
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(..., min_length=8)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: Optional[str] = None
    user_type: UserType


class UserLogin(CamelModel):
    email: str
    password: str = Field(..., min_length=1)


class UserPublic(CamelModel):
    id: int
    first_name: str
    last_name: Optional[str] = None
    bio: Optional[str] = None
    profile_image_url: Optional[str] = None
    profile_images: List[str] = []
    services: List[str] = []
    hourly_rate: Optional[int] = None
    location: Optional[str] = None
    user_type: UserType
    is_online: bool
    last_seen: Optional[datetime] = None
    is_premium: bool


class UserResponse(UserPublic):
    email: str
    is_admin: bool
    is_blocked: bool


class Token(CamelModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse
