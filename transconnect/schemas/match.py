from datetime import datetime

from .base import CamelModel
from .user import UserPublic


class MatchCreate(CamelModel):
    target_user_id: int
    is_like: bool


class MatchResponse(CamelModel):
    id: int
    actor_id: int
    target_user_id: int
    is_like: bool
    is_mutual: bool
    created_at: datetime


class MatchWithUser(MatchResponse):
    user: UserPublic
