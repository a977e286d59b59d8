from typing import Optional
from datetime import datetime

from .base import CamelModel
from .message import MessageResponse
from .user import UserPublic


class ChatRoomResponse(CamelModel):
    id: int
    user1_id: int
    user2_id: int
    last_message_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class ChatRoomSummary(ChatRoomResponse):
    other_user: UserPublic
    last_message: Optional[MessageResponse] = None
    unread_count: int = 0
