from .base import Base
from .user import User, UserType
from .match import Match
from .chat_room import ChatRoom, canonical_pair
from .message import Message, MessageType

__all__ = [
    "Base",
    "User",
    "UserType",
    "Match",
    "ChatRoom",
    "canonical_pair",
    "Message",
    "MessageType",
]
