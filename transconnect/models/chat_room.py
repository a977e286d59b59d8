from typing import Tuple

from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship

from .base import BaseModel


def canonical_pair(user_a: int, user_b: int) -> Tuple[int, int]:
    """Deterministic (low, high) key for an unordered pair of user ids."""
    return (user_a, user_b) if user_a < user_b else (user_b, user_a)


class ChatRoom(BaseModel):
    __tablename__ = "chat_rooms"

    user1_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    user2_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # Display pointer only; history is read from messages by sender/receiver
    last_message_id = Column(Integer, ForeignKey("messages.id"), nullable=True)

    last_message = relationship("Message", foreign_keys=[last_message_id])

    __table_args__ = (
        CheckConstraint("user1_id < user2_id", name="chat_room_canonical_order"),
        UniqueConstraint("user1_id", "user2_id", name="unique_chat_room_pair"),
    )

    def has_participant(self, user_id: int) -> bool:
        return user_id in (self.user1_id, self.user2_id)

    def other_participant(self, user_id: int) -> int:
        return self.user2_id if self.user1_id == user_id else self.user1_id
