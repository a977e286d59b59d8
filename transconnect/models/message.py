from enum import Enum as PyEnum

from sqlalchemy import Column, Integer, ForeignKey, Text, Boolean, Enum, Index, CheckConstraint
from sqlalchemy.orm import relationship

from .base import BaseModel


class MessageType(str, PyEnum):
    TEXT = "text"
    IMAGE = "image"


class Message(BaseModel):
    __tablename__ = "messages"

    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    receiver_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    content = Column(Text, nullable=False, default="")
    message_type = Column(
        Enum(MessageType, name="message_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=MessageType.TEXT,
    )
    image_url = Column(Text, nullable=True)
    # Only ever flips false -> true, by the receiver
    is_read = Column(Boolean, default=False, nullable=False)

    sender = relationship("User", foreign_keys=[sender_id], back_populates="sent_messages")
    receiver = relationship("User", foreign_keys=[receiver_id])

    __table_args__ = (
        Index("ix_messages_pair_created", "sender_id", "receiver_id", "created_at"),
        CheckConstraint(
            "message_type != 'image' OR image_url IS NOT NULL",
            name="image_message_has_url",
        ),
    )
