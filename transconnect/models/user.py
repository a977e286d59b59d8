from enum import Enum as PyEnum

from sqlalchemy import Column, String, Boolean, Text, Integer, DateTime, JSON, Enum
from sqlalchemy.orm import relationship

from .base import BaseModel


class UserType(str, PyEnum):
    ESCORT = "escort"
    CUSTOMER = "customer"


class User(BaseModel):
    __tablename__ = "users"

    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=True)

    bio = Column(Text, nullable=True)
    profile_image_url = Column(Text, nullable=True)
    profile_images = Column(JSON, default=list, nullable=False)
    services = Column(JSON, default=list, nullable=False)
    hourly_rate = Column(Integer, nullable=True)  # EUR
    location = Column(String(255), nullable=True)

    user_type = Column(
        Enum(UserType, name="user_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=UserType.CUSTOMER,
        index=True,
    )

    # Presence, written by the realtime gateway and login/logout
    is_online = Column(Boolean, default=False, nullable=False)
    last_seen = Column(DateTime, nullable=True)

    is_premium = Column(Boolean, default=False, nullable=False)
    is_blocked = Column(Boolean, default=False, nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)

    sent_messages = relationship("Message", foreign_keys="Message.sender_id", back_populates="sender")
    decisions = relationship("Match", foreign_keys="Match.actor_id", back_populates="actor")

    @property
    def is_active(self) -> bool:
        return not self.is_blocked
