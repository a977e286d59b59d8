from sqlalchemy import Column, Integer, ForeignKey, Boolean, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import BaseModel


class Match(BaseModel):
    """Directed swipe edge ``actor -> target``."""

    __tablename__ = "matches"

    actor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    target_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    is_like = Column(Boolean, nullable=False)
    is_mutual = Column(Boolean, default=False, nullable=False)

    actor = relationship("User", foreign_keys=[actor_id], back_populates="decisions")
    target_user = relationship("User", foreign_keys=[target_user_id])

    # One decision per ordered pair; re-swipes are rejected
    __table_args__ = (
        UniqueConstraint("actor_id", "target_user_id", name="unique_match_actor_target"),
    )
