import logging
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from transconnect.exceptions import ValidationError, NotFound
from transconnect.models.match import Match
from transconnect.models.user import User
from transconnect.repositories.chat_repository import ChatRepository
from transconnect.repositories.match_repository import MatchRepository
from transconnect.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


class MatchingService:
    """Swipe decisions, mutual-match detection and the discovery feeds.

    Each ordered pair gets exactly one decision. Re-swiping a target the actor
    already decided on is rejected rather than overwritten, so a pass stays
    terminal and a mutual match never reverts.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.users = UserRepository(db)
        self.matches = MatchRepository(db)
        self.rooms = ChatRepository(db)

    async def record_decision(self, actor_id: int, target_user_id: int, is_like: bool) -> Match:
        if actor_id == target_user_id:
            raise ValidationError("You cannot swipe on yourself")

        target = await self.users.get_by_id(target_user_id)
        if target is None or target.is_blocked:
            raise NotFound("User not found")

        existing = await self.matches.get_edge(actor_id, target_user_id)
        if existing is not None:
            # A like whose settlement failed earlier gets settled on the retry
            if existing.is_like and not existing.is_mutual:
                await self._settle_mutual(actor_id, target_user_id)
            raise ValidationError("You have already decided on this user")

        try:
            match = await self.matches.create(actor_id, target_user_id, is_like)
        except IntegrityError:
            await self.db.rollback()
            raise ValidationError("You have already decided on this user")

        # Runs after the edge is committed: of two concurrent likers, the one
        # committing last always sees both edges.
        if is_like and await self._settle_mutual(actor_id, target_user_id):
            await self.db.refresh(match)

        return match

    async def _settle_mutual(self, user_a: int, user_b: int) -> bool:
        """Flag the pair mutual and open its room in one commit."""
        if not await self.matches.settle_mutual(user_a, user_b):
            return False
        await self.rooms.get_or_create_room(user_a, user_b)
        await self.db.commit()
        logger.info(f"Mutual match between users {user_a} and {user_b}")
        return True

    async def liked_matches(self, actor_id: int) -> List[Match]:
        return await self.matches.get_liked(actor_id)

    async def recommended(self, viewer: User, limit: int) -> List[User]:
        return await self.users.get_recommended(viewer, limit)

    async def public_escorts(self, limit: int) -> List[User]:
        return await self.users.get_public_escorts(limit)
