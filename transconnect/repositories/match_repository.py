from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, and_, or_, func
from sqlalchemy.orm import joinedload

from transconnect.models.match import Match


def _pair_edges(user_a: int, user_b: int):
    return or_(
        and_(Match.actor_id == user_a, Match.target_user_id == user_b),
        and_(Match.actor_id == user_b, Match.target_user_id == user_a),
    )


class MatchRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_edge(self, actor_id: int, target_user_id: int) -> Optional[Match]:
        result = await self.db.execute(
            select(Match).where(
                and_(Match.actor_id == actor_id, Match.target_user_id == target_user_id)
            )
        )
        return result.scalar_one_or_none()

    async def create(self, actor_id: int, target_user_id: int, is_like: bool) -> Match:
        """Insert one directed decision. Raises IntegrityError on a duplicate pair."""
        match = Match(actor_id=actor_id, target_user_id=target_user_id, is_like=is_like)
        self.db.add(match)
        await self.db.commit()
        await self.db.refresh(match)
        return match

    async def settle_mutual(self, user_a: int, user_b: int) -> bool:
        """Flag both edges mutual once both directed likes exist.

        Both rows are flipped by a single UPDATE so no reader ever sees only
        one side marked. Safe to call repeatedly. Not committed here; the
        caller commits together with the pair's chat room.
        """
        likes = await self.db.execute(
            select(func.count(Match.id)).where(
                and_(_pair_edges(user_a, user_b), Match.is_like.is_(True))
            )
        )
        if (likes.scalar() or 0) < 2:
            return False

        await self.db.execute(
            update(Match)
            .where(_pair_edges(user_a, user_b))
            .values(is_mutual=True)
        )
        return True

    async def get_liked(self, actor_id: int) -> List[Match]:
        result = await self.db.execute(
            select(Match)
            .options(joinedload(Match.target_user))
            .where(and_(Match.actor_id == actor_id, Match.is_like.is_(True)))
            .order_by(Match.created_at.desc(), Match.id.desc())
        )
        return list(result.scalars().all())

