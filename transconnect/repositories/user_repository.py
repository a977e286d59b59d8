from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update

from transconnect.models.base import utcnow
from transconnect.models.match import Match
from transconnect.models.user import User, UserType
from transconnect.schemas.user import UserCreate
from transconnect.security import get_password_hash


def _feed_order():
    # premium first, then online, then most recently active; id breaks ties
    return (
        User.is_premium.desc(),
        User.is_online.desc(),
        User.last_seen.desc().nulls_last(),
        User.id.asc(),
    )


class UserRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, user_data: UserCreate) -> User:
        db_user = User(
            email=user_data.email.lower(),
            password_hash=get_password_hash(user_data.password),
            first_name=user_data.first_name,
            last_name=user_data.last_name,
            user_type=user_data.user_type,
        )
        self.db.add(db_user)
        await self.db.commit()
        await self.db.refresh(db_user)
        return db_user

    async def get_by_id(self, user_id: int) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def get_many(self, user_ids: List[int]) -> List[User]:
        if not user_ids:
            return []
        result = await self.db.execute(select(User).where(User.id.in_(user_ids)))
        return list(result.scalars().all())

    async def set_online_status(self, user_id: int, is_online: bool) -> None:
        await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(is_online=is_online, last_seen=utcnow())
        )
        await self.db.commit()

    async def get_recommended(self, viewer: User, limit: int) -> List[User]:
        decided = select(Match.target_user_id).where(Match.actor_id == viewer.id)

        query = select(User).where(
            User.id != viewer.id,
            User.is_blocked.is_(False),
            User.id.not_in(decided),
        )
        # Customers only discover escorts; escorts see everyone
        if viewer.user_type == UserType.CUSTOMER:
            query = query.where(User.user_type == UserType.ESCORT)

        result = await self.db.execute(query.order_by(*_feed_order()).limit(limit))
        return list(result.scalars().all())

    async def get_public_escorts(self, limit: int) -> List[User]:
        result = await self.db.execute(
            select(User)
            .where(User.user_type == UserType.ESCORT, User.is_blocked.is_(False))
            .order_by(*_feed_order())
            .limit(limit)
        )
        return list(result.scalars().all())
