import logging
from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from sqlalchemy.exc import IntegrityError

from transconnect.exceptions import ValidationError, ConflictError
from transconnect.models.base import utcnow
from transconnect.models.chat_room import ChatRoom, canonical_pair

logger = logging.getLogger(__name__)


class ChatRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_or_create_room(self, user_a: int, user_b: int) -> ChatRoom:
        """Return the single room for the unordered pair ``{user_a, user_b}``.

        The pair is stored canonically (lower id first) under a unique
        constraint. The insert runs inside a SAVEPOINT: when two first-contact
        calls race, the loser rolls back only that savepoint and re-reads the
        winner's row, leaving the rest of the caller's session intact.
        Committing is left to the caller.
        """
        if user_a == user_b:
            raise ValidationError("A chat room needs two different users")

        existing_room = await self.find_room(user_a, user_b)
        if existing_room:
            return existing_room

        user1_id, user2_id = canonical_pair(user_a, user_b)
        room = ChatRoom(user1_id=user1_id, user2_id=user2_id)
        try:
            async with self.db.begin_nested():
                self.db.add(room)
                await self.db.flush()
        except IntegrityError:
            logger.info(f"Chat room {user1_id}:{user2_id} created concurrently, re-fetching")
            room = await self.find_room(user_a, user_b)
            if room is None:
                # constraint fired for something other than the pair key
                raise ConflictError(f"Could not resolve chat room {user1_id}:{user2_id}")
            return room

        logger.info(f"Created chat room {room.id} for users {user1_id}:{user2_id}")
        return room

    async def find_room(self, user_a: int, user_b: int) -> Optional[ChatRoom]:
        user1_id, user2_id = canonical_pair(user_a, user_b)
        result = await self.db.execute(
            select(ChatRoom).where(
                ChatRoom.user1_id == user1_id,
                ChatRoom.user2_id == user2_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_by_id(self, room_id: int) -> Optional[ChatRoom]:
        result = await self.db.execute(select(ChatRoom).where(ChatRoom.id == room_id))
        return result.scalar_one_or_none()

    async def get_user_rooms(self, user_id: int) -> List[ChatRoom]:
        result = await self.db.execute(
            select(ChatRoom)
            .where(or_(ChatRoom.user1_id == user_id, ChatRoom.user2_id == user_id))
            .order_by(ChatRoom.updated_at.desc(), ChatRoom.id.desc())
        )
        return list(result.scalars().all())

    def touch(self, room: ChatRoom, last_message_id: int) -> None:
        """Point the room at its newest message; committed by the caller."""
        room.last_message_id = last_message_id
        room.updated_at = utcnow()
