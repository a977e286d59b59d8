from typing import Dict, Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, and_, or_, func

from transconnect.models.message import Message, MessageType


class MessageRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    def add(
        self,
        sender_id: int,
        receiver_id: int,
        content: str,
        message_type: MessageType = MessageType.TEXT,
        image_url: Optional[str] = None,
    ) -> Message:
        """Stage a new message in the session; the caller flushes/commits."""
        message = Message(
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
            message_type=message_type,
            image_url=image_url,
        )
        self.db.add(message)
        return message

    async def get_by_ids(self, message_ids: List[int]) -> List[Message]:
        if not message_ids:
            return []
        result = await self.db.execute(select(Message).where(Message.id.in_(message_ids)))
        return list(result.scalars().all())

    async def get_conversation(self, user_id: int, other_user_id: int, limit: int = 50) -> List[Message]:
        """Most recent ``limit`` messages between two users, oldest first."""
        result = await self.db.execute(
            select(Message)
            .where(
                or_(
                    and_(Message.sender_id == user_id, Message.receiver_id == other_user_id),
                    and_(Message.sender_id == other_user_id, Message.receiver_id == user_id),
                )
            )
            .order_by(Message.created_at.desc(), Message.id.desc())
            .limit(limit)
        )
        newest_first = list(result.scalars().all())
        newest_first.reverse()
        return newest_first

    async def mark_read(self, receiver_id: int, sender_id: int) -> int:
        result = await self.db.execute(
            update(Message)
            .where(
                and_(
                    Message.receiver_id == receiver_id,
                    Message.sender_id == sender_id,
                    Message.is_read.is_(False),
                )
            )
            .values(is_read=True)
        )
        await self.db.commit()
        return result.rowcount or 0

    async def get_unread_counts(self, receiver_id: int) -> Dict[int, int]:
        """Unread messages addressed to ``receiver_id``, keyed by sender."""
        result = await self.db.execute(
            select(Message.sender_id, func.count(Message.id))
            .where(
                and_(Message.receiver_id == receiver_id, Message.is_read.is_(False))
            )
            .group_by(Message.sender_id)
        )
        return {sender_id: count for sender_id, count in result.all()}
