"""Single entry point for persisting and reading direct messages.

REST routes and the websocket ``message`` event both call
:meth:`MessagingService.send`; nothing is broadcast until it returns.
"""
import logging
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from transconnect.exceptions import ValidationError, Forbidden, NotFound
from transconnect.models.chat_room import ChatRoom
from transconnect.models.message import Message, MessageType
from transconnect.models.user import User
from transconnect.repositories.chat_repository import ChatRepository
from transconnect.repositories.message_repository import MessageRepository
from transconnect.repositories.user_repository import UserRepository
from transconnect.schemas.chat import ChatRoomSummary
from transconnect.schemas.message import ImageDraft, MessageDraft, to_message_response
from transconnect.schemas.user import UserPublic

logger = logging.getLogger(__name__)


class MessagingService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.users = UserRepository(db)
        self.rooms = ChatRepository(db)
        self.messages = MessageRepository(db)

    async def get_or_create_room(self, user_a: int, user_b: int) -> ChatRoom:
        room = await self.rooms.get_or_create_room(user_a, user_b)
        await self.db.commit()
        return room

    async def send(self, sender_id: int, draft: MessageDraft) -> Message:
        receiver_id = draft.receiver_id
        if receiver_id == sender_id:
            raise ValidationError("You cannot send a message to yourself")

        if isinstance(draft, ImageDraft):
            if not draft.image_url:
                raise ValidationError("Image messages need an image")
            message_type = MessageType.IMAGE
            image_url = draft.image_url
        else:
            if not draft.content.strip():
                raise ValidationError("Message must not be empty")
            message_type = MessageType.TEXT
            image_url = None

        sender = await self.users.get_by_id(sender_id)
        if sender is None:
            raise NotFound("Sender not found")
        receiver = await self.users.get_by_id(receiver_id)
        if receiver is None:
            raise NotFound("Receiver not found")
        self._check_can_contact(sender, receiver)

        room = await self.rooms.get_or_create_room(sender_id, receiver_id)

        message = self.messages.add(
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=draft.content,
            message_type=message_type,
            image_url=image_url,
        )
        await self.db.flush()
        self.rooms.touch(room, message.id)
        await self.db.commit()
        await self.db.refresh(message)

        logger.info(f"Message {message.id} ({message_type.value}) persisted {sender_id} -> {receiver_id}")
        return message

    def _check_can_contact(self, sender: User, receiver: User) -> None:
        if sender.is_blocked:
            raise Forbidden("Your account is blocked")
        if receiver.is_blocked:
            raise Forbidden("This user cannot be contacted")

    async def get_messages(self, user_id: int, other_user_id: int, limit: int) -> List[Message]:
        if await self.users.get_by_id(other_user_id) is None:
            raise NotFound("User not found")
        return await self.messages.get_conversation(user_id, other_user_id, limit)

    async def mark_read(self, user_id: int, sender_id: int) -> int:
        updated = await self.messages.mark_read(receiver_id=user_id, sender_id=sender_id)
        if updated:
            logger.info(f"User {user_id} read {updated} message(s) from {sender_id}")
        return updated

    async def unread_total(self, user_id: int) -> int:
        counts = await self.messages.get_unread_counts(user_id)
        return sum(counts.values())

    async def list_rooms(self, viewer_id: int) -> List[ChatRoomSummary]:
        rooms = await self.rooms.get_user_rooms(viewer_id)
        if not rooms:
            return []

        other_ids = [room.other_participant(viewer_id) for room in rooms]
        others = {user.id: user for user in await self.users.get_many(other_ids)}
        last_messages = {
            message.id: message
            for message in await self.messages.get_by_ids(
                [room.last_message_id for room in rooms if room.last_message_id]
            )
        }
        # keyed by sender: what this viewer has not read yet
        unread = await self.messages.get_unread_counts(viewer_id)

        summaries = []
        for room in rooms:
            other_id = room.other_participant(viewer_id)
            other_user = others.get(other_id)
            if other_user is None:
                continue
            last_message = last_messages.get(room.last_message_id)
            summaries.append(
                ChatRoomSummary(
                    id=room.id,
                    user1_id=room.user1_id,
                    user2_id=room.user2_id,
                    last_message_id=room.last_message_id,
                    created_at=room.created_at,
                    updated_at=room.updated_at,
                    other_user=UserPublic.model_validate(other_user),
                    last_message=to_message_response(last_message) if last_message else None,
                    unread_count=unread.get(other_id, 0),
                )
            )
        return summaries

    async def get_room_for_participant(self, room_id: int, user_id: int) -> ChatRoom:
        room = await self.rooms.get_by_id(room_id)
        if room is None:
            raise NotFound("Chat room not found")
        if not room.has_participant(user_id):
            raise Forbidden("You are not a participant of this chat room")
        return room
