import base64
import logging
from typing import List

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from transconnect.auth import get_current_active_user
from transconnect.config import settings
from transconnect.database import get_db
from transconnect.exceptions import ValidationError
from transconnect.models.message import Message
from transconnect.models.user import User
from transconnect.schemas.chat import ChatRoomSummary
from transconnect.schemas.message import (
    ImageDraft,
    MarkReadResponse,
    MessageResponse,
    SendMessageRequest,
    TextDraft,
    UnreadCountResponse,
    to_message_response,
)
from transconnect.services.messaging import MessagingService
from transconnect.websocket_manager import manager

logger = logging.getLogger(__name__)

router = APIRouter()


async def push_new_message(message: Message):
    """Best-effort realtime copy of an already persisted message to its receiver."""
    await manager.send(
        message.receiver_id,
        {
            "type": "new_message",
            "message": to_message_response(message).to_wire(),
            "senderId": message.sender_id,
        },
    )


@router.get("/rooms", response_model=List[ChatRoomSummary])
async def get_chat_rooms(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Rooms of the current user with the other participant, last message and unread count"""
    return await MessagingService(db).list_rooms(current_user.id)


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return {"count": await MessagingService(db).unread_total(current_user.id)}


@router.get("/{other_user_id}/messages", response_model=List[MessageResponse])
async def get_messages(
    other_user_id: int,
    limit: int = Query(settings.DEFAULT_MESSAGE_LIMIT, ge=1, le=settings.MAX_PAGE_LIMIT),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Latest messages with another user, oldest first"""
    messages = await MessagingService(db).get_messages(current_user.id, other_user_id, limit)
    return [to_message_response(message) for message in messages]


@router.post("/messages", response_model=MessageResponse)
async def send_message(
    message_data: SendMessageRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    message = await MessagingService(db).send(
        current_user.id,
        TextDraft(receiver_id=message_data.receiver_id, content=message_data.content),
    )
    await push_new_message(message)
    return to_message_response(message)


@router.post("/messages/image", response_model=MessageResponse)
async def send_image_message(
    receiver_id: int = Form(..., alias="receiverId"),
    content: str = Form(""),
    image: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    if image.content_type not in settings.ALLOWED_IMAGE_TYPES:
        raise ValidationError("Invalid file type. Only JPEG, PNG and GIF are allowed.")

    data = await image.read(settings.MAX_IMAGE_BYTES + 1)
    if not data:
        raise ValidationError("No image file provided")
    if len(data) > settings.MAX_IMAGE_BYTES:
        raise ValidationError("Image is too large")

    # Inline data URL; hosting uploads elsewhere is outside this service
    image_url = f"data:{image.content_type};base64,{base64.b64encode(data).decode('ascii')}"
    sender_id = current_user.id

    message = await MessagingService(db).send(
        sender_id,
        ImageDraft(receiver_id=receiver_id, image_url=image_url, content=content),
    )
    logger.info(f"Image message sent from {sender_id} to {receiver_id}")
    await push_new_message(message)
    return to_message_response(message)


@router.put("/{sender_id}/read", response_model=MarkReadResponse)
async def mark_messages_read(
    sender_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    updated = await MessagingService(db).mark_read(current_user.id, sender_id)
    if updated:
        await manager.send(
            sender_id,
            {"type": "messages_read", "readerId": current_user.id, "count": updated},
        )
    return {"success": True, "updated": updated}
