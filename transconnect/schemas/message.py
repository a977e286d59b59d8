from typing import Annotated, Any, Literal, Optional, Union
from datetime import datetime

from pydantic import Discriminator, Field, Tag

from transconnect.models.message import Message, MessageType
from .base import CamelModel


# Drafts: what a sender hands to the messaging service

class TextDraft(CamelModel):
    kind: Literal["text"] = "text"
    receiver_id: int
    content: str = ""


class ImageDraft(CamelModel):
    kind: Literal["image"] = "image"
    receiver_id: int
    image_url: str
    content: str = ""


MessageDraft = Annotated[Union[TextDraft, ImageDraft], Field(discriminator="kind")]


class SendMessageRequest(CamelModel):
    receiver_id: int
    content: str = ""


# Persisted messages, tagged by messageType

class TextMessage(CamelModel):
    id: int
    sender_id: int
    receiver_id: int
    message_type: MessageType = MessageType.TEXT
    content: str
    is_read: bool
    created_at: datetime


class ImageMessage(CamelModel):
    id: int
    sender_id: int
    receiver_id: int
    message_type: MessageType = MessageType.IMAGE
    content: str
    image_url: str
    is_read: bool
    created_at: datetime


def _message_tag(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        kind = value.get("message_type", value.get("messageType"))
    else:
        kind = getattr(value, "message_type", None)
    if kind is None:
        return None
    return MessageType(kind).value


MessageResponse = Annotated[
    Union[
        Annotated[TextMessage, Tag(MessageType.TEXT.value)],
        Annotated[ImageMessage, Tag(MessageType.IMAGE.value)],
    ],
    Discriminator(_message_tag),
]


def to_message_response(message: Message) -> Union[TextMessage, ImageMessage]:
    if message.message_type == MessageType.IMAGE:
        return ImageMessage.model_validate(message)
    return TextMessage.model_validate(message)


class MarkReadResponse(CamelModel):
    success: bool = True
    updated: int


class UnreadCountResponse(CamelModel):
    count: int
