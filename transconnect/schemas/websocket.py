from .base import CamelModel


class IdentifyFrame(CamelModel):
    user_id: int


class ChatMessageFrame(CamelModel):
    receiver_id: int
    content: str = ""


class TypingIndicatorFrame(CamelModel):
    chat_room_id: int
    is_typing: bool
