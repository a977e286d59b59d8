import json
import logging
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as FrameError
from sqlalchemy.exc import DBAPIError

from transconnect.auth import resolve_socket_user_id
from transconnect.database import session_scope
from transconnect.exceptions import ChatError, Unauthorized
from transconnect.repositories.user_repository import UserRepository
from transconnect.schemas.message import TextDraft, to_message_response
from transconnect.schemas.websocket import ChatMessageFrame, IdentifyFrame, TypingIndicatorFrame
from transconnect.services.messaging import MessagingService
from transconnect.websocket_manager import manager

logger = logging.getLogger(__name__)

router = APIRouter()


class SocketSession:
    """One socket's lifecycle: Connected -> Identified -> Closed."""

    def __init__(self, websocket: WebSocket, authenticated_user_id: Optional[int]):
        self.websocket = websocket
        self.authenticated_user_id = authenticated_user_id
        self.user_id: Optional[int] = None

    async def send_error(self, message: str):
        await self.websocket.send_json({"type": "error", "message": message})

    async def handle(self, frame: dict):
        frame_type = frame.get("type")

        if frame_type == "identify":
            await self.identify(IdentifyFrame.model_validate(frame))

        elif frame_type == "ping":
            await self.websocket.send_json({"type": "pong"})

        elif self.user_id is None:
            raise Unauthorized("Send an identify frame first")

        elif frame_type == "message":
            await self.send_message(ChatMessageFrame.model_validate(frame))

        elif frame_type == "typing_indicator":
            await self.typing_indicator(TypingIndicatorFrame.model_validate(frame))

        else:
            await self.send_error(f"Unknown message type: {frame_type}")

    async def identify(self, frame: IdentifyFrame):
        if self.authenticated_user_id is None or frame.user_id != self.authenticated_user_id:
            raise Unauthorized("Socket session does not match this user")

        if self.user_id is None:
            manager.register(frame.user_id, self.websocket)
            self.user_id = frame.user_id
            async with session_scope() as db:
                await UserRepository(db).set_online_status(self.user_id, True)

        await self.websocket.send_json({"type": "auth_success"})

    async def send_message(self, frame: ChatMessageFrame):
        # Persist first; nothing is pushed for a message that failed to save
        async with session_scope() as db:
            message = await MessagingService(db).send(
                self.user_id,
                TextDraft(receiver_id=frame.receiver_id, content=frame.content),
            )

        payload = to_message_response(message).to_wire()
        await manager.send(
            frame.receiver_id,
            {"type": "new_message", "message": payload, "senderId": self.user_id},
        )
        await self.websocket.send_json({"type": "message_sent", "message": payload})

    async def typing_indicator(self, frame: TypingIndicatorFrame):
        async with session_scope() as db:
            room = await MessagingService(db).get_room_for_participant(frame.chat_room_id, self.user_id)

        await manager.send(
            room.other_participant(self.user_id),
            {
                "type": "typing_indicator",
                "chatRoomId": room.id,
                "isTyping": frame.is_typing,
                "userId": self.user_id,
            },
        )

    async def close(self):
        if self.user_id is None:
            return
        if manager.unregister(self.user_id, self.websocket):
            async with session_scope() as db:
                await UserRepository(db).set_online_status(self.user_id, False)


@router.websocket("/ws")
async def websocket_gateway(websocket: WebSocket):
    await websocket.accept()
    session = SocketSession(websocket, resolve_socket_user_id(websocket))

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))

            try:
                data = message.get("text")
                if data is None:
                    raise ValueError("binary frames are not supported")
                frame = json.loads(data)
                if not isinstance(frame, dict):
                    raise ValueError("frame must be an object")
                await session.handle(frame)
            except (json.JSONDecodeError, ValueError, FrameError):
                await session.send_error("Invalid message format")
            except ChatError as e:
                await session.send_error(e.message)
            except DBAPIError:
                logger.exception(f"Database error on socket of user {session.user_id}")
                await session.send_error("Temporary server error, please retry")

    except WebSocketDisconnect:
        pass
    finally:
        await session.close()
