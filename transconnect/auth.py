from typing import Optional

from fastapi import Depends, Request, WebSocket
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from transconnect.config import settings
from transconnect.database import get_db
from transconnect.exceptions import Unauthorized, Forbidden
from transconnect.models.user import User
from transconnect.repositories.user_repository import UserRepository
from transconnect.security import decode_user_id, verify_password

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


async def authenticate_user(db: AsyncSession, email: str, password: str) -> Optional[User]:
    user = await UserRepository(db).get_by_email(email)
    if not user or not verify_password(password, user.password_hash):
        return None
    return user


async def get_current_user(
    request: Request,
    bearer_token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    token = bearer_token or request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token:
        raise Unauthorized()

    user_id = decode_user_id(token)
    if user_id is None:
        raise Unauthorized()

    user = await UserRepository(db).get_by_id(user_id)
    if user is None:
        raise Unauthorized()
    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_active:
        raise Forbidden("Your account is blocked")
    return current_user


def resolve_socket_user_id(websocket: WebSocket) -> Optional[int]:
    """Identity behind a socket handshake, from ``?token=`` or the session cookie."""
    token = websocket.query_params.get("token") or websocket.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token:
        return None
    return decode_user_id(token)
