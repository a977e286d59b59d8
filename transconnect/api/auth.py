import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from transconnect.auth import authenticate_user, get_current_user
from transconnect.config import settings
from transconnect.database import get_db
from transconnect.exceptions import Unauthorized, ValidationError
from transconnect.models.user import User
from transconnect.repositories.user_repository import UserRepository
from transconnect.schemas.user import UserCreate, UserLogin, UserResponse, Token
from transconnect.security import create_access_token

logger = logging.getLogger(__name__)

router = APIRouter()


def _start_session(response: Response, user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id)})
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        samesite="lax",
        secure=not settings.DEBUG,
    )
    return {
        "access_token": token,
        "token_type": "bearer",
        "expires_in": settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        "user": UserResponse.model_validate(user),
    }


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
async def register_user(user_data: UserCreate, response: Response, db: AsyncSession = Depends(get_db)):
    user_repo = UserRepository(db)

    if await user_repo.get_by_email(user_data.email):
        raise ValidationError("An account with this email already exists")

    user = await user_repo.create(user_data)
    logger.info(f"Registered user {user.id} ({user.user_type.value})")
    return _start_session(response, user)


@router.post("/login", response_model=Token)
async def login_user(credentials: UserLogin, response: Response, db: AsyncSession = Depends(get_db)):
    user = await authenticate_user(db, credentials.email, credentials.password)
    if not user:
        raise Unauthorized("Invalid email or password")

    await UserRepository(db).set_online_status(user.id, True)
    await db.refresh(user)
    return _start_session(response, user)


@router.post("/logout")
async def logout_user(
    response: Response,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await UserRepository(db).set_online_status(current_user.id, False)
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return {"success": True}


@router.get("/user", response_model=UserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    return current_user
