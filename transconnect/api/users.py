from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from transconnect.auth import get_current_active_user
from transconnect.config import settings
from transconnect.database import get_db
from transconnect.exceptions import NotFound
from transconnect.models.user import User
from transconnect.repositories.user_repository import UserRepository
from transconnect.schemas.user import UserPublic
from transconnect.services.matching import MatchingService

router = APIRouter()


@router.get("/public", response_model=List[UserPublic])
async def get_public_escorts(
    limit: int = Query(settings.DEFAULT_FEED_LIMIT, ge=1, le=settings.MAX_PAGE_LIMIT),
    db: AsyncSession = Depends(get_db),
):
    """Escort profiles visible before login"""
    return await MatchingService(db).public_escorts(limit)


@router.get("/recommended", response_model=List[UserPublic])
async def get_recommended_users(
    limit: int = Query(settings.DEFAULT_FEED_LIMIT, ge=1, le=settings.MAX_PAGE_LIMIT),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Swipe feed: undecided candidates, premium and online users first"""
    return await MatchingService(db).recommended(current_user, limit)


@router.get("/{user_id}", response_model=UserPublic)
async def get_user_by_id(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    user = await UserRepository(db).get_by_id(user_id)
    if not user or user.is_blocked:
        raise NotFound("User not found")
    return user
