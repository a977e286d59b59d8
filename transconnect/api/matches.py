from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from transconnect.auth import get_current_active_user
from transconnect.database import get_db
from transconnect.models.user import User
from transconnect.schemas.match import MatchCreate, MatchResponse, MatchWithUser
from transconnect.schemas.user import UserPublic
from transconnect.services.matching import MatchingService

router = APIRouter()


@router.post("", response_model=MatchResponse, status_code=status.HTTP_201_CREATED)
async def create_match(
    match_data: MatchCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Record a like or pass. A second decision on the same user is rejected."""
    return await MatchingService(db).record_decision(
        current_user.id, match_data.target_user_id, match_data.is_like
    )


@router.get("", response_model=List[MatchWithUser])
async def get_matches(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    matches = await MatchingService(db).liked_matches(current_user.id)
    return [
        MatchWithUser(
            **MatchResponse.model_validate(match).model_dump(),
            user=UserPublic.model_validate(match.target_user),
        )
        for match in matches
    ]
