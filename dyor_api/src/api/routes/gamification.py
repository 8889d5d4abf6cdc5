from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import get_current_user, get_session
from src.db.models.users import User
from src.schemas.gamification import (
    ActivityRead,
    AvailableBadge,
    BadgeDisplayUpdate,
    LeaderboardCategory,
    LeaderboardResponse,
    ReputationRead,
    StreakRead,
    TokenCallLeaderboardPage,
    TokenCallLeaderboardSort,
    UserBadgeRead,
)
from src.services.activity import ActivityService
from src.services.badges import BadgeService
from src.services.leaderboard import LeaderboardService
from src.services.reputation import ReputationService

router = APIRouter(prefix="/gamification", tags=["Gamification"])


# PUBLIC_INTERFACE
@router.get("/streak", response_model=StreakRead, summary="My streak")
async def get_my_streak(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> StreakRead:
    """Current and longest daily streak; is_at_risk is true when today has no activity yet."""
    return await ActivityService(session).get_streak(current_user.id)


# PUBLIC_INTERFACE
@router.get("/activity", response_model=List[ActivityRead], summary="My recent activity")
async def list_my_activity(
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> List[ActivityRead]:
    rows = await ActivityService(session).list_activity(current_user.id, limit=limit)
    return [ActivityRead.model_validate(a) for a in rows]


# PUBLIC_INTERFACE
@router.get("/reputation", response_model=ReputationRead, summary="My reputation")
async def get_my_reputation(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ReputationRead:
    return await ReputationService(session).get_reputation(current_user.id)


# PUBLIC_INTERFACE
@router.get(
    "/leaderboard",
    response_model=LeaderboardResponse,
    summary="Leaderboard",
    description="Top users by total reputation, weekly reputation, current streak or number of posts.",
)
async def get_leaderboard(
    category: LeaderboardCategory = Query(LeaderboardCategory.REPUTATION),
    limit: int = Query(50, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
) -> LeaderboardResponse:
    return await LeaderboardService(session).get_leaderboard(category, limit=limit)


# PUBLIC_INTERFACE
@router.get(
    "/leaderboard/token-calls",
    response_model=TokenCallLeaderboardPage,
    summary="Token call leaderboard",
    description="Users ranked by verified token calls: accuracy rate, successful calls or total calls.",
)
async def get_token_call_leaderboard(
    sort_by: TokenCallLeaderboardSort = Query(TokenCallLeaderboardSort.ACCURACY_RATE),
    page: int = Query(1, ge=1),
    limit: int = Query(25, ge=1, le=50),
    session: AsyncSession = Depends(get_session),
) -> TokenCallLeaderboardPage:
    return await LeaderboardService(session).get_token_call_leaderboard(sort_by=sort_by, page=page, limit=limit)


# PUBLIC_INTERFACE
@router.get("/badges", response_model=List[UserBadgeRead], summary="My badges")
async def list_my_badges(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> List[UserBadgeRead]:
    return await BadgeService(session).list_user_badges(current_user.id)


# PUBLIC_INTERFACE
@router.get(
    "/badges/available",
    response_model=List[AvailableBadge],
    summary="Badge progress",
    description="Every active badge with whether the caller earned it and their current progress value.",
)
async def list_available_badges(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> List[AvailableBadge]:
    return await BadgeService(session).list_available(current_user.id)


# PUBLIC_INTERFACE
@router.patch("/badges/{user_badge_id}/display", response_model=UserBadgeRead, summary="Show or hide badge")
async def set_badge_display(
    user_badge_id: UUID,
    payload: BadgeDisplayUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> UserBadgeRead:
    return await BadgeService(session).set_display(current_user.id, user_badge_id, payload.is_displayed)
