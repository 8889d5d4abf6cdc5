from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import get_current_user, get_session
from src.db.models.users import User
from src.schemas.feed import FeedPage
from src.services.feed import FeedService

router = APIRouter(prefix="/feed", tags=["Feed"])


# PUBLIC_INTERFACE
@router.get(
    "/following",
    response_model=FeedPage,
    summary="Following feed",
    description="Posts, replies, votes and token calls of the users you follow, newest first.",
)
async def get_following_feed(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> FeedPage:
    return await FeedService(session).get_following_feed(current_user, page=page, limit=limit)
