from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import get_current_user, get_session
from src.db.models.users import User
from src.schemas.auth import UserRead
from src.schemas.comments import CommentPage
from src.schemas.common import MessageResponse
from src.schemas.gamification import UserBadgeRead
from src.schemas.users import (
    FollowNotificationUpdate,
    FollowRead,
    FollowStatus,
    UserPage,
    UserStats,
    UserUpdate,
)
from src.services.badges import BadgeService
from src.services.comments import CommentService
from src.services.users import UserService

router = APIRouter(prefix="/users", tags=["Users"])


# PUBLIC_INTERFACE
@router.get("/me", response_model=UserRead, summary="Current user")
async def get_me(current_user: User = Depends(get_current_user)) -> UserRead:
    return UserRead.model_validate(current_user)


# PUBLIC_INTERFACE
@router.patch(
    "/me",
    response_model=UserRead,
    summary="Update profile",
    description="Update display name, avatar URL and bio of the current user.",
)
async def update_me(
    payload: UserUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> UserRead:
    user = await UserService(session).update_profile(current_user, payload)
    return UserRead.model_validate(user)


# PUBLIC_INTERFACE
@router.get(
    "/{username}",
    response_model=UserRead,
    summary="Get user by username",
    description="Case-insensitive lookup of a public profile.",
)
async def get_user(username: str, session: AsyncSession = Depends(get_session)) -> UserRead:
    user = await UserService(session).get_by_username(username)
    return UserRead.model_validate(user)


# PUBLIC_INTERFACE
@router.get("/{username}/stats", response_model=UserStats, summary="User statistics")
async def get_user_stats(username: str, session: AsyncSession = Depends(get_session)) -> UserStats:
    """Comment, post, upvote, follower and following counts plus total reputation."""
    return await UserService(session).get_stats(username)


# PUBLIC_INTERFACE
@router.get("/{username}/comments", response_model=CommentPage, summary="User comments")
async def get_user_comments(
    username: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    session: AsyncSession = Depends(get_session),
) -> CommentPage:
    user = await UserService(session).get_by_username(username)
    return await CommentService(session).list_by_user(user.id, page=page, limit=limit)


# PUBLIC_INTERFACE
@router.get(
    "/{username}/badges",
    response_model=List[UserBadgeRead],
    summary="Displayed badges",
    description="Badges the user chose to show on their profile.",
)
async def get_user_badges(username: str, session: AsyncSession = Depends(get_session)) -> List[UserBadgeRead]:
    user = await UserService(session).get_by_username(username)
    return await BadgeService(session).list_user_badges(user.id, displayed_only=True)


# PUBLIC_INTERFACE
@router.post(
    "/{user_id}/follow",
    response_model=FollowRead,
    summary="Follow user",
    description="Follow another user. Following someone already followed returns the existing relationship.",
)
async def follow_user(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> FollowRead:
    follow = await UserService(session).follow(current_user, user_id)
    return FollowRead.model_validate(follow)


# PUBLIC_INTERFACE
@router.delete("/{user_id}/follow", response_model=MessageResponse, summary="Unfollow user")
async def unfollow_user(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    await UserService(session).unfollow(current_user, user_id)
    return MessageResponse(message="Unfollowed")


# PUBLIC_INTERFACE
@router.get("/{user_id}/follow-status", response_model=FollowStatus, summary="Follow status")
async def follow_status(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> FollowStatus:
    return FollowStatus(is_following=await UserService(session).is_following(current_user, user_id))


# PUBLIC_INTERFACE
@router.patch(
    "/{user_id}/follow/notifications",
    response_model=FollowRead,
    summary="Follow notification settings",
    description="Choose which activity of a followed user (predictions, comments, votes) produces notifications.",
)
async def update_follow_notifications(
    user_id: UUID,
    payload: FollowNotificationUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> FollowRead:
    follow = await UserService(session).update_follow_notifications(current_user, user_id, payload)
    return FollowRead.model_validate(follow)


# PUBLIC_INTERFACE
@router.get("/{user_id}/followers", response_model=UserPage, summary="Followers")
async def list_followers(
    user_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
) -> UserPage:
    return await UserService(session).list_followers(user_id, page=page, limit=limit)


# PUBLIC_INTERFACE
@router.get("/{user_id}/following", response_model=UserPage, summary="Following")
async def list_following(
    user_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
) -> UserPage:
    return await UserService(session).list_following(user_id, page=page, limit=limit)
