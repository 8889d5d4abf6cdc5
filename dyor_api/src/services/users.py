from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.errors import BadRequestError, NotFoundError
from src.db.models.users import User, UserFollow
from src.repositories.comments import CommentRepository
from src.repositories.gamification import ReputationRepository
from src.repositories.users import FollowRepository, UserRepository
from src.schemas.auth import UserRead
from src.schemas.common import PageMeta
from src.schemas.users import FollowNotificationUpdate, UserPage, UserStats, UserUpdate
from src.services.base import BaseService

logger = logging.getLogger(__name__)


class UserService(BaseService):
    """Profiles, public statistics and follow relationships."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = UserRepository(session)
        self.follows = FollowRepository(session)

    # PUBLIC_INTERFACE
    async def get_by_username(self, username: str) -> User:
        user = await self.repo.get_user_by_username(username)
        if user is None:
            raise NotFoundError("User not found")
        return user

    # PUBLIC_INTERFACE
    async def get_by_id(self, user_id: UUID) -> User:
        user = await self.repo.get_user_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    # PUBLIC_INTERFACE
    async def update_profile(self, user: User, payload: UserUpdate) -> User:
        for field, value in payload.model_dump(exclude_unset=True).items():
            if field == "display_name" and not value:
                continue
            setattr(user, field, value)
        await self.session.commit()
        await self.repo.refresh(user)
        return user

    # PUBLIC_INTERFACE
    async def get_stats(self, username: str) -> UserStats:
        user = await self.get_by_username(username)
        comments = CommentRepository(self.session)
        reputation = await ReputationRepository(self.session).get(user.id)
        return UserStats(
            comments=await comments.count_by_user(user.id, top_level=False),
            posts=await comments.count_by_user(user.id, top_level=True),
            upvotes_received=await comments.sum_upvotes_received(user.id),
            followers=await self.follows.count_followers(user.id),
            following=await self.follows.count_following(user.id),
            total_reputation=reputation.total_points if reputation else 0,
        )

    # Follows

    # PUBLIC_INTERFACE
    async def follow(self, follower: User, followed_id: UUID) -> UserFollow:
        """Follow a user; following someone twice returns the existing relationship."""
        if follower.id == followed_id:
            raise BadRequestError("You cannot follow yourself")
        await self.get_by_id(followed_id)
        existing = await self.follows.get(follower.id, followed_id)
        if existing is not None:
            return existing
        follow = await self.follows.create(follower.id, followed_id)
        await self.session.commit()
        logger.info("User %s followed %s", follower.id, followed_id)
        return follow

    # PUBLIC_INTERFACE
    async def unfollow(self, follower: User, followed_id: UUID) -> None:
        existing = await self.follows.get(follower.id, followed_id)
        if existing is None:
            return
        await self.follows.delete(existing)
        await self.session.commit()

    # PUBLIC_INTERFACE
    async def is_following(self, follower: User, followed_id: UUID) -> bool:
        return await self.follows.get(follower.id, followed_id) is not None

    # PUBLIC_INTERFACE
    async def update_follow_notifications(
        self, follower: User, followed_id: UUID, payload: FollowNotificationUpdate
    ) -> UserFollow:
        follow = await self.follows.get(follower.id, followed_id)
        if follow is None:
            raise NotFoundError("You are not following this user")
        for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(follow, field, value)
        await self.session.commit()
        return follow

    # PUBLIC_INTERFACE
    async def list_followers(self, user_id: UUID, *, page: int, limit: int) -> UserPage:
        await self.get_by_id(user_id)
        users, total = await self.follows.list_followers(user_id, limit=limit, offset=(page - 1) * limit)
        return UserPage(data=[UserRead.model_validate(u) for u in users], meta=PageMeta.build(total, page, limit))

    # PUBLIC_INTERFACE
    async def list_following(self, user_id: UUID, *, page: int, limit: int) -> UserPage:
        await self.get_by_id(user_id)
        users, total = await self.follows.list_following(user_id, limit=limit, offset=(page - 1) * limit)
        return UserPage(data=[UserRead.model_validate(u) for u in users], meta=PageMeta.build(total, page, limit))
