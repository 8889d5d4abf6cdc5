from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import Text, and_, cast, exists, func, or_, select

from src.db.models.comments import Comment
from src.db.models.gamification import Badge, UserActivity, UserBadge, UserReputation, UserStreak
from src.db.models.token_calls import TokenCall
from src.db.models.users import User, UserFollow
from .base import BaseRepository


class ActivityRepository(BaseRepository):
    """Repository for the activity log and daily streaks."""

    async def add_activity(
        self, user_id: UUID, activity_type: str, entity_id: Optional[str], entity_type: Optional[str]
    ) -> UserActivity:
        activity = UserActivity(
            user_id=user_id, activity_type=activity_type, entity_id=entity_id, entity_type=entity_type
        )
        await self.add(activity)
        await self.flush()
        return activity

    async def list_recent(self, user_id: UUID, *, limit: int) -> List[UserActivity]:
        stmt = (
            select(UserActivity)
            .where(UserActivity.user_id == user_id)
            .order_by(UserActivity.created_at.desc())
            .limit(limit)
        )
        return list(await self.scalars(stmt))

    async def count_since(self, user_id: UUID, since: datetime) -> int:
        return await self.count(
            select(UserActivity.id).where(UserActivity.user_id == user_id, UserActivity.created_at >= since)
        )

    async def list_following_feed(
        self, follower_id: UUID, activity_types: Sequence[str], *, limit: int, offset: int
    ) -> tuple[List[UserActivity], int]:
        """
        Activities of the users `follower_id` follows, newest first.

        Entries whose comment was deleted or removed, or whose token call no longer
        exists, are excluded before paging.
        """
        comment_alive = exists().where(
            cast(Comment.id, Text) == UserActivity.entity_id,
            Comment.deleted_at.is_(None),
            Comment.removed_by_id.is_(None),
        )
        call_alive = exists().where(cast(TokenCall.id, Text) == UserActivity.entity_id)
        followed = select(UserFollow.followed_id).where(UserFollow.follower_id == follower_id)
        base = select(UserActivity).where(
            UserActivity.user_id.in_(followed),
            UserActivity.activity_type.in_(list(activity_types)),
            or_(
                and_(UserActivity.entity_type == "comment", comment_alive),
                and_(UserActivity.entity_type == "token_call", call_alive),
            ),
        )
        total = await self.count(base)
        stmt = base.order_by(UserActivity.created_at.desc(), UserActivity.id.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt)), total

    async def get_streak(self, user_id: UUID) -> Optional[UserStreak]:
        return await self.scalar_one_or_none(select(UserStreak).where(UserStreak.user_id == user_id))

    async def get_or_create_streak(self, user_id: UUID) -> UserStreak:
        streak = await self.get_streak(user_id)
        if streak is None:
            streak = UserStreak(user_id=user_id, current_streak=0, longest_streak=0)
            await self.add(streak)
            await self.flush()
        return streak

    async def list_streaks_active_between(self, start: datetime, end: datetime) -> List[UserStreak]:
        """Streaks whose last activity falls in [start, end) and are still running."""
        stmt = select(UserStreak).where(
            UserStreak.current_streak > 0,
            UserStreak.last_activity_date >= start,
            UserStreak.last_activity_date < end,
        )
        return list(await self.scalars(stmt))

    async def list_lapsed_streaks(self, before: datetime) -> List[UserStreak]:
        stmt = select(UserStreak).where(
            UserStreak.current_streak > 0, UserStreak.last_activity_date < before
        )
        return list(await self.scalars(stmt))

    async def top_streaks(self, *, limit: int) -> List[tuple[User, int]]:
        stmt = (
            select(User, UserStreak.longest_streak)
            .join(UserStreak, UserStreak.user_id == User.id)
            .where(UserStreak.longest_streak > 0)
            .order_by(UserStreak.longest_streak.desc(), UserStreak.current_streak.desc())
            .limit(limit)
        )
        res = await self.execute(stmt)
        return [(row[0], int(row[1])) for row in res.all()]

    async def top_posters(self, *, limit: int) -> List[tuple[User, int]]:
        posts = func.count(Comment.id).label("posts")
        stmt = (
            select(User, posts)
            .join(Comment, Comment.user_id == User.id)
            .where(Comment.parent_id.is_(None), Comment.deleted_at.is_(None))
            .group_by(User.id)
            .order_by(posts.desc())
            .limit(limit)
        )
        res = await self.execute(stmt)
        return [(row[0], int(row[1])) for row in res.all()]


class ReputationRepository(BaseRepository):
    """Repository for accumulated reputation points."""

    async def get(self, user_id: UUID) -> Optional[UserReputation]:
        return await self.scalar_one_or_none(select(UserReputation).where(UserReputation.user_id == user_id))

    async def get_or_create(self, user_id: UUID) -> UserReputation:
        rep = await self.get(user_id)
        if rep is None:
            rep = UserReputation(user_id=user_id, total_points=0, weekly_points=0)
            await self.add(rep)
            await self.flush()
        return rep

    async def list_all(self) -> List[UserReputation]:
        return list(await self.scalars(select(UserReputation)))

    async def top(self, *, weekly: bool, limit: int) -> List[tuple[User, int]]:
        column = UserReputation.weekly_points if weekly else UserReputation.total_points
        stmt = (
            select(User, column)
            .join(UserReputation, UserReputation.user_id == User.id)
            .where(column > 0)
            .order_by(column.desc())
            .limit(limit)
        )
        res = await self.execute(stmt)
        return [(row[0], int(row[1])) for row in res.all()]


class BadgeRepository(BaseRepository):
    """Repository for badge definitions and awarded badges."""

    async def get(self, badge_id: UUID) -> Optional[Badge]:
        return await self.scalar_one_or_none(select(Badge).where(Badge.id == badge_id))

    async def get_by_name(self, name: str) -> Optional[Badge]:
        return await self.scalar_one_or_none(select(Badge).where(Badge.name == name))

    async def list_badges(self, *, active_only: bool = True) -> List[Badge]:
        stmt = select(Badge)
        if active_only:
            stmt = stmt.where(Badge.is_active.is_(True))
        stmt = stmt.order_by(Badge.category.asc(), Badge.threshold.asc())
        return list(await self.scalars(stmt))

    async def create(self, **fields) -> Badge:
        badge = Badge(**fields)
        await self.add(badge)
        await self.flush()
        await self.refresh(badge)
        return badge

    async def list_user_badges(self, user_id: UUID, *, displayed_only: bool = False) -> List[tuple[UserBadge, Badge]]:
        stmt = (
            select(UserBadge, Badge)
            .join(Badge, Badge.id == UserBadge.badge_id)
            .where(UserBadge.user_id == user_id)
        )
        if displayed_only:
            stmt = stmt.where(UserBadge.is_displayed.is_(True))
        stmt = stmt.order_by(UserBadge.earned_at.desc())
        res = await self.execute(stmt)
        return [(row[0], row[1]) for row in res.all()]

    async def get_user_badge(self, user_badge_id: UUID) -> Optional[UserBadge]:
        return await self.scalar_one_or_none(select(UserBadge).where(UserBadge.id == user_badge_id))

    async def find_user_badge(self, user_id: UUID, badge_id: UUID) -> Optional[UserBadge]:
        stmt = select(UserBadge).where(UserBadge.user_id == user_id, UserBadge.badge_id == badge_id)
        return await self.scalar_one_or_none(stmt)

    async def award(self, user_id: UUID, badge: Badge) -> UserBadge:
        user_badge = UserBadge(user_id=user_id, badge_id=badge.id, is_displayed=False)
        await self.add(user_badge)
        badge.award_count = (badge.award_count or 0) + 1
        await self.flush()
        await self.refresh(user_badge)
        return user_badge
