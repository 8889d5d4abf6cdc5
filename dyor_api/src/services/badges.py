from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.errors import ConflictError, NotFoundError
from src.db.models.enums import BadgeRequirement, NotificationType, TokenCallStatus
from src.db.models.gamification import Badge, UserBadge
from src.repositories.comments import CommentRepository
from src.repositories.gamification import ActivityRepository, BadgeRepository
from src.repositories.token_calls import TokenCallRepository
from src.schemas.gamification import AvailableBadge, BadgeCreate, BadgeRead, BadgeUpdate, UserBadgeRead
from src.services.base import BaseService
from src.services.notifications import NotificationService

logger = logging.getLogger(__name__)

MIN_CALLS_FOR_ACCURACY = 5


@dataclass
class UserBadgeStats:
    """Snapshot of everything badge requirements are evaluated against."""
    current_streak: int = 0
    max_streak: int = 0
    posts_count: int = 0
    comments_count: int = 0
    upvotes_given: int = 0
    upvotes_received: int = 0
    comments_received: int = 0
    max_comment_upvotes: int = 0
    max_post_upvotes: int = 0
    successful_calls: int = 0
    verified_calls: int = 0
    longest_call_streak: int = 0
    best_call_multiple: float = 0.0
    best_time_to_hit_ratio: Optional[float] = None

    @property
    def accuracy_rate(self) -> float:
        if not self.verified_calls:
            return 0.0
        return self.successful_calls / self.verified_calls * 100


# PUBLIC_INTERFACE
def badge_progress(requirement: BadgeRequirement, threshold: int, stats: UserBadgeStats) -> tuple[int, bool]:
    """
    Evaluate one badge requirement.

    Returns:
        (current_value, eligible). Manual badges are never eligible here.
    """
    simple = {
        BadgeRequirement.CURRENT_STREAK: stats.current_streak,
        BadgeRequirement.MAX_STREAK: stats.max_streak,
        BadgeRequirement.POSTS_COUNT: stats.posts_count,
        BadgeRequirement.COMMENTS_COUNT: stats.comments_count,
        BadgeRequirement.UPVOTES_GIVEN_COUNT: stats.upvotes_given,
        BadgeRequirement.UPVOTES_RECEIVED_COUNT: stats.upvotes_received,
        BadgeRequirement.COMMENTS_RECEIVED_COUNT: stats.comments_received,
        BadgeRequirement.COMMENT_MIN_UPVOTES: stats.max_comment_upvotes,
        BadgeRequirement.POST_MIN_UPVOTES: stats.max_post_upvotes,
        BadgeRequirement.TOKEN_CALL_SUCCESS_STREAK: stats.longest_call_streak,
        BadgeRequirement.SUCCESSFUL_TOKEN_CALL_COUNT: stats.successful_calls,
        BadgeRequirement.VERIFIED_TOKEN_CALL_COUNT: stats.verified_calls,
    }
    if requirement in simple:
        value = simple[requirement]
        return value, value >= threshold

    if requirement == BadgeRequirement.FIRST_SUCCESSFUL_TOKEN_CALL:
        return stats.successful_calls, stats.successful_calls >= 1

    if requirement == BadgeRequirement.TOKEN_CALL_MOONSHOT_X:
        return int(stats.best_call_multiple), stats.successful_calls > 0 and stats.best_call_multiple >= threshold

    if requirement == BadgeRequirement.TOKEN_CALL_EARLY_BIRD_RATIO:
        ratio = stats.best_time_to_hit_ratio
        if ratio is None:
            return 0, False
        return round(ratio * 100), ratio <= threshold / 100

    if requirement == BadgeRequirement.TOKEN_CALL_ACCURACY_RATE:
        rate = stats.accuracy_rate
        return round(rate), stats.verified_calls >= MIN_CALLS_FOR_ACCURACY and rate >= threshold

    return 0, False


def _user_badge_read(user_badge: UserBadge, badge: Badge) -> UserBadgeRead:
    return UserBadgeRead(
        id=user_badge.id,
        badge=BadgeRead.model_validate(badge),
        earned_at=user_badge.earned_at,
        is_displayed=user_badge.is_displayed,
    )


class BadgeService(BaseService):
    """Badge definitions, eligibility checks and awarding."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = BadgeRepository(session)
        self.activity_repo = ActivityRepository(session)
        self.comment_repo = CommentRepository(session)
        self.call_repo = TokenCallRepository(session)

    async def collect_stats(self, user_id: UUID) -> UserBadgeStats:
        stats = UserBadgeStats()
        streak = await self.activity_repo.get_streak(user_id)
        if streak is not None:
            stats.current_streak = streak.current_streak
            stats.max_streak = streak.longest_streak

        stats.posts_count = await self.comment_repo.count_by_user(user_id, top_level=True)
        stats.comments_count = await self.comment_repo.count_by_user(user_id, top_level=False)
        stats.upvotes_given = await self.comment_repo.count_upvotes_given(user_id)
        stats.upvotes_received = await self.comment_repo.sum_upvotes_received(user_id)
        stats.comments_received = await self.comment_repo.count_replies_received(user_id)
        stats.max_comment_upvotes = await self.comment_repo.max_upvotes(user_id)
        stats.max_post_upvotes = await self.comment_repo.max_upvotes(user_id, top_level_only=True)

        counts = await self.call_repo.status_counts(user_id)
        stats.successful_calls = counts.get(TokenCallStatus.VERIFIED_SUCCESS.value, 0)
        stats.verified_calls = stats.successful_calls + counts.get(TokenCallStatus.VERIFIED_FAIL.value, 0)
        call_streak = await self.call_repo.get_streak(user_id)
        if call_streak is not None:
            stats.longest_call_streak = call_streak.longest_success_streak

        for call in await self.call_repo.list_successful(user_id):
            if call.reference_price:
                stats.best_call_multiple = max(stats.best_call_multiple, call.target_price / call.reference_price)
            if call.time_to_hit_ratio is not None:
                if stats.best_time_to_hit_ratio is None or call.time_to_hit_ratio < stats.best_time_to_hit_ratio:
                    stats.best_time_to_hit_ratio = call.time_to_hit_ratio
        return stats

    # PUBLIC_INTERFACE
    async def check_and_award(self, user_id: UUID) -> List[Badge]:
        """Award every active, unearned, automatic badge the user now qualifies for."""
        earned_ids = {ub.badge_id for ub, _ in await self.repo.list_user_badges(user_id)}
        candidates = [
            b for b in await self.repo.list_badges(active_only=True)
            if b.id not in earned_ids and b.requirement != BadgeRequirement.MANUAL.value
        ]
        if not candidates:
            return []

        stats = await self.collect_stats(user_id)
        awarded: List[Badge] = []
        for badge in candidates:
            try:
                requirement = BadgeRequirement(badge.requirement)
            except ValueError:
                logger.warning("Badge %s has unknown requirement %s", badge.name, badge.requirement)
                continue
            _, eligible = badge_progress(requirement, badge.threshold, stats)
            if eligible:
                await self.repo.award(user_id, badge)
                awarded.append(badge)
        if not awarded:
            return []
        await self.session.commit()

        earned = [(b.id, b.name, b.category) for b in awarded]
        for badge_id, name, category in earned:
            await self._notify_earned(user_id, badge_id, name, category)
        logger.info("Awarded %d badges to user %s", len(awarded), user_id)
        return awarded

    # PUBLIC_INTERFACE
    async def award_manual(self, user_id: UUID, badge_id: UUID) -> UserBadgeRead:
        badge = await self.repo.get(badge_id)
        if badge is None:
            raise NotFoundError("Badge not found")
        if await self.repo.find_user_badge(user_id, badge.id) is not None:
            raise ConflictError("User already has this badge")
        user_badge = await self.repo.award(user_id, badge)
        await self.session.commit()
        result = _user_badge_read(user_badge, badge)
        await self._notify_earned(user_id, badge.id, badge.name, badge.category)
        return result

    # PUBLIC_INTERFACE
    async def award_by_name(self, user_id: UUID, name: str) -> Optional[UserBadgeRead]:
        """Award a named badge if it exists, is active and is not yet earned."""
        badge = await self.repo.get_by_name(name)
        if badge is None or not badge.is_active:
            return None
        if await self.repo.find_user_badge(user_id, badge.id) is not None:
            return None
        user_badge = await self.repo.award(user_id, badge)
        await self.session.commit()
        result = _user_badge_read(user_badge, badge)
        await self._notify_earned(user_id, badge.id, badge.name, badge.category)
        return result

    # PUBLIC_INTERFACE
    async def list_user_badges(self, user_id: UUID, *, displayed_only: bool = False) -> List[UserBadgeRead]:
        rows = await self.repo.list_user_badges(user_id, displayed_only=displayed_only)
        return [_user_badge_read(ub, badge) for ub, badge in rows]

    # PUBLIC_INTERFACE
    async def list_available(self, user_id: UUID) -> List[AvailableBadge]:
        earned = {ub.badge_id: ub for ub, _ in await self.repo.list_user_badges(user_id)}
        stats = await self.collect_stats(user_id)
        result: List[AvailableBadge] = []
        for badge in await self.repo.list_badges(active_only=True):
            try:
                current_value, _ = badge_progress(BadgeRequirement(badge.requirement), badge.threshold, stats)
            except ValueError:
                current_value = 0
            user_badge = earned.get(badge.id)
            result.append(
                AvailableBadge(
                    badge=BadgeRead.model_validate(badge),
                    is_achieved=user_badge is not None,
                    achieved_at=user_badge.earned_at if user_badge else None,
                    current_value=current_value,
                )
            )
        return result

    # PUBLIC_INTERFACE
    async def set_display(self, user_id: UUID, user_badge_id: UUID, is_displayed: bool) -> UserBadgeRead:
        user_badge = await self.repo.get_user_badge(user_badge_id)
        if user_badge is None or user_badge.user_id != user_id:
            raise NotFoundError("Badge not found")
        user_badge.is_displayed = is_displayed
        await self.session.commit()
        badge = await self.repo.get(user_badge.badge_id)
        return _user_badge_read(user_badge, badge)

    # Admin

    # PUBLIC_INTERFACE
    async def list_badges(self) -> List[Badge]:
        return await self.repo.list_badges(active_only=False)

    # PUBLIC_INTERFACE
    async def create_badge(self, payload: BadgeCreate) -> Badge:
        if await self.repo.get_by_name(payload.name) is not None:
            raise ConflictError("A badge with this name already exists")
        data = payload.model_dump()
        data["category"] = payload.category.value
        data["requirement"] = payload.requirement.value
        badge = await self.repo.create(**data)
        await self.session.commit()
        return badge

    # PUBLIC_INTERFACE
    async def update_badge(self, badge_id: UUID, payload: BadgeUpdate) -> Badge:
        badge = await self.repo.get(badge_id)
        if badge is None:
            raise NotFoundError("Badge not found")
        changes = payload.model_dump(exclude_unset=True)
        if "name" in changes and changes["name"] != badge.name:
            if await self.repo.get_by_name(changes["name"]) is not None:
                raise ConflictError("A badge with this name already exists")
        for field, value in changes.items():
            if value is None and field != "image_url":
                continue
            setattr(badge, field, value.value if hasattr(value, "value") else value)
        await self.session.commit()
        await self.repo.refresh(badge)
        return badge

    # PUBLIC_INTERFACE
    async def delete_badge(self, badge_id: UUID) -> None:
        badge = await self.repo.get(badge_id)
        if badge is None:
            raise NotFoundError("Badge not found")
        await self.repo.delete(badge)
        await self.session.commit()

    async def _notify_earned(self, user_id: UUID, badge_id: UUID, name: str, category: str) -> None:
        try:
            await NotificationService(self.session).create_notification(
                user_id,
                NotificationType.BADGE_EARNED,
                f"You earned the {name} badge!",
                related_entity_id=str(badge_id),
                related_entity_type="badge",
                metadata={"badge_name": name, "category": category},
            )
        except Exception:
            logger.exception("Failed to send badge notification to %s", user_id)
            await self.session.rollback()
