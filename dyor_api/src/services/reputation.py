from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models.enums import ActivityType, NotificationType
from src.repositories.gamification import ActivityRepository, ReputationRepository
from src.schemas.gamification import ReputationRead
from src.services.base import BaseService
from src.services.notifications import NotificationService

logger = logging.getLogger(__name__)

ACTIVITY_POINTS = {
    ActivityType.POST: 10,
    ActivityType.COMMENT: 5,
    ActivityType.UPVOTE: 2,
    ActivityType.DOWNVOTE: 1,
    ActivityType.LOGIN: 1,
    ActivityType.PREDICTION: 0,
}

STREAK_MILESTONE_BONUS = {3: 5, 7: 15, 14: 30, 30: 75, 60: 150, 100: 300, 365: 1000}

REPUTATION_MILESTONES = [100, 500, 1000, 2500, 5000, 10000, 25000, 50000, 100000]

WEEKLY_REDUCTION_RATE = 0.1
ACTIVE_USER_WEEKLY_ACTIVITIES = 5
# (max total points, max weekly reduction); the last tier has no ceiling
REDUCTION_CAPS = [(500, 25), (2000, 50), (5000, 75)]
TOP_TIER_REDUCTION_CAP = 100


# PUBLIC_INTERFACE
def streak_bonus(streak_days: int) -> int:
    """Bonus points for the highest streak milestone reached by `streak_days`."""
    reached = [m for m in STREAK_MILESTONE_BONUS if m <= streak_days]
    return STREAK_MILESTONE_BONUS[max(reached)] if reached else 0


# PUBLIC_INTERFACE
def first_crossed_milestone(old_points: int, new_points: int) -> Optional[int]:
    """The lowest reputation milestone in (old_points, new_points], if any."""
    for milestone in REPUTATION_MILESTONES:
        if old_points < milestone <= new_points:
            return milestone
    return None


# PUBLIC_INTERFACE
def weekly_reduction_amount(total_points: int, weekly_points: int) -> int:
    """Points removed from an inactive user: 10% of weekly points, capped by tier."""
    reduction = int(weekly_points * WEEKLY_REDUCTION_RATE)
    cap = TOP_TIER_REDUCTION_CAP
    for ceiling, tier_cap in REDUCTION_CAPS:
        if total_points <= ceiling:
            cap = tier_cap
            break
    return max(0, min(reduction, cap))


class ReputationService(BaseService):
    """Awards reputation points and runs the weekly decay for inactive users."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = ReputationRepository(session)
        self.activity_repo = ActivityRepository(session)

    # PUBLIC_INTERFACE
    async def get_reputation(self, user_id: UUID) -> ReputationRead:
        rep = await self.repo.get(user_id)
        if rep is None:
            return ReputationRead(user_id=user_id)
        return ReputationRead(
            user_id=user_id,
            total_points=rep.total_points,
            weekly_points=rep.weekly_points,
            weekly_points_last_reset=rep.weekly_points_last_reset,
        )

    # PUBLIC_INTERFACE
    async def award_activity_points(self, user_id: UUID, activity_type: ActivityType) -> int:
        points = ACTIVITY_POINTS.get(activity_type, 0)
        if points:
            await self.add_points(user_id, points)
        return points

    # PUBLIC_INTERFACE
    async def award_streak_bonus(self, user_id: UUID, streak_days: int) -> int:
        bonus = streak_bonus(streak_days)
        if bonus:
            await self.add_points(user_id, bonus)
        return bonus

    # PUBLIC_INTERFACE
    async def add_points(self, user_id: UUID, points: int) -> int:
        """Add points to both totals, commit, and notify the first milestone crossed."""
        rep = await self.repo.get_or_create(user_id)
        old_total = rep.total_points or 0
        new_total = old_total + points
        rep.total_points = new_total
        rep.weekly_points = (rep.weekly_points or 0) + points
        await self.session.commit()

        milestone = first_crossed_milestone(old_total, new_total)
        if milestone is not None:
            try:
                await NotificationService(self.session).create_notification(
                    user_id,
                    NotificationType.REPUTATION_MILESTONE,
                    f"Congratulations! You've reached {milestone:,} reputation points.",
                    related_entity_type="reputation",
                    metadata={"milestone": milestone, "total_points": new_total},
                )
            except Exception:
                logger.exception("Failed to send reputation milestone notification to %s", user_id)
                await self.session.rollback()
        return new_total

    # PUBLIC_INTERFACE
    async def apply_weekly_reduction(self, now: Optional[datetime] = None) -> int:
        """
        Decay points of users with fewer than 5 activities over the last 7 days.

        Returns:
            Number of users whose points were reduced.
        """
        now = now or datetime.now(tz=timezone.utc)
        since = now - timedelta(days=7)
        reduced = 0
        for rep in await self.repo.list_all():
            if await self.activity_repo.count_since(rep.user_id, since) >= ACTIVE_USER_WEEKLY_ACTIVITIES:
                rep.weekly_points_last_reset = now
                continue
            amount = weekly_reduction_amount(rep.total_points, rep.weekly_points)
            if amount > 0:
                rep.total_points = max(0, rep.total_points - amount)
                rep.weekly_points = max(0, rep.weekly_points - amount)
                reduced += 1
            rep.weekly_points_last_reset = now
        await self.session.commit()
        logger.info("Weekly reputation reduction applied to %d users", reduced)
        return reduced
