from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models.enums import ActivityType, NotificationType
from src.db.models.gamification import UserActivity
from src.repositories.gamification import ActivityRepository
from src.schemas.gamification import StreakRead
from src.services.base import BaseService
from src.services.badges import BadgeService
from src.services.notifications import NotificationService
from src.services.reputation import ReputationService

logger = logging.getLogger(__name__)

STREAK_MILESTONES = [3, 7, 14, 30, 60, 100, 365]


@dataclass(frozen=True)
class StreakUpdate:
    current: int
    longest: int
    increased: bool


def _utc_day(value: datetime) -> date:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).date()


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


# PUBLIC_INTERFACE
def compute_streak(
    current: int, longest: int, last_activity: Optional[datetime], now: datetime
) -> StreakUpdate:
    """
    Apply one activity at `now` to a daily streak.

    Days are compared as UTC calendar days: same day keeps the streak, the next
    day extends it, and any longer gap starts over at 1.
    """
    if last_activity is None or current <= 0:
        return StreakUpdate(current=1, longest=max(longest, 1), increased=True)

    gap = (_utc_day(now) - _utc_day(last_activity)).days
    if gap <= 0:
        return StreakUpdate(current=current, longest=longest, increased=False)
    if gap == 1:
        new_current = current + 1
        return StreakUpdate(current=new_current, longest=max(longest, new_current), increased=True)
    return StreakUpdate(current=1, longest=max(longest, 1), increased=False)


# PUBLIC_INTERFACE
def is_streak_at_risk(current: int, last_activity: Optional[datetime], now: datetime) -> bool:
    """True when the streak is running and the last activity was yesterday (UTC)."""
    if current <= 0 or last_activity is None:
        return False
    return (_utc_day(now) - _utc_day(last_activity)).days == 1


class ActivityService(BaseService):
    """Records user activity and keeps the daily streak up to date."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = ActivityRepository(session)

    # PUBLIC_INTERFACE
    async def record_activity(
        self,
        user_id: UUID,
        activity_type: ActivityType,
        *,
        entity_id: Optional[str] = None,
        entity_type: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> UserActivity:
        """
        Log an activity, update the streak, then award points and badges.

        The activity and streak are committed first. Reputation, milestone
        notifications and badge checks run afterwards and never fail the caller.
        """
        now = now or datetime.now(tz=timezone.utc)
        activity = await self.repo.add_activity(user_id, activity_type.value, entity_id, entity_type)
        streak = await self.repo.get_or_create_streak(user_id)
        update = compute_streak(streak.current_streak, streak.longest_streak, streak.last_activity_date, now)
        streak.current_streak = update.current
        streak.longest_streak = update.longest
        streak.last_activity_date = now
        await self.session.commit()

        try:
            reputation = ReputationService(self.session)
            await reputation.award_activity_points(user_id, activity_type)
            if update.increased and update.current in STREAK_MILESTONES:
                await NotificationService(self.session).create_notification(
                    user_id,
                    NotificationType.STREAK_ACHIEVED,
                    f"You're on a {update.current}-day streak! Keep it up.",
                    related_entity_type="streak",
                    metadata={"streak_days": update.current},
                )
                await reputation.award_streak_bonus(user_id, update.current)
            await BadgeService(self.session).check_and_award(user_id)
        except Exception:
            logger.exception("Post-activity processing failed for user %s", user_id)
            await self.session.rollback()
        return activity

    # PUBLIC_INTERFACE
    async def get_streak(self, user_id: UUID, now: Optional[datetime] = None) -> StreakRead:
        now = now or datetime.now(tz=timezone.utc)
        streak = await self.repo.get_streak(user_id)
        if streak is None:
            return StreakRead()
        return StreakRead(
            current_streak=streak.current_streak,
            longest_streak=streak.longest_streak,
            last_activity_date=streak.last_activity_date,
            is_at_risk=is_streak_at_risk(streak.current_streak, streak.last_activity_date, now),
        )

    # PUBLIC_INTERFACE
    async def list_activity(self, user_id: UUID, *, limit: int = 20) -> List[UserActivity]:
        return await self.repo.list_recent(user_id, limit=limit)

    # PUBLIC_INTERFACE
    async def notify_streaks_at_risk(self, now: Optional[datetime] = None) -> int:
        """Warn users whose last activity was yesterday; returns notifications sent."""
        now = now or datetime.now(tz=timezone.utc)
        today = _day_start(_utc_day(now))
        streaks = await self.repo.list_streaks_active_between(today - timedelta(days=1), today)
        at_risk = [(s.user_id, s.current_streak) for s in streaks]
        notifications = NotificationService(self.session)
        sent = 0
        for user_id, days in at_risk:
            try:
                created = await notifications.create_notification(
                    user_id,
                    NotificationType.STREAK_AT_RISK,
                    f"Your {days}-day streak is at risk! Be active today to keep it going.",
                    related_entity_type="streak",
                    metadata={"streak_days": days},
                )
            except Exception:
                logger.exception("Failed to send streak-at-risk notification to %s", user_id)
                await self.session.rollback()
                continue
            if created is not None:
                sent += 1
        logger.info("Sent %d streak-at-risk notifications", sent)
        return sent

    # PUBLIC_INTERFACE
    async def reset_lapsed_streaks(self, now: Optional[datetime] = None) -> int:
        """Zero streaks whose last activity was before yesterday and notify their owners."""
        now = now or datetime.now(tz=timezone.utc)
        yesterday = _day_start(_utc_day(now)) - timedelta(days=1)
        lapsed = await self.repo.list_lapsed_streaks(yesterday)
        broken = [(s.user_id, s.current_streak) for s in lapsed]
        for streak in lapsed:
            streak.current_streak = 0
        await self.session.commit()

        notifications = NotificationService(self.session)
        for user_id, days in broken:
            try:
                await notifications.create_notification(
                    user_id,
                    NotificationType.STREAK_BROKEN,
                    f"Your {days}-day streak has ended. Start a new one today!",
                    related_entity_type="streak",
                    metadata={"previous_streak": days},
                )
            except Exception:
                logger.exception("Failed to send streak-broken notification to %s", user_id)
                await self.session.rollback()
        logger.info("Reset %d lapsed streaks", len(broken))
        return len(broken)
