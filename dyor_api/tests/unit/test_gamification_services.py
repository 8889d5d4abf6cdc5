from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.core.errors import BadRequestError, NotFoundError
from src.db.models.enums import ActivityType, BadgeRequirement, NotificationType
from src.repositories.gamification import BadgeRepository
from src.services.activity import ActivityService
from src.services.badges import BadgeService, UserBadgeStats
from src.services.notifications import NotificationService
from src.services.reputation import ReputationService
from src.services.users import UserService

pytestmark = [pytest.mark.unit, pytest.mark.asyncio]

NOW = datetime(2026, 3, 10, 15, 0, tzinfo=timezone.utc)


@pytest.fixture
def session():
    s = MagicMock()
    s.commit = AsyncMock()
    s.rollback = AsyncMock()
    s.flush = AsyncMock()
    s.refresh = AsyncMock()
    return s


class TestNotificationPreferences:
    def _service(self, session, pref):
        service = NotificationService(session)
        service.repo = MagicMock()
        service.repo.get_preference = AsyncMock(return_value=pref)
        service.repo.create = AsyncMock(return_value=SimpleNamespace(id=uuid.uuid4()))
        service.repo.unread_count = AsyncMock(return_value=1)
        return service

    async def test_disabled_in_app_skips(self, session):
        service = self._service(session, SimpleNamespace(in_app_enabled=False))
        result = await service.create_notification(uuid.uuid4(), NotificationType.UPVOTE_RECEIVED, "hi")
        assert result is None
        service.repo.create.assert_not_awaited()
        session.commit.assert_not_awaited()

    async def test_missing_preference_means_enabled(self, session):
        service = self._service(session, None)
        with patch("src.services.notifications.broadcast_manager") as broadcast:
            broadcast.publish_to_user = AsyncMock()
            result = await service.create_notification(uuid.uuid4(), NotificationType.SYSTEM, "Welcome")
        assert result is not None
        service.repo.create.assert_awaited_once()
        session.commit.assert_awaited_once()


class TestWeeklyReduction:
    def _service(self, session, reps, activity_counts):
        service = ReputationService(session)
        service.repo = MagicMock()
        service.repo.list_all = AsyncMock(return_value=reps)
        service.activity_repo = MagicMock()
        service.activity_repo.count_since = AsyncMock(side_effect=lambda user_id, since: activity_counts[user_id])
        return service

    async def test_active_users_are_exempt(self, session):
        active = SimpleNamespace(user_id=uuid.uuid4(), total_points=400, weekly_points=200, weekly_points_last_reset=None)
        service = self._service(session, [active], {active.user_id: 5})
        assert await service.apply_weekly_reduction(NOW) == 0
        assert (active.total_points, active.weekly_points) == (400, 200)
        assert active.weekly_points_last_reset == NOW

    async def test_inactive_user_is_reduced(self, session):
        idle = SimpleNamespace(user_id=uuid.uuid4(), total_points=400, weekly_points=200, weekly_points_last_reset=None)
        service = self._service(session, [idle], {idle.user_id: 4})
        assert await service.apply_weekly_reduction(NOW) == 1
        assert (idle.total_points, idle.weekly_points) == (380, 180)
        session.commit.assert_awaited_once()

    async def test_totals_never_go_negative(self, session):
        idle = SimpleNamespace(user_id=uuid.uuid4(), total_points=3, weekly_points=100, weekly_points_last_reset=None)
        service = self._service(session, [idle], {idle.user_id: 0})
        await service.apply_weekly_reduction(NOW)
        assert idle.total_points == 0
        assert idle.weekly_points == 90

    async def test_window_is_last_seven_days(self, session):
        idle = SimpleNamespace(user_id=uuid.uuid4(), total_points=10, weekly_points=0, weekly_points_last_reset=None)
        service = self._service(session, [idle], {idle.user_id: 0})
        await service.apply_weekly_reduction(NOW)
        assert service.activity_repo.count_since.await_args.args[1] == NOW - timedelta(days=7)


class TestRecordActivity:
    @pytest.fixture
    def collaborators(self):
        with patch("src.services.activity.ReputationService") as reputation, patch(
            "src.services.activity.NotificationService"
        ) as notifications, patch("src.services.activity.BadgeService") as badges:
            reputation.return_value.award_activity_points = AsyncMock(return_value=10)
            reputation.return_value.award_streak_bonus = AsyncMock(return_value=5)
            notifications.return_value.create_notification = AsyncMock()
            badges.return_value.check_and_award = AsyncMock(return_value=[])
            yield SimpleNamespace(
                reputation=reputation.return_value,
                notifications=notifications.return_value,
                badges=badges.return_value,
            )

    def _service(self, session, streak):
        service = ActivityService(session)
        service.repo = MagicMock()
        service.repo.add_activity = AsyncMock(return_value=SimpleNamespace(id=uuid.uuid4()))
        service.repo.get_or_create_streak = AsyncMock(return_value=streak)
        return service

    async def test_milestone_notifies_and_awards_bonus(self, session, collaborators):
        user_id = uuid.uuid4()
        streak = SimpleNamespace(current_streak=2, longest_streak=2, last_activity_date=NOW - timedelta(days=1))
        await self._service(session, streak).record_activity(user_id, ActivityType.POST, now=NOW)

        assert streak.current_streak == 3
        collaborators.notifications.create_notification.assert_awaited_once()
        args = collaborators.notifications.create_notification.await_args
        assert args.args[:2] == (user_id, NotificationType.STREAK_ACHIEVED)
        assert args.kwargs["metadata"] == {"streak_days": 3}
        collaborators.reputation.award_streak_bonus.assert_awaited_once_with(user_id, 3)
        collaborators.badges.check_and_award.assert_awaited_once_with(user_id)

    async def test_same_day_activity_is_not_a_milestone(self, session, collaborators):
        streak = SimpleNamespace(current_streak=3, longest_streak=3, last_activity_date=NOW - timedelta(hours=2))
        await self._service(session, streak).record_activity(uuid.uuid4(), ActivityType.COMMENT, now=NOW)
        assert streak.current_streak == 3
        collaborators.notifications.create_notification.assert_not_awaited()
        collaborators.reputation.award_streak_bonus.assert_not_awaited()

    async def test_post_processing_failure_is_rolled_back(self, session, collaborators):
        collaborators.reputation.award_activity_points.side_effect = RuntimeError("deadlock")
        streak = SimpleNamespace(current_streak=0, longest_streak=4, last_activity_date=None)
        activity = await self._service(session, streak).record_activity(uuid.uuid4(), ActivityType.LOGIN, now=NOW)
        assert activity is not None
        session.commit.assert_awaited_once()
        session.rollback.assert_awaited_once()


class TestBadgeAwarding:
    def _badge(self, requirement, threshold=1, **overrides):
        values = {
            "id": uuid.uuid4(),
            "name": f"{requirement.value} badge",
            "category": "content",
            "requirement": requirement.value,
            "threshold": threshold,
            "award_count": 0,
        }
        values.update(overrides)
        return SimpleNamespace(**values)

    async def test_skips_manual_and_earned_badges(self, session):
        earned = self._badge(BadgeRequirement.POSTS_COUNT)
        manual = self._badge(BadgeRequirement.MANUAL, threshold=0)
        eligible = self._badge(BadgeRequirement.COMMENTS_COUNT, threshold=2)
        user_id = uuid.uuid4()

        service = BadgeService(session)
        service.repo = MagicMock()
        service.repo.list_user_badges = AsyncMock(return_value=[(SimpleNamespace(badge_id=earned.id), earned)])
        service.repo.list_badges = AsyncMock(return_value=[earned, manual, eligible])
        service.repo.award = AsyncMock()
        stats = UserBadgeStats(posts_count=10, comments_count=2)
        with patch.object(BadgeService, "collect_stats", AsyncMock(return_value=stats)), patch.object(
            BadgeService, "_notify_earned", AsyncMock()
        ) as notify:
            awarded = await service.check_and_award(user_id)

        assert awarded == [eligible]
        service.repo.award.assert_awaited_once_with(user_id, eligible)
        notify.assert_awaited_once()
        session.commit.assert_awaited_once()

    async def test_nothing_to_check_skips_stats(self, session):
        service = BadgeService(session)
        service.repo = MagicMock()
        service.repo.list_user_badges = AsyncMock(return_value=[])
        service.repo.list_badges = AsyncMock(return_value=[self._badge(BadgeRequirement.MANUAL)])
        with patch.object(BadgeService, "collect_stats", AsyncMock()) as collect:
            assert await service.check_and_award(uuid.uuid4()) == []
        collect.assert_not_awaited()

    async def test_award_increments_award_count(self, session):
        badge = self._badge(BadgeRequirement.POSTS_COUNT, award_count=2)
        user_badge = await BadgeRepository(session).award(uuid.uuid4(), badge)
        assert badge.award_count == 3
        assert user_badge.badge_id == badge.id
        session.add.assert_called_once_with(user_badge)


class TestFollow:
    def _service(self, session, existing=None, target=True):
        service = UserService(session)
        service.repo = MagicMock()
        service.repo.get_user_by_id = AsyncMock(return_value=SimpleNamespace(id=uuid.uuid4()) if target else None)
        service.follows = MagicMock()
        service.follows.get = AsyncMock(return_value=existing)
        service.follows.create = AsyncMock(return_value=SimpleNamespace(notify_on_prediction=True))
        return service

    async def test_cannot_follow_self(self, session):
        me = SimpleNamespace(id=uuid.uuid4())
        with pytest.raises(BadRequestError):
            await self._service(session).follow(me, me.id)

    async def test_unknown_user_is_not_found(self, session):
        with pytest.raises(NotFoundError):
            await self._service(session, target=False).follow(SimpleNamespace(id=uuid.uuid4()), uuid.uuid4())

    async def test_following_twice_returns_existing(self, session):
        existing = SimpleNamespace(notify_on_prediction=False)
        service = self._service(session, existing=existing)
        result = await service.follow(SimpleNamespace(id=uuid.uuid4()), uuid.uuid4())
        assert result is existing
        service.follows.create.assert_not_awaited()
        session.commit.assert_not_awaited()

    async def test_new_follow_is_committed(self, session):
        service = self._service(session)
        await service.follow(SimpleNamespace(id=uuid.uuid4()), uuid.uuid4())
        service.follows.create.assert_awaited_once()
        session.commit.assert_awaited_once()
