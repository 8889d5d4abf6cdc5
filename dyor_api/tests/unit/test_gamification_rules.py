from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from src.db.models.enums import BadgeRequirement
from src.services.activity import compute_streak, is_streak_at_risk
from src.services.badges import UserBadgeStats, badge_progress
from src.services.reputation import first_crossed_milestone, streak_bonus, weekly_reduction_amount

pytestmark = pytest.mark.unit

NOW = datetime(2026, 3, 10, 15, 30, tzinfo=timezone.utc)


class TestComputeStreak:
    def test_first_activity_starts_streak(self):
        update = compute_streak(0, 0, None, NOW)
        assert (update.current, update.longest, update.increased) == (1, 1, True)

    def test_same_day_keeps_streak(self):
        update = compute_streak(4, 6, NOW.replace(hour=1), NOW)
        assert (update.current, update.longest, update.increased) == (4, 6, False)

    def test_next_day_extends_and_raises_longest(self):
        update = compute_streak(6, 6, NOW - timedelta(days=1), NOW)
        assert (update.current, update.longest, update.increased) == (7, 7, True)

    def test_next_calendar_day_counts_even_within_24h(self):
        yesterday_late = datetime(2026, 3, 9, 23, 59, tzinfo=timezone.utc)
        early = datetime(2026, 3, 10, 0, 1, tzinfo=timezone.utc)
        assert compute_streak(2, 2, yesterday_late, early).current == 3

    def test_gap_resets_to_one(self):
        update = compute_streak(9, 12, NOW - timedelta(days=3), NOW)
        assert (update.current, update.longest, update.increased) == (1, 12, False)


class TestStreakAtRisk:
    def test_active_yesterday_is_at_risk(self):
        assert is_streak_at_risk(5, NOW - timedelta(days=1), NOW)

    def test_active_today_is_safe(self):
        assert not is_streak_at_risk(5, NOW - timedelta(hours=2), NOW)

    def test_no_streak_is_not_at_risk(self):
        assert not is_streak_at_risk(0, NOW - timedelta(days=1), NOW)
        assert not is_streak_at_risk(3, None, NOW)


class TestReputationRules:
    @pytest.mark.parametrize(
        "days, bonus",
        [(1, 0), (3, 5), (6, 5), (7, 15), (30, 75), (365, 1000), (400, 1000)],
    )
    def test_streak_bonus(self, days, bonus):
        assert streak_bonus(days) == bonus

    def test_first_crossed_milestone(self):
        assert first_crossed_milestone(90, 110) == 100
        assert first_crossed_milestone(100, 120) is None
        assert first_crossed_milestone(400, 1200) == 500

    @pytest.mark.parametrize(
        "total, weekly, expected",
        [
            (100, 50, 5),
            (400, 1000, 25),
            (1500, 1000, 50),
            (3000, 1000, 75),
            (9000, 5000, 100),
            (9000, 0, 0),
        ],
    )
    def test_weekly_reduction_is_tier_capped(self, total, weekly, expected):
        assert weekly_reduction_amount(total, weekly) == expected


class TestBadgeProgress:
    def test_count_requirement(self):
        stats = UserBadgeStats(posts_count=9)
        assert badge_progress(BadgeRequirement.POSTS_COUNT, 10, stats) == (9, False)
        stats.posts_count = 10
        assert badge_progress(BadgeRequirement.POSTS_COUNT, 10, stats) == (10, True)

    def test_first_successful_call_ignores_threshold(self):
        stats = UserBadgeStats(successful_calls=1)
        assert badge_progress(BadgeRequirement.FIRST_SUCCESSFUL_TOKEN_CALL, 50, stats) == (1, True)

    def test_moonshot_needs_multiple(self):
        stats = UserBadgeStats(successful_calls=2, best_call_multiple=9.5)
        assert badge_progress(BadgeRequirement.TOKEN_CALL_MOONSHOT_X, 10, stats) == (9, False)
        stats.best_call_multiple = 10.0
        assert badge_progress(BadgeRequirement.TOKEN_CALL_MOONSHOT_X, 10, stats)[1]

    def test_early_bird_ratio_is_upper_bound(self):
        stats = UserBadgeStats(best_time_to_hit_ratio=0.2)
        assert badge_progress(BadgeRequirement.TOKEN_CALL_EARLY_BIRD_RATIO, 25, stats) == (20, True)
        assert badge_progress(BadgeRequirement.TOKEN_CALL_EARLY_BIRD_RATIO, 10, stats) == (20, False)
        assert badge_progress(BadgeRequirement.TOKEN_CALL_EARLY_BIRD_RATIO, 25, UserBadgeStats()) == (0, False)

    def test_accuracy_needs_minimum_verified_calls(self):
        few = UserBadgeStats(successful_calls=4, verified_calls=4)
        assert badge_progress(BadgeRequirement.TOKEN_CALL_ACCURACY_RATE, 60, few) == (100, False)
        enough = UserBadgeStats(successful_calls=4, verified_calls=5)
        assert badge_progress(BadgeRequirement.TOKEN_CALL_ACCURACY_RATE, 60, enough) == (80, True)

    def test_manual_badges_are_never_automatic(self):
        assert badge_progress(BadgeRequirement.MANUAL, 0, UserBadgeStats(posts_count=100)) == (0, False)
