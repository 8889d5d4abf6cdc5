from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from src.db.models.enums import TokenCallStatus
from src.services.token_call_verification import (
    analyze_price_history,
    next_token_call_streak,
    select_resolution,
)
from src.services.token_calls import accuracy_rate, normalize_target_date

pytestmark = pytest.mark.unit

CALL_AT = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
TARGET_AT = CALL_AT + timedelta(days=10)


def _point(at: datetime, value: float) -> dict:
    return {"unixTime": int(at.timestamp()), "value": value}


class TestAnalyzePriceHistory:
    def test_no_history_fails(self):
        result = analyze_price_history([], target_price=2.0, call_timestamp=CALL_AT, target_date=TARGET_AT)
        assert result.status == TokenCallStatus.VERIFIED_FAIL
        assert result.peak_price is None

    def test_target_never_reached(self):
        items = [_point(CALL_AT + timedelta(days=d), v) for d, v in [(1, 1.1), (5, 1.8), (9, 1.5)]]
        result = analyze_price_history(items, target_price=2.0, call_timestamp=CALL_AT, target_date=TARGET_AT)
        assert result.status == TokenCallStatus.VERIFIED_FAIL
        assert result.peak_price == 1.8
        assert result.final_price == 1.5
        assert result.target_hit_at is None

    def test_first_hit_sets_ratio(self):
        items = [_point(CALL_AT + timedelta(days=d), v) for d, v in [(1, 1.1), (4, 2.1), (8, 3.0), (9, 1.2)]]
        result = analyze_price_history(items, target_price=2.0, call_timestamp=CALL_AT, target_date=TARGET_AT)
        assert result.status == TokenCallStatus.VERIFIED_SUCCESS
        assert result.target_hit_at == CALL_AT + timedelta(days=4)
        assert result.time_to_hit_ratio == pytest.approx(0.4)
        assert result.peak_price == 3.0
        assert result.final_price == 1.2

    def test_hit_before_call_clamps_to_zero(self):
        items = [_point(CALL_AT - timedelta(minutes=1), 2.5)]
        result = analyze_price_history(items, target_price=2.0, call_timestamp=CALL_AT, target_date=TARGET_AT)
        assert result.time_to_hit_ratio == 0.0


class TestSelectResolution:
    @pytest.mark.parametrize(
        "duration, expected",
        [
            (timedelta(minutes=30), "1m"),
            (timedelta(hours=6), "5m"),
            (timedelta(hours=20), "15m"),
            (timedelta(days=2), "30m"),
            (timedelta(days=5), "1H"),
            (timedelta(days=20), "2H"),
            (timedelta(days=90), "1D"),
        ],
    )
    def test_resolution_for_window(self, duration, expected):
        assert select_resolution(duration) == expected


class TestTokenCallStreak:
    def _streak(self, current=0, longest=0, last=None):
        return SimpleNamespace(
            current_success_streak=current,
            longest_success_streak=longest,
            last_verified_call_timestamp=last,
        )

    def test_success_extends(self):
        streak = self._streak(current=2, longest=2, last=CALL_AT - timedelta(days=1))
        assert next_token_call_streak(streak, succeeded=True, call_timestamp=CALL_AT)
        assert (streak.current_success_streak, streak.longest_success_streak) == (3, 3)
        assert streak.last_verified_call_timestamp == CALL_AT

    def test_failure_resets_current_only(self):
        streak = self._streak(current=4, longest=6)
        assert next_token_call_streak(streak, succeeded=False, call_timestamp=CALL_AT)
        assert (streak.current_success_streak, streak.longest_success_streak) == (0, 6)

    def test_older_outcome_is_ignored(self):
        streak = self._streak(current=1, longest=1, last=CALL_AT)
        assert not next_token_call_streak(streak, succeeded=True, call_timestamp=CALL_AT - timedelta(hours=1))
        assert streak.current_success_streak == 1


class TestCallHelpers:
    def test_date_only_target_takes_current_time_of_day(self):
        now = datetime(2026, 3, 1, 14, 25, 7, tzinfo=timezone.utc)
        target = normalize_target_date(datetime(2026, 3, 5), now)
        assert target == datetime(2026, 3, 5, 14, 25, 7, tzinfo=timezone.utc)

    def test_explicit_time_is_kept_and_converted_to_utc(self):
        now = datetime(2026, 3, 1, 14, 0, tzinfo=timezone.utc)
        plus_two = timezone(timedelta(hours=2))
        target = normalize_target_date(datetime(2026, 3, 5, 10, 0, tzinfo=plus_two), now)
        assert target == datetime(2026, 3, 5, 8, 0, tzinfo=timezone.utc)

    def test_accuracy_rate(self):
        assert accuracy_rate(0, 0) == 0.0
        assert accuracy_rate(2, 1) == 66.67
        assert accuracy_rate(5, 0) == 100.0
