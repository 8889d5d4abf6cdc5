from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.services.scheduler import JobScheduler, _run_job

pytestmark = pytest.mark.unit


class TestJobScheduler:
    async def test_registers_all_jobs_once(self):
        scheduler = JobScheduler()
        scheduler.start()
        try:
            assert scheduler.running
            assert set(scheduler.job_ids()) == {
                "verify_token_calls",
                "streak_at_risk",
                "reset_lapsed_streaks",
                "weekly_reputation_reduction",
            }
            scheduler.start()
            assert len(scheduler.job_ids()) == 4
        finally:
            scheduler.shutdown()
        assert not scheduler.running


class TestRunJob:
    async def test_job_errors_are_logged_not_raised(self):
        session = MagicMock()
        scope = MagicMock()
        scope.__aenter__ = AsyncMock(return_value=session)
        scope.__aexit__ = AsyncMock(return_value=False)
        work = AsyncMock(side_effect=RuntimeError("boom"))
        with patch("src.services.scheduler.session_scope", return_value=scope):
            await _run_job("broken", work)
        work.assert_awaited_once_with(session)
