from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.session import session_scope
from src.services.activity import ActivityService
from src.services.reputation import ReputationService
from src.services.token_call_verification import TokenCallVerificationService

logger = logging.getLogger(__name__)


async def _run_job(name: str, work: Callable[[AsyncSession], Awaitable[object]]) -> None:
    """Run one job body in its own session; errors are logged, never raised to the scheduler."""
    try:
        async with session_scope() as session:
            result = await work(session)
        logger.info("Scheduled job %s finished: %s", name, result)
    except Exception:
        logger.exception("Scheduled job %s failed", name)


# PUBLIC_INTERFACE
async def verify_token_calls_job() -> None:
    await _run_job("verify_token_calls", lambda s: TokenCallVerificationService(s).verify_due_calls())


# PUBLIC_INTERFACE
async def streak_at_risk_job() -> None:
    await _run_job("streak_at_risk", lambda s: ActivityService(s).notify_streaks_at_risk())


# PUBLIC_INTERFACE
async def reset_lapsed_streaks_job() -> None:
    await _run_job("reset_lapsed_streaks", lambda s: ActivityService(s).reset_lapsed_streaks())


# PUBLIC_INTERFACE
async def weekly_reputation_job() -> None:
    await _run_job("weekly_reputation_reduction", lambda s: ReputationService(s).apply_weekly_reduction())


class JobScheduler:
    """
    Background jobs of the API process.

    Jobs:
      - token call verification every 5 minutes
      - streak-at-risk reminders daily at 22:00 UTC
      - lapsed streak reset daily at 00:01 UTC
      - weekly reputation reduction on Mondays at 00:05 UTC
    """

    def __init__(self) -> None:
        self._scheduler: Optional[AsyncIOScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    # PUBLIC_INTERFACE
    def start(self) -> None:
        if self.running:
            return
        scheduler = AsyncIOScheduler(timezone="UTC")
        common = {"replace_existing": True, "coalesce": True, "max_instances": 1}
        scheduler.add_job(
            verify_token_calls_job,
            trigger=IntervalTrigger(minutes=5),
            id="verify_token_calls",
            name="Token call verification",
            **common,
        )
        scheduler.add_job(
            streak_at_risk_job,
            trigger=CronTrigger(hour=22, minute=0, timezone="UTC"),
            id="streak_at_risk",
            name="Streak at-risk reminders",
            **common,
        )
        scheduler.add_job(
            reset_lapsed_streaks_job,
            trigger=CronTrigger(hour=0, minute=1, timezone="UTC"),
            id="reset_lapsed_streaks",
            name="Reset lapsed streaks",
            **common,
        )
        scheduler.add_job(
            weekly_reputation_job,
            trigger=CronTrigger(day_of_week="mon", hour=0, minute=5, timezone="UTC"),
            id="weekly_reputation_reduction",
            name="Weekly reputation reduction",
            **common,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info("Job scheduler started with %d jobs", len(scheduler.get_jobs()))

    # PUBLIC_INTERFACE
    def job_ids(self) -> list[str]:
        return [job.id for job in self._scheduler.get_jobs()] if self._scheduler else []

    # PUBLIC_INTERFACE
    def shutdown(self) -> None:
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Job scheduler stopped")
        self._scheduler = None


job_scheduler = JobScheduler()
