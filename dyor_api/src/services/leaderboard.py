from __future__ import annotations

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.repositories.gamification import ActivityRepository, ReputationRepository
from src.repositories.token_calls import TokenCallRepository
from src.schemas.common import PageMeta
from src.schemas.gamification import (
    LeaderboardCategory,
    LeaderboardEntry,
    LeaderboardResponse,
    TokenCallLeaderboardEntry,
    TokenCallLeaderboardPage,
    TokenCallLeaderboardSort,
)
from src.services.base import BaseService


def _optional_float(value) -> Optional[float]:
    return float(value) if value is not None else None


class LeaderboardService(BaseService):
    """Ranks users on read; nothing is snapshotted."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.reputation_repo = ReputationRepository(session)
        self.activity_repo = ActivityRepository(session)
        self.call_repo = TokenCallRepository(session)

    # PUBLIC_INTERFACE
    async def get_leaderboard(self, category: LeaderboardCategory, *, limit: int = 50) -> LeaderboardResponse:
        if category == LeaderboardCategory.REPUTATION:
            rows = await self.reputation_repo.top(weekly=False, limit=limit)
        elif category == LeaderboardCategory.WEEKLY:
            rows = await self.reputation_repo.top(weekly=True, limit=limit)
        elif category == LeaderboardCategory.STREAK:
            rows = await self.activity_repo.top_streaks(limit=limit)
        else:
            rows = await self.activity_repo.top_posters(limit=limit)

        entries = [
            LeaderboardEntry(
                rank=idx,
                user_id=user.id,
                username=user.username,
                display_name=user.display_name,
                avatar_url=user.avatar_url,
                score=score,
            )
            for idx, (user, score) in enumerate(rows, start=1)
        ]
        return LeaderboardResponse(category=category, entries=entries)

    # PUBLIC_INTERFACE
    async def get_token_call_leaderboard(
        self, *, sort_by: TokenCallLeaderboardSort, page: int, limit: int
    ) -> TokenCallLeaderboardPage:
        """
        Rank users by their verified token calls; pending and errored calls do not count.

        Ties fall back to total calls (for accuracy) and then to user id, so pages are stable.
        """
        offset = (page - 1) * limit
        rows, total = await self.call_repo.leaderboard(sort_by=sort_by.value, limit=limit, offset=offset)
        data = [
            TokenCallLeaderboardEntry(
                rank=offset + idx,
                user_id=user.id,
                username=user.username,
                display_name=user.display_name,
                avatar_url=user.avatar_url,
                total_calls=int(total_calls),
                successful_calls=int(successful or 0),
                accuracy_rate=round(float(accuracy or 0) * 100, 2),
                average_time_to_hit_ratio=_optional_float(ratio),
                average_multiplier=_optional_float(multiplier),
            )
            for idx, (user, total_calls, successful, accuracy, ratio, multiplier) in enumerate(rows, start=1)
        ]
        return TokenCallLeaderboardPage(data=data, meta=PageMeta.build(total, page, limit))
