from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import and_, case, func, select

from src.db.models.enums import TokenCallStatus
from src.db.models.token_calls import TokenCall, UserTokenCallStreak
from src.db.models.users import User
from src.schemas.token_calls import TokenCallFilter, TokenCallSort
from .base import BaseRepository


class TokenCallRepository(BaseRepository):
    """Repository for token price predictions."""

    async def get(self, call_id: UUID) -> Optional[TokenCall]:
        return await self.scalar_one_or_none(select(TokenCall).where(TokenCall.id == call_id))

    async def list_by_ids(self, call_ids: Sequence[UUID]) -> List[TokenCall]:
        if not call_ids:
            return []
        return list(await self.scalars(select(TokenCall).where(TokenCall.id.in_(set(call_ids)))))

    async def create(self, **fields) -> TokenCall:
        call = TokenCall(**fields)
        await self.add(call)
        await self.flush()
        await self.refresh(call)
        return call

    async def list_calls(
        self, filters: TokenCallFilter, *, sort: TokenCallSort, limit: int, offset: int
    ) -> tuple[List[TokenCall], int]:
        stmt = select(TokenCall)
        if filters.user_id:
            stmt = stmt.where(TokenCall.user_id == filters.user_id)
        if filters.token_mint_address:
            stmt = stmt.where(TokenCall.token_mint_address == filters.token_mint_address)
        if filters.status:
            stmt = stmt.where(TokenCall.status == filters.status.value)
        total = await self.count(stmt)
        if sort == TokenCallSort.TARGET_ASC:
            stmt = stmt.order_by(TokenCall.target_date.asc())
        else:
            stmt = stmt.order_by(TokenCall.created_at.desc())
        rows = await self.scalars(stmt.offset(offset).limit(limit))
        return list(rows), total

    async def list_due(self, now: datetime, *, limit: int = 100) -> List[TokenCall]:
        stmt = (
            select(TokenCall)
            .where(TokenCall.status == TokenCallStatus.PENDING.value, TokenCall.target_date <= now)
            .order_by(TokenCall.target_date.asc())
            .limit(limit)
        )
        return list(await self.scalars(stmt))

    async def list_successful(self, user_id: UUID) -> List[TokenCall]:
        stmt = select(TokenCall).where(
            TokenCall.user_id == user_id, TokenCall.status == TokenCallStatus.VERIFIED_SUCCESS.value
        )
        return list(await self.scalars(stmt))

    async def status_counts(self, user_id: UUID) -> dict[str, int]:
        stmt = (
            select(TokenCall.status, func.count())
            .where(TokenCall.user_id == user_id)
            .group_by(TokenCall.status)
        )
        res = await self.execute(stmt)
        return {row[0]: int(row[1]) for row in res.all()}

    async def average_time_to_hit_ratio(self, user_id: UUID) -> Optional[float]:
        stmt = select(func.avg(TokenCall.time_to_hit_ratio)).where(
            TokenCall.user_id == user_id,
            TokenCall.status == TokenCallStatus.VERIFIED_SUCCESS.value,
            TokenCall.time_to_hit_ratio.is_not(None),
        )
        res = await self.execute(stmt)
        value = res.scalar_one_or_none()
        return float(value) if value is not None else None

    async def get_streak(self, user_id: UUID) -> Optional[UserTokenCallStreak]:
        stmt = select(UserTokenCallStreak).where(UserTokenCallStreak.user_id == user_id)
        return await self.scalar_one_or_none(stmt)

    async def get_or_create_streak(self, user_id: UUID) -> UserTokenCallStreak:
        streak = await self.get_streak(user_id)
        if streak is None:
            streak = UserTokenCallStreak(user_id=user_id, current_success_streak=0, longest_success_streak=0)
            await self.add(streak)
            await self.flush()
        return streak

    async def leaderboard(self, *, sort_by: str, limit: int, offset: int) -> tuple[List[tuple], int]:
        """
        Per-user aggregates over verified calls.

        Rows are (user, total_calls, successful_calls, accuracy, avg_time_to_hit_ratio, avg_multiplier)
        with accuracy as a 0..1 fraction, ordered by `sort_by` descending and then by user id.
        """
        verified = TokenCall.status.in_(
            [TokenCallStatus.VERIFIED_SUCCESS.value, TokenCallStatus.VERIFIED_FAIL.value]
        )
        succeeded = TokenCall.status == TokenCallStatus.VERIFIED_SUCCESS.value
        total_calls = func.count(TokenCall.id).label("total_calls")
        successful_calls = func.sum(case((succeeded, 1), else_=0)).label("successful_calls")
        accuracy = (func.sum(case((succeeded, 1.0), else_=0.0)) / func.count(TokenCall.id)).label("accuracy")
        avg_ratio = func.avg(case((succeeded, TokenCall.time_to_hit_ratio), else_=None)).label("avg_ratio")
        avg_multiplier = func.avg(
            case(
                (and_(succeeded, TokenCall.reference_price != 0), TokenCall.target_price / TokenCall.reference_price),
                else_=None,
            )
        ).label("avg_multiplier")

        order = {
            "successful_calls": [successful_calls.desc()],
            "total_calls": [total_calls.desc()],
        }.get(sort_by, [accuracy.desc(), total_calls.desc()])

        stmt = (
            select(User, total_calls, successful_calls, accuracy, avg_ratio, avg_multiplier)
            .join(TokenCall, TokenCall.user_id == User.id)
            .where(verified)
            .group_by(User.id)
            .order_by(*order, User.id.asc())
            .offset(offset)
            .limit(limit)
        )
        res = await self.execute(stmt)
        total = await self.execute(select(func.count(func.distinct(TokenCall.user_id))).where(verified))
        return [tuple(row) for row in res.all()], int(total.scalar_one() or 0)
