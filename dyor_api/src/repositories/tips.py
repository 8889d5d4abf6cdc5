from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select

from src.db.models.tips import Tip
from .base import BaseRepository


class TipRepository(BaseRepository):
    """Repository for recorded tips."""

    async def get_by_signature(self, signature: str) -> Optional[Tip]:
        return await self.scalar_one_or_none(select(Tip).where(Tip.transaction_signature == signature))

    async def create(self, **fields) -> Tip:
        tip = Tip(**fields)
        await self.add(tip)
        await self.flush()
        await self.refresh(tip)
        return tip

    async def list_received(self, user_id: UUID, *, limit: int, offset: int) -> List[Tip]:
        stmt = (
            select(Tip)
            .where(Tip.recipient_id == user_id)
            .order_by(Tip.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(await self.scalars(stmt))

    async def list_given(self, user_id: UUID, *, limit: int, offset: int) -> List[Tip]:
        stmt = (
            select(Tip)
            .where(Tip.sender_id == user_id)
            .order_by(Tip.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(await self.scalars(stmt))
