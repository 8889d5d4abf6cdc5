from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update

from src.db.models.notifications import Notification, NotificationPreference
from .base import BaseRepository


class NotificationRepository(BaseRepository):
    """Repository for notifications and delivery preferences."""

    async def create(self, **fields) -> Notification:
        notification = Notification(**fields)
        await self.add(notification)
        await self.flush()
        await self.refresh(notification)
        return notification

    async def get_for_user(self, notification_id: UUID, user_id: UUID) -> Optional[Notification]:
        stmt = select(Notification).where(Notification.id == notification_id, Notification.user_id == user_id)
        return await self.scalar_one_or_none(stmt)

    async def list_for_user(
        self, user_id: UUID, *, unread_only: bool, limit: int, offset: int
    ) -> tuple[List[Notification], int]:
        stmt = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            stmt = stmt.where(Notification.is_read.is_(False))
        total = await self.count(stmt)
        rows = await self.scalars(stmt.order_by(Notification.created_at.desc()).offset(offset).limit(limit))
        return list(rows), total

    async def unread_count(self, user_id: UUID) -> int:
        return await self.count(
            select(Notification.id).where(Notification.user_id == user_id, Notification.is_read.is_(False))
        )

    async def mark_all_read(self, user_id: UUID) -> int:
        res = await self.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
        )
        return int(res.rowcount or 0)

    async def get_preference(self, user_id: UUID, notification_type: str) -> Optional[NotificationPreference]:
        stmt = select(NotificationPreference).where(
            NotificationPreference.user_id == user_id,
            NotificationPreference.notification_type == notification_type,
        )
        return await self.scalar_one_or_none(stmt)

    async def list_preferences(self, user_id: UUID) -> List[NotificationPreference]:
        stmt = select(NotificationPreference).where(NotificationPreference.user_id == user_id)
        return list(await self.scalars(stmt))
