from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.errors import NotFoundError
from src.db.models.enums import NotificationType
from src.db.models.notifications import Notification, NotificationPreference
from src.repositories.notifications import NotificationRepository
from src.schemas.common import PageMeta
from src.schemas.notifications import (
    NotificationPage,
    NotificationPreferenceRead,
    NotificationPreferenceUpdate,
    NotificationRead,
)
from src.services.base import BaseService
from src.services.realtime import broadcast_manager

logger = logging.getLogger(__name__)


class NotificationService(BaseService):
    """
    Creates, lists and updates in-app notifications.

    New notifications are pushed to the recipient's open WebSocket connections
    together with the refreshed unread count.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = NotificationRepository(session)

    # PUBLIC_INTERFACE
    async def create_notification(
        self,
        user_id: UUID,
        notification_type: NotificationType,
        message: str,
        *,
        related_entity_id: Optional[str] = None,
        related_entity_type: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[Notification]:
        """
        Persist a notification unless the user disabled in-app delivery for its type.

        Returns:
            The created Notification, or None when skipped by preference.
        """
        pref = await self.repo.get_preference(user_id, notification_type.value)
        if pref is not None and not pref.in_app_enabled:
            logger.debug("Notification %s disabled for user %s", notification_type.value, user_id)
            return None

        notification = await self.repo.create(
            user_id=user_id,
            type=notification_type.value,
            message=message,
            related_entity_id=related_entity_id,
            related_entity_type=related_entity_type,
            related_metadata=metadata,
        )
        await self.session.commit()

        try:
            unread = await self.repo.unread_count(user_id)
            await broadcast_manager.publish_to_user(
                user_id,
                "notification.new",
                NotificationRead.model_validate(notification).model_dump(mode="json"),
            )
            await broadcast_manager.publish_to_user(user_id, "notification.unread_count", {"unread_count": unread})
        except Exception:
            logger.exception("Failed to push notification %s over WebSocket", notification.id)
        return notification

    # PUBLIC_INTERFACE
    async def notify_many(
        self,
        user_ids: Iterable[UUID],
        notification_type: NotificationType,
        message: str,
        **kwargs: Any,
    ) -> int:
        """Send the same notification to several users; returns how many were created."""
        created = 0
        for uid in dict.fromkeys(user_ids):
            if await self.create_notification(uid, notification_type, message, **kwargs) is not None:
                created += 1
        return created

    # PUBLIC_INTERFACE
    async def list_notifications(
        self, user_id: UUID, *, page: int, limit: int, unread_only: bool = False
    ) -> NotificationPage:
        rows, total = await self.repo.list_for_user(
            user_id, unread_only=unread_only, limit=limit, offset=(page - 1) * limit
        )
        unread = await self.repo.unread_count(user_id)
        return NotificationPage(
            data=[NotificationRead.model_validate(n) for n in rows],
            unread_count=unread,
            meta=PageMeta.build(total, page, limit),
        )

    # PUBLIC_INTERFACE
    async def unread_count(self, user_id: UUID) -> int:
        return await self.repo.unread_count(user_id)

    # PUBLIC_INTERFACE
    async def mark_read(self, user_id: UUID, notification_id: UUID) -> Notification:
        notification = await self.repo.get_for_user(notification_id, user_id)
        if notification is None:
            raise NotFoundError("Notification not found")
        notification.is_read = True
        await self.session.commit()
        await self._push_unread_count(user_id)
        return notification

    # PUBLIC_INTERFACE
    async def mark_all_read(self, user_id: UUID) -> int:
        updated = await self.repo.mark_all_read(user_id)
        await self.session.commit()
        await self._push_unread_count(user_id)
        return updated

    # PUBLIC_INTERFACE
    async def delete_notification(self, user_id: UUID, notification_id: UUID) -> None:
        notification = await self.repo.get_for_user(notification_id, user_id)
        if notification is None:
            raise NotFoundError("Notification not found")
        await self.repo.delete(notification)
        await self.session.commit()
        await self._push_unread_count(user_id)

    # PUBLIC_INTERFACE
    async def get_preferences(self, user_id: UUID) -> List[NotificationPreferenceRead]:
        """One entry per notification type; types without a stored row use defaults."""
        stored = {p.notification_type: p for p in await self.repo.list_preferences(user_id)}
        result: List[NotificationPreferenceRead] = []
        for ntype in NotificationType:
            pref = stored.get(ntype.value)
            if pref is None:
                result.append(NotificationPreferenceRead(notification_type=ntype))
            else:
                result.append(
                    NotificationPreferenceRead(
                        notification_type=ntype,
                        in_app_enabled=pref.in_app_enabled,
                        email_enabled=pref.email_enabled,
                        telegram_enabled=pref.telegram_enabled,
                    )
                )
        return result

    # PUBLIC_INTERFACE
    async def update_preference(
        self, user_id: UUID, notification_type: NotificationType, payload: NotificationPreferenceUpdate
    ) -> NotificationPreferenceRead:
        pref = await self.repo.get_preference(user_id, notification_type.value)
        if pref is None:
            pref = NotificationPreference(
                user_id=user_id,
                notification_type=notification_type.value,
                in_app_enabled=True,
                email_enabled=False,
                telegram_enabled=False,
            )
            await self.repo.add(pref)
        for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(pref, field, value)
        await self.session.commit()
        return NotificationPreferenceRead(
            notification_type=notification_type,
            in_app_enabled=pref.in_app_enabled,
            email_enabled=pref.email_enabled,
            telegram_enabled=pref.telegram_enabled,
        )

    async def _push_unread_count(self, user_id: UUID) -> None:
        try:
            unread = await self.repo.unread_count(user_id)
            await broadcast_manager.publish_to_user(user_id, "notification.unread_count", {"unread_count": unread})
        except Exception:
            logger.exception("Failed to push unread count for user %s", user_id)
