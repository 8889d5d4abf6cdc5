from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import get_current_user, get_session
from src.db.models.enums import NotificationType
from src.db.models.users import User
from src.schemas.common import MessageResponse
from src.schemas.notifications import (
    MarkAllReadResponse,
    NotificationPage,
    NotificationPreferenceRead,
    NotificationPreferenceUpdate,
    NotificationRead,
    UnreadCount,
)
from src.services.notifications import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


# PUBLIC_INTERFACE
@router.get("", response_model=NotificationPage, summary="List notifications")
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    unread_only: bool = Query(False),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> NotificationPage:
    """Newest first, with the caller's total unread count."""
    return await NotificationService(session).list_notifications(
        current_user.id, page=page, limit=limit, unread_only=unread_only
    )


# PUBLIC_INTERFACE
@router.get("/unread-count", response_model=UnreadCount, summary="Unread count")
async def get_unread_count(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> UnreadCount:
    return UnreadCount(unread_count=await NotificationService(session).unread_count(current_user.id))


# PUBLIC_INTERFACE
@router.patch("/read-all", response_model=MarkAllReadResponse, summary="Mark all read")
async def mark_all_read(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MarkAllReadResponse:
    return MarkAllReadResponse(updated=await NotificationService(session).mark_all_read(current_user.id))


# PUBLIC_INTERFACE
@router.get("/preferences", response_model=List[NotificationPreferenceRead], summary="Notification preferences")
async def get_preferences(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> List[NotificationPreferenceRead]:
    return await NotificationService(session).get_preferences(current_user.id)


# PUBLIC_INTERFACE
@router.put(
    "/preferences/{notification_type}",
    response_model=NotificationPreferenceRead,
    summary="Update notification preference",
    description="Enable or disable in-app, email and Telegram delivery for one notification type.",
)
async def update_preference(
    notification_type: NotificationType,
    payload: NotificationPreferenceUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> NotificationPreferenceRead:
    return await NotificationService(session).update_preference(current_user.id, notification_type, payload)


# PUBLIC_INTERFACE
@router.patch("/{notification_id}/read", response_model=NotificationRead, summary="Mark read")
async def mark_read(
    notification_id: UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> NotificationRead:
    notification = await NotificationService(session).mark_read(current_user.id, notification_id)
    return NotificationRead.model_validate(notification)


# PUBLIC_INTERFACE
@router.delete("/{notification_id}", response_model=MessageResponse, summary="Delete notification")
async def delete_notification(
    notification_id: UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    await NotificationService(session).delete_notification(current_user.id, notification_id)
    return MessageResponse(message="Notification deleted")
