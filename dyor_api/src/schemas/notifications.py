from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from src.db.models.enums import NotificationType
from src.schemas.common import PageMeta


class NotificationRead(BaseModel):
    id: UUID
    type: NotificationType
    message: str
    is_read: bool
    related_entity_id: Optional[str] = None
    related_entity_type: Optional[str] = None
    related_metadata: Optional[Dict[str, Any]] = None
    created_at: datetime

    class Config:
        from_attributes = True


class NotificationPage(BaseModel):
    data: List[NotificationRead]
    unread_count: int = 0
    meta: PageMeta


class UnreadCount(BaseModel):
    unread_count: int = 0


class MarkAllReadResponse(BaseModel):
    updated: int = 0


class NotificationPreferenceRead(BaseModel):
    notification_type: NotificationType
    in_app_enabled: bool = True
    email_enabled: bool = False
    telegram_enabled: bool = False


class NotificationPreferenceUpdate(BaseModel):
    in_app_enabled: Optional[bool] = Field(None)
    email_enabled: Optional[bool] = Field(None)
    telegram_enabled: Optional[bool] = Field(None)
