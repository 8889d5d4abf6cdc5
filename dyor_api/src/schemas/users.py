from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from src.schemas.auth import UserRead
from src.schemas.common import PageMeta


class UserUpdate(BaseModel):
    """Profile fields the user may change."""
    display_name: Optional[str] = Field(None, min_length=1, max_length=50)
    avatar_url: Optional[str] = Field(None, max_length=500)
    bio: Optional[str] = Field(None, max_length=500)


class UserStats(BaseModel):
    """Activity counters shown on a profile."""
    comments: int = Field(0, description="Replies posted")
    posts: int = Field(0, description="Top-level comments posted")
    upvotes_received: int = Field(0)
    followers: int = Field(0)
    following: int = Field(0)
    total_reputation: int = Field(0)


class FollowRead(BaseModel):
    """Follow relationship with notification switches."""
    follower_id: UUID
    followed_id: UUID
    notify_on_prediction: bool
    notify_on_comment: bool
    notify_on_vote: bool
    created_at: datetime

    class Config:
        from_attributes = True


class FollowNotificationUpdate(BaseModel):
    notify_on_prediction: Optional[bool] = Field(None)
    notify_on_comment: Optional[bool] = Field(None)
    notify_on_vote: Optional[bool] = Field(None)


class FollowStatus(BaseModel):
    is_following: bool


class UserPage(BaseModel):
    data: List[UserRead]
    meta: PageMeta
