from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from src.db.models.enums import ActivityType, BadgeCategory, BadgeRequirement
from src.schemas.common import PageMeta


class StreakRead(BaseModel):
    current_streak: int = 0
    longest_streak: int = 0
    last_activity_date: Optional[datetime] = None
    is_at_risk: bool = False


class ActivityRead(BaseModel):
    id: UUID
    activity_type: ActivityType
    entity_id: Optional[str] = None
    entity_type: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ReputationRead(BaseModel):
    user_id: UUID
    total_points: int = 0
    weekly_points: int = 0
    weekly_points_last_reset: Optional[datetime] = None


class LeaderboardCategory(str, Enum):
    REPUTATION = "reputation"
    WEEKLY = "weekly"
    STREAK = "streak"
    POSTS = "posts"


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: UUID
    username: str
    display_name: str
    avatar_url: Optional[str] = None
    score: int


class LeaderboardResponse(BaseModel):
    category: LeaderboardCategory
    entries: List[LeaderboardEntry] = Field(default_factory=list)


class TokenCallLeaderboardSort(str, Enum):
    ACCURACY_RATE = "accuracy_rate"
    SUCCESSFUL_CALLS = "successful_calls"
    TOTAL_CALLS = "total_calls"


class TokenCallLeaderboardEntry(BaseModel):
    """Verified-call track record of one user."""
    rank: int
    user_id: UUID
    username: str
    display_name: str
    avatar_url: Optional[str] = None
    total_calls: int = Field(0, description="Verified calls, successful or failed")
    successful_calls: int = 0
    accuracy_rate: float = Field(0.0, description="Successful / verified, in percent")
    average_time_to_hit_ratio: Optional[float] = None
    average_multiplier: Optional[float] = Field(None, description="Mean target / reference price of successful calls")


class TokenCallLeaderboardPage(BaseModel):
    data: List[TokenCallLeaderboardEntry] = Field(default_factory=list)
    meta: PageMeta


class BadgeRead(BaseModel):
    id: UUID
    name: str
    description: str
    category: BadgeCategory
    requirement: BadgeRequirement
    threshold: int
    image_url: Optional[str] = None
    is_active: bool = True
    award_count: int = 0

    class Config:
        from_attributes = True


class BadgeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1)
    category: BadgeCategory
    requirement: BadgeRequirement
    threshold: int = Field(1, ge=0)
    image_url: Optional[str] = None
    is_active: bool = True


class BadgeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    category: Optional[BadgeCategory] = None
    requirement: Optional[BadgeRequirement] = None
    threshold: Optional[int] = Field(None, ge=0)
    image_url: Optional[str] = None
    is_active: Optional[bool] = None


class UserBadgeRead(BaseModel):
    id: UUID = Field(..., description="User badge ID")
    badge: BadgeRead
    earned_at: datetime
    is_displayed: bool


class AvailableBadge(BaseModel):
    badge: BadgeRead
    is_achieved: bool = False
    achieved_at: Optional[datetime] = None
    current_value: int = 0


class BadgeDisplayUpdate(BaseModel):
    is_displayed: bool


class AwardBadgeRequest(BaseModel):
    user_id: UUID
