from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID as PyUUID

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, Text, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.db.base import Base, CreatedAtMixin, TimestampMixin, UUIDPkMixin


class UserActivity(UUIDPkMixin, CreatedAtMixin, Base):
    """Append-only log of actions that count towards streaks and reputation."""
    __tablename__ = "user_activities"
    __table_args__ = (
        Index("ix_user_activities_user_created", "user_id", "created_at"),
    )

    user_id: Mapped[PyUUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    activity_type: Mapped[str] = mapped_column(Text, nullable=False)
    entity_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    entity_type: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class UserStreak(UUIDPkMixin, TimestampMixin, Base):
    """Daily activity streak per user."""
    __tablename__ = "user_streaks"

    user_id: Mapped[PyUUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    last_activity_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class UserReputation(UUIDPkMixin, TimestampMixin, Base):
    """Accumulated reputation points per user."""
    __tablename__ = "user_reputations"

    user_id: Mapped[PyUUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    total_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    weekly_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    weekly_points_last_reset: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, server_default=text("now()")
    )


class Badge(UUIDPkMixin, TimestampMixin, Base):
    """Badge definition: a requirement and the threshold that earns it."""
    __tablename__ = "badges"

    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    requirement: Mapped[str] = mapped_column(Text, nullable=False)
    threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    award_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")


class UserBadge(UUIDPkMixin, TimestampMixin, Base):
    """A badge earned by a user."""
    __tablename__ = "user_badges"
    __table_args__ = (
        UniqueConstraint("user_id", "badge_id", name="uq_user_badges_user_badge"),
    )

    user_id: Mapped[PyUUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    badge_id: Mapped[PyUUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("badges.id", ondelete="CASCADE"), nullable=False
    )
    earned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=text("now()"))
    is_displayed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
