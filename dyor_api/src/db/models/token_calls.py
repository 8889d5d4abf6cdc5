from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID as PyUUID

from sqlalchemy import DateTime, Float, ForeignKey, Integer, Numeric, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.db.base import Base, TimestampMixin, UUIDPkMixin

PRICE_TYPE = Numeric(38, 18, asdecimal=False)


class TokenCall(UUIDPkMixin, TimestampMixin, Base):
    """A user's prediction that a token reaches `target_price` by `target_date`."""
    __tablename__ = "token_calls"

    user_id: Mapped[PyUUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token_mint_address: Mapped[str] = mapped_column(
        Text, ForeignKey("tokens.mint_address", ondelete="CASCADE"), nullable=False, index=True
    )
    call_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    reference_price: Mapped[float] = mapped_column(PRICE_TYPE, nullable=False)
    reference_supply: Mapped[Optional[float]] = mapped_column(PRICE_TYPE, nullable=True)
    target_price: Mapped[float] = mapped_column(PRICE_TYPE, nullable=False)
    target_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="PENDING", server_default="PENDING", index=True)
    verification_timestamp: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    peak_price_during_period: Mapped[Optional[float]] = mapped_column(PRICE_TYPE, nullable=True)
    final_price: Mapped[Optional[float]] = mapped_column(PRICE_TYPE, nullable=True)
    target_hit_timestamp: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    time_to_hit_ratio: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    explanation_comment_id: Mapped[Optional[PyUUID]] = mapped_column(UUID(as_uuid=True), nullable=True)


class UserTokenCallStreak(UUIDPkMixin, TimestampMixin, Base):
    """Consecutive successful token calls per user."""
    __tablename__ = "user_token_call_streaks"

    user_id: Mapped[PyUUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    current_success_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    longest_success_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    last_verified_call_timestamp: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
