from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID as PyUUID

from sqlalchemy import DateTime, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.db.base import Base, CreatedAtMixin, TimestampMixin, UUIDPkMixin


class Token(TimestampMixin, Base):
    """Solana token metadata cached from Birdeye, keyed by mint address."""
    __tablename__ = "tokens"

    mint_address: Mapped[str] = mapped_column(Text, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    symbol: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    website_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    telegram_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    twitter_handle: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    views_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    creator_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    creation_tx: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    creation_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class TokenWatchlist(CreatedAtMixin, Base):
    """A token on a user's flat watchlist."""
    __tablename__ = "token_watchlists"

    user_id: Mapped[PyUUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    token_mint_address: Mapped[str] = mapped_column(
        Text, ForeignKey("tokens.mint_address", ondelete="CASCADE"), primary_key=True
    )


class TokenSentiment(UUIDPkMixin, TimestampMixin, Base):
    """A user's single bullish, bearish or red-flag vote on a token."""
    __tablename__ = "token_sentiments"
    __table_args__ = (
        UniqueConstraint("user_id", "token_mint_address", name="uq_token_sentiments_user_token"),
    )

    user_id: Mapped[PyUUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    token_mint_address: Mapped[str] = mapped_column(
        Text, ForeignKey("tokens.mint_address", ondelete="CASCADE"), nullable=False, index=True
    )
    sentiment_type: Mapped[str] = mapped_column(Text, nullable=False)
    value: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
