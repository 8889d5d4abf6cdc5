from __future__ import annotations

from typing import Optional
from uuid import UUID as PyUUID

from sqlalchemy import BigInteger, Boolean, ForeignKey, Index, Text, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.db.base import Base, CreatedAtMixin, TimestampMixin, UUIDPkMixin


class User(UUIDPkMixin, TimestampMixin, Base):
    """Platform user; identified by wallet sign-in or (legacy) Twitter id."""
    __tablename__ = "users"
    __table_args__ = (
        Index("uq_users_username_lower", text("lower(username)"), unique=True),
    )

    username: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(Text, nullable=False)
    avatar_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    twitter_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True, unique=True)
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")


class AuthMethod(UUIDPkMixin, TimestampMixin, Base):
    """A way a user can sign in (wallet address, Twitter account)."""
    __tablename__ = "auth_methods"
    __table_args__ = (
        UniqueConstraint("provider", "provider_id", name="uq_auth_methods_provider_provider_id"),
    )

    user_id: Mapped[PyUUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    provider: Mapped[str] = mapped_column(Text, nullable=False)
    provider_id: Mapped[str] = mapped_column(Text, nullable=False)
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")


class Wallet(UUIDPkMixin, TimestampMixin, Base):
    """Solana wallet connected to a user account."""
    __tablename__ = "wallets"

    address: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    user_id: Mapped[PyUUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    signature: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    verification_nonce: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # epoch milliseconds
    nonce_expires_at: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)


class UserFollow(CreatedAtMixin, Base):
    """Follower -> followed relationship with per-event notification switches."""
    __tablename__ = "user_follows"

    follower_id: Mapped[PyUUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    followed_id: Mapped[PyUUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    notify_on_prediction: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    notify_on_comment: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    notify_on_vote: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
