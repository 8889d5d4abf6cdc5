from __future__ import annotations

from typing import Optional
from uuid import UUID as PyUUID

from sqlalchemy import ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.db.base import Base, CreatedAtMixin, TimestampMixin, UUIDPkMixin


class WatchlistFolder(UUIDPkMixin, TimestampMixin, Base):
    """User-curated folder of tokens or of users."""
    __tablename__ = "watchlist_folders"

    user_id: Mapped[PyUUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    folder_type: Mapped[str] = mapped_column(Text, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")


class TokenWatchlistFolderItem(UUIDPkMixin, CreatedAtMixin, Base):
    __tablename__ = "token_watchlist_folder_items"
    __table_args__ = (
        UniqueConstraint("folder_id", "token_mint_address", name="uq_token_folder_items_folder_token"),
    )

    folder_id: Mapped[PyUUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("watchlist_folders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token_mint_address: Mapped[str] = mapped_column(
        Text, ForeignKey("tokens.mint_address", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")


class UserWatchlistFolderItem(UUIDPkMixin, CreatedAtMixin, Base):
    __tablename__ = "user_watchlist_folder_items"
    __table_args__ = (
        UniqueConstraint("folder_id", "watched_user_id", name="uq_user_folder_items_folder_user"),
    )

    folder_id: Mapped[PyUUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("watchlist_folders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    watched_user_id: Mapped[PyUUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
