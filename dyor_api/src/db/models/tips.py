from __future__ import annotations

from typing import Optional
from uuid import UUID as PyUUID

from sqlalchemy import ForeignKey, Numeric, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.db.base import Base, CreatedAtMixin, UUIDPkMixin


class Tip(UUIDPkMixin, CreatedAtMixin, Base):
    """$DYORHUB transfer between two users, verified on-chain before recording."""
    __tablename__ = "tips"

    sender_id: Mapped[Optional[PyUUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    sender_wallet_address: Mapped[str] = mapped_column(Text, nullable=False)
    recipient_id: Mapped[Optional[PyUUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    recipient_wallet_address: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[float] = mapped_column(Numeric(18, 6, asdecimal=False), nullable=False)
    transaction_signature: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    content_type: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    content_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
