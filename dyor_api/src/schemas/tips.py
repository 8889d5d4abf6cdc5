from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from src.db.models.enums import TipContentType


class TipEligibility(BaseModel):
    is_eligible: bool
    recipient_address: Optional[str] = None


class TipCreate(BaseModel):
    """An on-chain $DYORHUB transfer to record as a tip."""
    recipient_user_id: UUID
    amount: float = Field(..., gt=0, description="Amount in whole $DYORHUB tokens")
    transaction_signature: str = Field(..., min_length=32, max_length=100)
    content_type: Optional[TipContentType] = None
    content_id: Optional[str] = Field(None, max_length=100)


class TipRead(BaseModel):
    id: UUID
    sender_id: Optional[UUID] = None
    sender_wallet_address: str
    recipient_id: Optional[UUID] = None
    recipient_wallet_address: str
    amount: float
    transaction_signature: str
    content_type: Optional[TipContentType] = None
    content_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
