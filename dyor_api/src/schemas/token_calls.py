from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from src.db.models.enums import TokenCallStatus
from src.schemas.common import PageMeta


class TokenCallCreate(BaseModel):
    """New price prediction."""
    token_mint_address: str = Field(..., description="Token being called")
    target_price: float = Field(..., gt=0, description="Predicted USD price")
    target_date: datetime = Field(..., description="Deadline for the target to be hit")
    explanation: str = Field(..., min_length=10, max_length=5_000, description="Reasoning, posted as a comment")


class TokenCallRead(BaseModel):
    id: UUID
    user_id: UUID
    token_mint_address: str
    call_timestamp: datetime
    reference_price: float
    reference_supply: Optional[float] = None
    target_price: float
    target_date: datetime
    status: TokenCallStatus
    verification_timestamp: Optional[datetime] = None
    peak_price_during_period: Optional[float] = None
    final_price: Optional[float] = None
    target_hit_timestamp: Optional[datetime] = None
    time_to_hit_ratio: Optional[float] = None
    explanation_comment_id: Optional[UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TokenCallSort(str, Enum):
    CREATED_DESC = "created_desc"
    TARGET_ASC = "target_asc"


class TokenCallFilter(BaseModel):
    user_id: Optional[UUID] = None
    token_mint_address: Optional[str] = None
    status: Optional[TokenCallStatus] = None


class TokenCallPage(BaseModel):
    data: List[TokenCallRead]
    meta: PageMeta


class TokenCallStats(BaseModel):
    """Prediction track record of a user."""
    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    pending_calls: int = 0
    accuracy_rate: float = Field(0.0, description="Successful / verified, in percent")
    average_time_to_hit_ratio: Optional[float] = None
    current_streak: int = 0
    longest_streak: int = 0


class VerificationRunResult(BaseModel):
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    errored: int = 0
    skipped: bool = Field(False, description="True when a run was already in progress")
