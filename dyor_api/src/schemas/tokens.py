from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from src.db.models.enums import SentimentType
from src.schemas.common import PageMeta


class TokenRead(BaseModel):
    """Cached token metadata."""
    mint_address: str = Field(..., description="Token mint address")
    name: str
    symbol: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    website_url: Optional[str] = None
    telegram_url: Optional[str] = None
    twitter_handle: Optional[str] = None
    views_count: int = 0
    creator_address: Optional[str] = None
    creation_tx: Optional[str] = None
    creation_time: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TokenPage(BaseModel):
    data: List[TokenRead]
    meta: PageMeta


class TokenPrice(BaseModel):
    mint_address: str
    price: float = Field(..., description="Current USD price")


class PricePoint(BaseModel):
    """One Birdeye history item, serialized with Birdeye's `unixTime` key."""
    unix_time: int = Field(..., alias="unixTime", description="Epoch seconds")
    value: float = Field(..., description="USD price")

    class Config:
        populate_by_name = True


class PriceHistory(BaseModel):
    mint_address: str
    resolution: str
    items: List[PricePoint] = Field(default_factory=list)


class TokenSentimentStats(BaseModel):
    """Community sentiment on a token and, for a signed-in viewer, their own vote."""
    bullish_count: int = 0
    bearish_count: int = 0
    red_flag_count: int = 0
    total_count: int = 0
    user_sentiment: Optional[SentimentType] = None


class TokenSentimentUpdate(BaseModel):
    sentiment_type: SentimentType = Field(..., description="bullish, bearish or red_flag")
