from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from src.db.models.enums import ActivityType
from src.schemas.comments import CommentAuthor
from src.schemas.common import PageMeta
from src.schemas.token_calls import TokenCallRead


class FeedComment(BaseModel):
    id: UUID
    content: str
    token_mint_address: str
    parent_id: Optional[UUID] = None
    upvotes_count: int = 0
    downvotes_count: int = 0
    created_at: datetime

    class Config:
        from_attributes = True


class FeedItem(BaseModel):
    """
    One activity of a followed user.

    Posts, replies and votes carry the comment they concern; predictions carry the token call.
    """
    id: UUID
    activity_type: ActivityType
    created_at: datetime
    user: CommentAuthor
    comment: Optional[FeedComment] = None
    token_call: Optional[TokenCallRead] = None


class FeedPage(BaseModel):
    data: List[FeedItem] = Field(default_factory=list)
    meta: PageMeta
