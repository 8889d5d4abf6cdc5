from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from src.db.models.enums import CommentType, VoteType
from src.schemas.common import PageMeta


class CommentAuthor(BaseModel):
    id: UUID
    username: str
    display_name: str
    avatar_url: Optional[str] = None


class CommentRead(BaseModel):
    """Comment with author, vote counters and nested replies."""
    id: UUID
    content: str
    token_mint_address: str
    parent_id: Optional[UUID] = None
    type: CommentType = CommentType.COMMENT
    token_call_id: Optional[UUID] = None
    upvotes_count: int = 0
    downvotes_count: int = 0
    is_edited: bool = False
    is_removed: bool = False
    is_deleted: bool = False
    removal_reason: Optional[str] = None
    user_vote_type: Optional[VoteType] = None
    author: Optional[CommentAuthor] = None
    created_at: datetime
    updated_at: datetime
    replies: List["CommentRead"] = Field(default_factory=list)


class CommentPage(BaseModel):
    data: List[CommentRead]
    meta: PageMeta


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10_000)
    token_mint_address: str = Field(..., description="Token the discussion belongs to")
    parent_id: Optional[UUID] = Field(None, description="Comment being replied to")


class CommentUpdate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10_000)


class CommentRemove(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class VoteRequest(BaseModel):
    type: VoteType = Field(..., description="upvote or downvote")


class VoteResponse(BaseModel):
    upvotes: int
    downvotes: int
    user_vote_type: Optional[VoteType] = None


CommentRead.model_rebuild()
