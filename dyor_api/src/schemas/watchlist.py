from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from src.db.models.enums import WatchlistFolderType
from src.schemas.auth import UserRead
from src.schemas.tokens import TokenRead


class WatchlistStatus(BaseModel):
    is_watchlisted: bool


class WatchlistedToken(BaseModel):
    token: TokenRead
    added_at: datetime


class FolderAccess(BaseModel):
    has_access: bool
    balance: float = 0.0
    required_balance: float


class FolderCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    folder_type: WatchlistFolderType = WatchlistFolderType.TOKEN


class FolderUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    position: Optional[int] = Field(None, ge=0)


class FolderRead(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    folder_type: WatchlistFolderType
    position: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class FolderTokenItem(BaseModel):
    id: UUID
    position: int
    token: TokenRead


class FolderUserItem(BaseModel):
    id: UUID
    position: int
    user: UserRead


class FolderDetail(FolderRead):
    token_items: List[FolderTokenItem] = Field(default_factory=list)
    user_items: List[FolderUserItem] = Field(default_factory=list)


class AddTokenToFolder(BaseModel):
    mint_address: str


class AddUserToFolder(BaseModel):
    user_id: UUID


class ItemPositionUpdate(BaseModel):
    position: int = Field(..., ge=0)
