from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select

from src.db.models.tokens import Token
from src.db.models.users import User
from src.db.models.watchlist import TokenWatchlistFolderItem, UserWatchlistFolderItem, WatchlistFolder
from .base import BaseRepository


class WatchlistFolderRepository(BaseRepository):
    """Repository for watchlist folders and their items."""

    async def get_for_user(self, folder_id: UUID, user_id: UUID) -> Optional[WatchlistFolder]:
        stmt = select(WatchlistFolder).where(WatchlistFolder.id == folder_id, WatchlistFolder.user_id == user_id)
        return await self.scalar_one_or_none(stmt)

    async def list_for_user(self, user_id: UUID, folder_type: Optional[str]) -> List[WatchlistFolder]:
        stmt = select(WatchlistFolder).where(WatchlistFolder.user_id == user_id)
        if folder_type:
            stmt = stmt.where(WatchlistFolder.folder_type == folder_type)
        stmt = stmt.order_by(WatchlistFolder.position.asc(), WatchlistFolder.created_at.asc())
        return list(await self.scalars(stmt))

    async def next_folder_position(self, user_id: UUID, folder_type: str) -> int:
        stmt = select(func.max(WatchlistFolder.position)).where(
            WatchlistFolder.user_id == user_id, WatchlistFolder.folder_type == folder_type
        )
        res = await self.execute(stmt)
        current = res.scalar_one_or_none()
        return 0 if current is None else int(current) + 1

    async def create(self, **fields) -> WatchlistFolder:
        folder = WatchlistFolder(**fields)
        await self.add(folder)
        await self.flush()
        await self.refresh(folder)
        return folder

    # Token items

    async def get_token_item(self, folder_id: UUID, mint_address: str) -> Optional[TokenWatchlistFolderItem]:
        stmt = select(TokenWatchlistFolderItem).where(
            TokenWatchlistFolderItem.folder_id == folder_id,
            TokenWatchlistFolderItem.token_mint_address == mint_address,
        )
        return await self.scalar_one_or_none(stmt)

    async def get_token_item_by_id(self, folder_id: UUID, item_id: UUID) -> Optional[TokenWatchlistFolderItem]:
        stmt = select(TokenWatchlistFolderItem).where(
            TokenWatchlistFolderItem.folder_id == folder_id, TokenWatchlistFolderItem.id == item_id
        )
        return await self.scalar_one_or_none(stmt)

    async def next_token_item_position(self, folder_id: UUID) -> int:
        stmt = select(func.max(TokenWatchlistFolderItem.position)).where(
            TokenWatchlistFolderItem.folder_id == folder_id
        )
        current = (await self.execute(stmt)).scalar_one_or_none()
        return 0 if current is None else int(current) + 1

    async def add_token_item(self, folder_id: UUID, mint_address: str, position: int) -> TokenWatchlistFolderItem:
        item = TokenWatchlistFolderItem(folder_id=folder_id, token_mint_address=mint_address, position=position)
        await self.add(item)
        await self.flush()
        await self.refresh(item)
        return item

    async def list_token_items(self, folder_id: UUID) -> List[tuple[TokenWatchlistFolderItem, Token]]:
        stmt = (
            select(TokenWatchlistFolderItem, Token)
            .join(Token, Token.mint_address == TokenWatchlistFolderItem.token_mint_address)
            .where(TokenWatchlistFolderItem.folder_id == folder_id)
            .order_by(TokenWatchlistFolderItem.position.asc())
        )
        res = await self.execute(stmt)
        return [(row[0], row[1]) for row in res.all()]

    # User items

    async def get_user_item(self, folder_id: UUID, user_id: UUID) -> Optional[UserWatchlistFolderItem]:
        stmt = select(UserWatchlistFolderItem).where(
            UserWatchlistFolderItem.folder_id == folder_id,
            UserWatchlistFolderItem.watched_user_id == user_id,
        )
        return await self.scalar_one_or_none(stmt)

    async def get_user_item_by_id(self, folder_id: UUID, item_id: UUID) -> Optional[UserWatchlistFolderItem]:
        stmt = select(UserWatchlistFolderItem).where(
            UserWatchlistFolderItem.folder_id == folder_id, UserWatchlistFolderItem.id == item_id
        )
        return await self.scalar_one_or_none(stmt)

    async def next_user_item_position(self, folder_id: UUID) -> int:
        stmt = select(func.max(UserWatchlistFolderItem.position)).where(
            UserWatchlistFolderItem.folder_id == folder_id
        )
        current = (await self.execute(stmt)).scalar_one_or_none()
        return 0 if current is None else int(current) + 1

    async def add_user_item(self, folder_id: UUID, user_id: UUID, position: int) -> UserWatchlistFolderItem:
        item = UserWatchlistFolderItem(folder_id=folder_id, watched_user_id=user_id, position=position)
        await self.add(item)
        await self.flush()
        await self.refresh(item)
        return item

    async def list_user_items(self, folder_id: UUID) -> List[tuple[UserWatchlistFolderItem, User]]:
        stmt = (
            select(UserWatchlistFolderItem, User)
            .join(User, User.id == UserWatchlistFolderItem.watched_user_id)
            .where(UserWatchlistFolderItem.folder_id == folder_id)
            .order_by(UserWatchlistFolderItem.position.asc())
        )
        res = await self.execute(stmt)
        return [(row[0], row[1]) for row in res.all()]
