from __future__ import annotations

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.errors import BadRequestError, ForbiddenError, NotFoundError
from src.core.settings import AppSettings, get_app_settings
from src.db.models.enums import WatchlistFolderType
from src.db.models.tokens import Token
from src.db.models.users import User
from src.db.models.watchlist import WatchlistFolder
from src.repositories.tokens import TokenRepository, TokenWatchlistRepository
from src.repositories.users import UserRepository, WalletRepository
from src.repositories.watchlist import WatchlistFolderRepository
from src.schemas.auth import UserRead
from src.schemas.tokens import TokenRead
from src.schemas.watchlist import (
    FolderAccess,
    FolderCreate,
    FolderDetail,
    FolderTokenItem,
    FolderUpdate,
    FolderUserItem,
    WatchlistedToken,
)
from src.services.base import BaseService
from src.services.solana_rpc import SolanaRpcClient

logger = logging.getLogger(__name__)


class WatchlistService(BaseService):
    """Flat token watchlist plus token-gated folders of tokens or users."""

    def __init__(
        self,
        session: AsyncSession,
        rpc: Optional[SolanaRpcClient] = None,
        settings: Optional[AppSettings] = None,
    ) -> None:
        super().__init__(session)
        self.settings = settings or get_app_settings()
        self.rpc = rpc or SolanaRpcClient(self.settings)
        self.tokens = TokenRepository(session)
        self.entries = TokenWatchlistRepository(session)
        self.folders = WatchlistFolderRepository(session)
        self.wallets = WalletRepository(session)
        self.users = UserRepository(session)

    # Token watchlist

    # PUBLIC_INTERFACE
    async def list_tokens(self, user: User) -> List[WatchlistedToken]:
        rows = await self.entries.list_for_user(user.id)
        return [WatchlistedToken(token=TokenRead.model_validate(token), added_at=entry.created_at) for entry, token in rows]

    # PUBLIC_INTERFACE
    async def add_token(self, user: User, mint_address: str) -> Token:
        token = await self.tokens.get(mint_address)
        if token is None:
            raise NotFoundError("Token not found")
        if await self.entries.get(user.id, mint_address) is None:
            await self.entries.create(user.id, mint_address)
            await self.session.commit()
        return token

    # PUBLIC_INTERFACE
    async def remove_token(self, user: User, mint_address: str) -> None:
        entry = await self.entries.get(user.id, mint_address)
        if entry is None:
            raise NotFoundError("Token is not in your watchlist")
        await self.entries.delete(entry)
        await self.session.commit()

    # PUBLIC_INTERFACE
    async def is_watchlisted(self, user: User, mint_address: str) -> bool:
        return await self.entries.get(user.id, mint_address) is not None

    # Folder access

    # PUBLIC_INTERFACE
    async def check_folder_access(self, user: User) -> FolderAccess:
        """
        Admins always pass; everyone else needs enough DYORHUB in their primary verified wallet.
        """
        required = self.settings.MIN_TOKEN_HOLDING_FOR_FOLDERS
        if user.is_admin:
            return FolderAccess(has_access=True, required_balance=required)
        mint = self.settings.DYORHUB_TOKEN_MINT
        if not mint:
            logger.warning("DYORHUB_TOKEN_MINT is not configured; folder access denied for %s", user.id)
            return FolderAccess(has_access=False, required_balance=required)
        wallet = await self.wallets.get_primary_verified(user.id)
        if wallet is None:
            return FolderAccess(has_access=False, required_balance=required)
        balance = await self.rpc.get_token_balance(wallet.address, mint)
        return FolderAccess(has_access=balance >= required, balance=balance, required_balance=required)

    async def _require_access(self, user: User) -> None:
        access = await self.check_folder_access(user)
        if not access.has_access:
            raise ForbiddenError(
                f"Watchlist folders require holding at least {access.required_balance:,.0f} DYORHUB tokens",
                details=access.model_dump(),
            )

    async def _owned_folder(self, user: User, folder_id: UUID) -> WatchlistFolder:
        folder = await self.folders.get_for_user(folder_id, user.id)
        if folder is None:
            raise NotFoundError("Folder not found")
        return folder

    # Folders

    # PUBLIC_INTERFACE
    async def list_folders(self, user: User, folder_type: Optional[WatchlistFolderType] = None) -> List[WatchlistFolder]:
        await self._require_access(user)
        return await self.folders.list_for_user(user.id, folder_type.value if folder_type else None)

    # PUBLIC_INTERFACE
    async def create_folder(self, user: User, payload: FolderCreate) -> WatchlistFolder:
        await self._require_access(user)
        position = await self.folders.next_folder_position(user.id, payload.folder_type.value)
        folder = await self.folders.create(
            user_id=user.id,
            name=payload.name,
            description=payload.description,
            folder_type=payload.folder_type.value,
            position=position,
        )
        await self.session.commit()
        return folder

    # PUBLIC_INTERFACE
    async def update_folder(self, user: User, folder_id: UUID, payload: FolderUpdate) -> WatchlistFolder:
        await self._require_access(user)
        folder = await self._owned_folder(user, folder_id)
        for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(folder, field, value)
        await self.session.commit()
        await self.folders.refresh(folder)
        return folder

    # PUBLIC_INTERFACE
    async def delete_folder(self, user: User, folder_id: UUID) -> None:
        await self._require_access(user)
        folder = await self._owned_folder(user, folder_id)
        await self.folders.delete(folder)
        await self.session.commit()

    # PUBLIC_INTERFACE
    async def get_folder(self, user: User, folder_id: UUID) -> FolderDetail:
        await self._require_access(user)
        folder = await self._owned_folder(user, folder_id)
        return await self._detail(folder)

    async def _detail(self, folder: WatchlistFolder) -> FolderDetail:
        detail = FolderDetail.model_validate(folder)
        if folder.folder_type == WatchlistFolderType.TOKEN.value:
            detail.token_items = [
                FolderTokenItem(id=item.id, position=item.position, token=TokenRead.model_validate(token))
                for item, token in await self.folders.list_token_items(folder.id)
            ]
        else:
            detail.user_items = [
                FolderUserItem(id=item.id, position=item.position, user=UserRead.model_validate(u))
                for item, u in await self.folders.list_user_items(folder.id)
            ]
        return detail

    # Items

    # PUBLIC_INTERFACE
    async def add_token_to_folder(self, user: User, folder_id: UUID, mint_address: str) -> FolderDetail:
        await self._require_access(user)
        folder = await self._owned_folder(user, folder_id)
        if folder.folder_type != WatchlistFolderType.TOKEN.value:
            raise BadRequestError("This folder holds users, not tokens")
        if await self.tokens.get(mint_address) is None:
            raise NotFoundError("Token not found")
        if await self.folders.get_token_item(folder.id, mint_address) is None:
            position = await self.folders.next_token_item_position(folder.id)
            await self.folders.add_token_item(folder.id, mint_address, position)
            await self.session.commit()
        return await self._detail(folder)

    # PUBLIC_INTERFACE
    async def remove_token_from_folder(self, user: User, folder_id: UUID, mint_address: str) -> None:
        await self._require_access(user)
        folder = await self._owned_folder(user, folder_id)
        item = await self.folders.get_token_item(folder.id, mint_address)
        if item is None:
            raise NotFoundError("Token is not in this folder")
        await self.folders.delete(item)
        await self.session.commit()

    # PUBLIC_INTERFACE
    async def add_user_to_folder(self, user: User, folder_id: UUID, watched_user_id: UUID) -> FolderDetail:
        await self._require_access(user)
        folder = await self._owned_folder(user, folder_id)
        if folder.folder_type != WatchlistFolderType.USER.value:
            raise BadRequestError("This folder holds tokens, not users")
        if await self.users.get_user_by_id(watched_user_id) is None:
            raise NotFoundError("User not found")
        if await self.folders.get_user_item(folder.id, watched_user_id) is None:
            position = await self.folders.next_user_item_position(folder.id)
            await self.folders.add_user_item(folder.id, watched_user_id, position)
            await self.session.commit()
        return await self._detail(folder)

    # PUBLIC_INTERFACE
    async def remove_user_from_folder(self, user: User, folder_id: UUID, watched_user_id: UUID) -> None:
        await self._require_access(user)
        folder = await self._owned_folder(user, folder_id)
        item = await self.folders.get_user_item(folder.id, watched_user_id)
        if item is None:
            raise NotFoundError("User is not in this folder")
        await self.folders.delete(item)
        await self.session.commit()

    # PUBLIC_INTERFACE
    async def update_item_position(self, user: User, folder_id: UUID, item_id: UUID, position: int) -> FolderDetail:
        await self._require_access(user)
        folder = await self._owned_folder(user, folder_id)
        if folder.folder_type == WatchlistFolderType.TOKEN.value:
            item = await self.folders.get_token_item_by_id(folder.id, item_id)
        else:
            item = await self.folders.get_user_item_by_id(folder.id, item_id)
        if item is None:
            raise NotFoundError("Folder item not found")
        item.position = position
        await self.session.commit()
        return await self._detail(folder)
