from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import get_current_user, get_session
from src.db.models.enums import WatchlistFolderType
from src.db.models.users import User
from src.schemas.common import MessageResponse
from src.schemas.tokens import TokenRead
from src.schemas.watchlist import (
    AddTokenToFolder,
    AddUserToFolder,
    FolderAccess,
    FolderCreate,
    FolderDetail,
    FolderRead,
    FolderUpdate,
    ItemPositionUpdate,
    WatchlistedToken,
    WatchlistStatus,
)
from src.services.solana_rpc import SolanaRpcClient, get_solana_rpc_client
from src.services.watchlist import WatchlistService

router = APIRouter(prefix="/watchlist", tags=["Watchlist"])


def _service(
    session: AsyncSession = Depends(get_session),
    rpc: SolanaRpcClient = Depends(get_solana_rpc_client),
) -> WatchlistService:
    return WatchlistService(session, rpc)


# PUBLIC_INTERFACE
@router.get("/tokens", response_model=List[WatchlistedToken], summary="My watchlisted tokens")
async def list_watchlisted_tokens(
    current_user: User = Depends(get_current_user),
    service: WatchlistService = Depends(_service),
) -> List[WatchlistedToken]:
    return await service.list_tokens(current_user)


# PUBLIC_INTERFACE
@router.post("/tokens/{mint_address}", response_model=TokenRead, summary="Watch token")
async def add_watchlisted_token(
    mint_address: str,
    current_user: User = Depends(get_current_user),
    service: WatchlistService = Depends(_service),
) -> TokenRead:
    token = await service.add_token(current_user, mint_address)
    return TokenRead.model_validate(token)


# PUBLIC_INTERFACE
@router.delete("/tokens/{mint_address}", response_model=MessageResponse, summary="Unwatch token")
async def remove_watchlisted_token(
    mint_address: str,
    current_user: User = Depends(get_current_user),
    service: WatchlistService = Depends(_service),
) -> MessageResponse:
    await service.remove_token(current_user, mint_address)
    return MessageResponse(message="Token removed from watchlist")


# PUBLIC_INTERFACE
@router.get("/tokens/{mint_address}/status", response_model=WatchlistStatus, summary="Watchlist status")
async def watchlisted_token_status(
    mint_address: str,
    current_user: User = Depends(get_current_user),
    service: WatchlistService = Depends(_service),
) -> WatchlistStatus:
    return WatchlistStatus(is_watchlisted=await service.is_watchlisted(current_user, mint_address))


# PUBLIC_INTERFACE
@router.get(
    "/folders/access",
    response_model=FolderAccess,
    summary="Folder access",
    description="Folders require holding enough $DYORHUB in the primary verified wallet; admins always have access.",
)
async def folder_access(
    current_user: User = Depends(get_current_user),
    service: WatchlistService = Depends(_service),
) -> FolderAccess:
    return await service.check_folder_access(current_user)


# PUBLIC_INTERFACE
@router.get("/folders", response_model=List[FolderRead], summary="List folders")
async def list_folders(
    folder_type: Optional[WatchlistFolderType] = Query(None),
    current_user: User = Depends(get_current_user),
    service: WatchlistService = Depends(_service),
) -> List[FolderRead]:
    folders = await service.list_folders(current_user, folder_type)
    return [FolderRead.model_validate(f) for f in folders]


# PUBLIC_INTERFACE
@router.post("/folders", response_model=FolderRead, status_code=201, summary="Create folder")
async def create_folder(
    payload: FolderCreate,
    current_user: User = Depends(get_current_user),
    service: WatchlistService = Depends(_service),
) -> FolderRead:
    folder = await service.create_folder(current_user, payload)
    return FolderRead.model_validate(folder)


# PUBLIC_INTERFACE
@router.get("/folders/{folder_id}", response_model=FolderDetail, summary="Get folder")
async def get_folder(
    folder_id: UUID,
    current_user: User = Depends(get_current_user),
    service: WatchlistService = Depends(_service),
) -> FolderDetail:
    """Folder with its token or user items ordered by position."""
    return await service.get_folder(current_user, folder_id)


# PUBLIC_INTERFACE
@router.patch("/folders/{folder_id}", response_model=FolderRead, summary="Update folder")
async def update_folder(
    folder_id: UUID,
    payload: FolderUpdate,
    current_user: User = Depends(get_current_user),
    service: WatchlistService = Depends(_service),
) -> FolderRead:
    folder = await service.update_folder(current_user, folder_id, payload)
    return FolderRead.model_validate(folder)


# PUBLIC_INTERFACE
@router.delete("/folders/{folder_id}", response_model=MessageResponse, summary="Delete folder")
async def delete_folder(
    folder_id: UUID,
    current_user: User = Depends(get_current_user),
    service: WatchlistService = Depends(_service),
) -> MessageResponse:
    await service.delete_folder(current_user, folder_id)
    return MessageResponse(message="Folder deleted")


# PUBLIC_INTERFACE
@router.post("/folders/{folder_id}/tokens", response_model=FolderDetail, summary="Add token to folder")
async def add_token_to_folder(
    folder_id: UUID,
    payload: AddTokenToFolder,
    current_user: User = Depends(get_current_user),
    service: WatchlistService = Depends(_service),
) -> FolderDetail:
    return await service.add_token_to_folder(current_user, folder_id, payload.mint_address)


# PUBLIC_INTERFACE
@router.delete(
    "/folders/{folder_id}/tokens/{mint_address}",
    response_model=MessageResponse,
    summary="Remove token from folder",
)
async def remove_token_from_folder(
    folder_id: UUID,
    mint_address: str,
    current_user: User = Depends(get_current_user),
    service: WatchlistService = Depends(_service),
) -> MessageResponse:
    await service.remove_token_from_folder(current_user, folder_id, mint_address)
    return MessageResponse(message="Token removed from folder")


# PUBLIC_INTERFACE
@router.post("/folders/{folder_id}/users", response_model=FolderDetail, summary="Add user to folder")
async def add_user_to_folder(
    folder_id: UUID,
    payload: AddUserToFolder,
    current_user: User = Depends(get_current_user),
    service: WatchlistService = Depends(_service),
) -> FolderDetail:
    return await service.add_user_to_folder(current_user, folder_id, payload.user_id)


# PUBLIC_INTERFACE
@router.delete(
    "/folders/{folder_id}/users/{user_id}",
    response_model=MessageResponse,
    summary="Remove user from folder",
)
async def remove_user_from_folder(
    folder_id: UUID,
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    service: WatchlistService = Depends(_service),
) -> MessageResponse:
    await service.remove_user_from_folder(current_user, folder_id, user_id)
    return MessageResponse(message="User removed from folder")


# PUBLIC_INTERFACE
@router.patch("/folders/{folder_id}/items/{item_id}", response_model=FolderDetail, summary="Move folder item")
async def update_item_position(
    folder_id: UUID,
    item_id: UUID,
    payload: ItemPositionUpdate,
    current_user: User = Depends(get_current_user),
    service: WatchlistService = Depends(_service),
) -> FolderDetail:
    return await service.update_item_position(current_user, folder_id, item_id, payload.position)
