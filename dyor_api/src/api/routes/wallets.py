from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import get_current_user, get_session
from src.db.models.users import User
from src.schemas.common import MessageResponse
from src.schemas.wallets import (
    NonceResponse,
    PublicWalletResponse,
    VerifyWalletRequest,
    WalletAddressRequest,
    WalletRead,
)
from src.services.wallets import WalletService

router = APIRouter(prefix="/wallets", tags=["Wallets"])


# PUBLIC_INTERFACE
@router.post(
    "/connect",
    response_model=WalletRead,
    summary="Connect wallet",
    description="Attach a Solana wallet to the current user. The wallet stays unverified until a signed nonce is submitted.",
)
async def connect_wallet(
    payload: WalletAddressRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> WalletRead:
    wallet = await WalletService(session).connect(current_user, payload.address)
    return WalletRead.model_validate(wallet)


# PUBLIC_INTERFACE
@router.post(
    "/generate-nonce",
    response_model=NonceResponse,
    summary="Generate verification nonce",
    description="Issue a one-time nonce (valid 15 minutes) to embed in the verification message.",
)
async def generate_nonce(
    payload: WalletAddressRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> NonceResponse:
    return await WalletService(session).generate_nonce(current_user, payload.address)


# PUBLIC_INTERFACE
@router.post("/verify", response_model=WalletRead, summary="Verify wallet ownership")
async def verify_wallet(
    payload: VerifyWalletRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> WalletRead:
    """
    Check the signature over the verification message for the stored nonce.

    On success the wallet becomes verified and usable for wallet login.
    """
    wallet = await WalletService(session).verify(current_user, payload.address, payload.signature)
    return WalletRead.model_validate(wallet)


# PUBLIC_INTERFACE
@router.get("", response_model=List[WalletRead], summary="List my wallets")
async def list_wallets(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> List[WalletRead]:
    wallets = await WalletService(session).list_wallets(current_user)
    return [WalletRead.model_validate(w) for w in wallets]


# PUBLIC_INTERFACE
@router.get(
    "/users/{user_id}/primary",
    response_model=PublicWalletResponse,
    summary="Public primary wallet",
    description="Primary verified wallet of any user, used as the tip destination.",
)
async def get_public_primary_wallet(
    user_id: UUID,
    session: AsyncSession = Depends(get_session),
) -> PublicWalletResponse:
    return PublicWalletResponse(address=await WalletService(session).get_public_primary(user_id))


# PUBLIC_INTERFACE
@router.delete("/{wallet_id}", response_model=MessageResponse, summary="Remove wallet")
async def delete_wallet(
    wallet_id: UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    await WalletService(session).delete(current_user, wallet_id)
    return MessageResponse(message="Wallet removed")


# PUBLIC_INTERFACE
@router.post("/{wallet_id}/primary", response_model=WalletRead, summary="Set primary wallet")
async def set_primary_wallet(
    wallet_id: UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> WalletRead:
    wallet = await WalletService(session).set_primary(current_user, wallet_id)
    return WalletRead.model_validate(wallet)
