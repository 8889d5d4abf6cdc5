from __future__ import annotations

import logging
import secrets
import time
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.errors import BadRequestError, ConflictError, NotFoundError
from src.core.security import is_valid_solana_address, verification_message, verify_wallet_signature
from src.db.models.enums import AuthMethodType
from src.db.models.users import User, Wallet
from src.repositories.users import UserRepository, WalletRepository
from src.schemas.wallets import NonceResponse
from src.services.base import BaseService

logger = logging.getLogger(__name__)

NONCE_TTL_MS = 15 * 60 * 1000


def _now_ms() -> int:
    return int(time.time() * 1000)


# PUBLIC_INTERFACE
def generate_nonce(now_ms: Optional[int] = None) -> str:
    """Nonce of the form DYOR-{epoch_ms}-{six random digits}."""
    now_ms = now_ms if now_ms is not None else _now_ms()
    return f"DYOR-{now_ms}-{100000 + secrets.randbelow(900000)}"


class WalletService(BaseService):
    """Connecting, verifying and managing a user's Solana wallets."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = WalletRepository(session)
        self.users = UserRepository(session)

    async def _owned_by_address(self, user: User, address: str) -> Wallet:
        wallet = await self.repo.get_by_address(address)
        if wallet is None or wallet.user_id != user.id:
            raise NotFoundError("Wallet not found")
        return wallet

    # PUBLIC_INTERFACE
    async def connect(self, user: User, address: str) -> Wallet:
        """
        Attach a wallet to the user.

        An unverified wallet held by someone else is taken over; a verified one is a conflict.
        """
        if not is_valid_solana_address(address):
            raise BadRequestError("Invalid Solana wallet address")

        wallet = await self.repo.get_by_address(address)
        if wallet is not None:
            if wallet.user_id == user.id:
                return wallet
            if wallet.is_verified:
                raise ConflictError("This wallet is already verified by another user")
            wallet.user_id = user.id
            wallet.is_primary = await self.repo.count_for_user(user.id) == 0
            wallet.signature = None
            wallet.verification_nonce = None
            wallet.nonce_expires_at = None
            await self.session.commit()
            return wallet

        is_first = await self.repo.count_for_user(user.id) == 0
        wallet = await self.repo.create(address=address, user_id=user.id, is_primary=is_first)
        await self.session.commit()
        return wallet

    # PUBLIC_INTERFACE
    async def generate_nonce(self, user: User, address: str) -> NonceResponse:
        wallet = await self._owned_by_address(user, address)
        now_ms = _now_ms()
        wallet.verification_nonce = generate_nonce(now_ms)
        wallet.nonce_expires_at = now_ms + NONCE_TTL_MS
        await self.session.commit()
        return NonceResponse(nonce=wallet.verification_nonce, expires_at=wallet.nonce_expires_at)

    # PUBLIC_INTERFACE
    async def verify(self, user: User, address: str, signature: str) -> Wallet:
        wallet = await self._owned_by_address(user, address)
        method = await self.users.get_auth_method(AuthMethodType.WALLET, address)
        if method is not None and method.user_id != user.id:
            raise ConflictError("This wallet is already verified by another user")
        if not wallet.verification_nonce or not wallet.nonce_expires_at:
            raise BadRequestError("No verification nonce found; request a new one")
        if wallet.nonce_expires_at < _now_ms():
            raise BadRequestError("Verification nonce has expired; request a new one")
        if not verify_wallet_signature(address, verification_message(wallet.verification_nonce), signature):
            raise BadRequestError("Invalid wallet signature")

        wallet.is_verified = True
        wallet.signature = signature
        wallet.verification_nonce = None
        wallet.nonce_expires_at = None
        if method is None:
            await self.users.create_auth_method(
                user_id=user.id, provider=AuthMethodType.WALLET, provider_id=address
            )
        await self.session.commit()
        logger.info("Wallet %s verified for user %s", address, user.id)
        return wallet

    # PUBLIC_INTERFACE
    async def list_wallets(self, user: User) -> List[Wallet]:
        return await self.repo.list_for_user(user.id)

    # PUBLIC_INTERFACE
    async def delete(self, user: User, wallet_id: UUID) -> None:
        wallet = await self.repo.get_by_id(wallet_id)
        if wallet is None or wallet.user_id != user.id:
            raise NotFoundError("Wallet not found")
        method = await self.users.get_auth_method(AuthMethodType.WALLET, wallet.address)
        if method is not None and method.user_id == user.id and await self.users.count_auth_methods(user.id) <= 1:
            raise ConflictError("Cannot remove your only sign-in method")
        if method is not None and method.user_id == user.id:
            await self.users.delete_auth_method(AuthMethodType.WALLET, wallet.address)
        await self.repo.delete(wallet)
        await self.session.commit()

    # PUBLIC_INTERFACE
    async def set_primary(self, user: User, wallet_id: UUID) -> Wallet:
        wallet = await self.repo.get_by_id(wallet_id)
        if wallet is None or wallet.user_id != user.id:
            raise BadRequestError("Wallet not found or does not belong to you")
        if not wallet.is_verified:
            raise BadRequestError("Only verified wallets can be primary")
        await self.repo.unset_primary_for_user(user.id, except_id=wallet.id)
        wallet.is_primary = True
        await self.session.commit()
        return wallet

    # PUBLIC_INTERFACE
    async def get_public_primary(self, user_id: UUID) -> Optional[str]:
        wallet = await self.repo.get_primary_verified(user_id)
        return wallet.address if wallet else None
