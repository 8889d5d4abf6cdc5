from __future__ import annotations

import logging
from typing import Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.errors import BadRequestError, ConflictError, NotFoundError, UnauthorizedError
from src.core.security import create_access_token, is_valid_solana_address, login_message, verify_wallet_signature
from src.db.models.enums import ActivityType, AuthMethodType
from src.db.models.users import User
from src.repositories.users import UserRepository, WalletRepository
from src.schemas.auth import WalletCheckStatus, WalletLoginRequest, WalletSignupRequest
from src.services.activity import ActivityService
from src.services.base import BaseService

logger = logging.getLogger(__name__)


def _require_address(address: str) -> None:
    if not is_valid_solana_address(address):
        raise BadRequestError("Invalid Solana wallet address")


def _require_signature(address: str, signature: str) -> None:
    if not verify_wallet_signature(address, login_message(address), signature):
        raise UnauthorizedError("Invalid wallet signature")


class AuthService(BaseService):
    """Wallet-based sign-up and sign-in."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.users = UserRepository(session)
        self.wallets = WalletRepository(session)

    # PUBLIC_INTERFACE
    async def check_wallet(self, address: str) -> WalletCheckStatus:
        _require_address(address)
        method = await self.users.get_auth_method(AuthMethodType.WALLET, address)
        return WalletCheckStatus.EXISTING_USER if method else WalletCheckStatus.NEW_WALLET

    # PUBLIC_INTERFACE
    async def signup(self, payload: WalletSignupRequest) -> Tuple[User, str]:
        """
        Create an account owned by the signing wallet.

        The wallet becomes the user's verified primary wallet and its first auth method.
        """
        address = payload.public_key
        _require_address(address)
        _require_signature(address, payload.signature)

        if await self.users.get_auth_method(AuthMethodType.WALLET, address) is not None:
            raise ConflictError("This wallet is already registered")
        if await self.users.get_user_by_username(payload.username) is not None:
            raise ConflictError("Username is already taken")
        existing_wallet = await self.wallets.get_by_address(address)
        if existing_wallet is not None and existing_wallet.is_verified:
            raise ConflictError("This wallet is already linked to another account")

        user = await self.users.create_user(
            username=payload.username, display_name=payload.display_name or payload.username
        )
        await self.users.create_auth_method(
            user_id=user.id, provider=AuthMethodType.WALLET, provider_id=address, is_primary=True
        )
        if existing_wallet is not None:
            existing_wallet.user_id = user.id
            existing_wallet.is_verified = True
            existing_wallet.is_primary = True
            existing_wallet.signature = payload.signature
        else:
            wallet = await self.wallets.create(address=address, user_id=user.id, is_primary=True, is_verified=True)
            wallet.signature = payload.signature
        await self.session.commit()
        logger.info("New user %s signed up with wallet %s", user.username, address)
        return user, create_access_token(str(user.id), user.username)

    # PUBLIC_INTERFACE
    async def login(self, payload: WalletLoginRequest) -> Tuple[User, str]:
        address = payload.public_key
        _require_address(address)
        _require_signature(address, payload.signature)

        method = await self.users.get_auth_method(AuthMethodType.WALLET, address)
        if method is None:
            raise NotFoundError("No account found for this wallet")
        user = await self.users.get_user_by_id(method.user_id)
        if user is None:
            raise NotFoundError("No account found for this wallet")

        user_id = user.id
        await self.run_side_effect(
            ActivityService(self.session).record_activity(user_id, ActivityType.LOGIN),
            f"Recording login activity for user {user_id}",
        )
        user = await self.users.get_user_by_id(user_id)
        return user, create_access_token(str(user.id), user.username)
