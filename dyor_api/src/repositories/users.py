from __future__ import annotations

from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import delete, func, select, update

from src.db.models.enums import AuthMethodType
from src.db.models.users import AuthMethod, User, UserFollow, Wallet
from .base import BaseRepository


class UserRepository(BaseRepository):
    """Repository for users and their sign-in methods."""

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        return await self.scalar_one_or_none(select(User).where(User.id == user_id))

    async def get_user_by_username(self, username: str) -> Optional[User]:
        stmt = select(User).where(func.lower(User.username) == username.lower())
        return await self.scalar_one_or_none(stmt)

    async def get_users_by_usernames(self, usernames: Sequence[str]) -> List[User]:
        if not usernames:
            return []
        lowered = [u.lower() for u in usernames]
        res = await self.scalars(select(User).where(func.lower(User.username).in_(lowered)))
        return list(res)

    async def get_users_by_ids(self, user_ids: Sequence[UUID]) -> List[User]:
        if not user_ids:
            return []
        res = await self.scalars(select(User).where(User.id.in_(list(user_ids))))
        return list(res)

    async def create_user(self, *, username: str, display_name: str, avatar_url: Optional[str] = None) -> User:
        user = User(username=username, display_name=display_name, avatar_url=avatar_url)
        await self.add(user)
        await self.flush()
        await self.refresh(user)
        return user

    async def get_auth_method(self, provider: AuthMethodType, provider_id: str) -> Optional[AuthMethod]:
        stmt = select(AuthMethod).where(
            AuthMethod.provider == provider.value, AuthMethod.provider_id == provider_id
        )
        return await self.scalar_one_or_none(stmt)

    async def create_auth_method(
        self, *, user_id: UUID, provider: AuthMethodType, provider_id: str, is_primary: bool = False
    ) -> AuthMethod:
        method = AuthMethod(user_id=user_id, provider=provider.value, provider_id=provider_id, is_primary=is_primary)
        await self.add(method)
        await self.flush()
        return method

    async def count_auth_methods(self, user_id: UUID) -> int:
        return await self.count(select(AuthMethod.id).where(AuthMethod.user_id == user_id))

    async def delete_auth_method(self, provider: AuthMethodType, provider_id: str) -> None:
        await self.execute(
            delete(AuthMethod).where(AuthMethod.provider == provider.value, AuthMethod.provider_id == provider_id)
        )

    async def list_admin_ids(self) -> List[UUID]:
        res = await self.scalars(select(User.id).where(User.is_admin.is_(True)))
        return list(res)


class WalletRepository(BaseRepository):
    """Repository for connected Solana wallets."""

    async def get_by_address(self, address: str) -> Optional[Wallet]:
        return await self.scalar_one_or_none(select(Wallet).where(Wallet.address == address))

    async def get_by_id(self, wallet_id: UUID) -> Optional[Wallet]:
        return await self.scalar_one_or_none(select(Wallet).where(Wallet.id == wallet_id))

    async def list_for_user(self, user_id: UUID) -> List[Wallet]:
        stmt = (
            select(Wallet)
            .where(Wallet.user_id == user_id)
            .order_by(Wallet.is_primary.desc(), Wallet.created_at.asc())
        )
        return list(await self.scalars(stmt))

    async def count_for_user(self, user_id: UUID) -> int:
        return await self.count(select(Wallet.id).where(Wallet.user_id == user_id))

    async def get_primary_verified(self, user_id: UUID) -> Optional[Wallet]:
        stmt = select(Wallet).where(
            Wallet.user_id == user_id, Wallet.is_primary.is_(True), Wallet.is_verified.is_(True)
        )
        return await self.scalar_one_or_none(stmt)

    async def create(self, *, address: str, user_id: UUID, is_primary: bool, is_verified: bool = False) -> Wallet:
        wallet = Wallet(address=address, user_id=user_id, is_primary=is_primary, is_verified=is_verified)
        await self.add(wallet)
        await self.flush()
        await self.refresh(wallet)
        return wallet

    async def unset_primary_for_user(self, user_id: UUID, *, except_id: Optional[UUID] = None) -> None:
        stmt = update(Wallet).where(Wallet.user_id == user_id).values(is_primary=False)
        if except_id is not None:
            stmt = stmt.where(Wallet.id != except_id)
        await self.execute(stmt)


class FollowRepository(BaseRepository):
    """Repository for follower relationships."""

    async def get(self, follower_id: UUID, followed_id: UUID) -> Optional[UserFollow]:
        stmt = select(UserFollow).where(
            UserFollow.follower_id == follower_id, UserFollow.followed_id == followed_id
        )
        return await self.scalar_one_or_none(stmt)

    async def create(self, follower_id: UUID, followed_id: UUID) -> UserFollow:
        follow = UserFollow(follower_id=follower_id, followed_id=followed_id)
        await self.add(follow)
        await self.flush()
        await self.refresh(follow)
        return follow

    async def list_followers(self, user_id: UUID, *, limit: int, offset: int) -> tuple[List[User], int]:
        base = (
            select(User)
            .join(UserFollow, UserFollow.follower_id == User.id)
            .where(UserFollow.followed_id == user_id)
        )
        total = await self.count(base)
        rows = await self.scalars(base.order_by(UserFollow.created_at.desc()).offset(offset).limit(limit))
        return list(rows), total

    async def list_following(self, user_id: UUID, *, limit: int, offset: int) -> tuple[List[User], int]:
        base = (
            select(User)
            .join(UserFollow, UserFollow.followed_id == User.id)
            .where(UserFollow.follower_id == user_id)
        )
        total = await self.count(base)
        rows = await self.scalars(base.order_by(UserFollow.created_at.desc()).offset(offset).limit(limit))
        return list(rows), total

    async def count_followers(self, user_id: UUID) -> int:
        return await self.count(select(UserFollow.follower_id).where(UserFollow.followed_id == user_id))

    async def count_following(self, user_id: UUID) -> int:
        return await self.count(select(UserFollow.followed_id).where(UserFollow.follower_id == user_id))

    async def follower_ids_with_flag(self, user_id: UUID, flag: str) -> List[UUID]:
        """Followers of `user_id` that enabled the given notify_on_* switch."""
        column = getattr(UserFollow, flag)
        stmt = select(UserFollow.follower_id).where(UserFollow.followed_id == user_id, column.is_(True))
        return list(await self.scalars(stmt))
