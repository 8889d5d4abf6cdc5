from __future__ import annotations

from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, select, update

from src.db.models.tokens import Token, TokenSentiment, TokenWatchlist
from .base import BaseRepository


class TokenRepository(BaseRepository):
    """Repository for cached token metadata."""

    async def get(self, mint_address: str) -> Optional[Token]:
        return await self.scalar_one_or_none(select(Token).where(Token.mint_address == mint_address))

    async def list_tokens(self, *, limit: int, offset: int) -> tuple[List[Token], int]:
        base = select(Token)
        total = await self.count(base)
        stmt = base.order_by(Token.views_count.desc(), Token.created_at.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt)), total

    async def create(self, **fields) -> Token:
        token = Token(**fields)
        await self.add(token)
        await self.flush()
        await self.refresh(token)
        return token

    async def increment_views(self, mint_address: str) -> None:
        await self.execute(
            update(Token)
            .where(Token.mint_address == mint_address)
            .values(views_count=Token.views_count + 1)
        )


class TokenWatchlistRepository(BaseRepository):
    """Repository for the flat per-user token watchlist."""

    async def get(self, user_id: UUID, mint_address: str) -> Optional[TokenWatchlist]:
        stmt = select(TokenWatchlist).where(
            TokenWatchlist.user_id == user_id, TokenWatchlist.token_mint_address == mint_address
        )
        return await self.scalar_one_or_none(stmt)

    async def list_for_user(self, user_id: UUID) -> List[tuple[TokenWatchlist, Token]]:
        stmt = (
            select(TokenWatchlist, Token)
            .join(Token, Token.mint_address == TokenWatchlist.token_mint_address)
            .where(TokenWatchlist.user_id == user_id)
            .order_by(TokenWatchlist.created_at.desc())
        )
        res = await self.execute(stmt)
        return [(row[0], row[1]) for row in res.all()]

    async def create(self, user_id: UUID, mint_address: str) -> TokenWatchlist:
        entry = TokenWatchlist(user_id=user_id, token_mint_address=mint_address)
        await self.add(entry)
        await self.flush()
        await self.refresh(entry)
        return entry


class TokenSentimentRepository(BaseRepository):
    """Repository for per-user token sentiment votes."""

    async def get(self, user_id: UUID, mint_address: str) -> Optional[TokenSentiment]:
        stmt = select(TokenSentiment).where(
            TokenSentiment.user_id == user_id, TokenSentiment.token_mint_address == mint_address
        )
        return await self.scalar_one_or_none(stmt)

    async def counts(self, mint_address: str) -> Dict[str, int]:
        """Vote count per sentiment type for a token."""
        stmt = (
            select(TokenSentiment.sentiment_type, func.count())
            .where(TokenSentiment.token_mint_address == mint_address)
            .group_by(TokenSentiment.sentiment_type)
        )
        res = await self.execute(stmt)
        return {row[0]: int(row[1]) for row in res.all()}

    async def create(self, user_id: UUID, mint_address: str, sentiment_type: str) -> TokenSentiment:
        entry = TokenSentiment(user_id=user_id, token_mint_address=mint_address, sentiment_type=sentiment_type)
        await self.add(entry)
        await self.flush()
        return entry
