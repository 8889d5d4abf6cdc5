from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.errors import BadRequestError
from src.core.security import is_valid_solana_address
from src.db.models.enums import SentimentType
from src.db.models.users import User
from src.repositories.tokens import TokenSentimentRepository
from src.schemas.tokens import TokenSentimentStats
from src.services.base import BaseService
from src.services.birdeye import BirdeyeClient
from src.services.tokens import TokenService

logger = logging.getLogger(__name__)


class TokenSentimentService(BaseService):
    """One bullish, bearish or red-flag vote per user and token."""

    def __init__(self, session: AsyncSession, birdeye: Optional[BirdeyeClient] = None) -> None:
        super().__init__(session)
        self.repo = TokenSentimentRepository(session)
        self.tokens = TokenService(session, birdeye)

    # PUBLIC_INTERFACE
    async def get_stats(self, mint_address: str, viewer: Optional[User] = None) -> TokenSentimentStats:
        if not is_valid_solana_address(mint_address):
            raise BadRequestError("Invalid token mint address")
        counts = await self.repo.counts(mint_address)
        user_sentiment = None
        if viewer is not None:
            entry = await self.repo.get(viewer.id, mint_address)
            user_sentiment = SentimentType(entry.sentiment_type) if entry else None
        return TokenSentimentStats(
            bullish_count=counts.get(SentimentType.BULLISH.value, 0),
            bearish_count=counts.get(SentimentType.BEARISH.value, 0),
            red_flag_count=counts.get(SentimentType.RED_FLAG.value, 0),
            total_count=sum(counts.values()),
            user_sentiment=user_sentiment,
        )

    # PUBLIC_INTERFACE
    async def set_sentiment(
        self, user: User, mint_address: str, sentiment_type: SentimentType
    ) -> TokenSentimentStats:
        """
        Create or replace the user's vote on a token.

        The token is fetched from Birdeye and cached if it is not known yet.

        Raises:
            NotFoundError: the token does not exist.
        """
        await self.tokens.get_token(mint_address, count_view=False)
        entry = await self.repo.get(user.id, mint_address)
        if entry is None:
            await self.repo.create(user.id, mint_address, sentiment_type.value)
        else:
            entry.sentiment_type = sentiment_type.value
        await self.session.commit()
        logger.info("User %s marked %s as %s", user.id, mint_address, sentiment_type.value)
        return await self.get_stats(mint_address, user)

    # PUBLIC_INTERFACE
    async def remove_sentiment(self, user: User, mint_address: str) -> TokenSentimentStats:
        """Withdraw the user's vote; a no-op when there is none."""
        entry = await self.repo.get(user.id, mint_address)
        if entry is not None:
            await self.repo.delete(entry)
            await self.session.commit()
        return await self.get_stats(mint_address, user)
