from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.errors import BadRequestError, DomainError, NotFoundError
from src.core.security import is_valid_solana_address
from src.db.models.tokens import Token
from src.repositories.tokens import TokenRepository
from src.schemas.common import PageMeta
from src.schemas.tokens import PriceHistory, PricePoint, TokenPage, TokenPrice, TokenRead
from src.services.base import BaseService
from src.services.birdeye import BirdeyeClient

logger = logging.getLogger(__name__)

_TWITTER_PREFIXES = ("https://x.com/", "https://twitter.com/", "http://x.com/", "http://twitter.com/")


# PUBLIC_INTERFACE
def normalize_twitter_handle(value: Optional[str]) -> Optional[str]:
    """Turn an X/Twitter profile URL or @handle into a bare handle."""
    if not value:
        return None
    handle = value.strip()
    for prefix in _TWITTER_PREFIXES:
        if handle.startswith(prefix):
            handle = handle[len(prefix):]
            break
    handle = handle.lstrip("@").split("?")[0].strip("/")
    return handle or None


def _token_fields(mint_address: str, overview: Dict[str, Any]) -> Dict[str, Any]:
    extensions = overview.get("extensions") or {}
    return {
        "mint_address": mint_address,
        "name": overview.get("name") or overview.get("symbol"),
        "symbol": overview.get("symbol"),
        "description": extensions.get("description"),
        "image_url": overview.get("logoURI"),
        "website_url": extensions.get("website"),
        "telegram_url": extensions.get("telegram"),
        "twitter_handle": normalize_twitter_handle(extensions.get("twitter")),
        "views_count": 1,
    }


def _require_mint(mint_address: str) -> None:
    if not is_valid_solana_address(mint_address):
        raise BadRequestError("Invalid token mint address")


class TokenService(BaseService):
    """Token metadata cached locally on first view and market data proxied from Birdeye."""

    def __init__(self, session: AsyncSession, birdeye: Optional[BirdeyeClient] = None) -> None:
        super().__init__(session)
        self.repo = TokenRepository(session)
        self.birdeye = birdeye or BirdeyeClient()

    # PUBLIC_INTERFACE
    async def list_tokens(self, *, page: int, limit: int) -> TokenPage:
        rows, total = await self.repo.list_tokens(limit=limit, offset=(page - 1) * limit)
        return TokenPage(data=[TokenRead.model_validate(t) for t in rows], meta=PageMeta.build(total, page, limit))

    # PUBLIC_INTERFACE
    async def get_token(self, mint_address: str, *, count_view: bool = True) -> Token:
        """
        Return a cached token, fetching and storing it from Birdeye on first access.

        Raises:
            NotFoundError: Birdeye has no data for the mint.
        """
        _require_mint(mint_address)
        token = await self.repo.get(mint_address)
        if token is not None:
            if count_view:
                await self.repo.increment_views(mint_address)
                await self.session.commit()
                await self.repo.refresh(token)
            return token

        overview = await self.birdeye.get_token_overview(mint_address)
        if overview is None:
            raise NotFoundError(f"Token {mint_address} not found")
        token = await self.repo.create(**_token_fields(mint_address, overview))
        await self.session.commit()
        logger.info("Cached new token %s (%s)", mint_address, token.symbol)

        try:
            security = await self.birdeye.get_token_security(mint_address)
            if security:
                created = security.get("creationTime")
                token.creation_time = datetime.fromtimestamp(int(created), tz=timezone.utc) if created else None
                token.creator_address = security.get("creatorAddress")
                token.creation_tx = security.get("creationTx")
                await self.session.commit()
        except (DomainError, TypeError, ValueError, OverflowError, OSError):
            logger.warning("Could not fetch creator info for token %s", mint_address, exc_info=True)
        return token

    # PUBLIC_INTERFACE
    async def get_existing(self, mint_address: str) -> Token:
        """Cached token without touching Birdeye or view counters."""
        token = await self.repo.get(mint_address)
        if token is None:
            raise NotFoundError("Token not found")
        return token

    # PUBLIC_INTERFACE
    async def get_price(self, mint_address: str) -> TokenPrice:
        _require_mint(mint_address)
        price = await self.birdeye.get_price(mint_address)
        if price is None:
            raise NotFoundError("Price not available for this token")
        return TokenPrice(mint_address=mint_address, price=price)

    # PUBLIC_INTERFACE
    async def get_price_history(
        self, mint_address: str, *, time_from: int, time_to: int, resolution: str
    ) -> PriceHistory:
        _require_mint(mint_address)
        if time_from >= time_to:
            raise BadRequestError("time_from must be before time_to")
        items = await self.birdeye.get_price_history(
            mint_address, time_from=time_from, time_to=time_to, resolution=resolution
        )
        return PriceHistory(
            mint_address=mint_address,
            resolution=resolution,
            items=[PricePoint(unix_time=int(i["unixTime"]), value=float(i["value"])) for i in items],
        )
