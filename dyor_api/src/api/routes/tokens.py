from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import get_current_user, get_optional_user, get_session
from src.db.models.users import User
from src.schemas.tokens import (
    PriceHistory,
    TokenPage,
    TokenPrice,
    TokenRead,
    TokenSentimentStats,
    TokenSentimentUpdate,
)
from src.services.birdeye import BirdeyeClient, get_birdeye_client
from src.services.sentiment import TokenSentimentService
from src.services.tokens import TokenService

router = APIRouter(prefix="/tokens", tags=["Tokens"])


# PUBLIC_INTERFACE
@router.get("", response_model=TokenPage, summary="List tokens", description="Cached tokens ordered by views.")
async def list_tokens(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
) -> TokenPage:
    return await TokenService(session).list_tokens(page=page, limit=limit)


# PUBLIC_INTERFACE
@router.get(
    "/{mint_address}",
    response_model=TokenRead,
    summary="Get token",
    description=(
        "Return token metadata. Unknown tokens are fetched from Birdeye and cached; "
        "known tokens have their view counter incremented."
    ),
)
async def get_token(
    mint_address: str,
    session: AsyncSession = Depends(get_session),
    birdeye: BirdeyeClient = Depends(get_birdeye_client),
) -> TokenRead:
    token = await TokenService(session, birdeye).get_token(mint_address)
    return TokenRead.model_validate(token)


# PUBLIC_INTERFACE
@router.get("/{mint_address}/price", response_model=TokenPrice, summary="Current price")
async def get_token_price(
    mint_address: str,
    session: AsyncSession = Depends(get_session),
    birdeye: BirdeyeClient = Depends(get_birdeye_client),
) -> TokenPrice:
    return await TokenService(session, birdeye).get_price(mint_address)


# PUBLIC_INTERFACE
@router.get("/{mint_address}/price-history", response_model=PriceHistory, summary="Price history")
async def get_token_price_history(
    mint_address: str,
    time_from: int = Query(..., ge=0, description="Start, epoch seconds"),
    time_to: int = Query(..., ge=0, description="End, epoch seconds"),
    resolution: str = Query("1H", description="Birdeye interval, e.g. 15m, 1H, 1D"),
    session: AsyncSession = Depends(get_session),
    birdeye: BirdeyeClient = Depends(get_birdeye_client),
) -> PriceHistory:
    return await TokenService(session, birdeye).get_price_history(
        mint_address, time_from=time_from, time_to=time_to, resolution=resolution
    )


# PUBLIC_INTERFACE
@router.get(
    "/{mint_address}/sentiment",
    response_model=TokenSentimentStats,
    summary="Token sentiment",
    description="Bullish, bearish and red-flag counts; includes the caller's own vote when signed in.",
)
async def get_token_sentiment(
    mint_address: str,
    viewer: Optional[User] = Depends(get_optional_user),
    session: AsyncSession = Depends(get_session),
) -> TokenSentimentStats:
    return await TokenSentimentService(session).get_stats(mint_address, viewer)


# PUBLIC_INTERFACE
@router.post(
    "/{mint_address}/sentiment",
    response_model=TokenSentimentStats,
    summary="Vote sentiment",
    description="Create or replace the caller's sentiment vote on a token.",
)
async def set_token_sentiment(
    mint_address: str,
    payload: TokenSentimentUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    birdeye: BirdeyeClient = Depends(get_birdeye_client),
) -> TokenSentimentStats:
    return await TokenSentimentService(session, birdeye).set_sentiment(
        current_user, mint_address, payload.sentiment_type
    )


# PUBLIC_INTERFACE
@router.delete(
    "/{mint_address}/sentiment",
    response_model=TokenSentimentStats,
    summary="Remove sentiment",
)
async def remove_token_sentiment(
    mint_address: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> TokenSentimentStats:
    return await TokenSentimentService(session).remove_sentiment(current_user, mint_address)
