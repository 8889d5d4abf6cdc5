from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import get_current_user, get_session
from src.db.models.enums import TokenCallStatus
from src.db.models.users import User
from src.schemas.token_calls import (
    TokenCallCreate,
    TokenCallFilter,
    TokenCallPage,
    TokenCallRead,
    TokenCallSort,
    TokenCallStats,
)
from src.services.birdeye import BirdeyeClient, get_birdeye_client
from src.services.token_calls import TokenCallService

router = APIRouter(prefix="/token-calls", tags=["Token Calls"])


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TokenCallRead,
    status_code=201,
    summary="Create token call",
    description=(
        "Predict that a token reaches target_price before target_date. The current Birdeye price is "
        "stored as the reference and the explanation is posted as a comment on the token."
    ),
)
async def create_token_call(
    payload: TokenCallCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    birdeye: BirdeyeClient = Depends(get_birdeye_client),
) -> TokenCallRead:
    call = await TokenCallService(session, birdeye).create_call(current_user, payload)
    return TokenCallRead.model_validate(call)


# PUBLIC_INTERFACE
@router.get("", response_model=TokenCallPage, summary="List token calls")
async def list_token_calls(
    user_id: Optional[UUID] = Query(None),
    token_mint: Optional[str] = Query(None, description="Filter by token mint address"),
    status: Optional[TokenCallStatus] = Query(None),
    sort: TokenCallSort = Query(TokenCallSort.CREATED_DESC),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
) -> TokenCallPage:
    filters = TokenCallFilter(user_id=user_id, token_mint_address=token_mint, status=status)
    return await TokenCallService(session).list_calls(filters, sort=sort, page=page, limit=limit)


# PUBLIC_INTERFACE
@router.get("/users/{user_id}/stats", response_model=TokenCallStats, summary="Prediction statistics")
async def get_token_call_stats(user_id: UUID, session: AsyncSession = Depends(get_session)) -> TokenCallStats:
    """Accuracy, average time-to-hit and token call streaks of a user."""
    return await TokenCallService(session).get_user_stats(user_id)


# PUBLIC_INTERFACE
@router.get("/{call_id}", response_model=TokenCallRead, summary="Get token call")
async def get_token_call(call_id: UUID, session: AsyncSession = Depends(get_session)) -> TokenCallRead:
    call = await TokenCallService(session).get_call(call_id)
    return TokenCallRead.model_validate(call)
