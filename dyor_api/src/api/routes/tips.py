from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import get_current_user, get_session
from src.db.models.users import User
from src.schemas.tips import TipCreate, TipEligibility, TipRead
from src.services.solana_rpc import SolanaRpcClient, get_solana_rpc_client
from src.services.tipping import TippingService

router = APIRouter(prefix="/tips", tags=["Tips"])


# PUBLIC_INTERFACE
@router.get(
    "/eligibility/{user_id}",
    response_model=TipEligibility,
    summary="Tip eligibility",
    description="A user can receive tips once they have a primary verified wallet.",
)
async def get_tip_eligibility(user_id: UUID, session: AsyncSession = Depends(get_session)) -> TipEligibility:
    return await TippingService(session).get_eligibility(user_id)


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TipRead,
    status_code=201,
    summary="Record tip",
    description=(
        "Record a $DYORHUB tip after the client submitted the transfer. The transaction is fetched "
        "from Solana and must contain a matching transferChecked from the sender to the recipient."
    ),
)
async def record_tip(
    payload: TipCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    rpc: SolanaRpcClient = Depends(get_solana_rpc_client),
) -> TipRead:
    tip = await TippingService(session, rpc).record_tip(current_user, payload)
    return TipRead.model_validate(tip)


# PUBLIC_INTERFACE
@router.get("/received", response_model=List[TipRead], summary="Tips received")
async def list_received_tips(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> List[TipRead]:
    tips = await TippingService(session).list_received(current_user, page=page, limit=limit)
    return [TipRead.model_validate(t) for t in tips]


# PUBLIC_INTERFACE
@router.get("/given", response_model=List[TipRead], summary="Tips given")
async def list_given_tips(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> List[TipRead]:
    tips = await TippingService(session).list_given(current_user, page=page, limit=limit)
    return [TipRead.model_validate(t) for t in tips]
