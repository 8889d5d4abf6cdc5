from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import get_session, require_admin
from src.schemas.common import MessageResponse
from src.schemas.gamification import AwardBadgeRequest, BadgeCreate, BadgeRead, BadgeUpdate, UserBadgeRead
from src.schemas.token_calls import VerificationRunResult
from src.services.badges import BadgeService
from src.services.birdeye import BirdeyeClient, get_birdeye_client
from src.services.token_call_verification import TokenCallVerificationService

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


# PUBLIC_INTERFACE
@router.get("/badges", response_model=List[BadgeRead], summary="List all badges")
async def admin_list_badges(session: AsyncSession = Depends(get_session)) -> List[BadgeRead]:
    """All badge definitions, including inactive ones."""
    badges = await BadgeService(session).list_badges()
    return [BadgeRead.model_validate(b) for b in badges]


# PUBLIC_INTERFACE
@router.post("/badges", response_model=BadgeRead, status_code=201, summary="Create badge")
async def admin_create_badge(payload: BadgeCreate, session: AsyncSession = Depends(get_session)) -> BadgeRead:
    badge = await BadgeService(session).create_badge(payload)
    return BadgeRead.model_validate(badge)


# PUBLIC_INTERFACE
@router.patch("/badges/{badge_id}", response_model=BadgeRead, summary="Update badge")
async def admin_update_badge(
    badge_id: UUID,
    payload: BadgeUpdate,
    session: AsyncSession = Depends(get_session),
) -> BadgeRead:
    badge = await BadgeService(session).update_badge(badge_id, payload)
    return BadgeRead.model_validate(badge)


# PUBLIC_INTERFACE
@router.delete("/badges/{badge_id}", response_model=MessageResponse, summary="Delete badge")
async def admin_delete_badge(badge_id: UUID, session: AsyncSession = Depends(get_session)) -> MessageResponse:
    await BadgeService(session).delete_badge(badge_id)
    return MessageResponse(message="Badge deleted")


# PUBLIC_INTERFACE
@router.post(
    "/badges/{badge_id}/award",
    response_model=UserBadgeRead,
    summary="Award badge",
    description="Grant a badge to a user by hand. Fails with 409 when the user already has it.",
)
async def admin_award_badge(
    badge_id: UUID,
    payload: AwardBadgeRequest,
    session: AsyncSession = Depends(get_session),
) -> UserBadgeRead:
    return await BadgeService(session).award_manual(payload.user_id, badge_id)


# PUBLIC_INTERFACE
@router.post(
    "/token-calls/verify",
    response_model=VerificationRunResult,
    summary="Verify due token calls",
    description="Run the verification pass now instead of waiting for the scheduler.",
)
async def admin_verify_token_calls(
    session: AsyncSession = Depends(get_session),
    birdeye: BirdeyeClient = Depends(get_birdeye_client),
) -> VerificationRunResult:
    return await TokenCallVerificationService(session, birdeye).verify_due_calls()
