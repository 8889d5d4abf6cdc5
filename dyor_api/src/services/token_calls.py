from __future__ import annotations

import logging
from datetime import datetime, time, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.errors import BadRequestError, NotFoundError
from src.db.models.enums import ActivityType, CommentType, NotificationType, TokenCallStatus
from src.db.models.token_calls import TokenCall
from src.db.models.users import User
from src.repositories.token_calls import TokenCallRepository
from src.repositories.tokens import TokenRepository
from src.repositories.users import FollowRepository
from src.schemas.comments import CommentCreate
from src.schemas.common import PageMeta
from src.schemas.token_calls import (
    TokenCallCreate,
    TokenCallFilter,
    TokenCallPage,
    TokenCallRead,
    TokenCallSort,
    TokenCallStats,
)
from src.services.activity import ActivityService
from src.services.base import BaseService
from src.services.birdeye import BirdeyeClient
from src.services.comments import CommentService
from src.services.notifications import NotificationService

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def normalize_target_date(target_date: datetime, now: datetime) -> datetime:
    """
    Return the target date in UTC.

    A date-only value (exactly midnight UTC) takes the current UTC time-of-day so
    "by Friday" means a full number of days from now.
    """
    if target_date.tzinfo is None:
        target_date = target_date.replace(tzinfo=timezone.utc)
    target_date = target_date.astimezone(timezone.utc)
    if target_date.time() == time(0, 0):
        now = now.astimezone(timezone.utc)
        target_date = target_date.replace(
            hour=now.hour, minute=now.minute, second=now.second, microsecond=now.microsecond
        )
    return target_date


# PUBLIC_INTERFACE
def accuracy_rate(successful: int, failed: int) -> float:
    """Share of verified calls that succeeded, in percent."""
    verified = successful + failed
    return round(successful / verified * 100, 2) if verified else 0.0


class TokenCallService(BaseService):
    """Creating and querying token price predictions."""

    def __init__(self, session: AsyncSession, birdeye: Optional[BirdeyeClient] = None) -> None:
        super().__init__(session)
        self.repo = TokenCallRepository(session)
        self.tokens = TokenRepository(session)
        self.follows = FollowRepository(session)
        self.birdeye = birdeye or BirdeyeClient()

    # PUBLIC_INTERFACE
    async def create_call(self, user: User, payload: TokenCallCreate, now: Optional[datetime] = None) -> TokenCall:
        """
        Record a prediction priced against the current Birdeye price.

        The call and its explanation comment are committed together.
        """
        now = now or datetime.now(tz=timezone.utc)
        target_date = normalize_target_date(payload.target_date, now)
        if target_date <= now:
            raise BadRequestError("Target date must be in the future")

        if await self.tokens.get(payload.token_mint_address) is None:
            raise NotFoundError("Token not found")

        reference_price = await self.birdeye.get_price(payload.token_mint_address)
        if reference_price is None or reference_price <= 0:
            raise BadRequestError("Could not determine the current price for this token")
        if payload.target_price <= reference_price:
            raise BadRequestError(
                "Target price must be above the current price",
                details={"reference_price": reference_price},
            )

        call = await self.repo.create(
            user_id=user.id,
            token_mint_address=payload.token_mint_address,
            call_timestamp=now,
            reference_price=reference_price,
            target_price=payload.target_price,
            target_date=target_date,
            status=TokenCallStatus.PENDING.value,
        )
        comments = CommentService(self.session)
        comment = await comments.create_comment(
            user,
            CommentCreate(content=payload.explanation, token_mint_address=payload.token_mint_address),
            comment_type=CommentType.TOKEN_CALL_EXPLANATION,
            token_call_id=call.id,
            commit=False,
        )
        call.explanation_comment_id = comment.id
        await self.session.commit()
        logger.info("User %s called %s at %s", user.id, call.token_mint_address, call.target_price)

        user_id, user_name, call_id = user.id, user.display_name, call.id
        metadata = {
            "token_mint_address": call.token_mint_address,
            "target_price": call.target_price,
            "target_date": target_date.isoformat(),
        }
        await self.run_side_effect(
            ActivityService(self.session).record_activity(
                user_id, ActivityType.PREDICTION, entity_id=str(call_id), entity_type="token_call"
            ),
            f"Recording activity for token call {call_id}",
        )
        await self._notify_followers(user_id, user_name, call_id, metadata)
        await self.repo.refresh(call)
        return call

    async def _notify_followers(self, user_id: UUID, user_name: str, call_id: UUID, metadata: dict) -> None:
        try:
            followers = await self.follows.follower_ids_with_flag(user_id, "notify_on_prediction")
            await NotificationService(self.session).notify_many(
                followers,
                NotificationType.FOLLOWED_USER_PREDICTION,
                f"{user_name} made a new token call",
                related_entity_id=str(call_id),
                related_entity_type="token_call",
                metadata=metadata,
            )
        except Exception:
            logger.exception("Failed to notify followers about token call %s", call_id)
            await self.session.rollback()

    # PUBLIC_INTERFACE
    async def get_call(self, call_id: UUID) -> TokenCall:
        call = await self.repo.get(call_id)
        if call is None:
            raise NotFoundError("Token call not found")
        return call

    # PUBLIC_INTERFACE
    async def list_calls(
        self, filters: TokenCallFilter, *, sort: TokenCallSort, page: int, limit: int
    ) -> TokenCallPage:
        rows, total = await self.repo.list_calls(filters, sort=sort, limit=limit, offset=(page - 1) * limit)
        return TokenCallPage(
            data=[TokenCallRead.model_validate(c) for c in rows],
            meta=PageMeta.build(total, page, limit),
        )

    # PUBLIC_INTERFACE
    async def get_user_stats(self, user_id: UUID) -> TokenCallStats:
        counts = await self.repo.status_counts(user_id)
        successful = counts.get(TokenCallStatus.VERIFIED_SUCCESS.value, 0)
        failed = counts.get(TokenCallStatus.VERIFIED_FAIL.value, 0)
        streak = await self.repo.get_streak(user_id)
        return TokenCallStats(
            total_calls=sum(counts.values()),
            successful_calls=successful,
            failed_calls=failed,
            pending_calls=counts.get(TokenCallStatus.PENDING.value, 0),
            accuracy_rate=accuracy_rate(successful, failed),
            average_time_to_hit_ratio=await self.repo.average_time_to_hit_ratio(user_id),
            current_streak=streak.current_success_streak if streak else 0,
            longest_streak=streak.longest_success_streak if streak else 0,
        )
