from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models.enums import NotificationType, TokenCallStatus
from src.db.models.token_calls import TokenCall, UserTokenCallStreak
from src.repositories.token_calls import TokenCallRepository
from src.schemas.token_calls import VerificationRunResult
from src.services.badges import BadgeService
from src.services.base import BaseService
from src.services.birdeye import BirdeyeClient
from src.services.notifications import NotificationService

logger = logging.getLogger(__name__)

# (max call duration, Birdeye resolution), shortest first
RESOLUTION_STEPS = [
    (timedelta(hours=1), "1m"),
    (timedelta(hours=6), "5m"),
    (timedelta(days=1), "15m"),
    (timedelta(days=3), "30m"),
    (timedelta(weeks=1), "1H"),
    (timedelta(days=30), "2H"),
]
LONGEST_RESOLUTION = "1D"


# PUBLIC_INTERFACE
def select_resolution(duration: timedelta) -> str:
    """Coarsest price resolution that still gives useful detail for the call window."""
    for limit, resolution in RESOLUTION_STEPS:
        if duration <= limit:
            return resolution
    return LONGEST_RESOLUTION


@dataclass(frozen=True)
class PriceAnalysis:
    status: TokenCallStatus
    peak_price: Optional[float] = None
    final_price: Optional[float] = None
    target_hit_at: Optional[datetime] = None
    time_to_hit_ratio: Optional[float] = None


# PUBLIC_INTERFACE
def analyze_price_history(
    items: Sequence[Dict[str, Any]],
    *,
    target_price: float,
    call_timestamp: datetime,
    target_date: datetime,
) -> PriceAnalysis:
    """
    Decide the outcome of a call from `{unixTime, value}` points sorted oldest first.

    The ratio is how far into the call window the target was first reached:
    0.0 means immediately, 1.0 means at the deadline.
    """
    if not items:
        return PriceAnalysis(status=TokenCallStatus.VERIFIED_FAIL)

    values = [float(i["value"]) for i in items]
    peak = max(values)
    final = values[-1]

    hit_at: Optional[datetime] = None
    for item in items:
        if float(item["value"]) >= target_price:
            hit_at = datetime.fromtimestamp(int(item["unixTime"]), tz=timezone.utc)
            break

    if hit_at is None:
        return PriceAnalysis(status=TokenCallStatus.VERIFIED_FAIL, peak_price=peak, final_price=final)

    window = (target_date - call_timestamp).total_seconds()
    elapsed = max(0.0, (hit_at - call_timestamp).total_seconds())
    ratio = min(1.0, max(0.0, elapsed / window)) if window > 0 else 1.0
    return PriceAnalysis(
        status=TokenCallStatus.VERIFIED_SUCCESS,
        peak_price=peak,
        final_price=final,
        target_hit_at=hit_at,
        time_to_hit_ratio=ratio,
    )


# PUBLIC_INTERFACE
def next_token_call_streak(
    streak: UserTokenCallStreak, *, succeeded: bool, call_timestamp: datetime
) -> bool:
    """
    Apply one verified outcome to the success streak in place.

    Outcomes older than the last applied one are ignored; returns whether the streak changed.
    """
    last = streak.last_verified_call_timestamp
    if last is not None and call_timestamp <= last:
        return False
    if succeeded:
        streak.current_success_streak = (streak.current_success_streak or 0) + 1
        streak.longest_success_streak = max(streak.longest_success_streak or 0, streak.current_success_streak)
    else:
        streak.current_success_streak = 0
    streak.last_verified_call_timestamp = call_timestamp
    return True


_run_lock = asyncio.Lock()


class TokenCallVerificationService(BaseService):
    """Resolves due token calls against Birdeye price history."""

    def __init__(self, session: AsyncSession, birdeye: Optional[BirdeyeClient] = None) -> None:
        super().__init__(session)
        self.repo = TokenCallRepository(session)
        self.birdeye = birdeye or BirdeyeClient()

    # PUBLIC_INTERFACE
    async def verify_due_calls(self, now: Optional[datetime] = None) -> VerificationRunResult:
        """Verify every pending call past its target date; concurrent runs are skipped."""
        if _run_lock.locked():
            logger.info("Token call verification already running; skipping")
            return VerificationRunResult(skipped=True)
        async with _run_lock:
            now = now or datetime.now(tz=timezone.utc)
            result = VerificationRunResult()
            due_ids = [c.id for c in await self.repo.list_due(now)]
            for call_id in due_ids:
                call = await self.repo.get(call_id)
                if call is None or call.status != TokenCallStatus.PENDING.value:
                    continue
                status = await self.verify_call(call, now)
                result.processed += 1
                if status == TokenCallStatus.VERIFIED_SUCCESS:
                    result.succeeded += 1
                elif status == TokenCallStatus.VERIFIED_FAIL:
                    result.failed += 1
                else:
                    result.errored += 1
            if due_ids:
                logger.info(
                    "Verified %d token calls: %d hit, %d missed, %d errors",
                    result.processed, result.succeeded, result.failed, result.errored,
                )
            return result

    # PUBLIC_INTERFACE
    async def verify_call(self, call: TokenCall, now: datetime) -> TokenCallStatus:
        call_id = call.id
        try:
            duration = call.target_date - call.call_timestamp
            items = await self.birdeye.get_price_history(
                call.token_mint_address,
                time_from=int(call.call_timestamp.timestamp()),
                time_to=int(call.target_date.timestamp()),
                resolution=select_resolution(duration),
            )
            analysis = analyze_price_history(
                items,
                target_price=call.target_price,
                call_timestamp=call.call_timestamp,
                target_date=call.target_date,
            )
        except Exception:
            logger.exception("Verification of token call %s failed", call_id)
            await self.session.rollback()
            call = await self.repo.get(call_id)
            call.status = TokenCallStatus.ERROR.value
            call.verification_timestamp = now
            await self.session.commit()
            return TokenCallStatus.ERROR

        call.status = analysis.status.value
        call.verification_timestamp = now
        call.peak_price_during_period = analysis.peak_price
        call.final_price = analysis.final_price
        call.target_hit_timestamp = analysis.target_hit_at
        call.time_to_hit_ratio = analysis.time_to_hit_ratio
        streak = await self.repo.get_or_create_streak(call.user_id)
        next_token_call_streak(
            streak,
            succeeded=analysis.status == TokenCallStatus.VERIFIED_SUCCESS,
            call_timestamp=call.call_timestamp,
        )
        await self.session.commit()

        await self._after_verification(call, analysis)
        return analysis.status

    async def _after_verification(self, call: TokenCall, analysis: PriceAnalysis) -> None:
        hit = analysis.status == TokenCallStatus.VERIFIED_SUCCESS
        message = (
            "Your token call hit its target price!"
            if hit
            else "Your token call did not reach its target price."
        )
        try:
            await NotificationService(self.session).create_notification(
                call.user_id,
                NotificationType.TOKEN_CALL_VERIFIED,
                message,
                related_entity_id=str(call.id),
                related_entity_type="token_call",
                metadata={
                    "token_mint_address": call.token_mint_address,
                    "status": call.status,
                    "target_price": call.target_price,
                    "peak_price": analysis.peak_price,
                    "time_to_hit_ratio": analysis.time_to_hit_ratio,
                },
            )
            await BadgeService(self.session).check_and_award(call.user_id)
        except Exception:
            logger.exception("Post-verification processing failed for token call %s", call.id)
            await self.session.rollback()
