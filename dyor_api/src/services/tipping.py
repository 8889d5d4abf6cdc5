from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterator, List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.errors import BadRequestError, NotFoundError
from src.core.settings import AppSettings, get_app_settings
from src.db.models.enums import NotificationType
from src.db.models.tips import Tip
from src.db.models.users import User
from src.repositories.tips import TipRepository
from src.repositories.users import WalletRepository
from src.schemas.tips import TipCreate, TipEligibility
from src.services.badges import BadgeService
from src.services.base import BaseService
from src.services.notifications import NotificationService
from src.services.solana_rpc import SolanaRpcClient

logger = logging.getLogger(__name__)

TIPPER_BADGE_NAME = "Tipper"


# PUBLIC_INTERFACE
def to_base_units(amount: float, decimals: int) -> int:
    """Whole-token amount to integer base units, rounding half up."""
    scaled = Decimal(str(amount)) * (Decimal(10) ** decimals)
    return int(scaled.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _account_keys(tx: Dict[str, Any]) -> List[str]:
    keys = ((tx.get("transaction") or {}).get("message") or {}).get("accountKeys") or []
    return [k.get("pubkey") if isinstance(k, dict) else k for k in keys]


def _parsed_instructions(tx: Dict[str, Any]) -> Iterator[Dict[str, Any]]:
    message = (tx.get("transaction") or {}).get("message") or {}
    yield from message.get("instructions") or []
    for inner in (tx.get("meta") or {}).get("innerInstructions") or []:
        yield from inner.get("instructions") or []


# PUBLIC_INTERFACE
def find_tip_transfer(
    tx: Dict[str, Any],
    *,
    mint: str,
    sender_wallet: str,
    recipient_wallet: str,
    expected_amount: int,
) -> bool:
    """
    True when a jsonParsed transaction moves exactly `expected_amount` base units
    of `mint` from `sender_wallet` to a token account owned by `recipient_wallet`.
    """
    keys = _account_keys(tx)
    owners = {}
    for balance in (tx.get("meta") or {}).get("postTokenBalances") or []:
        index = balance.get("accountIndex")
        if isinstance(index, int) and 0 <= index < len(keys) and balance.get("mint") == mint:
            owners[keys[index]] = balance.get("owner")

    for instruction in _parsed_instructions(tx):
        parsed = instruction.get("parsed")
        if not isinstance(parsed, dict) or parsed.get("type") != "transferChecked":
            continue
        info = parsed.get("info") or {}
        if info.get("mint") != mint:
            continue
        if info.get("authority") != sender_wallet and info.get("multisigAuthority") != sender_wallet:
            continue
        if owners.get(info.get("destination")) != recipient_wallet:
            continue
        raw_amount = (info.get("tokenAmount") or {}).get("amount")
        try:
            if int(raw_amount) == expected_amount:
                return True
        except (TypeError, ValueError):
            continue
    return False


class TippingService(BaseService):
    """Records $DYORHUB tips after checking the transfer on-chain."""

    def __init__(
        self,
        session: AsyncSession,
        rpc: Optional[SolanaRpcClient] = None,
        settings: Optional[AppSettings] = None,
    ) -> None:
        super().__init__(session)
        self.settings = settings or get_app_settings()
        self.rpc = rpc or SolanaRpcClient(self.settings)
        self.repo = TipRepository(session)
        self.wallets = WalletRepository(session)

    # PUBLIC_INTERFACE
    async def get_eligibility(self, user_id: UUID) -> TipEligibility:
        wallet = await self.wallets.get_primary_verified(user_id)
        return TipEligibility(is_eligible=wallet is not None, recipient_address=wallet.address if wallet else None)

    # PUBLIC_INTERFACE
    async def record_tip(self, sender: User, payload: TipCreate) -> Tip:
        """
        Verify the transfer behind `payload.transaction_signature` and store the tip.

        Raises:
            BadRequestError: self-tip, reused signature or a transaction that does not match.
            NotFoundError: either side lacks a primary verified wallet.
        """
        if payload.recipient_user_id == sender.id:
            raise BadRequestError("You cannot tip yourself")
        mint = self.settings.DYORHUB_TOKEN_MINT
        if not mint:
            raise BadRequestError("Tipping is not available: DYORHUB token mint is not configured")

        sender_wallet = await self.wallets.get_primary_verified(sender.id)
        if sender_wallet is None:
            raise NotFoundError("Sender does not have a primary verified wallet")
        recipient_wallet = await self.wallets.get_primary_verified(payload.recipient_user_id)
        if recipient_wallet is None:
            raise NotFoundError("Recipient does not have a primary verified wallet")

        if await self.repo.get_by_signature(payload.transaction_signature) is not None:
            raise BadRequestError("This transaction has already been recorded as a tip")

        tx = await self.rpc.get_parsed_transaction(payload.transaction_signature)
        if not tx:
            raise BadRequestError("Transaction not found on-chain")
        if (tx.get("meta") or {}).get("err"):
            raise BadRequestError("Transaction failed on-chain")
        expected = to_base_units(payload.amount, self.settings.DYORHUB_TOKEN_DECIMALS)
        if not find_tip_transfer(
            tx,
            mint=mint,
            sender_wallet=sender_wallet.address,
            recipient_wallet=recipient_wallet.address,
            expected_amount=expected,
        ):
            raise BadRequestError("Transaction does not contain the expected DYORHUB transfer")

        try:
            tip = await self.repo.create(
                sender_id=sender.id,
                sender_wallet_address=sender_wallet.address,
                recipient_id=payload.recipient_user_id,
                recipient_wallet_address=recipient_wallet.address,
                amount=payload.amount,
                transaction_signature=payload.transaction_signature,
                content_type=payload.content_type.value if payload.content_type else None,
                content_id=payload.content_id,
            )
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise BadRequestError("This transaction has already been recorded as a tip")
        logger.info("Recorded tip %s from %s to %s", tip.transaction_signature, sender.id, payload.recipient_user_id)

        await self._after_tip(sender.id, sender.display_name, payload)
        await self.repo.refresh(tip)
        return tip

    async def _after_tip(self, sender_id: UUID, sender_name: str, payload: TipCreate) -> None:
        try:
            await BadgeService(self.session).award_by_name(sender_id, TIPPER_BADGE_NAME)
        except Exception:
            logger.exception("Failed to award tipper badge to %s", sender_id)
            await self.session.rollback()
        try:
            await NotificationService(self.session).create_notification(
                payload.recipient_user_id,
                NotificationType.TIP_RECEIVED,
                f"{sender_name} tipped you {payload.amount:g} DYORHUB",
                related_entity_id=payload.content_id,
                related_entity_type=payload.content_type.value if payload.content_type else "profile",
                metadata={
                    "amount": payload.amount,
                    "sender_id": str(sender_id),
                    "transaction_signature": payload.transaction_signature,
                },
            )
        except Exception:
            logger.exception("Failed to notify tip recipient %s", payload.recipient_user_id)
            await self.session.rollback()

    # PUBLIC_INTERFACE
    async def list_received(self, user: User, *, page: int, limit: int) -> List[Tip]:
        return await self.repo.list_received(user.id, limit=limit, offset=(page - 1) * limit)

    # PUBLIC_INTERFACE
    async def list_given(self, user: User, *, page: int, limit: int) -> List[Tip]:
        return await self.repo.list_given(user.id, limit=limit, offset=(page - 1) * limit)
