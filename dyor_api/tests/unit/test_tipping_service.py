from __future__ import annotations

import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.core.errors import BadRequestError, NotFoundError
from src.core.settings import AppSettings
from src.schemas.tips import TipCreate
from src.services.tipping import TippingService

pytestmark = [pytest.mark.unit, pytest.mark.asyncio]

SIGNATURE = "5" * 88


@pytest.fixture
def session():
    s = MagicMock()
    s.commit = AsyncMock()
    s.rollback = AsyncMock()
    return s


def _payload(recipient_id, **overrides):
    values = {"recipient_user_id": recipient_id, "amount": 2.5, "transaction_signature": SIGNATURE}
    values.update(overrides)
    return TipCreate(**values)


def _service(session, *, wallets=None, mint="DyorMint", recorded=None, tx=None):
    rpc = MagicMock()
    rpc.get_parsed_transaction = AsyncMock(return_value=tx if tx is not None else {"meta": {"err": None}})
    service = TippingService(session, rpc=rpc, settings=AppSettings(DYORHUB_TOKEN_MINT=mint))
    wallets = wallets or {}
    service.wallets = MagicMock()
    service.wallets.get_primary_verified = AsyncMock(side_effect=lambda user_id: wallets.get(user_id))
    service.repo = MagicMock()
    service.repo.get_by_signature = AsyncMock(return_value=recorded)
    service.repo.create = AsyncMock(side_effect=lambda **kw: SimpleNamespace(id=uuid.uuid4(), **kw))
    service.repo.refresh = AsyncMock()
    return service


def _pair():
    sender = SimpleNamespace(id=uuid.uuid4(), display_name="Whale")
    recipient_id = uuid.uuid4()
    wallets = {
        sender.id: SimpleNamespace(address="SenderWallet"),
        recipient_id: SimpleNamespace(address="RecipientWallet"),
    }
    return sender, recipient_id, wallets


class TestRecordTip:
    async def test_self_tip_is_rejected(self, session):
        sender, _, wallets = _pair()
        service = _service(session, wallets=wallets)
        with pytest.raises(BadRequestError):
            await service.record_tip(sender, _payload(sender.id))
        service.rpc.get_parsed_transaction.assert_not_awaited()

    async def test_unconfigured_mint_is_rejected(self, session):
        sender, recipient_id, wallets = _pair()
        with pytest.raises(BadRequestError):
            await _service(session, wallets=wallets, mint=None).record_tip(sender, _payload(recipient_id))

    async def test_sender_without_primary_wallet(self, session):
        sender, recipient_id, wallets = _pair()
        del wallets[sender.id]
        with pytest.raises(NotFoundError):
            await _service(session, wallets=wallets).record_tip(sender, _payload(recipient_id))

    async def test_recipient_without_primary_wallet(self, session):
        sender, recipient_id, wallets = _pair()
        del wallets[recipient_id]
        with pytest.raises(NotFoundError):
            await _service(session, wallets=wallets).record_tip(sender, _payload(recipient_id))

    async def test_reused_signature_is_rejected(self, session):
        sender, recipient_id, wallets = _pair()
        service = _service(session, wallets=wallets, recorded=SimpleNamespace(id=uuid.uuid4()))
        with pytest.raises(BadRequestError):
            await service.record_tip(sender, _payload(recipient_id))
        service.rpc.get_parsed_transaction.assert_not_awaited()

    async def test_failed_transaction_is_rejected(self, session):
        sender, recipient_id, wallets = _pair()
        service = _service(session, wallets=wallets, tx={"meta": {"err": {"InstructionError": [0, "Custom"]}}})
        with pytest.raises(BadRequestError):
            await service.record_tip(sender, _payload(recipient_id))

    async def test_mismatched_transfer_is_rejected(self, session):
        sender, recipient_id, wallets = _pair()
        with patch("src.services.tipping.find_tip_transfer", return_value=False):
            with pytest.raises(BadRequestError):
                await _service(session, wallets=wallets).record_tip(sender, _payload(recipient_id))

    async def test_verified_transfer_is_recorded(self, session):
        sender, recipient_id, wallets = _pair()
        service = _service(session, wallets=wallets)
        with patch("src.services.tipping.find_tip_transfer", return_value=True) as find, patch.object(
            TippingService, "_after_tip", AsyncMock()
        ) as after:
            tip = await service.record_tip(sender, _payload(recipient_id))

        assert tip.sender_wallet_address == "SenderWallet"
        assert tip.recipient_wallet_address == "RecipientWallet"
        assert find.call_args.kwargs["expected_amount"] == 2_500_000
        session.commit.assert_awaited_once()
        after.assert_awaited_once()
