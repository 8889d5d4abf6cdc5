from __future__ import annotations

import base64
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import base58
import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from src.core.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from src.core.security import verification_message
from src.core.settings import AppSettings
from src.db.models.enums import TokenCallStatus
from src.schemas.auth import WalletLoginRequest
from src.services import token_call_verification
from src.services.activity import ActivityService
from src.services.auth import AuthService
from src.services.token_call_verification import TokenCallVerificationService
from src.services.wallets import WalletService, _now_ms
from src.services.watchlist import WatchlistService

pytestmark = [pytest.mark.unit, pytest.mark.asyncio]


@pytest.fixture
def session():
    s = MagicMock()
    s.commit = AsyncMock()
    s.rollback = AsyncMock()
    return s


def _user(**overrides):
    values = {"id": uuid.uuid4(), "is_admin": False, "display_name": "Degen"}
    values.update(overrides)
    return SimpleNamespace(**values)


class TestFolderAccess:
    def _service(self, session, *, mint="DyorMint", balance=0.0, wallet=True):
        settings = AppSettings(DYORHUB_TOKEN_MINT=mint, MIN_TOKEN_HOLDING_FOR_FOLDERS=1000)
        rpc = MagicMock()
        rpc.get_token_balance = AsyncMock(return_value=balance)
        service = WatchlistService(session, rpc, settings)
        service.wallets = MagicMock()
        service.wallets.get_primary_verified = AsyncMock(
            return_value=SimpleNamespace(address="Wallet1") if wallet else None
        )
        return service

    async def test_admin_always_has_access(self, session):
        service = self._service(session, mint=None)
        access = await service.check_folder_access(_user(is_admin=True))
        assert access.has_access

    async def test_unset_mint_denies(self, session):
        access = await self._service(session, mint=None).check_folder_access(_user())
        assert not access.has_access

    async def test_requires_primary_verified_wallet(self, session):
        access = await self._service(session, wallet=False, balance=5000).check_folder_access(_user())
        assert not access.has_access

    async def test_balance_threshold(self, session):
        assert (await self._service(session, balance=1000).check_folder_access(_user())).has_access
        denied = await self._service(session, balance=999.5).check_folder_access(_user())
        assert not denied.has_access
        assert denied.balance == 999.5

    async def test_gated_operation_raises_forbidden(self, session):
        service = self._service(session, balance=1)
        with pytest.raises(ForbiddenError):
            await service.create_folder(_user(), MagicMock())


class TestWalletService:
    def _keypair(self):
        key = Ed25519PrivateKey.generate()
        raw = key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
        return key, base58.b58encode(raw).decode()

    def _service(self, session, wallet):
        service = WalletService(session)
        service.repo = MagicMock()
        service.repo.get_by_address = AsyncMock(return_value=wallet)
        service.repo.count_for_user = AsyncMock(return_value=0)
        service.repo.create = AsyncMock(side_effect=lambda **kw: SimpleNamespace(**kw))
        service.users = MagicMock()
        service.users.get_auth_method = AsyncMock(return_value=None)
        service.users.create_auth_method = AsyncMock()
        return service

    async def test_connect_rejects_invalid_address(self, session):
        with pytest.raises(BadRequestError):
            await self._service(session, None).connect(_user(), "bad")

    async def test_connect_first_wallet_is_primary(self, session):
        _, address = self._keypair()
        wallet = await self._service(session, None).connect(_user(), address)
        assert wallet.is_primary is True
        session.commit.assert_awaited_once()

    async def test_connect_wallet_verified_elsewhere_conflicts(self, session):
        _, address = self._keypair()
        other = SimpleNamespace(user_id=uuid.uuid4(), is_verified=True)
        with pytest.raises(ConflictError):
            await self._service(session, other).connect(_user(), address)

    async def test_connect_takes_over_unverified_wallet(self, session):
        _, address = self._keypair()
        user = _user()
        other = SimpleNamespace(
            user_id=uuid.uuid4(), is_verified=False, is_primary=True,
            signature="x", verification_nonce="n", nonce_expires_at=1,
        )
        wallet = await self._service(session, other).connect(user, address)
        assert wallet.user_id == user.id
        assert wallet.verification_nonce is None

    async def test_verify_with_signed_nonce(self, session):
        key, address = self._keypair()
        user = _user()
        nonce = "DYOR-1700000000000-123456"
        wallet = SimpleNamespace(
            user_id=user.id, is_verified=False, signature=None,
            verification_nonce=nonce, nonce_expires_at=_now_ms() + 60_000,
        )
        service = self._service(session, wallet)
        signature = base64.b64encode(key.sign(verification_message(nonce).encode())).decode()
        result = await service.verify(user, address, signature)
        assert result.is_verified is True
        assert result.verification_nonce is None
        service.users.create_auth_method.assert_awaited_once()

    async def test_verify_expired_nonce(self, session):
        _, address = self._keypair()
        user = _user()
        wallet = SimpleNamespace(
            user_id=user.id, is_verified=False, verification_nonce="DYOR-1-100000", nonce_expires_at=_now_ms() - 1,
        )
        with pytest.raises(BadRequestError):
            await self._service(session, wallet).verify(user, address, "sig")

    async def test_verify_foreign_wallet_is_not_found(self, session):
        _, address = self._keypair()
        wallet = SimpleNamespace(user_id=uuid.uuid4(), is_verified=False)
        with pytest.raises(NotFoundError):
            await self._service(session, wallet).verify(_user(), address, "sig")

    def _owned(self, session, user, *, verified=True, auth_methods=1):
        _, address = self._keypair()
        wallet = SimpleNamespace(id=uuid.uuid4(), user_id=user.id, address=address, is_verified=verified, is_primary=False)
        service = self._service(session, wallet)
        service.repo.get_by_id = AsyncMock(return_value=wallet)
        service.repo.delete = AsyncMock()
        service.repo.unset_primary_for_user = AsyncMock()
        service.users.get_auth_method = AsyncMock(return_value=SimpleNamespace(user_id=user.id))
        service.users.count_auth_methods = AsyncMock(return_value=auth_methods)
        service.users.delete_auth_method = AsyncMock()
        return service, wallet

    async def test_delete_only_sign_in_method_conflicts(self, session):
        user = _user()
        service, wallet = self._owned(session, user, auth_methods=1)
        with pytest.raises(ConflictError):
            await service.delete(user, wallet.id)
        service.repo.delete.assert_not_awaited()

    async def test_delete_with_other_sign_in_method(self, session):
        user = _user()
        service, wallet = self._owned(session, user, auth_methods=2)
        await service.delete(user, wallet.id)
        service.users.delete_auth_method.assert_awaited_once()
        service.repo.delete.assert_awaited_once_with(wallet)
        session.commit.assert_awaited_once()

    async def test_delete_foreign_wallet_is_not_found(self, session):
        service, wallet = self._owned(session, _user())
        with pytest.raises(NotFoundError):
            await service.delete(_user(), wallet.id)

    async def test_unverified_wallet_cannot_be_primary(self, session):
        user = _user()
        service, wallet = self._owned(session, user, verified=False)
        with pytest.raises(BadRequestError):
            await service.set_primary(user, wallet.id)
        service.repo.unset_primary_for_user.assert_not_awaited()

    async def test_set_primary_unsets_the_others(self, session):
        user = _user()
        service, wallet = self._owned(session, user)
        result = await service.set_primary(user, wallet.id)
        assert result.is_primary is True
        service.repo.unset_primary_for_user.assert_awaited_once_with(user.id, except_id=wallet.id)


class TestVerificationRun:
    def _call(self, **overrides):
        now = datetime(2026, 3, 1, tzinfo=timezone.utc)
        values = {
            "id": uuid.uuid4(),
            "user_id": uuid.uuid4(),
            "token_mint_address": "Mint",
            "call_timestamp": now,
            "target_date": now + timedelta(days=2),
            "target_price": 2.0,
            "status": TokenCallStatus.PENDING.value,
        }
        values.update(overrides)
        return SimpleNamespace(**values)

    async def test_overlapping_run_is_skipped(self, session):
        service = TokenCallVerificationService(session, birdeye=MagicMock())
        async with token_call_verification._run_lock:
            result = await service.verify_due_calls()
        assert result.skipped is True

    async def test_successful_call(self, session):
        call = self._call()
        hit = call.call_timestamp + timedelta(days=1)
        birdeye = MagicMock()
        birdeye.get_price_history = AsyncMock(
            return_value=[{"unixTime": int(hit.timestamp()), "value": 2.5}]
        )
        service = TokenCallVerificationService(session, birdeye=birdeye)
        service.repo = MagicMock()
        service.repo.list_due = AsyncMock(return_value=[call])
        service.repo.get = AsyncMock(return_value=call)
        streak = SimpleNamespace(
            current_success_streak=0, longest_success_streak=0, last_verified_call_timestamp=None
        )
        service.repo.get_or_create_streak = AsyncMock(return_value=streak)

        with patch.object(TokenCallVerificationService, "_after_verification", AsyncMock()):
            result = await service.verify_due_calls(now=call.target_date + timedelta(minutes=1))

        assert (result.processed, result.succeeded) == (1, 1)
        assert call.status == TokenCallStatus.VERIFIED_SUCCESS.value
        assert call.time_to_hit_ratio == pytest.approx(0.5)
        assert streak.current_success_streak == 1

    async def test_provider_failure_marks_error(self, session):
        call = self._call()
        birdeye = MagicMock()
        birdeye.get_price_history = AsyncMock(side_effect=RuntimeError("birdeye down"))
        service = TokenCallVerificationService(session, birdeye=birdeye)
        service.repo = MagicMock()
        service.repo.list_due = AsyncMock(return_value=[call])
        service.repo.get = AsyncMock(return_value=call)

        result = await service.verify_due_calls(now=call.target_date)

        assert result.errored == 1
        assert call.status == TokenCallStatus.ERROR.value
        session.rollback.assert_awaited_once()

    async def test_already_resolved_call_is_skipped(self, session):
        call = self._call(status=TokenCallStatus.VERIFIED_FAIL.value)
        service = TokenCallVerificationService(session, birdeye=MagicMock())
        service.repo = MagicMock()
        service.repo.list_due = AsyncMock(return_value=[call])
        service.repo.get = AsyncMock(return_value=call)
        result = await service.verify_due_calls()
        assert result.processed == 0


class TestLogin:
    async def test_activity_failure_does_not_block_login(self, session):
        user = _user(username="degen")
        service = AuthService(session)
        service.users = MagicMock()
        service.users.get_auth_method = AsyncMock(return_value=SimpleNamespace(user_id=user.id))
        service.users.get_user_by_id = AsyncMock(return_value=user)
        with patch("src.services.auth._require_signature"), patch.object(
            ActivityService, "record_activity", AsyncMock(side_effect=RuntimeError("db hiccup"))
        ):
            result, token = await service.login(
                WalletLoginRequest(public_key="So11111111111111111111111111111111111111112", signature="sig")
            )
        assert result is user
        assert token
        session.rollback.assert_awaited_once()
