from __future__ import annotations

from unittest.mock import AsyncMock, patch

import base58
import pytest

from src.core.errors import NotFoundError, UnauthorizedError
from src.core.security import create_access_token
from src.schemas.auth import WalletCheckStatus

pytestmark = [pytest.mark.api, pytest.mark.asyncio]

ADDRESS = base58.b58encode(bytes(range(32))).decode()


class TestWalletAuth:
    async def test_login_message(self, async_client_no_auth):
        response = await async_client_no_auth.get(f"/api/v1/auth/wallet/message/{ADDRESS}")
        assert response.status_code == 200
        assert response.json()["message"] == (
            f"Sign this message to authenticate with DYOR Hub.\n\nWallet: {ADDRESS}"
        )

    async def test_login_message_rejects_bad_address(self, async_client_no_auth):
        response = await async_client_no_auth.get("/api/v1/auth/wallet/message/nope")
        assert response.status_code == 400

    async def test_check_wallet(self, async_client_no_auth):
        with patch(
            "src.services.auth.AuthService.check_wallet",
            AsyncMock(return_value=WalletCheckStatus.EXISTING_USER),
        ):
            response = await async_client_no_auth.post("/api/v1/auth/wallet/check", json={"public_key": ADDRESS})
        assert response.status_code == 200
        assert response.json() == {"status": "existing_user"}

    async def test_login_sets_cookie(self, async_client_no_auth, user_factory):
        user = user_factory(username="alice", display_name="Alice")
        with patch("src.services.auth.AuthService.login", AsyncMock(return_value=(user, "signed.jwt.token"))):
            response = await async_client_no_auth.post(
                "/api/v1/auth/wallet/login", json={"public_key": ADDRESS, "signature": "sig"}
            )
        assert response.status_code == 200
        body = response.json()
        assert body["access_token"] == "signed.jwt.token"
        assert body["token_type"] == "bearer"
        assert body["user"]["username"] == "alice"
        cookie = response.headers["set-cookie"]
        assert "jwt=signed.jwt.token" in cookie
        assert "HttpOnly" in cookie
        assert "Max-Age=86400" in cookie

    async def test_login_unknown_wallet(self, async_client_no_auth):
        with patch(
            "src.services.auth.AuthService.login",
            AsyncMock(side_effect=NotFoundError("No account is linked to this wallet")),
        ):
            response = await async_client_no_auth.post(
                "/api/v1/auth/wallet/login", json={"public_key": ADDRESS, "signature": "sig"}
            )
        assert response.status_code == 404

    async def test_signup_bad_signature(self, async_client_no_auth):
        with patch(
            "src.services.auth.AuthService.signup",
            AsyncMock(side_effect=UnauthorizedError("Invalid wallet signature")),
        ):
            response = await async_client_no_auth.post(
                "/api/v1/auth/wallet/signup",
                json={"public_key": ADDRESS, "signature": "sig", "username": "alice"},
            )
        assert response.status_code == 401

    async def test_signup_validates_username(self, async_client_no_auth):
        response = await async_client_no_auth.post(
            "/api/v1/auth/wallet/signup",
            json={"public_key": ADDRESS, "signature": "sig", "username": "a b"},
        )
        assert response.status_code == 422

    async def test_logout_clears_cookie(self, async_client_no_auth):
        response = await async_client_no_auth.post("/api/v1/auth/logout")
        assert response.status_code == 200
        cookie = response.headers["set-cookie"]
        assert cookie.startswith("jwt=")
        assert "Max-Age=0" in cookie


class TestTokenTransport:
    async def test_cookie_authenticates(self, async_client_no_auth, user_factory):
        user = user_factory(username="carol")
        token = create_access_token(str(user.id), user.username)
        with patch("src.repositories.users.UserRepository.get_user_by_id", AsyncMock(return_value=user)):
            async_client_no_auth.cookies.set("jwt", token)
            response = await async_client_no_auth.get("/api/v1/auth/profile")
        assert response.status_code == 200
        assert response.json()["username"] == "carol"

    async def test_bearer_authenticates(self, async_client_no_auth, user_factory):
        user = user_factory(username="dave")
        token = create_access_token(str(user.id), user.username)
        with patch("src.repositories.users.UserRepository.get_user_by_id", AsyncMock(return_value=user)):
            response = await async_client_no_auth.get(
                "/api/v1/users/me", headers={"Authorization": f"Bearer {token}"}
            )
        assert response.status_code == 200
        assert response.json()["username"] == "dave"

    async def test_deleted_user_is_rejected(self, async_client_no_auth, user_factory):
        user = user_factory()
        token = create_access_token(str(user.id), user.username)
        with patch("src.repositories.users.UserRepository.get_user_by_id", AsyncMock(return_value=None)):
            async_client_no_auth.cookies.set("jwt", token)
            response = await async_client_no_auth.get("/api/v1/auth/profile")
        assert response.status_code == 401
