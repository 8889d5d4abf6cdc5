from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from src.core.errors import ConflictError, NotFoundError

pytestmark = [pytest.mark.api, pytest.mark.asyncio]


class TestSystemEndpoints:
    async def test_health(self, async_client):
        response = await async_client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json()["message"] == "Healthy"

    async def test_websocket_info(self, async_client):
        response = await async_client.get("/api/v1/websocket-info")
        assert response.status_code == 200
        assert response.json()["endpoints"][0]["path"] == "/ws/notifications"

    async def test_correlation_id_is_echoed(self, async_client):
        response = await async_client.get("/api/v1/health", headers={"X-Correlation-ID": "abc-123"})
        assert response.headers["X-Correlation-ID"] == "abc-123"


class TestErrorEnvelope:
    async def test_domain_error_maps_to_status(self, async_client):
        with patch(
            "src.services.users.UserService.get_by_username",
            AsyncMock(side_effect=NotFoundError("User not found")),
        ):
            response = await async_client.get("/api/v1/users/nobody")
        assert response.status_code == 404
        body = response.json()
        assert body["status"] == 404
        assert body["error"]["type"] == "not_found"
        assert body["error"]["message"] == "User not found"
        assert body["path"] == "/api/v1/users/nobody"

    async def test_conflict(self, async_client, current_user):
        with patch(
            "src.services.badges.BadgeService.award_manual",
            AsyncMock(side_effect=ConflictError("User already has this badge")),
        ):
            current_user.is_admin = True
            response = await async_client.post(
                "/api/v1/admin/badges/7d1e3a52-3f0b-4a43-9d1b-2f7b6a0c9a11/award",
                json={"user_id": "0b8f1c7e-2a45-4c9e-8f3d-1a2b3c4d5e6f"},
            )
        assert response.status_code == 409
        assert response.json()["error"]["type"] == "conflict"

    async def test_validation_error(self, async_client):
        response = await async_client.post("/api/v1/comments", json={"content": ""})
        assert response.status_code == 422
        body = response.json()
        assert body["error"]["type"] == "validation_error"
        assert isinstance(body["error"]["details"], list)

    async def test_missing_credentials(self, async_client_no_auth):
        response = await async_client_no_auth.get("/api/v1/users/me")
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Not authenticated"

    async def test_invalid_token(self, async_client_no_auth):
        response = await async_client_no_auth.get(
            "/api/v1/notifications/unread-count", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401
