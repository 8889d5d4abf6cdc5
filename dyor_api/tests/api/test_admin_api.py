from __future__ import annotations

import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from src.schemas.token_calls import VerificationRunResult

pytestmark = [pytest.mark.api, pytest.mark.asyncio]


def _badge(**overrides) -> SimpleNamespace:
    values = {
        "id": uuid.uuid4(),
        "name": "Tipper",
        "description": "Sent a tip",
        "category": "tipping",
        "requirement": "manual",
        "threshold": 1,
        "image_url": None,
        "is_active": True,
        "award_count": 0,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class TestAdminAccess:
    async def test_non_admin_is_forbidden(self, async_client):
        response = await async_client.get("/api/v1/admin/badges")
        assert response.status_code == 403

    async def test_admin_lists_badges(self, async_client, current_user):
        current_user.is_admin = True
        with patch("src.services.badges.BadgeService.list_badges", AsyncMock(return_value=[_badge()])):
            response = await async_client.get("/api/v1/admin/badges")
        assert response.status_code == 200
        assert response.json()[0]["name"] == "Tipper"

    async def test_admin_creates_badge(self, async_client, current_user):
        current_user.is_admin = True
        badge = _badge(name="Moonshot", category="token_call", requirement="token_call_moonshot_x", threshold=10)
        with patch("src.services.badges.BadgeService.create_badge", AsyncMock(return_value=badge)):
            response = await async_client.post(
                "/api/v1/admin/badges",
                json={
                    "name": "Moonshot",
                    "description": "Called a 10x",
                    "category": "token_call",
                    "requirement": "token_call_moonshot_x",
                    "threshold": 10,
                },
            )
        assert response.status_code == 201
        assert response.json()["threshold"] == 10

    async def test_manual_verification_run(self, async_client, current_user):
        current_user.is_admin = True
        result = VerificationRunResult(processed=3, succeeded=1, failed=1, errored=1)
        with patch(
            "src.services.token_call_verification.TokenCallVerificationService.verify_due_calls",
            AsyncMock(return_value=result),
        ):
            response = await async_client.post("/api/v1/admin/token-calls/verify")
        assert response.status_code == 200
        assert response.json() == {"processed": 3, "succeeded": 1, "failed": 1, "errored": 1, "skipped": False}
