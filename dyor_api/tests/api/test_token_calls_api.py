from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from src.core.errors import BadRequestError
from src.schemas.common import PageMeta
from src.schemas.token_calls import TokenCallPage, TokenCallSort, TokenCallStats

pytestmark = [pytest.mark.api, pytest.mark.asyncio]

MINT = "So11111111111111111111111111111111111111112"


def _call(**overrides) -> SimpleNamespace:
    now = datetime(2026, 3, 1, 12, tzinfo=timezone.utc)
    values = {
        "id": uuid.uuid4(),
        "user_id": uuid.uuid4(),
        "token_mint_address": MINT,
        "call_timestamp": now,
        "reference_price": 1.0,
        "reference_supply": None,
        "target_price": 2.0,
        "target_date": now + timedelta(days=7),
        "status": "PENDING",
        "verification_timestamp": None,
        "peak_price_during_period": None,
        "final_price": None,
        "target_hit_timestamp": None,
        "time_to_hit_ratio": None,
        "explanation_comment_id": uuid.uuid4(),
        "created_at": now,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class TestTokenCallRoutes:
    async def test_create(self, async_client):
        call = _call()
        payload = {
            "token_mint_address": MINT,
            "target_price": 2.0,
            "target_date": (datetime.now(timezone.utc) + timedelta(days=7)).isoformat(),
            "explanation": "Strong community and a CEX listing soon",
        }
        with patch("src.services.token_calls.TokenCallService.create_call", AsyncMock(return_value=call)):
            response = await async_client.post("/api/v1/token-calls", json=payload)
        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "PENDING"
        assert body["explanation_comment_id"] == str(call.explanation_comment_id)

    async def test_create_rejects_target_below_reference(self, async_client):
        with patch(
            "src.services.token_calls.TokenCallService.create_call",
            AsyncMock(side_effect=BadRequestError("Target price must be above the current price")),
        ):
            response = await async_client.post(
                "/api/v1/token-calls",
                json={
                    "token_mint_address": MINT,
                    "target_price": 0.5,
                    "target_date": "2030-01-01T00:00:00Z",
                    "explanation": "Going down before it goes up",
                },
            )
        assert response.status_code == 400

    async def test_list_passes_filters(self, async_client):
        page = TokenCallPage(data=[], meta=PageMeta.build(0, 1, 20))
        user_id = uuid.uuid4()
        with patch("src.services.token_calls.TokenCallService.list_calls", AsyncMock(return_value=page)) as listed:
            response = await async_client.get(
                "/api/v1/token-calls",
                params={"user_id": str(user_id), "status": "VERIFIED_SUCCESS", "sort": "target_asc"},
            )
        assert response.status_code == 200
        filters = listed.await_args.args[0]
        assert filters.user_id == user_id
        assert filters.status.value == "VERIFIED_SUCCESS"
        assert listed.await_args.kwargs["sort"] == TokenCallSort.TARGET_ASC

    async def test_user_stats(self, async_client):
        stats = TokenCallStats(total_calls=4, successful_calls=2, failed_calls=1, pending_calls=1, accuracy_rate=66.67)
        with patch("src.services.token_calls.TokenCallService.get_user_stats", AsyncMock(return_value=stats)):
            response = await async_client.get(f"/api/v1/token-calls/users/{uuid.uuid4()}/stats")
        assert response.status_code == 200
        assert response.json()["accuracy_rate"] == 66.67

    async def test_get_one(self, async_client):
        call = _call(status="VERIFIED_SUCCESS", time_to_hit_ratio=0.25)
        with patch("src.services.token_calls.TokenCallService.get_call", AsyncMock(return_value=call)):
            response = await async_client.get(f"/api/v1/token-calls/{call.id}")
        assert response.status_code == 200
        assert response.json()["time_to_hit_ratio"] == 0.25
