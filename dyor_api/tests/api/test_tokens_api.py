from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.core.errors import NotFoundError
from src.db.models.enums import SentimentType
from src.schemas.tokens import TokenSentimentStats
from src.services.birdeye import get_birdeye_client

pytestmark = [pytest.mark.api, pytest.mark.asyncio]

MINT = "So11111111111111111111111111111111111111112"


@pytest.fixture
def birdeye(app):
    client = MagicMock()
    app.dependency_overrides[get_birdeye_client] = lambda: client
    return client


class TestPriceHistory:
    async def test_items_use_birdeye_keys(self, async_client, birdeye):
        birdeye.get_price_history = AsyncMock(
            return_value=[{"unixTime": 1700000000, "value": 1.5}, {"unixTime": 1700003600, "value": 1.75}]
        )
        response = await async_client.get(
            f"/api/v1/tokens/{MINT}/price-history",
            params={"time_from": 1700000000, "time_to": 1700007200, "resolution": "1H"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["resolution"] == "1H"
        assert body["items"][0] == {"unixTime": 1700000000, "value": 1.5}
        assert "unix_time" not in body["items"][1]

    async def test_inverted_range_is_rejected(self, async_client, birdeye):
        birdeye.get_price_history = AsyncMock(return_value=[])
        response = await async_client.get(
            f"/api/v1/tokens/{MINT}/price-history", params={"time_from": 20, "time_to": 10}
        )
        assert response.status_code == 400
        birdeye.get_price_history.assert_not_awaited()


class TestSentimentRoutes:
    async def test_get_stats(self, async_client, current_user):
        stats = TokenSentimentStats(bullish_count=2, red_flag_count=1, total_count=3, user_sentiment=SentimentType.BULLISH)
        with patch(
            "src.services.sentiment.TokenSentimentService.get_stats", AsyncMock(return_value=stats)
        ) as get_stats:
            response = await async_client.get(f"/api/v1/tokens/{MINT}/sentiment")
        assert response.status_code == 200
        assert response.json() == {
            "bullish_count": 2,
            "bearish_count": 0,
            "red_flag_count": 1,
            "total_count": 3,
            "user_sentiment": "bullish",
        }
        assert get_stats.await_args.args == (MINT, current_user)

    async def test_vote(self, async_client, birdeye, current_user):
        stats = TokenSentimentStats(bearish_count=1, total_count=1, user_sentiment=SentimentType.BEARISH)
        with patch(
            "src.services.sentiment.TokenSentimentService.set_sentiment", AsyncMock(return_value=stats)
        ) as vote:
            response = await async_client.post(
                f"/api/v1/tokens/{MINT}/sentiment", json={"sentiment_type": "bearish"}
            )
        assert response.status_code == 200
        assert response.json()["user_sentiment"] == "bearish"
        assert vote.await_args.args == (current_user, MINT, SentimentType.BEARISH)

    async def test_vote_rejects_unknown_type(self, async_client, birdeye):
        response = await async_client.post(f"/api/v1/tokens/{MINT}/sentiment", json={"sentiment_type": "moon"})
        assert response.status_code == 422

    async def test_vote_on_unknown_token(self, async_client, birdeye):
        with patch(
            "src.services.sentiment.TokenSentimentService.set_sentiment",
            AsyncMock(side_effect=NotFoundError("Token not found")),
        ):
            response = await async_client.post(
                f"/api/v1/tokens/{MINT}/sentiment", json={"sentiment_type": "red_flag"}
            )
        assert response.status_code == 404

    async def test_remove(self, async_client):
        with patch(
            "src.services.sentiment.TokenSentimentService.remove_sentiment",
            AsyncMock(return_value=TokenSentimentStats()),
        ):
            response = await async_client.delete(f"/api/v1/tokens/{MINT}/sentiment")
        assert response.status_code == 200
        assert response.json()["user_sentiment"] is None

    async def test_vote_requires_auth(self, async_client_no_auth):
        response = await async_client_no_auth.post(
            f"/api/v1/tokens/{MINT}/sentiment", json={"sentiment_type": "bullish"}
        )
        assert response.status_code == 401
