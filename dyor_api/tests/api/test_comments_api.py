from __future__ import annotations

import uuid
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from src.core.errors import BadRequestError, ForbiddenError
from src.schemas.comments import CommentAuthor, CommentPage, CommentRead, VoteResponse
from src.schemas.common import PageMeta

pytestmark = [pytest.mark.api, pytest.mark.asyncio]

MINT = "So11111111111111111111111111111111111111112"


def _comment(**overrides) -> CommentRead:
    now = datetime(2026, 3, 1, tzinfo=timezone.utc)
    values = {
        "id": uuid.uuid4(),
        "content": "Liquidity looks locked",
        "token_mint_address": MINT,
        "author": CommentAuthor(id=uuid.uuid4(), username="alice", display_name="Alice"),
        "created_at": now,
        "updated_at": now,
    }
    values.update(overrides)
    return CommentRead(**values)


class TestCommentRoutes:
    async def test_list_for_token(self, async_client):
        reply = _comment(content="Agreed")
        root = _comment(replies=[reply])
        page = CommentPage(data=[root], meta=PageMeta.build(1, 1, 10))
        with patch("src.services.comments.CommentService.list_for_token", AsyncMock(return_value=page)) as listed:
            response = await async_client.get("/api/v1/comments", params={"token_mint": MINT})
        assert response.status_code == 200
        body = response.json()
        assert body["meta"] == {"total": 1, "page": 1, "limit": 10, "total_pages": 1}
        assert body["data"][0]["replies"][0]["content"] == "Agreed"
        assert listed.await_args.args[0] == MINT

    async def test_latest_is_not_captured_by_id_route(self, async_client):
        with patch("src.services.comments.CommentService.list_latest", AsyncMock(return_value=[_comment()])):
            response = await async_client.get("/api/v1/comments/latest", params={"limit": 5})
        assert response.status_code == 200
        assert len(response.json()) == 1

    async def test_create_returns_thread(self, async_client):
        created = _comment()
        with patch(
            "src.services.comments.CommentService.create_comment",
            AsyncMock(return_value=SimpleNamespace(id=created.id)),
        ), patch("src.services.comments.CommentService.get_thread", AsyncMock(return_value=created)):
            response = await async_client.post(
                "/api/v1/comments", json={"content": "Liquidity looks locked", "token_mint_address": MINT}
            )
        assert response.status_code == 201
        assert response.json()["id"] == str(created.id)

    async def test_edit_after_window_is_forbidden(self, async_client):
        with patch(
            "src.services.comments.CommentService.update_comment",
            AsyncMock(side_effect=ForbiddenError("Comments can only be edited within 15 minutes of posting")),
        ):
            response = await async_client.patch(f"/api/v1/comments/{uuid.uuid4()}", json={"content": "edit"})
        assert response.status_code == 403

    async def test_remove_without_body(self, async_client):
        removed = _comment(is_removed=True, content="This comment has been removed", removal_reason="Removed by user")
        with patch(
            "src.services.comments.CommentService.remove_comment",
            AsyncMock(return_value=SimpleNamespace(id=removed.id)),
        ) as remove, patch("src.services.comments.CommentService.get_thread", AsyncMock(return_value=removed)):
            response = await async_client.post(f"/api/v1/comments/{removed.id}/remove")
        assert response.status_code == 200
        assert response.json()["is_removed"] is True
        assert remove.await_args.args[2] is None

    async def test_vote(self, async_client):
        result = VoteResponse(upvotes=3, downvotes=1, user_vote_type="upvote")
        with patch("src.services.comments.CommentService.vote", AsyncMock(return_value=result)):
            response = await async_client.post(f"/api/v1/comments/{uuid.uuid4()}/vote", json={"type": "upvote"})
        assert response.status_code == 200
        assert response.json() == {"upvotes": 3, "downvotes": 1, "user_vote_type": "upvote"}

    async def test_vote_on_removed_comment(self, async_client):
        with patch(
            "src.services.comments.CommentService.vote",
            AsyncMock(side_effect=BadRequestError("Cannot vote on a removed comment")),
        ):
            response = await async_client.post(f"/api/v1/comments/{uuid.uuid4()}/vote", json={"type": "downvote"})
        assert response.status_code == 400

    async def test_invalid_vote_type(self, async_client):
        response = await async_client.post(f"/api/v1/comments/{uuid.uuid4()}/vote", json={"type": "meh"})
        assert response.status_code == 422
