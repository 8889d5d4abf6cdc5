from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.core.errors import BadRequestError, NotFoundError
from src.db.models.enums import ActivityType, CommentType, TokenCallStatus
from src.schemas.token_calls import TokenCallCreate
from src.services.activity import ActivityService
from src.services.token_calls import TokenCallService

pytestmark = [pytest.mark.unit, pytest.mark.asyncio]

MINT = "So11111111111111111111111111111111111111112"
NOW = datetime(2026, 3, 1, 12, 30, tzinfo=timezone.utc)


@pytest.fixture
def session():
    s = MagicMock()
    s.commit = AsyncMock()
    s.rollback = AsyncMock()
    return s


@pytest.fixture
def explanation_comments():
    with patch("src.services.token_calls.CommentService") as comments:
        comments.return_value.create_comment = AsyncMock(return_value=SimpleNamespace(id=uuid.uuid4()))
        yield comments.return_value


def _user():
    return SimpleNamespace(id=uuid.uuid4(), display_name="Caller")


def _payload(target_price=2.0, target_date=NOW + timedelta(days=2)):
    return TokenCallCreate(
        token_mint_address=MINT,
        target_price=target_price,
        target_date=target_date,
        explanation="Volume keeps climbing on every dip",
    )


def _service(session, *, price=1.0, token=True):
    birdeye = MagicMock()
    birdeye.get_price = AsyncMock(return_value=price)
    service = TokenCallService(session, birdeye=birdeye)
    service.tokens = MagicMock()
    service.tokens.get = AsyncMock(return_value=SimpleNamespace(mint_address=MINT) if token else None)
    service.repo = MagicMock()
    service.repo.create = AsyncMock(
        side_effect=lambda **kw: SimpleNamespace(id=uuid.uuid4(), explanation_comment_id=None, **kw)
    )
    service.repo.refresh = AsyncMock()
    return service


class TestCreateCall:
    async def test_call_is_priced_and_explained(self, session, explanation_comments):
        service = _service(session, price=1.25)
        with patch.object(TokenCallService, "_notify_followers", AsyncMock()), patch(
            "src.services.token_calls.ActivityService"
        ) as activity:
            activity.return_value.record_activity = AsyncMock()
            call = await service.create_call(_user(), _payload(), now=NOW)

        assert call.reference_price == 1.25
        assert call.status == TokenCallStatus.PENDING.value
        assert call.explanation_comment_id is not None
        kwargs = explanation_comments.create_comment.await_args.kwargs
        assert kwargs["comment_type"] == CommentType.TOKEN_CALL_EXPLANATION
        assert kwargs["commit"] is False
        assert activity.return_value.record_activity.await_args.args[1] == ActivityType.PREDICTION
        session.commit.assert_awaited_once()

    async def test_target_must_be_above_reference_price(self, session, explanation_comments):
        service = _service(session, price=3.0)
        with pytest.raises(BadRequestError) as exc:
            await service.create_call(_user(), _payload(target_price=2.0), now=NOW)
        assert exc.value.details == {"reference_price": 3.0}
        service.repo.create.assert_not_awaited()

    async def test_equal_target_is_rejected(self, session, explanation_comments):
        with pytest.raises(BadRequestError):
            await _service(session, price=2.0).create_call(_user(), _payload(target_price=2.0), now=NOW)

    async def test_unknown_token_is_not_found(self, session, explanation_comments):
        service = _service(session, token=False)
        with pytest.raises(NotFoundError):
            await service.create_call(_user(), _payload(), now=NOW)
        service.birdeye.get_price.assert_not_awaited()

    @pytest.mark.parametrize("price", [None, 0.0])
    async def test_missing_price_is_bad_request(self, session, explanation_comments, price):
        service = _service(session, price=price)
        with pytest.raises(BadRequestError):
            await service.create_call(_user(), _payload(), now=NOW)
        service.repo.create.assert_not_awaited()

    async def test_past_target_date_is_rejected(self, session, explanation_comments):
        with pytest.raises(BadRequestError):
            await _service(session).create_call(_user(), _payload(target_date=NOW - timedelta(hours=1)), now=NOW)

    async def test_activity_failure_keeps_the_committed_call(self, session, explanation_comments):
        service = _service(session)
        with patch.object(TokenCallService, "_notify_followers", AsyncMock()) as notify, patch.object(
            ActivityService, "record_activity", AsyncMock(side_effect=RuntimeError("db hiccup"))
        ):
            call = await service.create_call(_user(), _payload(), now=NOW)

        assert call.target_price == 2.0
        session.commit.assert_awaited_once()
        session.rollback.assert_awaited_once()
        notify.assert_awaited_once()
        service.repo.refresh.assert_awaited_once_with(call)
