from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.core.errors import BadRequestError, NotFoundError
from src.db.models.enums import ActivityType, SentimentType, TokenCallStatus
from src.schemas.gamification import TokenCallLeaderboardSort
from src.services.feed import FEED_ACTIVITY_TYPES, FeedService
from src.services.leaderboard import LeaderboardService
from src.services.sentiment import TokenSentimentService
from src.services.tokens import TokenService

pytestmark = [pytest.mark.unit, pytest.mark.asyncio]

MINT = "So11111111111111111111111111111111111111112"
CREATED = datetime(2026, 2, 1, tzinfo=timezone.utc)


@pytest.fixture
def session():
    s = MagicMock()
    s.commit = AsyncMock()
    s.rollback = AsyncMock()
    return s


def _user(**overrides):
    values = {
        "id": uuid.uuid4(),
        "username": "degen",
        "display_name": "Degen",
        "avatar_url": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class TestTokenCreatorLookup:
    def _service(self, session, security):
        birdeye = MagicMock()
        birdeye.get_token_overview = AsyncMock(return_value={"name": "Wrapped SOL", "symbol": "SOL"})
        birdeye.get_token_security = AsyncMock(return_value=security)
        service = TokenService(session, birdeye)
        service.repo = MagicMock()
        service.repo.get = AsyncMock(return_value=None)
        service.repo.create = AsyncMock(
            side_effect=lambda **kw: SimpleNamespace(creator_address=None, creation_tx=None, creation_time=None, **kw)
        )
        return service

    async def test_creator_info_is_stored(self, session):
        service = self._service(session, {"creatorAddress": "Creator", "creationTx": "Tx", "creationTime": 1700000000})
        token = await service.get_token(MINT)
        assert token.creator_address == "Creator"
        assert token.creation_time == datetime.fromtimestamp(1700000000, tz=timezone.utc)
        assert session.commit.await_count == 2

    async def test_non_numeric_creation_time_is_ignored(self, session):
        service = self._service(session, {"creatorAddress": "Creator", "creationTime": "abc"})
        token = await service.get_token(MINT)
        assert token.symbol == "SOL"
        assert token.creation_time is None
        assert token.creator_address is None
        session.commit.assert_awaited_once()

    async def test_unknown_token_is_not_found(self, session):
        service = self._service(session, None)
        service.birdeye.get_token_overview = AsyncMock(return_value=None)
        with pytest.raises(NotFoundError):
            await service.get_token(MINT)


class TestTokenSentiment:
    def _service(self, session, counts=None, entry=None):
        service = TokenSentimentService(session, birdeye=MagicMock())
        service.repo = MagicMock()
        service.repo.counts = AsyncMock(return_value=counts or {})
        service.repo.get = AsyncMock(return_value=entry)
        service.repo.create = AsyncMock()
        service.repo.delete = AsyncMock()
        service.tokens = MagicMock()
        service.tokens.get_token = AsyncMock(return_value=SimpleNamespace(mint_address=MINT))
        return service

    async def test_stats_include_viewer_vote(self, session):
        service = self._service(
            session,
            counts={"bullish": 3, "red_flag": 1},
            entry=SimpleNamespace(sentiment_type="red_flag"),
        )
        stats = await service.get_stats(MINT, _user())
        assert (stats.bullish_count, stats.bearish_count, stats.red_flag_count) == (3, 0, 1)
        assert stats.total_count == 4
        assert stats.user_sentiment == SentimentType.RED_FLAG

    async def test_anonymous_stats_skip_lookup(self, session):
        service = self._service(session, counts={"bearish": 2})
        stats = await service.get_stats(MINT)
        assert stats.user_sentiment is None
        service.repo.get.assert_not_awaited()

    async def test_invalid_mint_is_rejected(self, session):
        with pytest.raises(BadRequestError):
            await self._service(session).get_stats("not-a-mint")

    async def test_first_vote_is_created(self, session):
        user = _user()
        service = self._service(session)
        await service.set_sentiment(user, MINT, SentimentType.BULLISH)
        service.tokens.get_token.assert_awaited_once_with(MINT, count_view=False)
        service.repo.create.assert_awaited_once_with(user.id, MINT, "bullish")
        session.commit.assert_awaited_once()

    async def test_vote_is_replaced(self, session):
        entry = SimpleNamespace(sentiment_type="bullish")
        service = self._service(session, counts={"bearish": 1}, entry=entry)
        stats = await service.set_sentiment(_user(), MINT, SentimentType.BEARISH)
        assert entry.sentiment_type == "bearish"
        service.repo.create.assert_not_awaited()
        assert stats.bearish_count == 1

    async def test_unknown_token_cannot_be_voted(self, session):
        service = self._service(session)
        service.tokens.get_token = AsyncMock(side_effect=NotFoundError("Token not found"))
        with pytest.raises(NotFoundError):
            await service.set_sentiment(_user(), MINT, SentimentType.BULLISH)
        session.commit.assert_not_awaited()

    async def test_remove_without_vote_is_noop(self, session):
        service = self._service(session)
        await service.remove_sentiment(_user(), MINT)
        service.repo.delete.assert_not_awaited()
        session.commit.assert_not_awaited()

    async def test_remove_existing_vote(self, session):
        entry = SimpleNamespace(sentiment_type="bearish")
        service = self._service(session, entry=entry)
        await service.remove_sentiment(_user(), MINT)
        service.repo.delete.assert_awaited_once_with(entry)
        session.commit.assert_awaited_once()


def _activity(user_id, activity_type, entity_type, entity_id):
    return SimpleNamespace(
        id=uuid.uuid4(),
        user_id=user_id,
        activity_type=activity_type.value,
        entity_type=entity_type,
        entity_id=str(entity_id),
        created_at=CREATED,
    )


class TestFollowingFeed:
    def _service(self, session, activities, *, comments=(), calls=(), users=(), total=None):
        service = FeedService(session)
        service.activity = MagicMock()
        service.activity.list_following_feed = AsyncMock(
            return_value=(activities, len(activities) if total is None else total)
        )
        service.comments = MagicMock()
        service.comments.list_by_ids = AsyncMock(return_value=list(comments))
        service.calls = MagicMock()
        service.calls.list_by_ids = AsyncMock(return_value=list(calls))
        service.users = MagicMock()
        service.users.get_users_by_ids = AsyncMock(return_value=list(users))
        return service

    async def test_items_carry_their_entity(self, session):
        author = _user(username="alice")
        comment = SimpleNamespace(
            id=uuid.uuid4(), content="Chart looks healthy", token_mint_address=MINT, parent_id=None,
            upvotes_count=2, downvotes_count=0, created_at=CREATED,
        )
        call = SimpleNamespace(
            id=uuid.uuid4(), user_id=author.id, token_mint_address=MINT, call_timestamp=CREATED,
            reference_price=1.0, reference_supply=None, target_price=2.0, target_date=CREATED,
            status=TokenCallStatus.PENDING.value, verification_timestamp=None, peak_price_during_period=None,
            final_price=None, target_hit_timestamp=None, time_to_hit_ratio=None, explanation_comment_id=None,
            created_at=CREATED,
        )
        activities = [
            _activity(author.id, ActivityType.POST, "comment", comment.id),
            _activity(author.id, ActivityType.PREDICTION, "token_call", call.id),
        ]
        service = self._service(session, activities, comments=[comment], calls=[call], users=[author])

        page = await service.get_following_feed(_user(), page=1, limit=10)

        assert [i.activity_type for i in page.data] == [ActivityType.POST, ActivityType.PREDICTION]
        assert page.data[0].comment.content == "Chart looks healthy"
        assert page.data[0].token_call is None
        assert page.data[1].token_call.target_price == 2.0
        assert page.data[1].user.username == "alice"
        assert page.meta.total == 2

    async def test_missing_entities_are_dropped(self, session):
        author = _user()
        activities = [_activity(author.id, ActivityType.UPVOTE, "comment", uuid.uuid4())]
        page = await self._service(session, activities, users=[author]).get_following_feed(_user(), page=1, limit=10)
        assert page.data == []

    async def test_logins_are_not_requested(self, session):
        viewer = _user()
        service = self._service(session, [], total=0)
        await service.get_following_feed(viewer, page=3, limit=5)
        args = service.activity.list_following_feed.await_args
        assert args.args[0] == viewer.id
        assert ActivityType.LOGIN.value not in args.args[1]
        assert set(args.args[1]) == {t.value for t in FEED_ACTIVITY_TYPES}
        assert (args.kwargs["limit"], args.kwargs["offset"]) == (5, 10)


class TestTokenCallLeaderboard:
    async def test_ranks_continue_across_pages(self, session):
        first, second = _user(username="oracle"), _user(username="apprentice")
        service = LeaderboardService(session)
        service.call_repo = MagicMock()
        service.call_repo.leaderboard = AsyncMock(
            return_value=(
                [
                    (first, 4, 3, Decimal("0.75"), 0.4, Decimal("2.5")),
                    (second, 2, 1, Decimal("0.5"), None, None),
                ],
                12,
            )
        )

        page = await service.get_token_call_leaderboard(
            sort_by=TokenCallLeaderboardSort.SUCCESSFUL_CALLS, page=2, limit=2
        )

        service.call_repo.leaderboard.assert_awaited_once_with(sort_by="successful_calls", limit=2, offset=2)
        assert [e.rank for e in page.data] == [3, 4]
        assert page.data[0].accuracy_rate == 75.0
        assert page.data[0].average_multiplier == 2.5
        assert page.data[1].average_time_to_hit_ratio is None
        assert page.meta.total == 12
        assert page.meta.total_pages == 6
