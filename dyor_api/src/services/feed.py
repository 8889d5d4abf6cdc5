from __future__ import annotations

from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models.comments import Comment
from src.db.models.enums import ActivityType
from src.db.models.gamification import UserActivity
from src.db.models.token_calls import TokenCall
from src.db.models.users import User
from src.repositories.comments import CommentRepository
from src.repositories.gamification import ActivityRepository
from src.repositories.token_calls import TokenCallRepository
from src.repositories.users import UserRepository
from src.schemas.comments import CommentAuthor
from src.schemas.common import PageMeta
from src.schemas.feed import FeedComment, FeedItem, FeedPage
from src.schemas.token_calls import TokenCallRead
from src.services.base import BaseService

# Logins are private; everything else a followed user does shows up.
FEED_ACTIVITY_TYPES = (
    ActivityType.POST,
    ActivityType.COMMENT,
    ActivityType.UPVOTE,
    ActivityType.DOWNVOTE,
    ActivityType.PREDICTION,
)


def _ids_of(activities: List[UserActivity], entity_type: str) -> List[UUID]:
    return [UUID(a.entity_id) for a in activities if a.entity_type == entity_type and a.entity_id]


def _to_item(
    activity: UserActivity,
    users: Dict[UUID, User],
    comments: Dict[UUID, Comment],
    calls: Dict[UUID, TokenCall],
) -> Optional[FeedItem]:
    user = users.get(activity.user_id)
    if user is None:
        return None
    comment = call = None
    if activity.entity_type == "comment":
        comment = comments.get(UUID(activity.entity_id))
        if comment is None:
            return None
    else:
        call = calls.get(UUID(activity.entity_id))
        if call is None:
            return None
    return FeedItem(
        id=activity.id,
        activity_type=ActivityType(activity.activity_type),
        created_at=activity.created_at,
        user=CommentAuthor(
            id=user.id, username=user.username, display_name=user.display_name, avatar_url=user.avatar_url
        ),
        comment=FeedComment.model_validate(comment) if comment is not None else None,
        token_call=TokenCallRead.model_validate(call) if call is not None else None,
    )


class FeedService(BaseService):
    """What the people a user follows have been doing."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.activity = ActivityRepository(session)
        self.comments = CommentRepository(session)
        self.calls = TokenCallRepository(session)
        self.users = UserRepository(session)

    # PUBLIC_INTERFACE
    async def get_following_feed(self, user: User, *, page: int, limit: int) -> FeedPage:
        activities, total = await self.activity.list_following_feed(
            user.id, [t.value for t in FEED_ACTIVITY_TYPES], limit=limit, offset=(page - 1) * limit
        )
        comments = {c.id: c for c in await self.comments.list_by_ids(_ids_of(activities, "comment"))}
        calls = {c.id: c for c in await self.calls.list_by_ids(_ids_of(activities, "token_call"))}
        users = {u.id: u for u in await self.users.get_users_by_ids(list({a.user_id for a in activities}))}

        items = [_to_item(a, users, comments, calls) for a in activities]
        return FeedPage(data=[i for i in items if i is not None], meta=PageMeta.build(total, page, limit))
