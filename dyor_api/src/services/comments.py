from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.errors import BadRequestError, ForbiddenError, NotFoundError
from src.db.models.comments import Comment
from src.db.models.enums import ActivityType, CommentType, NotificationType, VoteType
from src.db.models.users import User
from src.repositories.comments import CommentRepository
from src.repositories.tokens import TokenRepository
from src.repositories.users import FollowRepository, UserRepository
from src.schemas.common import PageMeta
from src.schemas.comments import CommentAuthor, CommentCreate, CommentPage, CommentRead, VoteResponse
from src.services.activity import ActivityService
from src.services.badges import BadgeService
from src.services.base import BaseService
from src.services.notifications import NotificationService

logger = logging.getLogger(__name__)

EDIT_WINDOW = timedelta(minutes=15)
REMOVED_PLACEHOLDER = "This comment has been removed"
DELETED_PLACEHOLDER = "This comment has been deleted"
MENTION_PATTERN = re.compile(r"@(\w+)")


@dataclass(frozen=True)
class _CommentEvent:
    comment_id: UUID
    content: str
    token_mint_address: str
    author_id: UUID
    author_name: str
    parent_id: Optional[UUID]
    parent_author_id: Optional[UUID]


# PUBLIC_INTERFACE
def extract_mentions(content: str) -> List[str]:
    """Distinct @usernames in order of first appearance."""
    return list(dict.fromkeys(MENTION_PATTERN.findall(content)))


# PUBLIC_INTERFACE
def is_within_edit_window(created_at: datetime, now: Optional[datetime] = None) -> bool:
    now = now or datetime.now(tz=timezone.utc)
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return now - created_at <= EDIT_WINDOW


def _preview(content: str, length: int = 80) -> str:
    return content if len(content) <= length else content[: length - 3] + "..."


def _to_read(
    comment: Comment,
    authors: Dict[UUID, User],
    votes: Dict[UUID, str],
) -> CommentRead:
    is_deleted = comment.deleted_at is not None
    is_removed = comment.removed_by_id is not None
    if is_deleted:
        content = DELETED_PLACEHOLDER
    elif is_removed:
        content = REMOVED_PLACEHOLDER
    else:
        content = comment.content
    author = authors.get(comment.user_id)
    vote = votes.get(comment.id)
    return CommentRead(
        id=comment.id,
        content=content,
        token_mint_address=comment.token_mint_address,
        parent_id=comment.parent_id,
        type=CommentType(comment.type),
        token_call_id=comment.token_call_id,
        upvotes_count=comment.upvotes_count,
        downvotes_count=comment.downvotes_count,
        is_edited=comment.is_edited,
        is_removed=is_removed,
        is_deleted=is_deleted,
        removal_reason=comment.removal_reason if is_removed else None,
        user_vote_type=VoteType(vote) if vote else None,
        author=(
            CommentAuthor(
                id=author.id, username=author.username, display_name=author.display_name, avatar_url=author.avatar_url
            )
            if author is not None and not is_deleted
            else None
        ),
        created_at=comment.created_at,
        updated_at=comment.updated_at,
    )


class CommentService(BaseService):
    """Threaded token discussions, votes and their notifications."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = CommentRepository(session)
        self.tokens = TokenRepository(session)
        self.users = UserRepository(session)
        self.follows = FollowRepository(session)

    async def _get_or_404(self, comment_id: UUID) -> Comment:
        comment = await self.repo.get(comment_id)
        if comment is None:
            raise NotFoundError("Comment not found")
        return comment

    async def _build_threads(self, roots: Sequence[Comment], viewer: Optional[User]) -> List[CommentRead]:
        """Attach every descendant to its root so replies nest at any depth."""
        descendants = await self.repo.list_descendants([c.id for c in roots])
        everything = list(roots) + descendants
        authors = await self.repo.authors_by_id([c.user_id for c in everything])
        votes = await self.repo.votes_by_user(viewer.id, [c.id for c in everything]) if viewer else {}

        nodes = {c.id: _to_read(c, authors, votes) for c in everything}
        for comment in descendants:
            parent = nodes.get(comment.parent_id)
            if parent is not None:
                parent.replies.append(nodes[comment.id])
        return [nodes[c.id] for c in roots]

    # PUBLIC_INTERFACE
    async def list_for_token(
        self, mint_address: str, *, page: int, limit: int, viewer: Optional[User] = None
    ) -> CommentPage:
        roots, total = await self.repo.list_top_level_for_token(mint_address, limit=limit, offset=(page - 1) * limit)
        data = await self._build_threads(roots, viewer)
        return CommentPage(data=data, meta=PageMeta.build(total, page, limit))

    # PUBLIC_INTERFACE
    async def list_latest(self, *, limit: int, viewer: Optional[User] = None) -> List[CommentRead]:
        rows = await self.repo.list_latest(limit=limit)
        authors = await self.repo.authors_by_id([c.user_id for c in rows])
        votes = await self.repo.votes_by_user(viewer.id, [c.id for c in rows]) if viewer else {}
        return [_to_read(c, authors, votes) for c in rows]

    # PUBLIC_INTERFACE
    async def list_by_user(self, user_id: UUID, *, page: int, limit: int) -> CommentPage:
        rows, total = await self.repo.list_by_user(user_id, limit=limit, offset=(page - 1) * limit)
        authors = await self.repo.authors_by_id([user_id])
        data = [_to_read(c, authors, {}) for c in rows]
        return CommentPage(data=data, meta=PageMeta.build(total, page, limit))

    # PUBLIC_INTERFACE
    async def get_thread(self, comment_id: UUID, viewer: Optional[User] = None) -> CommentRead:
        comment = await self._get_or_404(comment_id)
        return (await self._build_threads([comment], viewer))[0]

    # PUBLIC_INTERFACE
    async def create_comment(
        self,
        user: User,
        payload: CommentCreate,
        *,
        comment_type: CommentType = CommentType.COMMENT,
        token_call_id: Optional[UUID] = None,
        commit: bool = True,
    ) -> Comment:
        """
        Create a comment or reply and fan out notifications and activity.

        With commit=False only the row is flushed and no side effects run; the
        caller owns the transaction.
        """
        parent: Optional[Comment] = None
        mint_address = payload.token_mint_address
        if payload.parent_id is not None:
            parent = await self._get_or_404(payload.parent_id)
            mint_address = parent.token_mint_address

        if await self.tokens.get(mint_address) is None:
            raise NotFoundError("Token not found")

        comment = await self.repo.create(
            content=payload.content,
            token_mint_address=mint_address,
            user_id=user.id,
            parent_id=parent.id if parent else None,
            type=comment_type.value,
            token_call_id=token_call_id,
        )
        if not commit:
            return comment

        await self.session.commit()
        event = _CommentEvent(
            comment_id=comment.id,
            content=comment.content,
            token_mint_address=mint_address,
            author_id=user.id,
            author_name=user.display_name,
            parent_id=parent.id if parent else None,
            parent_author_id=parent.user_id if parent else None,
        )
        await self._after_create(event)
        await self.repo.refresh(comment)
        # a rolled back side effect expires the author as well
        await self.users.refresh(user)
        return comment

    async def _after_create(self, event: _CommentEvent) -> None:
        """Notifications and activity for a committed comment; notification failures are logged only."""
        notifications = NotificationService(self.session)
        meta = {"token_mint_address": event.token_mint_address}
        try:
            await self._notify_mentions(event, notifications)
            if event.parent_author_id is not None and event.parent_author_id != event.author_id:
                await notifications.create_notification(
                    event.parent_author_id,
                    NotificationType.COMMENT_REPLY,
                    f"{event.author_name} replied to your comment: \"{_preview(event.content)}\"",
                    related_entity_id=str(event.comment_id),
                    related_entity_type="comment",
                    metadata={**meta, "parent_id": str(event.parent_id)},
                )
            followers = await self.follows.follower_ids_with_flag(event.author_id, "notify_on_comment")
            await notifications.notify_many(
                _excluding(followers, event.author_id),
                NotificationType.FOLLOWED_USER_COMMENT,
                f"{event.author_name} posted a new comment",
                related_entity_id=str(event.comment_id),
                related_entity_type="comment",
                metadata={**meta, "author_id": str(event.author_id)},
            )
        except Exception:
            logger.exception("Failed to send notifications for comment %s", event.comment_id)
            await self.session.rollback()

        activity = ActivityType.POST if event.parent_id is None else ActivityType.COMMENT
        await self.run_side_effect(
            ActivityService(self.session).record_activity(
                event.author_id, activity, entity_id=str(event.comment_id), entity_type="comment"
            ),
            f"Recording activity for comment {event.comment_id}",
        )

    async def _notify_mentions(self, event: _CommentEvent, notifications: NotificationService) -> None:
        usernames = extract_mentions(event.content)
        if not usernames:
            return
        targets = [u.id for u in await self.users.get_users_by_usernames(usernames) if u.id != event.author_id]
        for target_id in targets:
            await notifications.create_notification(
                target_id,
                NotificationType.COMMENT_MENTION,
                f"{event.author_name} mentioned you in a comment",
                related_entity_id=str(event.comment_id),
                related_entity_type="comment",
                metadata={"token_mint_address": event.token_mint_address},
            )

    # PUBLIC_INTERFACE
    async def update_comment(self, user: User, comment_id: UUID, content: str) -> Comment:
        comment = await self._get_or_404(comment_id)
        if comment.user_id != user.id:
            raise ForbiddenError("You can only edit your own comments")
        if comment.deleted_at is not None or comment.removed_by_id is not None:
            raise BadRequestError("This comment can no longer be edited")
        if not is_within_edit_window(comment.created_at):
            raise ForbiddenError("Comments can only be edited within 15 minutes of posting")
        comment.content = content
        comment.is_edited = True
        await self.session.commit()
        await self.repo.refresh(comment)
        return comment

    # PUBLIC_INTERFACE
    async def delete_comment(self, user: User, comment_id: UUID) -> None:
        comment = await self._get_or_404(comment_id)
        if comment.user_id != user.id:
            raise ForbiddenError("You can only delete your own comments")
        if comment.deleted_at is None:
            comment.deleted_at = datetime.now(tz=timezone.utc)
            await self.session.commit()

    # PUBLIC_INTERFACE
    async def remove_comment(self, user: User, comment_id: UUID, reason: Optional[str] = None) -> Comment:
        comment = await self._get_or_404(comment_id)
        is_owner = comment.user_id == user.id
        if not (user.is_admin or is_owner):
            raise ForbiddenError("You are not allowed to remove this comment")
        comment.removed_by_id = user.id
        comment.removal_reason = reason or ("Removed by moderator" if user.is_admin and not is_owner else "Removed by user")
        await self.session.commit()
        await self.repo.refresh(comment)
        logger.info("Comment %s removed by %s", comment.id, user.id)
        return comment

    # PUBLIC_INTERFACE
    async def vote(self, user: User, comment_id: UUID, vote_type: VoteType) -> VoteResponse:
        """
        Toggle or switch the user's vote and return the recomputed counters.

        Voting the same type twice removes the vote.
        """
        comment = await self._get_or_404(comment_id)
        if comment.deleted_at is not None or comment.removed_by_id is not None:
            raise BadRequestError("Cannot vote on a removed comment")

        existing = await self.repo.get_vote(user.id, comment.id)
        current: Optional[VoteType]
        if existing is None:
            await self.repo.add_vote(user.id, comment.id, vote_type)
            current = vote_type
        elif existing.vote_type == vote_type.value:
            await self.repo.delete(existing)
            await self.repo.flush()
            current = None
        else:
            existing.vote_type = vote_type.value
            await self.repo.flush()
            current = vote_type
        upvotes, downvotes = await self.repo.recount_votes(comment.id)
        await self.session.commit()

        if current is not None:
            await self._after_vote(
                voter_id=user.id,
                voter_name=user.display_name,
                comment_id=comment.id,
                author_id=comment.user_id,
                token_mint_address=comment.token_mint_address,
                vote_type=current,
            )
        return VoteResponse(upvotes=upvotes, downvotes=downvotes, user_vote_type=current)

    async def _after_vote(
        self,
        *,
        voter_id: UUID,
        voter_name: str,
        comment_id: UUID,
        author_id: UUID,
        token_mint_address: str,
        vote_type: VoteType,
    ) -> None:
        if vote_type == VoteType.UPVOTE:
            notifications = NotificationService(self.session)
            try:
                if author_id != voter_id:
                    await notifications.create_notification(
                        author_id,
                        NotificationType.UPVOTE_RECEIVED,
                        f"{voter_name} upvoted your comment",
                        related_entity_id=str(comment_id),
                        related_entity_type="comment",
                        metadata={"token_mint_address": token_mint_address},
                    )
                followers = await self.follows.follower_ids_with_flag(voter_id, "notify_on_vote")
                await notifications.notify_many(
                    _excluding(followers, voter_id, author_id),
                    NotificationType.FOLLOWED_USER_VOTE,
                    f"{voter_name} upvoted a comment",
                    related_entity_id=str(comment_id),
                    related_entity_type="comment",
                    metadata={"token_mint_address": token_mint_address, "voter_id": str(voter_id)},
                )
            except Exception:
                logger.exception("Failed to send vote notifications for comment %s", comment_id)
                await self.session.rollback()

        activity = ActivityType.UPVOTE if vote_type == VoteType.UPVOTE else ActivityType.DOWNVOTE
        await self.run_side_effect(
            ActivityService(self.session).record_activity(
                voter_id, activity, entity_id=str(comment_id), entity_type="comment"
            ),
            f"Recording vote activity for comment {comment_id}",
        )
        if author_id != voter_id:
            # upvotes received can unlock badges for the author as well
            try:
                await BadgeService(self.session).check_and_award(author_id)
            except Exception:
                logger.exception("Badge check failed for comment author %s", author_id)
                await self.session.rollback()


def _excluding(ids: Iterable[UUID], *skip: UUID) -> List[UUID]:
    return [i for i in ids if i not in skip]
