from __future__ import annotations

from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import and_, func, select, update
from sqlalchemy.orm import aliased

from src.db.models.comments import Comment, CommentVote
from src.db.models.enums import VoteType
from src.db.models.users import User
from .base import BaseRepository


class CommentRepository(BaseRepository):
    """Repository for comments and their votes."""

    async def get(self, comment_id: UUID) -> Optional[Comment]:
        return await self.scalar_one_or_none(select(Comment).where(Comment.id == comment_id))

    async def list_by_ids(self, comment_ids: Sequence[UUID]) -> List[Comment]:
        if not comment_ids:
            return []
        return list(await self.scalars(select(Comment).where(Comment.id.in_(set(comment_ids)))))

    async def list_top_level_for_token(
        self, mint_address: str, *, limit: int, offset: int
    ) -> tuple[List[Comment], int]:
        base = select(Comment).where(
            Comment.token_mint_address == mint_address, Comment.parent_id.is_(None)
        )
        total = await self.count(base)
        stmt = base.order_by(Comment.created_at.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt)), total

    async def list_descendants(self, root_ids: Sequence[UUID]) -> List[Comment]:
        """All replies below the given comments, at any depth."""
        if not root_ids:
            return []
        tree = (
            select(Comment.id)
            .where(Comment.parent_id.in_(list(root_ids)))
            .cte("reply_tree", recursive=True)
        )
        child = aliased(Comment)
        tree = tree.union_all(select(child.id).where(child.parent_id == tree.c.id))
        stmt = select(Comment).where(Comment.id.in_(select(tree.c.id))).order_by(Comment.created_at.asc())
        return list(await self.scalars(stmt))

    async def list_latest(self, *, limit: int) -> List[Comment]:
        stmt = (
            select(Comment)
            .where(Comment.deleted_at.is_(None), Comment.removed_by_id.is_(None))
            .order_by(Comment.created_at.desc())
            .limit(limit)
        )
        return list(await self.scalars(stmt))

    async def list_by_user(self, user_id: UUID, *, limit: int, offset: int) -> tuple[List[Comment], int]:
        base = select(Comment).where(Comment.user_id == user_id, Comment.deleted_at.is_(None))
        total = await self.count(base)
        stmt = base.order_by(Comment.created_at.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt)), total

    async def create(self, **fields) -> Comment:
        comment = Comment(**fields)
        await self.add(comment)
        await self.flush()
        await self.refresh(comment)
        return comment

    async def authors_by_id(self, user_ids: Sequence[UUID]) -> dict[UUID, User]:
        if not user_ids:
            return {}
        res = await self.scalars(select(User).where(User.id.in_(set(user_ids))))
        return {u.id: u for u in res}

    # Votes

    async def get_vote(self, user_id: UUID, comment_id: UUID) -> Optional[CommentVote]:
        stmt = select(CommentVote).where(CommentVote.user_id == user_id, CommentVote.comment_id == comment_id)
        return await self.scalar_one_or_none(stmt)

    async def votes_by_user(self, user_id: UUID, comment_ids: Sequence[UUID]) -> dict[UUID, str]:
        if not comment_ids:
            return {}
        stmt = select(CommentVote.comment_id, CommentVote.vote_type).where(
            CommentVote.user_id == user_id, CommentVote.comment_id.in_(list(comment_ids))
        )
        res = await self.execute(stmt)
        return {row[0]: row[1] for row in res.all()}

    async def add_vote(self, user_id: UUID, comment_id: UUID, vote_type: VoteType) -> CommentVote:
        vote = CommentVote(user_id=user_id, comment_id=comment_id, vote_type=vote_type.value)
        await self.add(vote)
        await self.flush()
        return vote

    async def recount_votes(self, comment_id: UUID) -> tuple[int, int]:
        """Recompute and persist up/down counters from comment_votes."""
        stmt = select(
            func.count().filter(CommentVote.vote_type == VoteType.UPVOTE.value),
            func.count().filter(CommentVote.vote_type == VoteType.DOWNVOTE.value),
        ).where(CommentVote.comment_id == comment_id)
        res = await self.execute(stmt)
        upvotes, downvotes = res.one()
        await self.execute(
            update(Comment)
            .where(Comment.id == comment_id)
            .values(upvotes_count=int(upvotes or 0), downvotes_count=int(downvotes or 0))
        )
        return int(upvotes or 0), int(downvotes or 0)

    # Statistics used by badges and profiles

    async def count_by_user(self, user_id: UUID, *, top_level: bool) -> int:
        cond = Comment.parent_id.is_(None) if top_level else Comment.parent_id.is_not(None)
        return await self.count(
            select(Comment.id).where(Comment.user_id == user_id, cond, Comment.deleted_at.is_(None))
        )

    async def sum_upvotes_received(self, user_id: UUID) -> int:
        stmt = select(func.coalesce(func.sum(Comment.upvotes_count), 0)).where(Comment.user_id == user_id)
        res = await self.execute(stmt)
        return int(res.scalar_one() or 0)

    async def count_upvotes_given(self, user_id: UUID) -> int:
        return await self.count(
            select(CommentVote.id).where(
                CommentVote.user_id == user_id, CommentVote.vote_type == VoteType.UPVOTE.value
            )
        )

    async def count_replies_received(self, user_id: UUID) -> int:
        parent = aliased(Comment)
        stmt = (
            select(Comment.id)
            .join(parent, and_(Comment.parent_id == parent.id, parent.user_id == user_id))
            .where(Comment.user_id != user_id)
        )
        return await self.count(stmt)

    async def max_upvotes(self, user_id: UUID, *, top_level_only: bool = False) -> int:
        stmt = select(func.coalesce(func.max(Comment.upvotes_count), 0)).where(Comment.user_id == user_id)
        if top_level_only:
            stmt = stmt.where(Comment.parent_id.is_(None))
        res = await self.execute(stmt)
        return int(res.scalar_one() or 0)
