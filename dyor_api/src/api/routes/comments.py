from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import get_current_user, get_optional_user, get_session
from src.db.models.users import User
from src.schemas.comments import (
    CommentCreate,
    CommentPage,
    CommentRead,
    CommentRemove,
    CommentUpdate,
    VoteRequest,
    VoteResponse,
)
from src.schemas.common import MessageResponse
from src.services.comments import CommentService

router = APIRouter(prefix="/comments", tags=["Comments"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=CommentPage,
    summary="List token comments",
    description=(
        "Top-level comments of a token, newest first, each with its nested replies. "
        "When authenticated, every comment carries the caller's vote."
    ),
)
async def list_comments(
    token_mint: str = Query(..., description="Token mint address"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    viewer: Optional[User] = Depends(get_optional_user),
    session: AsyncSession = Depends(get_session),
) -> CommentPage:
    return await CommentService(session).list_for_token(token_mint, page=page, limit=limit, viewer=viewer)


# PUBLIC_INTERFACE
@router.get("/latest", response_model=List[CommentRead], summary="Latest comments")
async def list_latest_comments(
    limit: int = Query(10, ge=1, le=50),
    viewer: Optional[User] = Depends(get_optional_user),
    session: AsyncSession = Depends(get_session),
) -> List[CommentRead]:
    return await CommentService(session).list_latest(limit=limit, viewer=viewer)


# PUBLIC_INTERFACE
@router.get("/{comment_id}", response_model=CommentRead, summary="Get comment thread")
async def get_comment(
    comment_id: UUID,
    viewer: Optional[User] = Depends(get_optional_user),
    session: AsyncSession = Depends(get_session),
) -> CommentRead:
    return await CommentService(session).get_thread(comment_id, viewer=viewer)


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=CommentRead,
    status_code=201,
    summary="Post comment",
    description="Create a top-level comment or, with parent_id, a reply. Replies always belong to the parent's token.",
)
async def create_comment(
    payload: CommentCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> CommentRead:
    service = CommentService(session)
    comment = await service.create_comment(current_user, payload)
    return await service.get_thread(comment.id, viewer=current_user)


# PUBLIC_INTERFACE
@router.patch(
    "/{comment_id}",
    response_model=CommentRead,
    summary="Edit comment",
    description="Authors may edit their comment within 15 minutes of posting.",
)
async def update_comment(
    comment_id: UUID,
    payload: CommentUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> CommentRead:
    service = CommentService(session)
    comment = await service.update_comment(current_user, comment_id, payload.content)
    return await service.get_thread(comment.id, viewer=current_user)


# PUBLIC_INTERFACE
@router.delete("/{comment_id}", response_model=MessageResponse, summary="Delete comment")
async def delete_comment(
    comment_id: UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    await CommentService(session).delete_comment(current_user, comment_id)
    return MessageResponse(message="Comment deleted")


# PUBLIC_INTERFACE
@router.post(
    "/{comment_id}/remove",
    response_model=CommentRead,
    summary="Remove comment",
    description="Moderators and authors can remove a comment; its content is replaced by a placeholder.",
)
async def remove_comment(
    comment_id: UUID,
    payload: Optional[CommentRemove] = Body(None),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> CommentRead:
    service = CommentService(session)
    comment = await service.remove_comment(current_user, comment_id, payload.reason if payload else None)
    return await service.get_thread(comment.id, viewer=current_user)


# PUBLIC_INTERFACE
@router.post(
    "/{comment_id}/vote",
    response_model=VoteResponse,
    summary="Vote on comment",
    description="Repeating the same vote removes it; the opposite vote switches it.",
)
async def vote_comment(
    comment_id: UUID,
    payload: VoteRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> VoteResponse:
    return await CommentService(session).vote(current_user, comment_id, payload.type)
