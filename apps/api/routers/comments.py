"""Comment threads on interview resources and comment reactions."""

from __future__ import annotations

from typing import Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models.user import User
from routers.auth_scope import get_current_user, get_optional_user
from routers.rate_limit import rate_limit
from services.comments import (
    clear_reaction_service,
    edit_comment_service,
    list_comments_service,
    post_comment_service,
    set_reaction_service,
)

router = APIRouter()
resource_comments_router = APIRouter()


class PostCommentRequest(BaseModel):
    content: str = Field(min_length=1)
    parent_id: Optional[str] = None
    author_name: Optional[str] = None
    author_email: Optional[str] = None


class EditCommentRequest(BaseModel):
    content: str = Field(min_length=1)


class ReactionRequest(BaseModel):
    kind: Literal["like", "dislike"]


@resource_comments_router.get("/{resource_id}/comments")
async def list_comments(
    resource_id: str,
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """Full comment tree for a resource, oldest first at every level."""
    return await list_comments_service(db, resource_id, viewer=viewer)


@resource_comments_router.post("/{resource_id}/comments", status_code=201)
async def post_comment(
    resource_id: str,
    request: PostCommentRequest,
    _rate_limit: None = Depends(rate_limit("comments_post", limit=30, window_seconds=600)),
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    return await post_comment_service(db, resource_id, viewer, request.model_dump())


@router.patch("/{comment_id}")
async def edit_comment(
    comment_id: str,
    request: EditCommentRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await edit_comment_service(db, user, comment_id, request.content)


@router.put("/{comment_id}/reaction")
async def set_reaction(
    comment_id: str,
    request: ReactionRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await set_reaction_service(db, user, comment_id, request.kind)


@router.delete("/{comment_id}/reaction")
async def clear_reaction(
    comment_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await clear_reaction_service(db, user, comment_id)
