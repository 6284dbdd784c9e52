"""Threaded comments on interview resources, with one-vote-per-user reactions."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from database import utcnow
from models.comment import Comment
from models.comment_reaction import REACTION_KINDS, CommentReaction
from models.user import User
from services.content import iso
from services.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from services.interviews import load_visible_resource

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 10000
_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
REACTION_COUNTERS = {"like": "likes", "dislike": "dislikes"}


def serialize_comment(comment: Comment, my_reaction: Optional[str] = None) -> Dict[str, Any]:
    registered = comment.author_id is not None
    if registered:
        author = {"id": comment.author_id, "name": (comment.author.name if comment.author else None) or "User"}
    else:
        author = {"id": None, "name": comment.author_name}
    return {
        "id": comment.id,
        "resource_id": comment.resource_id,
        "parent_id": comment.parent_id,
        "content": comment.content,
        "is_edited": bool(comment.is_edited),
        "likes": comment.likes,
        "dislikes": comment.dislikes,
        "author": author,
        "is_anonymous": not registered,
        "my_reaction": my_reaction,
        "created_at": iso(comment.created_at),
        "updated_at": iso(comment.updated_at),
        "replies": [],
        "reply_count": 0,
    }


def build_comment_tree(nodes: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Attach each serialized comment to its parent's `replies`.

    `nodes` must already be in ascending creation order; that order is kept at
    every level. A node whose parent is missing is surfaced at the top level.
    """
    by_id = {node["id"]: node for node in nodes}
    roots: List[Dict[str, Any]] = []
    for node in nodes:
        parent = by_id.get(node["parent_id"]) if node["parent_id"] else None
        if parent is None:
            roots.append(node)
        else:
            parent["replies"].append(node)
    for node in nodes:
        node["reply_count"] = len(node["replies"])
    return roots


def _clean_content(value: Any) -> str:
    content = str(value or "").strip()
    if not content:
        raise ValidationError("content is required")
    if len(content) > MAX_COMMENT_LENGTH:
        raise ValidationError(f"content must be at most {MAX_COMMENT_LENGTH} characters")
    return content


async def _load_comment(db: AsyncSession, comment_id: str) -> Comment:
    result = await db.execute(
        select(Comment)
        .where(Comment.id == comment_id)
        .options(selectinload(Comment.author))
        .execution_options(populate_existing=True)
    )
    comment = result.scalar_one_or_none()
    if not comment:
        raise NotFoundError("Comment not found")
    return comment


async def _reaction_for(db: AsyncSession, comment_id: str, user_id: str) -> Optional[CommentReaction]:
    result = await db.execute(
        select(CommentReaction).where(CommentReaction.comment_id == comment_id, CommentReaction.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def list_comments_service(
    db: AsyncSession,
    resource_id: str,
    viewer: Optional[User] = None,
) -> Dict[str, Any]:
    await load_visible_resource(db, resource_id, viewer)
    result = await db.execute(
        select(Comment)
        .where(Comment.resource_id == resource_id)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
        .options(selectinload(Comment.author))
    )
    comments = list(result.scalars().all())

    reactions: Dict[str, str] = {}
    if viewer is not None and comments:
        reaction_rows = await db.execute(
            select(CommentReaction.comment_id, CommentReaction.kind).where(
                CommentReaction.user_id == viewer.id,
                CommentReaction.comment_id.in_([comment.id for comment in comments]),
            )
        )
        reactions = {comment_id: kind for comment_id, kind in reaction_rows.all()}

    nodes = [serialize_comment(comment, reactions.get(comment.id)) for comment in comments]
    return {"comments": build_comment_tree(nodes), "total": len(nodes)}


async def post_comment_service(
    db: AsyncSession,
    resource_id: str,
    viewer: Optional[User],
    payload: Dict[str, Any],
) -> Dict[str, Any]:
    content = _clean_content(payload.get("content"))
    await load_visible_resource(db, resource_id, viewer)

    parent_id = str(payload.get("parent_id") or "").strip() or None
    if parent_id:
        parent = await db.execute(
            select(Comment.id).where(Comment.id == parent_id, Comment.resource_id == resource_id)
        )
        if parent.scalar_one_or_none() is None:
            raise NotFoundError("Parent comment not found")

    if viewer is not None:
        # Registered identity wins; anonymous fields are ignored.
        identity = {"author_id": viewer.id, "author_name": None, "author_email": None}
    else:
        author_name = str(payload.get("author_name") or "").strip()
        if not author_name:
            raise ValidationError("author_name is required for anonymous comments")
        author_email = str(payload.get("author_email") or "").strip() or None
        if author_email and not _EMAIL_PATTERN.match(author_email):
            raise ValidationError("author_email is not a valid email address")
        identity = {"author_id": None, "author_name": author_name, "author_email": author_email}

    comment = Comment(resource_id=resource_id, parent_id=parent_id, content=content, **identity)
    db.add(comment)
    await db.commit()
    logger.info(
        "Comment %s posted on resource %s (reply=%s, anonymous=%s)",
        comment.id,
        resource_id,
        bool(parent_id),
        viewer is None,
    )
    return serialize_comment(await _load_comment(db, comment.id))


async def edit_comment_service(db: AsyncSession, user: User, comment_id: str, content: Any) -> Dict[str, Any]:
    comment = await _load_comment(db, comment_id)
    if not user.is_admin and comment.author_id != user.id:
        raise ForbiddenError("Only the comment's author or an admin can edit it.")
    new_content = _clean_content(content)
    if new_content != comment.content:
        comment.content = new_content
        comment.is_edited = True
        comment.updated_at = utcnow()
        await db.commit()
    reaction = await _reaction_for(db, comment.id, user.id)
    return serialize_comment(await _load_comment(db, comment.id), reaction.kind if reaction else None)


async def _reaction_summary(db: AsyncSession, comment_id: str, kind: Optional[str]) -> Dict[str, Any]:
    comment = await _load_comment(db, comment_id)
    return {"comment_id": comment.id, "likes": comment.likes, "dislikes": comment.dislikes, "my_reaction": kind}


def _counter_shift(increment: Optional[str], decrement: Optional[str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    if increment:
        column = REACTION_COUNTERS[increment]
        values[column] = getattr(Comment, column) + 1
    if decrement:
        column = REACTION_COUNTERS[decrement]
        values[column] = getattr(Comment, column) - 1
    return values


async def set_reaction_service(db: AsyncSession, user: User, comment_id: str, kind: Any) -> Dict[str, Any]:
    """
    Record the caller's like/dislike. Repeating the same vote is a no-op and
    switching moves the vote; counters only change through atomic UPDATEs.
    """
    kind = str(kind or "").strip().lower()
    if kind not in REACTION_KINDS:
        raise ValidationError("kind must be 'like' or 'dislike'")
    await _load_comment(db, comment_id)

    existing = await _reaction_for(db, comment_id, user.id)
    if existing is not None and existing.kind == kind:
        return await _reaction_summary(db, comment_id, kind)

    previous = existing.kind if existing is not None else None
    if existing is None:
        db.add(CommentReaction(comment_id=comment_id, user_id=user.id, kind=kind))
    else:
        existing.kind = kind
    try:
        await db.flush()
        await db.execute(
            update(Comment)
            .where(Comment.id == comment_id)
            .values(_counter_shift(kind, previous))
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError("A reaction for this comment is already being recorded") from exc
    return await _reaction_summary(db, comment_id, kind)


async def clear_reaction_service(db: AsyncSession, user: User, comment_id: str) -> Dict[str, Any]:
    await _load_comment(db, comment_id)
    existing = await _reaction_for(db, comment_id, user.id)
    if existing is None:
        return await _reaction_summary(db, comment_id, None)

    removed = await db.execute(
        delete(CommentReaction).where(CommentReaction.id == existing.id).execution_options(synchronize_session=False)
    )
    if removed.rowcount:
        await db.execute(
            update(Comment)
            .where(Comment.id == comment_id)
            .values(_counter_shift(None, existing.kind))
            .execution_options(synchronize_session=False)
        )
    await db.commit()
    return await _reaction_summary(db, comment_id, None)
