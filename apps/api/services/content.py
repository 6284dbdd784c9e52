"""Shared listing, filing and serialization helpers for content services."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.sql import Select

from config import settings
from models.sub_topic import SubTopic
from models.topic import Topic
from services.errors import ForbiddenError, NotFoundError, ValidationError

SORT_KEYS = ("newest", "oldest", "mostViewed", "mostDownloaded", "highestRated", "alphabetical")


def iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def clamp_page(page: Optional[int], limit: Optional[int]) -> Tuple[int, int]:
    page_num = max(int(page or 1), 1)
    limit_num = int(limit or settings.DEFAULT_PAGE_SIZE)
    limit_num = max(1, min(limit_num, int(settings.MAX_PAGE_SIZE)))
    return page_num, limit_num


def pagination_payload(page: int, limit: int, total: int) -> Dict[str, int]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": math.ceil(total / limit) if limit else 0,
    }


def apply_search(stmt: Select, query: Optional[str], columns: Iterable[Any]) -> Select:
    """Case-insensitive substring match across the given columns."""
    text = (query or "").strip()
    if not text:
        return stmt
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    pattern = f"%{escaped}%"
    return stmt.where(or_(*[column.ilike(pattern, escape="\\") for column in columns]))


def apply_sort(stmt: Select, sort: Optional[str], order_columns: Mapping[str, Any]) -> Select:
    key = sort or "newest"
    if key not in order_columns:
        allowed = ", ".join(order_columns)
        raise ValidationError(f"Unsupported sort '{key}'. Use one of: {allowed}.")
    column = order_columns[key]
    if isinstance(column, (list, tuple)):
        return stmt.order_by(*column)
    return stmt.order_by(column)


async def paginate(
    db: AsyncSession,
    stmt: Select,
    page: int,
    limit: int,
    options: Iterable[Any] = (),
) -> Tuple[list, int]:
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = int((await db.execute(count_stmt)).scalar() or 0)
    result = await db.execute(stmt.options(*options).offset((page - 1) * limit).limit(limit))
    return list(result.scalars().unique().all()), total


def apply_taxonomy_filter(
    stmt: Select,
    model: Any,
    topic_slug: Optional[str],
    subtopic_slug: Optional[str],
) -> Select:
    """Filter content by sub-topic slug (within the topic when both given) or topic slug."""
    if subtopic_slug:
        sub_query = select(SubTopic.id).where(SubTopic.slug == subtopic_slug)
        if topic_slug:
            sub_query = sub_query.join(Topic, Topic.id == SubTopic.topic_id).where(Topic.slug == topic_slug)
        return stmt.where(model.sub_topic_id.in_(sub_query))
    if topic_slug:
        return stmt.where(model.topic_id.in_(select(Topic.id).where(Topic.slug == topic_slug)))
    return stmt


async def resolve_filing(
    db: AsyncSession,
    topic_id: Optional[str],
    sub_topic_id: Optional[str],
) -> Tuple[Optional[str], Optional[str]]:
    """
    Validate optional topic/sub-topic references for a piece of content.

    A sub-topic alone files the content under its parent topic as well; when
    both are given the sub-topic must belong to the topic.
    """
    if sub_topic_id:
        sub_topic = await db.get(SubTopic, sub_topic_id)
        if not sub_topic:
            raise NotFoundError("Sub-topic not found")
        if topic_id and topic_id != sub_topic.topic_id:
            raise ValidationError("Sub-topic does not belong to the given topic")
        return sub_topic.topic_id, sub_topic.id
    if topic_id:
        topic = await db.get(Topic, topic_id)
        if not topic:
            raise NotFoundError("Topic not found")
        return topic.id, None
    return None, None


def taxonomy_summary(topic: Optional[Topic], sub_topic: Optional[SubTopic]) -> Dict[str, Any]:
    return {
        "topic": {"id": topic.id, "name": topic.name, "slug": topic.slug, "icon": topic.icon} if topic else None,
        "sub_topic": (
            {"id": sub_topic.id, "name": sub_topic.name, "slug": sub_topic.slug, "icon": sub_topic.icon}
            if sub_topic
            else None
        ),
    }


def author_summary(author: Any) -> Dict[str, Any]:
    if author is None:
        return {"id": None, "name": "Anonymous"}
    return {"id": author.id, "name": author.name or "Anonymous"}


async def refile(db: AsyncSession, entity: Any, changes: Dict[str, Any]) -> None:
    """Re-validate topic/sub-topic references when an update touches either."""
    if "topic_id" not in changes and "sub_topic_id" not in changes:
        return
    topic_id = changes["topic_id"] if "topic_id" in changes else entity.topic_id
    if "sub_topic_id" in changes:
        sub_topic_id = changes["sub_topic_id"]
    else:
        # Moving to another topic drops the old sub-topic.
        sub_topic_id = None if "topic_id" in changes else entity.sub_topic_id
    entity.topic_id, entity.sub_topic_id = await resolve_filing(db, topic_id, sub_topic_id)


def ensure_owner_or_admin(user: Any, owner_id: Optional[str]) -> None:
    """Reject mutations by anyone but the content's author or an admin."""
    if user.is_admin or (owner_id and owner_id == user.id):
        return
    raise ForbiddenError("Only the author or an admin can modify this content.")
