"""Topic / sub-topic taxonomy services."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from database import utcnow
from models.blog import Blog
from models.leetcode_problem import LeetcodeProblem
from models.note import Note
from models.sub_topic import SubTopic
from models.topic import Topic
from models.user import User
from services.content import iso
from services.errors import ConflictError, NotFoundError, ValidationError
from services.text import is_valid_slug, slugify

logger = logging.getLogger(__name__)

COUNTED_CONTENT = (
    ("blogs", Blog),
    ("notes", Note),
    ("leetcode_problems", LeetcodeProblem),
)


def _empty_counts() -> Dict[str, int]:
    return {key: 0 for key, _ in COUNTED_CONTENT}


def resolve_slug(name: Optional[str], explicit_slug: Optional[str]) -> str:
    """Return the explicit slug if it is URL-safe, otherwise derive one from the name."""
    if explicit_slug:
        slug = explicit_slug.strip()
        if not is_valid_slug(slug):
            raise ValidationError("slug must contain only lowercase letters, digits and single hyphens")
        return slug
    slug = slugify(name)
    if not slug:
        raise ValidationError("name must contain at least one letter or digit")
    return slug


def _required_name(value: Any) -> str:
    name = str(value or "").strip()
    if not name:
        raise ValidationError("name is required")
    return name


def _renamed(current_name: str, current_slug: str, changes: Dict[str, Any]):
    """Apply name/slug changes: an explicit slug wins, a new name re-derives the slug."""
    name = _required_name(changes["name"]) if "name" in changes else current_name
    if changes.get("slug"):
        return name, resolve_slug(name, changes["slug"])
    if "name" in changes:
        return name, resolve_slug(name, None)
    return name, current_slug


async def _content_counts(db: AsyncSession, column_name: str) -> Dict[str, Dict[str, int]]:
    """Aggregate live content per topic_id or sub_topic_id."""
    counts: Dict[str, Dict[str, int]] = defaultdict(_empty_counts)
    for key, model in COUNTED_CONTENT:
        column = getattr(model, column_name)
        result = await db.execute(
            select(column, func.count(model.id))
            .where(column.is_not(None), model.deleted_at.is_(None))
            .group_by(column)
        )
        for owner_id, total in result.all():
            counts[owner_id][key] = int(total)
    return counts


def _serialize_sub_topic(sub_topic: SubTopic, counts: Optional[Dict[str, int]] = None) -> Dict[str, Any]:
    return {
        "id": sub_topic.id,
        "topic_id": sub_topic.topic_id,
        "name": sub_topic.name,
        "slug": sub_topic.slug,
        "description": sub_topic.description,
        "icon": sub_topic.icon,
        "order": sub_topic.order,
        "counts": dict(counts or _empty_counts()),
        "created_at": iso(sub_topic.created_at),
        "updated_at": iso(sub_topic.updated_at),
    }


def _serialize_topic(
    topic: Topic,
    topic_counts: Optional[Dict[str, Dict[str, int]]] = None,
    sub_counts: Optional[Dict[str, Dict[str, int]]] = None,
) -> Dict[str, Any]:
    topic_counts = topic_counts or {}
    sub_counts = sub_counts or {}
    return {
        "id": topic.id,
        "name": topic.name,
        "slug": topic.slug,
        "description": topic.description,
        "icon": topic.icon,
        "order": topic.order,
        "counts": dict(topic_counts.get(topic.id) or _empty_counts()),
        "sub_topics": [
            _serialize_sub_topic(sub_topic, sub_counts.get(sub_topic.id))
            for sub_topic in topic.sub_topics
        ],
        "created_at": iso(topic.created_at),
        "updated_at": iso(topic.updated_at),
    }


def build_navigation(topics: List[Dict[str, Any]]) -> Dict[str, Dict[str, str]]:
    navigation: Dict[str, Dict[str, str]] = {}
    for topic in topics:
        navigation[topic["slug"]] = {
            "title": f"{topic['icon']} {topic['name']}".strip(),
            "type": "page",
            "href": f"/topics/{topic['slug']}",
        }
        for sub_topic in topic["sub_topics"]:
            key = f"{topic['slug']}/{sub_topic['slug']}"
            navigation[key] = {
                "title": f"{sub_topic['icon']} {sub_topic['name']}".strip(),
                "type": "page",
                "href": f"/topics/{key}",
            }
    return navigation


async def _load_topic(db: AsyncSession, topic_id: str) -> Topic:
    result = await db.execute(
        select(Topic)
        .where(Topic.id == topic_id)
        .options(selectinload(Topic.sub_topics))
        .execution_options(populate_existing=True)
    )
    topic = result.scalar_one_or_none()
    if not topic:
        raise NotFoundError("Topic not found")
    return topic


async def list_topics_service(db: AsyncSession) -> Dict[str, Any]:
    result = await db.execute(
        select(Topic).options(selectinload(Topic.sub_topics)).order_by(Topic.order.asc(), Topic.name.asc())
    )
    topics = result.scalars().all()
    topic_counts = await _content_counts(db, "topic_id")
    sub_counts = await _content_counts(db, "sub_topic_id")
    payload = [_serialize_topic(topic, topic_counts, sub_counts) for topic in topics]
    return {"topics": payload, "navigation": build_navigation(payload)}


async def get_topic_service(db: AsyncSession, topic_id: str) -> Dict[str, Any]:
    topic = await _load_topic(db, topic_id)
    return _serialize_topic(
        topic,
        await _content_counts(db, "topic_id"),
        await _content_counts(db, "sub_topic_id"),
    )


async def _assert_topic_slug_free(db: AsyncSession, slug: str, exclude_id: Optional[str] = None) -> None:
    stmt = select(Topic.id).where(Topic.slug == slug)
    if exclude_id:
        stmt = stmt.where(Topic.id != exclude_id)
    if (await db.execute(stmt)).scalar_one_or_none():
        raise ConflictError("A topic with this slug already exists")


async def _commit_or_conflict(db: AsyncSession, message: str) -> None:
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError(message) from exc


async def create_topic_service(db: AsyncSession, user: User, payload: Dict[str, Any]) -> Dict[str, Any]:
    name = _required_name(payload.get("name"))
    slug = resolve_slug(name, payload.get("slug"))
    await _assert_topic_slug_free(db, slug)

    topic = Topic(
        name=name,
        slug=slug,
        description=payload.get("description") or "",
        icon=payload.get("icon") or "",
        order=int(payload.get("order") or 0),
        created_by=user.id,
    )
    db.add(topic)
    await _commit_or_conflict(db, "A topic with this slug already exists")
    logger.info("Created topic %s (%s)", topic.id, topic.slug)
    return _serialize_topic(await _load_topic(db, topic.id))


async def update_topic_service(db: AsyncSession, topic_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    topic = await _load_topic(db, topic_id)

    name, slug = _renamed(topic.name, topic.slug, changes)
    await _assert_topic_slug_free(db, slug, exclude_id=topic.id)
    topic.name = name
    topic.slug = slug

    for field in ("description", "icon"):
        if field in changes:
            setattr(topic, field, changes[field] or "")
    if "order" in changes:
        topic.order = int(changes["order"] or 0)

    await _commit_or_conflict(db, "A topic with this slug already exists")
    return await get_topic_service(db, topic.id)


async def _detach_content(db: AsyncSession, condition_for, soft_delete: bool, clear_topic: bool) -> int:
    """Unfile (and optionally tombstone) every content row matching the condition."""
    affected = 0
    now = utcnow()
    for _, model in COUNTED_CONTENT:
        values: Dict[str, Any] = {"sub_topic_id": None}
        if clear_topic:
            values["topic_id"] = None
        if soft_delete:
            values["deleted_at"] = now
        result = await db.execute(
            update(model)
            .where(condition_for(model), model.deleted_at.is_(None))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        affected += int(result.rowcount or 0)
    return affected


async def delete_topic_service(db: AsyncSession, topic_id: str, cascade: bool = False) -> Dict[str, Any]:
    """
    Delete a topic and its sub-topics. Content filed under them is detached
    (left unfiled) unless `cascade` is set, in which case it is soft-deleted.
    """
    topic = await _load_topic(db, topic_id)
    sub_ids = [sub_topic.id for sub_topic in topic.sub_topics]

    def condition_for(model):
        if sub_ids:
            return or_(model.topic_id == topic.id, model.sub_topic_id.in_(sub_ids))
        return model.topic_id == topic.id

    affected = await _detach_content(db, condition_for, soft_delete=cascade, clear_topic=True)
    await db.delete(topic)
    await db.commit()
    logger.info("Deleted topic %s (cascade=%s, content affected=%d)", topic_id, cascade, affected)
    return {
        "message": "Topic deleted successfully",
        "content_deleted" if cascade else "content_detached": affected,
    }


async def _load_sub_topic(db: AsyncSession, sub_topic_id: str) -> SubTopic:
    result = await db.execute(
        select(SubTopic).where(SubTopic.id == sub_topic_id).execution_options(populate_existing=True)
    )
    sub_topic = result.scalar_one_or_none()
    if not sub_topic:
        raise NotFoundError("Sub-topic not found")
    return sub_topic


async def _assert_sub_topic_slug_free(
    db: AsyncSession,
    topic_id: str,
    slug: str,
    exclude_id: Optional[str] = None,
) -> None:
    stmt = select(SubTopic.id).where(SubTopic.topic_id == topic_id, SubTopic.slug == slug)
    if exclude_id:
        stmt = stmt.where(SubTopic.id != exclude_id)
    if (await db.execute(stmt)).scalar_one_or_none():
        raise ConflictError("A subtopic with this slug already exists in this topic")


async def list_sub_topics_service(db: AsyncSession, topic_id: str) -> Dict[str, Any]:
    topic = await _load_topic(db, topic_id)
    sub_counts = await _content_counts(db, "sub_topic_id")
    return {
        "topic_id": topic.id,
        "sub_topics": [_serialize_sub_topic(sub_topic, sub_counts.get(sub_topic.id)) for sub_topic in topic.sub_topics],
    }


async def create_sub_topic_service(
    db: AsyncSession,
    user: User,
    topic_id: str,
    payload: Dict[str, Any],
) -> Dict[str, Any]:
    topic = await _load_topic(db, topic_id)
    name = _required_name(payload.get("name"))
    slug = resolve_slug(name, payload.get("slug"))
    await _assert_sub_topic_slug_free(db, topic.id, slug)

    sub_topic = SubTopic(
        topic_id=topic.id,
        name=name,
        slug=slug,
        description=payload.get("description") or "",
        icon=payload.get("icon") or "",
        order=int(payload.get("order") or 0),
        created_by=user.id,
    )
    db.add(sub_topic)
    await _commit_or_conflict(db, "A subtopic with this slug already exists in this topic")
    return _serialize_sub_topic(sub_topic)


async def update_sub_topic_service(db: AsyncSession, sub_topic_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    sub_topic = await _load_sub_topic(db, sub_topic_id)

    name, slug = _renamed(sub_topic.name, sub_topic.slug, changes)
    await _assert_sub_topic_slug_free(db, sub_topic.topic_id, slug, exclude_id=sub_topic.id)
    sub_topic.name = name
    sub_topic.slug = slug

    for field in ("description", "icon"):
        if field in changes:
            setattr(sub_topic, field, changes[field] or "")
    if "order" in changes:
        sub_topic.order = int(changes["order"] or 0)

    await _commit_or_conflict(db, "A subtopic with this slug already exists in this topic")
    sub_counts = await _content_counts(db, "sub_topic_id")
    return _serialize_sub_topic(await _load_sub_topic(db, sub_topic.id), sub_counts.get(sub_topic.id))


async def delete_sub_topic_service(db: AsyncSession, sub_topic_id: str) -> Dict[str, Any]:
    sub_topic = await _load_sub_topic(db, sub_topic_id)
    affected = await _detach_content(
        db,
        lambda model: model.sub_topic_id == sub_topic.id,
        soft_delete=False,
        clear_topic=False,
    )
    await db.delete(sub_topic)
    await db.commit()
    return {"message": "Sub-topic deleted successfully", "content_detached": affected}
