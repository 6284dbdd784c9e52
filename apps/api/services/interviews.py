"""Interview-prep resource services: CRUD, counters, ratings and stats."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from database import dialect_insert, utcnow
from models.comment import Comment
from models.interview_rating import InterviewRating
from models.interview_resource import INTERVIEW_DIFFICULTIES, INTERVIEW_RESOURCE_TYPES, InterviewResource
from models.user import User
from services.content import (
    apply_search,
    apply_sort,
    author_summary,
    clamp_page,
    ensure_owner_or_admin,
    iso,
    paginate,
    pagination_payload,
)
from services.errors import ForbiddenError, NotFoundError, ValidationError
from services.text import is_http_url, split_list

logger = logging.getLogger(__name__)

LINK_TYPE = "link"
MIN_RATING = 1
MAX_RATING = 5

INTERVIEW_SORTS = {
    "newest": (InterviewResource.created_at.desc(), InterviewResource.id.desc()),
    "oldest": (InterviewResource.created_at.asc(), InterviewResource.id.asc()),
    "mostViewed": (InterviewResource.views.desc(), InterviewResource.created_at.desc()),
    "mostDownloaded": (InterviewResource.downloads.desc(), InterviewResource.created_at.desc()),
    "highestRated": (
        InterviewResource.rating.desc(),
        InterviewResource.rating_count.desc(),
        InterviewResource.created_at.desc(),
    ),
    "alphabetical": (InterviewResource.title.asc(), InterviewResource.id.asc()),
}
INTERVIEW_OPTIONS = (selectinload(InterviewResource.author),)
TEXT_FIELDS = ("description", "content")
FILE_FIELDS = ("url", "file_url", "file_name", "file_size")


def serialize_interview(resource: InterviewResource, include_content: bool = True) -> Dict[str, Any]:
    payload = {
        "id": resource.id,
        "title": resource.title,
        "description": resource.description,
        "type": resource.type,
        "category": resource.category,
        "difficulty": resource.difficulty,
        "tags": list(resource.tags or []),
        "url": resource.url,
        "file_url": resource.file_url,
        "file_name": resource.file_name,
        "file_size": resource.file_size,
        "views": resource.views,
        "downloads": resource.downloads,
        "rating": round(float(resource.rating or 0.0), 2),
        "rating_count": resource.rating_count,
        "is_premium": bool(resource.is_premium),
        "is_public": bool(resource.is_public),
        "author": author_summary(resource.author),
        "author_id": resource.author_id,
        "created_at": iso(resource.created_at),
        "updated_at": iso(resource.updated_at),
    }
    if include_content:
        payload["content"] = resource.content
    return payload


def _required(payload: Dict[str, Any], key: str) -> str:
    text = str(payload.get(key) or "").strip()
    if not text:
        raise ValidationError(f"{key} is required")
    return text


def normalize_type(value: Any) -> str:
    resource_type = str(value or "").strip().lower()
    if resource_type not in INTERVIEW_RESOURCE_TYPES:
        raise ValidationError(f"type must be one of {', '.join(INTERVIEW_RESOURCE_TYPES)}")
    return resource_type


def normalize_interview_difficulty(value: Any) -> str:
    difficulty = str(value or "").strip().lower()
    if difficulty not in INTERVIEW_DIFFICULTIES:
        raise ValidationError("difficulty must be one of easy, medium, hard")
    return difficulty


def _clean_file_fields(payload: Dict[str, Any]) -> Dict[str, Any]:
    cleaned: Dict[str, Any] = {}
    if "url" in payload:
        cleaned["url"] = str(payload.get("url") or "").strip() or None
    if "file_url" in payload:
        cleaned["file_url"] = str(payload.get("file_url") or "").strip() or None
    if "file_name" in payload:
        cleaned["file_name"] = str(payload.get("file_name") or "").strip() or None
    if "file_size" in payload:
        size = payload.get("file_size")
        if size is not None:
            try:
                size = int(size)
            except (TypeError, ValueError) as exc:
                raise ValidationError("file_size must be a non-negative integer") from exc
            if size < 0:
                raise ValidationError("file_size must be a non-negative integer")
        cleaned["file_size"] = size
    return cleaned


def validate_variant(resource_type: str, fields: Dict[str, Any]) -> None:
    """
    Check that the link/file fields match the declared type.

    A `link` resource must point at an http(s) `url` and carries no file; every
    other type may carry an uploaded file and an optional reference url.
    """
    url = fields.get("url")
    file_url = fields.get("file_url")
    if url and not is_http_url(url):
        raise ValidationError("url must be an http(s) URL")
    if resource_type == LINK_TYPE:
        if not url:
            raise ValidationError("url is required for link resources")
        if file_url or fields.get("file_name") or fields.get("file_size"):
            raise ValidationError("link resources cannot carry a file")
        return
    if file_url and not (file_url.startswith("/") or is_http_url(file_url)):
        raise ValidationError("file_url must be an http(s) URL or an uploaded file path")


def _can_view_private(viewer: Optional[User], resource: InterviewResource) -> bool:
    return bool(viewer and (viewer.is_admin or viewer.id == resource.author_id))


async def _load_resource(db: AsyncSession, resource_id: str) -> InterviewResource:
    result = await db.execute(
        select(InterviewResource)
        .where(InterviewResource.id == resource_id, InterviewResource.deleted_at.is_(None))
        .options(*INTERVIEW_OPTIONS)
        .execution_options(populate_existing=True)
    )
    resource = result.scalar_one_or_none()
    if not resource:
        raise NotFoundError("Interview resource not found")
    return resource


async def load_visible_resource(db: AsyncSession, resource_id: str, viewer: Optional[User]) -> InterviewResource:
    resource = await _load_resource(db, resource_id)
    if not resource.is_public and not _can_view_private(viewer, resource):
        raise ForbiddenError("This resource is private")
    return resource


async def _increment(db: AsyncSession, resource_id: str, column_name: str) -> None:
    column = getattr(InterviewResource, column_name)
    await db.execute(
        update(InterviewResource)
        .where(InterviewResource.id == resource_id)
        .values({column_name: column + 1})
        .execution_options(synchronize_session=False)
    )
    await db.commit()


async def list_interviews_service(
    db: AsyncSession,
    viewer: Optional[User] = None,
    search: Optional[str] = None,
    resource_type: Optional[str] = None,
    category: Optional[str] = None,
    difficulty: Optional[str] = None,
    sort: Optional[str] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    page, limit = clamp_page(page, limit)
    stmt = select(InterviewResource).where(InterviewResource.deleted_at.is_(None))
    if viewer is None or not viewer.is_admin:
        stmt = stmt.where(InterviewResource.is_public.is_(True))
    if resource_type:
        stmt = stmt.where(InterviewResource.type == normalize_type(resource_type))
    if category:
        stmt = stmt.where(InterviewResource.category == category)
    if difficulty:
        stmt = stmt.where(InterviewResource.difficulty == normalize_interview_difficulty(difficulty))
    stmt = apply_search(
        stmt,
        search,
        (InterviewResource.title, InterviewResource.description, InterviewResource.content),
    )
    stmt = apply_sort(stmt, sort, INTERVIEW_SORTS)

    resources, total = await paginate(db, stmt, page, limit, options=INTERVIEW_OPTIONS)
    return {
        "resources": [serialize_interview(resource, include_content=False) for resource in resources],
        "pagination": pagination_payload(page, limit, total),
    }


async def get_interview_service(db: AsyncSession, resource_id: str, viewer: Optional[User] = None) -> Dict[str, Any]:
    """Fetch a resource and count the view with a single atomic UPDATE."""
    await load_visible_resource(db, resource_id, viewer)
    await _increment(db, resource_id, "views")
    resource = await _load_resource(db, resource_id)
    comment_count = await db.execute(select(func.count(Comment.id)).where(Comment.resource_id == resource_id))
    payload = serialize_interview(resource)
    payload["comment_count"] = int(comment_count.scalar() or 0)
    return payload


async def record_download_service(
    db: AsyncSession,
    resource_id: str,
    viewer: Optional[User] = None,
) -> Dict[str, Any]:
    await load_visible_resource(db, resource_id, viewer)
    await _increment(db, resource_id, "downloads")
    resource = await _load_resource(db, resource_id)
    return {
        "id": resource.id,
        "downloads": resource.downloads,
        "file_url": resource.file_url,
        "url": resource.url,
    }


async def create_interview_service(db: AsyncSession, user: User, payload: Dict[str, Any]) -> Dict[str, Any]:
    resource_type = normalize_type(payload.get("type"))
    fields = _clean_file_fields(payload)
    validate_variant(resource_type, fields)

    resource = InterviewResource(
        author_id=user.id,
        title=_required(payload, "title"),
        description=str(payload.get("description") or "").strip(),
        content=str(payload.get("content") or ""),
        type=resource_type,
        category=_required(payload, "category"),
        difficulty=normalize_interview_difficulty(payload.get("difficulty")),
        tags=split_list(payload.get("tags")),
        is_premium=bool(payload.get("is_premium")),
        is_public=bool(payload.get("is_public", True)),
        **fields,
    )
    db.add(resource)
    await db.commit()
    logger.info("Interview resource %s (%s) created by user %s", resource.id, resource_type, user.id)
    return serialize_interview(await _load_resource(db, resource.id))


async def update_interview_service(
    db: AsyncSession,
    user: User,
    resource_id: str,
    changes: Dict[str, Any],
) -> Dict[str, Any]:
    resource = await _load_resource(db, resource_id)
    ensure_owner_or_admin(user, resource.author_id)

    resource_type = normalize_type(changes["type"]) if "type" in changes else resource.type
    fields = {key: getattr(resource, key) for key in FILE_FIELDS}
    fields.update(_clean_file_fields(changes))
    if resource_type == LINK_TYPE and "type" in changes and resource.type != LINK_TYPE:
        # Switching to a link drops any file the resource carried.
        for key in ("file_url", "file_name", "file_size"):
            if key not in changes:
                fields[key] = None
    validate_variant(resource_type, fields)

    if "title" in changes:
        resource.title = _required(changes, "title")
    if "category" in changes:
        resource.category = _required(changes, "category")
    if "difficulty" in changes:
        resource.difficulty = normalize_interview_difficulty(changes["difficulty"])
    for key in TEXT_FIELDS:
        if key in changes:
            setattr(resource, key, str(changes[key] or ""))
    if "tags" in changes:
        resource.tags = split_list(changes["tags"])
    for key in ("is_premium", "is_public"):
        if key in changes:
            setattr(resource, key, bool(changes[key]))
    resource.type = resource_type
    for key, value in fields.items():
        setattr(resource, key, value)
    resource.updated_at = utcnow()

    await db.commit()
    return serialize_interview(await _load_resource(db, resource.id))


async def delete_interview_service(db: AsyncSession, user: User, resource_id: str) -> Dict[str, Any]:
    resource = await _load_resource(db, resource_id)
    ensure_owner_or_admin(user, resource.author_id)
    resource.deleted_at = utcnow()
    await db.commit()
    logger.info("Interview resource %s soft-deleted by user %s", resource_id, user.id)
    return {"message": "Interview resource deleted", "id": resource_id}


async def rate_interview_service(db: AsyncSession, user: User, resource_id: str, value: Any) -> Dict[str, Any]:
    """
    Record the caller's 1-5 rating (one per user, re-rating replaces it) and
    recompute the average and count in one aggregate UPDATE.
    """
    try:
        score = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError("rating must be an integer between 1 and 5") from exc
    if not MIN_RATING <= score <= MAX_RATING:
        raise ValidationError("rating must be an integer between 1 and 5")

    await load_visible_resource(db, resource_id, user)

    insert = dialect_insert(db)
    now = utcnow()
    upsert = insert(InterviewRating).values(resource_id=resource_id, user_id=user.id, value=score)
    upsert = upsert.on_conflict_do_update(
        index_elements=[InterviewRating.resource_id, InterviewRating.user_id],
        set_={"value": score, "updated_at": now},
    )
    ratings = select(InterviewRating).where(InterviewRating.resource_id == resource_id).subquery()
    average = select(func.coalesce(func.avg(ratings.c.value), 0.0)).scalar_subquery()
    count = select(func.count()).select_from(ratings).scalar_subquery()
    try:
        await db.execute(upsert)
        await db.execute(
            update(InterviewResource)
            .where(InterviewResource.id == resource_id)
            .values(rating=average, rating_count=count)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("Failed to record rating for resource %s", resource_id)
        raise

    resource = await _load_resource(db, resource_id)
    return {
        "id": resource.id,
        "rating": round(float(resource.rating or 0.0), 2),
        "rating_count": resource.rating_count,
        "your_rating": score,
    }


async def interview_stats_service(db: AsyncSession) -> Dict[str, Any]:
    live = InterviewResource.deleted_at.is_(None)
    totals = await db.execute(
        select(
            func.count(InterviewResource.id),
            func.coalesce(func.sum(InterviewResource.views), 0),
            func.coalesce(func.sum(InterviewResource.downloads), 0),
        ).where(live)
    )
    total, views, downloads = totals.one()
    rated = await db.execute(
        select(func.avg(InterviewResource.rating)).where(live, InterviewResource.rating_count > 0)
    )
    by_type_rows = await db.execute(
        select(InterviewResource.type, func.count(InterviewResource.id)).where(live).group_by(InterviewResource.type)
    )
    public_total = await db.execute(
        select(func.count(InterviewResource.id)).where(live, InterviewResource.is_public.is_(True))
    )
    by_type = {resource_type: 0 for resource_type in INTERVIEW_RESOURCE_TYPES}
    for resource_type, type_total in by_type_rows.all():
        by_type[resource_type] = int(type_total)
    average_rating = rated.scalar()
    return {
        "total": int(total or 0),
        "public": int(public_total.scalar() or 0),
        "by_type": by_type,
        "total_views": int(views or 0),
        "total_downloads": int(downloads or 0),
        "average_rating": round(float(average_rating), 2) if average_rating is not None else 0.0,
    }
