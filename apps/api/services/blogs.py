"""Blog authoring and publishing services."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from database import utcnow
from models.blog import Blog
from models.user import User
from services.content import (
    apply_search,
    apply_sort,
    apply_taxonomy_filter,
    author_summary,
    clamp_page,
    ensure_owner_or_admin,
    iso,
    paginate,
    pagination_payload,
    refile,
    resolve_filing,
    taxonomy_summary,
)
from services.errors import NotFoundError, ValidationError
from services.text import compute_read_time, is_http_url, make_excerpt, split_list

logger = logging.getLogger(__name__)

BLOG_SORTS = {
    "newest": (Blog.created_at.desc(), Blog.id.desc()),
    "oldest": (Blog.created_at.asc(), Blog.id.asc()),
    "alphabetical": (Blog.title.asc(), Blog.id.asc()),
}
BLOG_OPTIONS = (selectinload(Blog.author), selectinload(Blog.topic), selectinload(Blog.sub_topic))


def serialize_blog(blog: Blog, include_content: bool = True) -> Dict[str, Any]:
    payload = {
        "id": blog.id,
        "title": blog.title,
        "excerpt": blog.excerpt,
        "category": blog.category,
        "tags": list(blog.tags or []),
        "cover_image": blog.cover_image,
        "read_time": blog.read_time,
        "published": bool(blog.published),
        "published_at": iso(blog.published_at),
        "author": author_summary(blog.author),
        "author_id": blog.author_id,
        "topic_id": blog.topic_id,
        "sub_topic_id": blog.sub_topic_id,
        "created_at": iso(blog.created_at),
        "updated_at": iso(blog.updated_at),
    }
    payload.update(taxonomy_summary(blog.topic, blog.sub_topic))
    if include_content:
        payload["content"] = blog.content
    return payload


def _clean_cover_image(value: Optional[str]) -> Optional[str]:
    text = (value or "").strip()
    if not text:
        return None
    # Uploaded files are served from a relative path.
    if text.startswith("/") or is_http_url(text):
        return text
    raise ValidationError("cover_image must be an http(s) URL or an uploaded file path")


def _required_text(payload: Dict[str, Any], key: str) -> str:
    text = str(payload.get(key) or "").strip()
    if not text:
        raise ValidationError(f"{key} is required")
    return text


def _can_see_drafts(viewer: Optional[User], blog: Blog) -> bool:
    return bool(viewer and (viewer.is_admin or viewer.id == blog.author_id))


async def _load_blog(db: AsyncSession, blog_id: str) -> Blog:
    result = await db.execute(
        select(Blog)
        .where(Blog.id == blog_id, Blog.deleted_at.is_(None))
        .options(*BLOG_OPTIONS)
        .execution_options(populate_existing=True)
    )
    blog = result.scalar_one_or_none()
    if not blog:
        raise NotFoundError("Blog not found")
    return blog


async def list_blogs_service(
    db: AsyncSession,
    viewer: Optional[User] = None,
    search: Optional[str] = None,
    category: Optional[str] = None,
    published: Optional[bool] = None,
    topic_slug: Optional[str] = None,
    subtopic_slug: Optional[str] = None,
    sort: Optional[str] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    page, limit = clamp_page(page, limit)
    stmt = select(Blog).where(Blog.deleted_at.is_(None))
    if viewer is not None and viewer.is_admin:
        if published is not None:
            stmt = stmt.where(Blog.published == published)
    else:
        stmt = stmt.where(Blog.published.is_(True))
    if category:
        stmt = stmt.where(Blog.category == category)
    stmt = apply_search(stmt, search, (Blog.title, Blog.content, Blog.excerpt))
    stmt = apply_taxonomy_filter(stmt, Blog, topic_slug, subtopic_slug)
    stmt = apply_sort(stmt, sort, BLOG_SORTS)

    blogs, total = await paginate(db, stmt, page, limit, options=BLOG_OPTIONS)
    return {
        "blogs": [serialize_blog(blog, include_content=False) for blog in blogs],
        "pagination": pagination_payload(page, limit, total),
    }


async def get_blog_service(db: AsyncSession, blog_id: str, viewer: Optional[User] = None) -> Dict[str, Any]:
    blog = await _load_blog(db, blog_id)
    if not blog.published and not _can_see_drafts(viewer, blog):
        raise NotFoundError("Blog not found")
    return serialize_blog(blog)


async def create_blog_service(db: AsyncSession, user: User, payload: Dict[str, Any]) -> Dict[str, Any]:
    title = _required_text(payload, "title")
    content = str(payload.get("content") or "")
    topic_id, sub_topic_id = await resolve_filing(db, payload.get("topic_id"), payload.get("sub_topic_id"))
    published = bool(payload.get("published"))
    excerpt = (payload.get("excerpt") or "").strip() or make_excerpt(content)

    blog = Blog(
        author_id=user.id,
        topic_id=topic_id,
        sub_topic_id=sub_topic_id,
        title=title,
        content=content,
        excerpt=excerpt,
        category=(payload.get("category") or "").strip() or None,
        tags=split_list(payload.get("tags")),
        cover_image=_clean_cover_image(payload.get("cover_image")),
        read_time=compute_read_time(content),
        published=published,
        published_at=utcnow() if published else None,
    )
    db.add(blog)
    await db.commit()
    logger.info("Blog %s created by user %s (published=%s)", blog.id, user.id, published)
    return serialize_blog(await _load_blog(db, blog.id))


async def update_blog_service(db: AsyncSession, user: User, blog_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    blog = await _load_blog(db, blog_id)
    ensure_owner_or_admin(user, blog.author_id)
    await refile(db, blog, changes)

    if "title" in changes:
        blog.title = _required_text(changes, "title")
    if "content" in changes:
        derived_excerpt = blog.excerpt == make_excerpt(blog.content)
        blog.content = str(changes["content"] or "")
        blog.read_time = compute_read_time(blog.content)
        if derived_excerpt and "excerpt" not in changes:
            blog.excerpt = make_excerpt(blog.content)
    if "excerpt" in changes:
        blog.excerpt = (changes["excerpt"] or "").strip() or make_excerpt(blog.content)
    if "category" in changes:
        blog.category = (changes["category"] or "").strip() or None
    if "tags" in changes:
        blog.tags = split_list(changes["tags"])
    if "cover_image" in changes:
        blog.cover_image = _clean_cover_image(changes["cover_image"])
    if "published" in changes:
        blog.published = bool(changes["published"])
        if blog.published and blog.published_at is None:
            blog.published_at = utcnow()
    blog.updated_at = utcnow()

    await db.commit()
    return serialize_blog(await _load_blog(db, blog.id))


async def delete_blog_service(db: AsyncSession, user: User, blog_id: str) -> Dict[str, Any]:
    blog = await _load_blog(db, blog_id)
    ensure_owner_or_admin(user, blog.author_id)
    blog.deleted_at = utcnow()
    await db.commit()
    logger.info("Blog %s soft-deleted by user %s", blog_id, user.id)
    return {"message": "Blog deleted", "id": blog_id}
