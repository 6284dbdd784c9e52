"""Study note services."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from database import utcnow
from models.note import Note
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
from services.text import compute_read_time, split_list

logger = logging.getLogger(__name__)

NOTE_SORTS = {
    "newest": (Note.created_at.desc(), Note.id.desc()),
    "oldest": (Note.created_at.asc(), Note.id.asc()),
    "alphabetical": (Note.title.asc(), Note.id.asc()),
}
NOTE_OPTIONS = (selectinload(Note.author), selectinload(Note.topic), selectinload(Note.sub_topic))
REQUIRED_FIELDS = ("title", "category", "content")


def serialize_note(note: Note) -> Dict[str, Any]:
    payload = {
        "id": note.id,
        "title": note.title,
        "content": note.content,
        "category": note.category,
        "tags": list(note.tags or []),
        "read_time": note.read_time,
        "author": author_summary(note.author),
        "author_id": note.author_id,
        "topic_id": note.topic_id,
        "sub_topic_id": note.sub_topic_id,
        "created_at": iso(note.created_at),
        "updated_at": iso(note.updated_at),
    }
    payload.update(taxonomy_summary(note.topic, note.sub_topic))
    return payload


def _required(payload: Dict[str, Any], key: str) -> str:
    text = str(payload.get(key) or "").strip()
    if not text:
        raise ValidationError(f"{key} is required")
    return text


async def _load_note(db: AsyncSession, note_id: str) -> Note:
    result = await db.execute(
        select(Note)
        .where(Note.id == note_id, Note.deleted_at.is_(None))
        .options(*NOTE_OPTIONS)
        .execution_options(populate_existing=True)
    )
    note = result.scalar_one_or_none()
    if not note:
        raise NotFoundError("Note not found")
    return note


async def list_notes_service(
    db: AsyncSession,
    search: Optional[str] = None,
    category: Optional[str] = None,
    topic_slug: Optional[str] = None,
    subtopic_slug: Optional[str] = None,
    sort: Optional[str] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    page, limit = clamp_page(page, limit)
    stmt = select(Note).where(Note.deleted_at.is_(None))
    if category:
        stmt = stmt.where(Note.category == category)
    stmt = apply_search(stmt, search, (Note.title, Note.content))
    stmt = apply_taxonomy_filter(stmt, Note, topic_slug, subtopic_slug)
    stmt = apply_sort(stmt, sort, NOTE_SORTS)

    notes, total = await paginate(db, stmt, page, limit, options=NOTE_OPTIONS)
    return {
        "notes": [serialize_note(note) for note in notes],
        "pagination": pagination_payload(page, limit, total),
    }


async def get_note_service(db: AsyncSession, note_id: str) -> Dict[str, Any]:
    return serialize_note(await _load_note(db, note_id))


async def create_note_service(db: AsyncSession, user: User, payload: Dict[str, Any]) -> Dict[str, Any]:
    values = {key: _required(payload, key) for key in REQUIRED_FIELDS}
    topic_id, sub_topic_id = await resolve_filing(db, payload.get("topic_id"), payload.get("sub_topic_id"))

    note = Note(
        author_id=user.id,
        topic_id=topic_id,
        sub_topic_id=sub_topic_id,
        title=values["title"],
        category=values["category"],
        content=values["content"],
        tags=split_list(payload.get("tags")),
        read_time=compute_read_time(values["content"]),
    )
    db.add(note)
    await db.commit()
    logger.info("Note %s created by user %s", note.id, user.id)
    return serialize_note(await _load_note(db, note.id))


async def update_note_service(db: AsyncSession, user: User, note_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    note = await _load_note(db, note_id)
    ensure_owner_or_admin(user, note.author_id)
    await refile(db, note, changes)

    for key in REQUIRED_FIELDS:
        if key in changes:
            setattr(note, key, _required(changes, key))
    if "content" in changes:
        note.read_time = compute_read_time(note.content)
    if "tags" in changes:
        note.tags = split_list(changes["tags"])
    note.updated_at = utcnow()

    await db.commit()
    return serialize_note(await _load_note(db, note.id))


async def delete_note_service(db: AsyncSession, user: User, note_id: str) -> Dict[str, Any]:
    note = await _load_note(db, note_id)
    ensure_owner_or_admin(user, note.author_id)
    note.deleted_at = utcnow()
    await db.commit()
    logger.info("Note %s soft-deleted by user %s", note_id, user.id)
    return {"message": "Note deleted", "id": note_id}
