"""Note router."""

from __future__ import annotations

from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models.user import User
from routers.auth_scope import get_current_user
from services.notes import (
    create_note_service,
    delete_note_service,
    get_note_service,
    list_notes_service,
    update_note_service,
)

router = APIRouter()


class CreateNoteRequest(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    category: str = Field(min_length=1)
    content: str = Field(min_length=1)
    tags: Union[List[str], str, None] = None
    topic_id: Optional[str] = None
    sub_topic_id: Optional[str] = None


class UpdateNoteRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    category: Optional[str] = Field(default=None, min_length=1)
    content: Optional[str] = Field(default=None, min_length=1)
    tags: Union[List[str], str, None] = None
    topic_id: Optional[str] = None
    sub_topic_id: Optional[str] = None


@router.get("")
async def list_notes(
    search: Optional[str] = Query(default=None),
    category: Optional[str] = Query(default=None),
    topic: Optional[str] = Query(default=None, description="Topic slug"),
    subtopic: Optional[str] = Query(default=None, description="Sub-topic slug"),
    sort: Optional[str] = Query(default="newest"),
    page: int = Query(default=1, ge=1),
    limit: Optional[int] = Query(default=None, ge=1),
    db: AsyncSession = Depends(get_db),
):
    return await list_notes_service(
        db,
        search=search,
        category=category,
        topic_slug=topic,
        subtopic_slug=subtopic,
        sort=sort,
        page=page,
        limit=limit,
    )


@router.post("", status_code=201)
async def create_note(
    request: CreateNoteRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await create_note_service(db, user, request.model_dump())


@router.get("/{note_id}")
async def get_note(note_id: str, db: AsyncSession = Depends(get_db)):
    return await get_note_service(db, note_id)


@router.put("/{note_id}")
async def update_note(
    note_id: str,
    request: UpdateNoteRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await update_note_service(db, user, note_id, request.model_dump(exclude_unset=True))


@router.delete("/{note_id}")
async def delete_note(
    note_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await delete_note_service(db, user, note_id)
