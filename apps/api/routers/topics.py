"""Topic and sub-topic taxonomy router."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models.user import User
from routers.auth_scope import require_admin
from services.topics import (
    create_sub_topic_service,
    create_topic_service,
    delete_sub_topic_service,
    delete_topic_service,
    get_topic_service,
    list_sub_topics_service,
    list_topics_service,
    update_sub_topic_service,
    update_topic_service,
)

router = APIRouter()
subtopics_router = APIRouter()
logger = logging.getLogger(__name__)


class CreateTopicRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    slug: Optional[str] = None
    description: Optional[str] = ""
    icon: Optional[str] = ""
    order: int = 0


class UpdateTopicRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    slug: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    order: Optional[int] = None


@router.get("")
async def list_topics(db: AsyncSession = Depends(get_db)):
    """Topics with nested sub-topics, content counts and a navigation map."""
    return await list_topics_service(db)


@router.post("", status_code=201)
async def create_topic(
    request: CreateTopicRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await create_topic_service(db, admin, request.model_dump())


@router.get("/{topic_id}")
async def get_topic(topic_id: str, db: AsyncSession = Depends(get_db)):
    return await get_topic_service(db, topic_id)


@router.put("/{topic_id}")
async def update_topic(
    topic_id: str,
    request: UpdateTopicRequest,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await update_topic_service(db, topic_id, request.model_dump(exclude_unset=True))


@router.delete("/{topic_id}")
async def delete_topic(
    topic_id: str,
    cascade: bool = Query(default=False),
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await delete_topic_service(db, topic_id, cascade=cascade)


@router.get("/{topic_id}/subtopics")
async def list_sub_topics(topic_id: str, db: AsyncSession = Depends(get_db)):
    return await list_sub_topics_service(db, topic_id)


@router.post("/{topic_id}/subtopics", status_code=201)
async def create_sub_topic(
    topic_id: str,
    request: CreateTopicRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await create_sub_topic_service(db, admin, topic_id, request.model_dump())


@subtopics_router.put("/{sub_topic_id}")
async def update_sub_topic(
    sub_topic_id: str,
    request: UpdateTopicRequest,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await update_sub_topic_service(db, sub_topic_id, request.model_dump(exclude_unset=True))


@subtopics_router.delete("/{sub_topic_id}")
async def delete_sub_topic(
    sub_topic_id: str,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await delete_sub_topic_service(db, sub_topic_id)
