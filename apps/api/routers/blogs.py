"""Blog router."""

from __future__ import annotations

import logging
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models.user import User
from routers.auth_scope import get_current_user, get_optional_user
from services.blogs import (
    create_blog_service,
    delete_blog_service,
    get_blog_service,
    list_blogs_service,
    update_blog_service,
)

router = APIRouter()
logger = logging.getLogger(__name__)


class CreateBlogRequest(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    content: str = ""
    excerpt: Optional[str] = None
    category: Optional[str] = None
    tags: Union[List[str], str, None] = None
    cover_image: Optional[str] = None
    published: bool = False
    topic_id: Optional[str] = None
    sub_topic_id: Optional[str] = None


class UpdateBlogRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    content: Optional[str] = None
    excerpt: Optional[str] = None
    category: Optional[str] = None
    tags: Union[List[str], str, None] = None
    cover_image: Optional[str] = None
    published: Optional[bool] = None
    topic_id: Optional[str] = None
    sub_topic_id: Optional[str] = None


@router.get("")
async def list_blogs(
    search: Optional[str] = Query(default=None),
    category: Optional[str] = Query(default=None),
    published: Optional[bool] = Query(default=None),
    topic: Optional[str] = Query(default=None, description="Topic slug"),
    subtopic: Optional[str] = Query(default=None, description="Sub-topic slug"),
    sort: Optional[str] = Query(default="newest"),
    page: int = Query(default=1, ge=1),
    limit: Optional[int] = Query(default=None, ge=1),
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """Published blogs for everyone; admins may also list drafts via `published`."""
    return await list_blogs_service(
        db,
        viewer=viewer,
        search=search,
        category=category,
        published=published,
        topic_slug=topic,
        subtopic_slug=subtopic,
        sort=sort,
        page=page,
        limit=limit,
    )


@router.post("", status_code=201)
async def create_blog(
    request: CreateBlogRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await create_blog_service(db, user, request.model_dump())


@router.get("/{blog_id}")
async def get_blog(
    blog_id: str,
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    return await get_blog_service(db, blog_id, viewer=viewer)


@router.put("/{blog_id}")
async def update_blog(
    blog_id: str,
    request: UpdateBlogRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await update_blog_service(db, user, blog_id, request.model_dump(exclude_unset=True))


@router.delete("/{blog_id}")
async def delete_blog(
    blog_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await delete_blog_service(db, user, blog_id)
