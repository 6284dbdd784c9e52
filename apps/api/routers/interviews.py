"""Interview resource router."""

from __future__ import annotations

import logging
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models.user import User
from routers.auth_scope import get_current_user, get_optional_user, require_admin
from services.interviews import (
    create_interview_service,
    delete_interview_service,
    get_interview_service,
    interview_stats_service,
    list_interviews_service,
    rate_interview_service,
    record_download_service,
    update_interview_service,
)

router = APIRouter()
logger = logging.getLogger(__name__)


class CreateInterviewRequest(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    description: str = ""
    content: str = ""
    type: str
    category: str = Field(min_length=1)
    difficulty: str
    tags: Union[List[str], str, None] = None
    url: Optional[str] = None
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    is_premium: bool = False
    is_public: bool = True


class UpdateInterviewRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    description: Optional[str] = None
    content: Optional[str] = None
    type: Optional[str] = None
    category: Optional[str] = Field(default=None, min_length=1)
    difficulty: Optional[str] = None
    tags: Union[List[str], str, None] = None
    url: Optional[str] = None
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    is_premium: Optional[bool] = None
    is_public: Optional[bool] = None


class RateInterviewRequest(BaseModel):
    rating: int


@router.get("")
async def list_interviews(
    search: Optional[str] = Query(default=None),
    type: Optional[str] = Query(default=None),
    category: Optional[str] = Query(default=None),
    difficulty: Optional[str] = Query(default=None),
    sort: Optional[str] = Query(default="newest"),
    page: int = Query(default=1, ge=1),
    limit: Optional[int] = Query(default=None, ge=1),
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    return await list_interviews_service(
        db,
        viewer=viewer,
        search=search,
        resource_type=type,
        category=category,
        difficulty=difficulty,
        sort=sort,
        page=page,
        limit=limit,
    )


@router.post("", status_code=201)
async def create_interview(
    request: CreateInterviewRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await create_interview_service(db, user, request.model_dump())


@router.get("/stats")
async def interview_stats(
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await interview_stats_service(db)


@router.get("/{resource_id}")
async def get_interview(
    resource_id: str,
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """Fetch one resource; each fetch counts as a view."""
    return await get_interview_service(db, resource_id, viewer=viewer)


@router.put("/{resource_id}")
async def update_interview(
    resource_id: str,
    request: UpdateInterviewRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await update_interview_service(db, user, resource_id, request.model_dump(exclude_unset=True))


@router.delete("/{resource_id}")
async def delete_interview(
    resource_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await delete_interview_service(db, user, resource_id)


@router.post("/{resource_id}/download")
async def download_interview(
    resource_id: str,
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    return await record_download_service(db, resource_id, viewer=viewer)


@router.post("/{resource_id}/rating")
async def rate_interview(
    resource_id: str,
    request: RateInterviewRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await rate_interview_service(db, user, resource_id, request.rating)
