"""LeetCode problem router: CRUD, ordering, bulk import and export."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Literal, Optional, Union

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models.user import User
from routers.auth_scope import get_current_user
from routers.rate_limit import rate_limit
from services.leetcode import (
    bulk_import_problems_service,
    create_problem_service,
    delete_problem_service,
    export_problems_service,
    get_problem_service,
    list_problems_service,
    move_problem_service,
    update_problem_service,
)

router = APIRouter()
logger = logging.getLogger(__name__)

StringList = Union[List[str], str, None]


class SolutionPayload(BaseModel):
    language: Optional[str] = None
    code: Optional[str] = None
    approach: Optional[str] = None
    time_complexity: Optional[str] = None
    space_complexity: Optional[str] = None
    explanation: Optional[str] = None
    notes: Optional[str] = None
    is_optimal: bool = False


class ResourcePayload(BaseModel):
    title: Optional[str] = None
    type: Optional[str] = None
    url: Optional[str] = None
    description: Optional[str] = None


class CreateProblemRequest(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    description: str = Field(min_length=1)
    difficulty: str
    category: Optional[str] = None
    tags: StringList = None
    companies: StringList = None
    hints: StringList = None
    follow_up: Optional[str] = None
    leetcode_url: Optional[str] = None
    problem_number: Optional[int] = None
    frequency: Optional[str] = None
    acceptance: Optional[float] = None
    is_premium: bool = False
    topic_id: Optional[str] = None
    sub_topic_id: Optional[str] = None
    solutions: List[SolutionPayload] = Field(default_factory=list)
    resources: List[ResourcePayload] = Field(default_factory=list)


class UpdateProblemRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    description: Optional[str] = Field(default=None, min_length=1)
    difficulty: Optional[str] = None
    category: Optional[str] = None
    tags: StringList = None
    companies: StringList = None
    hints: StringList = None
    follow_up: Optional[str] = None
    leetcode_url: Optional[str] = None
    problem_number: Optional[int] = None
    frequency: Optional[str] = None
    acceptance: Optional[float] = None
    is_premium: Optional[bool] = None
    topic_id: Optional[str] = None
    sub_topic_id: Optional[str] = None
    solutions: Optional[List[SolutionPayload]] = None
    resources: Optional[List[ResourcePayload]] = None


class BulkImportRequest(BaseModel):
    problems: List[Dict[str, Any]]


class MoveProblemRequest(BaseModel):
    direction: Literal["up", "down"]


@router.get("")
async def list_problems(
    search: Optional[str] = Query(default=None),
    difficulty: Optional[str] = Query(default=None),
    category: Optional[str] = Query(default=None),
    company: Optional[str] = Query(default=None),
    language: Optional[str] = Query(default=None),
    topic: Optional[str] = Query(default=None, description="Topic slug"),
    subtopic: Optional[str] = Query(default=None, description="Sub-topic slug"),
    sort: Optional[str] = Query(default="newest"),
    page: int = Query(default=1, ge=1),
    limit: Optional[int] = Query(default=None, ge=1),
    db: AsyncSession = Depends(get_db),
):
    return await list_problems_service(
        db,
        search=search,
        difficulty=difficulty,
        category=category,
        company=company,
        language=language,
        topic_slug=topic,
        subtopic_slug=subtopic,
        sort=sort,
        page=page,
        limit=limit,
    )


@router.post("", status_code=201)
async def create_problem(
    request: CreateProblemRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await create_problem_service(db, user, request.model_dump())


@router.post("/bulk-import", status_code=201)
async def bulk_import_problems(
    request: BulkImportRequest,
    _rate_limit: None = Depends(rate_limit("leetcode_bulk_import", limit=20, window_seconds=3600)),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """All-or-nothing import; any invalid row rejects the batch."""
    return await bulk_import_problems_service(db, user, request.problems)


@router.get("/export")
async def export_problems(
    format: Literal["json", "csv"] = Query(default="json"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    body, media_type, filename = await export_problems_service(db, user, format)
    return Response(
        content=body,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{problem_id}")
async def get_problem(problem_id: str, db: AsyncSession = Depends(get_db)):
    return await get_problem_service(db, problem_id)


@router.put("/{problem_id}")
async def update_problem(
    problem_id: str,
    request: UpdateProblemRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await update_problem_service(db, user, problem_id, request.model_dump(exclude_unset=True))


@router.delete("/{problem_id}")
async def delete_problem(
    problem_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await delete_problem_service(db, user, problem_id)


@router.post("/{problem_id}/move")
async def move_problem(
    problem_id: str,
    request: MoveProblemRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Swap with the neighbouring problem in `sort=custom` order."""
    return await move_problem_service(db, user, problem_id, request.direction)
