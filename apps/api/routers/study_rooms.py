"""Study room router: rooms, membership, invitations and shared notes."""

from __future__ import annotations

import logging
from typing import List, Optional, Union

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models.user import User
from routers.auth_scope import get_current_user
from routers.rate_limit import rate_limit
from services.study_rooms import (
    create_room_note_service,
    create_room_service,
    get_room_service,
    invite_to_room_service,
    join_room_service,
    list_invitations_service,
    list_my_rooms_service,
    list_room_notes_service,
    respond_invitation_service,
)

router = APIRouter()
logger = logging.getLogger(__name__)


class CreateRoomRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    is_private: bool = False
    max_members: Optional[int] = None


class JoinRoomRequest(BaseModel):
    room_code: str = Field(min_length=1)


class InviteRequest(BaseModel):
    email: str = Field(min_length=3)
    message: Optional[str] = None


class RespondInvitationRequest(BaseModel):
    accept: bool


class CreateStudyNoteRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1)
    is_public: bool = False
    tags: Union[List[str], str, None] = None


@router.post("", status_code=201)
async def create_room(
    request: CreateRoomRequest,
    _rate_limit: None = Depends(rate_limit("study_room_create", limit=30, window_seconds=3600)),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a room; `max_members` is clamped into [2, 100]."""
    return await create_room_service(db, user, request.model_dump())


@router.get("/mine")
async def list_my_rooms(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await list_my_rooms_service(db, user)


@router.post("/join")
async def join_room(
    request: JoinRoomRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await join_room_service(db, user, request.room_code)


@router.get("/invitations")
async def list_invitations(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await list_invitations_service(db, user)


@router.patch("/invitations/{invitation_id}")
async def respond_invitation(
    invitation_id: str,
    request: RespondInvitationRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await respond_invitation_service(db, user, invitation_id, request.accept)


@router.get("/{room_code}")
async def get_room(
    room_code: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await get_room_service(db, user, room_code)


@router.post("/{room_code}/invite", status_code=201)
async def invite_to_room(
    room_code: str,
    request: InviteRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await invite_to_room_service(db, user, room_code, request.email, request.message)


@router.get("/{room_code}/notes")
async def list_room_notes(
    room_code: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Members see public notes and their own private ones."""
    return await list_room_notes_service(db, user, room_code)


@router.post("/{room_code}/notes", status_code=201)
async def create_room_note(
    room_code: str,
    request: CreateStudyNoteRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await create_room_note_service(db, user, room_code, request.model_dump())
