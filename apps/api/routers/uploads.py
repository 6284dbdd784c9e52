"""File upload router; stored files are served back by the static mount in main.py."""

from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models.user import User
from routers.auth_scope import get_current_user
from routers.rate_limit import rate_limit
from services.storage import store_upload

router = APIRouter()


class UploadResponse(BaseModel):
    id: str
    url: str
    file_name: str
    size: int
    mime_type: Optional[str] = None


@router.post("", response_model=UploadResponse, status_code=201)
async def upload_file(
    file: UploadFile = File(...),
    _rate_limit: None = Depends(rate_limit("uploads", limit=60, window_seconds=3600)),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Upload a file and get back its public url."""
    return UploadResponse(**await store_upload(db, user, file))
