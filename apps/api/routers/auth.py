"""
Authentication router: the caller's provisioned local profile.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from models.user import User
from routers.auth_scope import get_auth_context, get_current_user, AuthContext
from services.content import iso

router = APIRouter()


class CurrentUserResponse(BaseModel):
    id: str
    external_id: str
    email: str
    name: Optional[str] = None
    role: str
    is_admin: bool = False
    created_at: Optional[str] = None


@router.get("/me", response_model=CurrentUserResponse)
async def get_me(user: User = Depends(get_current_user)):
    """Return the caller's local profile, provisioning it on first sight."""
    return CurrentUserResponse(
        id=user.id,
        external_id=user.external_id,
        email=user.email,
        name=user.name,
        role=user.role,
        is_admin=user.is_admin,
        created_at=iso(user.created_at),
    )


@router.post("/logout")
async def logout(_auth: AuthContext = Depends(get_auth_context)):
    """Frontend-managed logout acknowledgment endpoint; sessions live with the identity provider."""
    return {"message": "Logged out successfully"}
