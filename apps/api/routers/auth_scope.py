"""Authentication dependencies resolving the caller's local user."""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models.user import User
from services.errors import AuthError, ForbiddenError
from services.identity import ensure_user_exists
from services.session_token import decode_identity_token


auth_scheme = HTTPBearer(auto_error=False)


@dataclass
class AuthContext:
    external_id: str
    email: Optional[str] = None
    name: Optional[str] = None


def _context_from_credentials(credentials: HTTPAuthorizationCredentials) -> AuthContext:
    try:
        payload = decode_identity_token(credentials.credentials)
    except ValueError as exc:
        raise AuthError(str(exc)) from exc

    return AuthContext(
        external_id=str(payload.get("sub", "")),
        email=str(payload.get("email", "")) or None,
        name=str(payload.get("name", "")) or None,
    )


async def get_auth_context(
    credentials: HTTPAuthorizationCredentials = Depends(auth_scheme),
) -> AuthContext:
    """Resolve the external identity from a Bearer token."""
    if not credentials or credentials.scheme.lower() != "bearer":
        raise AuthError("Missing Bearer identity token.")
    return _context_from_credentials(credentials)


async def get_optional_auth_context(
    credentials: HTTPAuthorizationCredentials = Depends(auth_scheme),
) -> Optional[AuthContext]:
    """Like get_auth_context, but anonymous callers resolve to None."""
    if not credentials:
        return None
    if credentials.scheme.lower() != "bearer":
        raise AuthError("Missing Bearer identity token.")
    return _context_from_credentials(credentials)


async def get_current_user(
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
) -> User:
    return await ensure_user_exists(db, auth.external_id, email=auth.email, name=auth.name)


async def get_optional_user(
    auth: Optional[AuthContext] = Depends(get_optional_auth_context),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    if auth is None:
        return None
    return await ensure_user_exists(db, auth.external_id, email=auth.email, name=auth.name)


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise ForbiddenError("Admin role required.")
    return user
