"""Identity-provider token helpers: the subject claim is the external user id."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from config import settings


def create_identity_token(
    external_id: str,
    email: Optional[str] = None,
    name: Optional[str] = None,
    expires_hours: Optional[int] = None,
) -> Dict[str, Any]:
    """Mint a signed identity token the way the identity provider would."""
    now = datetime.now(timezone.utc)
    ttl_hours = int(expires_hours or settings.AUTH_TOKEN_TTL_HOURS or 24)
    expires_at = now + timedelta(hours=max(ttl_hours, 1))
    claims: Dict[str, Any] = {
        "sub": external_id,
        "iat": int(now.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    if email:
        claims["email"] = email
    if name:
        claims["name"] = name
    if settings.AUTH_JWT_ISSUER:
        claims["iss"] = settings.AUTH_JWT_ISSUER
    if settings.AUTH_JWT_AUDIENCE:
        claims["aud"] = settings.AUTH_JWT_AUDIENCE

    token = jwt.encode(claims, settings.AUTH_JWT_SECRET, algorithm=settings.AUTH_JWT_ALGORITHM)
    return {
        "token": token,
        "expires_at": int(expires_at.timestamp()),
    }


def decode_identity_token(token: str) -> Dict[str, Any]:
    """Decode and validate a signed identity token."""
    options = {"verify_aud": bool(settings.AUTH_JWT_AUDIENCE)}
    try:
        payload = jwt.decode(
            token,
            settings.AUTH_JWT_SECRET,
            algorithms=[settings.AUTH_JWT_ALGORITHM],
            audience=settings.AUTH_JWT_AUDIENCE,
            issuer=settings.AUTH_JWT_ISSUER,
            options=options,
        )
    except JWTError as exc:
        raise ValueError("Invalid or expired identity token.") from exc

    subject = str(payload.get("sub", "")).strip()
    if not subject:
        raise ValueError("Identity token missing subject.")

    return payload
