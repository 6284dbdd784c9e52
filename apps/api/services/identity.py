"""Local user provisioning keyed by the identity provider's subject id."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from config import settings
from database import dialect_insert
from models.user import User
from services.errors import CreationFailure, ValidationError

logger = logging.getLogger(__name__)

PLACEHOLDER_NAME = "New User"


def placeholder_email(external_id: str) -> str:
    return f"user-{external_id}@users.invalid"


async def get_user_by_external_id(db: AsyncSession, external_id: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.external_id == external_id))
    return result.scalar_one_or_none()


async def ensure_user_exists(
    db: AsyncSession,
    external_id: str,
    email: Optional[str] = None,
    name: Optional[str] = None,
) -> User:
    """
    Return the local user for an external identity, creating it on first sight.

    The insert is `ON CONFLICT (external_id) DO NOTHING` followed by a read, so
    concurrent first requests for the same identity converge on one row instead
    of one of them failing on the unique constraint.
    """
    external_id = str(external_id or "").strip()
    if not external_id:
        raise ValidationError("external_id is required")

    user = await get_user_by_external_id(db, external_id)
    if user:
        return user

    email_value = (email or "").strip() or placeholder_email(external_id)
    if email:
        taken = await db.execute(select(User.id).where(User.email == email_value))
        if taken.scalar_one_or_none():
            email_value = placeholder_email(external_id)

    role = "ADMIN" if external_id in settings.ADMIN_EXTERNAL_IDS else "USER"
    insert = dialect_insert(db)
    stmt = (
        insert(User)
        .values(
            external_id=external_id,
            email=email_value,
            name=(name or "").strip() or PLACEHOLDER_NAME,
            role=role,
        )
        .on_conflict_do_nothing(index_elements=[User.external_id])
    )
    try:
        await db.execute(stmt)
        await db.commit()
    except Exception as exc:
        await db.rollback()
        logger.exception("Failed to provision user for external_id=%s", external_id)
        raise CreationFailure("Failed to create user account") from exc

    user = await get_user_by_external_id(db, external_id)
    if not user:
        raise CreationFailure("Failed to create user account")
    logger.info("Provisioned local user %s for external identity", user.id)
    return user
