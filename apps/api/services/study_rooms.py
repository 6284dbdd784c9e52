"""Study rooms: creation with unique join codes, membership and invitations."""

from __future__ import annotations

import logging
import secrets
import string
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from config import settings
from database import utcnow
from models.study_note import StudyNote
from models.study_room import MAX_ROOM_MEMBERS, MIN_ROOM_MEMBERS, ROOM_CODE_LENGTH, StudyRoom
from models.study_room_invitation import StudyRoomInvitation
from models.study_room_member import StudyRoomMember
from models.user import User
from services.content import author_summary, iso
from services.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from services.text import split_list

logger = logging.getLogger(__name__)

ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits
DEFAULT_MAX_MEMBERS = 10


def generate_room_code(length: int = ROOM_CODE_LENGTH) -> str:
    """Uniformly sample a join code from [A-Z0-9]."""
    return "".join(secrets.choice(ROOM_CODE_ALPHABET) for _ in range(length))


def normalize_room_code(value: Any) -> str:
    return str(value or "").strip().upper()


def clamp_max_members(value: Any) -> int:
    if value is None or str(value).strip() == "":
        return DEFAULT_MAX_MEMBERS
    try:
        requested = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError("max_members must be an integer") from exc
    return max(MIN_ROOM_MEMBERS, min(requested, MAX_ROOM_MEMBERS))


def _serialize_room(room: StudyRoom, member_count: int) -> Dict[str, Any]:
    return {
        "id": room.id,
        "name": room.name,
        "description": room.description,
        "is_private": bool(room.is_private),
        "max_members": room.max_members,
        "room_code": room.room_code,
        "owner_id": room.owner_id,
        "owner": author_summary(room.owner),
        "member_count": member_count,
        "created_at": iso(room.created_at),
        "updated_at": iso(room.updated_at),
    }


def _serialize_member(member: StudyRoomMember) -> Dict[str, Any]:
    return {
        "id": member.id,
        "user_id": member.user_id,
        "name": member.user.name if member.user else None,
        "role": member.role,
        "joined_at": iso(member.joined_at),
    }


def serialize_room_detail(room: StudyRoom) -> Dict[str, Any]:
    members = sorted(room.members, key=lambda member: (member.role != "ADMIN", member.joined_at))
    payload = _serialize_room(room, len(members))
    payload["members"] = [_serialize_member(member) for member in members]
    return payload


def serialize_invitation(invitation: StudyRoomInvitation) -> Dict[str, Any]:
    sender = invitation.sender
    room = invitation.study_room
    return {
        "id": invitation.id,
        "status": invitation.status,
        "message": invitation.message,
        "receiver_id": invitation.receiver_id,
        "sender": {"id": sender.id, "name": sender.name, "email": sender.email} if sender else None,
        "room": (
            {"id": room.id, "name": room.name, "room_code": room.room_code, "description": room.description}
            if room
            else None
        ),
        "created_at": iso(invitation.created_at),
        "updated_at": iso(invitation.updated_at),
    }


async def _member_counts(db: AsyncSession, room_ids: Iterable[str]) -> Dict[str, int]:
    ids = list(room_ids)
    if not ids:
        return {}
    result = await db.execute(
        select(StudyRoomMember.study_room_id, func.count(StudyRoomMember.id))
        .where(StudyRoomMember.study_room_id.in_(ids))
        .group_by(StudyRoomMember.study_room_id)
    )
    return {room_id: int(total) for room_id, total in result.all()}


async def _load_room(db: AsyncSession, room_code: Any) -> StudyRoom:
    code = normalize_room_code(room_code)
    if not code:
        raise ValidationError("room_code is required")
    result = await db.execute(
        select(StudyRoom)
        .where(StudyRoom.room_code == code)
        .options(
            selectinload(StudyRoom.owner),
            selectinload(StudyRoom.members).selectinload(StudyRoomMember.user),
        )
        .execution_options(populate_existing=True)
    )
    room = result.scalar_one_or_none()
    if not room:
        raise NotFoundError("Study room not found")
    return room


def _membership(room: StudyRoom, user_id: str) -> Optional[StudyRoomMember]:
    for member in room.members:
        if member.user_id == user_id:
            return member
    return None


async def create_room_service(db: AsyncSession, user: User, payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Create a room and its owner's ADMIN membership in one transaction.

    The unique index on `room_code` arbitrates collisions: a losing insert is
    rolled back and retried with a fresh code.
    """
    name = str(payload.get("name") or "").strip()
    if not name:
        raise ValidationError("name is required")
    description = str(payload.get("description") or "").strip() or None
    max_members = clamp_max_members(payload.get("max_members"))
    is_private = bool(payload.get("is_private"))
    # Rollback expires loaded instances, so keep plain values across retries.
    owner_id = user.id

    attempts = max(1, int(settings.ROOM_CODE_MAX_ATTEMPTS))
    for attempt in range(1, attempts + 1):
        room_code = generate_room_code()
        room = StudyRoom(
            owner_id=owner_id,
            name=name,
            description=description,
            is_private=is_private,
            max_members=max_members,
            room_code=room_code,
            members=[StudyRoomMember(user_id=owner_id, role="ADMIN")],
        )
        db.add(room)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.warning("Room code collision on attempt %s/%s", attempt, attempts)
            continue
        logger.info("Study room %s created by user %s (code=%s)", room.id, owner_id, room_code)
        return serialize_room_detail(await _load_room(db, room_code))

    raise ConflictError("Could not allocate a unique room code. Please retry.")


async def list_my_rooms_service(db: AsyncSession, user: User) -> Dict[str, Any]:
    joined = select(StudyRoomMember.study_room_id).where(StudyRoomMember.user_id == user.id)
    result = await db.execute(
        select(StudyRoom)
        .where(or_(StudyRoom.owner_id == user.id, StudyRoom.id.in_(joined)))
        .options(selectinload(StudyRoom.owner))
        .order_by(StudyRoom.updated_at.desc(), StudyRoom.created_at.desc())
    )
    rooms = list(result.scalars().all())
    counts = await _member_counts(db, [room.id for room in rooms])
    return {"rooms": [_serialize_room(room, counts.get(room.id, 0)) for room in rooms]}


async def get_room_service(db: AsyncSession, user: User, room_code: Any) -> Dict[str, Any]:
    room = await _load_room(db, room_code)
    if room.owner_id != user.id and _membership(room, user.id) is None:
        raise ForbiddenError("Only members can view this study room.")
    return serialize_room_detail(room)


async def join_room_service(db: AsyncSession, user: User, room_code: Any) -> Dict[str, Any]:
    room = await _load_room(db, room_code)
    if _membership(room, user.id) is not None:
        raise ConflictError("You are already a member of this study room.")
    if len(room.members) >= room.max_members:
        raise ValidationError("Study room is full.")

    db.add(StudyRoomMember(user_id=user.id, study_room_id=room.id, role="MEMBER"))
    room.updated_at = utcnow()
    code = room.room_code
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError("You are already a member of this study room.") from exc
    logger.info("User %s joined study room %s", user.id, room.id)
    return serialize_room_detail(await _load_room(db, code))


async def invite_to_room_service(
    db: AsyncSession,
    user: User,
    room_code: Any,
    email: Any,
    message: Optional[str] = None,
) -> Dict[str, Any]:
    room = await _load_room(db, room_code)
    membership = _membership(room, user.id)
    if room.owner_id != user.id and (membership is None or membership.role != "ADMIN"):
        raise ForbiddenError("Only the room owner or a room admin can send invitations.")

    email_value = str(email or "").strip().lower()
    if not email_value:
        raise ValidationError("email is required")
    receiver = (await db.execute(select(User).where(func.lower(User.email) == email_value))).scalar_one_or_none()
    if receiver is None:
        raise NotFoundError("No user found with that email.")
    if receiver.id == user.id:
        raise ValidationError("You cannot invite yourself.")
    if _membership(room, receiver.id) is not None:
        raise ValidationError("That user is already a member of this study room.")

    existing = (
        await db.execute(
            select(StudyRoomInvitation).where(
                StudyRoomInvitation.sender_id == user.id,
                StudyRoomInvitation.receiver_id == receiver.id,
                StudyRoomInvitation.study_room_id == room.id,
            )
        )
    ).scalar_one_or_none()
    message_text = (message or "").strip() or None
    if existing is not None:
        if existing.status == "PENDING":
            raise ConflictError("An invitation is already pending for that user.")
        existing.status = "PENDING"
        existing.message = message_text
        existing.updated_at = utcnow()
        invitation_id = existing.id
    else:
        invitation = StudyRoomInvitation(
            sender_id=user.id,
            receiver_id=receiver.id,
            study_room_id=room.id,
            message=message_text,
        )
        db.add(invitation)
        await db.flush()
        invitation_id = invitation.id
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError("An invitation is already pending for that user.") from exc

    logger.info("Invitation %s sent for room %s", invitation_id, room.id)
    return serialize_invitation(await _load_invitation(db, invitation_id))


async def _load_invitation(db: AsyncSession, invitation_id: str) -> StudyRoomInvitation:
    result = await db.execute(
        select(StudyRoomInvitation)
        .where(StudyRoomInvitation.id == invitation_id)
        .options(selectinload(StudyRoomInvitation.sender), selectinload(StudyRoomInvitation.study_room))
        .execution_options(populate_existing=True)
    )
    invitation = result.scalar_one_or_none()
    if not invitation:
        raise NotFoundError("Invitation not found")
    return invitation


async def list_invitations_service(db: AsyncSession, user: User) -> Dict[str, List[Dict[str, Any]]]:
    result = await db.execute(
        select(StudyRoomInvitation)
        .where(StudyRoomInvitation.receiver_id == user.id, StudyRoomInvitation.status == "PENDING")
        .options(selectinload(StudyRoomInvitation.sender), selectinload(StudyRoomInvitation.study_room))
        .order_by(StudyRoomInvitation.updated_at.desc(), StudyRoomInvitation.created_at.desc())
    )
    return {"invitations": [serialize_invitation(item) for item in result.scalars().all()]}


async def respond_invitation_service(
    db: AsyncSession,
    user: User,
    invitation_id: str,
    accept: bool,
) -> Dict[str, Any]:
    invitation = await _load_invitation(db, invitation_id)
    if invitation.receiver_id != user.id:
        raise ForbiddenError("Only the invited user can respond to this invitation.")
    if invitation.status != "PENDING":
        raise ValidationError(f"Invitation is already {invitation.status.lower()}.")

    if not accept:
        invitation.status = "DECLINED"
        invitation.updated_at = utcnow()
        await db.commit()
        return serialize_invitation(await _load_invitation(db, invitation_id))

    room = await _load_room(db, invitation.study_room.room_code)
    if _membership(room, user.id) is None:
        if len(room.members) >= room.max_members:
            invitation.status = "EXPIRED"
            invitation.updated_at = utcnow()
            await db.commit()
            raise ValidationError("Study room is full.")
        db.add(StudyRoomMember(user_id=user.id, study_room_id=room.id, role="MEMBER"))
        room.updated_at = utcnow()

    invitation.status = "ACCEPTED"
    invitation.updated_at = utcnow()
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError("You are already a member of this study room.") from exc
    logger.info("Invitation %s accepted; user %s joined room %s", invitation_id, user.id, room.id)
    return serialize_invitation(await _load_invitation(db, invitation_id))


def serialize_study_note(note: StudyNote) -> Dict[str, Any]:
    return {
        "id": note.id,
        "study_room_id": note.study_room_id,
        "title": note.title,
        "content": note.content,
        "is_public": bool(note.is_public),
        "tags": list(note.tags or []),
        "author": author_summary(note.author),
        "created_at": iso(note.created_at),
        "updated_at": iso(note.updated_at),
    }


async def _load_member_room(db: AsyncSession, user: User, room_code: Any) -> StudyRoom:
    room = await _load_room(db, room_code)
    if room.owner_id != user.id and _membership(room, user.id) is None:
        raise ForbiddenError("Only members can access notes in this study room.")
    return room


async def list_room_notes_service(db: AsyncSession, user: User, room_code: Any) -> Dict[str, Any]:
    """Public notes plus the caller's own private ones, newest first."""
    room = await _load_member_room(db, user, room_code)
    result = await db.execute(
        select(StudyNote)
        .where(
            StudyNote.study_room_id == room.id,
            or_(StudyNote.is_public.is_(True), StudyNote.author_id == user.id),
        )
        .options(selectinload(StudyNote.author))
        .order_by(StudyNote.created_at.desc(), StudyNote.id.desc())
    )
    return {"notes": [serialize_study_note(note) for note in result.scalars().all()]}


async def create_room_note_service(
    db: AsyncSession,
    user: User,
    room_code: Any,
    payload: Dict[str, Any],
) -> Dict[str, Any]:
    room = await _load_member_room(db, user, room_code)
    title = str(payload.get("title") or "").strip()
    content = str(payload.get("content") or "").strip()
    if not title or not content:
        raise ValidationError("title and content are required")

    note = StudyNote(
        study_room_id=room.id,
        author_id=user.id,
        title=title,
        content=content,
        is_public=bool(payload.get("is_public")),
        tags=split_list(payload.get("tags")),
    )
    db.add(note)
    await db.commit()
    note_id = note.id
    logger.info("Study note %s added to room %s by user %s", note_id, room.id, user.id)

    result = await db.execute(
        select(StudyNote).where(StudyNote.id == note_id).options(selectinload(StudyNote.author))
    )
    return serialize_study_note(result.scalar_one())
