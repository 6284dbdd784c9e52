"""StudyRoom model."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base, utcnow

ROOM_CODE_LENGTH = 6
MIN_ROOM_MEMBERS = 2
MAX_ROOM_MEMBERS = 100


class StudyRoom(Base):
    """Collaborative room joined by its generated 6-character code."""

    __tablename__ = "study_rooms"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    is_private = Column(Boolean, nullable=False, default=False)
    max_members = Column(Integer, nullable=False, default=10)
    room_code = Column(String(ROOM_CODE_LENGTH), nullable=False, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    owner = relationship("User", back_populates="owned_rooms")
    members = relationship("StudyRoomMember", back_populates="study_room", cascade="all, delete-orphan")
    invitations = relationship("StudyRoomInvitation", back_populates="study_room", cascade="all, delete-orphan")
    notes = relationship("StudyNote", back_populates="study_room", cascade="all, delete-orphan")
