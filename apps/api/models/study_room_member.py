"""StudyRoomMember model."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base, utcnow

MEMBER_ROLES = ("ADMIN", "MEMBER")


class StudyRoomMember(Base):
    __tablename__ = "study_room_members"
    __table_args__ = (UniqueConstraint("user_id", "study_room_id", name="uq_study_room_members_user_room"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    study_room_id = Column(String, ForeignKey("study_rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String, nullable=False, default="MEMBER")  # ADMIN, MEMBER
    joined_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    study_room = relationship("StudyRoom", back_populates="members")
    user = relationship("User")
