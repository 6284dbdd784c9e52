"""StudyRoomInvitation model."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base, utcnow

INVITATION_STATUSES = ("PENDING", "ACCEPTED", "DECLINED", "EXPIRED")


class StudyRoomInvitation(Base):
    """Invitation from a room owner/admin to another user."""

    __tablename__ = "study_room_invitations"
    __table_args__ = (
        UniqueConstraint("sender_id", "receiver_id", "study_room_id", name="uq_study_room_invitations_triple"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    sender_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    receiver_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    study_room_id = Column(String, ForeignKey("study_rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String, nullable=False, default="PENDING")  # PENDING, ACCEPTED, DECLINED, EXPIRED
    message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    study_room = relationship("StudyRoom", back_populates="invitations")
    sender = relationship("User", foreign_keys=[sender_id])
    receiver = relationship("User", foreign_keys=[receiver_id])
