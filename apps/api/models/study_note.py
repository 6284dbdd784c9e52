"""StudyNote model for notes shared inside a study room."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, JSON, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base, utcnow


class StudyNote(Base):
    __tablename__ = "study_notes"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    study_room_id = Column(String, ForeignKey("study_rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    is_public = Column(Boolean, nullable=False, default=False)
    tags = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    author = relationship("User")
    study_room = relationship("StudyRoom", back_populates="notes")
