"""Per-user rating of an InterviewResource."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from database import Base, utcnow


class InterviewRating(Base):
    """One row per (resource, user); the resource's average is aggregated from these."""

    __tablename__ = "interview_ratings"
    __table_args__ = (UniqueConstraint("resource_id", "user_id", name="uq_interview_ratings_resource_user"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    resource_id = Column(String, ForeignKey("interview_resources.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    value = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
