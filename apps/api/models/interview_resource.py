"""InterviewResource model for interview-prep material."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base, utcnow

INTERVIEW_RESOURCE_TYPES = (
    "coding-question",
    "study-guide",
    "link",
    "document",
    "video",
    "excel",
    "image",
)
INTERVIEW_DIFFICULTIES = ("easy", "medium", "hard")


class InterviewResource(Base):
    """Interview-prep resource; counters only move through atomic updates."""

    __tablename__ = "interview_resources"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    author_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    content = Column(Text, nullable=False, default="")
    type = Column(String, nullable=False, index=True)
    category = Column(String, nullable=False, index=True)
    difficulty = Column(String, nullable=False, index=True)
    tags = Column(JSON, nullable=False, default=list)
    url = Column(String, nullable=True)
    file_url = Column(String, nullable=True)
    file_name = Column(String, nullable=True)
    file_size = Column(Integer, nullable=True)
    views = Column(Integer, nullable=False, default=0)
    downloads = Column(Integer, nullable=False, default=0)
    rating = Column(Float, nullable=False, default=0.0)
    rating_count = Column(Integer, nullable=False, default=0)
    is_premium = Column(Boolean, nullable=False, default=False)
    is_public = Column(Boolean, nullable=False, default=True, index=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    author = relationship("User", back_populates="interview_resources")
    comments = relationship("Comment", back_populates="resource", cascade="all, delete-orphan")
