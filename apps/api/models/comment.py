"""Threaded comment model for interview resources."""

import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base, utcnow


class Comment(Base):
    """
    Adjacency-list comment: replies point at their parent through `parent_id`
    and the tree is assembled in memory per resource.

    Exactly one identity mode is stored: a registered author (`author_id`)
    or an anonymous `author_name` (with optional `author_email`).
    """

    __tablename__ = "comments"
    __table_args__ = (
        CheckConstraint(
            "(author_id IS NULL) <> (author_name IS NULL)",
            name="ck_comments_single_identity",
        ),
        Index("ix_comments_resource_created", "resource_id", "created_at"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    resource_id = Column(String, ForeignKey("interview_resources.id", ondelete="CASCADE"), nullable=False)
    parent_id = Column(String, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, index=True)
    author_id = Column(String, ForeignKey("users.id"), nullable=True, index=True)
    author_name = Column(String, nullable=True)
    author_email = Column(String, nullable=True)
    content = Column(Text, nullable=False)
    is_edited = Column(Boolean, nullable=False, default=False)
    likes = Column(Integer, nullable=False, default=0)
    dislikes = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    resource = relationship("InterviewResource", back_populates="comments")
    author = relationship("User")
