"""Blog model for published long-form articles."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base, utcnow


class Blog(Base):
    """Authored article; `published` gates public visibility only."""

    __tablename__ = "blogs"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    author_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    topic_id = Column(String, ForeignKey("topics.id", ondelete="SET NULL"), nullable=True, index=True)
    sub_topic_id = Column(String, ForeignKey("sub_topics.id", ondelete="SET NULL"), nullable=True, index=True)
    title = Column(String, nullable=False)
    content = Column(Text, nullable=False, default="")
    excerpt = Column(Text, nullable=True)
    category = Column(String, nullable=True, index=True)
    tags = Column(JSON, nullable=False, default=list)
    cover_image = Column(String, nullable=True)
    read_time = Column(Integer, nullable=False, default=0)
    published = Column(Boolean, nullable=False, default=False, index=True)
    published_at = Column(DateTime(timezone=True), nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    author = relationship("User", back_populates="blogs")
    topic = relationship("Topic")
    sub_topic = relationship("SubTopic")
