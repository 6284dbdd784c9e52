"""SubTopic model, exclusively owned by one Topic."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base, utcnow


class SubTopic(Base):
    """Second-level taxonomy node; slug is unique within its parent topic."""

    __tablename__ = "sub_topics"
    __table_args__ = (UniqueConstraint("topic_id", "slug", name="uq_sub_topics_topic_slug"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    topic_id = Column(String, ForeignKey("topics.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    slug = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    icon = Column(String, nullable=False, default="")
    order = Column(Integer, nullable=False, default=0)
    created_by = Column(String, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    topic = relationship("Topic", back_populates="sub_topics")
