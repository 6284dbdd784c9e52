"""Topic model for the top-level content taxonomy."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base, utcnow


class Topic(Base):
    """Top-level taxonomy node owning its sub-topics."""

    __tablename__ = "topics"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    slug = Column(String, nullable=False, unique=True, index=True)
    description = Column(Text, nullable=False, default="")
    icon = Column(String, nullable=False, default="")
    order = Column(Integer, nullable=False, default=0)
    created_by = Column(String, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    sub_topics = relationship(
        "SubTopic",
        back_populates="topic",
        cascade="all, delete-orphan",
        order_by="SubTopic.order",
    )
