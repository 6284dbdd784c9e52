"""LeetcodeProblem model with its nested solutions and resources."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base, utcnow

PROBLEM_DIFFICULTIES = ("EASY", "MEDIUM", "HARD")


class LeetcodeProblem(Base):
    """Tracked coding problem owning an ordered list of solutions and resources."""

    __tablename__ = "leetcode_problems"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    author_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    topic_id = Column(String, ForeignKey("topics.id", ondelete="SET NULL"), nullable=True, index=True)
    sub_topic_id = Column(String, ForeignKey("sub_topics.id", ondelete="SET NULL"), nullable=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    difficulty = Column(String, nullable=False, index=True)  # EASY, MEDIUM, HARD
    category = Column(String, nullable=False, default="DSA", index=True)
    tags = Column(JSON, nullable=False, default=list)
    companies = Column(JSON, nullable=False, default=list)
    hints = Column(JSON, nullable=False, default=list)
    follow_up = Column(Text, nullable=True)
    leetcode_url = Column(String, nullable=True)
    problem_number = Column(Integer, nullable=True, index=True)
    frequency = Column(String, nullable=True)
    acceptance = Column(Float, nullable=True)
    is_premium = Column(Boolean, nullable=False, default=False)
    sort_order = Column(Integer, nullable=False, default=0, index=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    author = relationship("User", back_populates="leetcode_problems")
    topic = relationship("Topic")
    sub_topic = relationship("SubTopic")
    solutions = relationship(
        "LeetcodeSolution",
        back_populates="problem",
        cascade="all, delete-orphan",
        order_by="LeetcodeSolution.position",
    )
    resources = relationship(
        "ProblemResource",
        back_populates="problem",
        cascade="all, delete-orphan",
        order_by="ProblemResource.position",
    )
