"""Learning resource linked from a LeetcodeProblem."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base, utcnow

PROBLEM_RESOURCE_TYPES = ("ARTICLE", "VIDEO", "DOCUMENTATION", "GITHUB", "TUTORIAL", "BOOK", "COURSE")


class ProblemResource(Base):
    __tablename__ = "problem_resources"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    problem_id = Column(String, ForeignKey("leetcode_problems.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    title = Column(String, nullable=False)
    type = Column(String, nullable=False)
    url = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    problem = relationship("LeetcodeProblem", back_populates="resources")
