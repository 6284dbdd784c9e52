"""Solution model attached to a LeetcodeProblem."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base, utcnow


class LeetcodeSolution(Base):
    """One language/approach solution; `is_optimal` is advisory, not exclusive."""

    __tablename__ = "leetcode_solutions"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    problem_id = Column(String, ForeignKey("leetcode_problems.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    language = Column(String, nullable=False, index=True)
    code = Column(Text, nullable=False)
    approach = Column(String, nullable=True)
    time_complexity = Column(String, nullable=True)
    space_complexity = Column(String, nullable=True)
    explanation = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    is_optimal = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    problem = relationship("LeetcodeProblem", back_populates="solutions")
