"""User model."""

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from database import Base, utcnow

USER_ROLES = ("USER", "ADMIN")


class User(Base):
    """Local user record keyed by the identity provider's subject id."""

    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    external_id = Column(String, unique=True, nullable=False, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=True)
    role = Column(String, nullable=False, default="USER")  # USER, ADMIN
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    # Relationships
    blogs = relationship("Blog", back_populates="author")
    notes = relationship("Note", back_populates="author")
    leetcode_problems = relationship("LeetcodeProblem", back_populates="author")
    interview_resources = relationship("InterviewResource", back_populates="author")
    owned_rooms = relationship("StudyRoom", back_populates="owner")

    @property
    def is_admin(self) -> bool:
        return self.role == "ADMIN"
