"""Upload model for user-uploaded files."""

from sqlalchemy import Column, String, DateTime, ForeignKey, Integer
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from database import Base, utcnow


class Upload(Base):
    """Stored file (cover image, interview document, sheet) and its public url."""

    __tablename__ = "uploads"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    stored_name = Column(String, nullable=False, unique=True)
    public_url = Column(String, nullable=False)
    original_filename = Column(String, nullable=True)
    file_size_bytes = Column(Integer, nullable=False, default=0)
    mime_type = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    # Relationships
    user = relationship("User")
