import enum

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Index
from sqlalchemy.sql import func

from app.db.database import Base


class FileType(str, enum.Enum):
    PDF = "pdf"
    DOCX = "docx"
    TXT = "txt"


class Material(Base):
    """Metadata for a document the user uploaded to object storage."""

    __tablename__ = "materials"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    file_name = Column(String(255), nullable=False)
    storage_path = Column(String(1024), unique=True, nullable=False)  # Object key inside the storage bucket
    # Store as string for cross-DB compatibility (SQLite/PostgreSQL)
    file_type = Column(String(10), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        Index("ix_materials_user_created", "user_id", "created_at"),
    )
