import enum

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text, Index, text
from sqlalchemy.sql import func

from app.db.database import Base


class GeneratedContentType(str, enum.Enum):
    SUMMARY = "summary"
    QUESTIONS = "questions"
    FLASHCARDS = "flashcards"
    CHAT = "chat"


# Types served through get-or-generate; at most one row per (material, type)
CACHED_TYPES = (GeneratedContentType.SUMMARY.value, GeneratedContentType.QUESTIONS.value)

_CACHED_TYPES_CLAUSE = text("type IN ('summary', 'questions')")


class GeneratedContent(Base):
    __tablename__ = "generated_content"

    id = Column(Integer, primary_key=True, index=True)
    material_id = Column(Integer, ForeignKey("materials.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    type = Column(String(20), nullable=False)
    content = Column(Text, nullable=False)  # Plain text, or a JSON string for quizzes and chat transcripts

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("ix_generated_content_material", "material_id", "created_at"),
        Index(
            "uq_generated_content_cache_key",
            "material_id",
            "type",
            unique=True,
            sqlite_where=_CACHED_TYPES_CLAUSE,
            postgresql_where=_CACHED_TYPES_CLAUSE,
        ),
    )
