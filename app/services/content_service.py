"""
Generated content: get-or-generate caching for summaries and quizzes,
uncached grounded Q&A, and saved chat transcripts.
"""

import json

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.errors import ExtractionFailed, ValidationError
from app.core.logging_config import get_logger
from app.models.generated_content import CACHED_TYPES, GeneratedContent, GeneratedContentType
from app.models.material import Material
from app.models.user import User
from app.schemas.chat import ChatTurn
from app.services.ai_service import GenerationClient
from app.services.file_processor import extract_text
from app.services.storage_service import StorageService

logger = get_logger(__name__)


def find_cached_content(db: Session, material_id: int, content_type: str) -> GeneratedContent | None:
    return (
        db.query(GeneratedContent)
        .filter(
            GeneratedContent.material_id == material_id,
            GeneratedContent.type == content_type,
        )
        .order_by(GeneratedContent.id.asc())
        .first()
    )


async def load_material_text(material: Material, storage: StorageService) -> str:
    """Download the stored file and extract its text off the event loop."""
    file_content = await run_in_threadpool(storage.download, material.storage_path)
    try:
        return await run_in_threadpool(extract_text, file_content, material.file_type)
    except ExtractionFailed as e:
        logger.warning(f"File parsing failed for material {material.id}: {e.error}")
        raise


async def _generate(content_type: str, text: str, generator: GenerationClient) -> str:
    if content_type == GeneratedContentType.SUMMARY.value:
        return await generator.summarize(text)
    questions = await generator.generate_quiz(text, settings.quiz_num_questions)
    return json.dumps([q.model_dump(by_alias=True) for q in questions])


async def get_or_generate(
    db: Session,
    material: Material,
    user: User,
    content_type: str,
    storage: StorageService,
    generator: GenerationClient,
) -> tuple[GeneratedContent, bool]:
    """Return the cached artifact for (material, type), generating it on a miss.

    Returns ``(row, created)``. When two requests race on a miss, the unique
    cache-key index rejects the second insert and the committed row is
    returned as a hit.
    """
    if content_type not in CACHED_TYPES:
        raise ValueError(f"{content_type} is not a cached content type")

    cached = await run_in_threadpool(find_cached_content, db, material.id, content_type)
    if cached:
        logger.info(f"CACHE HIT: {content_type} exists for material {material.id}")
        return cached, False

    logger.info(f"CACHE MISS: generating {content_type} for material {material.id}")
    text = await load_material_text(material, storage)
    content = await _generate(content_type, text, generator)

    return await run_in_threadpool(_store_generated, db, material, user, content_type, content)


def _store_generated(
    db: Session,
    material: Material,
    user: User,
    content_type: str,
    content: str,
) -> tuple[GeneratedContent, bool]:
    """Insert the generated row; if a concurrent request committed first, return its row."""
    row = GeneratedContent(
        material_id=material.id,
        user_id=user.id,
        type=content_type,
        content=content,
    )
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        winner = find_cached_content(db, material.id, content_type)
        if winner is None:
            raise
        logger.info(f"Concurrent {content_type} generation for material {material.id}; keeping row {winner.id}")
        return winner, False

    db.refresh(row)
    return row, True


async def answer_question(
    material: Material,
    question: str | None,
    history: list[ChatTurn] | None,
    storage: StorageService,
    generator: GenerationClient,
) -> str:
    """Answer a question from the material's text. Never cached."""
    if not question or not question.strip():
        raise ValidationError("A question is required.")

    context_text = await load_material_text(material, storage)
    return await generator.answer(context_text, history or [], question.strip())


def save_chat_session(
    db: Session,
    material: Material,
    user: User,
    history: list[ChatTurn] | None,
) -> GeneratedContent:
    """Store a conversation transcript. Multiple transcripts per material are allowed."""
    if not history:
        raise ValidationError("A non-empty chat history is required.")

    transcript = json.dumps([turn.model_dump() for turn in history])
    row = GeneratedContent(
        material_id=material.id,
        user_id=user.id,
        type=GeneratedContentType.CHAT.value,
        content=transcript,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info(f"Saved chat session ({len(history)} turns) for material {material.id}")
    return row
