"""
Material lifecycle and the ownership gate that guards every material access.

Gate order is existence first (404), then ownership (403). A non-owner can
therefore learn that an id exists; that is the accepted policy for this API.
"""

from collections import defaultdict

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import Forbidden, NotFound, StorageDeleteFailed, ValidationError
from app.core.logging_config import get_logger
from app.models.generated_content import GeneratedContent
from app.models.material import FileType, Material
from app.models.user import User
from app.services.file_processor import SUPPORTED_FILE_TYPES
from app.services.storage_service import StorageService

logger = get_logger(__name__)


def ensure_owner(resource, user: User) -> None:
    if resource.user_id != user.id:
        logger.warning(f"User {user.id} denied access to {type(resource).__name__} {resource.id}")
        raise Forbidden()


def get_material_for_user(db: Session, material_id: int, user: User) -> Material:
    """Load a material the user owns. NotFound if absent, Forbidden if not theirs."""
    material = db.query(Material).filter(Material.id == material_id).first()
    if not material:
        raise NotFound("Material not found")
    ensure_owner(material, user)
    return material


def register_material(
    db: Session,
    user: User,
    file_name: str | None,
    storage_path: str | None,
    file_type: str | None,
) -> Material:
    if not file_name or not storage_path or not file_type:
        raise ValidationError("fileName, storagePath, and fileType are required")

    normalized_type = file_type.strip().lower()
    if normalized_type not in SUPPORTED_FILE_TYPES:
        raise ValidationError(
            "Invalid fileType",
            error=f"Must be one of: {', '.join(t.value for t in FileType)}",
        )

    if db.query(Material.id).filter(Material.storage_path == storage_path).first():
        raise ValidationError("A material with this storagePath already exists")

    material = Material(
        user_id=user.id,
        file_name=file_name,
        storage_path=storage_path,
        file_type=normalized_type,
    )
    db.add(material)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationError("A material with this storagePath already exists")
    db.refresh(material)
    logger.info(f"Registered material {material.id} for user {user.id} | type={normalized_type}")
    return material


def list_materials(db: Session, user: User) -> list[Material]:
    return (
        db.query(Material)
        .filter(Material.user_id == user.id)
        .order_by(Material.created_at.desc(), Material.id.desc())
        .all()
    )


def list_generated_content(db: Session, material: Material) -> list[GeneratedContent]:
    return (
        db.query(GeneratedContent)
        .filter(GeneratedContent.material_id == material.id)
        .order_by(GeneratedContent.created_at.asc(), GeneratedContent.id.asc())
        .all()
    )


def attach_generated_content(db: Session, materials: list[Material]) -> list[dict]:
    """Join each material with its generated content using one explicit query."""
    if not materials:
        return []

    rows = (
        db.query(GeneratedContent)
        .filter(GeneratedContent.material_id.in_([m.id for m in materials]))
        .order_by(GeneratedContent.created_at.asc(), GeneratedContent.id.asc())
        .all()
    )
    by_material = defaultdict(list)
    for row in rows:
        by_material[row.material_id].append(row)

    return [
        {
            "id": m.id,
            "user_id": m.user_id,
            "file_name": m.file_name,
            "storage_path": m.storage_path,
            "file_type": m.file_type,
            "created_at": m.created_at,
            "updated_at": m.updated_at,
            "generated_content": by_material[m.id],
        }
        for m in materials
    ]


def delete_material(
    db: Session,
    material_id: int,
    user: User,
    storage: StorageService | None,
) -> bool:
    """Delete a material, its generated content and its stored file.

    Returns False when the material was already gone. A failed storage delete
    is logged and does not stop the database cleanup.
    """
    material = db.query(Material).filter(Material.id == material_id).first()
    if not material:
        return False
    ensure_owner(material, user)

    deleted = (
        db.query(GeneratedContent)
        .filter(GeneratedContent.material_id == material.id)
        .delete(synchronize_session=False)
    )
    logger.info(f"Deleted {deleted} generated content rows for material {material.id}")

    if storage is None:
        logger.warning(f"Storage not configured; leaving {material.storage_path} in place")
    else:
        try:
            storage.delete(material.storage_path)
        except StorageDeleteFailed as e:
            logger.error(f"Error deleting file from storage: {material.storage_path} | {e.error}")

    db.delete(material)
    db.commit()
    logger.info(f"Deleted material record {material_id}")
    return True
