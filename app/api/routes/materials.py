from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from app.api.deps import (
    get_current_user,
    get_generation_client,
    get_optional_storage_service,
    get_owned_material,
    get_storage_service,
)
from app.core.config import settings
from app.core.rate_limit import limiter
from app.db.database import get_db
from app.models.generated_content import GeneratedContentType
from app.models.material import Material
from app.models.user import User
from app.schemas.chat import SaveChatRequest
from app.schemas.generated_content import GeneratedContentResponse
from app.schemas.material import MaterialCreate, MaterialResponse, MaterialWithContentResponse
from app.schemas.user import MessageResponse
from app.services.ai_service import GenerationClient
from app.services.content_service import get_or_generate, save_chat_session
from app.services.material_service import (
    attach_generated_content,
    delete_material,
    list_generated_content,
    list_materials,
    register_material,
)
from app.services.storage_service import StorageService

router = APIRouter(prefix="/materials", tags=["Materials"])


@router.post("", response_model=MaterialResponse, status_code=status.HTTP_201_CREATED)
def create_material(
    data: MaterialCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Register a file the client has already uploaded to storage."""
    return register_material(db, current_user, data.file_name, data.storage_path, data.file_type)


@router.get("", response_model=list[MaterialResponse])
def get_materials(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return list_materials(db, current_user)


# Declared before /{material_id} so the literal path wins
@router.get("/all-with-content", response_model=list[MaterialWithContentResponse])
def get_materials_with_content(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """All of the caller's materials, newest first, each with its generated content."""
    return attach_generated_content(db, list_materials(db, current_user))


@router.get("/{material_id}", response_model=MaterialWithContentResponse)
def get_material(
    material: Material = Depends(get_owned_material),
    db: Session = Depends(get_db),
):
    return attach_generated_content(db, [material])[0]


@router.delete("/{material_id}", response_model=MessageResponse)
def remove_material(
    material_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    storage: StorageService | None = Depends(get_optional_storage_service),
):
    """Delete a material with its generated content and stored file. Idempotent."""
    if not delete_material(db, material_id, current_user, storage):
        return MessageResponse(message="Material not found, may have already been deleted.")
    return MessageResponse(message="Material and all associated content deleted successfully.")


@router.post("/{material_id}/summarize", response_model=GeneratedContentResponse)
@limiter.limit(settings.generation_rate_limit)
async def summarize_material(
    request: Request,
    response: Response,
    material: Material = Depends(get_owned_material),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    storage: StorageService = Depends(get_storage_service),
    generator: GenerationClient = Depends(get_generation_client),
):
    """Return the cached summary (200) or generate and store one (201)."""
    row, created = await get_or_generate(
        db, material, current_user, GeneratedContentType.SUMMARY.value, storage, generator
    )
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return row


@router.post("/{material_id}/generate-quiz", response_model=GeneratedContentResponse)
@limiter.limit(settings.generation_rate_limit)
async def generate_quiz_for_material(
    request: Request,
    response: Response,
    material: Material = Depends(get_owned_material),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    storage: StorageService = Depends(get_storage_service),
    generator: GenerationClient = Depends(get_generation_client),
):
    """Return the cached quiz (200) or generate and store one (201).

    ``content`` is a JSON-encoded array of {question, options, correctAnswer}.
    """
    row, created = await get_or_generate(
        db, material, current_user, GeneratedContentType.QUESTIONS.value, storage, generator
    )
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return row


@router.get("/{material_id}/content", response_model=list[GeneratedContentResponse])
def get_generated_content_for_material(
    material: Material = Depends(get_owned_material),
    db: Session = Depends(get_db),
):
    return list_generated_content(db, material)


@router.post(
    "/{material_id}/save-chat",
    response_model=GeneratedContentResponse,
    status_code=status.HTTP_201_CREATED,
)
def save_chat(
    data: SaveChatRequest,
    material: Material = Depends(get_owned_material),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Store a chat transcript for later review."""
    return save_chat_session(db, material, current_user, data.history)
