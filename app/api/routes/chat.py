from fastapi import APIRouter, Depends, Request

from app.api.deps import get_generation_client, get_owned_material, get_storage_service
from app.core.config import settings
from app.core.rate_limit import limiter
from app.models.material import Material
from app.schemas.chat import ChatRequest, ChatResponse
from app.services.ai_service import GenerationClient
from app.services.content_service import answer_question
from app.services.storage_service import StorageService

router = APIRouter(prefix="/chat", tags=["Chat"])


@router.post("/{material_id}", response_model=ChatResponse)
@limiter.limit(settings.generation_rate_limit)
async def ask_question(
    request: Request,
    data: ChatRequest,
    material: Material = Depends(get_owned_material),
    storage: StorageService = Depends(get_storage_service),
    generator: GenerationClient = Depends(get_generation_client),
):
    """Answer a question about one material, replaying the client-held history."""
    answer = await answer_question(material, data.question, data.history, storage, generator)
    return ChatResponse(answer=answer)
