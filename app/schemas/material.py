from datetime import datetime

from app.schemas.base import CamelModel
from app.schemas.generated_content import GeneratedContentResponse


class MaterialCreate(CamelModel):
    """Registration of a file the client already uploaded to storage."""
    file_name: str | None = None
    storage_path: str | None = None
    file_type: str | None = None


class MaterialResponse(CamelModel):
    id: int
    user_id: int
    file_name: str
    storage_path: str
    file_type: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class MaterialWithContentResponse(MaterialResponse):
    generated_content: list[GeneratedContentResponse] = []
