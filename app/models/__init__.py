from app.models.user import User
from app.models.material import Material, FileType
from app.models.generated_content import GeneratedContent, GeneratedContentType, CACHED_TYPES

__all__ = [
    "User",
    "Material",
    "FileType",
    "GeneratedContent",
    "GeneratedContentType",
    "CACHED_TYPES",
]
