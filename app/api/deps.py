from fastapi import Depends, Header, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.errors import GenerationUnavailable, StorageUnavailable, Unauthenticated
from app.core.logging_config import get_logger
from app.core.security import decode_access_token, verify_webhook_secret
from app.db.database import get_db
from app.models.material import Material
from app.models.user import User
from app.services.ai_service import GenerationClient
from app.services.material_service import get_material_for_user
from app.services.storage_service import StorageService
from app.services.user_service import get_user_by_auth_id

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise Unauthenticated("Not authorized, no token", error="missing_token")

    auth_id = decode_access_token(credentials.credentials)
    user = get_user_by_auth_id(db, auth_id)
    request.state.user_id = user.id
    return user


def get_owned_material(
    material_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Material:
    """Path dependency: the material must exist and belong to the caller."""
    return get_material_for_user(db, material_id, current_user)


def get_optional_storage_service(request: Request) -> StorageService | None:
    return getattr(request.app.state, "storage", None)


def get_storage_service(
    storage: StorageService | None = Depends(get_optional_storage_service),
) -> StorageService:
    if storage is None:
        raise StorageUnavailable(error="Storage is not configured.")
    return storage


def get_generation_client(request: Request) -> GenerationClient:
    client = getattr(request.app.state, "generation_client", None)
    if client is None:
        raise GenerationUnavailable(error="AI service is not configured.")
    return client


def require_webhook_secret(x_supabase_webhook_secret: str | None = Header(None)) -> None:
    """Reject webhook calls without the shared secret before the body is validated."""
    if not verify_webhook_secret(x_supabase_webhook_secret):
        logger.warning("Unauthorized webhook attempt")
        raise Unauthenticated("Unauthorized", error="invalid_webhook_secret")
