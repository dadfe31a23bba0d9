from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, require_webhook_secret
from app.db.database import get_db
from app.models.user import User
from app.schemas.user import MessageResponse, SupabaseWebhookEvent, UserRegister, UserResponse
from app.services.user_service import register_user, sync_identity_user

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(data: UserRegister, db: Session = Depends(get_db)):
    """Create the local user after sign-up with the identity provider.

    Unauthenticated; production deployments should rely on the webhook instead.
    """
    return register_user(db, data.auth_id, data.email)


@router.post(
    "/sync-supabase",
    response_model=MessageResponse,
    dependencies=[Depends(require_webhook_secret)],
)
def sync_supabase_user(event: SupabaseWebhookEvent, db: Session = Depends(get_db)):
    """Auth webhook: mirror newly created Supabase users into the local table."""
    if event.type != "INSERT" or event.record is None:
        return MessageResponse(message="Event ignored")

    sync_identity_user(db, event.record.id, event.record.email)
    return MessageResponse(message="User synced successfully.")


@router.get("/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user)):
    return current_user
