from datetime import datetime

from app.schemas.base import CamelModel


class UserRegister(CamelModel):
    # Optional so that missing fields surface as a 400 from the handler
    auth_id: str | None = None
    email: str | None = None


class UserResponse(CamelModel):
    id: int
    auth_id: str
    email: str
    created_at: datetime | None = None


class WebhookRecord(CamelModel):
    id: str | None = None
    email: str | None = None


class SupabaseWebhookEvent(CamelModel):
    """Database webhook payload sent by Supabase on auth.users changes."""
    type: str | None = None
    table: str | None = None
    record: WebhookRecord | None = None


class MessageResponse(CamelModel):
    message: str
