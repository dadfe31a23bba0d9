import secrets

from pydantic_settings import BaseSettings


def _generate_dev_secret() -> str:
    """Generate a random secret for local development only."""
    return secrets.token_hex(32)


class Settings(BaseSettings):
    # App
    app_name: str = "Study Assistant API"
    environment: str = "development"  # development, production
    log_level: str = ""  # DEBUG, INFO, WARNING, ERROR, CRITICAL (empty = auto based on environment)
    log_to_file: bool = True  # Enable file logging
    port: int = 5001

    # Database (SQLite for local dev, PostgreSQL for production)
    database_url: str = "sqlite:///./study_assistant.db"

    # Supabase: identity provider + object storage
    supabase_url: str = ""
    supabase_anon_key: str = ""  # Public key, only used by scripts/get_token.py
    supabase_service_key: str = ""  # Service role key for storage access
    storage_bucket: str = "materials"

    # Supabase access tokens are HS256-signed with the project's JWT secret.
    # No default; in development a random key is generated per-process if not set.
    supabase_jwt_secret: str = ""
    supabase_jwt_audience: str = "authenticated"
    algorithm: str = "HS256"

    # Shared secret sent by the Supabase auth webhook
    supabase_webhook_secret: str = ""

    # Anthropic Claude
    anthropic_api_key: str = ""
    claude_model: str = "claude-sonnet-4-5-20250929"
    generation_timeout_seconds: float = 60.0
    quiz_num_questions: int = 5
    max_context_chars: int = 100_000

    # Rate limiting (generation endpoints only)
    rate_limit_enabled: bool = True
    generation_rate_limit: str = "20/minute"

    # Frontend
    frontend_url: str = "http://localhost:5173"

    # CORS (comma-separated origins, empty = localhost defaults in development)
    allowed_origins: str = ""

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()

# Validate secrets
_KNOWN_WEAK_KEYS = {"your-super-secret-jwt-token", "changeme", "secret", ""}

if settings.supabase_jwt_secret in _KNOWN_WEAK_KEYS:
    if settings.environment == "production":
        raise RuntimeError(
            "SUPABASE_JWT_SECRET is not set or uses a known weak default. "
            "Copy the JWT secret from the Supabase project settings."
        )
    # Development: no externally issued token will verify against this key
    settings.supabase_jwt_secret = _generate_dev_secret()

if not settings.supabase_webhook_secret and settings.environment == "production":
    raise RuntimeError("SUPABASE_WEBHOOK_SECRET must be set in production.")
