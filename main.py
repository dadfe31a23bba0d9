import time
import traceback
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy import inspect as sa_inspect, text
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.errors import AppError
from app.core.logging_config import setup_logging, get_logger, RequestLogger
from app.core.middleware import SecurityHeadersMiddleware
from app.core.rate_limit import limiter
from app.db.database import Base, engine
from app.api.routes import users, materials, chat

# Initialize logging first (auto-determines level based on environment)
setup_logging(
    app_name="study_assistant",
    log_level=settings.log_level,  # Empty = auto (DEBUG in dev, WARNING in prod)
    environment=settings.environment,
    enable_console=True,
    enable_file=settings.log_to_file,
)

logger = get_logger(__name__)
request_logger = RequestLogger(get_logger("study_assistant.requests"))

logger.info("Starting study assistant API...")

# Create database tables
from app.models import User, Material, GeneratedContent  # noqa: F401  register tables on Base
Base.metadata.create_all(bind=engine)
logger.info("Database tables created/verified")


def _apply_cache_key_migration(conn, inspector):
    """Install the (material_id, type) cache-key index on databases created before it existed.

    create_all() does not add indexes to existing tables. Duplicate cached
    rows are removed first, keeping the earliest.
    """
    if "generated_content" not in inspector.get_table_names():
        return
    existing_indexes = {idx["name"] for idx in inspector.get_indexes("generated_content") if idx.get("name")}
    if "uq_generated_content_cache_key" in existing_indexes:
        return

    logger.info("Applying generated_content cache-key migration...")
    conn.execute(text(
        "DELETE FROM generated_content WHERE type IN ('summary', 'questions') AND id NOT IN ("
        "SELECT MIN(id) FROM generated_content WHERE type IN ('summary', 'questions') "
        "GROUP BY material_id, type)"
    ))
    conn.execute(text(
        "CREATE UNIQUE INDEX IF NOT EXISTS uq_generated_content_cache_key "
        "ON generated_content (material_id, type) WHERE type IN ('summary', 'questions')"
    ))
    logger.info("Cache-key migration complete")


with engine.connect() as conn:
    _apply_cache_key_migration(conn, sa_inspect(engine))
    conn.commit()


app = FastAPI(
    title=settings.app_name,
    description="Study assistant backend: materials, AI summaries, quizzes and document Q&A",
    version="0.1.0",
)

# Rate limiting
app.state.limiter = limiter


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    reason = None
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        reason = f"{location}: {first.get('msg')}" if location else first.get("msg")
    content = {"message": "Invalid request"}
    if reason:
        content["error"] = reason
    return JSONResponse(status_code=400, content=content)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(status_code=429, content={"message": "Too many requests", "error": str(exc.detail)})


# Unhandled errors: full traceback to the log, generic 500 to the client
@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Catch all unhandled exceptions, log full traceback, return 500."""
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}: {exc}\n"
        f"{traceback.format_exc()}"
    )
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests with timing."""
    start_time = time.time()
    client_ip = request.client.host if request.client else "unknown"

    response = await call_next(request)

    duration_ms = (time.time() - start_time) * 1000
    request_logger.log_request(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=duration_ms,
        client_ip=client_ip,
        user_id=getattr(request.state, "user_id", None),
    )
    return response


# CORS: explicit origins only, since credentials are allowed
if settings.allowed_origins:
    cors_origins = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
elif settings.environment == "production":
    cors_origins = [settings.frontend_url]
else:
    cors_origins = ["http://localhost:5173", "http://localhost:3000", settings.frontend_url]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

app.add_middleware(SecurityHeadersMiddleware)

app.include_router(users.router, prefix="/api")
app.include_router(materials.router, prefix="/api")
app.include_router(chat.router, prefix="/api")

logger.info("API routes registered at /api")


@app.get("/api/health")
def health_check():
    logger.debug("Health check requested")
    return {"status": "UP", "timestamp": datetime.now(timezone.utc).isoformat()}


@app.on_event("startup")
async def startup_event():
    """Build the process-wide storage and generation clients."""
    from app.services.ai_service import create_generation_client
    from app.services.storage_service import create_storage_service

    try:
        app.state.storage = create_storage_service()
    except ValueError as e:
        app.state.storage = None
        logger.warning(f"Storage disabled: {e}")

    try:
        app.state.generation_client = create_generation_client()
    except ValueError as e:
        app.state.generation_client = None
        logger.warning(f"AI generation disabled: {e}")

    logger.info("Study assistant API started successfully")


@app.on_event("shutdown")
async def shutdown_event():
    client = getattr(app.state, "generation_client", None)
    if client is not None:
        await client.client.close()
    logger.info("Study assistant API shutting down")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=settings.port)
