import os
import tempfile
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from jose import jwt

# Configure before any app module is imported (test modules import app code at collection)
_TEST_DIR = tempfile.mkdtemp(prefix="study_assistant_tests_")
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DIR}/test_study_assistant.db"
os.environ["ENVIRONMENT"] = "development"
os.environ["SUPABASE_JWT_SECRET"] = "pytest-jwt-secret-3f9a1c7e5b2d4a6c8e0f"
os.environ["SUPABASE_WEBHOOK_SECRET"] = "pytest-webhook-secret"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_TO_FILE"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["QUIZ_NUM_QUESTIONS"] = "5"
for _var in ("SUPABASE_URL", "SUPABASE_SERVICE_KEY", "ANTHROPIC_API_KEY"):
    os.environ.pop(_var, None)

WEBHOOK_SECRET = os.environ["SUPABASE_WEBHOOK_SECRET"]


class FakeStorage:
    """In-memory stand-in for the Supabase storage bucket."""

    def __init__(self):
        self.files: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self.downloads: list[str] = []
        self.fail_delete = False

    def download(self, path: str) -> bytes:
        from app.core.errors import StorageUnavailable

        self.downloads.append(path)
        if path not in self.files:
            raise StorageUnavailable()
        return self.files[path]

    def delete(self, path: str) -> None:
        from app.core.errors import StorageDeleteFailed

        if self.fail_delete:
            raise StorageDeleteFailed(error="bucket unavailable")
        self.deleted.append(path)
        self.files.pop(path, None)


def _fake_generation_client_cls():
    from app.services.ai_service import GenerationClient

    class FakeGenerationClient(GenerationClient):
        """Real prompt building and parsing; canned model output."""

        def __init__(self):
            super().__init__(client=None, model="fake-model")
            self.responses: list[str] = []
            self.default_response = "Summary: X, Y, Z."
            self.calls: list[dict] = []
            self.error: Exception | None = None
            self.before_return = None

        async def generate_content(self, messages, system_prompt, max_tokens=2000, temperature=0.7):
            self.calls.append({"messages": messages, "system": system_prompt})
            if self.error is not None:
                raise self.error
            if self.before_return is not None:
                self.before_return()
            if self.responses:
                return self.responses.pop(0)
            return self.default_response

    return FakeGenerationClient


@pytest.fixture(scope="session")
def app():
    import main as main_module
    from app.db.database import Base, engine

    Base.metadata.create_all(bind=engine)
    return main_module.app


@pytest.fixture()
def db_session(app):
    from app.db.database import SessionLocal
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def storage():
    return FakeStorage()


@pytest.fixture()
def generator():
    return _fake_generation_client_cls()()


@pytest.fixture()
def client(app, storage, generator):
    from app.api.deps import get_generation_client, get_optional_storage_service

    app.dependency_overrides[get_optional_storage_service] = lambda: storage
    app.dependency_overrides[get_generation_client] = lambda: generator
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def make_token(auth_id: str, **overrides) -> str:
    from app.core.config import settings

    claims = {
        "sub": auth_id,
        "aud": "authenticated",
        "role": "authenticated",
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
    }
    claims.update(overrides)
    return jwt.encode(claims, settings.supabase_jwt_secret, algorithm="HS256")


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {make_token(user.auth_id)}"}


@pytest.fixture()
def make_user(db_session):
    from app.models.user import User

    def _make(prefix: str = "user"):
        suffix = uuid.uuid4().hex[:10]
        user = User(auth_id=f"{prefix}-{suffix}", email=f"{prefix}_{suffix}@test.com")
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture()
def make_material(client, storage):
    """Register a material through the API and put its bytes in fake storage."""

    def _make(user, content: bytes = b"Course covers X, Y, Z.", file_type: str = "txt", file_name=None):
        path = f"{user.auth_id}/{uuid.uuid4().hex[:8]}.{file_type}"
        storage.files[path] = content
        resp = client.post("/api/materials", json={
            "fileName": file_name or f"notes.{file_type}",
            "storagePath": path,
            "fileType": file_type,
        }, headers=auth_headers(user))
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _make
