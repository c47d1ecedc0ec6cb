import os
import shutil
import tempfile
import uuid

import pytest

# Settings are read once at import time, so the environment goes first.
_TMP_DIR = tempfile.mkdtemp(prefix="tract-library-tests-")
MEDIA_ROOT = os.path.join(_TMP_DIR, "media")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["MEDIA_ROOT"] = MEDIA_ROOT
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["DEFAULT_ADMIN_EMAIL"] = ""
os.environ["DEFAULT_ADMIN_PASSWORD"] = ""
os.environ["MAIL_API_URL"] = ""

from fastapi.testclient import TestClient  # noqa: E402

from app.main import app  # noqa: E402
from app.application.services.auth_service import create_access_token, create_user  # noqa: E402
from app.domain.models.tract import Tract  # noqa: E402
from app.infrastructure.database import Base, SessionLocal, engine  # noqa: E402
from app.infrastructure.storage import TractFileStorage  # noqa: E402

PDF_BYTES = b"%PDF-1.4\n1 0 obj << /Type /Catalog >> endobj\ntrailer << >>\n%%EOF\n"


def pytest_sessionfinish(session, exitstatus):
    engine.dispose()
    shutil.rmtree(_TMP_DIR, ignore_errors=True)


@pytest.fixture(autouse=True)
def reset_state():
    """Fresh schema and an empty media root for every test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def client():
    # Entering the context runs the lifespan, which seeds the default categories.
    with TestClient(app) as c:
        yield c


@pytest.fixture
def storage():
    return TractFileStorage(MEDIA_ROOT)


@pytest.fixture
def make_user(db):
    def _make(role="user", email=None, password="password123", name=None):
        email = email or f"{role}-{uuid.uuid4().hex[:8]}@example.com"
        return create_user(db, email=email, password=password, name=name, role=role)
    return _make


@pytest.fixture
def auth_headers():
    def _headers(user):
        token = create_access_token(data={"sub": user.email})
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def make_tract(db, storage):
    def _make(author, title="The Roman Road", status="approved", with_file=True, **fields):
        if with_file:
            stored = storage.save(PDF_BYTES)
            file_url = stored.file_url
        else:
            file_url = "/uploads/tracts/missing.pdf"
        tract = Tract(
            title=title,
            description=fields.pop("description", "Salvation explained through Romans"),
            author_id=author.id,
            denomination=fields.pop("denomination", "Baptist"),
            language=fields.pop("language", "en"),
            file_url=file_url,
            file_name=fields.pop("file_name", "roman-road.pdf"),
            file_size=len(PDF_BYTES),
            status=status,
            **fields,
        )
        db.add(tract)
        db.commit()
        db.refresh(tract)
        return tract
    return _make
