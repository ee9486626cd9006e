from __future__ import annotations

import os
import tempfile
from pathlib import Path

# Settings are read once at import time, so point them at a scratch area
# before anything from `app` is imported.
_TEST_ROOT = Path(tempfile.mkdtemp(prefix="filevault_test_"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_ROOT / 'test.db'}"
os.environ["UPLOAD_DIR"] = str(_TEST_ROOT / "uploads")
os.environ["JWT_ACCESS_SECRET"] = "test-access-secret"
os.environ["JWT_REFRESH_SECRET"] = "test-refresh-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SESSION_CLEANUP_ENABLED"] = "false"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.core.database import Base, SessionLocal, engine  # noqa: E402
from app.main import app  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_tables():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def signup(client: TestClient, **body) -> dict:
    body.setdefault("password", "secret1")
    resp = client.post("/api/signup", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
