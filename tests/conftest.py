from __future__ import annotations

import os
import shutil
import tempfile
from collections.abc import Iterator
from pathlib import Path

_TMP_ROOT = Path(tempfile.mkdtemp(prefix="recruitdesk-tests-"))
BLOB_DIR = _TMP_ROOT / "blobs"

os.environ.update(
    {
        "APP_ENV": "test",
        "DATABASE_URL": f"sqlite:///{(_TMP_ROOT / 'test.db').as_posix()}",
        "DATA_DIR": str(_TMP_ROOT),
        "MIGRATION_DIR": str(_TMP_ROOT / "migration"),
        "CV_IMPORT_DIR": str(_TMP_ROOT / "migration-cvs"),
        "BLOB_BACKEND": "local",
        "BLOB_LOCAL_DIR": str(BLOB_DIR),
        "BLOB_PUBLIC_BASE_URL": "http://testserver/files",
        "SECRET_KEY": "test-secret-key",
        "ADMIN_USERNAME": "admin",
        "ADMIN_PASSWORD": "admin-pass",
        "ADMIN_USERS": "viewer:viewer-pass:viewer",
        "BEARER_TOKEN": "machine-token",
        "LEGACY_API_TOKEN": "legacy-token",
        "LEGACY_API_PATH": "legacy-path",
        "LEGACY_UPLOAD_KEY": "legacy-upload-key",
        "CV_FILE_BASE_URL": "https://cdn.example.com/cvs",
        "SUBMISSION_RATE_PER_MIN": "100",
        "LEGACY_UPLOAD_RATE_PER_MIN": "5",
        "LOGIN_RATE_PER_MIN": "100",
    }
)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from recruitdesk.api.app import create_app  # noqa: E402
from recruitdesk.db.base import Base  # noqa: E402
from recruitdesk.db.session import SessionLocal, engine  # noqa: E402

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<<>>\nendobj\n%%EOF\n"
BEARER = {"Authorization": "Bearer machine-token"}


@pytest.fixture(autouse=True)
def reset_db() -> Iterator[None]:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    shutil.rmtree(BLOB_DIR, ignore_errors=True)
    BLOB_DIR.mkdir(parents=True, exist_ok=True)
    yield


@pytest.fixture()
def db() -> Iterator[Session]:
    with SessionLocal() as session:
        yield session


@pytest.fixture()
def client() -> TestClient:
    return TestClient(create_app())


@pytest.fixture()
def admin_client(client: TestClient) -> TestClient:
    response = client.post("/api/auth/admin", json={"username": "admin", "password": "admin-pass"})
    assert response.status_code == 200
    return client


@pytest.fixture()
def blob_dir() -> Path:
    return BLOB_DIR


@pytest.fixture()
def pdf_bytes() -> bytes:
    return PDF_BYTES


@pytest.fixture()
def bearer_headers() -> dict[str, str]:
    return dict(BEARER)
