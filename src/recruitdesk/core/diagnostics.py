from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from recruitdesk.core.blob_store import BlobStore
from recruitdesk.db.models import Application, Vacancy
from recruitdesk.errors import UpstreamError

logger = logging.getLogger(__name__)

SAMPLE_SIZE = 5


def database_sanity(session: Session, sample_size: int = SAMPLE_SIZE) -> dict[str, Any]:
    vacancies = session.scalars(select(Vacancy).order_by(Vacancy.id).limit(sample_size)).all()
    applications = session.scalars(
        select(Application).order_by(Application.created_at.desc()).limit(sample_size)
    ).all()
    return {
        "vacancies_count": int(session.scalar(select(func.count()).select_from(Vacancy)) or 0),
        "applications_count": int(session.scalar(select(func.count()).select_from(Application)) or 0),
        "vacancies_sample": [
            {"id": row.id, "job_title": row.job_title, "status": row.status, "url": row.url} for row in vacancies
        ],
        "applications_sample": [
            {"id": row.id, "email": row.email, "job_title": row.job_title, "status": row.status}
            for row in applications
        ],
    }


def check_database(session: Session) -> dict[str, Any]:
    try:
        session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("Database check failed: %s", exc)
        return {"ok": False, "error": str(exc)}
    return {"ok": True}


def check_blob_store(store: BlobStore) -> dict[str, Any]:
    filename = f"connection-test-{int(datetime.now(UTC).timestamp() * 1000)}.txt"
    try:
        url = store.put(filename, b"ok", "text/plain")
    except UpstreamError as exc:
        logger.error("Blob upload check failed: %s", exc.__cause__ or exc)
        return {"ok": False, "error": exc.message}

    try:
        store.delete(url)
    except UpstreamError as exc:
        logger.warning("Could not delete test blob %s: %s", url, exc.__cause__ or exc)
        return {"ok": True, "warning": "test blob not deleted"}
    return {"ok": True}
