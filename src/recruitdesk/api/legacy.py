from __future__ import annotations

import base64
import binascii
import hmac
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from recruitdesk.api.deps import get_app_settings, get_blob_store, get_db, rate_limited
from recruitdesk.api.schemas import LegacyUploadResponse
from recruitdesk.config import Settings
from recruitdesk.core.admin_queries import AdminQueryService
from recruitdesk.core.blob_store import BlobStore, filename_from_url
from recruitdesk.core.uploads import UploadManager, sniff_content_type
from recruitdesk.errors import AuthError
from recruitdesk.types import UploadedFile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["legacy"])

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}
LEGACY_PATHS = frozenset({"/api/legacy", "/api/upload/legacy"})


def _matches(supplied: str | None, expected: str) -> bool:
    if not expected or not supplied:
        return False
    return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))


def decode_legacy_body(body: bytes) -> bytes:
    """Old clients post the file base64 encoded; anything that is not valid base64 is taken as raw bytes."""
    compact = b"".join(body.split())
    if not compact:
        return b""
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError):
        return body


@router.get("/legacy")
def legacy_read(
    token: str | None = None,
    path: str | None = None,
    action: str = "applicants",
    job: str | None = None,
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db),
):
    if not _matches(token, settings.legacy_api_token) or not _matches(path, settings.legacy_api_path):
        raise AuthError("Unauthorized.")

    queries = AdminQueryService(db)
    if action == "vacancies":
        return queries.legacy_vacancies()
    if action == "emptyMail":
        return queries.legacy_empty_mail()
    if not job:
        return JSONResponse({"error": "Missing 'job' parameter."}, status_code=400)
    return queries.legacy_unranked_applicants(job)


@router.post("/upload/legacy", dependencies=[Depends(rate_limited("legacy_upload"))])
async def legacy_upload(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    api_key = request.query_params.get("api_key") or request.headers.get("api_key")
    if not _matches(api_key, settings.legacy_upload_key):
        raise AuthError("Invalid API key or format")

    job_title = request.query_params.get("job_title")
    if not job_title:
        return JSONResponse({"status": "error", "message": "Missing Job_Title"}, status_code=400)

    content = decode_legacy_body(await request.body())
    upload = None
    if content:
        upload = UploadedFile(content=content, content_type=sniff_content_type(content))

    fields = {"job_title": job_title, "email": "", "phone": "", "source": "web", "status": "pending"}
    manager = UploadManager(db, blob_store)
    application = await run_in_threadpool(manager.create_application_with_upload, fields, upload)
    logger.info("Legacy upload created application %s for %s", application.id, job_title)

    file_url = application.cv_file_url or ""
    return LegacyUploadResponse(
        file_id=application.id,
        file_name=filename_from_url(file_url) if file_url else "",
        file_url=file_url,
        job_title=job_title,
    ).model_dump(by_alias=True)
