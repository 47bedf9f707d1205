from __future__ import annotations

import json
import logging
import re
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from sqlalchemy.orm import Session

from recruitdesk.core.blob_store import BlobStore, filename_from_url
from recruitdesk.db.models import Application
from recruitdesk.db.repositories import Repository
from recruitdesk.errors import RecruitError, UpstreamError, ValidationError
from recruitdesk.types import UploadedFile, UploadReport

logger = logging.getLogger(__name__)

CV_MIME_EXTENSIONS: dict[str, str] = {
    "application/pdf": "pdf",
    "application/msword": "doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
}
EXTENSION_MIME_TYPES = {ext: mime for mime, ext in CV_MIME_EXTENSIONS.items()}

_UUID_PATTERN = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE)
_DRIVE_MARKERS = ("drive.google.com", "docs.google.com", "drive.googleusercontent.com")
MATCH_SAMPLE_SIZE = 50


def extension_for_mime(mime_type: str | None) -> str:
    return CV_MIME_EXTENSIONS.get((mime_type or "").split(";")[0].strip().lower(), "pdf")


def is_valid_cv_type(mime_type: str | None) -> bool:
    return (mime_type or "").split(";")[0].strip().lower() in CV_MIME_EXTENSIONS


def canonical_filename(application_id: str, extension: str) -> str:
    return f"{application_id}.{extension.lstrip('.').lower()}"


def extract_uuid(value: str) -> str | None:
    match = _UUID_PATTERN.search(value or "")
    return match.group(0) if match else None


def sniff_content_type(content: bytes) -> str:
    if content.startswith(b"%PDF"):
        return "application/pdf"
    if content.startswith(b"\xd0\xcf\x11\xe0"):
        return "application/msword"
    if content.startswith(b"PK\x03\x04"):
        return EXTENSION_MIME_TYPES["docx"]
    return "application/pdf"


def sanitized_email(value: str | None) -> str:
    return re.sub(r"[^a-z0-9]", "", (value or "").lower())


def is_google_drive_url(url: str | None) -> bool:
    if not url:
        return False
    return any(marker in url for marker in _DRIVE_MARKERS)


def load_file_map(path: Path | None) -> dict[str, str]:
    if not path or not path.is_file():
        return {}
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        logger.error("Invalid file map %s, ignoring", path)
        return {}
    return {str(key): str(value) for key, value in payload.items()}


class UploadManager:
    def __init__(self, session: Session, blob_store: BlobStore):
        self.session = session
        self.repo = Repository(session)
        self.blob_store = blob_store

    def create_application_with_upload(
        self,
        fields: dict[str, Any],
        upload: UploadedFile | None = None,
    ) -> Application:
        application = self.repo.create_application(**fields)
        if upload is None or not upload.content:
            return application

        try:
            if not is_valid_cv_type(upload.content_type):
                raise ValidationError(
                    "Invalid file type. Only PDF, DOC, and DOCX files are allowed.",
                    details=[{"field": "cv_file", "content_type": upload.content_type}],
                )
            filename = canonical_filename(application.id, extension_for_mime(upload.content_type))
            url = self.blob_store.put(filename, upload.content, upload.content_type)
            return self.repo.update_application(application.id, {"cv_file_url": url})
        except RecruitError:
            self._compensate(application.id)
            raise
        except Exception as exc:
            self._compensate(application.id)
            logger.exception("CV upload failed for application %s", application.id)
            raise UpstreamError("Failed to create application") from exc

    def _compensate(self, application_id: str) -> None:
        self.session.rollback()
        if self.repo.delete_application(application_id):
            logger.info("Deleted application %s after failed upload", application_id)

    def find_application_for_file(
        self,
        filename: str,
        file_map: dict[str, str] | None = None,
    ) -> Application | None:
        stem = Path(filename).stem

        if _UUID_PATTERN.fullmatch(stem):
            application = self.repo.get_application(stem.lower()) or self.repo.get_application(stem)
            if application:
                return application

        mapped = (file_map or {}).get(filename)
        if mapped:
            application = self.repo.get_application(mapped) or self.repo.find_application_by_email(mapped)
            if application:
                return application

        sanitized = sanitized_email(stem)
        if sanitized:
            for application in self.repo.list_applications_with_email():
                email_key = sanitized_email(application.email)
                if email_key and email_key in sanitized:
                    return application

        for application in self.repo.list_applications_sample(MATCH_SAMPLE_SIZE):
            if sanitized and sanitized == application.id.replace("-", "").lower():
                return application

        return None

    def reconcile_blob_deletion(self, url: str) -> int:
        self.blob_store.delete(url)
        application_id = extract_uuid(filename_from_url(url)) or extract_uuid(url)
        cleared = self.repo.clear_cv_file_url(application_id=application_id, url=url)
        logger.info("Deleted blob %s; cleared %d application reference(s)", url, cleared)
        return cleared

    def upload_cv_directory(
        self,
        directory: Path,
        *,
        file_map: dict[str, str] | None = None,
        force: bool = False,
    ) -> UploadReport:
        report = UploadReport()
        files = sorted(path for path in directory.iterdir() if path.is_file())
        logger.info("Found %d files in %s", len(files), directory)

        for path in files:
            application = self.find_application_for_file(path.name, file_map)
            if not application:
                logger.warning("No application matches %s", path.name)
                report.unmatched.append(path.name)
                continue

            extension = path.suffix.lstrip(".").lower()
            content_type = EXTENSION_MIME_TYPES.get(extension, "application/pdf")
            target = canonical_filename(application.id, extension_for_mime(content_type))
            target_url = self.blob_store.url_for(target)

            if not force and self.blob_store.exists(target_url):
                if not application.cv_file_url:
                    self.repo.update_application(application.id, {"cv_file_url": target_url})
                report.skipped.append(target)
                continue

            try:
                url = self.blob_store.put(target, path.read_bytes(), content_type)
            except (UpstreamError, OSError) as exc:
                logger.error("Upload failed for %s: %s", path.name, exc)
                report.failed.append(path.name)
                continue

            self.repo.update_application(application.id, {"cv_file_url": url})
            report.uploaded.append({"filename": target, "source": path.name, "url": url})

        report.timestamp = datetime.now(UTC).isoformat()
        return report

    def rewrite_drive_urls(self, base_url: str, *, dry_run: bool = False) -> int:
        if not base_url:
            raise ValidationError("cv_file_base_url is not configured")
        base = base_url if base_url.endswith("/") else base_url + "/"

        updated = 0
        for application in self.repo.list_applications_with_cv():
            if not is_google_drive_url(application.cv_file_url):
                continue
            new_url = f"{base}{canonical_filename(application.id, 'pdf')}"
            if dry_run:
                logger.info("DRY RUN: would update %s: %s -> %s", application.id, application.cv_file_url, new_url)
            else:
                self.repo.update_application(application.id, {"cv_file_url": new_url})
            updated += 1
        return updated
