from __future__ import annotations

import json
from pathlib import Path
from types import SimpleNamespace

import pytest
import requests

from recruitdesk.core import blob_store
from recruitdesk.core.blob_store import blob_exists, filename_from_url
from recruitdesk.core.uploads import (
    canonical_filename,
    extension_for_mime,
    extract_uuid,
    is_google_drive_url,
    is_valid_cv_type,
    load_file_map,
    sanitized_email,
    sniff_content_type,
)

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


@pytest.mark.parametrize(
    ("mime", "ext"),
    [
        ("application/pdf", "pdf"),
        ("application/msword", "doc"),
        (DOCX_MIME, "docx"),
        ("application/pdf; charset=binary", "pdf"),
        ("image/png", "pdf"),
        (None, "pdf"),
    ],
)
def test_extension_for_mime(mime, ext) -> None:
    assert extension_for_mime(mime) == ext


def test_valid_cv_types() -> None:
    assert is_valid_cv_type("application/pdf")
    assert is_valid_cv_type(DOCX_MIME)
    assert not is_valid_cv_type("text/plain")
    assert not is_valid_cv_type("")


def test_canonical_filename() -> None:
    assert canonical_filename("0b7c", "pdf") == "0b7c.pdf"
    assert canonical_filename("0b7c", ".DOCX") == "0b7c.docx"


def test_extract_uuid_from_blob_url() -> None:
    uuid = "3f2b8c1e-6d4a-4b8e-9f00-123456789abc"
    assert extract_uuid(f"https://store.example.com/{uuid}.pdf") == uuid
    assert extract_uuid("https://store.example.com/resume.pdf") is None
    assert filename_from_url(f"https://store.example.com/cvs/{uuid}.pdf?download=1") == f"{uuid}.pdf"


def test_sniff_content_type() -> None:
    assert sniff_content_type(b"%PDF-1.7 ...") == "application/pdf"
    assert sniff_content_type(b"\xd0\xcf\x11\xe0rest") == "application/msword"
    assert sniff_content_type(b"PK\x03\x04rest") == DOCX_MIME
    assert sniff_content_type(b"unknown") == "application/pdf"


def test_sanitized_email_and_drive_urls() -> None:
    assert sanitized_email("John.Doe+cv@Example.com") == "johndoecvexamplecom"
    assert is_google_drive_url("https://drive.google.com/file/d/abc/view")
    assert not is_google_drive_url("https://cdn.example.com/a.pdf")
    assert not is_google_drive_url(None)


def test_load_file_map(tmp_path: Path) -> None:
    path = tmp_path / "map.json"
    path.write_text(json.dumps({"resume.pdf": "user@example.com"}), encoding="utf-8")
    assert load_file_map(path) == {"resume.pdf": "user@example.com"}
    assert load_file_map(tmp_path / "missing.json") == {}

    path.write_text("{not json", encoding="utf-8")
    assert load_file_map(path) == {}


def test_blob_exists_falls_back_to_get(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(blob_store.requests, "head", lambda url, **kwargs: SimpleNamespace(status_code=405))
    monkeypatch.setattr(
        blob_store.requests,
        "get",
        lambda url, **kwargs: SimpleNamespace(status_code=200, close=lambda: None),
    )
    assert blob_exists("https://blob.example.com/a.pdf") is True

    monkeypatch.setattr(blob_store.requests, "head", lambda url, **kwargs: SimpleNamespace(status_code=404))
    assert blob_exists("https://blob.example.com/a.pdf") is False


def test_blob_exists_treats_network_errors_as_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    def refuse(url, **kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(blob_store.requests, "head", refuse)
    assert blob_exists("https://blob.example.com/a.pdf") is False
