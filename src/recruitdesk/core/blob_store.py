from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol
from urllib.parse import unquote, urlparse

import requests

from recruitdesk.config import Settings, get_settings
from recruitdesk.errors import UpstreamError

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    def put(self, filename: str, content: bytes, content_type: str) -> str: ...

    def delete(self, url: str) -> None: ...

    def exists(self, url: str) -> bool: ...

    def url_for(self, filename: str) -> str: ...


def filename_from_url(url: str) -> str:
    path = urlparse(url).path or url
    return unquote(path.rstrip("/").rsplit("/", 1)[-1])


def blob_exists(url: str, timeout_sec: int = 15) -> bool:
    try:
        response = requests.head(url, timeout=timeout_sec, allow_redirects=True)
        if response.status_code == 200:
            return True
        if response.status_code == 404:
            return False
        response = requests.get(url, timeout=timeout_sec, stream=True)
        response.close()
        return response.status_code == 200
    except requests.RequestException as exc:
        logger.warning("Blob existence check failed for %s: %s", url, exc)
        return False


class LocalBlobStore:
    def __init__(self, root: Path, public_base_url: str):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")

    def url_for(self, filename: str) -> str:
        return f"{self.public_base_url}/{filename}"

    def put(self, filename: str, content: bytes, content_type: str) -> str:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            (self.root / filename).write_bytes(content)
        except OSError as exc:
            raise UpstreamError("Failed to store file") from exc
        return self.url_for(filename)

    def delete(self, url: str) -> None:
        try:
            (self.root / filename_from_url(url)).unlink(missing_ok=True)
        except OSError as exc:
            raise UpstreamError("Failed to delete file") from exc

    def exists(self, url: str) -> bool:
        return (self.root / filename_from_url(url)).is_file()


class VercelBlobStore:
    def __init__(self, api_url: str, token: str, timeout_sec: int = 30):
        self.api_url = api_url.rstrip("/")
        self.token = token
        self.timeout_sec = timeout_sec

    def _headers(self) -> dict[str, str]:
        return {"authorization": f"Bearer {self.token}", "x-api-version": "7"}

    def url_for(self, filename: str) -> str:
        return f"{self.api_url}/{filename}"

    def put(self, filename: str, content: bytes, content_type: str) -> str:
        headers = self._headers() | {
            "x-content-type": content_type,
            "x-add-random-suffix": "0",
        }
        try:
            response = requests.put(
                f"{self.api_url}/{filename}",
                data=content,
                headers=headers,
                timeout=self.timeout_sec,
            )
            response.raise_for_status()
            return str(response.json()["url"])
        except (requests.RequestException, KeyError, ValueError) as exc:
            raise UpstreamError("Blob upload failed") from exc

    def delete(self, url: str) -> None:
        try:
            response = requests.post(
                f"{self.api_url}/delete",
                json={"urls": [url]},
                headers=self._headers(),
                timeout=self.timeout_sec,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise UpstreamError("Blob delete failed") from exc

    def exists(self, url: str) -> bool:
        return blob_exists(url, timeout_sec=self.timeout_sec)


def get_blob_store(settings: Settings | None = None) -> BlobStore:
    settings = settings or get_settings()
    if settings.blob_backend == "vercel":
        if not settings.blob_read_write_token:
            logger.warning("blob_backend=vercel but BLOB_READ_WRITE_TOKEN is empty")
        return VercelBlobStore(
            settings.blob_api_url,
            settings.blob_read_write_token,
            timeout_sec=settings.blob_timeout_sec,
        )
    return LocalBlobStore(settings.blob_local_dir, settings.blob_public_base_url)
