from __future__ import annotations

from collections.abc import Callable, Generator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from recruitdesk.config import Settings, get_settings
from recruitdesk.core.auth import Principal, SessionManager, authenticate_request
from recruitdesk.core.blob_store import BlobStore
from recruitdesk.core.rate_limit import RateLimiterRegistry
from recruitdesk.db.session import get_db_session
from recruitdesk.errors import AuthError, RateLimitError


def get_db() -> Generator[Session, None, None]:
    yield from get_db_session()


def get_app_settings() -> Settings:
    return get_settings()


def get_sessions(request: Request) -> SessionManager:
    return request.app.state.sessions


def get_rate_limits(request: Request) -> RateLimiterRegistry:
    return request.app.state.rate_limits


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


def client_key(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip", "")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"


def require_admin(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    sessions: SessionManager = Depends(get_sessions),
) -> Principal:
    return authenticate_request(settings, sessions, request.headers, request.cookies)


def require_session(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    sessions: SessionManager = Depends(get_sessions),
) -> Principal:
    principal = sessions.verify(request.cookies.get(settings.session_cookie_name))
    if principal is None:
        raise AuthError()
    return principal


def rate_limited(name: str) -> Callable[..., None]:
    def dependency(request: Request, limits: RateLimiterRegistry = Depends(get_rate_limits)) -> None:
        limiter = limits.get(name)
        wait = limiter.acquire(client_key(request))
        if wait > 0:
            raise RateLimitError(
                f"Too many requests. Limit: {limiter.capacity} per 60s",
                retry_after=limiter.retry_after(wait),
            )

    return dependency
