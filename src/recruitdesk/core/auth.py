from __future__ import annotations

import hmac
import secrets
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from itsdangerous import BadSignature, TimestampSigner, URLSafeTimedSerializer

from recruitdesk.config import Settings
from recruitdesk.errors import AuthError

SESSION_SALT = "recruitdesk-admin-session"


@dataclass(slots=True, frozen=True)
class Principal:
    subject: str
    role: str
    via: str


class _ClockedSigner(TimestampSigner):
    def __init__(self, *args: Any, clock: Callable[[], float] = time.time, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._clock = clock

    def get_timestamp(self) -> int:
        return int(self._clock())


class SessionManager:
    """Issues signed, timestamped session tokens and tracks revoked ones in memory."""

    def __init__(self, secret_key: str, ttl_min: int, clock: Callable[[], float] = time.time):
        self.ttl_sec = ttl_min * 60
        self._clock = clock
        self._serializer = URLSafeTimedSerializer(
            secret_key,
            salt=SESSION_SALT,
            signer=_ClockedSigner,
            signer_kwargs={"clock": clock},
        )
        self._revoked: dict[str, float] = {}
        self._lock = threading.Lock()

    def issue(self, subject: str, role: str = "admin") -> str:
        return self._serializer.dumps({"sub": subject, "role": role, "jti": secrets.token_hex(8)})

    def _decode(self, token: str) -> dict | None:
        try:
            payload = self._serializer.loads(token, max_age=self.ttl_sec)
        except BadSignature:
            return None
        return payload if isinstance(payload, dict) else None

    def verify(self, token: str | None) -> Principal | None:
        if not token:
            return None
        payload = self._decode(token)
        if not payload:
            return None
        with self._lock:
            if payload.get("jti") in self._revoked:
                return None
        return Principal(subject=str(payload.get("sub", "")), role=str(payload.get("role", "admin")), via="session")

    def revoke(self, token: str | None) -> None:
        payload = self._decode(token or "")
        if not payload:
            return
        now = self._clock()
        with self._lock:
            self._revoked = {jti: until for jti, until in self._revoked.items() if until > now}
            # a token issued before now cannot outlive now + ttl
            self._revoked[str(payload.get("jti"))] = now + self.ttl_sec


def authenticate_credentials(settings: Settings, username: str, password: str) -> str | None:
    account = settings.admin_accounts.get(username)
    if not account:
        return None
    expected, role = account
    if hmac.compare_digest(password.encode("utf-8"), expected.encode("utf-8")):
        return role
    return None


def check_bearer(settings: Settings, authorization: str | None) -> Principal:
    header = (authorization or "").strip()
    if not header:
        raise AuthError("Missing Authorization header (Bearer token required)")
    if not header.lower().startswith("bearer "):
        raise AuthError("Authorization header must be a Bearer token")
    if not settings.bearer_token:
        raise AuthError("Bearer token not configured on server")
    token = header[7:].strip()
    if not hmac.compare_digest(token.encode("utf-8"), settings.bearer_token.encode("utf-8")):
        raise AuthError("Invalid bearer token")
    return Principal(subject="machine", role="service", via="bearer")


def authenticate_request(
    settings: Settings,
    sessions: SessionManager,
    headers: Mapping[str, str],
    cookies: Mapping[str, str],
) -> Principal:
    authorization = headers.get("authorization", "")
    if authorization.strip().lower().startswith("bearer "):
        return check_bearer(settings, authorization)

    principal = sessions.verify(cookies.get(settings.session_cookie_name))
    if principal is None:
        raise AuthError()
    return principal
