from __future__ import annotations

from typing import Any


class RecruitError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, *, details: Any = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(RecruitError):
    status_code = 400
    default_message = "Validation failed"


class AuthError(RecruitError):
    status_code = 401
    default_message = "Unauthorized. Admin access required."


class NotFoundError(RecruitError):
    status_code = 404
    default_message = "Not found"


class UpstreamError(RecruitError):
    """Storage or database failure. The cause is logged, callers only see the generic message."""

    status_code = 500
    default_message = "Upstream service failure"


class RateLimitError(RecruitError):
    status_code = 429
    default_message = "Rate limit exceeded"

    def __init__(self, message: str | None = None, *, retry_after: int = 60):
        super().__init__(message, details={"retry_after": retry_after})
        self.retry_after = retry_after
