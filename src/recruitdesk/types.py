from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

SheetKind = Literal["vacancies", "applications", "rankings", "referrals", "ignored"]
ApplicationSource = Literal["web", "referral", "manual"]
ApplicationStatus = Literal["pending", "ranked"]
VacancyStatus = Literal["active", "inactive"]


class SheetResult(BaseModel):
    kind: SheetKind = "applications"
    rows: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0


class ApplicationFilters(BaseModel):
    job_title: str | None = None
    status: str | None = None
    email: str | None = None
    phone: str | None = None
    submitted_from: date | None = None
    submitted_to: date | None = None


class PageInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page: int
    limit: int
    total: int
    total_pages: int = Field(alias="totalPages")


class UploadedFile(BaseModel):
    content: bytes
    content_type: str = ""
    filename: str = ""


class UploadReport(BaseModel):
    uploaded: list[dict[str, str]] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    unmatched: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    timestamp: str = ""
