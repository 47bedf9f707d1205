from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from recruitdesk.types import PageInfo

_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class VacancyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    job_title: str
    url: str | None = None
    description: str | None = None
    status: str
    closing_date: date | None = None
    applications_count: int = 0
    created_at: datetime
    updated_at: datetime


class VacancyWithCountsResponse(VacancyResponse):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    application_count: int = Field(default=0, alias="applicationCount")
    pending_count: int = Field(default=0, alias="pendingCount")


class VacancyCreateRequest(BaseModel):
    job_title: str = Field(min_length=1)
    url: str | None = None
    description: str | None = None
    status: Literal["active", "inactive"] = "active"
    closing_date: date | None = None


class VacancyUpdateRequest(BaseModel):
    job_title: str | None = Field(default=None, min_length=1)
    url: str | None = None
    description: str | None = None
    status: Literal["active", "inactive"] | None = None
    closing_date: date | None = None

    @field_validator("job_title", "status")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class PublicVacancy(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    job_title: str
    url: str | None = None
    description: str | None = None
    created_at: datetime


class PublicVacancyList(BaseModel):
    vacancies: list[PublicVacancy]
    total: int


class RankingScores(BaseModel):
    education_score: int | None = Field(default=None, ge=0)
    education_evidence: str | None = None
    work_experience_score: int | None = Field(default=None, ge=0)
    work_experience_evidence: str | None = None
    skill_match_score: int | None = Field(default=None, ge=0)
    skill_match_evidence: str | None = None
    certifications_score: int | None = Field(default=None, ge=0)
    certifications_evidence: str | None = None
    domain_knowledge_score: int | None = Field(default=None, ge=0)
    domain_knowledge_evidence: str | None = None
    soft_skills_score: int | None = Field(default=None, ge=0)
    soft_skills_evidence: str | None = None
    total_score: int | None = None
    final_score: float | None = None
    summary: str | None = None


class RankingCreateRequest(RankingScores):
    application_id: str = Field(min_length=1)


class RankingUpdateRequest(RankingScores):
    pass


class RankingResponse(RankingScores):
    model_config = ConfigDict(from_attributes=True)

    id: int
    application_id: str
    ranked_at: datetime


class ApplicationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str | None = None
    phone: str | None = None
    job_title: str
    vacancy_id: int | None = None
    cv_file_url: str | None = None
    source: str
    status: str
    created_at: datetime
    updated_at: datetime
    vacancy: VacancyResponse | None = None
    ranking: RankingResponse | None = None


class ApplicationUpdateRequest(BaseModel):
    email: str | None = Field(default=None, pattern=_EMAIL_PATTERN)
    phone: str | None = None
    job_title: str | None = Field(default=None, min_length=1)
    vacancy_id: int | None = None

    @field_validator("job_title")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class ApplicationCreateForm(BaseModel):
    email: str | None = Field(default=None, pattern=_EMAIL_PATTERN)
    phone: str | None = None
    job_title: str = Field(min_length=1)
    vacancy_id: int | None = None
    source: Literal["web", "referral", "manual"] = "web"


class ApplicationListResponse(BaseModel):
    applications: list[ApplicationResponse]
    pagination: PageInfo


class RankedApplicationResponse(RankingResponse):
    application: ApplicationResponse | None = None


class RankingListResponse(BaseModel):
    rankings: list[RankedApplicationResponse]
    pagination: PageInfo


class AdminStatsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_applications: int = Field(alias="totalApplications")
    cv_files_count: int = Field(alias="cvFilesCount")
    pending_rankings: int = Field(alias="pendingRankings")
    active_vacancies: int = Field(alias="activeVacancies")


class BlobDeleteResponse(BaseModel):
    success: bool = True
    url: str
    cleared: int


class VacancyCountsRequest(BaseModel):
    vacancy_id: int | None = None
    job_title: str | None = None
    dry_run: bool = False


class VacancyCountsResponse(BaseModel):
    processed: int
    dry_run: bool


class LoginRequest(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class AuthStatusResponse(BaseModel):
    authenticated: bool
    username: str | None = None
    role: str | None = None


class ProxyRequest(BaseModel):
    path: str = Field(min_length=1)
    method: Literal["GET", "POST", "PUT", "DELETE"] = "GET"
    headers: dict[str, str] = Field(default_factory=dict)
    payload: Any = None


class LegacyUploadResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str = "success"
    file_id: str = Field(alias="fileId")
    file_name: str = Field(alias="fileName")
    file_url: str = Field(alias="fileUrl")
    job_title: str = Field(alias="jobTitle")
