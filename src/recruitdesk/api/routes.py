from __future__ import annotations

import logging
from datetime import date
from urllib.parse import urlsplit

import requests
from fastapi import APIRouter, Depends, File, Form, Query, Request, Response, UploadFile, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError as SchemaError
from sqlalchemy.orm import Session

from recruitdesk.api.deps import (
    get_app_settings,
    get_blob_store,
    get_db,
    get_sessions,
    rate_limited,
    require_admin,
    require_session,
)
from recruitdesk.api.schemas import (
    AdminStatsResponse,
    ApplicationCreateForm,
    ApplicationListResponse,
    ApplicationResponse,
    ApplicationUpdateRequest,
    AuthStatusResponse,
    BlobDeleteResponse,
    LoginRequest,
    ProxyRequest,
    PublicVacancy,
    PublicVacancyList,
    RankedApplicationResponse,
    RankingCreateRequest,
    RankingListResponse,
    RankingResponse,
    RankingUpdateRequest,
    VacancyCountsRequest,
    VacancyCountsResponse,
    VacancyCreateRequest,
    VacancyResponse,
    VacancyUpdateRequest,
    VacancyWithCountsResponse,
)
from recruitdesk.config import Settings
from recruitdesk.core.admin_queries import AdminQueryService, VacancyWithCounts
from recruitdesk.core.auth import Principal, SessionManager, authenticate_credentials
from recruitdesk.core.blob_store import BlobStore
from recruitdesk.core.reconcile import RANKING_NUMERIC_FIELDS, RANKING_TEXT_FIELDS, RankingFields, merge_ranking
from recruitdesk.core.uploads import UploadManager
from recruitdesk.db.models import SCORE_FIELDS
from recruitdesk.db.repositories import Repository
from recruitdesk.errors import AuthError, NotFoundError, RecruitError, UpstreamError, ValidationError
from recruitdesk.types import ApplicationFilters, UploadedFile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])

PROXY_ALLOWED_PATHS = frozenset(
    {
        "/api/vacancies",
        "/api/applications",
        "/api/rankings",
        "/api/admin/blobs",
        "/api/admin/rankings",
        "/api/admin/stats",
    }
)


def _vacancy_with_counts(row: VacancyWithCounts) -> VacancyWithCountsResponse:
    base = VacancyResponse.model_validate(row.vacancy).model_dump()
    return VacancyWithCountsResponse(
        **base,
        application_count=row.application_count,
        pending_count=row.pending_count,
    )


def _get_application_or_404(repo: Repository, application_id: str):
    application = repo.get_application(application_id)
    if not application:
        raise NotFoundError("Application not found")
    return application


def _get_ranking_or_404(repo: Repository, application_id: str):
    ranking = repo.get_ranking_for_application(application_id)
    if not ranking:
        raise NotFoundError("Ranking not found")
    return ranking


@router.get("/applications", response_model=ApplicationListResponse)
def list_applications(
    job_title: str | None = None,
    status_filter: str | None = Query(default=None, alias="status"),
    email: str | None = None,
    phone: str | None = None,
    submitted_from: date | None = None,
    submitted_to: date | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=1000),
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
) -> ApplicationListResponse:
    filters = ApplicationFilters(
        job_title=job_title,
        status=status_filter,
        email=email,
        phone=phone,
        submitted_from=submitted_from,
        submitted_to=submitted_to,
    )
    rows, pagination = AdminQueryService(db).list_applications(filters, page=page, limit=limit)
    return ApplicationListResponse(
        applications=[ApplicationResponse.model_validate(row) for row in rows],
        pagination=pagination,
    )


@router.post(
    "/applications",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limited("submission"))],
)
def create_application(
    email: str | None = Form(default=None),
    phone: str | None = Form(default=None),
    job_title: str = Form(default=""),
    vacancy_id: int | None = Form(default=None),
    source: str = Form(default="web"),
    cv_file: UploadFile | None = File(default=None),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
) -> ApplicationResponse:
    try:
        form = ApplicationCreateForm(
            email=email or None,
            phone=phone or None,
            job_title=job_title,
            vacancy_id=vacancy_id,
            source=source,
        )
    except SchemaError as exc:
        raise ValidationError(details=exc.errors(include_url=False, include_context=False)) from exc

    upload = None
    if cv_file is not None:
        content = cv_file.file.read()
        upload = UploadedFile(
            content=content,
            content_type=cv_file.content_type or "",
            filename=cv_file.filename or "",
        )

    application = UploadManager(db, blob_store).create_application_with_upload(form.model_dump(), upload)
    logger.info("Created application %s for %s", application.id, application.job_title)
    return ApplicationResponse.model_validate(application)


@router.get("/applications/{application_id}", response_model=ApplicationResponse)
def get_application(
    application_id: str,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
) -> ApplicationResponse:
    return ApplicationResponse.model_validate(_get_application_or_404(Repository(db), application_id))


@router.put("/applications/{application_id}", response_model=ApplicationResponse)
def update_application(
    application_id: str,
    payload: ApplicationUpdateRequest,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
) -> ApplicationResponse:
    repo = Repository(db)
    _get_application_or_404(repo, application_id)
    values = payload.model_dump(exclude_unset=True)
    if values.get("vacancy_id") is not None and not repo.get_vacancy(values["vacancy_id"]):
        raise NotFoundError("Vacancy not found")
    application = repo.update_application(application_id, values) if values else repo.get_application(application_id)
    return ApplicationResponse.model_validate(application)


@router.get("/vacancies", response_model=list[VacancyWithCountsResponse])
def list_vacancies(
    status_filter: str | None = Query(default=None, alias="status"),
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
) -> list[VacancyWithCountsResponse]:
    return [_vacancy_with_counts(row) for row in AdminQueryService(db).list_vacancies(status=status_filter)]


@router.post("/vacancies", response_model=VacancyResponse, status_code=status.HTTP_201_CREATED)
def create_vacancy(
    payload: VacancyCreateRequest,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
) -> VacancyResponse:
    vacancy = Repository(db).create_vacancy(**payload.model_dump())
    return VacancyResponse.model_validate(vacancy)


@router.put("/vacancies/{vacancy_id}", response_model=VacancyResponse)
def update_vacancy(
    vacancy_id: int,
    payload: VacancyUpdateRequest,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
) -> VacancyResponse:
    repo = Repository(db)
    try:
        vacancy = repo.update_vacancy(vacancy_id, payload.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise NotFoundError("Vacancy not found") from exc
    return VacancyResponse.model_validate(vacancy)


@router.get("/public/vacancies", response_model=PublicVacancyList)
def public_vacancies(db: Session = Depends(get_db)) -> PublicVacancyList:
    rows = AdminQueryService(db).active_vacancies()
    return PublicVacancyList(vacancies=[PublicVacancy.model_validate(row) for row in rows], total=len(rows))


@router.post("/rankings", response_model=RankingResponse, status_code=status.HTTP_201_CREATED)
def create_ranking(
    payload: RankingCreateRequest,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
) -> RankingResponse:
    repo = Repository(db)
    _get_application_or_404(repo, payload.application_id)
    if repo.get_ranking_for_application(payload.application_id):
        raise ValidationError(
            "Ranking already exists for this application",
            details=[{"field": "application_id", "value": payload.application_id}],
        )

    values = payload.model_dump(exclude={"application_id"})
    for key in SCORE_FIELDS:
        values[key] = values[key] or 0
    if values["total_score"] is None:
        values["total_score"] = sum(values[key] for key in SCORE_FIELDS)
    if values["final_score"] is None:
        values["final_score"] = 0.0

    ranking = repo.create_ranking(payload.application_id, values)
    repo.update_application(payload.application_id, {"status": "ranked"})
    logger.info("Ranked application %s total=%s", payload.application_id, ranking.total_score)
    return RankingResponse.model_validate(ranking)


@router.get("/rankings/{application_id}", response_model=RankingResponse)
def get_ranking(
    application_id: str,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
) -> RankingResponse:
    return RankingResponse.model_validate(_get_ranking_or_404(Repository(db), application_id))


@router.put("/rankings/{application_id}", response_model=RankingResponse)
def update_ranking(
    application_id: str,
    payload: RankingUpdateRequest,
    fill_empty_only: bool = False,
    allow_zero_overwrite: bool = False,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
) -> RankingResponse:
    repo = Repository(db)
    ranking = _get_ranking_or_404(repo, application_id)

    if fill_empty_only:
        incoming = RankingFields(
            application_id=application_id,
            scores={key: getattr(payload, key) for key in RANKING_NUMERIC_FIELDS},
            texts={key: getattr(payload, key) for key in RANKING_TEXT_FIELDS},
        )
        patch = merge_ranking(ranking, incoming, allow_zero_overwrite=allow_zero_overwrite)
    else:
        patch = payload.model_dump(exclude_unset=True)

    if patch:
        ranking = repo.update_ranking(ranking.id, patch)
    return RankingResponse.model_validate(ranking)


@router.get("/admin/stats", response_model=AdminStatsResponse)
def admin_stats(_: Principal = Depends(require_admin), db: Session = Depends(get_db)) -> AdminStatsResponse:
    return AdminStatsResponse.model_validate(AdminQueryService(db).stats())


@router.get("/admin/rankings", response_model=RankingListResponse)
def admin_rankings(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=100, ge=1, le=1000),
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
) -> RankingListResponse:
    rows, pagination = AdminQueryService(db).list_rankings(page=page, limit=limit)
    return RankingListResponse(
        rankings=[RankedApplicationResponse.model_validate(row) for row in rows],
        pagination=pagination,
    )


@router.get("/admin/blobs", response_model=ApplicationListResponse)
def admin_blobs(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=100, ge=1, le=1000),
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
) -> ApplicationListResponse:
    rows, pagination = AdminQueryService(db).list_cv_files(page=page, limit=limit)
    return ApplicationListResponse(
        applications=[ApplicationResponse.model_validate(row) for row in rows],
        pagination=pagination,
    )


@router.delete("/admin/blobs", response_model=BlobDeleteResponse)
def delete_blob(
    url: str = Query(min_length=1),
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
) -> BlobDeleteResponse:
    cleared = UploadManager(db, blob_store).reconcile_blob_deletion(url)
    return BlobDeleteResponse(url=url, cleared=cleared)


@router.post("/admin/vacancy-counts", response_model=VacancyCountsResponse)
def vacancy_counts(
    payload: VacancyCountsRequest,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
) -> VacancyCountsResponse:
    processed = AdminQueryService(db).materialize_vacancy_counts(
        payload.vacancy_id,
        job_title=payload.job_title,
        dry_run=payload.dry_run,
    )
    return VacancyCountsResponse(processed=processed, dry_run=payload.dry_run)


@router.post("/auth/admin", dependencies=[Depends(rate_limited("login"))])
def login(
    payload: LoginRequest,
    response: Response,
    settings: Settings = Depends(get_app_settings),
    sessions: SessionManager = Depends(get_sessions),
) -> dict:
    if not settings.admin_accounts:
        logger.error("Admin credentials not configured")
        raise RecruitError("Server configuration error")

    role = authenticate_credentials(settings, payload.username, payload.password)
    if role is None:
        logger.warning("Failed admin login for %s", payload.username)
        raise AuthError("Invalid credentials")

    response.set_cookie(
        settings.session_cookie_name,
        sessions.issue(payload.username, role),
        max_age=sessions.ttl_sec,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )
    logger.info("Admin %s logged in", payload.username)
    return {"success": True}


@router.delete("/auth/admin")
def logout(
    request: Request,
    response: Response,
    settings: Settings = Depends(get_app_settings),
    sessions: SessionManager = Depends(get_sessions),
) -> dict:
    sessions.revoke(request.cookies.get(settings.session_cookie_name))
    response.delete_cookie(settings.session_cookie_name)
    return {"success": True}


@router.get("/auth/admin", response_model=AuthStatusResponse)
def auth_status(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    sessions: SessionManager = Depends(get_sessions),
) -> AuthStatusResponse:
    principal = sessions.verify(request.cookies.get(settings.session_cookie_name))
    if principal is None:
        return AuthStatusResponse(authenticated=False)
    return AuthStatusResponse(authenticated=True, username=principal.subject, role=principal.role)


@router.post("/internal/proxy")
def internal_proxy(
    payload: ProxyRequest,
    request: Request,
    _: Principal = Depends(require_session),
    settings: Settings = Depends(get_app_settings),
) -> Response:
    target = urlsplit(payload.path)
    if target.scheme or target.netloc:
        raise ValidationError("Invalid path", details=[{"field": "path", "value": payload.path}])
    if target.path not in PROXY_ALLOWED_PATHS:
        return JSONResponse({"error": "Path not allowed"}, status_code=status.HTTP_403_FORBIDDEN)

    url = str(request.base_url).rstrip("/") + target.path
    if target.query:
        url = f"{url}?{target.query}"
    headers = {**payload.headers, "Authorization": f"Bearer {settings.bearer_token}"}
    try:
        upstream = requests.request(
            payload.method,
            url,
            headers=headers,
            json=payload.payload,
            timeout=settings.proxy_timeout_sec,
        )
    except requests.RequestException as exc:
        logger.exception("Proxy request to %s failed", target.path)
        raise UpstreamError("Proxy request failed") from exc

    return Response(
        content=upstream.content,
        status_code=upstream.status_code,
        media_type=upstream.headers.get("content-type", "application/json"),
    )
