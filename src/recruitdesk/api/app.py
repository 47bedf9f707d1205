from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError

from recruitdesk.api.legacy import LEGACY_PATHS, SECURITY_HEADERS
from recruitdesk.api.legacy import router as legacy_router
from recruitdesk.api.routes import router as api_router
from recruitdesk.config import get_settings
from recruitdesk.core.auth import SessionManager
from recruitdesk.core.blob_store import get_blob_store
from recruitdesk.core.rate_limit import RateLimiterRegistry
from recruitdesk.db.init import init_database
from recruitdesk.errors import RateLimitError, RecruitError
from recruitdesk.logging_config import configure_logging
from recruitdesk.web.routes import router as web_router

logger = logging.getLogger(__name__)


def _error_response(exc: RecruitError) -> JSONResponse:
    headers = {"Retry-After": str(exc.retry_after)} if isinstance(exc, RateLimitError) else None
    return JSONResponse(exc.to_payload(), status_code=exc.status_code, headers=headers)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_database()
    yield


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.sessions = SessionManager(settings.secret_key, settings.session_ttl_min)
    app.state.rate_limits = RateLimiterRegistry(
        {
            "submission": settings.submission_rate_per_min,
            "legacy_upload": settings.legacy_upload_rate_per_min,
            "login": settings.login_rate_per_min,
        }
    )
    app.state.blob_store = get_blob_store(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def legacy_security_headers(request: Request, call_next):
        response = await call_next(request)
        if request.url.path in LEGACY_PATHS:
            response.headers.update(SECURITY_HEADERS)
        return response

    @app.exception_handler(RecruitError)
    async def handle_recruit_error(request: Request, exc: RecruitError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = [
            {"loc": list(error.get("loc", ())), "msg": error.get("msg", ""), "type": error.get("type", "")}
            for error in exc.errors()
        ]
        return JSONResponse({"error": "Validation failed", "details": details}, status_code=400)

    @app.exception_handler(SQLAlchemyError)
    async def handle_database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.exception("Database error on %s %s", request.method, request.url.path)
        return JSONResponse({"error": "Internal server error"}, status_code=500)

    @app.get("/health")
    def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(api_router)
    app.include_router(legacy_router)
    app.include_router(web_router)

    if settings.blob_backend == "local":
        app.mount("/files", StaticFiles(directory=str(settings.blob_local_dir), check_dir=False), name="files")
    return app
