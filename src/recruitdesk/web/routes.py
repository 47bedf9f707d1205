from __future__ import annotations

import logging
from pathlib import Path
from urllib.parse import quote

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session

from recruitdesk.api.deps import get_app_settings, get_db, get_sessions, rate_limited
from recruitdesk.config import Settings
from recruitdesk.core.admin_queries import AdminQueryService
from recruitdesk.core.auth import SessionManager, authenticate_credentials
from recruitdesk.types import ApplicationFilters

logger = logging.getLogger(__name__)

router = APIRouter(tags=["web"])
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))

LOGIN_PATH = "/admin/login"


def safe_redirect(target: str | None) -> str:
    if not target or not target.startswith("/") or target.startswith("//"):
        return "/admin"
    return target


def login_redirect(request: Request) -> RedirectResponse:
    return RedirectResponse(url=f"{LOGIN_PATH}?redirect={quote(request.url.path, safe='')}", status_code=307)


@router.get(LOGIN_PATH, response_class=HTMLResponse)
def login_page(request: Request, redirect: str = "/admin") -> HTMLResponse:
    return templates.TemplateResponse(request, "login.html", {"redirect": safe_redirect(redirect), "error": None})


@router.post(LOGIN_PATH, dependencies=[Depends(rate_limited("login"))])
def login_submit(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
    redirect: str = Form("/admin"),
    settings: Settings = Depends(get_app_settings),
    sessions: SessionManager = Depends(get_sessions),
) -> Response:
    role = authenticate_credentials(settings, username, password) if username and password else None
    if role is None:
        logger.warning("Failed admin login for %s", username or "<empty>")
        return templates.TemplateResponse(
            request,
            "login.html",
            {"redirect": safe_redirect(redirect), "error": "Invalid credentials"},
            status_code=401,
        )

    response = RedirectResponse(url=safe_redirect(redirect), status_code=303)
    response.set_cookie(
        settings.session_cookie_name,
        sessions.issue(username, role),
        max_age=sessions.ttl_sec,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )
    return response


@router.post("/admin/logout")
def logout(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    sessions: SessionManager = Depends(get_sessions),
) -> RedirectResponse:
    sessions.revoke(request.cookies.get(settings.session_cookie_name))
    response = RedirectResponse(url=LOGIN_PATH, status_code=303)
    response.delete_cookie(settings.session_cookie_name)
    return response


@router.get("/admin", response_class=HTMLResponse)
def dashboard(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    sessions: SessionManager = Depends(get_sessions),
    db: Session = Depends(get_db),
) -> Response:
    principal = sessions.verify(request.cookies.get(settings.session_cookie_name))
    if principal is None:
        return login_redirect(request)

    queries = AdminQueryService(db)
    applications, pagination = queries.list_applications(ApplicationFilters(), page=1, limit=20)
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "principal": principal,
            "stats": queries.stats(),
            "vacancies": queries.list_vacancies(),
            "applications": applications,
            "pagination": pagination,
        },
    )
