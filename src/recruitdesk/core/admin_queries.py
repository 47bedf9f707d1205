from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import UTC, datetime, time
from typing import Any

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.orm import Session, selectinload

from recruitdesk.db.models import Application, CvRanking, Vacancy
from recruitdesk.types import ApplicationFilters, PageInfo

logger = logging.getLogger(__name__)


def page_count(total: int, limit: int, minimum: int = 0) -> int:
    return max(minimum, math.ceil(total / limit)) if limit > 0 else minimum


def page_info(page: int, limit: int, total: int, minimum_pages: int = 0) -> PageInfo:
    return PageInfo(page=page, limit=limit, total=total, total_pages=page_count(total, limit, minimum_pages))


@dataclass(slots=True)
class VacancyWithCounts:
    vacancy: Vacancy
    application_count: int
    pending_count: int


def spreadsheet_row(application: Application) -> dict[str, str]:
    return {
        "ID": application.id,
        "Email": application.email or "",
        "Phone": application.phone or "",
        "Job_Title": application.job_title,
        "CV File URL": application.cv_file_url or "",
        "Rank": "",
    }


class AdminQueryService:
    def __init__(self, session: Session):
        self.session = session

    def _application_conditions(self, filters: ApplicationFilters) -> list[Any]:
        conditions: list[Any] = []
        if filters.job_title:
            conditions.append(Application.job_title == filters.job_title)
        if filters.status:
            conditions.append(Application.status == filters.status)
        if filters.email:
            conditions.append(Application.email.icontains(filters.email, autoescape=True))
        if filters.phone:
            conditions.append(Application.phone.contains(filters.phone, autoescape=True))
        if filters.submitted_from:
            conditions.append(Application.created_at >= datetime.combine(filters.submitted_from, time.min, tzinfo=UTC))
        if filters.submitted_to:
            conditions.append(Application.created_at <= datetime.combine(filters.submitted_to, time.max, tzinfo=UTC))
        return conditions

    def list_applications(
        self,
        filters: ApplicationFilters,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Application], PageInfo]:
        conditions = self._application_conditions(filters)
        total = int(self.session.scalar(select(func.count()).select_from(Application).where(*conditions)) or 0)
        statement = (
            select(Application)
            .where(*conditions)
            .options(selectinload(Application.vacancy), selectinload(Application.ranking))
            .order_by(Application.created_at.desc(), Application.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        items = list(self.session.scalars(statement).all())
        return items, page_info(page, limit, total)

    def list_vacancies(self, *, status: str | None = None) -> list[VacancyWithCounts]:
        counts = (
            select(
                Application.vacancy_id.label("vacancy_id"),
                func.count(Application.id).label("total"),
                func.sum(case((Application.status == "pending", 1), else_=0)).label("pending"),
            )
            .where(Application.vacancy_id.is_not(None))
            .group_by(Application.vacancy_id)
            .subquery()
        )
        statement = (
            select(
                Vacancy,
                func.coalesce(counts.c.total, 0),
                func.coalesce(counts.c.pending, 0),
            )
            .outerjoin(counts, counts.c.vacancy_id == Vacancy.id)
            .order_by(Vacancy.created_at.desc(), Vacancy.id.desc())
        )
        if status:
            statement = statement.where(Vacancy.status == status)
        return [
            VacancyWithCounts(vacancy=vacancy, application_count=int(total), pending_count=int(pending))
            for vacancy, total, pending in self.session.execute(statement).all()
        ]

    def count_for_vacancy(self, vacancy: Vacancy) -> int:
        statement = (
            select(func.count())
            .select_from(Application)
            .where(
                or_(
                    Application.vacancy_id == vacancy.id,
                    and_(Application.vacancy_id.is_(None), Application.job_title == vacancy.job_title),
                )
            )
        )
        return int(self.session.scalar(statement) or 0)

    def materialize_vacancy_counts(
        self,
        vacancy_id: int | None = None,
        *,
        job_title: str | None = None,
        dry_run: bool = False,
    ) -> int:
        statement = select(Vacancy)
        if job_title:
            statement = statement.where(Vacancy.job_title == job_title)
        elif vacancy_id is not None:
            statement = statement.where(Vacancy.id == vacancy_id)
        vacancies = list(self.session.scalars(statement).all())

        processed = 0
        for vacancy in vacancies:
            count = self.count_for_vacancy(vacancy)
            if dry_run:
                logger.info("DRY RUN: vacancy id=%s -> applications_count=%s", vacancy.id, count)
            else:
                vacancy.applications_count = count
                logger.info("Updated vacancy id=%s -> applications_count=%s", vacancy.id, count)
            processed += 1
        if not dry_run:
            self.session.commit()
        return processed

    def list_rankings(self, page: int = 1, limit: int = 100) -> tuple[list[CvRanking], PageInfo]:
        total = int(self.session.scalar(select(func.count()).select_from(CvRanking)) or 0)
        statement = (
            select(CvRanking)
            .options(selectinload(CvRanking.application))
            .order_by(CvRanking.ranked_at.desc(), CvRanking.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(self.session.scalars(statement).all()), page_info(page, limit, total, minimum_pages=1)

    def list_cv_files(self, page: int = 1, limit: int = 100) -> tuple[list[Application], PageInfo]:
        condition = Application.cv_file_url.is_not(None)
        total = int(self.session.scalar(select(func.count()).select_from(Application).where(condition)) or 0)
        statement = (
            select(Application)
            .where(condition)
            .options(selectinload(Application.vacancy))
            .order_by(Application.created_at.desc(), Application.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(self.session.scalars(statement).all()), page_info(page, limit, total, minimum_pages=1)

    def stats(self) -> dict[str, int]:
        def count(model: Any, *conditions: Any) -> int:
            statement = select(func.count()).select_from(model)
            if conditions:
                statement = statement.where(*conditions)
            return int(self.session.scalar(statement) or 0)

        return {
            "totalApplications": count(Application),
            "cvFilesCount": count(Application, Application.cv_file_url.is_not(None)),
            "pendingRankings": count(CvRanking),
            "activeVacancies": count(Vacancy, Vacancy.status == "active"),
        }

    def active_vacancies(self) -> list[Vacancy]:
        statement = (
            select(Vacancy)
            .where(Vacancy.status == "active")
            .order_by(Vacancy.created_at.desc(), Vacancy.id.desc())
        )
        return list(self.session.scalars(statement).all())

    def legacy_vacancies(self) -> list[dict[str, str | None]]:
        return [{"Job_Title": vacancy.job_title, "URL": vacancy.url} for vacancy in self.active_vacancies()]

    def legacy_unranked_applicants(self, job_title: str) -> list[dict[str, str]]:
        ranked = select(CvRanking.application_id)
        statement = (
            select(Application)
            .where(Application.job_title == job_title, Application.id.not_in(ranked))
            .order_by(Application.created_at.desc(), Application.id.desc())
        )
        return [spreadsheet_row(row) for row in self.session.scalars(statement).all()]

    def legacy_empty_mail(self) -> list[dict[str, str]]:
        statement = (
            select(Application)
            .where(or_(Application.email.is_(None), Application.email == ""))
            .order_by(Application.created_at.desc(), Application.id.desc())
        )
        return [spreadsheet_row(row) for row in self.session.scalars(statement).all()]
