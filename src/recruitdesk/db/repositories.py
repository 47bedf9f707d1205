from __future__ import annotations

from typing import Any

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from recruitdesk.db.models import Application, CvRanking, Referral, Vacancy


class Repository:
    def __init__(self, session: Session):
        self.session = session

    def create_vacancy(
        self,
        *,
        job_title: str,
        url: str | None = None,
        description: str | None = None,
        status: str = "active",
        **extra: Any,
    ) -> Vacancy:
        vacancy = Vacancy(job_title=job_title, url=url, description=description, status=status, **extra)
        self.session.add(vacancy)
        self.session.commit()
        self.session.refresh(vacancy)
        return vacancy

    def get_vacancy(self, vacancy_id: int) -> Vacancy | None:
        return self.session.get(Vacancy, vacancy_id)

    def find_vacancy_by_title(self, job_title: str) -> Vacancy | None:
        statement = (
            select(Vacancy)
            .where(Vacancy.job_title == job_title)
            .order_by(Vacancy.created_at.desc(), Vacancy.id.desc())
            .limit(1)
        )
        return self.session.scalar(statement)

    def list_vacancies(self, *, status: str | None = None) -> list[Vacancy]:
        statement = select(Vacancy).order_by(Vacancy.created_at.desc(), Vacancy.id.desc())
        if status:
            statement = statement.where(Vacancy.status == status)
        return list(self.session.scalars(statement).all())

    def update_vacancy(self, vacancy_id: int, values: dict[str, Any]) -> Vacancy:
        vacancy = self.session.get(Vacancy, vacancy_id)
        if not vacancy:
            raise ValueError(f"vacancy {vacancy_id} not found")
        for key, value in values.items():
            setattr(vacancy, key, value)
        self.session.commit()
        self.session.refresh(vacancy)
        return vacancy

    def create_application(self, **values: Any) -> Application:
        values = {key: value for key, value in values.items() if value is not None}
        application = Application(**values)
        self.session.add(application)
        self.session.commit()
        self.session.refresh(application)
        return application

    def get_application(self, application_id: str) -> Application | None:
        return self.session.get(Application, application_id)

    def find_application(
        self,
        *,
        job_title: str,
        email: str | None = None,
        phone: str | None = None,
    ) -> Application | None:
        if email:
            condition = and_(Application.email == email, Application.job_title == job_title)
        elif phone:
            condition = and_(Application.phone == phone, Application.job_title == job_title)
        else:
            return None
        statement = select(Application).where(condition).order_by(Application.created_at.asc()).limit(1)
        return self.session.scalar(statement)

    def find_application_by_email(self, email: str) -> Application | None:
        statement = select(Application).where(Application.email == email).limit(1)
        return self.session.scalar(statement)

    def list_applications_with_email(self) -> list[Application]:
        statement = select(Application).where(Application.email.is_not(None), Application.email != "")
        return list(self.session.scalars(statement).all())

    def list_applications_sample(self, limit: int = 50) -> list[Application]:
        statement = select(Application).order_by(Application.created_at.asc()).limit(limit)
        return list(self.session.scalars(statement).all())

    def list_applications_with_cv(self) -> list[Application]:
        statement = select(Application).where(Application.cv_file_url.is_not(None))
        return list(self.session.scalars(statement).all())

    def list_applications_without_vacancy(self) -> list[Application]:
        statement = select(Application).where(Application.vacancy_id.is_(None))
        return list(self.session.scalars(statement).all())

    def update_application(self, application_id: str, values: dict[str, Any]) -> Application:
        application = self.session.get(Application, application_id)
        if not application:
            raise ValueError(f"application {application_id} not found")
        for key, value in values.items():
            setattr(application, key, value)
        self.session.commit()
        self.session.refresh(application)
        return application

    def delete_application(self, application_id: str) -> bool:
        application = self.session.get(Application, application_id)
        if not application:
            return False
        self.session.delete(application)
        self.session.commit()
        return True

    def clear_cv_file_url(self, *, application_id: str | None = None, url: str | None = None) -> int:
        conditions = []
        if application_id:
            conditions.append(Application.id == application_id)
        if url:
            conditions.append(Application.cv_file_url == url)
        if not conditions:
            return 0

        rows = self.session.scalars(
            select(Application).where(or_(*conditions), Application.cv_file_url.is_not(None))
        ).all()
        for row in rows:
            row.cv_file_url = None
        self.session.commit()
        return len(rows)

    def count_applications(self, *conditions: Any) -> int:
        statement = select(func.count()).select_from(Application)
        if conditions:
            statement = statement.where(*conditions)
        return int(self.session.scalar(statement) or 0)

    def create_ranking(self, application_id: str, values: dict[str, Any]) -> CvRanking:
        ranking = CvRanking(application_id=application_id, **values)
        self.session.add(ranking)
        self.session.commit()
        self.session.refresh(ranking)
        return ranking

    def get_ranking_for_application(self, application_id: str) -> CvRanking | None:
        statement = select(CvRanking).where(CvRanking.application_id == application_id)
        return self.session.scalar(statement)

    def update_ranking(self, ranking_id: int, values: dict[str, Any]) -> CvRanking:
        ranking = self.session.get(CvRanking, ranking_id)
        if not ranking:
            raise ValueError(f"ranking {ranking_id} not found")
        for key, value in values.items():
            setattr(ranking, key, value)
        self.session.commit()
        self.session.refresh(ranking)
        return ranking

    def ranked_application_ids(self) -> set[str]:
        return set(self.session.scalars(select(CvRanking.application_id)).all())

    def find_referral(self, email: str, job_title: str) -> Referral | None:
        statement = select(Referral).where(Referral.email == email, Referral.job_title == job_title)
        return self.session.scalar(statement)

    def create_referral(self, **values: Any) -> Referral:
        referral = Referral(**values)
        self.session.add(referral)
        self.session.commit()
        self.session.refresh(referral)
        return referral
