from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from recruitdesk.db.models import Vacancy

logger = logging.getLogger(__name__)

SAMPLE_VACANCIES: list[dict[str, str]] = [
    {
        "job_title": "Software Engineer-Java",
        "url": "https://intervest.lk/careers/post/cG9zdDoyODk=/software-engineer-java",
        "description": "Java developer with Spring, microservices and REST API experience.",
    },
    {
        "job_title": "Scrum Master",
        "url": "https://intervest.lk/careers/post/cG9zdDoyODA=/scrum-master",
        "description": "Certified Scrum Master to lead agile delivery teams using Jira and Confluence.",
    },
    {
        "job_title": "Senior Quality Assurance Engineer - Manual",
        "url": "https://intervest.lk/careers/post/cG9zdDoyODM=/senior-quality-assurance-engineer-manual",
        "description": "Manual testing, test case design and defect management across the SDLC.",
    },
    {
        "job_title": "Senior Software Engineer-React",
        "url": "https://intervest.lk/careers/post/cG9zdDoyODc=/senior-software-engineer-react",
        "description": "React, TypeScript, Redux and Next.js with testing and CI/CD experience.",
    },
    {
        "job_title": "Senior Data Analyst",
        "url": "https://intervest.lk/careers/post/cG9zdDoyNjM=/senior-data-analyst",
        "description": "SQL, Python, statistics and BI reporting.",
    },
]


def seed_vacancies(session: Session) -> int:
    inserted = 0
    for vacancy in SAMPLE_VACANCIES:
        existing = session.scalar(select(Vacancy).where(Vacancy.job_title == vacancy["job_title"]).limit(1))
        if existing:
            logger.debug("Vacancy already exists: %s", vacancy["job_title"])
            continue
        session.add(Vacancy(status="active", **vacancy))
        inserted += 1

    session.commit()
    return inserted
