from __future__ import annotations

from datetime import UTC, datetime

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from recruitdesk.core.admin_queries import AdminQueryService
from recruitdesk.core.reconcile import resolve_vacancy
from recruitdesk.db.models import Application, Vacancy
from recruitdesk.db.repositories import Repository


def test_create_update_and_list_vacancies(admin_client: TestClient) -> None:
    response = admin_client.post(
        "/api/vacancies",
        json={"job_title": "Senior Data Analyst", "url": "https://jobs.example.com/analyst"},
    )
    assert response.status_code == 201
    vacancy = response.json()
    assert vacancy["status"] == "active"

    response = admin_client.put(f"/api/vacancies/{vacancy['id']}", json={"description": "SQL and Python"})
    assert response.status_code == 200
    assert response.json()["description"] == "SQL and Python"
    assert response.json()["url"] == "https://jobs.example.com/analyst"

    listing = admin_client.get("/api/vacancies").json()
    assert listing[0]["applicationCount"] == 0
    assert listing[0]["pendingCount"] == 0

    assert admin_client.put("/api/vacancies/999", json={"status": "inactive"}).status_code == 404
    assert admin_client.post("/api/vacancies", json={"job_title": ""}).status_code == 400
    assert admin_client.put(f"/api/vacancies/{vacancy['id']}", json={"status": None}).status_code == 400
    assert admin_client.put(f"/api/vacancies/{vacancy['id']}", json={"job_title": None}).status_code == 400


def test_vacancies_require_admin(client: TestClient) -> None:
    assert client.get("/api/vacancies").status_code == 401
    assert client.post("/api/vacancies", json={"job_title": "QA"}).status_code == 401


def test_vacancy_counts_are_computed(admin_client: TestClient, db: Session) -> None:
    repo = Repository(db)
    qa = repo.create_vacancy(job_title="QA")
    repo.create_vacancy(job_title="Scrum Master")
    repo.create_application(job_title="QA", vacancy_id=qa.id)
    repo.create_application(job_title="QA", vacancy_id=qa.id, status="ranked")
    repo.create_application(job_title="QA")

    counts = {row["job_title"]: row for row in admin_client.get("/api/vacancies").json()}
    assert counts["QA"]["applicationCount"] == 2
    assert counts["QA"]["pendingCount"] == 1
    assert counts["Scrum Master"]["applicationCount"] == 0


def test_materialize_counts_includes_unlinked_title_matches(admin_client: TestClient, db: Session) -> None:
    repo = Repository(db)
    qa = repo.create_vacancy(job_title="QA")
    other = repo.create_vacancy(job_title="Scrum Master")
    repo.create_application(job_title="QA", vacancy_id=qa.id)
    repo.create_application(job_title="QA")
    repo.create_application(job_title="Scrum Master", vacancy_id=qa.id)

    response = admin_client.post("/api/admin/vacancy-counts", json={"dry_run": True})
    assert response.json() == {"processed": 2, "dry_run": True}
    db.expire_all()
    assert db.get(Vacancy, qa.id).applications_count == 0

    response = admin_client.post("/api/admin/vacancy-counts", json={})
    assert response.json() == {"processed": 2, "dry_run": False}
    db.expire_all()
    assert db.get(Vacancy, qa.id).applications_count == 3
    assert db.get(Vacancy, other.id).applications_count == 0

    repo.create_application(job_title="Scrum Master")
    assert AdminQueryService(db).materialize_vacancy_counts(job_title="Scrum Master") == 1
    db.expire_all()
    assert db.get(Vacancy, other.id).applications_count == 1
    assert db.get(Vacancy, qa.id).applications_count == 3


def test_public_vacancies_hide_inactive(client: TestClient, db: Session) -> None:
    repo = Repository(db)
    repo.create_vacancy(job_title="Open role", url="https://jobs.example.com/open")
    repo.create_vacancy(job_title="Closed role", status="inactive")

    response = client.get("/api/public/vacancies")
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["vacancies"][0]["job_title"] == "Open role"
    assert set(body["vacancies"][0]) == {"id", "job_title", "url", "description", "created_at"}


def test_resolve_vacancy_prefers_latest_duplicate(db: Session) -> None:
    db.add_all(
        [
            Vacancy(job_title="Engineer", url="old", created_at=datetime(2024, 1, 1, tzinfo=UTC)),
            Vacancy(job_title="Engineer", url="new", created_at=datetime(2024, 3, 1, tzinfo=UTC)),
        ]
    )
    db.commit()

    assert resolve_vacancy(Repository(db), "Engineer").url == "new"
    assert resolve_vacancy(Repository(db), "Missing") is None
    assert resolve_vacancy(Repository(db), None) is None


def test_application_rows_link_through_relationship(db: Session) -> None:
    repo = Repository(db)
    vacancy = repo.create_vacancy(job_title="QA")
    application = repo.create_application(job_title="QA", vacancy_id=vacancy.id)
    assert db.get(Application, application.id).vacancy.job_title == "QA"
