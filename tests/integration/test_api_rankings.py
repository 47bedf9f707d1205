from __future__ import annotations

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from recruitdesk.db.models import Application
from recruitdesk.db.repositories import Repository


def _application(db: Session, **values) -> Application:
    values.setdefault("job_title", "QA")
    return Repository(db).create_application(**values)


def test_create_ranking_computes_total_and_marks_ranked(admin_client: TestClient, db: Session) -> None:
    application = _application(db, email="a@example.com")

    response = admin_client.post(
        "/api/rankings",
        json={
            "application_id": application.id,
            "education_score": 8,
            "work_experience_score": 7,
            "skill_match_score": 9,
            "summary": "Strong candidate",
        },
    )
    assert response.status_code == 201
    ranking = response.json()
    assert ranking["total_score"] == 24
    assert ranking["certifications_score"] == 0
    assert ranking["final_score"] == 0.0

    db.expire_all()
    assert db.get(Application, application.id).status == "ranked"

    duplicate = admin_client.post("/api/rankings", json={"application_id": application.id})
    assert duplicate.status_code == 400
    assert duplicate.json()["error"] == "Ranking already exists for this application"


def test_create_ranking_for_missing_application(admin_client: TestClient) -> None:
    response = admin_client.post("/api/rankings", json={"application_id": "missing"})
    assert response.status_code == 404


def test_negative_scores_are_rejected(admin_client: TestClient, db: Session) -> None:
    application = _application(db)
    response = admin_client.post(
        "/api/rankings",
        json={"application_id": application.id, "education_score": -1},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"


def test_get_and_update_ranking(admin_client: TestClient, db: Session) -> None:
    application = _application(db)
    admin_client.post("/api/rankings", json={"application_id": application.id, "education_score": 5})

    response = admin_client.get(f"/api/rankings/{application.id}")
    assert response.status_code == 200
    assert response.json()["education_score"] == 5

    response = admin_client.put(f"/api/rankings/{application.id}", json={"education_score": 0, "summary": "Reviewed"})
    assert response.status_code == 200
    body = response.json()
    assert body["education_score"] == 0
    assert body["summary"] == "Reviewed"

    assert admin_client.get("/api/rankings/missing").status_code == 404
    assert admin_client.put("/api/rankings/missing", json={}).status_code == 404


def test_fill_empty_only_keeps_non_zero_scores(admin_client: TestClient, db: Session) -> None:
    application = _application(db)
    admin_client.post(
        "/api/rankings",
        json={"application_id": application.id, "education_score": 6, "summary": "Existing"},
    )

    response = admin_client.put(
        f"/api/rankings/{application.id}?fill_empty_only=true",
        json={"education_score": 9, "skill_match_score": 4, "summary": "Replacement"},
    )
    body = response.json()
    assert body["education_score"] == 6
    assert body["skill_match_score"] == 4
    assert body["summary"] == "Existing"

    response = admin_client.put(
        f"/api/rankings/{application.id}?fill_empty_only=true",
        json={"education_score": 0},
    )
    assert response.json()["education_score"] == 6


def test_admin_rankings_list_and_stats(admin_client: TestClient, db: Session) -> None:
    empty = admin_client.get("/api/admin/rankings").json()
    assert empty["rankings"] == []
    assert empty["pagination"]["totalPages"] == 1

    first = _application(db, cv_file_url="http://testserver/files/a.pdf")
    _application(db)
    Repository(db).create_vacancy(job_title="QA")
    admin_client.post("/api/rankings", json={"application_id": first.id, "education_score": 3})

    listing = admin_client.get("/api/admin/rankings").json()
    assert listing["pagination"]["total"] == 1
    assert listing["rankings"][0]["application"]["id"] == first.id

    stats = admin_client.get("/api/admin/stats").json()
    assert stats == {
        "totalApplications": 2,
        "cvFilesCount": 1,
        "pendingRankings": 1,
        "activeVacancies": 1,
    }


def test_admin_endpoints_require_credentials(client: TestClient) -> None:
    for path in ("/api/admin/stats", "/api/admin/rankings", "/api/admin/blobs"):
        assert client.get(path).status_code == 401
