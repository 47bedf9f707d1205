from __future__ import annotations

import csv
from pathlib import Path

import openpyxl
import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from recruitdesk.core.importer import SheetImporter, backfill_vacancy_ids
from recruitdesk.core.sheets import read_sheets
from recruitdesk.db.models import Application, CvRanking, Referral, Vacancy
from recruitdesk.db.repositories import Repository

APP_ID = "6f1c2a9e-3b4d-4e5f-8a7b-1c2d3e4f5a6b"


def _count(db: Session, model) -> int:
    return db.scalar(select(func.count()).select_from(model))


def _write_workbook(path: Path) -> Path:
    workbook = openpyxl.Workbook()
    applications = workbook.active
    applications.title = "Applications"
    applications.append(["ID", "Email", "Phone Number", "Job Title", "CV File URL"])
    applications.append([APP_ID, "jane@example.com", 94771234567.0, "Scrum Master", None])
    applications.append([None, "john@example.com", "#ERROR!", "QA Engineer", "https://drive.google.com/file/d/abc"])
    applications.append([None, None, None, None, None])

    vacancies = workbook.create_sheet("Vacancies")
    vacancies.append(["Job_Title", "URL", "Description"])
    vacancies.append(["Scrum Master", "https://jobs.example.com/scrum", "Agile delivery"])
    vacancies.append(["QA Engineer", None, None])

    rankings = workbook.create_sheet("CV Rankings")
    rankings.append(["Application_ID", "Education Score", "Skill Set Match Score", "Total Score", "Final Score"])
    rankings.append([APP_ID, 0, "7 - strong", 7, "7.5"])
    rankings.append(["missing-application", 5, 5, 10, 1.0])

    referrals = workbook.create_sheet("Referrals")
    referrals.append(["Email", "Phone", "Job Title", "Copied"])
    referrals.append(["ref@example.com", "077 123 4567", "QA Engineer", "Y"])
    referrals.append(["ref@example.com", "077 123 4567", "QA Engineer", "N"])

    workbook.save(path)
    return path


def test_workbook_import_links_applications_to_vacancies(db: Session, tmp_path: Path) -> None:
    sheets = read_sheets(_write_workbook(tmp_path / "export.xlsx"))
    summary = SheetImporter(db).run(sheets)

    assert summary["Vacancies"].created == 2
    assert summary["Applications"].created == 2
    assert summary["Applications"].rows == 2
    assert summary["CV Rankings"].created == 1
    assert summary["CV Rankings"].skipped == 1
    assert summary["Referrals"].created == 1
    assert summary["Referrals"].skipped == 1

    jane = db.get(Application, APP_ID)
    assert jane.phone == "94771234567"
    assert jane.source == "manual"
    assert jane.vacancy.url == "https://jobs.example.com/scrum"

    john = db.scalar(select(Application).where(Application.email == "john@example.com"))
    assert john.phone is None
    assert john.vacancy_id is not None

    ranking = db.scalar(select(CvRanking).where(CvRanking.application_id == APP_ID))
    assert ranking.education_score == 0
    assert ranking.skill_match_score == 7
    assert ranking.final_score == 7.5

    referral = db.scalar(select(Referral))
    assert referral.phone == "0771234567"
    assert referral.copied is True


def test_second_pass_is_idempotent(db: Session, tmp_path: Path) -> None:
    sheets = read_sheets(_write_workbook(tmp_path / "export.xlsx"))
    sheets["Applications"].append({"Email": "solo@example.com", "Phone Number": "0771234567"})
    SheetImporter(db).run(sheets)
    summary = SheetImporter(db).run(sheets)

    assert summary["Vacancies"].created == 0
    assert summary["Applications"].created == 0
    assert summary["CV Rankings"].created == 0
    assert _count(db, Vacancy) == 2
    assert _count(db, Application) == 3
    assert _count(db, CvRanking) == 1
    assert _count(db, Referral) == 1
    solo = db.scalar(select(Application).where(Application.email == "solo@example.com"))
    assert solo.job_title == "Unknown"


def test_dry_run_writes_nothing(db: Session, tmp_path: Path) -> None:
    sheets = read_sheets(_write_workbook(tmp_path / "export.xlsx"))
    summary = SheetImporter(db, dry_run=True).run(sheets)

    assert summary["Applications"].created == 2
    assert _count(db, Application) == 0
    assert _count(db, Vacancy) == 0


def test_rankings_only_ignores_other_sheets(db: Session, tmp_path: Path) -> None:
    Repository(db).create_application(id=APP_ID, job_title="Scrum Master")
    sheets = read_sheets(_write_workbook(tmp_path / "export.xlsx"))
    summary = SheetImporter(db, rankings_only=True).run(sheets)

    assert summary["Applications"].kind == "ignored"
    assert summary["CV Rankings"].created == 1
    assert _count(db, Vacancy) == 0


def test_ranking_zero_overwrite_rule(db: Session) -> None:
    repo = Repository(db)
    repo.create_application(id=APP_ID, job_title="QA")
    repo.create_ranking(APP_ID, {"education_score": 0, "skill_match_score": 4, "summary": None})
    rows = [{"Application_ID": APP_ID, "Education Score": 0, "Skill Match Score": 9, "Summary": "Solid"}]

    summary = SheetImporter(db).run({"Rankings": rows})
    assert summary["Rankings"].updated == 1
    db.expire_all()
    ranking = repo.get_ranking_for_application(APP_ID)
    assert ranking.education_score == 0
    assert ranking.skill_match_score == 4
    assert ranking.summary == "Solid"

    rows = [{"Application_ID": APP_ID, "Education Score": 0}]
    assert SheetImporter(db).run({"Rankings": rows})["Rankings"].skipped == 1

    summary = SheetImporter(db, allow_zero_overwrite=True).run({"Rankings": rows})
    assert summary["Rankings"].updated == 1


def test_csv_import_and_existing_fill(db: Session, tmp_path: Path) -> None:
    repo = Repository(db)
    existing = repo.create_application(email="jane@example.com", job_title="QA", source="web")
    path = tmp_path / "applications.csv"
    with path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.writer(handle)
        writer.writerow(["Email", "Phone", "Job_Title", "CV File URL"])
        writer.writerow(["jane@example.com", "0771234567", "QA", "https://cdn.example.com/jane.pdf"])
        writer.writerow(["", "0112345678", "QA", ""])

    summary = SheetImporter(db).run(read_sheets(path))
    assert summary["applications"].updated == 1
    assert summary["applications"].created == 1

    db.expire_all()
    refreshed = db.get(Application, existing.id)
    assert refreshed.phone == "0771234567"
    assert refreshed.source == "web"
    assert refreshed.cv_file_url == "https://cdn.example.com/jane.pdf"
    assert repo.find_application(job_title="QA", phone="0112345678") is not None


def test_row_errors_are_counted_and_import_continues(db: Session, monkeypatch: pytest.MonkeyPatch) -> None:
    original = Repository.create_vacancy

    def flaky(self, **values):
        if values["job_title"] == "Broken":
            raise RuntimeError("bad row")
        return original(self, **values)

    monkeypatch.setattr(Repository, "create_vacancy", flaky)
    rows = [{"Job_Title": "Broken"}, {"Job_Title": "QA"}]
    result = SheetImporter(db).run({"Vacancies": rows})["Vacancies"]

    assert result.errors == 1
    assert result.created == 1
    assert _count(db, Vacancy) == 1


def test_backfill_vacancy_ids(db: Session) -> None:
    repo = Repository(db)
    vacancy = repo.create_vacancy(job_title="QA")
    linked = repo.create_application(job_title="QA")
    orphan = repo.create_application(job_title="Unknown role")

    assert backfill_vacancy_ids(db, dry_run=True) == 1
    db.expire_all()
    assert db.get(Application, linked.id).vacancy_id is None

    assert backfill_vacancy_ids(db) == 1
    db.expire_all()
    assert db.get(Application, linked.id).vacancy_id == vacancy.id
    assert db.get(Application, orphan.id).vacancy_id is None
