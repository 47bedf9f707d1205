from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any

from sqlalchemy.orm import Session

from recruitdesk.core.reconcile import (
    merge_application,
    merge_ranking,
    merge_vacancy,
    normalize_phone,
    normalize_ranking_row,
    normalize_referral_row,
    normalize_row,
    normalize_vacancy_row,
    resolve_vacancy,
)
from recruitdesk.db.repositories import Repository
from recruitdesk.types import SheetKind, SheetResult

logger = logging.getLogger(__name__)

Row = dict[str, Any]
# rows are imported after the sheets they reference
SHEET_ORDER: tuple[SheetKind, ...] = ("vacancies", "applications", "referrals", "rankings")
UNKNOWN_JOB_TITLE = "Unknown"


def classify_sheet(name: str) -> SheetKind:
    key = name.lower()
    if "vacanc" in key or "jobs" in key or "jd" in key:
        return "vacancies"
    if "applica" in key:
        return "applications"
    if "rank" in key:
        return "rankings"
    if "referral" in key:
        return "referrals"
    return "applications"


class SheetImporter:
    def __init__(
        self,
        session: Session,
        *,
        dry_run: bool = False,
        rankings_only: bool = False,
        allow_zero_overwrite: bool = False,
    ):
        self.session = session
        self.repo = Repository(session)
        self.dry_run = dry_run
        self.rankings_only = rankings_only
        self.allow_zero_overwrite = allow_zero_overwrite
        self.url_map: dict[str, str] = {}

    def run(self, sheets: dict[str, list[Row]]) -> dict[str, SheetResult]:
        self.url_map = build_url_map(sheets)
        summary: dict[str, SheetResult] = {}
        ordered = sorted(sheets.items(), key=lambda item: SHEET_ORDER.index(classify_sheet(item[0])))
        for name, rows in ordered:
            kind = classify_sheet(name)
            logger.info("Processing sheet %s as %s (%d rows)", name, kind, len(rows))
            if self.rankings_only and kind != "rankings":
                summary[name] = SheetResult(kind="ignored", rows=len(rows))
                continue
            handler = self._handlers()[kind]
            summary[name] = handler(rows)
        return summary

    def _handlers(self) -> dict[str, Callable[[list[Row]], SheetResult]]:
        return {
            "vacancies": self.import_vacancies,
            "applications": self.import_applications,
            "rankings": self.import_rankings,
            "referrals": self.import_referrals,
        }

    def _each(self, rows: Iterable[Row], result: SheetResult, process: Callable[[Row], str]) -> SheetResult:
        for row in rows:
            result.rows += 1
            try:
                outcome = process(row)
            except Exception:
                self.session.rollback()
                logger.exception("%s row failed: %r", result.kind, row)
                result.errors += 1
                continue
            if outcome == "created":
                result.created += 1
            elif outcome == "updated":
                result.updated += 1
            elif outcome == "skipped":
                result.skipped += 1
        return result

    def import_vacancies(self, rows: list[Row]) -> SheetResult:
        def process(row: Row) -> str:
            fields = normalize_vacancy_row(row)
            if not fields.job_title:
                return "ignored"
            mapped_url = self.url_map.get(fields.job_title)
            existing = self.repo.find_vacancy_by_title(fields.job_title)
            if existing:
                patch = merge_vacancy(existing, fields, fallback_url=mapped_url)
                if not patch:
                    return "skipped"
                self._write("update vacancy", existing.id, patch, lambda: self.repo.update_vacancy(existing.id, patch))
                return "updated"

            values = {
                "job_title": fields.job_title,
                "url": fields.url or mapped_url,
                "description": fields.description,
                "status": fields.status,
            }
            self._write("create vacancy", None, values, lambda: self.repo.create_vacancy(**values))
            return "created"

        return self._each(rows, SheetResult(kind="vacancies"), process)

    def import_applications(self, rows: list[Row]) -> SheetResult:
        def process(row: Row) -> str:
            fields = normalize_row(row)
            if not fields.job_title and not fields.email:
                return "ignored"
            phone = normalize_phone(fields.phone)
            job_title = fields.job_title or UNKNOWN_JOB_TITLE

            existing = self.repo.get_application(fields.id) if fields.id else None
            if not existing:
                existing = self.repo.find_application(job_title=job_title, email=fields.email, phone=phone)

            vacancy = resolve_vacancy(self.repo, fields.job_title)
            if vacancy and not vacancy.url and fields.job_title in self.url_map:
                url_patch = {"url": self.url_map[fields.job_title]}
                self._write(
                    "update vacancy url",
                    vacancy.id,
                    url_patch,
                    lambda: self.repo.update_vacancy(vacancy.id, url_patch),
                )

            if existing:
                patch = merge_application(existing, fields, vacancy)
                if not patch:
                    return "skipped"
                self._write(
                    "update application",
                    existing.id,
                    patch,
                    lambda: self.repo.update_application(existing.id, patch),
                )
                return "updated"

            values = {
                "id": fields.id,
                "email": fields.email,
                "phone": phone,
                "job_title": job_title,
                "vacancy_id": vacancy.id if vacancy else None,
                "cv_file_url": fields.cv_file_url,
                "source": fields.source,
                "status": fields.status,
            }
            self._write("create application", fields.id, values, lambda: self.repo.create_application(**values))
            return "created"

        return self._each(rows, SheetResult(kind="applications"), process)

    def import_rankings(self, rows: list[Row]) -> SheetResult:
        def process(row: Row) -> str:
            fields = normalize_ranking_row(row)
            if not fields.application_id:
                return "ignored"
            if not self.repo.get_application(fields.application_id):
                return "skipped"

            existing = self.repo.get_ranking_for_application(fields.application_id)
            if existing:
                patch = merge_ranking(existing, fields, allow_zero_overwrite=self.allow_zero_overwrite)
                if not patch:
                    return "skipped"
                self._write("update ranking", existing.id, patch, lambda: self.repo.update_ranking(existing.id, patch))
                return "updated"

            values = fields.as_values()
            self._write(
                "create ranking",
                fields.application_id,
                values,
                lambda: self.repo.create_ranking(fields.application_id, values),
            )
            return "created"

        return self._each(rows, SheetResult(kind="rankings"), process)

    def import_referrals(self, rows: list[Row]) -> SheetResult:
        def process(row: Row) -> str:
            fields = normalize_referral_row(row)
            if not fields.email or not fields.job_title:
                return "ignored"
            if self.repo.find_referral(fields.email, fields.job_title):
                return "skipped"
            values = {
                "email": fields.email,
                "phone": fields.phone,
                "job_title": fields.job_title,
                "cv_file_url": fields.cv_file_url,
                "copied": fields.copied,
            }
            self._write("create referral", None, values, lambda: self.repo.create_referral(**values))
            return "created"

        return self._each(rows, SheetResult(kind="referrals"), process)

    def _write(self, action: str, target: Any, values: dict[str, Any], apply: Callable[[], Any]) -> None:
        if self.dry_run:
            logger.info("DRY RUN: would %s %s %s", action, target or "", values)
            return
        apply()


def build_url_map(sheets: dict[str, list[Row]]) -> dict[str, str]:
    url_map: dict[str, str] = {}
    for name, rows in sheets.items():
        if classify_sheet(name) != "vacancies":
            continue
        for row in rows:
            fields = normalize_vacancy_row(row)
            if fields.job_title and fields.url:
                url_map[fields.job_title] = fields.url
    return url_map


def backfill_vacancy_ids(session: Session, *, dry_run: bool = False) -> int:
    repo = Repository(session)
    applications = repo.list_applications_without_vacancy()
    logger.info("Found %d applications without vacancy_id", len(applications))

    updated = 0
    for application in applications:
        vacancy = resolve_vacancy(repo, application.job_title)
        if not vacancy:
            continue
        if dry_run:
            logger.info(
                "DRY RUN: application %s job_title=%r -> vacancy_id=%s",
                application.id,
                application.job_title,
                vacancy.id,
            )
        else:
            repo.update_application(application.id, {"vacancy_id": vacancy.id})
        updated += 1
    return updated
