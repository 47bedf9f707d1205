"""Normalization and merge rules for spreadsheet-style rows.

Rows arrive with whatever headers the exporting spreadsheet used
(``Job_Title``, ``Job Title``, ``job_title`` ...). Every header is reduced to
a label key (lower-case alphanumerics only) and looked up through
``FIELD_ALIASES``. Merges only fill values that are empty in the stored
record; see ``merge_ranking`` for how zero scores are treated.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from recruitdesk.db.models import EVIDENCE_FIELDS, SCORE_FIELDS

_LABEL_PATTERN = re.compile(r"[^a-z0-9]+")
_INT_PREFIX_PATTERN = re.compile(r"^\s*([-+]?\d+)")
_FLOAT_PREFIX_PATTERN = re.compile(r"^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)")
_EXCEL_FLOAT_PATTERN = re.compile(r"^[-+]?\d+\.0$")
_PHONE_ERROR_MARKERS = {"#error!", "nan", "null", "none"}

FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "id": ("ID", "Id", "application_id"),
    "application_id": ("Application_ID", "application_id", "ID", "cv_id"),
    "email": ("Email", "Email Address", "e_mail"),
    "phone": ("Phone", "Phone Number", "Mobile", "Contact Number"),
    "job_title": ("Job_Title", "Job Title", "job_title_text", "Position", "Vacancy"),
    "cv_file_url": ("CV File URL", "CV File", "cv_file_url", "CV", "File", "File Path", "file_path"),
    "source": ("Source",),
    "status": ("Status",),
    "url": ("URL", "Link", "Job URL"),
    "description": ("Description", "Job Description"),
    "copied": ("Copied",),
    "education_score": ("Education Score",),
    "education_evidence": ("Education Evidence",),
    "work_experience_score": ("Work Experience Score",),
    "work_experience_evidence": ("Work Experience Evidence",),
    "skill_match_score": ("Skill Set Match Score", "Skill Match Score", "Skill Set Score"),
    "skill_match_evidence": ("Skill Set Match Evidence", "Skill Match Evidence", "Skill Set Evidence"),
    "certifications_score": ("Certifications Score", "Certification Score"),
    "certifications_evidence": ("Certifications Evidence", "Certification Evidence"),
    "domain_knowledge_score": ("Domain Knowledge Score",),
    "domain_knowledge_evidence": ("Domain Knowledge Evidence",),
    "soft_skills_score": ("Soft Skills Score",),
    "soft_skills_evidence": ("Soft Skills Evidence",),
    "total_score": ("Total Score", "Total"),
    "final_score": ("Final Score",),
    "summary": ("Summary",),
}

APPLICATION_TEXT_FIELDS = ("email", "phone", "job_title", "cv_file_url", "source", "status")
RANKING_NUMERIC_FIELDS = SCORE_FIELDS + ("total_score", "final_score")
RANKING_TEXT_FIELDS = EVIDENCE_FIELDS + ("summary",)


def label_key(label: Any) -> str:
    return _LABEL_PATTERN.sub("", str(label).lower())


def index_row(raw_row: Mapping[Any, Any]) -> dict[str, Any]:
    indexed: dict[str, Any] = {}
    for header, value in raw_row.items():
        if header is None:
            continue
        indexed.setdefault(label_key(header), value)
    return indexed


def lookup(raw_row: Mapping[Any, Any], canonical: str) -> Any:
    """Return the first non-empty value stored under any accepted label for ``canonical``."""
    return _lookup_indexed(index_row(raw_row), canonical)


def _lookup_indexed(indexed: Mapping[str, Any], canonical: str) -> Any:
    for label in (canonical, *FIELD_ALIASES.get(canonical, ())):
        value = indexed.get(label_key(label))
        if _is_empty(value):
            continue
        return value
    return None


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def clean_text(value: Any) -> str | None:
    if _is_empty(value):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


@dataclass(slots=True)
class CanonicalFields:
    id: str | None = None
    email: str | None = None
    phone: str | None = None
    job_title: str | None = None
    cv_file_url: str | None = None
    source: str = "manual"
    status: str = "pending"

    def as_values(self) -> dict[str, Any]:
        return {
            "email": self.email,
            "phone": self.phone,
            "job_title": self.job_title,
            "cv_file_url": self.cv_file_url,
            "source": self.source,
            "status": self.status,
        }


@dataclass(slots=True)
class VacancyFields:
    job_title: str | None = None
    url: str | None = None
    description: str | None = None
    status: str = "active"


@dataclass(slots=True)
class RankingFields:
    application_id: str | None = None
    scores: dict[str, int | float | None] = field(default_factory=dict)
    texts: dict[str, str | None] = field(default_factory=dict)

    def as_values(self) -> dict[str, Any]:
        return {**self.scores, **self.texts}


@dataclass(slots=True)
class ReferralFields:
    email: str | None = None
    phone: str | None = None
    job_title: str | None = None
    cv_file_url: str | None = None
    copied: bool = False


def normalize_row(raw_row: Mapping[Any, Any]) -> CanonicalFields:
    row = index_row(raw_row)
    source = clean_text(_lookup_indexed(row, "source"))
    status = clean_text(_lookup_indexed(row, "status"))
    return CanonicalFields(
        id=clean_text(_lookup_indexed(row, "id")),
        email=clean_text(_lookup_indexed(row, "email")),
        phone=clean_text(_lookup_indexed(row, "phone")),
        job_title=clean_text(_lookup_indexed(row, "job_title")),
        cv_file_url=clean_text(_lookup_indexed(row, "cv_file_url")),
        source=source.lower() if source else "manual",
        status=status.lower() if status else "pending",
    )


def normalize_vacancy_row(raw_row: Mapping[Any, Any]) -> VacancyFields:
    row = index_row(raw_row)
    status = clean_text(_lookup_indexed(row, "status"))
    return VacancyFields(
        job_title=clean_text(_lookup_indexed(row, "job_title")),
        url=clean_text(_lookup_indexed(row, "url")),
        description=clean_text(_lookup_indexed(row, "description")),
        status=status.lower() if status else "active",
    )


def normalize_ranking_row(raw_row: Mapping[Any, Any]) -> RankingFields:
    row = index_row(raw_row)
    scores: dict[str, int | float | None] = {
        key: parse_score_maybe(_lookup_indexed(row, key)) for key in SCORE_FIELDS + ("total_score",)
    }
    scores["final_score"] = parse_float_maybe(_lookup_indexed(row, "final_score"))
    texts = {key: clean_text(_lookup_indexed(row, key)) for key in RANKING_TEXT_FIELDS}
    return RankingFields(
        application_id=clean_text(_lookup_indexed(row, "application_id")),
        scores=scores,
        texts=texts,
    )


def normalize_referral_row(raw_row: Mapping[Any, Any]) -> ReferralFields:
    row = index_row(raw_row)
    copied = clean_text(_lookup_indexed(row, "copied")) or ""
    return ReferralFields(
        email=clean_text(_lookup_indexed(row, "email")),
        phone=normalize_phone(_lookup_indexed(row, "phone")),
        job_title=clean_text(_lookup_indexed(row, "job_title")),
        cv_file_url=clean_text(_lookup_indexed(row, "cv_file_url")),
        copied=copied.upper() in {"Y", "YES", "TRUE", "1"},
    )


def _parse_number(raw: Any, pattern: re.Pattern[str], cast: Callable[[str], Any]) -> Any:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        if isinstance(raw, float) and not math.isfinite(raw):
            return None
        return cast(raw)
    text = str(raw)
    if not text.strip():
        return None
    match = pattern.match(text)
    if not match:
        return None
    return cast(match.group(1))


def parse_score_maybe(raw: Any) -> int | None:
    return _parse_number(raw, _INT_PREFIX_PATTERN, int)


def parse_float_maybe(raw: Any) -> float | None:
    return _parse_number(raw, _FLOAT_PREFIX_PATTERN, float)


def normalize_phone(raw: Any) -> str | None:
    if raw is None:
        return None
    if isinstance(raw, float) and raw.is_integer():
        raw = int(raw)
    text = str(raw).strip()
    if not text:
        return None
    if _EXCEL_FLOAT_PATTERN.match(text):
        text = text[:-2]
    if text.lower() in _PHONE_ERROR_MARKERS:
        return None
    plus = "+" if text.startswith("+") else ""
    digits = re.sub(r"[^0-9]", "", text)
    if not digits:
        return None
    return plus + digits


def _missing(value: Any) -> bool:
    return value is None or value == ""


def merge_application(existing: Any, incoming: CanonicalFields, vacancy: Any = None) -> dict[str, Any]:
    patch: dict[str, Any] = {}
    values = incoming.as_values()
    values["phone"] = normalize_phone(values["phone"])
    for key in APPLICATION_TEXT_FIELDS:
        if _missing(getattr(existing, key, None)) and not _missing(values[key]):
            patch[key] = values[key]
    if getattr(existing, "vacancy_id", None) is None and vacancy is not None:
        patch["vacancy_id"] = vacancy.id
    return patch


def merge_vacancy(existing: Any, incoming: VacancyFields, fallback_url: str | None = None) -> dict[str, Any]:
    patch: dict[str, Any] = {}
    url = incoming.url or fallback_url
    if _missing(existing.url) and url:
        patch["url"] = url
    if _missing(existing.description) and incoming.description:
        patch["description"] = incoming.description
    if _missing(existing.status) and incoming.status:
        patch["status"] = incoming.status
    return patch


def merge_ranking(existing: Any, incoming: RankingFields, allow_zero_overwrite: bool = False) -> dict[str, Any]:
    """Fill empty ranking fields from ``incoming``.

    A stored ``None`` accepts any parsed value, including 0. A stored 0 accepts
    a non-zero value; replacing a stored 0 with another 0 only happens when
    ``allow_zero_overwrite`` is set. Non-zero stored scores are never touched.
    Evidence and summary text fill only when the stored value is empty.
    """
    patch: dict[str, Any] = {}
    for key in RANKING_NUMERIC_FIELDS:
        current = getattr(existing, key, None)
        value = incoming.scores.get(key)
        if value is None:
            continue
        if current is None:
            patch[key] = value
        elif current == 0:
            if value == 0 and not allow_zero_overwrite:
                continue
            patch[key] = value
    for key in RANKING_TEXT_FIELDS:
        value = incoming.texts.get(key)
        if _missing(getattr(existing, key, None)) and value:
            patch[key] = value
    return patch


def resolve_vacancy(repo: Any, job_title: str | None) -> Any:
    if not job_title:
        return None
    return repo.find_vacancy_by_title(job_title)
