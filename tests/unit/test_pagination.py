from __future__ import annotations

from recruitdesk.core.admin_queries import page_count, page_info
from recruitdesk.core.importer import classify_sheet


def test_page_count() -> None:
    assert page_count(250, 100) == 3
    assert page_count(200, 100) == 2
    assert page_count(0, 100) == 0
    assert page_count(0, 100, minimum=1) == 1


def test_page_info_serializes_camel_case() -> None:
    info = page_info(3, 100, 250)
    assert info.model_dump(by_alias=True) == {"page": 3, "limit": 100, "total": 250, "totalPages": 3}


def test_classify_sheet() -> None:
    assert classify_sheet("Vacancies") == "vacancies"
    assert classify_sheet("JD list") == "vacancies"
    assert classify_sheet("Applications 2024") == "applications"
    assert classify_sheet("CV Rankings") == "rankings"
    assert classify_sheet("Referrals") == "referrals"
    assert classify_sheet("Sheet1") == "applications"
