from __future__ import annotations

from pathlib import Path

from recruitdesk.config import get_settings
from recruitdesk.db import models  # noqa: F401
from recruitdesk.db.base import Base
from recruitdesk.db.seed import seed_vacancies
from recruitdesk.db.session import SessionLocal, engine


def ensure_data_directories() -> None:
    settings = get_settings()
    paths: list[Path] = [
        settings.data_dir,
        settings.migration_dir,
        settings.cv_import_dir,
    ]
    if settings.blob_backend == "local":
        paths.append(settings.blob_local_dir)
    for path in paths:
        path.mkdir(parents=True, exist_ok=True)


def init_database(*, seed: bool = True) -> dict[str, int]:
    ensure_data_directories()
    Base.metadata.create_all(bind=engine)

    if not seed:
        return {"seeded_vacancies": 0}
    with SessionLocal() as session:
        inserted = seed_vacancies(session)
    return {"seeded_vacancies": inserted}
