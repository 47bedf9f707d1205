from __future__ import annotations

import json
from pathlib import Path

import typer
import uvicorn

from recruitdesk.api.app import create_app
from recruitdesk.config import get_settings
from recruitdesk.core.admin_queries import AdminQueryService
from recruitdesk.core.blob_store import blob_exists, get_blob_store
from recruitdesk.core.diagnostics import check_blob_store, check_database, database_sanity
from recruitdesk.core.importer import SheetImporter, backfill_vacancy_ids
from recruitdesk.core.sheets import read_sheets
from recruitdesk.core.uploads import UploadManager, load_file_map
from recruitdesk.db.init import init_database
from recruitdesk.db.seed import seed_vacancies
from recruitdesk.db.session import SessionLocal
from recruitdesk.errors import RecruitError
from recruitdesk.logging_config import configure_logging

app = typer.Typer(help="Recruitdesk CLI")
data_app = typer.Typer(help="Spreadsheet import and database maintenance")
cvs_app = typer.Typer(help="CV file uploads and link maintenance")

app.add_typer(data_app, name="data")
app.add_typer(cvs_app, name="cvs")

SHEET_SUFFIXES = {".xlsx", ".xlsm", ".csv"}

_INITIALIZED = False


def ensure_initialized() -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return
    init_database(seed=False)
    _INITIALIZED = True


def _echo(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


def _sheet_files(path: Path) -> list[Path]:
    if path.is_file():
        return [path]
    return sorted(item for item in path.iterdir() if item.is_file() and item.suffix.lower() in SHEET_SUFFIXES)


@app.command("init")
def init_cmd() -> None:
    """Create directories and tables, then seed sample vacancies."""
    configure_logging()
    result = init_database()
    _echo({"ok": True, **result})


@app.command("seed")
def seed_cmd() -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        inserted = seed_vacancies(db)
    _echo({"seeded_vacancies": inserted})


@data_app.command("import")
def data_import(
    path: Path | None = typer.Option(None, "--path", help="Workbook, CSV file, or a directory of them"),
    dry_run: bool = typer.Option(False, "--dry-run"),
    rankings_only: bool = typer.Option(False, "--rankings-only"),
    allow_zero_overwrite: bool = typer.Option(False, "--allow-zero-overwrite"),
) -> None:
    """Import vacancies, applications, rankings and referrals from spreadsheet exports."""
    configure_logging()
    ensure_initialized()
    source = path or get_settings().migration_dir
    if not source.exists():
        typer.echo(f"Path not found: {source}", err=True)
        raise typer.Exit(code=1)

    files = _sheet_files(source)
    if not files:
        typer.echo(f"No .xlsx or .csv files found in {source}", err=True)
        raise typer.Exit(code=1)

    summary: dict[str, dict[str, dict]] = {}
    with SessionLocal() as db:
        importer = SheetImporter(
            db,
            dry_run=dry_run,
            rankings_only=rankings_only,
            allow_zero_overwrite=allow_zero_overwrite,
        )
        for file in files:
            results = importer.run(read_sheets(file))
            summary[file.name] = {name: result.model_dump() for name, result in results.items()}
    _echo({"dry_run": dry_run, "files": summary})


@data_app.command("backfill-vacancies")
def data_backfill_vacancies(dry_run: bool = typer.Option(False, "--dry-run")) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        updated = backfill_vacancy_ids(db, dry_run=dry_run)
    _echo({"dry_run": dry_run, "updated": updated})


@data_app.command("vacancy-counts")
def data_vacancy_counts(
    vacancy_id: int | None = typer.Option(None, "--vacancy-id"),
    job_title: str | None = typer.Option(None, "--job-title"),
    dry_run: bool = typer.Option(False, "--dry-run"),
) -> None:
    """Recompute the stored applications_count of each vacancy."""
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        processed = AdminQueryService(db).materialize_vacancy_counts(
            vacancy_id,
            job_title=job_title,
            dry_run=dry_run,
        )
    _echo({"dry_run": dry_run, "processed": processed})


@data_app.command("sanity-check")
def data_sanity_check(blob: bool = typer.Option(False, "--blob", help="Also upload and delete a test blob")) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        result: dict[str, object] = {"database": check_database(db)}
        if result["database"]["ok"]:
            result.update(database_sanity(db))
    if blob:
        result["blob"] = check_blob_store(get_blob_store())
    _echo(result)


@cvs_app.command("upload")
def cvs_upload(
    directory: Path | None = typer.Option(None, "--dir", help="Directory holding CV files"),
    file_map: Path | None = typer.Option(None, "--map", help="JSON object of filename -> application id or email"),
    force: bool = typer.Option(False, "--force", help="Upload even when the canonical blob already exists"),
    report: Path | None = typer.Option(None, "--report"),
) -> None:
    configure_logging()
    ensure_initialized()
    settings = get_settings()
    source = directory or settings.cv_import_dir
    if not source.is_dir():
        typer.echo(f"Directory not found: {source}", err=True)
        raise typer.Exit(code=1)

    with SessionLocal() as db:
        manager = UploadManager(db, get_blob_store(settings))
        result = manager.upload_cv_directory(source, file_map=load_file_map(file_map), force=force)

    report_path = report or settings.data_dir / "upload-report.json"
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(result.model_dump_json(indent=2), encoding="utf-8")
    _echo(
        {
            "uploaded": len(result.uploaded),
            "skipped": len(result.skipped),
            "unmatched": len(result.unmatched),
            "failed": len(result.failed),
            "report": str(report_path),
        }
    )


@cvs_app.command("rewrite-urls")
def cvs_rewrite_urls(
    base_url: str | None = typer.Option(None, "--base-url"),
    dry_run: bool = typer.Option(False, "--dry-run"),
) -> None:
    """Point Google Drive CV links at the canonical {id}.pdf under the base URL."""
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        try:
            updated = UploadManager(db, get_blob_store()).rewrite_drive_urls(
                base_url or get_settings().cv_file_base_url,
                dry_run=dry_run,
            )
        except RecruitError as exc:
            typer.echo(exc.message, err=True)
            raise typer.Exit(code=1) from exc
    _echo({"dry_run": dry_run, "updated": updated})


@cvs_app.command("check-blob")
def cvs_check_blob(url: str = typer.Argument(...)) -> None:
    configure_logging()
    _echo({"url": url, "exists": blob_exists(url, timeout_sec=get_settings().blob_timeout_sec)})


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
) -> None:
    configure_logging()
    ensure_initialized()
    settings = get_settings()
    app_instance = create_app()
    uvicorn.run(app_instance, host=host or settings.app_host, port=port or settings.app_port)
