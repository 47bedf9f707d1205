from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Any

import openpyxl

logger = logging.getLogger(__name__)

Rows = list[dict[str, Any]]


def read_sheets(path: Path) -> dict[str, Rows]:
    suffix = path.suffix.lower()
    if suffix in {".xlsx", ".xlsm"}:
        return read_workbook(path)
    if suffix == ".csv":
        return {path.stem: read_csv(path)}
    raise ValueError(f"unsupported sheet file type '{path.suffix}'")


def read_csv(path: Path) -> Rows:
    with path.open("r", encoding="utf-8-sig", newline="") as handle:
        reader = csv.DictReader(handle)
        return [
            {key: (value if value != "" else None) for key, value in row.items() if key is not None}
            for row in reader
        ]


def read_workbook(path: Path) -> dict[str, Rows]:
    workbook = openpyxl.load_workbook(filename=path, read_only=True, data_only=True)
    sheets: dict[str, Rows] = {}
    try:
        for name in workbook.sheetnames:
            sheets[name] = _sheet_rows(workbook[name])
            logger.info("Read sheet %s (%d rows) from %s", name, len(sheets[name]), path)
    finally:
        workbook.close()
    return sheets


def _sheet_rows(sheet: Any) -> Rows:
    rows = sheet.iter_rows(values_only=True)
    try:
        header = next(rows)
    except StopIteration:
        return []

    columns = [str(cell).strip() if cell is not None else "" for cell in header]
    result: Rows = []
    for values in rows:
        if values is None or all(cell is None or cell == "" for cell in values):
            continue
        record = {
            column: values[index] if index < len(values) else None
            for index, column in enumerate(columns)
            if column
        }
        result.append(record)
    return result
