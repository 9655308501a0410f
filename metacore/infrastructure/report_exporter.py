"""Infrastructure adapter for summary export targets."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import polars as pl

from metacore.ingestion import write_output_excel


def save_summary_json(path: Path, summary: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(summary, indent=2, ensure_ascii=False), encoding="utf-8")


def save_output_workbook(path: Path, sheets: dict[str, pl.DataFrame]) -> tuple[bool, str]:
    try:
        write_output_excel(path, sheets)
    except PermissionError as exc:
        return False, str(exc)
    return True, ""
