"""Application service for the held record collection (upload, restore, reset)."""

from __future__ import annotations

import logging
from pathlib import Path

import polars as pl

from metacore.config import SNAPSHOT_PATH
from metacore.domain.models import IngestionReport, empty_record_frame
from metacore.infrastructure.snapshot_repository import clear_snapshot, load_snapshot, save_snapshot
from metacore.ingestion import load_ads_file

logger = logging.getLogger(__name__)


def ingest_file(
    path: str | Path,
    snapshot_path: Path = SNAPSHOT_PATH,
    preferred_sheet: str | None = None,
) -> tuple[pl.DataFrame, IngestionReport]:
    """Replace the held records with a new upload and persist them.

    Parse failures propagate before anything is written, so the previous
    snapshot stays as it was.
    """
    records, report = load_ads_file(path, preferred_sheet=preferred_sheet)
    save_snapshot(snapshot_path, records)
    logger.info("Stored %d records from %s", records.height, path)
    return records, report


def restore_session(snapshot_path: Path = SNAPSHOT_PATH) -> pl.DataFrame:
    return load_snapshot(snapshot_path)


def clear_session(snapshot_path: Path = SNAPSHOT_PATH) -> pl.DataFrame:
    clear_snapshot(snapshot_path)
    return empty_record_frame()
