"""Infrastructure adapter for the persisted record snapshot (JSON key-value store)."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import polars as pl

from metacore.config import PRODUCT_MARKERS
from metacore.domain.classification import product_expr
from metacore.domain.models import RECORD_COLUMNS, RECORD_SCHEMA, UNKNOWN_RANKING, empty_record_frame

logger = logging.getLogger(__name__)

SNAPSHOT_KEY = "metacore_ads_data"


def _read_store(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        store = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable snapshot store %s: %s", path, exc)
        return {}
    if not isinstance(store, dict):
        logger.warning("Ignoring snapshot store %s: expected an object, got %s", path, type(store).__name__)
        return {}
    return store


def _write_store(path: Path, store: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(store, ensure_ascii=False), encoding="utf-8")


def save_snapshot(path: Path, records: pl.DataFrame, key: str = SNAPSHOT_KEY) -> None:
    store = _read_store(path)
    store[key] = records.select(RECORD_COLUMNS).to_dicts()
    _write_store(path, store)


def _fill_record_defaults(frame: pl.DataFrame) -> pl.DataFrame:
    """Give restored rows the same never-null shape the Normalizer produces."""
    fills: list[pl.Expr] = []
    for column, dtype in RECORD_SCHEMA.items():
        if column == "product":
            fills.append(
                pl.col(column).fill_null(product_expr(pl.col("campaign_name"), PRODUCT_MARKERS)).alias(column)
            )
        elif column == "engagement_ranking":
            fills.append(pl.col(column).fill_null(pl.lit(UNKNOWN_RANKING)).alias(column))
        elif dtype == pl.Float64:
            fills.append(pl.col(column).fill_null(0.0).alias(column))
        else:
            fills.append(pl.col(column).fill_null("").alias(column))
    return (
        frame.with_columns(pl.col("campaign_name").fill_null(""))
        .with_columns(fills)
        .filter(pl.col("date") != "")
    )


def load_snapshot(path: Path, key: str = SNAPSHOT_KEY) -> pl.DataFrame:
    """Restore the stored records; anything but a non-empty list of rows is empty state."""
    payload = _read_store(path).get(key)
    if not isinstance(payload, list) or not payload:
        logger.debug("No usable snapshot under %r in %s", key, path)
        return empty_record_frame()
    if not all(isinstance(row, dict) for row in payload):
        logger.warning("Ignoring snapshot %s: rows must be objects", path)
        return empty_record_frame()
    try:
        restored = pl.DataFrame(payload, schema=RECORD_SCHEMA)
    except (pl.exceptions.PolarsError, TypeError, ValueError) as exc:
        logger.warning("Ignoring malformed snapshot %s: %s", path, exc)
        return empty_record_frame()
    return _fill_record_defaults(restored)


def clear_snapshot(path: Path, key: str = SNAPSHOT_KEY) -> None:
    store = _read_store(path)
    if key not in store:
        return
    del store[key]
    _write_store(path, store)
