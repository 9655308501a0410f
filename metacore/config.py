"""Environment-driven settings, validated once at import."""

from __future__ import annotations

import os
from pathlib import Path

from metacore.domain.classification import DEFAULT_PRODUCT_MARKERS
from metacore.domain.models import DATE_PRESETS, DEFAULT_DATE_PRESET


DEFAULT_TOP_N = 5
DEFAULT_SNAPSHOT_PATH = Path("output") / ".cache" / "metacore_snapshot.json"
LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _parse_top_n() -> int:
    raw = os.getenv("METACORE_TOP_N", str(DEFAULT_TOP_N))
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid METACORE_TOP_N: {raw}") from exc
    if value < 1:
        raise ValueError(f"METACORE_TOP_N must be >= 1, got {value}")
    return value


def _parse_date_preset() -> str:
    raw = os.getenv("METACORE_DEFAULT_DATE_PRESET", DEFAULT_DATE_PRESET).strip()
    if raw not in DATE_PRESETS or raw == "custom":
        raise ValueError(f"Invalid METACORE_DEFAULT_DATE_PRESET: {raw}")
    return raw


def _parse_product_markers() -> tuple[str, ...]:
    raw = os.getenv("METACORE_PRODUCT_MARKERS")
    if raw is None:
        return DEFAULT_PRODUCT_MARKERS
    markers = tuple(part.strip().upper() for part in raw.split(",") if part.strip())
    if not markers:
        raise ValueError("METACORE_PRODUCT_MARKERS must list at least one marker")
    return markers


def _parse_snapshot_path() -> Path:
    raw = os.getenv("METACORE_SNAPSHOT_PATH", "").strip()
    return Path(raw) if raw else DEFAULT_SNAPSHOT_PATH


def _parse_log_level() -> str:
    raw = os.getenv("METACORE_LOG_LEVEL", "INFO").strip().upper()
    if raw not in LOG_LEVELS:
        raise ValueError(f"Invalid METACORE_LOG_LEVEL: {raw}")
    return raw


TOP_N = _parse_top_n()
DATE_PRESET = _parse_date_preset()
PRODUCT_MARKERS = _parse_product_markers()
SNAPSHOT_PATH = _parse_snapshot_path()
LOG_LEVEL = _parse_log_level()
