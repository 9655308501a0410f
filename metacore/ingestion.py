"""Ad export ingestion: CSV/Excel reading, normalization and Excel output."""

from __future__ import annotations

import json
import logging
import math
import re
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Mapping, Sequence

import polars as pl

from metacore.config import PRODUCT_MARKERS
from metacore.domain.classification import engagement_ranking_expr, product_expr, sanitize_url, url_expr
from metacore.domain.models import (
    ADDITIVE_FIELDS,
    RECORD_COLUMNS,
    SOURCE_RATIO_FIELDS,
    AdRecord,
    IngestionReport,
    frame_to_records,
)

logger = logging.getLogger(__name__)

# Canonical field -> header in the Meta Ads export.
EXPORT_HEADERS: dict[str, str] = {
    "date": "Date",
    "account_name": "Account Name",
    "campaign_name": "Campaign Name",
    "ad_set_name": "Adset Name",
    "ad_name": "Ad Name",
    "spend": "Spend (Cost, Amount Spent)",
    "impressions": "Impressions",
    "reach": "Reach (Estimated)",
    "link_clicks": "Action Link Clicks",
    "lpv": "Action Landing Page View",
    "leads": "Action Leads",
    "cost_per_lead": "Cost Per Action Leads",
    "purchases": "Action Omni Purchase",
    "cost_per_purchase": "Cost Per Action Omni Purchase",
    "conversations": "Action Messaging Conversations Started (Onsite Conversion)",
    "cost_per_conversation": "Cost Per Action Messaging Conversations Started (Onsite Conversion)",
    "ctr_meta": "CTR (Clickthrough Rate)",
    "engagement_ranking": "Engagement Rate Ranking",
    "thumbnail_url": "Thumbnail URL",
    "permalink": "Instagram Permalink URL",
    "comments": "Action Post Comments",
    "engagement": "Action Post Engagement",
    "reactions": "Action Post Reactions",
    "shares": "Action Post Shares",
    "saves": "Action Post Save (Onsite Conversion)",
    "thruplays": "Video Thruplay Watched Actions",
    "plays": "Video Play Actions",
    "video95": "Video 95 Percent Watched Actions",
}
SOURCE_FIELDS: list[str] = list(EXPORT_HEADERS)
TEXT_FIELDS: list[str] = ["account_name", "campaign_name", "ad_set_name", "ad_name"]
URL_FIELDS: list[str] = ["thumbnail_url", "permalink"]
NUMERIC_FIELDS: list[str] = [*ADDITIVE_FIELDS, *SOURCE_RATIO_FIELDS]
CSV_SUFFIXES: tuple[str, ...] = (".csv", ".txt")
EXCEL_SUFFIXES: tuple[str, ...] = (".xlsx", ".xlsm")
SEPARATOR_CANDIDATES: tuple[str, ...] = (",", ";", "\t", "|")
_QUOTED_FIELD = re.compile(r'"[^"]*"')


class IngestionError(ValueError):
    """The source file could not be parsed at all."""


def _camel_case(name: str) -> str:
    head, *tail = name.split("_")
    return head + "".join(part.capitalize() for part in tail)


# Export header first, then camelCase and snake_case field names.
COLUMN_CANDIDATES: dict[str, tuple[str, ...]] = {
    name: tuple(dict.fromkeys((header, _camel_case(name), name)))
    for name, header in EXPORT_HEADERS.items()
}
KNOWN_HEADERS: frozenset[str] = frozenset(
    candidate for candidates in COLUMN_CANDIDATES.values() for candidate in candidates
)


def _import_openpyxl() -> tuple[Any, Any]:
    try:
        from openpyxl import Workbook, load_workbook
    except Exception as exc:  # pragma: no cover
        raise RuntimeError("openpyxl is required for Excel fallback I/O.") from exc
    return Workbook, load_workbook


def _normalize_headers(raw_headers: Sequence[Any]) -> list[str]:
    headers: list[str] = []
    seen: dict[str, int] = {}
    for idx, value in enumerate(raw_headers):
        text = str(value).replace("\ufeff", "").strip() if value not in (None, "") else ""
        base = text or f"column_{idx + 1}"
        count = seen.get(base, 0)
        name = base if count == 0 else f"{base}_{count + 1}"
        seen[base] = count + 1
        headers.append(name)
    return headers


def _cell_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return str(int(value))
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and math.isnan(value):
        return None
    return str(value)


def _sniff_separator(path: Path) -> str:
    """Most frequent candidate in the header line, quoted text ignored; ties keep candidate order."""
    with path.open("r", encoding="utf-8", errors="replace") as handle:
        header_line = _QUOTED_FIELD.sub("", handle.readline())
    counts = {candidate: header_line.count(candidate) for candidate in SEPARATOR_CANDIDATES}
    best = max(SEPARATOR_CANDIDATES, key=lambda candidate: counts[candidate])
    return best if counts[best] > 0 else ","


def _read_csv(path: Path) -> pl.DataFrame:
    try:
        return pl.read_csv(
            path,
            separator=_sniff_separator(path),
            infer_schema_length=0,
            encoding="utf8-lossy",
            truncate_ragged_lines=True,
        )
    except pl.exceptions.NoDataError:
        return pl.DataFrame()
    except (pl.exceptions.PolarsError, OSError, UnicodeDecodeError) as exc:
        raise IngestionError(f"Could not parse CSV file {path}: {exc}") from exc


def _frame_from_polars_result(frame: Any, preferred_sheet: str | None) -> pl.DataFrame:
    if isinstance(frame, dict):
        if preferred_sheet and preferred_sheet in frame:
            return frame[preferred_sheet]
        first_key = next(iter(frame.keys()), None)
        if first_key is None:
            return pl.DataFrame()
        return frame[first_key]
    return frame


def _read_with_polars(path: Path, preferred_sheet: str | None) -> pl.DataFrame:
    if preferred_sheet:
        try:
            frame = pl.read_excel(path, sheet_name=preferred_sheet)
            return _frame_from_polars_result(frame, preferred_sheet)
        except Exception as exc:
            logger.debug("Sheet %r not readable in %s, using the first sheet: %s", preferred_sheet, path, exc)
    frame = pl.read_excel(path, sheet_id=1)
    return _frame_from_polars_result(frame, preferred_sheet)


def _read_with_openpyxl(path: Path, preferred_sheet: str | None) -> pl.DataFrame:
    _, load_workbook = _import_openpyxl()
    workbook = load_workbook(path, read_only=True, data_only=True)
    try:
        if not workbook.sheetnames:
            raise IngestionError(f"No sheets found in {path}")
        sheet_name = preferred_sheet if preferred_sheet in workbook.sheetnames else workbook.sheetnames[0]
        row_iter = workbook[sheet_name].iter_rows(values_only=True)
        header_row = next(row_iter, None)
        if header_row is None:
            return pl.DataFrame()

        headers = _normalize_headers(header_row)
        columns: dict[str, list[str | None]] = {name: [] for name in headers}
        for values in row_iter:
            if values is None or all(value is None for value in values):
                continue
            for idx, name in enumerate(headers):
                columns[name].append(_cell_text(values[idx]) if idx < len(values) else None)
    finally:
        workbook.close()
    return pl.DataFrame(columns, schema={name: pl.Utf8 for name in headers})


def _read_excel(path: Path, preferred_sheet: str | None) -> pl.DataFrame:
    try:
        return _read_with_polars(path, preferred_sheet)
    except Exception as exc:
        logger.debug("polars.read_excel failed for %s, falling back to openpyxl: %s", path, exc)
    try:
        return _read_with_openpyxl(path, preferred_sheet)
    except IngestionError:
        raise
    except Exception as exc:
        raise IngestionError(f"Could not parse Excel file {path}: {exc}") from exc


def _drop_blank_rows(frame: pl.DataFrame) -> pl.DataFrame:
    if frame.width == 0 or frame.is_empty():
        return frame
    return frame.filter(~pl.all_horizontal(pl.all().is_null()))


def read_ads_file(path: str | Path, preferred_sheet: str | None = None) -> pl.DataFrame:
    """Read a delimited or Excel ad export into a header-keyed frame."""
    source_path = Path(path)
    if not source_path.exists():
        raise FileNotFoundError(f"Input file not found: {source_path}")

    suffix = source_path.suffix.lower()
    if suffix in CSV_SUFFIXES:
        frame = _read_csv(source_path)
    elif suffix in EXCEL_SUFFIXES:
        frame = _read_excel(source_path, preferred_sheet)
    else:
        raise IngestionError(f"Unsupported file type {suffix!r}: expected one of {[*CSV_SUFFIXES, *EXCEL_SUFFIXES]}")

    headers = _normalize_headers(frame.columns)
    if headers != frame.columns:
        frame = frame.rename(dict(zip(frame.columns, headers)))
    return _drop_blank_rows(frame)


def _resolve_columns(columns: Sequence[str]) -> dict[str, list[str]]:
    """Every present spelling of each field, in candidate order."""
    available = set(columns)
    return {
        name: [candidate for candidate in candidates if candidate in available]
        for name, candidates in COLUMN_CANDIDATES.items()
    }


def _header_text_expr(raw: pl.DataFrame, header: str) -> pl.Expr:
    """Text of one source column; blank cells become null."""
    dtype = raw.schema[header]
    if dtype in (pl.Date, pl.Datetime):
        return pl.col(header).dt.strftime("%Y-%m-%d")
    text = pl.col(header).cast(pl.Utf8, strict=False)
    return pl.when(text.str.strip_chars() != "").then(text).otherwise(pl.lit(None, dtype=pl.Utf8))


def _source_expr(raw: pl.DataFrame, headers: Sequence[str]) -> pl.Expr:
    # Rows may spell a field differently; the first non-blank spelling wins per row.
    if not headers:
        return pl.lit(None, dtype=pl.Utf8)
    if len(headers) == 1:
        return _header_text_expr(raw, headers[0])
    return pl.coalesce([_header_text_expr(raw, header) for header in headers])


def _metric_expr(name: str) -> pl.Expr:
    parsed = pl.col(name).str.strip_chars().cast(pl.Float64, strict=False)
    return pl.when(parsed.is_finite()).then(parsed).otherwise(pl.lit(0.0)).alias(name)


def _dimension_expr(name: str) -> pl.Expr:
    return pl.col(name).str.strip_chars().fill_null("").alias(name)


def normalize_frame(
    raw: pl.DataFrame,
    markers: Sequence[str] = PRODUCT_MARKERS,
) -> tuple[pl.DataFrame, IngestionReport]:
    """Normalize a header-keyed export frame into ``RECORD_COLUMNS``.

    Rows whose date is empty or absent are dropped and counted. Every other
    field defaults independently: numbers to 0.0 (absent, non-numeric or
    non-finite), text to "".
    """
    columns = _resolve_columns(raw.columns)
    selected = raw.select([_source_expr(raw, columns[name]).alias(name) for name in SOURCE_FIELDS])

    records = (
        selected
        .with_columns(pl.col("date").str.strip_chars())
        .filter(pl.col("date").is_not_null() & (pl.col("date") != ""))
        .with_columns(
            [_metric_expr(name) for name in NUMERIC_FIELDS]
            + [_dimension_expr(name) for name in TEXT_FIELDS]
            + [url_expr(pl.col(name)).alias(name) for name in URL_FIELDS]
            + [engagement_ranking_expr(pl.col("engagement_ranking")).alias("engagement_ranking")]
        )
        .with_columns(
            product_expr(pl.col("campaign_name"), markers).alias("product"),
            pl.when(pl.col("impressions") > 0)
            .then(pl.col("link_clicks") / pl.col("impressions") * 100)
            .otherwise(pl.lit(0.0))
            .alias("ctr_normalized"),
        )
        .select(RECORD_COLUMNS)
    )

    min_date, max_date = records.select(
        pl.col("date").min().alias("min_date"),
        pl.col("date").max().alias("max_date"),
    ).row(0)
    report = IngestionReport(
        total_rows=int(raw.height),
        valid_rows=int(records.height),
        date_range=(min_date or "", max_date or ""),
        missing_columns=[EXPORT_HEADERS[name] for name, headers in columns.items() if not headers],
        extra_columns=[column for column in raw.columns if column not in KNOWN_HEADERS],
    )
    logger.info(
        "Normalized %d of %d rows (%d dropped without date), range %s..%s",
        report.valid_rows,
        report.total_rows,
        report.dropped_rows,
        report.date_range[0] or "-",
        report.date_range[1] or "-",
    )
    return records, report


def _row_text(row: Any) -> dict[str, str | None]:
    if not isinstance(row, Mapping):
        return {}
    text: dict[str, str | None] = {}
    url_headers = {candidate for name in URL_FIELDS for candidate in COLUMN_CANDIDATES[name]}
    for key, value in row.items():
        header = str(key)
        if header in url_headers:
            text[header] = sanitize_url(value)
        else:
            text[header] = _cell_text(value)
    return text


def normalize_rows(
    rows: Sequence[Any],
    markers: Sequence[str] = PRODUCT_MARKERS,
) -> tuple[list[AdRecord], IngestionReport]:
    """Normalize field-keyed rows of unknown value types into ``AdRecord`` values."""
    text_rows = [_row_text(row) for row in rows]
    headers = list(dict.fromkeys(key for row in text_rows for key in row))
    if not headers:
        # No columns at all: every row lacks a date.
        report = IngestionReport(
            total_rows=len(text_rows),
            valid_rows=0,
            missing_columns=list(EXPORT_HEADERS.values()),
        )
        return [], report

    raw = pl.DataFrame(
        {header: [row.get(header) for row in text_rows] for header in headers},
        schema={header: pl.Utf8 for header in headers},
    )
    frame, report = normalize_frame(raw, markers=markers)
    return frame_to_records(frame), report


def load_ads_file(
    path: str | Path,
    preferred_sheet: str | None = None,
    markers: Sequence[str] = PRODUCT_MARKERS,
) -> tuple[pl.DataFrame, IngestionReport]:
    """Read and normalize one export file; raises before any state is returned."""
    return normalize_frame(read_ads_file(path, preferred_sheet=preferred_sheet), markers=markers)


def _excel_cell_value(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (int, bool, str)):
        return value
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return None
        return value
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False)
    return value


def _write_with_polars(path: Path, sheets: Dict[str, pl.DataFrame]) -> bool:
    if not sheets:
        return False
    try:
        import xlsxwriter

        with xlsxwriter.Workbook(str(path)) as workbook:
            for sheet_name, frame in sheets.items():
                frame.write_excel(workbook=workbook, worksheet=str(sheet_name)[:31])
        return True
    except Exception as exc:
        logger.debug("polars.write_excel failed for %s, falling back to openpyxl: %s", path, exc)
        return False


def _write_with_openpyxl(path: Path, sheets: Dict[str, pl.DataFrame]) -> None:
    Workbook, _ = _import_openpyxl()
    workbook = Workbook()
    default_sheet = workbook.active
    workbook.remove(default_sheet)

    for sheet_name, frame in sheets.items():
        worksheet = workbook.create_sheet(title=str(sheet_name)[:31])
        worksheet.append(frame.columns)
        for row in frame.iter_rows(named=False):
            worksheet.append([_excel_cell_value(value) for value in row])

    path.parent.mkdir(parents=True, exist_ok=True)
    workbook.save(path)


def write_output_excel(path: str | Path, sheets: Dict[str, pl.DataFrame]) -> None:
    """Write output Excel with Polars-first and openpyxl fallback."""
    excel_path = Path(path)
    excel_path.parent.mkdir(parents=True, exist_ok=True)

    if _write_with_polars(excel_path, sheets):
        return
    _write_with_openpyxl(excel_path, sheets)
