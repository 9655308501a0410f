"""Metacore entrypoint."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from time import perf_counter
from typing import Sequence

import polars as pl

from metacore.aggregation import AggregationEngine, to_creatives
from metacore.application import build_dashboard, clear_session, ingest_file, restore_session
from metacore.application.reporting.rendering import insight_context, kpi_lines, overview_headline
from metacore.config import DATE_PRESET, LOG_LEVEL, SNAPSHOT_PATH, TOP_N
from metacore.domain.models import DATE_PRESETS, RESULT_TYPES, Filters
from metacore.infrastructure import save_output_workbook, save_summary_json
from metacore.ingestion import IngestionError


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from exc
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {number}")
    return number


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Summarize a Meta Ads export: creatives, daily series, leaderboards.")
    parser.add_argument("input", nargs="?", default=None, help="CSV/Excel export. Omit to reuse the stored snapshot.")
    parser.add_argument("--preset", default=DATE_PRESET, choices=[p for p in DATE_PRESETS if p != "custom"])
    parser.add_argument("--product", default="")
    parser.add_argument("--campaign", default="")
    parser.add_argument("--ad-set", default="")
    parser.add_argument("--ad", default="")
    parser.add_argument("--result-type", default="purchases", choices=list(RESULT_TYPES))
    parser.add_argument("--top-n", type=_positive_int, default=TOP_N)
    parser.add_argument("--snapshot", type=Path, default=SNAPSHOT_PATH)
    parser.add_argument("--output-dir", type=Path, default=Path("output"))
    parser.add_argument("--clear", action="store_true", help="Delete the stored snapshot and exit.")
    return parser.parse_args(argv)


def _leaderboard_sheet(leaderboards: dict) -> pl.DataFrame:
    rows = [
        {"board": board, "rank": rank, "name": entry.name, "value": entry.value}
        for board, entries in leaderboards.items()
        for rank, entry in enumerate(entries, start=1)
    ]
    return pl.DataFrame(rows, schema={"board": pl.Utf8, "rank": pl.Int64, "name": pl.Utf8, "value": pl.Float64})


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.clear:
        clear_session(args.snapshot)
        print(f"Cleared snapshot: {args.snapshot}")
        return 0

    pipeline_start = perf_counter()
    stage_start = pipeline_start
    stage_timings: list[tuple[str, float]] = []

    def _mark(stage_name: str) -> None:
        nonlocal stage_start
        now = perf_counter()
        stage_timings.append((stage_name, now - stage_start))
        stage_start = now

    report = None
    if args.input:
        try:
            records, report = ingest_file(args.input, snapshot_path=args.snapshot)
        except (IngestionError, FileNotFoundError) as exc:
            print(f"Ingestion failed: {exc}", file=sys.stderr)
            return 1
    else:
        records = restore_session(args.snapshot)
    _mark("load_records")

    if records.is_empty():
        print("No records to summarize. Pass an export file to ingest one.")
        return 0

    filters = (
        Filters(date_preset=args.preset, result_type=args.result_type)
        .select_product(args.product)
        .select_campaign(args.campaign)
        .select_ad_set(args.ad_set)
        .select_ad(args.ad)
    )
    view = build_dashboard(records, filters, top_n=args.top_n)
    _mark("build_dashboard")

    summary = view.summary()
    if report is not None:
        summary["ingestion"] = report.to_dict()
    summary["insight_context"] = insight_context(view.totals, to_creatives(view.creatives), limit=args.top_n)

    output_json_path = args.output_dir / "summary.json"
    output_excel_path = args.output_dir / "summary.xlsx"
    save_summary_json(output_json_path, summary)
    excel_saved, excel_error_message = save_output_workbook(
        output_excel_path,
        {
            "creatives": view.creatives,
            "daily": view.time_series,
            "products": AggregationEngine().by_dimension(view.filtered, "product"),
            "leaderboards": _leaderboard_sheet(view.leaderboards),
        },
    )
    _mark("save_outputs")
    total_elapsed = perf_counter() - pipeline_start

    print(overview_headline(filters))
    for line in kpi_lines(view.totals):
        print(f"  {line}")
    print(
        "Summary prepared: "
        f"records={view.filtered.height}/{records.height}, "
        f"creatives={view.creatives.height}, "
        f"days={view.time_series.height}"
    )
    if report is not None:
        print(
            f"Ingestion: total={report.total_rows}, valid={report.valid_rows}, "
            f"range={report.date_range[0]}..{report.date_range[1]}"
        )
    stage_text = ", ".join([f"{name}={seconds:.3f}s" for name, seconds in stage_timings])
    print(f"Stage Timing: {stage_text}")
    print(f"Total Elapsed: {total_elapsed:.3f}s")
    print(f"Saved JSON: {output_json_path}")
    if excel_saved:
        print(f"Saved Excel: {output_excel_path}")
    else:
        print(f"Excel save skipped (file may be open/locked): {excel_error_message}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
