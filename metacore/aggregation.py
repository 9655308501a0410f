"""Aggregation Engine: creative rollups, daily buckets and overall totals."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List

import polars as pl

from metacore.domain.models import (
    ADDITIVE_FIELDS,
    CREATIVE_COLUMNS,
    CREATIVE_DESCRIPTIVE_FIELDS,
    RATIO_DEFINITIONS,
    RATIO_FIELDS,
    TIME_BUCKET_COLUMNS,
    AggregatedCreative,
    TimeBucket,
)
from metacore.filters import record_day_expr

logger = logging.getLogger(__name__)

MONTH_ABBREVIATIONS_PT: dict[int, str] = {
    1: "jan.",
    2: "fev.",
    3: "mar.",
    4: "abr.",
    5: "mai.",
    6: "jun.",
    7: "jul.",
    8: "ago.",
    9: "set.",
    10: "out.",
    11: "nov.",
    12: "dez.",
}


def day_label(day: date) -> str:
    """pt-BR short day label, e.g. ``05 de mar.``; display only, never a sort key."""
    return f"{day.day:02d} de {MONTH_ABBREVIATIONS_PT[day.month]}"


class AggregationEngine:
    """Group records by a key, sum additive fields, derive ratios from the sums."""

    ADDITIVE_FIELDS: List[str] = ADDITIVE_FIELDS
    DESCRIPTIVE_FIELDS: List[str] = CREATIVE_DESCRIPTIVE_FIELDS
    RATIO_DEFINITIONS: Dict[str, tuple[str, str, float]] = RATIO_DEFINITIONS
    DIMENSION_KEYS: List[str] = ["ad_name", "product", "account_name", "campaign_name", "ad_set_name"]
    DAY_KEY = "day"

    @staticmethod
    def _safe_ratio_expr(num: pl.Expr, den: pl.Expr, scale: float = 1.0) -> pl.Expr:
        return pl.when(den > 0).then(num / den * scale).otherwise(pl.lit(0.0))

    def _sum_aggregations(self) -> List[pl.Expr]:
        return [pl.col(name).sum().cast(pl.Float64).alias(name) for name in self.ADDITIVE_FIELDS]

    def _ratio_columns(self) -> List[pl.Expr]:
        return [
            self._safe_ratio_expr(pl.col(num), pl.col(den), scale).alias(name)
            for name, (num, den, scale) in self.RATIO_DEFINITIONS.items()
        ]

    def _validate_schema(self, frame: pl.DataFrame, required: List[str]) -> None:
        missing = sorted(set(required).difference(frame.columns))
        if missing:
            raise ValueError(f"Missing required columns: {missing}")

    def aggregate(self, frame: pl.DataFrame, key: str = "ad_name") -> pl.DataFrame:
        if key == self.DAY_KEY:
            return self.by_day(frame)
        if key == "ad_name":
            return self.by_creative(frame)
        if key not in self.DIMENSION_KEYS:
            raise ValueError(f"Unsupported grouping key: {key!r}")
        return self.by_dimension(frame, key)

    def by_creative(self, frame: pl.DataFrame) -> pl.DataFrame:
        """One row per distinct ad name, in order of first appearance.

        Descriptive fields come from the first record of each ad name. No
        sorting happens here; use ``sort`` for table or gallery order.
        """
        self._validate_schema(frame, ["ad_name", *self.DESCRIPTIVE_FIELDS, *self.ADDITIVE_FIELDS])
        return (
            frame.group_by("ad_name", maintain_order=True)
            .agg(self._sum_aggregations() + [pl.col(name).first() for name in self.DESCRIPTIVE_FIELDS])
            .with_columns(self._ratio_columns())
            .select(CREATIVE_COLUMNS)
        )

    def by_dimension(self, frame: pl.DataFrame, column: str) -> pl.DataFrame:
        self._validate_schema(frame, [column, *self.ADDITIVE_FIELDS])
        return (
            frame.group_by(column, maintain_order=True)
            .agg(self._sum_aggregations())
            .with_columns(self._ratio_columns())
            .select([column, *self.ADDITIVE_FIELDS, *RATIO_FIELDS])
        )

    def by_day(self, frame: pl.DataFrame) -> pl.DataFrame:
        """One bucket per calendar day, ordered by the day value itself.

        Accepts record frames (``date`` text) or bucket frames (``day``).
        Records whose date cannot be parsed are left out.
        """
        self._validate_schema(frame, self.ADDITIVE_FIELDS)
        if self.DAY_KEY in frame.columns:
            keyed = frame
        else:
            self._validate_schema(frame, ["date"])
            keyed = frame.with_columns(record_day_expr().alias(self.DAY_KEY))

        undated = keyed.select(pl.col(self.DAY_KEY).is_null().sum()).item()
        if undated:
            logger.debug("Left %d records with unparseable dates out of the time series", undated)

        buckets = (
            keyed.filter(pl.col(self.DAY_KEY).is_not_null())
            .group_by(self.DAY_KEY, maintain_order=True)
            .agg(self._sum_aggregations())
            .sort(self.DAY_KEY)
            .with_columns(self._ratio_columns())
        )
        labels = pl.Series("label", [day_label(day) for day in buckets[self.DAY_KEY].to_list()], dtype=pl.Utf8)
        return buckets.with_columns(labels).select(TIME_BUCKET_COLUMNS)

    def totals(self, frame: pl.DataFrame) -> Dict[str, float]:
        """Overall sums and ratios for the KPI row; zeros on empty input."""
        self._validate_schema(frame, self.ADDITIVE_FIELDS)
        sums: Dict[str, Any] = frame.select(self._sum_aggregations()).row(0, named=True)
        result: Dict[str, float] = {name: float(sums.get(name) or 0.0) for name in self.ADDITIVE_FIELDS}
        for name, (num, den, scale) in self.RATIO_DEFINITIONS.items():
            result[name] = result[num] / result[den] * scale if result[den] > 0 else 0.0
        result["records"] = float(frame.height)
        return result

    @staticmethod
    def sort(frame: pl.DataFrame, by: str = "spend", descending: bool = True) -> pl.DataFrame:
        """Stable sort; equal values keep their aggregation order."""
        if by not in frame.columns:
            raise ValueError(f"Unknown sort column: {by!r}")
        return frame.sort(by, descending=descending, maintain_order=True)


def to_creatives(frame: pl.DataFrame) -> list[AggregatedCreative]:
    return [AggregatedCreative.from_row(row) for row in frame.iter_rows(named=True)]


def to_time_buckets(frame: pl.DataFrame) -> list[TimeBucket]:
    return [TimeBucket.from_row(row) for row in frame.iter_rows(named=True)]
