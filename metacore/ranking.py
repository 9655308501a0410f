"""Ranking Engine: bounded top-N leaderboards over aggregated rows."""

from __future__ import annotations

from typing import Dict, List

import polars as pl

from metacore.config import TOP_N
from metacore.domain.models import LeaderboardEntry


class RankingEngine:
    """Top-N selection with stable ties.

    Volume rankings sort descending. Cost rankings sort ascending and skip
    rows whose denominator is zero: a creative without conversions has no
    cost per conversion and never ranks as the cheapest.
    """

    COST_DENOMINATORS: Dict[str, str] = {
        "cpa": "purchases",
        "cpc": "link_clicks",
        "cpl": "leads",
        "cost_per_conversation": "conversations",
    }
    LEADERBOARD_METRICS: List[str] = ["spend", "leads", "purchases"]

    def __init__(self, top_n: int = TOP_N, name_column: str = "ad_name") -> None:
        if top_n < 0:
            raise ValueError(f"top_n must be >= 0, got {top_n}")
        self.top_n = top_n
        self.name_column = name_column

    def _limit(self, n: int | None) -> int:
        limit = self.top_n if n is None else n
        if limit < 0:
            raise ValueError(f"n must be >= 0, got {limit}")
        return limit

    def top(self, frame: pl.DataFrame, metric: str | pl.Expr, n: int | None = None) -> pl.DataFrame:
        """Rows with the highest metric values, descending."""
        if isinstance(metric, str) and metric not in frame.columns:
            raise ValueError(f"Unknown ranking metric: {metric!r}")
        return frame.sort(metric, descending=True, maintain_order=True).head(self._limit(n))

    def best_cost(self, frame: pl.DataFrame, cost: str = "cpa", n: int | None = None) -> pl.DataFrame:
        """Rows with the lowest cost, ascending, among rows with conversions."""
        denominator = self.COST_DENOMINATORS.get(cost)
        if denominator is None:
            raise ValueError(f"Unknown cost metric: {cost!r} (expected one of {list(self.COST_DENOMINATORS)})")
        missing = sorted({"spend", denominator}.difference(frame.columns))
        if missing:
            raise ValueError(f"Missing required columns: {missing}")

        eligible = frame.filter(pl.col(denominator) > 0).with_columns(
            (pl.col("spend") / pl.col(denominator)).alias(cost)
        )
        return eligible.sort(cost, descending=False, maintain_order=True).head(self._limit(n))

    def _entries(self, frame: pl.DataFrame, value_column: str) -> List[LeaderboardEntry]:
        return [
            LeaderboardEntry(name=str(row[self.name_column]), value=float(row[value_column]))
            for row in frame.select([self.name_column, value_column]).iter_rows(named=True)
        ]

    def leaderboards(self, creatives: pl.DataFrame, n: int | None = None) -> Dict[str, List[LeaderboardEntry]]:
        boards: Dict[str, List[LeaderboardEntry]] = {
            metric: self._entries(self.top(creatives, metric, n), metric) for metric in self.LEADERBOARD_METRICS
        }
        boards["best_cpa"] = self._entries(self.best_cost(creatives, "cpa", n), "cpa")
        return boards
