"""Application service for the filtered dashboard view use case."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

import polars as pl

from metacore.aggregation import AggregationEngine
from metacore.config import TOP_N
from metacore.domain.models import FilterOptions, Filters, LeaderboardEntry
from metacore.filters import apply_filters, filter_options
from metacore.ranking import RankingEngine


@dataclass(frozen=True)
class DashboardView:
    filters: Filters
    filtered: pl.DataFrame
    totals: dict[str, float]
    creatives: pl.DataFrame
    time_series: pl.DataFrame
    leaderboards: dict[str, list[LeaderboardEntry]]
    options: FilterOptions

    @property
    def result_total(self) -> float:
        """Sum of the result metric the user picked (leads, purchases or conversations)."""
        return self.totals.get(self.filters.result_type, 0.0)

    def summary(self) -> dict[str, Any]:
        return {
            "filters": {
                "date_preset": self.filters.date_preset,
                "product": self.filters.product,
                "campaign_name": self.filters.campaign_name,
                "ad_set_name": self.filters.ad_set_name,
                "ad_name": self.filters.ad_name,
                "result_type": self.filters.result_type,
            },
            "totals": self.totals,
            "result_total": self.result_total,
            "creatives": self.creatives.to_dicts(),
            "time_series": [
                {**row, "day": row["day"].isoformat()} for row in self.time_series.to_dicts()
            ],
            "leaderboards": {
                name: [{"name": entry.name, "value": entry.value} for entry in entries]
                for name, entries in self.leaderboards.items()
            },
            "options": {
                "products": self.options.products,
                "campaigns": self.options.campaigns,
                "ad_sets": self.options.ad_sets,
                "ads": self.options.ads,
            },
        }


def build_dashboard(
    records: pl.DataFrame,
    filters: Filters,
    today: date | None = None,
    top_n: int | None = None,
) -> DashboardView:
    """Filter, aggregate and rank from scratch on every call."""
    aggregation = AggregationEngine()
    ranking = RankingEngine(top_n=TOP_N if top_n is None else top_n)

    filtered = apply_filters(records, filters, today=today)
    creatives = aggregation.by_creative(filtered)
    return DashboardView(
        filters=filters,
        filtered=filtered,
        totals=aggregation.totals(filtered),
        creatives=aggregation.sort(creatives, by="spend", descending=True),
        time_series=aggregation.by_day(filtered),
        leaderboards=ranking.leaderboards(creatives),
        options=filter_options(records, filters),
    )
