"""
Tests for build_dashboard() and the text rendering helpers.

Run with: pytest tests/test_dashboard.py -v
"""

import json
from datetime import date

import pytest

from metacore.aggregation import to_creatives
from metacore.application.dashboard_service import build_dashboard
from metacore.application.reporting.metrics import fmt_money, fmt_number, fmt_pct, safe_ratio
from metacore.application.reporting.rendering import insight_context, kpi_lines, overview_headline
from metacore.domain.models import Filters

TODAY = date(2024, 3, 15)


# ---------------------------------------------------------------------------
# build_dashboard
# ---------------------------------------------------------------------------


class TestBuildDashboard:
    def test_view_is_assembled_from_filtered_records(self, mixed_rows, make_frame):
        frame = make_frame(*mixed_rows)
        view = build_dashboard(frame, Filters(date_preset="mtd", product="CBAS"), today=TODAY, top_n=1)

        assert view.filtered.height == 2
        assert view.totals["spend"] == 140
        assert view.creatives["ad_name"].to_list() == ["A", "B"]
        assert view.time_series["label"].to_list() == ["01 de mar.", "02 de mar."]
        assert [entry.name for entry in view.leaderboards["spend"]] == ["A"]
        assert view.options.products == ["CBAS", "IBFC", "POSTS TURBINADOS"]

    def test_creatives_sorted_by_spend(self, mixed_rows, make_frame):
        view = build_dashboard(make_frame(*mixed_rows), Filters(date_preset="all"), today=TODAY)

        assert view.creatives["ad_name"].to_list() == ["A", "C", "B"]

    def test_result_total_follows_result_type(self, mixed_rows, make_frame):
        frame = make_frame(*mixed_rows)

        assert build_dashboard(frame, Filters(date_preset="all", result_type="leads"), today=TODAY).result_total == 7
        assert build_dashboard(frame, Filters(date_preset="all"), today=TODAY).result_total == 6

    def test_summary_is_json_serializable(self, mixed_rows, make_frame):
        view = build_dashboard(make_frame(*mixed_rows), Filters(date_preset="all"), today=TODAY)

        payload = json.loads(json.dumps(view.summary()))

        assert payload["time_series"][0]["day"] == "2024-03-01"
        assert payload["filters"]["date_preset"] == "all"
        assert set(payload["leaderboards"]) == {"spend", "leads", "purchases", "best_cpa"}

    def test_no_matching_records(self, mixed_rows, make_frame):
        view = build_dashboard(make_frame(*mixed_rows), Filters(date_preset="7d"), today=date(2030, 1, 1))

        assert view.filtered.is_empty()
        assert view.creatives.is_empty()
        assert view.time_series.is_empty()
        assert view.totals["spend"] == 0.0
        assert view.options.ads == ["A", "B", "C"]


# ---------------------------------------------------------------------------
# formatting and rendering
# ---------------------------------------------------------------------------


class TestRendering:
    def test_formatters(self):
        assert fmt_money(1234.5) == "R$ 1.234,50"
        assert fmt_money(-3) == "-R$ 3,00"
        assert fmt_number(1500) == "1.500"
        assert fmt_pct(5.0) == "5,00%"
        assert fmt_pct(None) == "N/A"
        assert safe_ratio(1, 0) == 0.0

    def test_headline(self):
        assert overview_headline(Filters()) == "Visão Geral"
        assert overview_headline(Filters(product="CBAS")) == "CBAS"

    def test_kpi_lines(self, make_frame):
        frame = make_frame(
            {"date": "2024-01-01", "adName": "A", "spend": 150, "impressions": 1500, "linkClicks": 75, "purchases": 3}
        )
        view = build_dashboard(frame, Filters(date_preset="all"), today=TODAY)

        lines = kpi_lines(view.totals)

        assert lines[0] == "Investimento: R$ 150,00"
        assert lines[1] == "Compras: 3 (CPA R$ 50,00)"
        assert "CTR 5,00%" in lines[4]

    def test_insight_context(self, make_frame):
        frame = make_frame(
            {"date": "2024-01-01", "adName": "A", "spend": 100, "impressions": 1000, "linkClicks": 50, "purchases": 2},
            {"date": "2024-01-01", "adName": "A", "spend": 50, "impressions": 500, "linkClicks": 25, "purchases": 1},
        )
        view = build_dashboard(frame, Filters(date_preset="all"), today=TODAY)

        text = insight_context(view.totals, to_creatives(view.creatives))

        assert text.splitlines() == [
            "Métricas Totais: Gasto R$ 150,00, Vendas 3, CPA Médio R$ 50,00.",
            "Top Criativos:",
            "- A: Gasto R$ 150,00, Vendas: 3, CTR: 5,00%",
        ]

    def test_insight_context_without_data(self):
        assert insight_context({}, []) == "Nenhum dado para analisar."

    @pytest.mark.parametrize("limit", [1, 2])
    def test_insight_context_limit(self, mixed_rows, make_frame, limit):
        view = build_dashboard(make_frame(*mixed_rows), Filters(date_preset="all"), today=TODAY)

        text = insight_context(view.totals, to_creatives(view.creatives), limit=limit)

        assert sum(line.startswith("- ") for line in text.splitlines()) == limit
