"""Text rendering helpers for headlines and the narrative collaborator."""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

from metacore.application.reporting.metrics import fmt_money, fmt_number, fmt_pct, safe_ratio, to_float
from metacore.domain.models import AggregatedCreative, Filters

OVERVIEW_TITLE = "Visão Geral"
INSIGHT_LIMIT = 5


def overview_headline(filters: Filters) -> str:
    return filters.product or OVERVIEW_TITLE


def kpi_lines(totals: Dict[str, Any]) -> List[str]:
    return [
        f"Investimento: {fmt_money(totals.get('spend'))}",
        f"Compras: {fmt_number(totals.get('purchases'))} (CPA {fmt_money(totals.get('cpa'))})",
        f"Leads: {fmt_number(totals.get('leads'))} (CPL {fmt_money(totals.get('cpl'))})",
        f"Conversas: {fmt_number(totals.get('conversations'))} "
        f"(custo {fmt_money(totals.get('cost_per_conversation'))})",
        f"Cliques: {fmt_number(totals.get('link_clicks'))} (CPC {fmt_money(totals.get('cpc'))}, "
        f"CTR {fmt_pct(totals.get('ctr'))})",
        f"LPV: {fmt_number(totals.get('lpv'))} ({fmt_pct(totals.get('lpv_rate'))} dos cliques)",
    ]


def insight_context(
    totals: Dict[str, Any],
    creatives: Sequence[AggregatedCreative],
    limit: int = INSIGHT_LIMIT,
) -> str:
    """Plain-text summary handed to the narrative collaborator.

    ``creatives`` is expected in display order (spend descending); only the
    first ``limit`` are included.
    """
    if not creatives:
        return "Nenhum dado para analisar."

    spend = to_float(totals.get("spend"))
    purchases = to_float(totals.get("purchases"))
    lines = [
        f"Métricas Totais: Gasto {fmt_money(spend)}, Vendas {fmt_number(purchases)}, "
        f"CPA Médio {fmt_money(safe_ratio(spend, purchases))}.",
        "Top Criativos:",
    ]
    for creative in list(creatives)[:limit]:
        lines.append(
            f"- {creative.ad_name}: Gasto {fmt_money(creative.spend)}, "
            f"Vendas: {fmt_number(creative.purchases)}, CTR: {fmt_pct(creative.ratios.get('ctr'))}"
        )
    return "\n".join(lines)
