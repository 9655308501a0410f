"""Domain policies for product classification and field sanitation."""

from __future__ import annotations

from typing import Any, Sequence

import polars as pl

from metacore.domain.models import ENGAGEMENT_RANKINGS, UNKNOWN_RANKING


# Order matters: the first marker found in the campaign name wins.
DEFAULT_PRODUCT_MARKERS: tuple[str, ...] = ("CBAS", "IBFC", "CATARSE", "SSPC")
# Campaigns without a known marker are boosted posts. The label is both the
# stored value and the display text.
UNCLASSIFIED_PRODUCT = "POSTS TURBINADOS"

_RANKING_SEPARATORS = r"[\s\-]+"


def detect_product(campaign_name: Any, markers: Sequence[str] = DEFAULT_PRODUCT_MARKERS) -> str:
    name = str(campaign_name or "").upper()
    for marker in markers:
        if marker.upper() in name:
            return marker.upper()
    return UNCLASSIFIED_PRODUCT


def product_expr(campaign: pl.Expr, markers: Sequence[str] = DEFAULT_PRODUCT_MARKERS) -> pl.Expr:
    """Vectorized ``detect_product`` over a campaign-name column."""
    upper = campaign.fill_null("").str.to_uppercase()
    if not markers:
        return pl.lit(UNCLASSIFIED_PRODUCT, dtype=pl.Utf8)

    first, *rest = [marker.upper() for marker in markers]
    chained = pl.when(upper.str.contains(first, literal=True)).then(pl.lit(first))
    for marker in rest:
        chained = chained.when(upper.str.contains(marker, literal=True)).then(pl.lit(marker))
    return chained.otherwise(pl.lit(UNCLASSIFIED_PRODUCT))


def is_unclassified(product: str) -> bool:
    return product == UNCLASSIFIED_PRODUCT


def sanitize_url(url: Any) -> str:
    if not url or not isinstance(url, str):
        return ""
    return url.strip()


def url_expr(column: pl.Expr) -> pl.Expr:
    return column.str.strip_chars().fill_null("")


def engagement_ranking_expr(column: pl.Expr) -> pl.Expr:
    """Map Meta's ranking text (``Above average``, ``below-average-10``) onto ``ENGAGEMENT_RANKINGS``."""
    text = column.str.strip_chars().str.to_uppercase().str.replace_all(_RANKING_SEPARATORS, "_")
    return pl.when(text.is_in(list(ENGAGEMENT_RANKINGS))).then(text).otherwise(pl.lit(UNKNOWN_RANKING))
