"""Filter pipeline: date window plus cascading equality selectors."""

from __future__ import annotations

from datetime import date, timedelta
from typing import List

import polars as pl

from metacore.domain.classification import UNCLASSIFIED_PRODUCT, is_unclassified
from metacore.domain.models import DATE_PRESET_DAYS, FilterOptions, Filters


# Selector attribute on Filters -> record column, from the top of the hierarchy down.
SELECTOR_COLUMNS: list[tuple[str, str]] = [
    ("product", "product"),
    ("campaign_name", "campaign_name"),
    ("ad_set_name", "ad_set_name"),
    ("ad_name", "ad_name"),
]


def record_day_expr(column: str = "date") -> pl.Expr:
    """Calendar day of a record; null when the date text is not ``YYYY-MM-DD``."""
    return pl.col(column).str.slice(0, 10).str.to_date("%Y-%m-%d", strict=False)


def date_window(filters: Filters, today: date) -> tuple[date | None, date | None]:
    preset = filters.date_preset
    if preset in DATE_PRESET_DAYS:
        return today - timedelta(days=DATE_PRESET_DAYS[preset]), None
    if preset == "mtd":
        return today.replace(day=1), None
    if preset == "custom":
        return filters.date_range
    return None, None


def _date_predicates(filters: Filters, today: date) -> List[pl.Expr]:
    start, end = date_window(filters, today)
    predicates: List[pl.Expr] = []
    if start is not None:
        predicates.append(record_day_expr() >= pl.lit(start))
    if end is not None:
        predicates.append(record_day_expr() <= pl.lit(end))
    return predicates


def _selector_predicates(filters: Filters) -> List[pl.Expr]:
    predicates: List[pl.Expr] = []
    for attribute, column in SELECTOR_COLUMNS:
        selected = getattr(filters, attribute)
        if selected:
            predicates.append(pl.col(column) == pl.lit(selected))
    return predicates


def apply_filters(frame: pl.DataFrame, filters: Filters, today: date | None = None) -> pl.DataFrame:
    """Return the records matching every active predicate, in source order.

    Any selector combination is accepted, including a lower selector set
    while a higher one is empty; an impossible combination yields an empty
    frame.
    """
    current_day = today or date.today()
    predicates = _date_predicates(filters, current_day) + _selector_predicates(filters)
    if not predicates:
        return frame
    # A null comparison (unparseable date) counts as a non-match.
    return frame.filter(pl.all_horizontal(predicates).fill_null(False))


def _distinct_sorted(frame: pl.DataFrame, column: str) -> list[str]:
    values = frame.select(pl.col(column).unique()).to_series(0).to_list()
    return sorted(str(value) for value in values if value)


def _scoped(frame: pl.DataFrame, filters: Filters, depth: int) -> pl.DataFrame:
    scoped = frame
    for attribute, column in SELECTOR_COLUMNS[:depth]:
        selected = getattr(filters, attribute)
        if selected:
            scoped = scoped.filter(pl.col(column) == pl.lit(selected))
    return scoped


def filter_options(frame: pl.DataFrame, filters: Filters) -> FilterOptions:
    """Drop-down choices for each selector, constrained by the selectors above it.

    Computed over the full record collection; the date window does not
    narrow the choices.
    """
    products = _distinct_sorted(frame, "product")
    if UNCLASSIFIED_PRODUCT in products:
        products = [product for product in products if not is_unclassified(product)] + [UNCLASSIFIED_PRODUCT]

    return FilterOptions(
        products=products,
        campaigns=_distinct_sorted(_scoped(frame, filters, 1), "campaign_name"),
        ad_sets=_distinct_sorted(_scoped(frame, filters, 2), "ad_set_name"),
        ads=_distinct_sorted(_scoped(frame, filters, 3), "ad_name"),
    )
