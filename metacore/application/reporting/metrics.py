"""Shared numeric/formatting utilities for reporting."""

from __future__ import annotations

from typing import Any


def to_float(value: Any, default: float = 0.0) -> float:
    if value is None:
        return default
    return float(value)


def safe_ratio(num: float, den: float, scale: float = 1.0) -> float:
    if den <= 0:
        return 0.0
    return num / den * scale


def _grouped(value: float, decimals: int) -> str:
    # pt-BR grouping: dot for thousands, comma for decimals.
    text = f"{value:,.{decimals}f}"
    return text.replace(",", "_").replace(".", ",").replace("_", ".")


def fmt_money(value: float | None) -> str:
    if value is None:
        return "R$ 0,00"
    sign = "-" if value < 0 else ""
    return f"{sign}R$ {_grouped(abs(value), 2)}"


def fmt_number(value: float | None) -> str:
    if value is None:
        return "0"
    return _grouped(value, 0)


def fmt_pct(value: float | None, decimals: int = 2) -> str:
    """Format a value already expressed in percent (``5.0`` -> ``5,00%``)."""
    if value is None:
        return "N/A"
    return f"{_grouped(value, decimals)}%"
