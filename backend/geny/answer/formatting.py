"""pt-BR formatting of query values for the rendered answer."""

from __future__ import annotations

from decimal import Decimal
import math
from typing import Any

CURRENCY_SYMBOL = "R$"
FALLBACK_VALUE = "0"


def _swap_separators(text: str) -> str:
    # "12,345.60" -> "12.345,60"
    return text.replace(",", "_").replace(".", ",").replace("_", ".")


def format_decimal(value: int | float | Decimal, places: int = 0) -> str:
    """Group thousands with '.' and use ',' as decimal separator."""
    return _swap_separators(f"{value:,.{places}f}")


def format_currency(value: float | Decimal) -> str:
    """Format as Brazilian reais, e.g. ``R$ 12.345,60``."""
    if value < 0:
        return f"-{CURRENCY_SYMBOL} {format_decimal(-value, 2)}"
    return f"{CURRENCY_SYMBOL} {format_decimal(value, 2)}"


def _is_finite(value: float | Decimal) -> bool:
    if isinstance(value, Decimal):
        return value.is_finite()
    return math.isfinite(value)


def format_value(value: Any) -> str:
    """Format a single-row value: fractional numbers as currency, integers grouped."""
    if value is None:
        return FALLBACK_VALUE
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return format_decimal(value)
    if isinstance(value, (float, Decimal)):
        if not _is_finite(value):
            return str(value)
        return format_currency(value)
    return str(value)


def stringify(value: Any) -> str:
    """Plain string coercion used for list answers."""
    if value is None:
        return FALLBACK_VALUE
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
