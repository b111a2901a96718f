"""Answer rendering: placeholder binding and value formatting."""

from .formatting import FALLBACK_VALUE, format_currency, format_decimal, format_value
from .renderer import PLACEHOLDER_RE, bind, placeholders, render

__all__ = [
    "FALLBACK_VALUE",
    "format_currency",
    "format_decimal",
    "format_value",
    "PLACEHOLDER_RE",
    "bind",
    "placeholders",
    "render",
]
