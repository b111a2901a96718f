"""Security and validation module.

Contains the allow-list guard applied to generated SQL.
"""

from .sql_guard import apply_row_limit, is_safe_sql, strip_sql

__all__ = [
    "apply_row_limit",
    "is_safe_sql",
    "strip_sql",
]
