"""Allow-listing of model-generated SQL before it reaches the database."""

from __future__ import annotations

import logging
import re
from typing import Tuple

import sqlparse
from sqlparse.tokens import DDL, DML, Keyword, Punctuation

logger = logging.getLogger(__name__)

# Statement types and functions that should never appear in a generated query
DANGEROUS_KEYWORDS = {
    "INSERT", "UPDATE", "DELETE", "MERGE", "UPSERT", "DROP", "ALTER", "TRUNCATE",
    "CREATE", "GRANT", "REVOKE", "COPY", "VACUUM", "ANALYZE", "CLUSTER",
    "REINDEX", "LOCK", "CALL", "DO", "EXECUTE", "PREPARE", "DEALLOCATE",
    "LISTEN", "NOTIFY", "SET", "RESET", "COMMENT", "SECURITY", "REFRESH", "INTO",
}

DANGEROUS_FUNCTIONS = (
    "pg_sleep", "pg_terminate_backend", "pg_cancel_backend", "pg_read_file",
    "pg_read_binary_file", "pg_ls_dir", "lo_import", "lo_export", "dblink",
    "set_config", "execute_readonly_query",
)

ALLOWED_LEADING_KEYWORDS = ("SELECT", "WITH")

_FUNCTION_RE = re.compile(r"(?i)\b(" + "|".join(DANGEROUS_FUNCTIONS) + r")\s*\(")
_LIMIT_RE = re.compile(r"(?is)\bLIMIT\s+(\d+|ALL)\b(\s+OFFSET\s+\d+)?\s*$")
_FETCH_RE = re.compile(r"(?is)\bFETCH\s+(FIRST|NEXT)\b")
_OFFSET_TAIL_RE = re.compile(r"(?is)\bOFFSET\s+\d+(\s+ROWS?)?\s*$")


def strip_sql(sql: str) -> str:
    """Trim markdown fences, comments and trailing semicolons.

    The guard checks and the database runs the same comment-free text.
    """
    if not sql:
        return ""
    text = sql.strip()
    fenced = re.search(r"```(?:sql)?\s*(.*?)```", text, re.IGNORECASE | re.DOTALL)
    if fenced:
        text = fenced.group(1).strip()
    text = sqlparse.format(text, strip_comments=True).strip()
    return text.rstrip(";").strip()


def _leading_keyword(stmt) -> str:
    """First word of the statement, looking through opening parentheses."""
    for token in stmt.flatten():
        if token.is_whitespace or token.ttype in Punctuation:
            continue
        return token.value.upper()
    return ""


def _has_separator(stmt) -> bool:
    return any(token.ttype in Punctuation and token.value == ";" for token in stmt.flatten())


def _check_token_safety(token) -> tuple[bool, str]:
    """Recursively check a token and its children for dangerous patterns."""
    if token.ttype is not None:
        value = str(token).strip().upper()
        if token.ttype in DML and value != "SELECT":
            return False, f"Non-SELECT DML token: {value}"
        if token.ttype in DDL:
            return False, f"DDL token: {value}"
        if token.ttype in Keyword and value in DANGEROUS_KEYWORDS:
            return False, f"Dangerous keyword: {value}"

    if token.is_group:
        for sub in token.tokens:
            safe, reason = _check_token_safety(sub)
            if not safe:
                return False, reason

    return True, ""


def is_safe_sql(sql: str) -> Tuple[bool, str]:
    """
    Validate that the SQL is a single read-only SELECT statement.

    Returns:
        Tuple of (is_safe, error_reason)
    """
    candidate = strip_sql(sql)

    if not candidate:
        return False, "Empty SQL"

    try:
        parsed = [stmt for stmt in sqlparse.parse(candidate) if str(stmt).strip()]
    except Exception as e:
        logger.error(f"SQL parse error: {e}")
        return False, f"SQL parse error: {e}"

    if len(parsed) != 1:
        return False, f"Expected 1 statement, got {len(parsed)}"

    stmt = parsed[0]
    if _has_separator(stmt):
        return False, "Multiple statements not allowed (semicolon in query)"

    leading = _leading_keyword(stmt)
    if not leading:
        return False, "Could not determine statement type"
    if leading not in ALLOWED_LEADING_KEYWORDS:
        return False, f"Statement must start with SELECT or WITH, got: {leading}"

    stmt_type = stmt.get_type()
    if stmt_type not in ("SELECT", "UNKNOWN"):
        return False, f"Only SELECT statements allowed, got: {stmt_type}"

    safe, reason = _check_token_safety(stmt)
    if not safe:
        return False, reason

    function = _FUNCTION_RE.search(candidate)
    if function:
        return False, f"Function not allowed: {function.group(1)}"

    return True, ""


def apply_row_limit(sql: str, max_rows: int) -> str:
    """Append a LIMIT clause if the statement doesn't already end with one."""
    candidate = strip_sql(sql)
    if not candidate or max_rows <= 0:
        return candidate
    if _LIMIT_RE.search(candidate) or _FETCH_RE.search(candidate):
        return candidate
    if _OFFSET_TAIL_RE.search(candidate):
        return f"{candidate} LIMIT {max_rows}"
    return f"{candidate}\nLIMIT {max_rows}"
