"""Execution of generated SQL through the read-only database function.

``execute_readonly_query(query_text)`` is the only path through which dynamic
SQL reaches the database. It runs under a database role restricted to reads;
the SQL guard in ``geny.security`` is applied before any call.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging
from typing import Any

import httpx

from ..core.exceptions import ExecutionFailed
from .supabase import SupabaseRest, describe_error

logger = logging.getLogger(__name__)

READONLY_FUNCTION = "execute_readonly_query"


def normalize_result(value: Any) -> Any:
    """Collapse single-row lists to the row and empty lists to None."""
    if isinstance(value, list):
        if not value:
            return None
        if len(value) == 1 and isinstance(value[0], dict):
            return value[0]
    return value


class QueryExecutor(ABC):
    @abstractmethod
    def _call(self, sql: str, timeout: float | None) -> Any:
        """Invoke the read-only function and return its decoded JSON result."""

    def execute(self, sql: str, timeout: float | None = None) -> Any:
        """Run the SQL and return None, a scalar, a row mapping or a list of rows.

        Raises:
            ExecutionFailed: If the database rejects or fails the query
        """
        logger.info(f"Executing SQL: {sql[:200]}")
        result = normalize_result(self._call(sql, timeout))
        if isinstance(result, list):
            logger.info(f"Query returned {len(result)} rows")
        else:
            logger.info(f"Query returned {type(result).__name__}")
        return result


class RpcQueryExecutor(QueryExecutor):
    """Calls the function through Supabase's PostgREST RPC endpoint."""

    def __init__(self, rest: SupabaseRest) -> None:
        self.rest = rest

    def _call(self, sql: str, timeout: float | None) -> Any:
        try:
            return self.rest.rpc(READONLY_FUNCTION, {"query_text": sql}, timeout=timeout)
        except httpx.HTTPError as e:
            detail = describe_error(e)
            logger.error(f"Query execution failed: {detail}")
            raise ExecutionFailed(detail) from e
        except ValueError as e:
            logger.error(f"Query result is not valid JSON: {e}")
            raise ExecutionFailed(f"resultado inválido: {e}") from e
