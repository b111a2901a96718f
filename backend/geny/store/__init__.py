"""Database-facing stores.

Contains the prompt store and the read-only query executor. Each has an
HTTP backend (Supabase PostgREST) and an ODBC backend; the ODBC module is
imported only when selected.
"""

from __future__ import annotations

import httpx

from ..core.config import QueryBackend, Settings
from .prompt_store import PromptStore, SupabasePromptStore
from .query_executor import QueryExecutor, RpcQueryExecutor, normalize_result
from .supabase import SupabaseRest, describe_error

__all__ = [
    "PromptStore",
    "SupabasePromptStore",
    "QueryExecutor",
    "RpcQueryExecutor",
    "normalize_result",
    "SupabaseRest",
    "describe_error",
    "build_prompt_store",
    "build_query_executor",
]


def _rest(settings: Settings, http: httpx.Client | None) -> SupabaseRest:
    return SupabaseRest(
        settings.supabase_url,
        settings.supabase_service_key,
        timeout=settings.request_timeout,
        http=http,
    )


def build_prompt_store(settings: Settings, http: httpx.Client | None = None) -> PromptStore:
    if settings.query_backend == QueryBackend.ODBC:
        from .odbc import OdbcPromptStore

        return OdbcPromptStore(
            settings.db_connection_string, key=settings.prompt_key, timeout=settings.request_timeout
        )
    return SupabasePromptStore(_rest(settings, http), key=settings.prompt_key)


def build_query_executor(settings: Settings, http: httpx.Client | None = None) -> QueryExecutor:
    if settings.query_backend == QueryBackend.ODBC:
        from .odbc import OdbcQueryExecutor

        return OdbcQueryExecutor(settings.db_connection_string, timeout=settings.request_timeout)
    return RpcQueryExecutor(_rest(settings, http))
