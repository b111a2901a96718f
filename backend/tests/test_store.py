"""Unit tests for the prompt store and the read-only query executor."""

from __future__ import annotations

import json

import httpx
import pytest

from conftest import DEFAULT_PROMPT, FakePromptStore, json_response
from geny.core.config import QueryBackend
from geny.core.exceptions import ConfigUnavailable, ExecutionFailed, ValidationError
from geny.llm.prompts import build_default_prompt, format_schema, load_schema
from geny.store import (
    RpcQueryExecutor,
    SupabasePromptStore,
    SupabaseRest,
    build_prompt_store,
    build_query_executor,
    normalize_result,
)

SUPABASE_URL = "https://db.test"


def _rest(mock_http, handler) -> SupabaseRest:
    return SupabaseRest(SUPABASE_URL, "service-key", timeout=5.0, http=mock_http(handler))


class TestNormalizeResult:
    """Tests for normalize_result function."""

    def test_empty_list_is_none(self):
        assert normalize_result([]) is None

    def test_single_row_collapses(self):
        assert normalize_result([{"total": 1}]) == {"total": 1}

    def test_several_rows_kept(self):
        rows = [{"nome": "Ana"}, {"nome": "Bruno"}]
        assert normalize_result(rows) == rows

    def test_scalars_pass_through(self):
        assert normalize_result(None) is None
        assert normalize_result(5) == 5
        assert normalize_result({"a": 1}) == {"a": 1}


class TestRpcQueryExecutor:
    """Tests for the PostgREST RPC executor."""

    def test_calls_readonly_function(self, mock_http):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["apikey"] = request.headers["apikey"]
            seen["payload"] = json.loads(request.content)
            return json_response([{"faturamento": 12345.6}])

        executor = RpcQueryExecutor(_rest(mock_http, handler))
        result = executor.execute("SELECT SUM(valor_final) AS faturamento FROM orders")

        assert result == {"faturamento": 12345.6}
        assert seen["path"] == "/rest/v1/rpc/execute_readonly_query"
        assert seen["apikey"] == "service-key"
        assert seen["payload"] == {"query_text": "SELECT SUM(valor_final) AS faturamento FROM orders"}

    def test_null_body_is_none(self, mock_http):
        executor = RpcQueryExecutor(_rest(mock_http, lambda request: json_response(None)))
        assert executor.execute("SELECT 1") is None

    def test_empty_body_is_none(self, mock_http):
        executor = RpcQueryExecutor(_rest(mock_http, lambda request: httpx.Response(200)))
        assert executor.execute("SELECT 1") is None

    def test_database_error_message(self, mock_http):
        def handler(request: httpx.Request) -> httpx.Response:
            return json_response(
                {"code": "42P01", "message": 'relation "pedidos" does not exist', "details": None},
                status_code=400,
            )

        executor = RpcQueryExecutor(_rest(mock_http, handler))
        with pytest.raises(ExecutionFailed) as exc_info:
            executor.execute("SELECT * FROM pedidos")
        assert str(exc_info.value) == 'relation "pedidos" does not exist'

    def test_plain_error_body(self, mock_http):
        executor = RpcQueryExecutor(_rest(mock_http, lambda request: httpx.Response(503, text="unavailable")))
        with pytest.raises(ExecutionFailed) as exc_info:
            executor.execute("SELECT 1")
        assert "503" in str(exc_info.value)

    def test_connection_error(self, mock_http):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        executor = RpcQueryExecutor(_rest(mock_http, handler))
        with pytest.raises(ExecutionFailed):
            executor.execute("SELECT 1")

    def test_invalid_json(self, mock_http):
        executor = RpcQueryExecutor(_rest(mock_http, lambda request: httpx.Response(200, text="not json")))
        with pytest.raises(ExecutionFailed):
            executor.execute("SELECT 1")


class TestSupabasePromptStore:
    """Tests for the system_config prompt store."""

    def test_loads_configured_prompt(self, mock_http):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            return json_response([{"value": "Prompt configurado"}])

        store = SupabasePromptStore(_rest(mock_http, handler), default_prompt=DEFAULT_PROMPT)
        prompt = store.load()

        assert prompt.text == "Prompt configurado"
        assert prompt.source == "config"
        assert seen["path"] == "/rest/v1/system_config"
        assert seen["params"] == {"select": "value", "key": "eq.geny_prompt"}

    def test_absent_row_uses_default(self, mock_http):
        store = SupabasePromptStore(_rest(mock_http, lambda request: json_response([])),
                                    default_prompt=DEFAULT_PROMPT)
        prompt = store.load()
        assert prompt.text == DEFAULT_PROMPT
        assert prompt.source == "default"

    def test_blank_value_uses_default(self, mock_http):
        store = SupabasePromptStore(_rest(mock_http, lambda request: json_response([{"value": "  "}])),
                                    default_prompt=DEFAULT_PROMPT)
        assert store.load().source == "default"

    def test_read_error_uses_default(self, mock_http):
        store = SupabasePromptStore(_rest(mock_http, lambda request: httpx.Response(500, text="boom")),
                                    default_prompt=DEFAULT_PROMPT)
        prompt = store.load()
        assert prompt.text == DEFAULT_PROMPT
        assert prompt.source == "default"

    def test_save_upserts_on_key(self, mock_http):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["params"] = dict(request.url.params)
            seen["prefer"] = request.headers["Prefer"]
            seen["payload"] = json.loads(request.content)
            return json_response([seen["payload"]], status_code=201)

        store = SupabasePromptStore(_rest(mock_http, handler), key="geny_prompt")
        prompt = store.save("Novo prompt")

        assert prompt.text == "Novo prompt"
        assert prompt.source == "config"
        assert seen["method"] == "POST"
        assert seen["params"] == {"on_conflict": "key"}
        assert "merge-duplicates" in seen["prefer"]
        assert seen["payload"] == {"key": "geny_prompt", "value": "Novo prompt"}

    def test_save_blank_is_rejected(self, mock_http):
        store = SupabasePromptStore(_rest(mock_http, lambda request: json_response([])))
        with pytest.raises(ValidationError):
            store.save("   ")

    def test_save_error(self, mock_http):
        store = SupabasePromptStore(_rest(mock_http, lambda request: httpx.Response(401, text="denied")))
        with pytest.raises(ConfigUnavailable):
            store.save("Novo prompt")


class TestPromptStoreBase:
    """Tests for the shared load/save behavior."""

    def test_any_read_error_uses_default(self):
        store = FakePromptStore(error=RuntimeError("boom"))
        assert store.load().text == DEFAULT_PROMPT

    def test_saved_prompt_is_loaded_next(self):
        store = FakePromptStore()
        store.save("Prompt novo")
        assert store.load().text == "Prompt novo"
        assert store.saved == ["Prompt novo"]


class TestDefaultPrompt:
    """Tests for the built-in system prompt."""

    def test_schema_has_crm_tables(self):
        schema = load_schema()
        tables = schema["tables"]
        for name in ("orders", "customers", "products", "vendedores", "campanhas"):
            assert name in tables

    def test_default_prompt_lists_schema_and_rules(self):
        prompt = build_default_prompt()
        assert "valor_final" in prompt
        assert "{{" in prompt
        assert '"explicacao"' in prompt

    def test_format_schema_mentions_columns(self):
        text = format_schema({"tables": {"orders": {"description": "Pedidos",
                                                    "columns": {"id": {"type": "uuid"}}}}})
        assert "orders" in text
        assert "id" in text


class TestBuilders:
    """Tests for backend selection."""

    def test_rpc_backend(self, settings_factory):
        settings = settings_factory()
        assert isinstance(build_prompt_store(settings), SupabasePromptStore)
        assert isinstance(build_query_executor(settings), RpcQueryExecutor)

    def test_odbc_backend(self, settings_factory):
        pytest.importorskip("pyodbc")
        from geny.store.odbc import OdbcPromptStore, OdbcQueryExecutor

        settings = settings_factory(query_backend=QueryBackend.ODBC, db_connection_string="DSN=crm")
        assert isinstance(build_prompt_store(settings), OdbcPromptStore)
        assert isinstance(build_query_executor(settings), OdbcQueryExecutor)
