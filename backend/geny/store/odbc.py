"""Direct-database backend over ODBC.

Both classes use fixed, parameterized statements. The dynamic SQL produced
by the model is only ever bound as the argument of the read-only function.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from ..core.db import execute_non_query, fetch_value
from ..core.exceptions import ConfigUnavailable, ExecutionFailed
from .prompt_store import CONFIG_TABLE, DEFAULT_PROMPT_KEY, PromptStore
from .query_executor import READONLY_FUNCTION, QueryExecutor

logger = logging.getLogger(__name__)

READONLY_CALL = f"SELECT {READONLY_FUNCTION}(?)"
SELECT_PROMPT = f"SELECT value FROM {CONFIG_TABLE} WHERE key = ?"
UPSERT_PROMPT = (
    f"INSERT INTO {CONFIG_TABLE} (key, value) VALUES (?, ?) "
    "ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value, updated_at = now()"
)


class OdbcQueryExecutor(QueryExecutor):
    def __init__(self, connection_string: str, timeout: float | None = None) -> None:
        self.connection_string = connection_string
        self.timeout = timeout

    def _call(self, sql: str, timeout: float | None) -> Any:
        raw = fetch_value(
            self.connection_string,
            READONLY_CALL,
            [sql],
            timeout=timeout or self.timeout,
            read_only=True,
        )
        if isinstance(raw, str):
            try:
                return json.loads(raw)
            except json.JSONDecodeError:
                logger.debug("Read-only function returned non-JSON text")
                return raw
        return raw


class OdbcPromptStore(PromptStore):
    def __init__(
        self,
        connection_string: str,
        key: str = DEFAULT_PROMPT_KEY,
        default_prompt: str | None = None,
        timeout: float | None = None,
    ) -> None:
        super().__init__(key, default_prompt)
        self.connection_string = connection_string
        self.timeout = timeout

    def _fetch(self) -> str | None:
        try:
            return fetch_value(
                self.connection_string, SELECT_PROMPT, [self.key], timeout=self.timeout, read_only=True
            )
        except ExecutionFailed as e:
            raise ConfigUnavailable(f"Failed to read {CONFIG_TABLE}: {e}") from e

    def _store(self, text: str) -> None:
        try:
            execute_non_query(self.connection_string, UPSERT_PROMPT, [self.key, text], timeout=self.timeout)
        except ExecutionFailed as e:
            logger.error(f"Failed to save prompt '{self.key}': {e}")
            raise ConfigUnavailable(f"Failed to write {CONFIG_TABLE}: {e}") from e
