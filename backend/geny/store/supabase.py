"""Minimal Supabase (PostgREST) client over httpx."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


def describe_error(exc: httpx.HTTPError) -> str:
    """Human-readable message for a failed PostgREST call.

    PostgREST reports database errors as ``{"code", "message", "details", "hint"}``;
    the ``message`` field is what the database said.
    """
    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        try:
            body = response.json()
        except json.JSONDecodeError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return f"HTTP {response.status_code}: {response.text[:200]}"
    if isinstance(exc, httpx.TimeoutException):
        return "tempo limite excedido"
    return str(exc) or exc.__class__.__name__


class SupabaseRest:
    def __init__(
        self,
        url: str,
        service_key: str,
        timeout: float,
        http: httpx.Client | None = None,
    ) -> None:
        self.url = url.rstrip("/")
        self.service_key = service_key
        self.timeout = timeout
        self.http = http or httpx.Client()

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
            "Content-Type": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    def _timeout(self, timeout: float | None) -> float:
        if timeout is None:
            return self.timeout
        return max(0.1, min(self.timeout, timeout))

    def rpc(self, function: str, params: dict[str, Any], timeout: float | None = None) -> Any:
        """Call a Postgres function exposed at ``/rest/v1/rpc/<function>``.

        Raises:
            httpx.HTTPError: On transport failure or non-2xx status
        """
        response = self.http.post(
            f"{self.url}/rest/v1/rpc/{function}",
            json=params,
            headers=self._headers(),
            timeout=self._timeout(timeout),
        )
        response.raise_for_status()
        if not response.content:
            return None
        return response.json()

    def select(
        self,
        table: str,
        filters: dict[str, str],
        columns: str = "*",
        timeout: float | None = None,
    ) -> list[dict[str, Any]]:
        params = {"select": columns, **filters}
        response = self.http.get(
            f"{self.url}/rest/v1/{table}",
            params=params,
            headers=self._headers(),
            timeout=self._timeout(timeout),
        )
        response.raise_for_status()
        rows = response.json()
        return rows if isinstance(rows, list) else []

    def upsert(
        self,
        table: str,
        row: dict[str, Any],
        on_conflict: str,
        timeout: float | None = None,
    ) -> list[dict[str, Any]]:
        response = self.http.post(
            f"{self.url}/rest/v1/{table}",
            params={"on_conflict": on_conflict},
            json=row,
            headers=self._headers({"Prefer": "resolution=merge-duplicates,return=representation"}),
            timeout=self._timeout(timeout),
        )
        response.raise_for_status()
        rows = response.json() if response.content else []
        logger.debug(f"Upserted {table} on {on_conflict}")
        return rows if isinstance(rows, list) else []
