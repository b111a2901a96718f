"""OpenAI-compatible API client for LLM interactions."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from ..core.exceptions import GenerationFailed

logger = logging.getLogger(__name__)

__all__ = ["OpenAIClient"]

ASSISTANTS_BETA_HEADER = "assistants=v2"


class OpenAIClient:
    """Thin wrapper over the chat-completions and assistants endpoints.

    Every failure (transport error, timeout, non-2xx status, malformed body)
    is raised as GenerationFailed. Nothing is retried.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: float,
        http: httpx.Client | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = http or httpx.Client()

    def _headers(self, beta: str | None = None) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if beta:
            headers["OpenAI-Beta"] = beta
        return headers

    def _effective_timeout(self, timeout: float | None) -> float:
        if timeout is None:
            return self.timeout
        return max(0.1, min(self.timeout, timeout))

    def _request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
        timeout: float | None = None,
        beta: str | None = None,
    ) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        effective_timeout = self._effective_timeout(timeout)

        try:
            response = self.http.request(
                method,
                url,
                json=payload,
                headers=self._headers(beta),
                timeout=effective_timeout,
            )
        except httpx.TimeoutException as e:
            logger.error(f"Model request timed out after {effective_timeout}s: {method} {path}")
            raise GenerationFailed(f"LLM request timed out after {effective_timeout}s") from e
        except httpx.HTTPError as e:
            logger.error(f"Model request failed: {method} {path}: {e}")
            raise GenerationFailed(f"Failed to connect to LLM: {e}") from e

        if response.status_code < 200 or response.status_code >= 300:
            logger.error(f"Model HTTP error: {response.status_code} - {response.text[:200]}")
            raise GenerationFailed(
                f"LLM request failed with status {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            data = response.json()
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse model response as JSON: {response.text[:200]}")
            raise GenerationFailed("LLM returned invalid JSON", response.status_code, response.text) from e

        if not isinstance(data, dict):
            logger.error(f"Unexpected response type: {type(data)}")
            raise GenerationFailed("LLM response is not a dictionary", response.status_code, response.text)

        return data

    # --- Chat completions ---

    def chat_completion(
        self,
        messages: list[dict[str, str]],
        model: str,
        temperature: float = 0.1,
        json_mode: bool = False,
        timeout: float | None = None,
    ) -> str:
        """Run one chat completion and return the first choice's content."""
        payload: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        logger.debug(f"Calling chat completions with model={model}, json_mode={json_mode}")
        data = self._request("POST", "/chat/completions", payload, timeout=timeout)

        choices = data.get("choices")
        if not choices or not isinstance(choices, list):
            logger.error(f"Missing or invalid 'choices' in response: {str(data)[:200]}")
            raise GenerationFailed("LLM response missing 'choices' array")

        message = choices[0].get("message")
        if not message or not isinstance(message, dict):
            logger.error(f"Missing or invalid 'message' in choice: {choices[0]}")
            raise GenerationFailed("LLM response missing message content")

        content = message.get("content") or ""
        logger.debug(f"Chat completion length: {len(content)} chars")
        return content

    # --- Assistants (asynchronous runs) ---

    def create_thread_and_run(
        self,
        assistant_id: str,
        content: str,
        instructions: str | None = None,
        json_mode: bool = False,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "assistant_id": assistant_id,
            "thread": {"messages": [{"role": "user", "content": content}]},
        }
        if instructions:
            payload["instructions"] = instructions
        if json_mode:
            payload["response_format"] = {"type": "json_object"}
        return self._request("POST", "/threads/runs", payload, timeout=timeout, beta=ASSISTANTS_BETA_HEADER)

    def retrieve_run(self, thread_id: str, run_id: str, timeout: float | None = None) -> dict[str, Any]:
        return self._request(
            "GET", f"/threads/{thread_id}/runs/{run_id}", timeout=timeout, beta=ASSISTANTS_BETA_HEADER
        )

    def latest_assistant_message(self, thread_id: str, timeout: float | None = None) -> str:
        """Return the text of the newest assistant message in a thread."""
        data = self._request(
            "GET",
            f"/threads/{thread_id}/messages?order=desc&limit=10",
            timeout=timeout,
            beta=ASSISTANTS_BETA_HEADER,
        )
        for message in data.get("data") or []:
            if message.get("role") != "assistant":
                continue
            parts = [
                part.get("text", {}).get("value", "")
                for part in message.get("content") or []
                if part.get("type") == "text"
            ]
            return "".join(parts)

        logger.error(f"No assistant message found in thread {thread_id}")
        raise GenerationFailed("LLM run completed without an assistant message")
