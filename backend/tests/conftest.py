"""Shared fixtures: settings, fake pipeline stages, and mocked HTTP transports."""

from __future__ import annotations

import json
import os
import sys
from typing import Any, Callable

import httpx
import pytest

# Add backend to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from geny.core.config import ProviderType, QueryBackend, Settings
from geny.core.models import ChatQuestion, SystemPrompt
from geny.llm.generator import QueryGenerator
from geny.pipeline import GenyPipeline
from geny.store.prompt_store import PromptStore
from geny.store.query_executor import QueryExecutor

DEFAULT_PROMPT = "PROMPT PADRAO"


def build_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = dict(
        provider=ProviderType.CHAT,
        openai_api_key="sk-test",
        openai_base_url="https://llm.test/v1",
        openai_model="gpt-test",
        openai_assistant_id="",
        json_mode=True,
        temperature=0.1,
        query_backend=QueryBackend.RPC,
        supabase_url="https://db.test",
        supabase_service_key="service-key",
        db_connection_string="",
        prompt_key="geny_prompt",
        max_rows=200,
        request_timeout=5.0,
        poll_interval=0.0,
        poll_attempts=3,
        pipeline_timeout=30.0,
        admin_token="",
    )
    values.update(overrides)
    return Settings(**values)


def json_response(payload: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(payload).encode("utf-8"),
                          headers={"Content-Type": "application/json"})


class FakePromptStore(PromptStore):
    def __init__(self, value: str | None = None, error: Exception | None = None) -> None:
        super().__init__(default_prompt=DEFAULT_PROMPT)
        self.value = value
        self.error = error
        self.saved: list[str] = []

    def _fetch(self) -> str | None:
        if self.error:
            raise self.error
        return self.value

    def _store(self, text: str) -> None:
        self.saved.append(text)
        self.value = text


class FakeGenerator(QueryGenerator):
    def __init__(self, raw: str = "", error: Exception | None = None,
                 side_effect: Callable[[], None] | None = None) -> None:
        self.raw = raw
        self.error = error
        self.side_effect = side_effect
        self.calls: list[tuple[ChatQuestion, SystemPrompt, float | None]] = []

    def generate(self, question: ChatQuestion, prompt: SystemPrompt, timeout: float | None = None) -> str:
        self.calls.append((question, prompt, timeout))
        if self.side_effect:
            self.side_effect()
        if self.error:
            raise self.error
        return self.raw


class FakeExecutor(QueryExecutor):
    def __init__(self, result: Any = None, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls: list[str] = []

    def _call(self, sql: str, timeout: float | None) -> Any:
        self.calls.append(sql)
        if self.error:
            raise self.error
        return self.result


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    return build_settings


@pytest.fixture
def mock_http() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.Client]:
    """Build an httpx.Client whose requests are answered by a handler function."""
    clients: list[httpx.Client] = []

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
        client = httpx.Client(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.close()


@pytest.fixture
def pipeline_factory():
    """Build a pipeline from fake stages; returns (pipeline, generator, executor, store)."""

    def factory(
        raw: str = "",
        result: Any = None,
        generation_error: Exception | None = None,
        execution_error: Exception | None = None,
        prompt_value: str | None = None,
        budget: float | None = None,
        clock: FakeClock | None = None,
        side_effect: Callable[[], None] | None = None,
    ):
        store = FakePromptStore(prompt_value)
        generator = FakeGenerator(raw, generation_error, side_effect)
        executor = FakeExecutor(result, execution_error)
        pipeline = GenyPipeline(
            prompt_store=store,
            generator=generator,
            executor=executor,
            max_rows=200,
            budget=budget,
            clock=clock or FakeClock(),
        )
        return pipeline, generator, executor, store

    return factory
