"""Orchestration of one Geny chat turn.

Stages: load prompt -> generate -> parse -> (guard + execute) -> render.
Every failure ends the turn in ``FAILED`` with a natural-language message;
``answer`` itself never raises.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
import time
from typing import Any, Callable

import httpx

from .answer import render
from .core.config import Settings
from .core.exceptions import ExecutionFailed, GenerationFailed, GenerationTimedOut
from .core.models import ChatQuestion, ModelResponse
from .llm.generator import QueryGenerator, build_generator
from .llm.parser import parse
from .security import apply_row_limit, is_safe_sql
from .store import build_prompt_store, build_query_executor
from .store.prompt_store import PromptStore
from .store.query_executor import QueryExecutor

logger = logging.getLogger(__name__)

GENERATION_ERROR_MESSAGE = "Desculpe, ocorreu um erro ao processar sua pergunta. Tente novamente em instantes."
EXECUTION_ERROR_MESSAGE = "Desculpe, ocorreu um erro ao consultar os dados: {detail}"
UNEXPECTED_ERROR_MESSAGE = "Desculpe, ocorreu um erro inesperado. Tente novamente."


class PipelineState(str, Enum):
    INIT = "init"
    PROMPTED = "prompted"
    GENERATED = "generated"
    PARSED = "parsed"
    NO_QUERY = "no_query"
    EXECUTED = "executed"
    RENDERED = "rendered"
    FAILED = "failed"


@dataclass
class PipelineResult:
    response: str
    states: list[PipelineState] = field(default_factory=list)
    ai_response: ModelResponse | None = None
    query_result: Any = None
    error: str | None = None

    @property
    def state(self) -> PipelineState:
        return self.states[-1] if self.states else PipelineState.INIT

    @property
    def failed(self) -> bool:
        return self.state == PipelineState.FAILED


class Deadline:
    """Total time budget shared by the network-bound stages of a turn."""

    def __init__(self, budget: float | None, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._expires_at = clock() + budget if budget else None

    def remaining(self) -> float | None:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0


class GenyPipeline:
    def __init__(
        self,
        prompt_store: PromptStore,
        generator: QueryGenerator,
        executor: QueryExecutor,
        max_rows: int = 200,
        budget: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.prompt_store = prompt_store
        self.generator = generator
        self.executor = executor
        self.max_rows = max_rows
        self.budget = budget
        self._clock = clock

    def answer(self, question: ChatQuestion) -> PipelineResult:
        turn = PipelineResult(response="", states=[PipelineState.INIT])
        try:
            return self._run(question, turn)
        except Exception as e:
            logger.exception(f"Unexpected failure after state {turn.state.value}: {e}")
            return self._fail(turn, UNEXPECTED_ERROR_MESSAGE, str(e) or e.__class__.__name__)

    @staticmethod
    def _fail(turn: PipelineResult, message: str, error: str) -> PipelineResult:
        turn.states.append(PipelineState.FAILED)
        turn.response = message
        turn.error = error
        return turn

    def _run(self, question: ChatQuestion, turn: PipelineResult) -> PipelineResult:
        deadline = Deadline(self.budget, self._clock)

        prompt = self.prompt_store.load()
        turn.states.append(PipelineState.PROMPTED)
        logger.info(f"Prompt loaded from {prompt.source} ({len(prompt.text)} chars)")

        try:
            if deadline.expired():
                raise GenerationTimedOut("Pipeline budget exhausted before generation")
            raw = self.generator.generate(question, prompt, timeout=deadline.remaining())
        except GenerationFailed as e:
            logger.error(f"Generation failed (status={e.status_code}): {e}")
            return self._fail(turn, GENERATION_ERROR_MESSAGE, str(e))
        turn.states.append(PipelineState.GENERATED)

        model = parse(raw)
        turn.ai_response = model
        turn.states.append(PipelineState.PARSED)
        logger.info(f"Parsed model response (sql={'yes' if model.sql else 'no'})")

        if not model.sql:
            turn.states.append(PipelineState.NO_QUERY)
            result = None
        else:
            try:
                result = self._execute(model.sql, deadline)
            except ExecutionFailed as e:
                detail = str(e)
                logger.error(f"Execution failed: {detail}")
                return self._fail(turn, EXECUTION_ERROR_MESSAGE.format(detail=detail), detail)
            turn.query_result = result
            turn.states.append(PipelineState.EXECUTED)

        turn.response = render(model, result)
        turn.states.append(PipelineState.RENDERED)
        logger.info(f"Answer rendered ({len(turn.response)} chars)")
        return turn

    def _execute(self, sql: str, deadline: Deadline) -> Any:
        ok, reason = is_safe_sql(sql)
        if not ok:
            logger.warning(f"SQL validation failed: {reason}")
            raise ExecutionFailed(f"consulta não permitida ({reason})")

        if deadline.expired():
            raise ExecutionFailed("tempo limite excedido")

        limited = apply_row_limit(sql, self.max_rows)
        return self.executor.execute(limited, timeout=deadline.remaining())


def build_pipeline(settings: Settings, http: httpx.Client | None = None) -> GenyPipeline:
    """Wire the configured backends into a pipeline for one request."""
    return GenyPipeline(
        prompt_store=build_prompt_store(settings, http),
        generator=build_generator(settings, http),
        executor=build_query_executor(settings, http),
        max_rows=settings.max_rows,
        budget=settings.pipeline_timeout,
    )
