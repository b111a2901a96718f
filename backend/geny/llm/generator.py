"""Query generation: turns a question plus the system prompt into raw model text.

Two transports implement the same ``generate`` contract:

- ``ChatCompletionGenerator``: a single synchronous chat-completion call.
- ``AssistantRunGenerator``: an asynchronous assistant run that is polled at a
  fixed interval for a fixed number of attempts.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging
import time
from typing import Callable

import httpx

from ..core.config import ProviderType, Settings
from ..core.exceptions import GenerationFailed, GenerationTimedOut
from ..core.models import ChatQuestion, SystemPrompt
from .client import OpenAIClient

logger = logging.getLogger(__name__)

RUN_COMPLETED = "completed"
RUN_FAILED = {"failed", "cancelled", "expired", "incomplete", "requires_action"}


class QueryGenerator(ABC):
    @abstractmethod
    def generate(
        self,
        question: ChatQuestion,
        prompt: SystemPrompt,
        timeout: float | None = None,
    ) -> str:
        """Return the model's raw text for the question.

        Raises:
            GenerationFailed: On any endpoint error
        """


class ChatCompletionGenerator(QueryGenerator):
    def __init__(
        self,
        client: OpenAIClient,
        model: str,
        temperature: float = 0.1,
        json_mode: bool = True,
    ) -> None:
        self.client = client
        self.model = model
        self.temperature = temperature
        self.json_mode = json_mode

    def generate(self, question: ChatQuestion, prompt: SystemPrompt, timeout: float | None = None) -> str:
        logger.info(f"Generating SQL for question: {question.text[:100]}...")
        content = self.client.chat_completion(
            [
                {"role": "system", "content": prompt.text},
                {"role": "user", "content": question.text},
            ],
            model=self.model,
            temperature=self.temperature,
            json_mode=self.json_mode,
            timeout=timeout,
        )
        logger.info(f"Model returned {len(content)} chars")
        return content


class AssistantRunGenerator(QueryGenerator):
    """Submits an assistant run and polls it until it completes."""

    def __init__(
        self,
        client: OpenAIClient,
        assistant_id: str,
        poll_interval: float = 1.0,
        poll_attempts: int = 30,
        json_mode: bool = False,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.client = client
        self.assistant_id = assistant_id
        self.poll_interval = poll_interval
        self.poll_attempts = poll_attempts
        self.json_mode = json_mode
        self._sleep = sleep
        self._clock = clock

    def generate(self, question: ChatQuestion, prompt: SystemPrompt, timeout: float | None = None) -> str:
        logger.info(f"Starting assistant run for question: {question.text[:100]}...")
        started = self._clock()

        run = self.client.create_thread_and_run(
            self.assistant_id,
            question.text,
            instructions=prompt.text,
            json_mode=self.json_mode,
            timeout=timeout,
        )
        thread_id = run.get("thread_id")
        run_id = run.get("id")
        if not thread_id or not run_id:
            raise GenerationFailed("LLM run response missing thread or run id")

        status = run.get("status")
        attempts = 0
        while status != RUN_COMPLETED:
            if status in RUN_FAILED:
                error = (run.get("last_error") or {}).get("message") or status
                logger.error(f"Assistant run {run_id} ended with status {status}: {error}")
                raise GenerationFailed(f"LLM run {status}: {error}")

            remaining = None if timeout is None else timeout - (self._clock() - started)
            if attempts >= self.poll_attempts or (remaining is not None and remaining <= 0):
                logger.error(f"Assistant run {run_id} still {status} after {attempts} polls")
                raise GenerationTimedOut(
                    f"LLM run did not finish after {attempts} attempts ({self.poll_interval}s interval)"
                )

            self._sleep(self.poll_interval)
            attempts += 1
            run = self.client.retrieve_run(thread_id, run_id, timeout=remaining)
            status = run.get("status")
            logger.debug(f"Run {run_id} poll {attempts}: {status}")

        logger.info(f"Assistant run {run_id} completed after {attempts} polls")
        return self.client.latest_assistant_message(thread_id, timeout=timeout)


def build_generator(settings: Settings, http: httpx.Client | None = None) -> QueryGenerator:
    """Build the generator selected by GENY_PROVIDER."""
    client = OpenAIClient(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        timeout=settings.request_timeout,
        http=http,
    )
    if settings.provider == ProviderType.ASSISTANT:
        return AssistantRunGenerator(
            client,
            settings.openai_assistant_id,
            poll_interval=settings.poll_interval,
            poll_attempts=settings.poll_attempts,
            json_mode=settings.json_mode,
        )
    return ChatCompletionGenerator(
        client,
        settings.openai_model,
        temperature=settings.temperature,
        json_mode=settings.json_mode,
    )
