"""Persisted system prompt with a built-in fallback."""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging

import httpx

from ..core.exceptions import ConfigUnavailable, ValidationError
from ..core.models import SystemPrompt
from ..llm.prompts import build_default_prompt
from .supabase import SupabaseRest, describe_error

logger = logging.getLogger(__name__)

CONFIG_TABLE = "system_config"
DEFAULT_PROMPT_KEY = "geny_prompt"


class PromptStore(ABC):
    """Reads and overwrites the prompt stored under one configuration key.

    ``load`` never raises: a missing row, a blank value or any read error
    yields the built-in default prompt.
    """

    def __init__(self, key: str = DEFAULT_PROMPT_KEY, default_prompt: str | None = None) -> None:
        self.key = key
        self._default_prompt = default_prompt

    @property
    def default_prompt(self) -> str:
        if self._default_prompt is None:
            self._default_prompt = build_default_prompt()
        return self._default_prompt

    @abstractmethod
    def _fetch(self) -> str | None:
        """Return the stored value, or None if the key is absent."""

    @abstractmethod
    def _store(self, text: str) -> None:
        """Insert or overwrite the value for the key."""

    def load(self) -> SystemPrompt:
        try:
            value = self._fetch()
        except Exception as e:
            logger.warning(f"Prompt '{self.key}' unavailable, using default: {e}")
            return SystemPrompt(self.default_prompt, source="default")

        if value is None or not str(value).strip():
            logger.info(f"Prompt '{self.key}' not configured, using default")
            return SystemPrompt(self.default_prompt, source="default")

        logger.debug(f"Loaded prompt '{self.key}' ({len(value)} chars)")
        return SystemPrompt(str(value), source="config")

    def save(self, text: str) -> SystemPrompt:
        """Overwrite the stored prompt.

        Raises:
            ValidationError: If the text is blank
            ConfigUnavailable: If the value cannot be written
        """
        if not text or not text.strip():
            raise ValidationError("Prompt must not be empty")
        self._store(text)
        logger.info(f"Saved prompt '{self.key}' ({len(text)} chars)")
        return SystemPrompt(text, source="config")


class SupabasePromptStore(PromptStore):
    def __init__(
        self,
        rest: SupabaseRest,
        key: str = DEFAULT_PROMPT_KEY,
        default_prompt: str | None = None,
    ) -> None:
        super().__init__(key, default_prompt)
        self.rest = rest

    def _fetch(self) -> str | None:
        try:
            rows = self.rest.select(CONFIG_TABLE, {"key": f"eq.{self.key}"}, columns="value")
        except httpx.HTTPError as e:
            raise ConfigUnavailable(f"Failed to read {CONFIG_TABLE}: {describe_error(e)}") from e
        if not rows:
            return None
        return rows[0].get("value")

    def _store(self, text: str) -> None:
        try:
            self.rest.upsert(CONFIG_TABLE, {"key": self.key, "value": text}, on_conflict="key")
        except httpx.HTTPError as e:
            logger.error(f"Failed to save prompt '{self.key}': {describe_error(e)}")
            raise ConfigUnavailable(f"Failed to write {CONFIG_TABLE}: {describe_error(e)}") from e
