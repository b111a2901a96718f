from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class ChatQuestion:
    text: str


@dataclass(frozen=True)
class SystemPrompt:
    text: str
    source: Literal["config", "default"] = "default"


class ModelResponse(BaseModel):
    """Structured intent returned by the model: an optional query and the answer template."""

    model_config = ConfigDict(populate_by_name=True)

    sql: str | None = None
    explanation: str = Field(default="", alias="explicacao")


class ChatRequest(BaseModel):
    message: str


class ChatResponse(BaseModel):
    response: str
    ai_response: ModelResponse | None = None
    query_result: Any = None
    error: str | None = None


class PromptUpdate(BaseModel):
    prompt: str


class PromptResponse(BaseModel):
    prompt: str
    source: Literal["config", "default"]
