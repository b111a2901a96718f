"""Geny CRM assistant.

This package answers free-text business questions about the CRM (orders,
customers, products, sellers, campaigns) by asking a language model for a
read-only SQL query plus an answer template, running the query through the
database's read-only function, and filling the template with the result.

Package Structure:
    core/      - Core infrastructure (config, models, exceptions, ODBC helpers)
    llm/       - LLM interaction (client, system prompt, generation, parsing)
    security/  - SQL allow-list guard
    store/     - Prompt store and read-only query executor
    answer/    - Placeholder binding and pt-BR formatting
    pipeline   - Orchestration of one chat turn
    main       - FastAPI application
"""

from .answer import render
from .core.config import Settings, get_cached_settings, get_settings
from .core.exceptions import (
    ConfigUnavailable,
    ConfigurationError,
    ExecutionFailed,
    GenerationFailed,
    GenerationTimedOut,
    ParseFailed,
)
from .core.models import ChatQuestion, ModelResponse, SystemPrompt
from .llm import parse
from .pipeline import GenyPipeline, PipelineResult, PipelineState, build_pipeline

__all__ = [
    "render",
    "Settings",
    "get_cached_settings",
    "get_settings",
    "ConfigUnavailable",
    "ConfigurationError",
    "ExecutionFailed",
    "GenerationFailed",
    "GenerationTimedOut",
    "ParseFailed",
    "ChatQuestion",
    "ModelResponse",
    "SystemPrompt",
    "parse",
    "GenyPipeline",
    "PipelineResult",
    "PipelineState",
    "build_pipeline",
]
