"""Core infrastructure module.

Contains configuration, models, and exceptions. The ODBC helpers in
``core.db`` are imported on demand so that the HTTP-only deployment does not
need an ODBC driver manager installed.
"""

from .config import (
    ProviderType,
    QueryBackend,
    Settings,
    get_settings,
    get_cached_settings,
    clear_settings_cache,
)
from .exceptions import (
    ConfigUnavailable,
    ConfigurationError,
    ExecutionFailed,
    GenerationFailed,
    GenerationTimedOut,
    GenyError,
    ParseFailed,
    ValidationError,
)
from .models import (
    ChatQuestion,
    ChatRequest,
    ChatResponse,
    ModelResponse,
    PromptResponse,
    PromptUpdate,
    SystemPrompt,
)

__all__ = [
    # Config
    "ProviderType",
    "QueryBackend",
    "Settings",
    "get_settings",
    "get_cached_settings",
    "clear_settings_cache",
    # Exceptions
    "ConfigUnavailable",
    "ConfigurationError",
    "ExecutionFailed",
    "GenerationFailed",
    "GenerationTimedOut",
    "GenyError",
    "ParseFailed",
    "ValidationError",
    # Models
    "ChatQuestion",
    "ChatRequest",
    "ChatResponse",
    "ModelResponse",
    "PromptResponse",
    "PromptUpdate",
    "SystemPrompt",
]
