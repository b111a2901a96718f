"""Application configuration loaded from the environment."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import os
from typing import Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError

load_dotenv()


class ProviderType(str, Enum):
    """Available language model transports."""
    CHAT = "chat"                # OpenAI-compatible chat completions (OpenAI, Ollama /v1)
    ASSISTANT = "assistant"      # OpenAI assistants API with run polling


class QueryBackend(str, Enum):
    """Available transports to the read-only query function."""
    RPC = "rpc"                  # Supabase PostgREST RPC
    ODBC = "odbc"                # Direct ODBC connection


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "y")


@dataclass(frozen=True)
class Settings:
    """Application settings."""
    # Model provider
    provider: ProviderType
    openai_api_key: str
    openai_base_url: str
    openai_model: str
    openai_assistant_id: str
    json_mode: bool
    temperature: float

    # Database
    query_backend: QueryBackend
    supabase_url: str
    supabase_service_key: str
    db_connection_string: str
    prompt_key: str

    # Limits
    max_rows: int
    request_timeout: float
    poll_interval: float
    poll_attempts: int
    pipeline_timeout: float

    # HTTP surface
    admin_token: str

    def missing_model_settings(self) -> list[str]:
        missing: list[str] = []
        if not self.openai_api_key:
            missing.append("OPENAI_API_KEY")
        if self.provider == ProviderType.ASSISTANT and not self.openai_assistant_id:
            missing.append("OPENAI_ASSISTANT_ID")
        return missing

    def missing_database_settings(self) -> list[str]:
        missing: list[str] = []
        if self.query_backend == QueryBackend.RPC:
            if not self.supabase_url:
                missing.append("SUPABASE_URL")
            if not self.supabase_service_key:
                missing.append("SUPABASE_SERVICE_ROLE_KEY")
        elif not self.db_connection_string:
            missing.append("DB_CONNECTION_STRING")
        return missing

    def validate(self, model: bool = True, database: bool = True) -> None:
        """Raise ConfigurationError listing every missing required setting."""
        missing: list[str] = []
        if model:
            missing.extend(self.missing_model_settings())
        if database:
            missing.extend(self.missing_database_settings())
        if missing:
            raise ConfigurationError(f"{', '.join(missing)} não configurada(s)")


def get_settings() -> Settings:
    """Load settings from environment variables."""
    provider_str = os.getenv("GENY_PROVIDER", "chat").lower()
    try:
        provider = ProviderType(provider_str)
    except ValueError:
        raise ConfigurationError(f"Unknown GENY_PROVIDER: {provider_str}. Use: chat, assistant")

    backend_str = os.getenv("QUERY_BACKEND", "rpc").lower()
    try:
        query_backend = QueryBackend(backend_str)
    except ValueError:
        raise ConfigurationError(f"Unknown QUERY_BACKEND: {backend_str}. Use: rpc, odbc")

    return Settings(
        # Model provider
        provider=provider,
        openai_api_key=os.getenv("OPENAI_API_KEY", ""),
        openai_base_url=os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1").rstrip("/"),
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        openai_assistant_id=os.getenv("OPENAI_ASSISTANT_ID", ""),
        json_mode=_env_flag("GENY_JSON_MODE", "1"),
        temperature=float(os.getenv("GENY_TEMPERATURE", "0.1")),

        # Database
        query_backend=query_backend,
        supabase_url=os.getenv("SUPABASE_URL", "").rstrip("/"),
        supabase_service_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY", ""),
        db_connection_string=os.getenv("DB_CONNECTION_STRING", ""),
        prompt_key=os.getenv("GENY_PROMPT_KEY", "geny_prompt"),

        # Limits
        max_rows=int(os.getenv("MAX_ROWS", "200")),
        request_timeout=float(os.getenv("REQUEST_TIMEOUT", "30")),
        poll_interval=float(os.getenv("POLL_INTERVAL", "1.0")),
        poll_attempts=int(os.getenv("POLL_ATTEMPTS", "30")),
        pipeline_timeout=float(os.getenv("GENY_PIPELINE_TIMEOUT", "60")),

        # HTTP surface
        admin_token=os.getenv("GENY_ADMIN_TOKEN", ""),
    )


# Singleton for caching settings
_settings_cache: Optional[Settings] = None


def get_cached_settings() -> Settings:
    """Get cached settings (loads once)."""
    global _settings_cache
    if _settings_cache is None:
        _settings_cache = get_settings()
    return _settings_cache


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    global _settings_cache
    _settings_cache = None
