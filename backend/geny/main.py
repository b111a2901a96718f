from __future__ import annotations

import logging
import os
import re
import threading
from typing import Any

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import httpx
from pydantic import BaseModel

from .core import (
    ChatQuestion,
    ChatRequest,
    ChatResponse,
    ConfigUnavailable,
    ConfigurationError,
    PromptResponse,
    PromptUpdate,
    Settings,
    ValidationError,
    get_cached_settings,
)
from .pipeline import UNEXPECTED_ERROR_MESSAGE, build_pipeline
from .store import build_prompt_store

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Geny CRM Assistant", version="0.1.0")

# CORS configuration
cors_origins = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type", "x-admin-token"],
)


# --- Shared HTTP client ---

_http_lock = threading.Lock()
_http_client: httpx.Client | None = None


def get_http_client() -> httpx.Client:
    """Shared connection pool for the model provider and Supabase."""
    global _http_client
    with _http_lock:
        if _http_client is None:
            _http_client = httpx.Client()
        return _http_client


def get_app_settings() -> Settings:
    return get_cached_settings()


@app.on_event("shutdown")
def _close_http_client() -> None:
    global _http_client
    with _http_lock:
        if _http_client is not None:
            _http_client.close()
            _http_client = None


@app.exception_handler(ConfigurationError)
async def _configuration_error(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error(f"Configuration error: {exc}")
    return JSONResponse(
        status_code=500,
        content={"response": UNEXPECTED_ERROR_MESSAGE, "error": str(exc)},
    )


# --- Structured Error Response ---

class ErrorDetail(BaseModel):
    error_code: str
    message: str
    details: dict[str, Any] | None = None


def raise_error(status_code: int, error_code: str, message: str, details: dict | None = None):
    """Raise HTTPException with structured error detail."""
    raise HTTPException(
        status_code=status_code,
        detail=ErrorDetail(error_code=error_code, message=message, details=details).model_dump()
    )


# --- Input Sanitization ---

MAX_MESSAGE_LENGTH = 2000

# Prompt-injection phrasings in English and Portuguese; logged, never blocked
INJECTION_RE = re.compile(
    r"ignore\s+(previous|all|above)\s+instructions?"
    r"|ignore\s+(as\s+)?instru[çc][õo]es\s+(anteriores|acima)"
    r"|disregard\s+(previous|all|above)"
    r"|esque[çc]a\s+(tudo|as\s+regras)"
    r"|forget\s+(everything|all)"
    r"|novas?\s+instru[çc][õo]es?:"
    r"|new\s+instructions?:"
    r"|\b(system|assistant)\s*:"
    r"|\b(drop|delete|truncate|alter|insert|update)\s+(table|from|into)\b",
    re.IGNORECASE,
)


def sanitize_user_input(message: str) -> str:
    """Cap the question length and drop markdown fences before it reaches the model.

    The SQL guard and the read-only database function do the actual filtering.
    """
    text = (message or "")[:MAX_MESSAGE_LENGTH].replace("```", "")

    match = INJECTION_RE.search(text)
    if match:
        logger.warning(f"Question looks like a prompt injection attempt: {match.group(0)!r}")

    return text.strip()


def _require_admin(settings: Settings, token: str | None) -> None:
    if settings.admin_token and token != settings.admin_token:
        raise_error(401, "unauthorized", "Invalid or missing admin token")


# --- API Endpoints ---

@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/geny-chat", response_model=ChatResponse, response_model_exclude_none=True)
@app.post("/functions/v1/geny-chat", response_model=ChatResponse, response_model_exclude_none=True)
def geny_chat(
    request: ChatRequest,
    settings: Settings = Depends(get_app_settings),
    http: httpx.Client = Depends(get_http_client),
):
    """
    Answer a business question about the CRM.

    Handled outcomes, including internal failures, return 200 with a
    displayable ``response``. Only a bad request body (4xx) or missing
    credentials (500) use another status.
    """
    message = sanitize_user_input(request.message)
    if not message:
        raise_error(400, "empty_message", "Message is required")

    # Missing credentials are answered with 500 by the ConfigurationError handler
    settings.validate()

    logger.info(f"Chat request: {message[:100]}...")

    pipeline = build_pipeline(settings, http)
    result = pipeline.answer(ChatQuestion(message))

    logger.info(f"Chat turn finished in state {result.state.value}")

    return ChatResponse(
        response=result.response,
        ai_response=result.ai_response,
        query_result=result.query_result,
        error=result.error,
    )


# --- Admin Prompt Endpoints ---

@app.get("/geny-prompt", response_model=PromptResponse)
def read_prompt(
    settings: Settings = Depends(get_app_settings),
    http: httpx.Client = Depends(get_http_client),
    x_admin_token: str | None = Header(default=None),
) -> PromptResponse:
    """Current system prompt and whether it comes from configuration or the built-in default."""
    _require_admin(settings, x_admin_token)
    try:
        settings.validate(model=False)
    except ConfigurationError as exc:
        raise_error(500, "configuration_error", str(exc))

    prompt = build_prompt_store(settings, http).load()
    return PromptResponse(prompt=prompt.text, source=prompt.source)


@app.put("/geny-prompt", response_model=PromptResponse)
def save_prompt(
    payload: PromptUpdate,
    settings: Settings = Depends(get_app_settings),
    http: httpx.Client = Depends(get_http_client),
    x_admin_token: str | None = Header(default=None),
) -> PromptResponse:
    """Overwrite the system prompt; takes effect on the next chat turn."""
    _require_admin(settings, x_admin_token)
    try:
        settings.validate(model=False)
    except ConfigurationError as exc:
        raise_error(500, "configuration_error", str(exc))

    try:
        prompt = build_prompt_store(settings, http).save(payload.prompt)
    except ValidationError as exc:
        raise_error(400, "invalid_prompt", str(exc))
    except ConfigUnavailable as exc:
        logger.error(f"Prompt save failed: {exc}")
        raise_error(502, "config_unavailable", str(exc))

    return PromptResponse(prompt=prompt.text, source=prompt.source)
