"""Extraction of the structured ``{sql, explicacao}`` object from raw model text.

The parser is deliberately permissive: pure JSON, JSON wrapped in markdown
fences, and plain prose are all accepted. Output that does not contain a JSON
object is treated as a direct answer with no query; an object with neither
field yields a fixed apology rather than raw JSON.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from ..core.exceptions import ParseFailed
from ..core.models import ModelResponse

logger = logging.getLogger(__name__)

EMPTY_OUTPUT_MESSAGE = "Não consegui gerar uma consulta para essa pergunta."
DEFAULT_TEMPLATE = "Resultado: {{valor}}"

EXPLANATION_KEYS = ("explicacao", "explanation")


def extract_json(text: str) -> dict[str, Any]:
    """Parse the outermost ``{...}`` substring of the text.

    Raises:
        ParseFailed: If no JSON object can be decoded
    """
    start = text.find("{")
    end = text.rfind("}")

    if start == -1 or end == -1 or end <= start:
        raise ParseFailed("No JSON object found in model output")

    snippet = text[start : end + 1]
    try:
        result = json.loads(snippet)
    except json.JSONDecodeError as e:
        logger.debug(f"JSON parse failed at position {e.pos}: {e.msg}")
        raise ParseFailed(f"Invalid JSON in model output: {e.msg}") from e

    if not isinstance(result, dict):
        raise ParseFailed(f"Expected a JSON object, got {type(result).__name__}")

    logger.debug(f"Extracted JSON with keys: {list(result.keys())}")
    return result


def _text_field(data: dict[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        text = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)
        if text.strip():
            return text.strip()
    return None


def parse(raw: str) -> ModelResponse:
    """Turn raw model output into a ModelResponse; never raises."""
    text = (raw or "").strip()
    if not text:
        logger.warning("Empty model output")
        return ModelResponse(explanation=EMPTY_OUTPUT_MESSAGE)

    try:
        data = extract_json(text)
    except ParseFailed as e:
        logger.warning(f"Treating model output as plain explanation: {e}")
        return ModelResponse(explanation=text)

    sql = _text_field(data, "sql")
    explanation = _text_field(data, *EXPLANATION_KEYS)

    if sql is None and explanation is None:
        logger.warning("Model JSON has neither sql nor explanation")
        return ModelResponse(explanation=EMPTY_OUTPUT_MESSAGE)

    if sql is not None and explanation is None:
        explanation = DEFAULT_TEMPLATE

    return ModelResponse(sql=sql, explanation=explanation or "")
