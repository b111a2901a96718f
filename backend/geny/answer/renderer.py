"""Binding of ``{{name}}`` placeholders to query result columns.

The explanation written by the model is a template. Each placeholder names a
column alias of the generated query; its value is looked up by name (never by
position) in the result:

- single row (mapping): the formatted value, ``0`` when null or absent
- several rows (list of mappings): every row's value, joined with ", "
- bare scalar: bound only if the template has exactly one placeholder
- no result: every placeholder becomes ``0``

Placeholders that cannot be bound are left in the text as they are, so an
alias mismatch between prompt and SQL stays visible.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
import re
from typing import Any

from ..core.models import ModelResponse
from .formatting import FALLBACK_VALUE, format_value, stringify

PLACEHOLDER_RE = re.compile(r"\{\{\s*([^{}\s]+)\s*\}\}")
LIST_SEPARATOR = ", "
# Older prompts used a single positional placeholder
LEGACY_PLACEHOLDER = "valor"

_MISSING = object()


def placeholders(text: str) -> list[str]:
    """Distinct placeholder names in order of first appearance."""
    names: list[str] = []
    for match in PLACEHOLDER_RE.finditer(text or ""):
        name = match.group(1)
        if name not in names:
            names.append(name)
    return names


def _lookup(row: Mapping[str, Any], name: str) -> Any:
    if name in row:
        return row[name]
    # Postgres folds unquoted aliases to lower case
    folded = name.casefold()
    for key, value in row.items():
        if isinstance(key, str) and key.casefold() == folded:
            return value
    return _MISSING


def _bind_row(names: list[str], row: Mapping[str, Any]) -> dict[str, str]:
    bindings: dict[str, str] = {}
    for name in names:
        value = _lookup(row, name)
        if value is _MISSING and name == LEGACY_PLACEHOLDER and row:
            value = next(iter(row.values()))
        bindings[name] = FALLBACK_VALUE if value is _MISSING else format_value(value)
    return bindings


def _bind_rows(names: list[str], rows: Sequence[Any]) -> dict[str, str]:
    bindings: dict[str, str] = {}
    mappings = [row for row in rows if isinstance(row, Mapping)]

    if not mappings:
        # A list of bare values behaves like a one-column result
        if len(names) == 1:
            bindings[names[0]] = LIST_SEPARATOR.join(stringify(value) for value in rows)
        return bindings

    for name in names:
        values = [_lookup(row, name) for row in mappings]
        if all(value is _MISSING for value in values):
            continue
        bindings[name] = LIST_SEPARATOR.join(
            FALLBACK_VALUE if value is _MISSING else stringify(value) for value in values
        )
    return bindings


def bind(names: list[str], result: Any) -> dict[str, str]:
    """Map each placeholder name to its replacement text; unbound names are omitted."""
    if not names:
        return {}
    if result is None:
        return {name: FALLBACK_VALUE for name in names}
    if isinstance(result, Mapping):
        return _bind_row(names, result)
    if isinstance(result, Sequence) and not isinstance(result, (str, bytes)):
        return _bind_rows(names, result)
    if len(names) == 1:
        return {names[0]: format_value(result)}
    return {}


def render(model: ModelResponse, result: Any) -> str:
    """Produce the final answer text. Pure: no I/O, same output for same input."""
    if not model.sql:
        return model.explanation

    text = model.explanation
    bindings = bind(placeholders(text), result)
    if not bindings:
        return text

    return PLACEHOLDER_RE.sub(lambda match: bindings.get(match.group(1), match.group(0)), text)
