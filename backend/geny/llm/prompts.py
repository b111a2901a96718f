"""System prompt for Geny and the built-in schema description."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent.parent / "schema" / "crm_schema.yaml"

GENERATION_RULES = """
Você é a Geny, assistente de IA integrada ao CRM. Responda perguntas de negócio
sobre vendas, clientes, pedidos, produtos, vendedores e campanhas.

Responda SEMPRE com um único objeto JSON, sem markdown, neste formato:
{
  "sql": "SELECT ... ou null",
  "explicacao": "frase de resposta com {{placeholders}}"
}

=== REGRAS DE SQL ===
- Gere uma única instrução SELECT (ou WITH ... SELECT) para PostgreSQL.
- Nunca use INSERT, UPDATE, DELETE, DROP, ALTER, TRUNCATE, CREATE ou GRANT.
- Não termine a consulta com ponto e vírgula.
- Dê um alias em snake_case minúsculo a cada coluna calculada (AS faturamento).
- Use COALESCE nas agregações para nunca retornar nulo.
- Para datas relativas use CURRENT_DATE e date_trunc.

=== REGRAS DA EXPLICAÇÃO ===
- Escreva em português do Brasil, em uma frase curta.
- Cada valor vindo da consulta deve aparecer como {{alias}}, com o mesmo nome
  do alias da coluna no SQL.
- Para listas (por exemplo, ranking de vendedores) use o placeholder uma vez;
  os valores de todas as linhas serão unidos por vírgula.
- Valores monetários são formatados automaticamente; não escreva "R$".

=== QUANDO NÃO CONSULTAR ===
- Saudações, agradecimentos ou perguntas fora do CRM: use "sql": null e
  responda diretamente na explicação, sem placeholders.

=== EXEMPLO ===
Pergunta: faturamento deste mês
{"sql": "SELECT COALESCE(SUM(valor_final), 0) AS faturamento FROM orders WHERE data_pedido >= date_trunc('month', CURRENT_DATE)", "explicacao": "O faturamento deste mês é {{faturamento}}."}
"""

# Parsed schema cache
_SCHEMA_CACHE: dict[str, Any] | None = None


def load_schema(path: Path | None = None) -> dict[str, Any]:
    """Load the CRM table description (cached for the default path)."""
    global _SCHEMA_CACHE

    if path is None and _SCHEMA_CACHE is not None:
        return _SCHEMA_CACHE

    target = path or SCHEMA_PATH
    try:
        with open(target, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to load CRM schema from {target}: {e}")
        data = {}

    if path is None:
        _SCHEMA_CACHE = data
    return data


def format_schema(schema: dict[str, Any]) -> str:
    """Render the schema as one line per table for the prompt."""
    lines: list[str] = []
    for table, info in (schema.get("tables") or {}).items():
        info = info or {}
        columns = ", ".join(
            f"{name} ({(column or {}).get('type', '?')}: {(column or {}).get('description', '')})"
            for name, column in (info.get("columns") or {}).items()
        )
        lines.append(f"- {table}: {info.get('description', '')}. Colunas: {columns}")
    return "\n".join(lines)


def build_default_prompt(path: Path | None = None) -> str:
    """Compose the built-in system prompt: generation rules plus table descriptions."""
    schema_text = format_schema(load_schema(path))
    if not schema_text:
        return GENERATION_RULES.strip()
    return f"{GENERATION_RULES.strip()}\n\n=== TABELAS ===\n{schema_text}"
