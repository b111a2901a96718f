"""Unit tests for model output parsing."""

from __future__ import annotations

import pytest

from geny.core.exceptions import ParseFailed
from geny.llm.parser import DEFAULT_TEMPLATE, EMPTY_OUTPUT_MESSAGE, extract_json, parse


class TestExtractJson:
    """Tests for extract_json function."""

    def test_pure_json(self):
        assert extract_json('{"sql": "SELECT 1"}') == {"sql": "SELECT 1"}

    def test_json_inside_fences(self):
        text = '```json\n{"sql": "SELECT 1", "explicacao": "ok"}\n```'
        assert extract_json(text)["explicacao"] == "ok"

    def test_no_braces_raises(self):
        with pytest.raises(ParseFailed):
            extract_json("sem json aqui")

    def test_invalid_json_raises(self):
        with pytest.raises(ParseFailed):
            extract_json("{sql: SELECT}")

    def test_json_array_raises(self):
        with pytest.raises(ParseFailed):
            extract_json("[1, 2, 3]")


class TestParse:
    """Tests for parse function."""

    def test_sql_and_explanation(self):
        model = parse('{"sql": "SELECT SUM(valor_final) AS faturamento FROM orders", '
                      '"explicacao": "O faturamento é {{faturamento}}."}')
        assert model.sql == "SELECT SUM(valor_final) AS faturamento FROM orders"
        assert model.explanation == "O faturamento é {{faturamento}}."

    def test_fenced_json(self):
        model = parse('Aqui está:\n```json\n{"sql": "SELECT 1 AS a", "explicacao": "Valor {{a}}"}\n```')
        assert model.sql == "SELECT 1 AS a"
        assert model.explanation == "Valor {{a}}"

    def test_null_sql_is_direct_answer(self):
        model = parse('{"sql": null, "explicacao": "Olá! Como posso ajudar?"}')
        assert model.sql is None
        assert model.explanation == "Olá! Como posso ajudar?"

    def test_blank_sql_is_none(self):
        model = parse('{"sql": "   ", "explicacao": "Sem consulta"}')
        assert model.sql is None

    def test_prose_is_explanation(self):
        model = parse("Olá! Como posso ajudar?")
        assert model.sql is None
        assert model.explanation == "Olá! Como posso ajudar?"

    def test_prose_with_braces_is_explanation(self):
        model = parse("O total é {{x}} reais")
        assert model.sql is None
        assert model.explanation == "O total é {{x}} reais"

    def test_english_explanation_key(self):
        model = parse('{"sql": "SELECT 1", "explanation": "Total {{a}}"}')
        assert model.explanation == "Total {{a}}"

    def test_sql_without_explanation_uses_default_template(self):
        model = parse('{"sql": "SELECT COUNT(*) FROM orders"}')
        assert model.explanation == DEFAULT_TEMPLATE

    @pytest.mark.parametrize(
        "raw",
        [
            '{"resposta": "algo"}',
            '{"sql": null, "explicacao": ""}',
            '```json\n{"sql": "  ", "explicacao": null}\n```',
        ],
    )
    def test_object_without_fields_uses_fixed_sentence(self, raw):
        """Raw JSON is never shown as the answer."""
        model = parse(raw)
        assert model.sql is None
        assert model.explanation == EMPTY_OUTPUT_MESSAGE

    @pytest.mark.parametrize("raw", ["", "   ", None])
    def test_empty_output(self, raw):
        model = parse(raw)
        assert model.sql is None
        assert model.explanation == EMPTY_OUTPUT_MESSAGE

    @pytest.mark.parametrize(
        "raw",
        [
            "",
            "texto",
            "{}",
            '{"sql": null}',
            '{"sql": "SELECT 1"}',
            '{"explicacao": ""}',
            "{quebrado",
        ],
    )
    def test_never_empty(self, raw):
        model = parse(raw)
        assert model.sql or model.explanation
