"""Tests for turning raw provider replies into artifacts."""

from __future__ import annotations

import json

import pytest

from snapsolve.domain.models import ErrorKind, Screenshot
from snapsolve.providers.base import ProviderError
from snapsolve.providers.parsing import (
    extract_json_object,
    parse_debug_result,
    parse_problem,
    parse_solution,
)


class TestExtractJsonObject:
    def test_plain_json(self) -> None:
        assert extract_json_object('{"a": 1}') == {"a": 1}

    def test_markdown_fence(self) -> None:
        raw = 'Here you go:\n```json\n{"title": "X"}\n```\nGood luck!'
        assert extract_json_object(raw) == {"title": "X"}

    def test_surrounding_prose(self) -> None:
        raw = 'Sure. {"title": "X", "n": [1, 2]} Hope that helps.'
        assert extract_json_object(raw) == {"title": "X", "n": [1, 2]}

    def test_lone_backslash_repaired(self) -> None:
        raw = '{"code": "print(\'a\\d\')"}'
        assert extract_json_object(raw)["code"] == "print('a\\d')"

    def test_fenced_snippet_inside_json_value_kept(self) -> None:
        explanation = "Run it like ```python\nprint(1)\n``` in a shell."
        raw = json.dumps({"language": "python", "code": "print(1)", "explanation": explanation})
        assert extract_json_object(raw)["explanation"] == explanation

        solution = parse_solution(raw)
        assert solution.code == "print(1)"
        assert solution.explanation == explanation

    def test_fenced_reply_with_nested_fence_in_code(self) -> None:
        inner = json.dumps({"code": "s = '```'\nprint(s)"})
        raw = f"Answer:\n```json\n{inner}\n```"
        assert extract_json_object(raw)["code"] == "s = '```'\nprint(s)"

    @pytest.mark.parametrize("raw", ["", "   ", "no json here", "[1, 2, 3]"])
    def test_unreadable_reply_is_malformed(self, raw: str) -> None:
        with pytest.raises(ProviderError) as exc_info:
            extract_json_object(raw, provider="openai")
        assert exc_info.value.kind is ErrorKind.MALFORMED_RESPONSE
        assert exc_info.value.provider == "openai"


class TestParseProblem:
    def test_full_problem(self) -> None:
        raw = """{
            "title": "Sum Two Numbers",
            "description": "Return a + b.",
            "constraints": {"input_format": "a b", "limits": ["1 <= a, b <= 100"]},
            "examples": [{"input": "1 2", "output": "3"}]
        }"""
        problem = parse_problem(raw)
        assert problem.title == "Sum Two Numbers"
        assert problem.constraints.limits == ["1 <= a, b <= 100"]
        assert problem.examples[0].output == "3"
        assert problem.raw_response == raw

    def test_non_object_constraints_dropped(self) -> None:
        problem = parse_problem('{"title": "T", "description": "D", "constraints": "n < 10"}')
        assert problem.constraints is None

    def test_numeric_example_fields_coerced(self) -> None:
        problem = parse_problem(json.dumps({
            "title": "T",
            "description": "D",
            "examples": [{"input": "1 2", "output": 3, "explanation": 42}],
        }))
        assert problem.examples[0].output == "3"
        assert problem.examples[0].explanation == "42"

    def test_string_limits_wrapped_in_list(self) -> None:
        problem = parse_problem(json.dumps({
            "title": "T",
            "description": "D",
            "constraints": {"limits": "1 <= n <= 10", "input_format": None},
        }))
        assert problem.constraints.limits == ["1 <= n <= 10"]
        assert problem.constraints.input_format is None

    def test_non_dict_examples_dropped(self) -> None:
        problem = parse_problem(json.dumps({
            "title": "T",
            "description": "D",
            "examples": ["1 2 -> 3", {"input": [1, 2], "output": "3"}, None],
        }))
        assert len(problem.examples) == 1
        assert problem.examples[0].input == "1\n2"

    def test_single_example_object_accepted(self) -> None:
        problem = parse_problem(json.dumps({
            "title": "T",
            "description": "D",
            "examples": {"input": "5", "output": "5"},
        }))
        assert [e.output for e in problem.examples] == ["5"]

    def test_missing_title_is_malformed(self) -> None:
        with pytest.raises(ProviderError) as exc_info:
            parse_problem('{"description": "D"}')
        assert exc_info.value.kind is ErrorKind.MALFORMED_RESPONSE


class TestParseSolution:
    def test_default_language(self) -> None:
        solution = parse_solution('{"code": "x = 1"}', default_language="go")
        assert solution.language == "go"

    def test_reply_language_wins(self) -> None:
        solution = parse_solution('{"language": "cpp", "code": "int main() {}"}')
        assert solution.language == "cpp"

    def test_non_string_complexity_coerced(self) -> None:
        solution = parse_solution(json.dumps({"code": "x = 1", "time_complexity": 1}))
        assert solution.time_complexity == "1"
        assert solution.space_complexity is None

    def test_empty_code_is_malformed(self) -> None:
        with pytest.raises(ProviderError) as exc_info:
            parse_solution('{"language": "python", "code": ""}')
        assert exc_info.value.kind is ErrorKind.MALFORMED_RESPONSE


class TestParseDebugResult:
    def test_language_falls_back_to_previous(self, sample_solution, png_bytes) -> None:
        previous = sample_solution.model_copy(update={"language": "java"})
        result = parse_debug_result(
            '{"code": "class A {}", "changes": "Rewrote it.", "issues": "Off by one"}',
            previous,
            [Screenshot(index=4, data=png_bytes)],
        )
        assert result.solution.language == "java"
        assert result.issues == ["Off by one"]
        assert result.screenshot_indices == [4]
        assert result.changes == "Rewrote it."

    def test_missing_code_is_malformed(self, sample_solution) -> None:
        with pytest.raises(ProviderError):
            parse_debug_result('{"changes": "none"}', sample_solution, [])
