"""Turn raw provider replies into normalized artifacts.

Replies are expected to be a single JSON object, but models regularly
wrap it in markdown fences or prose, so the object is located first.
Anything that still cannot be read as the expected artifact raises a
MALFORMED_RESPONSE ProviderError rather than returning an empty result.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterator, Sequence

from pydantic import ValidationError

from snapsolve.domain.models import (
    DebugResult,
    ErrorKind,
    ProblemStatement,
    Screenshot,
    Solution,
)
from snapsolve.providers.base import ProviderError

logger = logging.getLogger(__name__)


def extract_json_object(raw_response: str, provider: str = "") -> dict[str, Any]:
    """Locate and decode the JSON object in a raw model reply.

    A reply that is already a JSON object is taken as is, so fenced
    snippets inside its string values are left alone. Fence stripping
    and brace matching only apply to replies that do not parse whole.
    """
    if not raw_response or not raw_response.strip():
        raise ProviderError(
            "Provider returned an empty response",
            kind=ErrorKind.MALFORMED_RESPONSE,
            provider=provider,
            raw_response=raw_response or "",
        )

    for candidate in _json_candidates(raw_response.strip()):
        data = _loads(candidate)
        if isinstance(data, dict):
            return data

    raise ProviderError(
        "Failed to parse provider response as a JSON object",
        kind=ErrorKind.MALFORMED_RESPONSE,
        provider=provider,
        raw_response=raw_response,
    )


def _json_candidates(text: str) -> Iterator[str]:
    yield text

    # Remove markdown code block if present
    match = re.search(r"```(?:json)?\s*(.*?)```", text, re.DOTALL)
    if match:
        fenced = match.group(1).strip()
        yield fenced
        brace_match = re.search(r"\{.*\}", fenced, re.DOTALL)
        if brace_match:
            yield brace_match.group(0)

    brace_match = re.search(r"\{.*\}", text, re.DOTALL)
    if brace_match:
        yield brace_match.group(0)


def _loads(json_str: str) -> Any:
    try:
        return json.loads(json_str)
    except json.JSONDecodeError:
        pass
    # Models sometimes emit lone backslashes inside code strings
    fixed = re.sub(r'\\(?!["\\/bfnrtu])', r"\\\\", json_str)
    try:
        return json.loads(fixed)
    except json.JSONDecodeError:
        return None


def parse_problem(raw_response: str, provider: str = "") -> ProblemStatement:
    data = extract_json_object(raw_response, provider)
    try:
        return ProblemStatement(
            title=_text(data.get("title")),
            description=_text(data.get("description")),
            constraints=_constraints(data.get("constraints")),
            examples=_examples(data.get("examples")),
            raw_response=raw_response,
        )
    except ValidationError as e:
        raise _malformed("problem statement", e, provider, raw_response) from e


def _constraints(value: Any) -> dict[str, Any] | None:
    if not isinstance(value, dict):
        return None
    limits = value.get("limits")
    if limits is None:
        limits = []
    elif not isinstance(limits, list):
        limits = [limits]
    return {
        "input_format": _optional_text(value.get("input_format")),
        "output_format": _optional_text(value.get("output_format")),
        "limits": [_text(limit) for limit in limits],
    }


def _examples(value: Any) -> list[dict[str, Any]]:
    if isinstance(value, dict):
        value = [value]
    if not isinstance(value, list):
        return []
    return [
        {
            "input": _text(example.get("input")),
            "output": _text(example.get("output")),
            "explanation": _optional_text(example.get("explanation")),
        }
        for example in value
        if isinstance(example, dict)
    ]


def parse_solution(
    raw_response: str,
    provider: str = "",
    default_language: str = "python",
) -> Solution:
    data = extract_json_object(raw_response, provider)
    try:
        return _build_solution(data, raw_response, default_language)
    except ValidationError as e:
        raise _malformed("solution", e, provider, raw_response) from e


def parse_debug_result(
    raw_response: str,
    previous: Solution,
    screenshots: Sequence[Screenshot],
    provider: str = "",
) -> DebugResult:
    """Build a DebugResult; a reply without a language keeps the previous one."""
    data = extract_json_object(raw_response, provider)
    issues = data.get("issues") or []
    if not isinstance(issues, list):
        issues = [issues]
    try:
        solution = _build_solution(data, raw_response, previous.language)
        return DebugResult(
            solution=solution,
            changes=_text(data.get("changes")),
            issues=[_text(issue) for issue in issues],
            screenshot_indices=[s.index for s in screenshots],
            raw_response=raw_response,
        )
    except ValidationError as e:
        raise _malformed("debug result", e, provider, raw_response) from e


def _build_solution(data: dict[str, Any], raw_response: str, default_language: str) -> Solution:
    return Solution(
        language=_text(data.get("language")).strip() or default_language,
        code=_text(data.get("code")),
        explanation=_text(data.get("explanation")),
        time_complexity=_optional_text(data.get("time_complexity")),
        space_complexity=_optional_text(data.get("space_complexity")),
        raw_response=raw_response,
    )


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return "\n".join(str(v) for v in value)
    return str(value)


def _optional_text(value: Any) -> str | None:
    return None if value is None else _text(value)


def _malformed(what: str, error: ValidationError, provider: str, raw_response: str) -> ProviderError:
    logger.debug("Invalid %s from %s: %s", what, provider or "provider", error)
    return ProviderError(
        f"Provider response is not a valid {what}: {error.error_count()} validation error(s)",
        kind=ErrorKind.MALFORMED_RESPONSE,
        provider=provider,
        raw_response=raw_response,
    )
