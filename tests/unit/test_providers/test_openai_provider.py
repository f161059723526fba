"""Tests for the OpenAI adapter with a mocked SDK client."""

from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from snapsolve.domain.models import ErrorKind
from snapsolve.providers.base import ProviderError
from snapsolve.providers.openai import OpenAIProvider

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _status_error(cls, status: int, code: str | None = None):
    body = {"code": code} if code else None
    return cls("boom", response=httpx.Response(status, request=REQUEST), body=body)


def _response(content: str | None):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.fixture
def client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def provider(client: MagicMock) -> OpenAIProvider:
    provider = OpenAIProvider(api_key="sk-test", model="gpt-4o-mini", language="python")
    provider._client = client
    return provider


class TestOpenAIRequests:
    @pytest.mark.asyncio
    async def test_extract_sends_images_as_data_urls(self, provider, client, sample_screenshot) -> None:
        client.chat.completions.create = AsyncMock(
            return_value=_response(json.dumps({"title": "Two Sum", "description": "Find pairs."}))
        )
        problem = await provider.extract_problem([sample_screenshot])

        assert problem.title == "Two Sum"
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["response_format"] == {"type": "json_object"}
        user_content = kwargs["messages"][1]["content"]
        assert user_content[0]["image_url"]["url"].startswith("data:image/png;base64,")
        assert user_content[-1]["type"] == "text"

    @pytest.mark.asyncio
    async def test_no_choices_is_malformed(self, provider, client, sample_problem) -> None:
        client.chat.completions.create = AsyncMock(return_value=SimpleNamespace(choices=[]))
        with pytest.raises(ProviderError) as exc_info:
            await provider.generate_solution(sample_problem)
        assert exc_info.value.kind is ErrorKind.MALFORMED_RESPONSE

    @pytest.mark.asyncio
    async def test_connection_error_retried_once(self, provider, client, sample_problem) -> None:
        client.chat.completions.create = AsyncMock(side_effect=[
            openai.APIConnectionError(request=REQUEST),
            _response('{"language": "python", "code": "print(1)"}'),
        ])
        solution = await provider.generate_solution(sample_problem)
        assert solution.code == "print(1)"
        assert client.chat.completions.create.await_count == 2

    @pytest.mark.asyncio
    async def test_timeout_not_retried(self, provider, client, sample_problem) -> None:
        client.chat.completions.create = AsyncMock(side_effect=openai.APITimeoutError(request=REQUEST))
        with pytest.raises(ProviderError) as exc_info:
            await provider.generate_solution(sample_problem)
        assert exc_info.value.kind is ErrorKind.TIMEOUT
        assert client.chat.completions.create.await_count == 1

    @pytest.mark.asyncio
    async def test_health_check_failure(self, provider, client) -> None:
        client.models.list = AsyncMock(side_effect=openai.APIConnectionError(request=REQUEST))
        assert await provider.health_check() is False

    @pytest.mark.asyncio
    async def test_aclose_closes_client(self, provider, client) -> None:
        client.close = AsyncMock()
        await provider.aclose()
        client.close.assert_awaited_once()
        assert provider._client is None


class TestOpenAIErrorClassification:
    @pytest.mark.parametrize(
        ("error", "kind"),
        [
            (_status_error(openai.AuthenticationError, 401), ErrorKind.CREDENTIAL_INVALID),
            (_status_error(openai.PermissionDeniedError, 403), ErrorKind.CREDENTIAL_INVALID),
            (_status_error(openai.RateLimitError, 429, "insufficient_quota"), ErrorKind.QUOTA_EXCEEDED),
            (_status_error(openai.RateLimitError, 429, "rate_limit_exceeded"), ErrorKind.RATE_LIMITED),
            (_status_error(openai.APIStatusError, 402), ErrorKind.QUOTA_EXCEEDED),
            (_status_error(openai.InternalServerError, 500), ErrorKind.UNKNOWN),
            (openai.APITimeoutError(request=REQUEST), ErrorKind.TIMEOUT),
            (openai.APIConnectionError(request=REQUEST), ErrorKind.NETWORK_UNAVAILABLE),
        ],
    )
    def test_classify(self, error, kind) -> None:
        provider = OpenAIProvider(api_key="sk-test")
        assert provider._classify_error(error) is kind
