"""OpenAI-compatible provider implementation.

Works with OpenAI, OpenRouter, and any OpenAI-compatible API
by setting a custom base_url.
"""

from __future__ import annotations

import logging

import openai
from openai import AsyncOpenAI

from snapsolve.domain.models import ErrorKind
from snapsolve.providers.base import ProviderError
from snapsolve.providers.chat import ChatProvider

logger = logging.getLogger(__name__)


class OpenAIProvider(ChatProvider):
    """Provider using OpenAI's chat completions API.

    Also works with OpenRouter and other OpenAI-compatible endpoints.
    """

    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        base_url: str | None = None,
        json_mode: bool = True,
        **kwargs,
    ) -> None:
        super().__init__(model=model, **kwargs)
        self._api_key = api_key
        self._base_url = base_url
        self._json_mode = json_mode
        self._client: AsyncOpenAI | None = None

    def _ensure_client(self) -> AsyncOpenAI:
        """Lazily initialize the OpenAI async client."""
        if self._client is not None:
            return self._client
        # Retries are decided here, not by the SDK's backoff loop
        kwargs = {"api_key": self._api_key, "max_retries": 0}
        if self._base_url:
            kwargs["base_url"] = self._base_url
        self._client = AsyncOpenAI(**kwargs)
        logger.info("Initialized OpenAI client (model=%s, base_url=%s)", self._model, self._base_url)
        return self._client

    async def _complete(self, prompt: str, images: list[str]) -> str:
        client = self._ensure_client()
        content: list[dict] = [
            {
                "type": "image_url",
                "image_url": {"url": f"data:image/png;base64,{b64}", "detail": "high"},
            }
            for b64 in images
        ]
        content.append({"type": "text", "text": prompt})

        kwargs = {}
        if self._json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = await client.chat.completions.create(
            model=self._model,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
            messages=[
                {"role": "system", "content": self._system_prompt},
                {"role": "user", "content": content},
            ],
            **kwargs,
        )
        if not response.choices:
            raise ProviderError(
                "OpenAI response contained no choices",
                kind=ErrorKind.MALFORMED_RESPONSE,
                provider=self.name,
            )
        raw_text = response.choices[0].message.content or ""
        logger.debug("OpenAI raw response: %s", raw_text[:200])
        return raw_text

    def _classify_error(self, error: Exception) -> ErrorKind:
        if isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError)):
            return ErrorKind.CREDENTIAL_INVALID
        if isinstance(error, openai.RateLimitError):
            if error.code == "insufficient_quota":
                return ErrorKind.QUOTA_EXCEEDED
            return ErrorKind.RATE_LIMITED
        if isinstance(error, openai.APITimeoutError):
            return ErrorKind.TIMEOUT
        if isinstance(error, openai.APIConnectionError):
            return ErrorKind.NETWORK_UNAVAILABLE
        if isinstance(error, openai.APIStatusError) and error.status_code == 402:
            return ErrorKind.QUOTA_EXCEEDED
        return ErrorKind.UNKNOWN

    def _is_transient(self, error: Exception) -> bool:
        return isinstance(error, openai.APIConnectionError) and not isinstance(
            error, openai.APITimeoutError
        )

    async def health_check(self) -> bool:
        """Check if the API is reachable."""
        try:
            await self._ensure_client().models.list()
            return True
        except Exception as e:
            logger.warning("Health check failed: %s", e)
            return False

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
