"""Anthropic Claude provider implementation.

Uses the Anthropic Python SDK to send screenshots to Claude models with
vision capability.
"""

from __future__ import annotations

import logging

import anthropic
from anthropic import AsyncAnthropic

from snapsolve.domain.models import ErrorKind
from snapsolve.providers.base import ProviderError
from snapsolve.providers.chat import ChatProvider

logger = logging.getLogger(__name__)


class AnthropicProvider(ChatProvider):
    """Provider using Anthropic's Claude messages API.

    Example usage::

        provider = AnthropicProvider(
            api_key="sk-ant-...",
            model="claude-sonnet-4-20250514",
        )
        problem = await provider.extract_problem(screenshots)
    """

    name = "anthropic"

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-20250514",
        base_url: str | None = None,
        **kwargs,
    ) -> None:
        super().__init__(model=model, **kwargs)
        self._api_key = api_key
        self._base_url = base_url
        self._client: AsyncAnthropic | None = None

    def _ensure_client(self) -> AsyncAnthropic:
        """Lazily initialize the Anthropic async client."""
        if self._client is not None:
            return self._client
        kwargs = {"api_key": self._api_key, "max_retries": 0}
        if self._base_url:
            kwargs["base_url"] = self._base_url
        self._client = AsyncAnthropic(**kwargs)
        logger.info("Initialized Anthropic client (model=%s)", self._model)
        return self._client

    async def _complete(self, prompt: str, images: list[str]) -> str:
        client = self._ensure_client()
        content: list[dict] = [
            {
                "type": "image",
                "source": {"type": "base64", "media_type": "image/png", "data": b64},
            }
            for b64 in images
        ]
        content.append({"type": "text", "text": prompt})

        response = await client.messages.create(
            model=self._model,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
            system=self._system_prompt,
            messages=[{"role": "user", "content": content}],
        )
        texts = [block.text for block in response.content if block.type == "text"]
        if not texts:
            raise ProviderError(
                "Anthropic response contained no text content",
                kind=ErrorKind.MALFORMED_RESPONSE,
                provider=self.name,
            )
        raw_text = "".join(texts)
        logger.debug("Anthropic raw response: %s", raw_text[:200])
        return raw_text

    def _classify_error(self, error: Exception) -> ErrorKind:
        if isinstance(error, (anthropic.AuthenticationError, anthropic.PermissionDeniedError)):
            return ErrorKind.CREDENTIAL_INVALID
        if isinstance(error, anthropic.RateLimitError):
            return ErrorKind.RATE_LIMITED
        if isinstance(error, anthropic.APITimeoutError):
            return ErrorKind.TIMEOUT
        if isinstance(error, anthropic.APIConnectionError):
            return ErrorKind.NETWORK_UNAVAILABLE
        if isinstance(error, anthropic.APIStatusError):
            if "credit balance" in error.message.lower() or error.status_code == 402:
                return ErrorKind.QUOTA_EXCEEDED
            if error.status_code == 529:
                # Overloaded
                return ErrorKind.RATE_LIMITED
        return ErrorKind.UNKNOWN

    def _is_transient(self, error: Exception) -> bool:
        return isinstance(error, anthropic.APIConnectionError) and not isinstance(
            error, anthropic.APITimeoutError
        )

    async def health_check(self) -> bool:
        """Check the key with a one-token text-only request."""
        try:
            await self._ensure_client().messages.create(
                model=self._model,
                max_tokens=1,
                messages=[{"role": "user", "content": "ping"}],
            )
            return True
        except Exception as e:
            logger.warning("Health check failed: %s", e)
            return False

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
