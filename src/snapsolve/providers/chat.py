"""Shared behaviour for chat-completion style vision providers.

Concrete vendor adapters only need to send one prompt plus images and
return the reply text, and to classify their SDK's exceptions. Prompt
construction, screenshot encoding, the single transient retry and
response parsing live here.
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from typing import Sequence

from snapsolve.domain.models import (
    DebugResult,
    ErrorKind,
    ProblemStatement,
    Screenshot,
    Solution,
)
from snapsolve.providers.base import InvalidInput, LLMProvider, ProviderError
from snapsolve.providers.parsing import parse_debug_result, parse_problem, parse_solution
from snapsolve.providers.prompts import (
    DEBUG_PROMPT,
    DEFAULT_SYSTEM_PROMPT,
    EXTRACT_PROMPT,
    SOLVE_PROMPT,
)
from snapsolve.utils.imaging import prepare_for_mllm

logger = logging.getLogger(__name__)


class ChatProvider(LLMProvider):
    """Base class for providers that speak a single-turn chat API."""

    def __init__(
        self,
        model: str,
        language: str = "python",
        system_prompt: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.2,
        image_max_dimension: int = 1568,
    ) -> None:
        super().__init__(model=model)
        self._language = language
        self._system_prompt = system_prompt or DEFAULT_SYSTEM_PROMPT
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._image_max_dimension = image_max_dimension

    async def extract_problem(self, screenshots: Sequence[Screenshot]) -> ProblemStatement:
        self._require_screenshots(screenshots, "extract_problem")
        images = self._encode_screenshots(screenshots)
        raw_text = await self._complete_with_retry(EXTRACT_PROMPT, images)
        return parse_problem(raw_text, provider=self.name)

    async def generate_solution(self, problem: ProblemStatement) -> Solution:
        prompt = SOLVE_PROMPT.format(
            language=self._language,
            problem=problem.model_dump_json(indent=2, exclude={"artifact_type", "raw_response"}),
        )
        raw_text = await self._complete_with_retry(prompt, [])
        return parse_solution(raw_text, provider=self.name, default_language=self._language)

    async def debug_solution(
        self,
        solution: Solution,
        screenshots: Sequence[Screenshot],
    ) -> DebugResult:
        self._require_screenshots(screenshots, "debug_solution")
        images = self._encode_screenshots(screenshots)
        prompt = DEBUG_PROMPT.format(language=solution.language, code=solution.code)
        raw_text = await self._complete_with_retry(prompt, images)
        return parse_debug_result(raw_text, solution, screenshots, provider=self.name)

    @abstractmethod
    async def _complete(self, prompt: str, images: list[str]) -> str:
        """Send one user turn (text + base64 PNG images) and return the reply text."""
        ...

    @abstractmethod
    def _classify_error(self, error: Exception) -> ErrorKind:
        """Map a vendor SDK exception onto an ErrorKind."""
        ...

    def _is_transient(self, error: Exception) -> bool:
        """Whether an error is a network blip worth one immediate retry."""
        return False

    async def _complete_with_retry(self, prompt: str, images: list[str]) -> str:
        try:
            return await self._complete(prompt, images)
        except ProviderError:
            raise
        except Exception as e:
            if not self._is_transient(e):
                raise self._wrap_error(e) from e
            logger.warning("Transient %s error, retrying once: %s", self.name, e)
        try:
            return await self._complete(prompt, images)
        except ProviderError:
            raise
        except Exception as e:
            raise self._wrap_error(e) from e

    def _wrap_error(self, error: Exception) -> ProviderError:
        kind = self._classify_error(error)
        logger.error("%s request failed (%s): %s", self.name, kind.value, error)
        return ProviderError(
            f"{self.name} request failed: {kind.value.replace('_', ' ')}",
            kind=kind,
            provider=self.name,
            raw_response=str(error),
        )

    def _encode_screenshots(self, screenshots: Sequence[Screenshot]) -> list[str]:
        images = []
        for screenshot in screenshots:
            try:
                images.append(prepare_for_mllm(screenshot.data, self._image_max_dimension))
            except ValueError as e:
                raise InvalidInput(
                    f"Screenshot {screenshot.index} is not a decodable image"
                ) from e
        return images
