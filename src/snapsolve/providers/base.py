"""Abstract base class for LLM providers.

All provider implementations must conform to this interface, enabling
the pipeline to swap between vendors without changing anything
upstream. Nothing outside snapsolve.providers may depend on a vendor's
request or response format.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import ClassVar, Sequence

from snapsolve.domain.models import (
    DebugResult,
    ErrorKind,
    ProblemStatement,
    Screenshot,
    Solution,
)

logger = logging.getLogger(__name__)


class LLMProvider(ABC):
    """Abstract interface for vision-capable LLM backends.

    Every operation is a coroutine that may suspend on network I/O and
    can be cancelled by the caller. Implementations must not keep the
    screenshots they are given once the call returns, and must not
    cache results.

    Example usage::

        provider = registry.create(config, settings.llm)
        problem = await provider.extract_problem(screenshots)
        solution = await provider.generate_solution(problem)
        revised = await provider.debug_solution(solution, more_screenshots)
    """

    name: ClassVar[str] = ""

    def __init__(self, model: str) -> None:
        self._model = model

    @property
    def model(self) -> str:
        return self._model

    @abstractmethod
    async def extract_problem(self, screenshots: Sequence[Screenshot]) -> ProblemStatement:
        """Read the problem statement shown in the screenshots.

        Raises:
            InvalidInput: If no screenshots are given.
            ProviderError: On credential, quota, network or parsing failures.
        """
        ...

    @abstractmethod
    async def generate_solution(self, problem: ProblemStatement) -> Solution:
        """Generate a candidate solution for an extracted problem.

        Raises:
            ProviderError: On credential, quota, network or parsing failures.
        """
        ...

    @abstractmethod
    async def debug_solution(
        self,
        solution: Solution,
        screenshots: Sequence[Screenshot],
    ) -> DebugResult:
        """Revise a solution given screenshots of its failures.

        Raises:
            InvalidInput: If no screenshots are given.
            ProviderError: On credential, quota, network or parsing failures.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the provider is reachable and authenticated."""
        ...

    async def aclose(self) -> None:
        """Release any client resources held by the provider."""

    def _require_screenshots(self, screenshots: Sequence[Screenshot], operation: str) -> None:
        if not screenshots:
            raise InvalidInput(f"{operation} requires at least one screenshot")


class InvalidInput(ValueError):
    """Raised when a caller violates an operation's precondition."""


class ProviderError(Exception):
    """Raised when a provider call fails.

    ``kind`` is the normalized classification shown to the user; the raw
    vendor text is only kept on ``raw_response`` for logs.
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.UNKNOWN,
        provider: str = "",
        raw_response: str = "",
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.provider = provider
        self.raw_response = raw_response
