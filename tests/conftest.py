"""Shared test fixtures for the snapsolve test suite.

Provides common fixtures used across the unit tests: placeholder
screenshots, sample artifacts, an in-process result channel, and a
gated provider whose calls stay in flight until a test releases them.
"""

from __future__ import annotations

import asyncio
from typing import Sequence

import cv2
import numpy as np
import pytest

from snapsolve.domain.models import (
    DebugResult,
    ProblemConstraints,
    ProblemStatement,
    Screenshot,
    Solution,
)
from snapsolve.pipeline.dispatcher import QueueChannel, ResultDispatcher
from snapsolve.pipeline.orchestrator import PipelineOrchestrator
from snapsolve.providers.base import LLMProvider
from snapsolve.providers.fake import FakeProvider
from snapsolve.providers.registry import ProviderRegistry, default_registry


# ---------------------------------------------------------------------------
# Image / Screenshot Fixtures
# ---------------------------------------------------------------------------


def _png(width: int, height: int, value: int) -> bytes:
    image = np.full((height, width, 3), value, dtype=np.uint8)
    ok, buffer = cv2.imencode(".png", image)
    assert ok
    return buffer.tobytes()


@pytest.fixture
def png_bytes() -> bytes:
    """A 10x10 black placeholder PNG."""
    return _png(10, 10, 0)


@pytest.fixture
def second_png_bytes() -> bytes:
    """A 10x10 white placeholder PNG."""
    return _png(10, 10, 255)


@pytest.fixture
def sample_screenshot(png_bytes: bytes) -> Screenshot:
    return Screenshot(index=0, data=png_bytes, captured_at=100.0)


# ---------------------------------------------------------------------------
# Artifact Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_problem() -> ProblemStatement:
    return ProblemStatement(
        title="Sum Two Numbers",
        description="Given two integers a and b, return their sum.",
        constraints=ProblemConstraints(
            input_format="a b",
            output_format="a + b",
            limits=["-10^9 <= a, b <= 10^9"],
        ),
        raw_response='{"title": "Sum Two Numbers"}',
    )


@pytest.fixture
def sample_solution() -> Solution:
    return Solution(
        language="python",
        code="def solve(a, b):\n    return a - b\n",
        explanation="Subtract the inputs.",
        time_complexity="O(1)",
        space_complexity="O(1)",
    )


@pytest.fixture
def sample_debug_result(sample_solution: Solution) -> DebugResult:
    return DebugResult(
        solution=sample_solution.model_copy(update={"code": "def solve(a, b):\n    return a + b\n"}),
        changes="Use addition instead of subtraction.",
        issues=["Expected 3 but got -1"],
        screenshot_indices=[1],
    )


# ---------------------------------------------------------------------------
# Pipeline Fixtures
# ---------------------------------------------------------------------------


class GatedProvider(LLMProvider):
    """Fake provider whose calls block until ``gate`` is set.

    Set ``fail_with`` to make the next released call raise instead.
    """

    name = "gated"

    def __init__(self) -> None:
        super().__init__(model="gated-1")
        self.gate = asyncio.Event()
        self.gate.set()
        self.fail_with: Exception | None = None
        self.calls: list[tuple[str, list[int]]] = []
        self._fake = FakeProvider()

    async def _wait(self, operation: str, screenshots: Sequence[Screenshot] = ()) -> None:
        self.calls.append((operation, [s.index for s in screenshots]))
        await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with

    async def extract_problem(self, screenshots):
        await self._wait("extract", screenshots)
        return await self._fake.extract_problem(screenshots)

    async def generate_solution(self, problem):
        await self._wait("solve")
        return await self._fake.generate_solution(problem)

    async def debug_solution(self, solution, screenshots):
        await self._wait("debug", screenshots)
        return await self._fake.debug_solution(solution, screenshots)

    async def health_check(self) -> bool:
        return True


@pytest.fixture
def fake_env() -> dict[str, str]:
    return {"LLM_PROVIDER": "fake", "FAKE_MODEL": "test-1"}


@pytest.fixture
def gated_provider() -> GatedProvider:
    return GatedProvider()


@pytest.fixture
def registry(gated_provider: GatedProvider) -> ProviderRegistry:
    """The built-in registry plus a 'gated' provider."""
    reg = default_registry()
    reg.register(
        "gated",
        lambda config, llm: gated_provider,
        default_model="gated-1",
        requires_credential=False,
    )
    return reg


@pytest.fixture
def channel() -> QueueChannel:
    return QueueChannel()


@pytest.fixture
def orchestrator(channel: QueueChannel, registry: ProviderRegistry) -> PipelineOrchestrator:
    """An orchestrator wired to the in-process channel; no session yet."""
    return PipelineOrchestrator(ResultDispatcher(channel), registry=registry)
