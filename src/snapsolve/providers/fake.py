"""Deterministic offline provider.

Returns canned artifacts without touching the network. Used by the test
suite, by ``snapsolve solve --provider fake`` dry runs and when building
a UI against the bridge.
"""

from __future__ import annotations

import logging
import re
from typing import Sequence

from snapsolve.domain.models import (
    DebugResult,
    ProblemConstraints,
    ProblemExample,
    ProblemStatement,
    Screenshot,
    Solution,
)
from snapsolve.providers.base import LLMProvider

logger = logging.getLogger(__name__)

_REVISION_RE = re.compile(r"^# revision (\d+)", re.MULTILINE)


class FakeProvider(LLMProvider):
    """Provider that answers every problem with "Sum Two Numbers"."""

    name = "fake"

    def __init__(self, model: str = "test-1", language: str = "python", **kwargs) -> None:
        super().__init__(model=model)
        self._language = language

    async def extract_problem(self, screenshots: Sequence[Screenshot]) -> ProblemStatement:
        self._require_screenshots(screenshots, "extract_problem")
        logger.debug("Fake extract from %d screenshot(s)", len(screenshots))
        return ProblemStatement(
            title="Sum Two Numbers",
            description="Given two integers a and b, return their sum.",
            constraints=ProblemConstraints(
                input_format="Two integers a and b on one line",
                output_format="A single integer",
                limits=["-10^9 <= a, b <= 10^9"],
            ),
            examples=[ProblemExample(input="1 2", output="3")],
            raw_response="fake",
        )

    async def generate_solution(self, problem: ProblemStatement) -> Solution:
        return Solution(
            language=self._language,
            code="def solve(a, b):\n    return a + b\n",
            explanation=f"Add the two inputs to solve '{problem.title}'.",
            time_complexity="O(1)",
            space_complexity="O(1)",
            raw_response="fake",
        )

    async def debug_solution(
        self,
        solution: Solution,
        screenshots: Sequence[Screenshot],
    ) -> DebugResult:
        self._require_screenshots(screenshots, "debug_solution")
        revisions = [int(n) for n in _REVISION_RE.findall(solution.code)]
        revision = max(revisions, default=0) + 1
        indices = [s.index for s in screenshots]
        code = solution.code.rstrip("\n") + f"\n# revision {revision}: checked against {indices}\n"
        return DebugResult(
            solution=solution.model_copy(update={"code": code, "raw_response": "fake"}),
            changes=f"Added revision marker {revision}.",
            issues=[],
            screenshot_indices=indices,
            raw_response="fake",
        )

    async def health_check(self) -> bool:
        return True
