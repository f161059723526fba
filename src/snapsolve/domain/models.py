"""Core domain models for the snapsolve system.

These models represent the data flowing through the pipeline: captured
screenshots, the normalized artifacts produced by each stage (problem,
solution, debug result), the per-session pipeline state, and the
command/result messages exchanged with the UI process.
"""

from __future__ import annotations

import enum
import time
import uuid
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, SecretStr


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Stage(str, enum.Enum):
    """Pipeline stage of a session."""

    IDLE = "idle"
    EXTRACTING = "extracting"
    EXTRACTED = "extracted"
    SOLVING = "solving"
    SOLVED = "solved"
    DEBUGGING = "debugging"
    DEBUGGED = "debugged"
    FAILED = "failed"


class Transition(str, enum.Enum):
    """A stage transition that calls the provider."""

    EXTRACT = "extract"
    SOLVE = "solve"
    DEBUG = "debug"


class ErrorKind(str, enum.Enum):
    """Classified failure kinds surfaced to the UI.

    Vendor-specific error text never crosses the process boundary; the
    UI only needs to understand these kinds.
    """

    CONFIGURATION = "configuration"
    INVALID_INPUT = "invalid_input"
    ALREADY_IN_PROGRESS = "already_in_progress"
    CREDENTIAL_INVALID = "credential_invalid"
    QUOTA_EXCEEDED = "quota_exceeded"
    RATE_LIMITED = "rate_limited"
    NETWORK_UNAVAILABLE = "network_unavailable"
    MALFORMED_RESPONSE = "malformed_response"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


# Stage entered while a transition is in flight, and the stage it lands on.
IN_FLIGHT_STAGES = {
    Transition.EXTRACT: Stage.EXTRACTING,
    Transition.SOLVE: Stage.SOLVING,
    Transition.DEBUG: Stage.DEBUGGING,
}
COMPLETED_STAGES = {
    Transition.EXTRACT: Stage.EXTRACTED,
    Transition.SOLVE: Stage.SOLVED,
    Transition.DEBUG: Stage.DEBUGGED,
}


# ---------------------------------------------------------------------------
# Capture Models
# ---------------------------------------------------------------------------


class Screenshot(BaseModel):
    """A single captured screenshot.

    The image payload is opaque to the pipeline; only provider adapters
    decode it. Bytes are carried as base64 when serialized to JSON.
    """

    model_config = ConfigDict(frozen=True, ser_json_bytes="base64", val_json_bytes="base64")

    index: int = Field(ge=0, description="Sequence index within the session")
    data: bytes = Field(description="Encoded image payload (PNG, JPEG, ...)")
    captured_at: float = Field(
        default_factory=time.monotonic, description="Monotonic capture timestamp"
    )


# ---------------------------------------------------------------------------
# Artifacts
# ---------------------------------------------------------------------------


class ProblemConstraints(BaseModel):
    """Structured constraints read from the problem statement."""

    model_config = ConfigDict(frozen=True)

    input_format: str | None = Field(default=None, description="Expected input format")
    output_format: str | None = Field(default=None, description="Expected output format")
    limits: list[str] = Field(
        default_factory=list, description="Value ranges, time and memory limits"
    )


class ProblemExample(BaseModel):
    """A worked example shown alongside the problem."""

    model_config = ConfigDict(frozen=True)

    input: str
    output: str
    explanation: str | None = None


class ProblemStatement(BaseModel):
    """Normalized result of the extract stage."""

    model_config = ConfigDict(frozen=True)

    artifact_type: Literal["problem"] = "problem"
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    constraints: ProblemConstraints | None = None
    examples: list[ProblemExample] = Field(default_factory=list)
    raw_response: str = Field(default="", description="Provider reply kept for debugging")


class Solution(BaseModel):
    """Normalized result of the solve stage."""

    model_config = ConfigDict(frozen=True)

    artifact_type: Literal["solution"] = "solution"
    language: str = Field(min_length=1, description="Language tag, e.g. 'python'")
    code: str = Field(min_length=1)
    explanation: str = ""
    time_complexity: str | None = None
    space_complexity: str | None = None
    raw_response: str = ""


class DebugResult(BaseModel):
    """A revised solution produced by the debug stage."""

    model_config = ConfigDict(frozen=True)

    artifact_type: Literal["debug"] = "debug"
    solution: Solution
    changes: str = Field(description="What changed relative to the previous solution and why")
    issues: list[str] = Field(default_factory=list, description="Problems found in the screenshots")
    screenshot_indices: list[int] = Field(
        default_factory=list, description="Screenshots that triggered this debug request"
    )
    raw_response: str = ""


Artifact = Annotated[
    Union[ProblemStatement, Solution, DebugResult],
    Field(discriminator="artifact_type"),
]


# ---------------------------------------------------------------------------
# Provider configuration
# ---------------------------------------------------------------------------


class ProviderConfig(BaseModel):
    """Resolved provider selection for one session.

    The credential is a SecretStr so it is masked in reprs, logs and
    serialized output.
    """

    model_config = ConfigDict(frozen=True)

    provider: str
    model: str
    api_key: SecretStr | None = None
    base_url: str | None = None


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------


class StageError(BaseModel):
    """A classified error recorded against a transition."""

    model_config = ConfigDict(frozen=True)

    transition: Transition | None = None
    kind: ErrorKind
    message: str
    hint: str | None = None


class Session(BaseModel):
    """Pipeline state for one user task.

    Owned and mutated only by the PipelineOrchestrator. Artifacts stored
    here are immutable; later stages append new ones.
    """

    session_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    provider: str
    model: str
    stage: Stage = Stage.IDLE
    screenshots: list[Screenshot] = Field(default_factory=list)
    problem: ProblemStatement | None = None
    solution: Solution | None = None
    debug_results: list[DebugResult] = Field(default_factory=list)
    last_error: StageError | None = None
    generation: int = Field(default=0, ge=0, description="Bumped when in-flight work is abandoned")
    debug_cursor: int = Field(
        default=0, ge=0, description="Index of the first screenshot not yet sent to the provider"
    )

    @property
    def in_flight(self) -> bool:
        return self.stage in IN_FLIGHT_STAGES.values()

    @property
    def current_solution(self) -> Solution | None:
        """The newest solution: the last debug revision, else the generated one."""
        if self.debug_results:
            return self.debug_results[-1].solution
        return self.solution

    @property
    def last_artifact(self) -> ProblemStatement | Solution | DebugResult | None:
        if self.debug_results:
            return self.debug_results[-1]
        return self.solution or self.problem

    @property
    def pending_screenshots(self) -> list[Screenshot]:
        """Screenshots captured since the last successful provider hand-off."""
        return self.screenshots[self.debug_cursor:]

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            session_id=self.session_id,
            provider=self.provider,
            model=self.model,
            stage=self.stage,
            screenshot_count=len(self.screenshots),
            pending_screenshots=len(self.pending_screenshots),
            problem=self.problem,
            solution=self.current_solution,
            debug_count=len(self.debug_results),
            last_error=self.last_error,
        )


class SessionSnapshot(BaseModel):
    """JSON-safe view of a Session, without image payloads."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    provider: str
    model: str
    stage: Stage
    screenshot_count: int
    pending_screenshots: int
    problem: ProblemStatement | None = None
    solution: Solution | None = None
    debug_count: int = 0
    last_error: StageError | None = None


# ---------------------------------------------------------------------------
# Commands (UI -> core, discriminated union)
# ---------------------------------------------------------------------------


class NewSessionCommand(BaseModel):
    model_config = ConfigDict(frozen=True)

    command: Literal["new_session"] = "new_session"


class CaptureCommand(BaseModel):
    """Append a screenshot supplied by the UI process."""

    model_config = ConfigDict(frozen=True, ser_json_bytes="base64", val_json_bytes="base64")

    command: Literal["capture"] = "capture"
    image: bytes = Field(description="Encoded image payload, base64 in JSON")


class ExtractCommand(BaseModel):
    model_config = ConfigDict(frozen=True)

    command: Literal["extract"] = "extract"


class SolveCommand(BaseModel):
    model_config = ConfigDict(frozen=True)

    command: Literal["solve"] = "solve"


class DebugCommand(BaseModel):
    model_config = ConfigDict(frozen=True)

    command: Literal["debug"] = "debug"


class ResetCommand(BaseModel):
    model_config = ConfigDict(frozen=True)

    command: Literal["reset"] = "reset"


Command = Annotated[
    Union[
        NewSessionCommand,
        CaptureCommand,
        ExtractCommand,
        SolveCommand,
        DebugCommand,
        ResetCommand,
    ],
    Field(discriminator="command"),
]


# ---------------------------------------------------------------------------
# Results (core -> UI, discriminated union)
# ---------------------------------------------------------------------------


class StageSucceeded(BaseModel):
    """A transition finished and produced an artifact."""

    model_config = ConfigDict(frozen=True)

    message_type: Literal["stage_succeeded"] = "stage_succeeded"
    session_id: str
    sequence: int = Field(ge=0)
    transition: Transition
    stage: Stage
    artifact: Artifact


class StageFailed(BaseModel):
    """A transition failed with a classified error."""

    model_config = ConfigDict(frozen=True)

    message_type: Literal["stage_failed"] = "stage_failed"
    session_id: str
    sequence: int = Field(ge=0)
    transition: Transition
    stage: Stage = Stage.FAILED
    error: StageError


ResultMessage = Annotated[
    Union[StageSucceeded, StageFailed],
    Field(discriminator="message_type"),
]
