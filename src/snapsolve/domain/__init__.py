"""Domain models for snapsolve.

This package contains all core data structures, enumerations, and value
objects used throughout the system. All models use Pydantic v2 for
validation and serialization.
"""

from snapsolve.domain.models import (
    Artifact,
    Command,
    DebugResult,
    ErrorKind,
    ProblemStatement,
    ProviderConfig,
    ResultMessage,
    Screenshot,
    Session,
    SessionSnapshot,
    Solution,
    Stage,
    StageError,
    StageFailed,
    StageSucceeded,
    Transition,
)

__all__ = [
    "Artifact",
    "Command",
    "DebugResult",
    "ErrorKind",
    "ProblemStatement",
    "ProviderConfig",
    "ResultMessage",
    "Screenshot",
    "Session",
    "SessionSnapshot",
    "Solution",
    "Stage",
    "StageError",
    "StageFailed",
    "StageSucceeded",
    "Transition",
]
