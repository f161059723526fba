"""Pipeline module for snapsolve.

Contains the orchestrator that sequences capture, extraction, solving
and debugging for the active session, and the dispatcher that delivers
each stage's outcome to the UI process.

Public API:
    PipelineOrchestrator -- Session state machine
    ResultDispatcher -- Numbered, abandon-aware result delivery
    QueueChannel -- In-process result channel
"""

from snapsolve.pipeline.dispatcher import QueueChannel, ResultChannel, ResultDispatcher
from snapsolve.pipeline.orchestrator import (
    AlreadyInProgress,
    InvalidTransition,
    PipelineOrchestrator,
    classify_error,
)

__all__ = [
    "AlreadyInProgress",
    "InvalidTransition",
    "PipelineOrchestrator",
    "QueueChannel",
    "ResultChannel",
    "ResultDispatcher",
    "classify_error",
]
