"""Delivery of stage outcomes across the process boundary.

Each transition attempt produces exactly one message, numbered per
session in issuance order. Messages belonging to an abandoned attempt
(the session was reset or replaced while the provider call was in
flight) are dropped here instead of being delivered.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass

from snapsolve.domain.models import (
    DebugResult,
    ProblemStatement,
    Session,
    Solution,
    Stage,
    StageError,
    StageFailed,
    StageSucceeded,
    Transition,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Attempt:
    """Validity token for one in-flight transition."""

    session: Session
    transition: Transition
    generation: int

    @property
    def is_current(self) -> bool:
        return self.session.generation == self.generation


class ResultChannel(ABC):
    """Abstract outbound half of the command/result channel."""

    @abstractmethod
    async def send(self, message: StageSucceeded | StageFailed) -> None:
        """Deliver one result message to the UI side."""
        ...


class QueueChannel(ResultChannel):
    """In-process channel backed by an asyncio.Queue.

    The bridge's WebSocket endpoint drains it; tests read it directly. A
    message whose delivery failed can be put back with ``requeue`` and is
    returned before anything still queued.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[StageSucceeded | StageFailed] = asyncio.Queue()
        self._requeued: deque[StageSucceeded | StageFailed] = deque()

    async def send(self, message: StageSucceeded | StageFailed) -> None:
        await self._queue.put(message)

    async def receive(self) -> StageSucceeded | StageFailed:
        if self._requeued:
            return self._requeued.popleft()
        return await self._queue.get()

    def requeue(self, message: StageSucceeded | StageFailed) -> None:
        """Return an undelivered message to the front of the channel."""
        self._requeued.appendleft(message)
        logger.debug("Requeued result #%d for session %s", message.sequence, message.session_id)

    def drain(self) -> list[StageSucceeded | StageFailed]:
        """Return every message delivered so far without waiting."""
        messages = list(self._requeued)
        self._requeued.clear()
        while not self._queue.empty():
            messages.append(self._queue.get_nowait())
        return messages


class ResultDispatcher:
    """Turns transition outcomes into numbered result messages."""

    def __init__(self, channel: ResultChannel) -> None:
        self._channel = channel
        self._sequences: dict[str, int] = {}

    @property
    def channel(self) -> ResultChannel:
        return self._channel

    async def succeeded(
        self,
        attempt: Attempt,
        stage: Stage,
        artifact: ProblemStatement | Solution | DebugResult,
    ) -> StageSucceeded | None:
        if not self._deliverable(attempt):
            return None
        message = StageSucceeded(
            session_id=attempt.session.session_id,
            sequence=self._next_sequence(attempt.session.session_id),
            transition=attempt.transition,
            stage=stage,
            artifact=artifact,
        )
        await self._channel.send(message)
        logger.debug("Delivered %s #%d", attempt.transition.value, message.sequence)
        return message

    async def failed(self, attempt: Attempt, error: StageError) -> StageFailed | None:
        if not self._deliverable(attempt):
            return None
        message = StageFailed(
            session_id=attempt.session.session_id,
            sequence=self._next_sequence(attempt.session.session_id),
            transition=attempt.transition,
            error=error,
        )
        await self._channel.send(message)
        logger.debug("Delivered %s failure #%d (%s)", attempt.transition.value, message.sequence, error.kind.value)
        return message

    def forget(self, session_id: str) -> None:
        """Drop sequencing state for a session that is no longer active."""
        self._sequences.pop(session_id, None)

    def _deliverable(self, attempt: Attempt) -> bool:
        if attempt.is_current:
            return True
        logger.info(
            "Suppressing result of abandoned %s in session %s",
            attempt.transition.value, attempt.session.session_id,
        )
        return False

    def _next_sequence(self, session_id: str) -> int:
        sequence = self._sequences.get(session_id, 0)
        self._sequences[session_id] = sequence + 1
        return sequence
