"""Tests for result numbering and suppression in the ResultDispatcher."""

from __future__ import annotations

import pytest

from snapsolve.domain.models import ErrorKind, Session, Stage, StageError, Transition
from snapsolve.pipeline.dispatcher import Attempt, QueueChannel, ResultDispatcher


@pytest.fixture
def session() -> Session:
    return Session(provider="fake", model="test-1")


@pytest.mark.asyncio
async def test_sequences_start_at_zero_per_session(channel: QueueChannel, session, sample_problem) -> None:
    dispatcher = ResultDispatcher(channel)
    other = Session(provider="fake", model="test-1")

    await dispatcher.succeeded(Attempt(session, Transition.EXTRACT, 0), Stage.EXTRACTED, sample_problem)
    await dispatcher.succeeded(Attempt(other, Transition.EXTRACT, 0), Stage.EXTRACTED, sample_problem)
    error = StageError(transition=Transition.SOLVE, kind=ErrorKind.RATE_LIMITED, message="slow down")
    await dispatcher.failed(Attempt(session, Transition.SOLVE, 0), error)

    messages = channel.drain()
    assert [(m.session_id, m.sequence) for m in messages] == [
        (session.session_id, 0),
        (other.session_id, 0),
        (session.session_id, 1),
    ]
    assert messages[2].stage is Stage.FAILED
    assert messages[2].error.kind is ErrorKind.RATE_LIMITED


@pytest.mark.asyncio
async def test_abandoned_attempt_suppressed(channel: QueueChannel, session, sample_problem) -> None:
    dispatcher = ResultDispatcher(channel)
    attempt = Attempt(session, Transition.EXTRACT, session.generation)
    session.generation += 1

    assert attempt.is_current is False
    assert await dispatcher.succeeded(attempt, Stage.EXTRACTED, sample_problem) is None
    error = StageError(kind=ErrorKind.TIMEOUT, message="late")
    assert await dispatcher.failed(attempt, error) is None
    assert channel.drain() == []


@pytest.mark.asyncio
async def test_forget_restarts_numbering(channel: QueueChannel, session, sample_solution) -> None:
    dispatcher = ResultDispatcher(channel)
    attempt = Attempt(session, Transition.SOLVE, 0)
    await dispatcher.succeeded(attempt, Stage.SOLVED, sample_solution)
    dispatcher.forget(session.session_id)
    message = await dispatcher.succeeded(attempt, Stage.SOLVED, sample_solution)
    assert message.sequence == 0


@pytest.mark.asyncio
async def test_queue_channel_receive(channel: QueueChannel, session, sample_debug_result) -> None:
    dispatcher = ResultDispatcher(channel)
    sent = await dispatcher.succeeded(Attempt(session, Transition.DEBUG, 0), Stage.DEBUGGED, sample_debug_result)
    received = await channel.receive()
    assert received == sent
    assert received.artifact.artifact_type == "debug"


@pytest.mark.asyncio
async def test_requeued_message_comes_back_first(channel: QueueChannel, session, sample_problem, sample_solution) -> None:
    dispatcher = ResultDispatcher(channel)
    first = await dispatcher.succeeded(Attempt(session, Transition.EXTRACT, 0), Stage.EXTRACTED, sample_problem)
    second = await dispatcher.succeeded(Attempt(session, Transition.SOLVE, 0), Stage.SOLVED, sample_solution)

    taken = await channel.receive()
    assert taken == first
    channel.requeue(taken)

    assert await channel.receive() == first
    channel.requeue(first)
    assert [m.sequence for m in channel.drain()] == [first.sequence, second.sequence]
