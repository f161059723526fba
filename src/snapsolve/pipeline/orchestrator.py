"""The pipeline orchestrator that owns session state.

Sequences capture -> extract -> solve -> debug for the active session,
is the only caller of the provider, and hands every outcome to the
ResultDispatcher.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Mapping, TypeVar

from snapsolve.capture.base import ScreenshotSource
from snapsolve.config.settings import LLMConfig, PipelineConfig
from snapsolve.domain.models import (
    COMPLETED_STAGES,
    IN_FLIGHT_STAGES,
    CaptureCommand,
    DebugCommand,
    DebugResult,
    ErrorKind,
    ExtractCommand,
    NewSessionCommand,
    ProblemStatement,
    ProviderConfig,
    ResetCommand,
    Screenshot,
    Session,
    Solution,
    SolveCommand,
    Stage,
    StageError,
    Transition,
)
from snapsolve.pipeline.dispatcher import Attempt, ResultDispatcher
from snapsolve.providers.base import InvalidInput, LLMProvider, ProviderError
from snapsolve.providers.registry import ConfigurationError, ProviderRegistry, default_registry

logger = logging.getLogger(__name__)

T = TypeVar("T", ProblemStatement, Solution, DebugResult)

ERROR_HINTS = {
    ErrorKind.CREDENTIAL_INVALID: "Check the API key configured for the selected provider.",
    ErrorKind.QUOTA_EXCEEDED: "The account is out of quota. Add credits or switch provider.",
    ErrorKind.RATE_LIMITED: "The provider is rate limiting requests. Wait a moment and retry.",
    ErrorKind.NETWORK_UNAVAILABLE: "Check your network connection and retry.",
    ErrorKind.MALFORMED_RESPONSE: "The model returned an unusable answer. Retry or try another model.",
    ErrorKind.TIMEOUT: "The provider took too long. Retry, or raise pipeline.provider_timeout.",
}


class PipelineOrchestrator:
    """Coordinates one session's stage transitions.

    Transitions (``extract``, ``solve``, ``debug``) are validated
    synchronously and then run as an asyncio Task, so the event loop
    stays free to accept ``reset`` or ``new_session`` while a provider
    call is suspended. Only one transition may be in flight at a time.

    Example usage::

        orchestrator = PipelineOrchestrator(ResultDispatcher(QueueChannel()))
        await orchestrator.new_session()
        orchestrator.capture(png_bytes)
        problem = await orchestrator.extract()
        solution = await orchestrator.solve()
    """

    def __init__(
        self,
        dispatcher: ResultDispatcher,
        registry: ProviderRegistry | None = None,
        pipeline: PipelineConfig | None = None,
        llm: LLMConfig | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._env = env
        self._registry = registry or default_registry()
        self._pipeline = pipeline or PipelineConfig()
        self._llm = llm or LLMConfig()
        self._session: Session | None = None
        self._config: ProviderConfig | None = None
        self._provider: LLMProvider | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def provider(self) -> LLMProvider | None:
        return self._provider

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def new_session(self, lookup: Mapping[str, str] | None = None) -> Session:
        """Discard the current session and start a new one.

        Provider selection is read from ``lookup``, else from the ``env``
        given at construction, else from the process environment. A
        missing credential fails here without any network call.

        Raises:
            ConfigurationError: If the provider or its credential is
                missing. No session is active afterwards.
        """
        self._abandon()
        self._session = None
        previous, self._provider, self._config = self._provider, None, None
        if previous is not None:
            await previous.aclose()

        config = self._registry.resolve(lookup if lookup is not None else self._env)
        provider = self._registry.create(config, self._llm)
        self._config, self._provider = config, provider
        self._session = Session(provider=config.provider, model=config.model)
        logger.info(
            "Started session %s (provider=%s, model=%s)",
            self._session.session_id, config.provider, config.model,
        )
        return self._session

    def reset(self) -> Session:
        """Abandon any in-flight work and start over in ``idle``.

        The provider selection of the current session is kept.
        """
        if self._session is None or self._config is None:
            raise InvalidTransition("No active session to reset")
        old = self._session
        self._abandon()
        self._session = Session(provider=old.provider, model=old.model)
        logger.info("Reset session %s -> %s", old.session_id, self._session.session_id)
        return self._session

    async def aclose(self) -> None:
        """Abandon the session, cancel outstanding work and close the provider."""
        self._abandon()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if self._provider is not None:
            await self._provider.aclose()
        self._session = None
        self._provider = None
        self._config = None

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    def capture(self, image: bytes, captured_at: float | None = None) -> Screenshot:
        """Append a screenshot to the current session.

        Never changes the stage; allowed while a transition is in flight,
        in which case the screenshot feeds the next debug call.
        """
        session = self._require_session()
        if not image:
            raise InvalidInput("Screenshot payload is empty")
        screenshot = Screenshot(
            index=len(session.screenshots),
            data=image,
            captured_at=time.monotonic() if captured_at is None else captured_at,
        )
        session.screenshots.append(screenshot)
        logger.info(
            "Captured screenshot %d (%d bytes) in session %s",
            screenshot.index, len(image), session.session_id,
        )
        return screenshot

    async def capture_from(self, source: ScreenshotSource) -> Screenshot:
        """Grab a screenshot from a capture source and append it."""
        captured = await source.grab()
        return self.capture(captured.data, captured.captured_at)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def extract(self) -> asyncio.Task[ProblemStatement | None]:
        """Start extracting the problem from the captured screenshots.

        Returns:
            A task resolving to the ProblemStatement, or None if the
            attempt failed (see ``session.last_error``) or was abandoned.

        Raises:
            AlreadyInProgress: A transition is already running.
            InvalidTransition: Extraction is not allowed from this stage.
            InvalidInput: No screenshots have been captured.
        """
        session = self._check(Transition.EXTRACT)
        if not session.screenshots:
            raise InvalidInput("Capture at least one screenshot before extracting")
        screenshots = session.screenshots[-self._pipeline.max_screenshots_per_call:]
        cursor = len(session.screenshots)
        provider = self._provider

        def apply(problem: ProblemStatement) -> None:
            session.problem = problem
            session.debug_cursor = cursor

        return self._spawn(
            session, Transition.EXTRACT,
            lambda: provider.extract_problem(screenshots), apply,
        )

    def solve(self) -> asyncio.Task[Solution | None]:
        """Start generating a solution for the extracted problem."""
        session = self._check(Transition.SOLVE)
        problem = session.problem
        provider = self._provider

        def apply(solution: Solution) -> None:
            session.solution = solution

        return self._spawn(
            session, Transition.SOLVE,
            lambda: provider.generate_solution(problem), apply,
        )

    def debug(self) -> asyncio.Task[DebugResult | None]:
        """Start debugging the current solution against new screenshots.

        Uses every screenshot captured since the last successful extract
        or debug call.
        """
        session = self._check(Transition.DEBUG)
        pending = session.pending_screenshots
        if not pending:
            raise InvalidInput("Capture a screenshot of the failure before debugging")
        screenshots = pending[-self._pipeline.max_screenshots_per_call:]
        cursor = len(session.screenshots)
        solution = session.current_solution
        provider = self._provider

        def apply(result: DebugResult) -> None:
            session.debug_results.append(result)
            session.debug_cursor = cursor

        return self._spawn(
            session, Transition.DEBUG,
            lambda: provider.debug_solution(solution, screenshots), apply,
        )

    async def handle(
        self,
        command: NewSessionCommand | CaptureCommand | ExtractCommand | SolveCommand | DebugCommand | ResetCommand,
    ) -> Session | Screenshot | asyncio.Task:
        """Route a command from the UI channel to the matching operation."""
        if isinstance(command, NewSessionCommand):
            return await self.new_session()
        if isinstance(command, CaptureCommand):
            return self.capture(command.image)
        if isinstance(command, ExtractCommand):
            return self.extract()
        if isinstance(command, SolveCommand):
            return self.solve()
        if isinstance(command, DebugCommand):
            return self.debug()
        if isinstance(command, ResetCommand):
            return self.reset()
        raise InvalidInput(f"Unknown command: {command!r}")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_session(self) -> Session:
        if self._session is None or self._provider is None:
            raise InvalidTransition("No active session; start one with new_session")
        return self._session

    def _check(self, transition: Transition) -> Session:
        session = self._require_session()
        if session.in_flight:
            raise AlreadyInProgress(
                f"Cannot {transition.value}: {session.stage.value} is already in progress"
            )
        failed = session.stage is Stage.FAILED
        if transition is Transition.EXTRACT:
            allowed = session.stage is Stage.IDLE or (failed and session.problem is None)
        elif transition is Transition.SOLVE:
            allowed = session.stage is Stage.EXTRACTED or (
                failed and session.problem is not None and session.solution is None
            )
        else:
            allowed = session.stage in (Stage.SOLVED, Stage.DEBUGGED) or (
                failed and session.solution is not None
            )
        if not allowed:
            raise InvalidTransition(f"Cannot {transition.value} from stage {session.stage.value}")
        return session

    def _spawn(
        self,
        session: Session,
        transition: Transition,
        call: Callable[[], Awaitable[T]],
        apply: Callable[[T], None],
    ) -> asyncio.Task[T | None]:
        attempt = Attempt(session=session, transition=transition, generation=session.generation)
        session.stage = IN_FLIGHT_STAGES[transition]
        logger.info("Session %s: %s started", session.session_id, transition.value)
        task = asyncio.get_running_loop().create_task(self._run(attempt, call, apply))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(
        self,
        attempt: Attempt,
        call: Callable[[], Awaitable[T]],
        apply: Callable[[T], None],
    ) -> T | None:
        timeout = self._pipeline.provider_timeout
        try:
            artifact = await asyncio.wait_for(call(), timeout=timeout)
        except asyncio.TimeoutError:
            error = ProviderError(
                f"Provider did not respond within {timeout:g}s",
                kind=ErrorKind.TIMEOUT,
                provider=attempt.session.provider,
            )
            return await self._fail(attempt, classify_error(error, attempt.transition))
        except asyncio.CancelledError:
            await self._fail(
                attempt,
                StageError(
                    transition=attempt.transition,
                    kind=ErrorKind.UNKNOWN,
                    message=f"{attempt.transition.value} was cancelled",
                ),
            )
            raise
        except Exception as e:
            return await self._fail(attempt, classify_error(e, attempt.transition))

        if not attempt.is_current:
            logger.info(
                "Discarding late %s result for abandoned session %s",
                attempt.transition.value, attempt.session.session_id,
            )
            return None

        session = attempt.session
        apply(artifact)
        session.stage = COMPLETED_STAGES[attempt.transition]
        session.last_error = None
        logger.info("Session %s: %s succeeded", session.session_id, attempt.transition.value)
        await self._dispatcher.succeeded(attempt, session.stage, artifact)
        return artifact

    async def _fail(self, attempt: Attempt, error: StageError) -> None:
        if not attempt.is_current:
            logger.info(
                "Discarding %s failure for abandoned session %s: %s",
                attempt.transition.value, attempt.session.session_id, error.message,
            )
            return None
        session = attempt.session
        session.stage = Stage.FAILED
        session.last_error = error
        logger.warning(
            "Session %s: %s failed (%s): %s",
            session.session_id, attempt.transition.value, error.kind.value, error.message,
        )
        await self._dispatcher.failed(attempt, error)
        return None

    def _abandon(self) -> None:
        if self._session is None:
            return
        self._session.generation += 1
        self._dispatcher.forget(self._session.session_id)


def classify_error(error: Exception, transition: Transition | None = None) -> StageError:
    """Map any exception onto the classified error shown to the user."""
    if isinstance(error, ConfigurationError):
        return StageError(
            transition=transition,
            kind=ErrorKind.CONFIGURATION,
            message=str(error),
            hint=error.hint,
        )
    if isinstance(error, AlreadyInProgress):
        return StageError(transition=transition, kind=ErrorKind.ALREADY_IN_PROGRESS, message=str(error))
    if isinstance(error, InvalidInput):
        return StageError(transition=transition, kind=ErrorKind.INVALID_INPUT, message=str(error))
    if isinstance(error, ProviderError):
        return StageError(
            transition=transition,
            kind=error.kind,
            message=str(error),
            hint=ERROR_HINTS.get(error.kind),
        )
    logger.exception("Unexpected error during %s", transition.value if transition else "command")
    return StageError(
        transition=transition,
        kind=ErrorKind.UNKNOWN,
        message=f"Unexpected error: {type(error).__name__}",
    )


class AlreadyInProgress(Exception):
    """Raised when a transition is requested while another is in flight."""


class InvalidTransition(InvalidInput):
    """Raised when a command is not valid in the session's current stage."""
