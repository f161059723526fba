"""FastAPI bridge between the UI process and the pipeline.

Commands arrive as JSON on ``POST /commands`` and are acknowledged
immediately; stage outcomes are pushed, in order, to the UI over the
``/events`` WebSocket as ``stage_succeeded`` / ``stage_failed`` messages.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Mapping

import uvicorn
from fastapi import FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from snapsolve.config.settings import Settings
from snapsolve.domain.models import Command, Screenshot, Session, SessionSnapshot
from snapsolve.pipeline.dispatcher import QueueChannel, ResultDispatcher
from snapsolve.pipeline.orchestrator import AlreadyInProgress, PipelineOrchestrator, classify_error
from snapsolve.providers.base import InvalidInput
from snapsolve.providers.registry import ConfigurationError, ProviderRegistry

logger = logging.getLogger(__name__)

COMMAND_ADAPTER: TypeAdapter = TypeAdapter(Command)


class CommandAccepted(BaseModel):
    status: str = "accepted"
    command: str
    session: SessionSnapshot | None = None
    screenshot_index: int | None = Field(default=None, description="Index of a captured screenshot")


class BridgeStatus(BaseModel):
    status: str = "ok"
    session_active: bool = False
    provider: str | None = None
    model: str | None = None


def create_app(
    settings: Settings | None = None,
    registry: ProviderRegistry | None = None,
    env: Mapping[str, str] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings; defaults are used when omitted.
        registry: Provider registry; the built-in one when omitted.
        env: Lookup for provider selection; the process environment
             when omitted.
    """
    settings = settings or Settings()
    channel = QueueChannel()
    orchestrator = PipelineOrchestrator(
        ResultDispatcher(channel),
        registry=registry,
        pipeline=settings.pipeline,
        llm=settings.llm,
        env=env,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Bridge started")
        yield
        await app.state.orchestrator.aclose()
        logger.info("Bridge stopped")

    app = FastAPI(
        title="snapsolve bridge",
        description="Command/result channel between the UI and the solving pipeline",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.orchestrator = orchestrator
    app.state.channel = channel

    @app.get("/health")
    async def health_check() -> BridgeStatus:
        session = app.state.orchestrator.session
        return BridgeStatus(
            session_active=session is not None,
            provider=session.provider if session else None,
            model=session.model if session else None,
        )

    @app.get("/session")
    async def get_session() -> SessionSnapshot:
        session = app.state.orchestrator.session
        if session is None:
            raise HTTPException(status_code=404, detail="No active session")
        return session.snapshot()

    @app.post("/commands", status_code=202)
    async def receive_command(request: Request) -> CommandAccepted:
        try:
            command = COMMAND_ADAPTER.validate_json(await request.body())
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=e.errors(include_url=False)) from e

        orch: PipelineOrchestrator = app.state.orchestrator
        try:
            result = await orch.handle(command)
        except ConfigurationError as e:
            raise _rejected(422, e) from e
        except AlreadyInProgress as e:
            raise _rejected(409, e) from e
        except InvalidInput as e:
            raise _rejected(400, e) from e

        accepted = CommandAccepted(command=command.command)
        if isinstance(result, Screenshot):
            accepted.screenshot_index = result.index
        elif isinstance(result, Session):
            accepted.session = result.snapshot()
        if accepted.session is None and orch.session is not None:
            accepted.session = orch.session.snapshot()
        logger.debug("Accepted command %s", command.command)
        return accepted

    @app.websocket("/events")
    async def stream_events(websocket: WebSocket) -> None:
        await websocket.accept()
        forward = asyncio.create_task(_forward_results(websocket, app.state.channel))
        try:
            # Inbound frames are ignored; only the disconnect matters
            while True:
                frame = await websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    break
        finally:
            forward.cancel()
            await asyncio.gather(forward, return_exceptions=True)
            logger.info("Event stream client disconnected")

    return app


async def _forward_results(websocket: WebSocket, channel: QueueChannel) -> None:
    """Push results to one client until it goes away.

    A message whose send did not complete goes back to the front of the
    channel so the next client receives it.
    """
    try:
        while True:
            message = await channel.receive()
            try:
                await websocket.send_text(message.model_dump_json())
            except BaseException:
                channel.requeue(message)
                raise
    except WebSocketDisconnect:
        logger.info("Event stream client dropped; undelivered result kept")


def _rejected(status_code: int, error: Exception) -> HTTPException:
    stage_error = classify_error(error)
    logger.info("Rejected command (%s): %s", stage_error.kind.value, stage_error.message)
    return HTTPException(status_code=status_code, detail=stage_error.model_dump(mode="json"))


def main(settings: Settings | None = None) -> None:
    """Entry point for running the bridge standalone."""
    settings = settings or Settings()
    app = create_app(settings)
    uvicorn.run(app, host=settings.server.host, port=settings.server.port)


if __name__ == "__main__":
    main()
