"""Command-line interface for snapsolve.

Provides the main entry point for serving the UI bridge, running the
pipeline once over saved screenshots or a desktop grab, or checking
provider access.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="snapsolve",
        description="Screenshot-driven coding problem solver",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/snapsolve.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--provider", type=str, default=None,
        help="Override LLM_PROVIDER (openai, anthropic, fake)",
    )
    parser.add_argument(
        "--model", type=str, default=None,
        help="Override the provider's model",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("serve", help="Start the command/result bridge for the UI")

    solve_parser = subparsers.add_parser(
        "solve", help="Extract and solve a problem from screenshot files or the screen",
    )
    solve_parser.add_argument(
        "screenshots", type=Path, nargs="*",
        help="Screenshots of the problem, in order",
    )
    solve_parser.add_argument(
        "--screen", action="store_true",
        help="Grab the desktop as a further problem screenshot",
    )
    solve_parser.add_argument(
        "--bbox", type=int, nargs=4, default=None, metavar=("LEFT", "TOP", "RIGHT", "BOTTOM"),
        help="Screen region to grab with --screen",
    )
    solve_parser.add_argument(
        "--debug", type=Path, nargs="+", default=[], metavar="SCREENSHOT",
        help="Screenshots of failures to debug the solution against (one round each)",
    )

    subparsers.add_parser("check", help="Verify the configured provider is reachable")

    return parser.parse_args(argv)


def provider_lookup(args: argparse.Namespace) -> dict[str, str]:
    """Process environment with --provider/--model applied."""
    env = dict(os.environ)
    if args.provider:
        env["LLM_PROVIDER"] = args.provider
    if args.model:
        name = (env.get("LLM_PROVIDER") or "openai").upper().replace("-", "_")
        env[f"{name}_MODEL"] = args.model
    return env


async def _solve(settings, args) -> int:
    """Run extract -> solve -> debug over screenshot files and print the results."""
    from snapsolve.capture.files import FileScreenshotSource
    from snapsolve.capture.screen import ScreenGrabSource
    from snapsolve.pipeline.dispatcher import QueueChannel, ResultDispatcher
    from snapsolve.pipeline.orchestrator import PipelineOrchestrator

    orchestrator = PipelineOrchestrator(
        ResultDispatcher(QueueChannel()),
        pipeline=settings.pipeline,
        llm=settings.llm,
        env=provider_lookup(args),
    )
    try:
        session = await orchestrator.new_session()
        print(f"Session {session.session_id} ({session.provider}/{session.model})")

        async with FileScreenshotSource(args.screenshots) as source:
            for _ in args.screenshots:
                await orchestrator.capture_from(source)
        if args.screen:
            bbox = tuple(args.bbox) if args.bbox else None
            async with ScreenGrabSource(bbox=bbox) as source:
                await orchestrator.capture_from(source)

        problem = await orchestrator.extract()
        if problem is None:
            return _report_failure(session)
        print("\n" + "=" * 60)
        print(f"PROBLEM: {problem.title}")
        print("=" * 60)
        print(problem.description)

        solution = await orchestrator.solve()
        if solution is None:
            return _report_failure(session)
        _print_solution("SOLUTION", solution)

        for round_number, path in enumerate(args.debug, start=1):
            async with FileScreenshotSource([path]) as source:
                await orchestrator.capture_from(source)
            result = await orchestrator.debug()
            if result is None:
                return _report_failure(session)
            _print_solution(f"DEBUG ROUND {round_number}", result.solution)
            print(f"\nChanges: {result.changes}")
            for issue in result.issues:
                print(f"  - {issue}")
        return 0
    finally:
        await orchestrator.aclose()


def _print_solution(heading: str, solution) -> None:
    print("\n" + "=" * 60)
    print(f"{heading} ({solution.language})")
    print("=" * 60)
    print(solution.code)
    print("-" * 40)
    print(solution.explanation)
    if solution.time_complexity or solution.space_complexity:
        print(f"Time: {solution.time_complexity}  Space: {solution.space_complexity}")


def _report_failure(session) -> int:
    error = session.last_error
    print(f"\nFailed ({error.kind.value}): {error.message}", file=sys.stderr)
    if error.hint:
        print(f"Hint: {error.hint}", file=sys.stderr)
    return 1


async def _check(settings, args) -> int:
    """Resolve the provider and run its health check."""
    from snapsolve.providers.registry import default_registry

    registry = default_registry()
    config = registry.resolve(provider_lookup(args))
    provider = registry.create(config, settings.llm)
    try:
        ok = await provider.health_check()
    finally:
        await provider.aclose()
    print(f"{config.provider}/{config.model}: {'ok' if ok else 'UNREACHABLE'}")
    return 0 if ok else 1


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the snapsolve CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return 0

    from snapsolve.capture.base import CaptureError
    from snapsolve.config.settings import load_settings
    from snapsolve.providers.registry import ConfigurationError
    from snapsolve.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging)

    try:
        if args.command == "serve":
            logger.info("Starting bridge on %s:%d", settings.server.host, settings.server.port)
            from snapsolve.bridge.server import create_app
            import uvicorn
            app = create_app(settings, env=provider_lookup(args))
            uvicorn.run(app, host=settings.server.host, port=settings.server.port)
            return 0

        if args.command == "solve":
            if not args.screenshots and not args.screen:
                print("Nothing to solve: pass screenshot files or --screen", file=sys.stderr)
                return 2
            logger.info("Solving from %d screenshot(s)", len(args.screenshots) + int(args.screen))
            return asyncio.run(_solve(settings, args))

        if args.command == "check":
            return asyncio.run(_check(settings, args))
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        if e.hint:
            print(f"Hint: {e.hint}", file=sys.stderr)
        return 2
    except CaptureError as e:
        print(f"Capture failed: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
