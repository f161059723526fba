"""File-based screenshot source.

Replays image files as screenshots, in order. Used by the CLI to run
the pipeline on saved screenshots and by tests.
"""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Iterable

from snapsolve.capture.base import CapturedImage, CaptureError, ScreenshotSource

logger = logging.getLogger(__name__)


class FileScreenshotSource(ScreenshotSource):
    """Yields the given image files one per ``grab()`` call."""

    def __init__(self, paths: Iterable[Path | str]) -> None:
        super().__init__()
        self._paths = [Path(p) for p in paths]

    @property
    def remaining(self) -> int:
        return len(self._paths) - self._grab_count

    async def open(self) -> None:
        missing = [str(p) for p in self._paths if not p.is_file()]
        if missing:
            raise CaptureError(f"Screenshot file(s) not found: {', '.join(missing)}")
        self._is_open = True

    async def close(self) -> None:
        self._is_open = False

    async def grab(self) -> CapturedImage:
        if not self._is_open:
            raise CaptureError("File source is not open")
        if self.remaining <= 0:
            raise CaptureError("No more screenshot files to replay")
        path = self._paths[self._grab_count]
        loop = asyncio.get_running_loop()
        data = await loop.run_in_executor(None, path.read_bytes)
        self._grab_count += 1
        logger.debug("Loaded screenshot from %s (%d bytes)", path, len(data))
        return CapturedImage(data=data, captured_at=time.monotonic())
