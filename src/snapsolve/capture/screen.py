"""Desktop screenshot capture using Pillow's ImageGrab.

Runs the blocking grab in a thread pool executor to avoid blocking the
async event loop.
"""

from __future__ import annotations

import asyncio
import logging
import time

from PIL import ImageGrab

from snapsolve.capture.base import CapturedImage, CaptureError, ScreenshotSource
from snapsolve.utils.imaging import pil_to_png_bytes

logger = logging.getLogger(__name__)


class ScreenGrabSource(ScreenshotSource):
    """Captures the whole desktop, or a region of it, as PNG.

    Args:
        bbox: Optional (left, top, right, bottom) region in screen pixels.
        all_screens: Capture every monitor instead of the primary one.
    """

    def __init__(
        self,
        bbox: tuple[int, int, int, int] | None = None,
        all_screens: bool = False,
    ) -> None:
        super().__init__()
        self._bbox = bbox
        self._all_screens = all_screens

    async def open(self) -> None:
        self._is_open = True
        logger.info("Screen capture ready (bbox=%s)", self._bbox)

    async def close(self) -> None:
        self._is_open = False

    async def grab(self) -> CapturedImage:
        if not self._is_open:
            raise CaptureError("Screen capture is not open")
        loop = asyncio.get_running_loop()
        data = await loop.run_in_executor(None, self._grab_sync)
        self._grab_count += 1
        logger.debug("Grabbed screenshot %d (%d bytes)", self._grab_count, len(data))
        return CapturedImage(data=data, captured_at=time.monotonic())

    def _grab_sync(self) -> bytes:
        """Synchronous screen grab (runs in thread pool)."""
        try:
            image = ImageGrab.grab(bbox=self._bbox, all_screens=self._all_screens)
        except OSError as e:
            raise CaptureError(f"Failed to grab the screen: {e}") from e
        return pil_to_png_bytes(image)
