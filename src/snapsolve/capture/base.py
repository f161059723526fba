"""Abstract base class for screenshot sources.

All capture implementations must conform to this interface, enabling
the pipeline to take screenshots from the desktop, from image files in
tests and dry runs, or from the UI process without changing anything
else.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import NamedTuple

logger = logging.getLogger(__name__)


class CapturedImage(NamedTuple):
    """Raw output of a capture: encoded image bytes plus monotonic timestamp."""

    data: bytes
    captured_at: float


class ScreenshotSource(ABC):
    """Abstract interface for producing screenshots.

    Example usage::

        async with ScreenGrabSource() as source:
            await orchestrator.capture_from(source)
    """

    def __init__(self) -> None:
        self._is_open: bool = False
        self._grab_count: int = 0

    @property
    def is_open(self) -> bool:
        """Whether the source is currently open and ready."""
        return self._is_open

    @abstractmethod
    async def open(self) -> None:
        """Acquire whatever the source needs before grabbing.

        Raises:
            CaptureError: If the source cannot be opened.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release resources. Safe to call multiple times."""
        ...

    @abstractmethod
    async def grab(self) -> CapturedImage:
        """Take one screenshot.

        Raises:
            CaptureError: If the capture fails.
        """
        ...

    async def __aenter__(self) -> ScreenshotSource:
        """Async context manager entry -- opens the source."""
        await self.open()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        """Async context manager exit -- closes the source."""
        await self.close()


class CaptureError(Exception):
    """Raised when screenshot capture fails."""
