"""Screenshot capture module for snapsolve.

Provides the screenshot sources the pipeline can pull from. The
abstract base class allows alternative capture implementations.

Public API:
    ScreenshotSource -- Abstract base class
    FileScreenshotSource -- Replays image files
    ScreenGrabSource -- Pillow desktop capture
"""

from snapsolve.capture.base import CapturedImage, CaptureError, ScreenshotSource
from snapsolve.capture.files import FileScreenshotSource

__all__ = [
    "CapturedImage",
    "CaptureError",
    "FileScreenshotSource",
    "ScreenGrabSource",
    "ScreenshotSource",
]


def __getattr__(name: str) -> type:
    """Lazy import for concrete implementations that require a display."""
    if name == "ScreenGrabSource":
        from snapsolve.capture.screen import ScreenGrabSource
        return ScreenGrabSource
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
