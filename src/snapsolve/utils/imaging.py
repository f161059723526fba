"""Image processing utilities for snapsolve.

Shared image decoding, resizing and encoding functions used by the
capture sources and the provider adapters.
"""

from __future__ import annotations

import base64
import io
import logging

import cv2
import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)


def decode_image(data: bytes) -> np.ndarray:
    """Decode an encoded image payload into a BGR numpy array."""
    buffer = np.frombuffer(data, dtype=np.uint8)
    image = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
    if image is None:
        raise ValueError("Payload is not a decodable image")
    return image


def encode_png(image: np.ndarray) -> bytes:
    """Encode a numpy image array (BGR, OpenCV format) as PNG bytes."""
    success, buffer = cv2.imencode(".png", image)
    if not success:
        raise ValueError("Failed to encode image to PNG")
    return buffer.tobytes()


def numpy_to_base64_png(image: np.ndarray) -> str:
    """Convert a numpy image array (BGR, OpenCV format) to base64 PNG."""
    return base64.b64encode(encode_png(image)).decode("utf-8")


def pil_to_png_bytes(image: Image.Image) -> bytes:
    """Encode a PIL image as PNG bytes."""
    out = io.BytesIO()
    image.save(out, format="PNG")
    return out.getvalue()


def resize_for_mllm(
    image: np.ndarray,
    max_dimension: int = 1568,
    min_dimension: int | None = None,
) -> np.ndarray:
    """Resize an image for MLLM interpretation.

    Preserves aspect ratio. Downscales images larger than max_dimension;
    upscales images smaller than min_dimension when one is given.
    """
    h, w = image.shape[:2]
    largest = max(h, w)

    if largest > max_dimension:
        scale = max_dimension / largest
        new_w = max(1, int(w * scale))
        new_h = max(1, int(h * scale))
        return cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_AREA)
    elif min_dimension is not None and largest < min_dimension:
        scale = min_dimension / largest
        new_w = int(w * scale)
        new_h = int(h * scale)
        return cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_CUBIC)

    return image


def prepare_for_mllm(data: bytes, max_dimension: int = 1568) -> str:
    """Decode, downscale and re-encode a screenshot as base64 PNG."""
    image = decode_image(data)
    resized = resize_for_mllm(image, max_dimension=max_dimension)
    if resized is not image:
        logger.debug(
            "Resized screenshot %dx%d -> %dx%d",
            image.shape[1], image.shape[0], resized.shape[1], resized.shape[0],
        )
    return numpy_to_base64_png(resized)
