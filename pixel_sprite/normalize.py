"""Pre-normalize oversized inputs before the heavier stages."""

import logging
import math

import cv2

from .buffer import PixelBuffer, check_buffer

logger = logging.getLogger(__name__)


def target_size(width: int, height: int, longest_side: int):
    """Return the ``(width, height)`` an image is scaled to, or ``None``.

    ``None`` means the image already fits within ``longest_side``.
    """
    if longest_side < 1:
        raise ValueError(f"longest_side must be >= 1, got {longest_side}")
    current = max(width, height)
    if current <= longest_side:
        return None
    scale = longest_side / current
    # halves round up; clamp after rounding so e.g. 1000x1 never collapses to 0
    return (
        max(1, int(math.floor(width * scale + 0.5))),
        max(1, int(math.floor(height * scale + 0.5))),
    )


def normalize_size(buf: PixelBuffer, longest_side: int) -> PixelBuffer:
    """Downscale ``buf`` so its longest side is at most ``longest_side``.

    Uses area resampling, which averages every source pixel that falls into
    a destination pixel and so gives the smoothest reduction OpenCV offers.
    Inputs that already fit are returned as-is (same object).
    """
    check_buffer(buf)
    h, w = buf.shape[:2]
    size = target_size(w, h, longest_side)
    if size is None:
        return buf

    out = cv2.resize(buf, size, interpolation=cv2.INTER_AREA)
    logger.info("Normalized %dx%d -> %dx%d", w, h, size[0], size[1])
    return out
