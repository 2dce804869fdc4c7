"""Final canvas assembly: background, outline, then the upscaled sprite."""

import logging
import math
from typing import Tuple

import cv2
import numpy as np

from .buffer import PixelBuffer, Rect, check_buffer, new_buffer

logger = logging.getLogger(__name__)


def placement(
    crop_w: int,
    crop_h: int,
    small_w: int,
    small_h: int,
    coverage: float,
) -> Tuple[int, Rect]:
    """Compute the canvas side and where the upscaled sprite lands on it.

    The canvas is ``max(crop_w, crop_h)`` square.  The sprite is scaled
    uniformly so its longest side spans ``floor(square * coverage)`` pixels
    and is centred (rounding the offsets down).
    """
    if not 0.0 < coverage <= 1.0:
        raise ValueError(f"coverage must lie in (0, 1], got {coverage}")
    if min(crop_w, crop_h, small_w, small_h) < 1:
        raise ValueError("Crop and sprite dimensions must be positive")

    square = max(crop_w, crop_h)
    scaled_longest = max(1, int(square * coverage))
    small_longest = max(small_w, small_h)
    # floor of a float k, so an exact ratio can land one pixel short
    k = scaled_longest / small_longest
    target_w = max(1, int(math.floor(small_w * k)))
    target_h = max(1, int(math.floor(small_h * k)))
    offset_x = (square - target_w) // 2
    offset_y = (square - target_h) // 2
    return square, Rect(offset_x, offset_y, target_w, target_h)


def upscale_nearest(buf: PixelBuffer, width: int, height: int) -> PixelBuffer:
    """Resize with nearest-neighbour sampling only."""
    check_buffer(buf)
    if buf.shape[1] == width and buf.shape[0] == height:
        return buf.copy()
    return cv2.resize(buf, (width, height), interpolation=cv2.INTER_NEAREST_EXACT)


def alpha_over(dst: PixelBuffer, src: PixelBuffer, x: int, y: int) -> None:
    """Blend ``src`` onto the opaque ``dst`` at ``(x, y)``, in place."""
    h, w = src.shape[:2]
    Rect(x, y, w, h).validate_within(dst.shape[1], dst.shape[0])
    region = dst[y:y + h, x:x + w]

    alpha = src[:, :, 3:4].astype(np.float32) / 255.0
    blended = src[:, :, :3].astype(np.float32) * alpha + region[:, :, :3].astype(np.float32) * (1.0 - alpha)
    region[:, :, :3] = np.clip(np.rint(blended), 0, 255).astype(np.uint8)


def composite(
    outline: PixelBuffer,
    sprite: PixelBuffer,
    crop_w: int,
    crop_h: int,
    coverage: float,
    fill: Tuple[int, int, int],
) -> PixelBuffer:
    """Draw ``outline`` and then ``sprite`` centred on a filled square canvas.

    Args:
        outline: Outline layer at sprite resolution.
        sprite: Quantized sprite, same size as ``outline``.
        crop_w, crop_h: Size of the subject crop; sets the canvas side.
        coverage: Fraction of the canvas side the sprite's longest side spans.
        fill: Opaque background colour.

    Returns:
        Opaque ``square`` x ``square`` RGBA canvas.
    """
    check_buffer(outline)
    check_buffer(sprite)
    if outline.shape != sprite.shape:
        raise ValueError(f"Outline {outline.shape} and sprite {sprite.shape} sizes differ")

    small_h, small_w = sprite.shape[:2]
    square, rect = placement(crop_w, crop_h, small_w, small_h, coverage)

    canvas = new_buffer(square, square, (*fill, 255))
    # outline strictly beneath the sprite
    alpha_over(canvas, upscale_nearest(outline, rect.w, rect.h), rect.x, rect.y)
    alpha_over(canvas, upscale_nearest(sprite, rect.w, rect.h), rect.x, rect.y)

    logger.debug(
        "Composited %dx%d sprite at (%d, %d) size %dx%d on %dpx canvas",
        small_w, small_h, rect.x, rect.y, rect.w, rect.h, square,
    )
    return canvas
