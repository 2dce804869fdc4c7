"""Reduce a cropped subject to sprite resolution."""

import logging
from typing import Tuple

import cv2

from .buffer import PixelBuffer, check_buffer

logger = logging.getLogger(__name__)

# Smallest sprite grid produced on either axis.
MIN_SPRITE_CELLS = 8


def sprite_size(width: int, height: int, block_size: int) -> Tuple[int, int]:
    """Sprite grid dimensions for a ``width`` x ``height`` crop."""
    if block_size < 1:
        raise ValueError(f"block_size must be >= 1, got {block_size}")
    return (
        max(MIN_SPRITE_CELLS, width // block_size),
        max(MIN_SPRITE_CELLS, height // block_size),
    )


def downsample(buf: PixelBuffer, block_size: int) -> PixelBuffer:
    """Nearest-neighbour reduction so each sprite cell covers ~``block_size`` pixels.

    Each destination pixel copies the source pixel under its centre; there
    is no averaging, so hard edges survive.  Crops smaller than
    ``8 * block_size`` are stretched up to the 8-cell minimum the same way.
    """
    check_buffer(buf)
    h, w = buf.shape[:2]
    sw, sh = sprite_size(w, h, block_size)
    small = cv2.resize(buf, (sw, sh), interpolation=cv2.INTER_NEAREST_EXACT)
    logger.debug("Downsampled %dx%d -> %dx%d (block=%d)", w, h, sw, sh, block_size)
    return small
