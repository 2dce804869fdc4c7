"""Crop a buffer to the bounding box of its visible subject."""

import logging
from typing import Optional

import numpy as np

from .buffer import PixelBuffer, Rect, alpha_mask, check_buffer
from .errors import EmptySubject

logger = logging.getLogger(__name__)

# Alpha must exceed this for a pixel to count as subject.
SUBJECT_ALPHA_THRESHOLD = 16


def subject_bounds(buf: PixelBuffer, alpha_threshold: int = SUBJECT_ALPHA_THRESHOLD) -> Optional[Rect]:
    """Inclusive bounding box of pixels with alpha above ``alpha_threshold``.

    Returns ``None`` when no pixel qualifies.
    """
    mask = alpha_mask(buf, alpha_threshold)
    rows = np.flatnonzero(mask.any(axis=1))
    if rows.size == 0:
        return None
    cols = np.flatnonzero(mask.any(axis=0))

    min_y, max_y = int(rows[0]), int(rows[-1])
    min_x, max_x = int(cols[0]), int(cols[-1])
    return Rect(
        min_x,
        min_y,
        max(1, max_x - min_x + 1),
        max(1, max_y - min_y + 1),
    )


def subject_rect(
    buf: PixelBuffer,
    alpha_threshold: int = SUBJECT_ALPHA_THRESHOLD,
    fallback: bool = True,
) -> Rect:
    """Like :func:`subject_bounds` but never returns ``None``.

    With ``fallback`` an empty subject yields the full-frame rectangle;
    otherwise :class:`EmptySubject` is raised.
    """
    bounds = subject_bounds(buf, alpha_threshold)
    if bounds is not None:
        return bounds
    h, w = buf.shape[:2]
    if not fallback:
        raise EmptySubject(f"No pixel has alpha above {alpha_threshold} in a {w}x{h} image")
    logger.warning("No subject found (alpha > %d); using full %dx%d frame", alpha_threshold, w, h)
    return Rect.full(w, h)


def crop(buf: PixelBuffer, rect: Rect) -> PixelBuffer:
    """Copy the pixels inside ``rect`` into a new buffer (no resampling)."""
    check_buffer(buf)
    rect.validate_within(buf.shape[1], buf.shape[0])
    ys, xs = rect.as_slices()
    return buf[ys, xs].copy()
