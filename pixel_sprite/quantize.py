"""Palette quantization with optional ordered (Bayer) dithering."""

import logging
from typing import Sequence, Union

import numpy as np

from .buffer import PixelBuffer, check_buffer
from .palettes import BAYER_4X4, palette_array

logger = logging.getLogger(__name__)

# Pixels below this alpha are treated as outside the subject.
TRANSPARENT_BELOW = 5

# Full-strength dither shifts a channel by up to this many levels.
DITHER_AMPLITUDE = 32.0

# Squared-distance weights, green > red > blue.
CHANNEL_WEIGHTS = (0.3, 0.59, 0.11)

# Rec. 709 luma used to scale the dither nudge per channel.
LUMA_WEIGHTS = (0.2126, 0.7152, 0.0722)

PaletteLike = Union[str, Sequence[Sequence[int]], np.ndarray]


def nearest_palette_index(rgb: np.ndarray, palette: PaletteLike) -> np.ndarray:
    """Index of the closest palette entry for every RGB triple in ``rgb``.

    ``rgb`` has shape ``(..., 3)``; the result has shape ``(...)``.
    Distance is ``0.3*dr^2 + 0.59*dg^2 + 0.11*db^2``.  On ties the entry
    that comes first in the palette wins.
    """
    pal = palette if isinstance(palette, np.ndarray) else palette_array(palette)
    rgb = np.asarray(rgb, dtype=np.float64)
    flat = rgb.reshape(-1, 3)

    wr, wg, wb = CHANNEL_WEIGHTS
    dr = flat[:, 0:1] - pal[None, :, 0]
    dg = flat[:, 1:2] - pal[None, :, 1]
    db = flat[:, 2:3] - pal[None, :, 2]
    dist = wr * dr * dr + wg * dg * dg + wb * db * db

    # argmin returns the first minimum, which is the tie-break we want
    return np.argmin(dist, axis=1).reshape(rgb.shape[:-1])


def dither_offsets(height: int, width: int, strength: float) -> np.ndarray:
    """Signed per-pixel dither offsets from the 4x4 Bayer matrix."""
    amp = min(max(float(strength), 0.0), 1.0) * DITHER_AMPLITUDE
    ys = np.arange(height)[:, None] % 4
    xs = np.arange(width)[None, :] % 4
    t = BAYER_4X4[ys, xs] / 15.0
    return (t - 0.5) * 2.0 * amp


def apply_dither(rgb: np.ndarray, strength: float) -> np.ndarray:
    """Nudge ``(H, W, 3)`` float colours by the Bayer offset.

    Each channel moves by ``offset * c / (Y + 1)``, which keeps the channel
    ratios (and so roughly the hue) while shifting brightness.  Results are
    clamped to ``[0, 255]`` but not rounded.
    """
    h, w = rgb.shape[:2]
    offset = dither_offsets(h, w, strength)[..., None]
    lr, lg, lb = LUMA_WEIGHTS
    lum = lr * rgb[..., 0] + lg * rgb[..., 1] + lb * rgb[..., 2]
    return np.clip(rgb + offset * (rgb / (lum[..., None] + 1)), 0.0, 255.0)


def quantize(buf: PixelBuffer, palette: PaletteLike, dither_strength: float = 0.0) -> PixelBuffer:
    """Map every visible pixel of ``buf`` onto ``palette``.

    Args:
        buf: RGBA sprite buffer.
        palette: Palette name or explicit RGB triples.
        dither_strength: 0 disables dithering; clamped to ``[0, 1]``.

    Returns:
        New buffer of the same size.  Pixels with alpha below 5 become
        ``(0, 0, 0, 0)``; all others are an opaque palette colour.
    """
    check_buffer(buf)
    pal = palette if isinstance(palette, np.ndarray) else palette_array(palette)
    h, w = buf.shape[:2]

    rgb = buf[:, :, :3].astype(np.float64)
    if dither_strength > 0:
        rgb = apply_dither(rgb, dither_strength)

    idx = nearest_palette_index(rgb, pal)

    out = np.empty((h, w, 4), dtype=np.uint8)
    out[:, :, :3] = pal.astype(np.uint8)[idx]
    out[:, :, 3] = 255
    out[buf[:, :, 3] < TRANSPARENT_BELOW] = 0

    logger.debug(
        "Quantized %dx%d to %d colours (dither=%.2f)", w, h, len(pal), max(0.0, dither_strength)
    )
    return out
