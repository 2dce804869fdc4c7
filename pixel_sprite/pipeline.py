"""
Photo-to-sprite pipeline.

Chains the pure stages in order:

1. Optional size normalization
2. Optional background removal (external collaborator)
3. Subject crop from the alpha mask
4. Downsample to sprite resolution
5. Palette quantization with ordered dithering
6. Outline extraction
7. Compositing onto a filled square canvas

Progress is reported through an optional callback taking a
:class:`ProgressStage` and a completion fraction; it carries no data.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Callable, Optional, Union

import numpy as np

from .buffer import PixelBuffer, Rect, as_rgba, decode_image, encode_png
from .collaborators import remove_background
from .composite import composite
from .config import PipelineConfig
from .crop import SUBJECT_ALPHA_THRESHOLD, crop, subject_bounds
from .downsample import downsample
from .normalize import normalize_size
from .outline import extract_outline
from .palettes import palette_array
from .quantize import quantize

logger = logging.getLogger(__name__)


class ProgressStage(str, Enum):
    IDLE = "idle"
    NORMALIZING = "normalizing"
    REMOVING_BACKGROUND = "removing_background"
    PIXELATING = "pixelating"
    DONE = "done"
    ERROR = "error"


ProgressCallback = Callable[[ProgressStage, float], None]
BackgroundRemover = Callable[[PixelBuffer], PixelBuffer]
PipelineInput = Union[np.ndarray, bytes, bytearray, str, Path, BinaryIO]


@dataclass
class SpriteResult:
    """Everything one pipeline run produced."""
    image: PixelBuffer          # final opaque square canvas
    sprite: PixelBuffer         # quantized sprite at grid resolution
    outline: PixelBuffer        # outline layer at grid resolution
    crop: Rect                  # subject box in the (normalized) input
    empty_subject: bool = False

    def to_png(self) -> bytes:
        return encode_png(self.image)


def _report(progress: Optional[ProgressCallback], stage: ProgressStage, fraction: float) -> None:
    if not progress:
        return
    try:
        progress(stage, fraction)
    except Exception as exc:  # pylint: disable=broad-except
        logger.warning("Progress callback failed at %s: %s", stage.value, exc)


def pixelate(buf: PixelBuffer, config: PipelineConfig) -> SpriteResult:
    """Turn an RGBA buffer (alpha = subject mask) into the final sprite canvas."""
    buf = as_rgba(buf)
    h, w = buf.shape[:2]

    bounds = subject_bounds(buf, SUBJECT_ALPHA_THRESHOLD)
    empty_subject = bounds is None
    if empty_subject:
        logger.warning("Empty subject in %dx%d image; falling back to full frame", w, h)
        bounds = Rect.full(w, h)
    cropped = crop(buf, bounds)

    small = downsample(cropped, config.block_size)
    sprite = quantize(small, palette_array(config.palette), config.effective_dither)
    outline = extract_outline(sprite, config.outline_thickness)

    image = composite(
        outline,
        sprite,
        bounds.w,
        bounds.h,
        config.subject_coverage,
        config.background_fill,
    )
    logger.info(
        "Pixelated crop %dx%d -> %dx%d sprite (%s) on %dpx canvas",
        bounds.w, bounds.h, sprite.shape[1], sprite.shape[0], config.palette, image.shape[0],
    )
    return SpriteResult(
        image=image,
        sprite=sprite,
        outline=outline,
        crop=bounds,
        empty_subject=empty_subject,
    )


def run_pipeline(
    image: PipelineInput,
    config: Optional[PipelineConfig] = None,
    background_remover: Optional[BackgroundRemover] = None,
    progress: Optional[ProgressCallback] = None,
) -> SpriteResult:
    """Run the full photo-to-sprite pipeline on one image.

    Args:
        image: RGBA/RGB array, encoded bytes, a path or a binary file object.
        config: Pipeline settings (defaults when omitted).
        background_remover: Replaces the rembg adapter when
            ``config.remove_background`` is set.
        progress: Optional ``(stage, fraction)`` callback.

    Any failure reports :attr:`ProgressStage.ERROR` and is re-raised as-is.
    """
    config = config or PipelineConfig()
    try:
        if isinstance(image, np.ndarray):
            buf = as_rgba(image)
        else:
            buf = decode_image(image)

        if config.normalize_enabled:
            _report(progress, ProgressStage.NORMALIZING, 0.15)
            buf = normalize_size(buf, config.normalize_longest_side)

        if config.remove_background:
            _report(progress, ProgressStage.REMOVING_BACKGROUND, 0.25)
            remover = background_remover or remove_background
            buf = as_rgba(remover(buf))

        _report(progress, ProgressStage.PIXELATING, 0.6 if config.remove_background else 0.4)
        result = pixelate(buf, config)
    except Exception:
        _report(progress, ProgressStage.ERROR, 0.0)
        raise

    _report(progress, ProgressStage.DONE, 1.0)
    return result


def render_png(
    image: PipelineInput,
    config: Optional[PipelineConfig] = None,
    background_remover: Optional[BackgroundRemover] = None,
    progress: Optional[ProgressCallback] = None,
) -> bytes:
    """:func:`run_pipeline` followed by PNG encoding of the final canvas."""
    result = run_pipeline(image, config, background_remover, progress)
    return result.to_png()
