"""RGBA8 raster helpers shared by every pipeline stage.

A pixel buffer is a plain ``numpy`` array of shape ``(height, width, 4)``
and dtype ``uint8`` holding straight (not premultiplied) RGBA.  Stages take
one and hand back a fresh one; nothing keeps a reference across stages.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Tuple, Union

import numpy as np
from PIL import Image, ImageOps

from .errors import DecodeFailure, EncodeFailure

logger = logging.getLogger(__name__)

PixelBuffer = np.ndarray
BinaryMask = np.ndarray
ImageSource = Union[bytes, bytearray, str, Path, BinaryIO]


@dataclass(frozen=True)
class Rect:
    """Integer bounding box inside a buffer's coordinate space."""

    x: int
    y: int
    w: int
    h: int

    @classmethod
    def full(cls, width: int, height: int) -> "Rect":
        return cls(0, 0, int(width), int(height))

    def validate_within(self, width: int, height: int) -> None:
        if self.x < 0 or self.y < 0 or self.w < 1 or self.h < 1:
            raise ValueError(f"Degenerate rectangle: {self}")
        if self.x + self.w > width or self.y + self.h > height:
            raise ValueError(f"{self} exceeds a {width}x{height} buffer")

    def as_slices(self) -> Tuple[slice, slice]:
        return slice(self.y, self.y + self.h), slice(self.x, self.x + self.w)


def check_buffer(buf: PixelBuffer) -> None:
    """Raise ``ValueError`` unless ``buf`` is a well-formed RGBA8 buffer."""
    if not isinstance(buf, np.ndarray):
        raise ValueError(f"Expected a numpy array, got {type(buf).__name__}")
    if buf.ndim != 3 or buf.shape[2] != 4:
        raise ValueError(f"Expected an (H, W, 4) buffer, got shape {buf.shape}")
    if buf.dtype != np.uint8:
        raise ValueError(f"Expected uint8 pixels, got {buf.dtype}")
    if buf.shape[0] < 1 or buf.shape[1] < 1:
        raise ValueError(f"Empty buffer: {buf.shape[1]}x{buf.shape[0]}")


def as_rgba(img: np.ndarray) -> PixelBuffer:
    """Coerce a gray, RGB or RGBA uint8 array into an RGBA buffer."""
    if img.dtype != np.uint8:
        raise ValueError(f"Expected uint8 pixels, got {img.dtype}")
    if img.ndim == 2:
        img = np.dstack([img, img, img])
    if img.ndim != 3 or img.shape[2] not in (3, 4):
        raise ValueError(f"Unsupported image shape {img.shape}")
    if img.shape[2] == 3:
        alpha = np.full(img.shape[:2], 255, dtype=np.uint8)
        img = np.dstack([img, alpha])
    buf = np.ascontiguousarray(img)
    check_buffer(buf)
    return buf


def new_buffer(width: int, height: int, fill: Tuple[int, int, int, int] = (0, 0, 0, 0)) -> PixelBuffer:
    """Allocate a ``width`` x ``height`` buffer filled with one RGBA value."""
    if width < 1 or height < 1:
        raise ValueError(f"Buffer dimensions must be positive, got {width}x{height}")
    buf = np.empty((height, width, 4), dtype=np.uint8)
    buf[:, :] = fill
    return buf


def alpha_mask(buf: PixelBuffer, threshold: int) -> BinaryMask:
    """Boolean mask of pixels whose alpha is strictly above ``threshold``."""
    check_buffer(buf)
    return buf[:, :, 3] > threshold


def decode_image(source: ImageSource) -> PixelBuffer:
    """Decode an encoded image (bytes, path or file object) into RGBA."""
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(bytes(source))
    try:
        with Image.open(source) as pil:
            pil.load()
            # honour camera orientation the way browsers do
            pil = ImageOps.exif_transpose(pil)
            if pil.mode != "RGBA":
                pil = pil.convert("RGBA")
            img = np.array(pil, dtype=np.uint8)
    except (OSError, ValueError, SyntaxError, Image.DecompressionBombError) as exc:
        raise DecodeFailure(f"Failed to load image: {exc}") from exc

    logger.debug("Decoded %dx%d image", img.shape[1], img.shape[0])
    return as_rgba(img)


def encode_png(buf: PixelBuffer) -> bytes:
    """Serialize a buffer as PNG bytes."""
    check_buffer(buf)
    out = io.BytesIO()
    try:
        Image.fromarray(np.ascontiguousarray(buf)).save(out, format="PNG")
    except (OSError, ValueError) as exc:
        raise EncodeFailure(f"Failed to export image: {exc}") from exc
    return out.getvalue()


def save_png(buf: PixelBuffer, path: Union[str, Path]) -> Path:
    path = Path(path)
    data = encode_png(buf)
    try:
        path.write_bytes(data)
    except OSError as exc:
        raise EncodeFailure(f"Failed to write {path}: {exc}") from exc
    return path
