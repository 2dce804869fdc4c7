"""Public interface for the pixel-sprite toolkit."""

from __future__ import annotations

from .buffer import Rect, decode_image, encode_png, save_png
from .config import PipelineConfig
from .errors import (
    CollaboratorFailure,
    DecodeFailure,
    EmptySubject,
    EncodeFailure,
    PixelSpriteError,
)
from .palettes import PALETTES, get_palette
from .pipeline import ProgressStage, SpriteResult, pixelate, render_png, run_pipeline

__all__ = [
    "CollaboratorFailure",
    "DecodeFailure",
    "EmptySubject",
    "EncodeFailure",
    "PALETTES",
    "PipelineConfig",
    "PixelSpriteError",
    "ProgressStage",
    "Rect",
    "SpriteResult",
    "decode_image",
    "encode_png",
    "get_palette",
    "pixelate",
    "render_png",
    "run_pipeline",
    "save_png",
]
