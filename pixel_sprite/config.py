"""Pipeline configuration: the complete set of tunable parameters."""

import json
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Tuple, Union

from .palettes import PALETTES, RGB, parse_hex_color

# Default canvas colour.
DEFAULT_BACKGROUND_FILL: RGB = (237, 141, 38)  # #ed8d26

DEFAULT_LONGEST_SIDE = 512
DEFAULT_BLOCK_SIZE = 8
DEFAULT_COVERAGE = 0.6


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable per-invocation settings for :func:`run_pipeline`."""

    # --- Input normalization ---
    normalize_enabled: bool = True
    normalize_longest_side: int = DEFAULT_LONGEST_SIDE

    # --- Subject isolation ---
    remove_background: bool = True

    # --- Sprite ---
    block_size: int = DEFAULT_BLOCK_SIZE
    palette: str = "pico8"
    dither_enabled: bool = True
    dither_strength: float = 0.2
    outline_thickness: int = 1

    # --- Canvas ---
    subject_coverage: float = DEFAULT_COVERAGE
    background_fill: Tuple[int, int, int] = DEFAULT_BACKGROUND_FILL

    def __post_init__(self):
        fill = self.background_fill
        if isinstance(fill, str):
            fill = parse_hex_color(fill)
        fill = tuple(fill)
        if len(fill) != 3 or any(not 0 <= int(c) <= 255 for c in fill):
            raise ValueError(f"background_fill must be an RGB triple, got {self.background_fill!r}")
        # frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "background_fill", tuple(int(c) for c in fill))

        if self.block_size < 1:
            raise ValueError(f"block_size must be >= 1, got {self.block_size}")
        if self.normalize_longest_side < 1:
            raise ValueError(
                f"normalize_longest_side must be >= 1, got {self.normalize_longest_side}"
            )
        if not 0.0 <= self.dither_strength <= 1.0:
            raise ValueError(f"dither_strength must lie in [0, 1], got {self.dither_strength}")
        if self.outline_thickness < 0:
            raise ValueError(f"outline_thickness must be >= 0, got {self.outline_thickness}")
        if not 0.0 < self.subject_coverage <= 1.0:
            raise ValueError(f"subject_coverage must lie in (0, 1], got {self.subject_coverage}")
        if self.palette not in PALETTES:
            raise ValueError(f"Unknown palette: {self.palette!r}")

    @property
    def effective_dither(self) -> float:
        """Dither strength actually applied (0 when dithering is off)."""
        return float(self.dither_strength) if self.dither_enabled else 0.0

    def with_overrides(self, **changes) -> "PipelineConfig":
        changes = {k: v for k, v in changes.items() if v is not None}
        return replace(self, **changes)

    def to_dict(self) -> dict:
        d = {}
        for f in fields(self):
            v = getattr(self, f.name)
            d[f.name] = list(v) if isinstance(v, tuple) else v
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "PipelineConfig":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in d.items() if k in known})

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "PipelineConfig":
        with open(path, encoding="utf-8") as f:
            return cls.from_dict(json.load(f))
