"""Fixed retro palettes and the ordered-dither matrix."""

from typing import Dict, List, Sequence, Tuple, Union

import numpy as np

RGB = Tuple[int, int, int]


# ---------------------------------------------------------------------------
# Named palettes.  Entry order is the quantizer's tie-break priority.
# ---------------------------------------------------------------------------
PALETTES: Dict[str, Tuple[RGB, ...]] = {
    "gb": (
        (15, 56, 15), (48, 98, 48), (139, 172, 15), (155, 188, 15),
    ),
    # NES-like subset (16)
    "nes": (
        (124, 124, 124), (0, 0, 252), (0, 0, 188), (68, 40, 188),
        (148, 0, 132), (168, 0, 32), (168, 16, 0), (136, 20, 0),
        (80, 48, 0), (0, 120, 0), (0, 104, 0), (0, 88, 0),
        (0, 64, 88), (0, 0, 0), (188, 188, 188), (248, 248, 248),
    ),
    "ega": (
        (0, 0, 0), (0, 0, 170), (0, 170, 0), (0, 170, 170),
        (170, 0, 0), (170, 0, 170), (170, 85, 0), (170, 170, 170),
        (85, 85, 85), (85, 85, 255), (85, 255, 85), (85, 255, 255),
        (255, 85, 85), (255, 85, 255), (255, 255, 85), (255, 255, 255),
    ),
    "c64": (
        (0, 0, 0), (255, 255, 255), (136, 0, 0), (170, 255, 238),
        (204, 68, 204), (0, 204, 85), (0, 0, 170), (238, 238, 119),
        (221, 136, 85), (102, 68, 0), (255, 119, 119), (51, 51, 51),
        (119, 119, 119), (170, 255, 102), (0, 136, 255), (187, 187, 187),
    ),
    "pico8": (
        (0, 0, 0), (29, 43, 83), (126, 37, 83), (0, 135, 81),
        (171, 82, 54), (95, 87, 79), (194, 195, 199), (255, 241, 232),
        (255, 0, 77), (255, 163, 0), (255, 236, 39), (0, 228, 54),
        (41, 173, 255), (131, 118, 156), (255, 119, 168), (255, 204, 170),
    ),
}

PALETTE_NAMES: List[str] = list(PALETTES)

BAYER_4X4 = np.array(
    [
        [0, 8, 2, 10],
        [12, 4, 14, 6],
        [3, 11, 1, 9],
        [15, 7, 13, 5],
    ],
    dtype=np.int32,
)
BAYER_4X4.setflags(write=False)


def get_palette(name: str) -> Tuple[RGB, ...]:
    try:
        return PALETTES[name]
    except KeyError:
        raise ValueError(
            f"Unknown palette: {name!r} (expected one of {', '.join(PALETTE_NAMES)})"
        ) from None


def palette_array(palette: Union[str, Sequence[Sequence[int]]]) -> np.ndarray:
    """Return a palette as a read-only ``(N, 3)`` float array.

    ``palette`` is either a registered name or an explicit sequence of RGB
    triples.
    """
    entries = get_palette(palette) if isinstance(palette, str) else palette
    arr = np.asarray(entries, dtype=np.float64)
    if arr.ndim != 2 or arr.shape[1] != 3 or arr.shape[0] == 0:
        raise ValueError(f"Palette must be a non-empty list of RGB triples, got shape {arr.shape}")
    if np.any(arr < 0) or np.any(arr > 255):
        raise ValueError("Palette entries must lie in [0, 255]")
    arr.setflags(write=False)
    return arr


def parse_hex_color(value: str) -> RGB:
    """Parse ``#rrggbb`` / ``rrggbb`` into an RGB triple."""
    text = value.strip().lstrip("#")
    if len(text) != 6:
        raise ValueError(f"Expected a 6-digit hex colour, got {value!r}")
    try:
        return (int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16))
    except ValueError:
        raise ValueError(f"Expected a 6-digit hex colour, got {value!r}") from None
