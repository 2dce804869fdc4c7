"""Command line interface for the photo-to-sprite pipeline.

Usage:
    python -m pixel_sprite.cli pixelate <inputs...> -o <dir>  [--palette pico8] [--block-size 8]
    python -m pixel_sprite.cli edit     <input> -o <file>     [--prompt TEXT]
    python -m pixel_sprite.cli palettes

Subcommands:
  pixelate — Turn photos into pixel-art sprites on a square canvas
  edit     — Send one image to the remote image-edit service
  palettes — List the built-in palettes

Settings can be loaded from a JSON file (``--config``) holding the fields
of ``PipelineConfig``; explicit flags override it.
"""

import argparse
import csv
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .buffer import save_png
from .collaborators import DEFAULT_EDIT_MODEL, DEFAULT_EDIT_SIZE, edit_image
from .config import PipelineConfig
from .errors import PixelSpriteError
from .palettes import PALETTE_NAMES, PALETTES, parse_hex_color
from .pipeline import ProgressStage, run_pipeline

logger = logging.getLogger("pixel_sprite")

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".webp", ".tif", ".tiff"}

METRICS_FIELDS = [
    "image",
    "crop_x",
    "crop_y",
    "crop_w",
    "crop_h",
    "sprite_w",
    "sprite_h",
    "canvas",
    "palette",
    "empty_subject",
    "output_path",
]


def _setup_logging(debug: bool = False):
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _gather_images(inputs: List[str], recursive: bool = False) -> List[Path]:
    """Collect image paths from file/directory arguments."""
    seen = set()
    paths = []
    for inp in inputs:
        p = Path(inp)
        if p.is_file():
            candidates = [p]
        elif p.is_dir():
            candidates = sorted(p.rglob("*") if recursive else p.iterdir())
        else:
            logger.warning("Input path not found: %s", p)
            continue
        for candidate in candidates:
            if not candidate.is_file() or candidate.suffix.lower() not in IMAGE_EXTENSIONS:
                continue
            resolved = candidate.resolve()
            if resolved not in seen:
                seen.add(resolved)
                paths.append(resolved)
    return paths


def _log_progress(stage: ProgressStage, fraction: float) -> None:
    logger.debug("  %s (%d%%)", stage.value, round(fraction * 100))


def build_config(args) -> PipelineConfig:
    """Merge ``--config`` file values with explicit command line flags."""
    base = PipelineConfig.from_json(args.config) if args.config else PipelineConfig()
    fill = parse_hex_color(args.fill) if args.fill else None
    return base.with_overrides(
        normalize_enabled=args.normalize,
        normalize_longest_side=args.longest_side,
        remove_background=args.remove_background,
        block_size=args.block_size,
        palette=args.palette,
        dither_enabled=args.dither,
        dither_strength=args.dither_strength,
        outline_thickness=args.outline,
        subject_coverage=args.coverage,
        background_fill=fill,
    )


def _write_metrics_csv(records: List[dict], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="") as csvfile:
        writer = csv.DictWriter(csvfile, fieldnames=METRICS_FIELDS)
        writer.writeheader()
        writer.writerows(records)
    logger.info("Metrics written to %s", path)


# ---- Subcommand: pixelate ----

def cmd_pixelate(args):
    try:
        config = build_config(args)
    except (OSError, ValueError) as e:
        logger.error("Invalid configuration: %s", e)
        return 2

    image_paths = _gather_images(args.inputs, recursive=args.recursive)
    if not image_paths:
        logger.error("No images found in %s", args.inputs)
        return 1

    output_dir = Path(args.output).resolve()
    output_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Found %d image(s) to process -> %s", len(image_paths), output_dir)

    records = []
    failed = 0
    for img_path in image_paths:
        logger.info("Pixelating %s", img_path.name)
        try:
            result = run_pipeline(img_path, config, progress=_log_progress)
            out_path = save_png(result.image, output_dir / f"{img_path.stem}_sprite.png")
        except PixelSpriteError as e:
            logger.error("Failed to process %s: %s: %s", img_path.name, e.kind, e)
            failed += 1
            continue

        records.append({
            "image": img_path.name,
            "crop_x": result.crop.x,
            "crop_y": result.crop.y,
            "crop_w": result.crop.w,
            "crop_h": result.crop.h,
            "sprite_w": result.sprite.shape[1],
            "sprite_h": result.sprite.shape[0],
            "canvas": result.image.shape[0],
            "palette": config.palette,
            "empty_subject": "yes" if result.empty_subject else "no",
            "output_path": str(out_path),
        })

    if records and not args.no_metrics:
        metrics_path = Path(args.metrics_path) if args.metrics_path else output_dir / "metrics.csv"
        _write_metrics_csv(records, metrics_path)

    logger.info("Done: %d written, %d failed", len(records), failed)
    return 0 if records else 1


# ---- Subcommand: edit ----

def cmd_edit(args):
    src = Path(args.input)
    try:
        image_bytes = src.read_bytes()
    except OSError as e:
        logger.error("Cannot read %s: %s", src, e)
        return 1

    try:
        data = edit_image(
            image_bytes,
            prompt=args.prompt or "",
            model=args.model,
            size=args.size,
            filename=src.name,
        )
    except PixelSpriteError as e:
        logger.error("%s: %s", e.kind, e)
        return 1

    out = Path(args.output)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(data)
    logger.info("Edited image written to %s", out)
    return 0


# ---- Subcommand: palettes ----

def cmd_palettes(args):
    for name in PALETTE_NAMES:
        print(f"{name}\t{len(PALETTES[name])} colours")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pixel-sprite",
        description="Turn photos into retro pixel-art sprites.",
    )
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    sub = parser.add_subparsers(dest="command", required=True)

    # -- pixelate --
    p_pix = sub.add_parser("pixelate", help="Convert images into pixel-art sprites")
    p_pix.add_argument("inputs", nargs="+", help="Image files or directories")
    p_pix.add_argument("-o", "--output", required=True, help="Output directory")
    p_pix.add_argument("--recursive", "-r", action="store_true")
    p_pix.add_argument("--config", default=None, help="JSON file with PipelineConfig fields")
    p_pix.add_argument("--palette", default=None, choices=PALETTE_NAMES,
                       help="Target palette (default: pico8)")
    p_pix.add_argument("--block-size", type=int, default=None,
                       help="Source pixels per sprite cell (default: 8)")
    p_pix.add_argument("--no-dither", action="store_false", dest="dither", default=None,
                       help="Disable ordered dithering")
    p_pix.add_argument("--dither-strength", type=float, default=None,
                       help="Dither strength in [0, 1] (default: 0.2)")
    p_pix.add_argument("--outline", type=int, default=None,
                       help="Outline thickness in sprite cells, 0 disables (default: 1)")
    p_pix.add_argument("--coverage", type=float, default=None,
                       help="Fraction of the canvas the sprite spans (default: 0.6)")
    p_pix.add_argument("--fill", default=None,
                       help="Background colour as hex, e.g. '#ed8d26'")
    p_pix.add_argument("--keep-background", action="store_false", dest="remove_background",
                       default=None, help="Skip background removal")
    p_pix.add_argument("--no-normalize", action="store_false", dest="normalize", default=None,
                       help="Do not pre-shrink large inputs")
    p_pix.add_argument("--longest-side", type=int, default=None,
                       help="Normalization limit in pixels (default: 512)")
    p_pix.add_argument("--metrics-path", default=None,
                       help="CSV summary path (default: <output>/metrics.csv)")
    p_pix.add_argument("--no-metrics", action="store_true", help="Do not write the CSV summary")
    p_pix.set_defaults(func=cmd_pixelate)

    # -- edit --
    p_edit = sub.add_parser("edit", help="Restyle an image with the remote edit service")
    p_edit.add_argument("input", help="Source image")
    p_edit.add_argument("-o", "--output", required=True, help="Output PNG path")
    p_edit.add_argument("--prompt", default=None, help="Edit instruction")
    p_edit.add_argument("--model", default=DEFAULT_EDIT_MODEL)
    p_edit.add_argument("--size", default=DEFAULT_EDIT_SIZE)
    p_edit.set_defaults(func=cmd_edit)

    # -- palettes --
    p_pal = sub.add_parser("palettes", help="List built-in palettes")
    p_pal.set_defaults(func=cmd_palettes)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.debug)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
