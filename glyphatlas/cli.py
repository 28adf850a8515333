#!/usr/bin/env python3
"""
Rasterize a font and pack its glyphs into a texture atlas for the game runtime.

Example:
    glyphatlas --font fonts/Serif.ttf --size 16 --charset fonts/latin1.txt \
        --format ia.4 --texture-size 64:64 \
        --out-texture build/serif16.png --out-data build/serif16.font
"""

from __future__ import annotations

import argparse
import os
import re
import shlex
import sys
from pathlib import Path
from typing import Sequence, Tuple

from .charset import read_charset
from .errors import ConfigError, GlyphAtlasError
from .pipeline import Options, run, validate_options
from .texture import DITHER_MODES, SizedFormat

RASTERIZER_ENV = "GLYPHATLAS_RASTERIZER"
DEFAULT_RASTERIZER = "raster"

_DIMENSION_RE = re.compile(r"[0-9]+")


def parse_texture_size(text: str) -> Tuple[int, int]:
    width_text, sep, height_text = text.partition(":")
    if not sep:
        raise ConfigError(f"invalid size {text!r}: missing ':'")
    if not _DIMENSION_RE.fullmatch(width_text):
        raise ConfigError(f"invalid size {text!r}: invalid width {width_text!r}")
    if not _DIMENSION_RE.fullmatch(height_text):
        raise ConfigError(f"invalid size {text!r}: invalid height {height_text!r}")
    width, height = int(width_text), int(height_text)
    if width == 0 or height == 0:
        raise ConfigError("zero size")
    return width, height


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Rasterize a font into a packed glyph atlas.")
    parser.add_argument("--font", type=Path, help="Font to rasterize")
    parser.add_argument("--size", type=int, help="Size to rasterize the font at, in pixels")
    parser.add_argument("--charset", type=Path, help="Path to a character set file")
    parser.add_argument("--remove-notdef", action="store_true", help="Remove the .notdef glyph")
    parser.add_argument("--mono", action="store_true", help="Render monochrome (1-bit) instead of grayscale")
    parser.add_argument(
        "--texture-size",
        metavar="WIDTH:HEIGHT",
        help="Pack into multiple regions of size WIDTH:HEIGHT",
    )
    parser.add_argument("--format", dest="texture_format", help="Use FORMAT.SIZE texture format (e.g. i.4, ia.8)")
    parser.add_argument("--dither", choices=DITHER_MODES, default="none", help="Dithering used when quantizing")
    parser.add_argument("--out-grid", type=Path, help="Grid preview output file")
    parser.add_argument("--out-texture", type=Path, help="Output texture")
    parser.add_argument("--out-data", type=Path, help="Output font data file")
    parser.add_argument("--out-fallback", type=Path, help="Output for fallback font data")
    parser.add_argument("--out-placements", type=Path, help="Write a per-glyph placement report")
    parser.add_argument(
        "--rasterizer",
        default=os.environ.get(RASTERIZER_ENV, DEFAULT_RASTERIZER),
        help=f"Rasterizer command (default: ${RASTERIZER_ENV} or {DEFAULT_RASTERIZER!r})",
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Only report errors")
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    args, extra = _build_parser().parse_known_args(argv)
    if extra:
        raise ConfigError(f"unexpected argument: {extra[0]!r}")
    return args


def build_options(args: argparse.Namespace) -> Options:
    if args.font is None:
        raise ConfigError("missing required flag --font")
    if args.size is None:
        raise ConfigError("missing required flag --size")
    texture_size = parse_texture_size(args.texture_size) if args.texture_size else None
    texture_format = SizedFormat.parse(args.texture_format) if args.texture_format else None
    charset = read_charset(args.charset) if args.charset else None
    options = Options(
        font=args.font,
        size=args.size,
        rasterizer=tuple(shlex.split(args.rasterizer)),
        charset=charset,
        remove_notdef=args.remove_notdef,
        mono=args.mono,
        texture_size=texture_size,
        texture_format=texture_format,
        dither=args.dither,
        out_grid=args.out_grid,
        out_texture=args.out_texture,
        out_data=args.out_data,
        out_fallback=args.out_fallback,
        out_placements=args.out_placements,
        quiet=args.quiet,
    )
    validate_options(options)
    return options


def main(argv: Sequence[str] | None = None) -> int:
    try:
        options = build_options(parse_args(argv))
        run(options)
    except GlyphAtlasError as exc:
        print(f"Error ({exc.phase}): {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
