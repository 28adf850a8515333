from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from PIL import Image

from .asset import make_fallback_font, make_font_asset
from .atlas import pack
from .errors import ConfigError, OutputError
from .fonts import Font
from .grid import render_grid
from .logging import write_placement_log
from .packing import PackingOracle
from .stream import rasterize_font
from .subset import subset
from .texture import DITHER_MODES, SizedFormat, quantize_glyph

MIN_FONT_SIZE = 4
MAX_FONT_SIZE = 16 * 1024


@dataclass(frozen=True)
class Options:
    font: Path
    size: int
    rasterizer: Tuple[str, ...] = ("raster",)
    charset: frozenset[int] | None = None
    remove_notdef: bool = False
    mono: bool = False
    texture_size: Tuple[int, int] | None = None
    texture_format: SizedFormat | None = None
    dither: str = "none"
    out_grid: Path | None = None
    out_texture: Path | None = None
    out_data: Path | None = None
    out_fallback: Path | None = None
    out_placements: Path | None = None
    quiet: bool = False


def validate_options(options: Options) -> None:
    if not MIN_FONT_SIZE <= options.size <= MAX_FONT_SIZE:
        raise ConfigError(
            f"invalid size {options.size}, must be between {MIN_FONT_SIZE} and {MAX_FONT_SIZE}"
        )
    if not options.rasterizer:
        raise ConfigError("empty rasterizer command")
    if options.out_data and options.texture_format is None:
        raise ConfigError("the --format flag must be used when using --out-data")
    if options.texture_size is not None:
        if not (options.out_texture or options.out_data):
            raise ConfigError("cannot use --texture-size without --out-texture or --out-data")
        if options.texture_size[0] <= 0 or options.texture_size[1] <= 0:
            raise ConfigError("zero size")
    if options.dither not in DITHER_MODES:
        raise ConfigError(f"unknown dither mode {options.dither!r}")


def _write_bytes(data: bytes, destination: Path) -> None:
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(data)
    except OSError as exc:
        raise OutputError(f"cannot write {destination}: {exc}") from exc


def write_image(image: Image.Image, destination: Path) -> None:
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        image.save(destination, format="PNG")
    except OSError as exc:
        raise OutputError(f"cannot write {destination}: {exc}") from exc


def page_path(destination: Path, page: int) -> Path:
    return destination.with_name(f"{destination.stem}.{page}{destination.suffix}")


def run(options: Options, *, oracle: PackingOracle | None = None) -> Font:
    validate_options(options)

    def report(message: str) -> None:
        if not options.quiet:
            print(message)

    font = rasterize_font(options.rasterizer, options.font, options.size, mono=options.mono)
    report(f"[+] Rasterized {options.font} at {options.size}px: {len(font.glyphs)} glyph(s)")

    if options.charset is not None:
        font = subset(font, options.charset, remove_fallback=options.remove_notdef)
        report(f"[i] Subset to {len(font.glyphs)} glyph(s), {len(font.charmap)} character(s)")

    if options.texture_format is not None:
        for glyph in font.glyphs:
            quantize_glyph(glyph, options.texture_format, options.dither)
        report(f"[i] Quantized glyphs to {options.texture_format}")

    if options.out_grid:
        write_image(render_grid(font), options.out_grid)
        report(f"[+] Grid preview written to {options.out_grid}")

    if options.out_fallback:
        _write_bytes(make_fallback_font(font), options.out_fallback)
        report(f"[+] Fallback font written to {options.out_fallback}")

    if options.out_texture or options.out_data:
        image = pack(font, options.texture_size, oracle=oracle)
        report(f"[i] Packed {len(font.visible_glyphs())} glyph(s) into {len(font.textures)} page(s)")
        if options.out_texture:
            write_image(image, options.out_texture)
            report(f"[+] Texture written to {options.out_texture}")
            if len(font.textures) > 1:
                for page, texture in enumerate(font.textures):
                    write_image(texture, page_path(options.out_texture, page))
                report(f"[+] {len(font.textures)} texture page(s) written next to {options.out_texture}")
        if options.out_data:
            _write_bytes(make_font_asset(font, options.texture_format), options.out_data)
            report(f"[+] Font data written to {options.out_data}")

    if options.out_placements:
        try:
            write_placement_log(font, options.out_placements)
        except OSError as exc:
            raise OutputError(f"cannot write {options.out_placements}: {exc}") from exc
        report(f"[i] Placement log written to {options.out_placements}")
    return font
