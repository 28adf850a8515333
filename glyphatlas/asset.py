"""
Binary writers for the runtime font asset and the crash-screen fallback font.

All integers are big-endian. Font asset layout:

    header   4s magic "FONT", u16 version, u8 format, u8 size,
             i16 ascender, i16 descender, i16 line height,
             u16 charmap count, u16 glyph count, u16 texture count
    textures u16 width, u16 height, u32 data offset       (per page)
    charmap  u32 code point, u16 glyph, 2 pad             (sorted by code point)
    glyphs   u8 page (0xff: no bitmap), pad, u16 x, u16 y, u16 w, u16 h,
             i16 center x, i16 center y, i16 advance
    data     encoded texels per page, 8-byte aligned
"""

from __future__ import annotations

import struct
from typing import List

import numpy as np

from .errors import AssetError
from .fonts import FALLBACK_GLYPH, Font, Glyph
from .texture import FORMAT_CODES, SIZE_CODES, SizedFormat, encode_texels

FONT_MAGIC = b"FONT"
FONT_VERSION = 1
FALLBACK_MAGIC = b"FBFT"
NO_PAGE = 0xFF
DATA_ALIGN = 8
FALLBACK_CODEPOINTS = 256

FONT_HEADER = struct.Struct(">4sHBBhhhHHH")
TEXTURE_ENTRY = struct.Struct(">HHI")
CHARMAP_ENTRY = struct.Struct(">IHxx")
GLYPH_ENTRY = struct.Struct(">BxHHHHhhh")
FALLBACK_HEADER = struct.Struct(">4sBBH")


def _pack(layout: struct.Struct, what: str, *values) -> bytes:
    try:
        return layout.pack(*values)
    except struct.error as exc:
        raise AssetError(f"{what} does not fit the asset format: {values} ({exc})") from exc


def _align(value: int, alignment: int = DATA_ALIGN) -> int:
    return (value + alignment - 1) & ~(alignment - 1)


def _glyph_entry(index: int, glyph: Glyph) -> bytes:
    what = f"glyph #{index} ({glyph.name})"
    if glyph.has_bitmap:
        if glyph.placement is None:
            raise AssetError(f"{what} has no atlas placement; pack the font first")
        page, x, y = glyph.placement.page, glyph.placement.x, glyph.placement.y
        if page >= NO_PAGE:
            raise AssetError(f"{what} is on page {page}, the asset format allows {NO_PAGE}")
    else:
        page, x, y = NO_PAGE, 0, 0
    return _pack(
        GLYPH_ENTRY,
        what,
        page,
        x,
        y,
        glyph.size[0],
        glyph.size[1],
        glyph.center[0],
        glyph.center[1],
        glyph.advance,
    )


def make_font_asset(font: Font, fmt: SizedFormat) -> bytes:
    if font.metrics is None:
        raise AssetError("font has no metrics")
    if not font.textures:
        raise AssetError("font has no textures; pack the font first")
    metrics = font.metrics
    header = _pack(
        FONT_HEADER,
        "font header",
        FONT_MAGIC,
        FONT_VERSION,
        FORMAT_CODES[fmt.format],
        SIZE_CODES[fmt.size],
        metrics.ascender,
        metrics.descender,
        metrics.height,
        len(font.charmap),
        len(font.glyphs),
        len(font.textures),
    )
    charmap = b"".join(
        _pack(CHARMAP_ENTRY, f"char U+{cp:04X}", cp, font.charmap[cp]) for cp in sorted(font.charmap)
    )
    glyphs = b"".join(_glyph_entry(idx, glyph) for idx, glyph in enumerate(font.glyphs))

    texel_blobs = [encode_texels(texture, fmt) for texture in font.textures]
    offset = _align(len(header) + TEXTURE_ENTRY.size * len(font.textures) + len(charmap) + len(glyphs))
    table: List[bytes] = []
    data = bytearray()
    for page, (texture, blob) in enumerate(zip(font.textures, texel_blobs)):
        table.append(_pack(TEXTURE_ENTRY, f"texture #{page}", texture.width, texture.height, offset + len(data)))
        data.extend(blob)
        data.extend(b"\x00" * (_align(len(data)) - len(data)))

    body = header + b"".join(table) + charmap + glyphs
    return body + b"\x00" * (offset - len(body)) + bytes(data)


def _fallback_glyph(font: Font, codepoint: int) -> Glyph | None:
    index = font.glyph_index(codepoint)
    if index is None:
        index = FALLBACK_GLYPH
    if index >= len(font.glyphs):
        return None
    return font.glyphs[index]


def make_fallback_font(font: Font) -> bytes:
    """
    Build the 1-bit monospaced font used by the crash screen. Cells are one
    line high and as wide as the widest advance; the baseline sits
    ``ascender`` rows from the top and a glyph's center is measured up and
    right from the pen position on the baseline.
    """

    if font.metrics is None:
        raise AssetError("font has no metrics")
    glyphs = [_fallback_glyph(font, cp) for cp in range(FALLBACK_CODEPOINTS)]
    cell_w = max(1, max((g.advance for g in glyphs if g is not None), default=1))
    cell_h = max(1, font.metrics.height)
    header = _pack(FALLBACK_HEADER, "fallback cell size", FALLBACK_MAGIC, cell_w, cell_h, FALLBACK_CODEPOINTS)

    cells: List[bytes] = []
    for glyph in glyphs:
        cell = np.zeros((cell_h, cell_w), dtype=bool)
        if glyph is not None and glyph.bitmap is not None:
            mask = np.asarray(glyph.bitmap.convert("RGBA"), dtype=np.uint8)[:, :, 3] >= 0x80
            left = glyph.center[0]
            top = font.metrics.ascender - glyph.center[1]
            x0, y0 = max(left, 0), max(top, 0)
            x1, y1 = min(left + glyph.width, cell_w), min(top + glyph.height, cell_h)
            if x0 < x1 and y0 < y1:
                cell[y0:y1, x0:x1] = mask[y0 - top : y1 - top, x0 - left : x1 - left]
        cells.append(np.packbits(cell, axis=1).tobytes())
    return header + b"".join(cells)
