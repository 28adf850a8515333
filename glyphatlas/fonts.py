from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

import numpy as np
from PIL import Image

# Largest glyph bitmap dimension accepted from the rasterizer.
MAX_GLYPH_SIZE = 16 * 1024
FALLBACK_GLYPH = 0


@dataclass(frozen=True)
class Metrics:
    ascender: int
    descender: int
    height: int


@dataclass(frozen=True)
class Placement:
    """Position of a glyph bitmap inside atlas page ``page``."""

    x: int
    y: int
    page: int = 0


@dataclass
class Glyph:
    size: Tuple[int, int]
    center: Tuple[int, int]
    advance: int
    name: str
    bitmap: Image.Image | None = None
    placement: Placement | None = None

    @property
    def width(self) -> int:
        return self.size[0]

    @property
    def height(self) -> int:
        return self.size[1]

    @property
    def has_bitmap(self) -> bool:
        return self.size[0] > 0 and self.size[1] > 0

    def gray_bytes(self) -> bytes:
        """Return the coverage of each pixel, which bitmaps keep in the alpha channel."""

        if self.bitmap is None:
            return b""
        pixels = np.asarray(self.bitmap.convert("RGBA"), dtype=np.uint8)
        return pixels[:, :, 3].tobytes()

    def copy(self) -> "Glyph":
        return Glyph(
            size=self.size,
            center=self.center,
            advance=self.advance,
            name=self.name,
            bitmap=self.bitmap.copy() if self.bitmap is not None else None,
            placement=self.placement,
        )


@dataclass
class Font:
    metrics: Metrics | None = None
    charmap: Dict[int, int] = field(default_factory=dict)
    glyphs: List[Glyph] = field(default_factory=list)
    textures: List[Image.Image] = field(default_factory=list)

    def glyph_index(self, codepoint: int) -> int | None:
        """Resolve a code point, treating dangling charmap values as the fallback glyph."""

        index = self.charmap.get(codepoint)
        if index is None:
            return None
        if index >= len(self.glyphs):
            return FALLBACK_GLYPH
        return index

    def visible_glyphs(self) -> List[Tuple[int, Glyph]]:
        return [(idx, glyph) for idx, glyph in enumerate(self.glyphs) if glyph.has_bitmap]


def bitmap_from_gray(width: int, height: int, data: bytes) -> Image.Image:
    """
    Expand a coverage buffer into white RGBA with straight alpha.

    Uncovered pixels are fully transparent black, so a saved atlas matches
    what an encoder writes for premultiplied ``(y, y, y, y)`` pixels.
    """

    gray = np.frombuffer(data, dtype=np.uint8).reshape(height, width)
    color = np.where(gray > 0, 255, 0).astype(np.uint8)
    rgba = np.stack([color, color, color, gray], axis=2)
    return Image.fromarray(np.ascontiguousarray(rgba))


def format_glyph_stream(font: Font) -> bytes:
    """Serialize ``font`` back into the rasterizer's line protocol."""

    lines: List[str] = []
    if font.metrics is not None:
        m = font.metrics
        lines.append(f"metrics {m.ascender} {m.descender} {m.height}")
    for codepoint in sorted(font.charmap):
        lines.append(f"char {codepoint} {font.charmap[codepoint]}")
    for glyph in font.glyphs:
        data = glyph.gray_bytes().hex() if glyph.has_bitmap else ""
        lines.append(
            f"glyph {glyph.size[0]} {glyph.size[1]} {glyph.center[0]} {glyph.center[1]} "
            f"{glyph.advance} {glyph.name} {data}"
        )
    return "".join(line + "\n" for line in lines).encode("utf-8")
