from __future__ import annotations

import pytest

from glyphatlas.fonts import Font, Glyph, Metrics, bitmap_from_gray

SCENARIO_STREAM = (
    b"metrics 10 -2 12\n"
    b"char 65 1\n"
    b"glyph 0 0 0 0 0 .notdef \n"
    b"glyph 4 4 0 0 5 A ffffffffffffffffffffffffffffffff\n"
)


def make_glyph(width: int, height: int, fill: int = 0xFF, *, name: str = "g", advance: int | None = None) -> Glyph:
    bitmap = None
    if width > 0 and height > 0:
        bitmap = bitmap_from_gray(width, height, bytes([fill]) * (width * height))
    return Glyph(
        size=(width, height),
        center=(0, height),
        advance=width + 1 if advance is None else advance,
        name=name,
        bitmap=bitmap,
    )


def make_font(sizes, *, metrics: Metrics | None = Metrics(10, -2, 12)) -> Font:
    glyphs = [make_glyph(w, h, fill=0x10 + idx, name=f"g{idx}") for idx, (w, h) in enumerate(sizes)]
    charmap = {0x41 + idx: idx for idx in range(len(glyphs))}
    return Font(metrics=metrics, charmap=charmap, glyphs=glyphs)


@pytest.fixture
def scenario_stream() -> bytes:
    return SCENARIO_STREAM
