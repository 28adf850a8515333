from __future__ import annotations

from typing import AbstractSet, Dict, List, Set

from .fonts import FALLBACK_GLYPH, Font, Glyph


def reachable_glyphs(font: Font, codepoints: AbstractSet[int]) -> Set[int]:
    """Glyph indices referenced by ``codepoints``; dangling references reach the fallback."""

    reached: Set[int] = set()
    for codepoint in codepoints:
        index = font.glyph_index(codepoint)
        if index is not None:
            reached.add(index)
    return reached


def subset(font: Font, codepoints: AbstractSet[int], *, remove_fallback: bool = False) -> Font:
    """
    Return a new font holding only the glyphs reachable from ``codepoints``.

    Glyph order is preserved and every charmap value is rewritten through an
    old -> new translation table. The fallback glyph is always kept unless
    ``remove_fallback`` is set, in which case it survives only if some
    requested code point maps to it. The input font is left untouched.
    """

    keep = reachable_glyphs(font, codepoints)
    if not remove_fallback and font.glyphs:
        keep.add(FALLBACK_GLYPH)

    translation: Dict[int, int] = {}
    glyphs: List[Glyph] = []
    for index, glyph in enumerate(font.glyphs):
        if index in keep:
            translation[index] = len(glyphs)
            glyphs.append(glyph.copy())

    charmap: Dict[int, int] = {}
    for codepoint, index in font.charmap.items():
        if codepoint not in codepoints:
            continue
        if index >= len(font.glyphs):
            index = FALLBACK_GLYPH
        new_index = translation.get(index)
        if new_index is None:
            # only reachable when the source font has no glyphs at all
            continue
        charmap[codepoint] = new_index

    return Font(metrics=font.metrics, charmap=charmap, glyphs=glyphs)
