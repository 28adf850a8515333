from __future__ import annotations

from pathlib import Path
from typing import List

from .fonts import Font


def write_placement_log(font: Font, destination: Path) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    lines: List[str] = []
    for page, texture in enumerate(font.textures):
        lines.append(f"page {page} size={texture.width}x{texture.height}")
    reverse: dict[int, List[int]] = {}
    for codepoint, index in font.charmap.items():
        reverse.setdefault(index, []).append(codepoint)
    for idx, glyph in enumerate(font.glyphs):
        chars = " ".join(f"U+{cp:04X}" for cp in sorted(reverse.get(idx, ())))
        entry = f"#{idx:04d} {glyph.name:<16} size={glyph.width}x{glyph.height} advance={glyph.advance}"
        if glyph.placement is None:
            entry += " unplaced"
        else:
            p = glyph.placement
            entry += f" page={p.page} pos=({p.x},{p.y})"
        if chars:
            entry += f" chars={chars}"
        lines.append(entry)
    destination.write_text("\n".join(lines) + ("\n" if lines else ""), encoding="utf-8")
