from __future__ import annotations

from PIL import Image, ImageDraw

from .fonts import Font

GRID_COLUMNS = 16
CELL_BORDER = 1
CELL_MARGIN = 2
BORDER_COLOR = (0x80, 0x80, 0x80, 0xFF)
BACKGROUND = (0, 0, 0, 0xFF)


def render_grid(font: Font) -> Image.Image:
    """Lay every glyph out in a bordered grid for eyeballing the rasterizer output."""

    count = len(font.glyphs)
    cols = min(GRID_COLUMNS, count)
    rows = (count + cols - 1) // cols if cols else 0
    space = CELL_BORDER + CELL_MARGIN * 2
    cell_w = max((g.width for g in font.glyphs), default=0) + space
    cell_h = max((g.height for g in font.glyphs), default=0) + space

    image = Image.new("RGBA", (cols * cell_w + CELL_BORDER, rows * cell_h + CELL_BORDER), BACKGROUND)
    draw = ImageDraw.Draw(image)
    for idx, glyph in enumerate(font.glyphs):
        px = cell_w * (idx % cols)
        py = cell_h * (idx // cols)
        # Neighbouring cells share their border lines.
        draw.rectangle(
            [px, py, px + cell_w + CELL_BORDER - 1, py + cell_h + CELL_BORDER - 1],
            outline=BORDER_COLOR,
            width=CELL_BORDER,
        )
        if glyph.bitmap is not None:
            offset = CELL_BORDER + CELL_MARGIN
            image.alpha_composite(glyph.bitmap, dest=(px + offset, py + offset))
    return image
