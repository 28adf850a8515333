from __future__ import annotations

from typing import List, Tuple

from PIL import Image

from .errors import PackingError
from .fonts import Font, Placement
from .geometry import Rect, rect_within
from .packing import PackingOracle, ShelfPacker, Size


def _place_single(font: Font, indices: List[int], oracle: PackingOracle) -> Tuple[Size, int]:
    sizes = [font.glyphs[idx].size for idx in indices]
    bounds, positions = oracle.pack_single(sizes)
    _check_count(len(indices), len(positions))
    if bounds[0] == 0 or bounds[1] == 0:
        raise PackingError("empty texture")
    for idx, (x, y) in zip(indices, positions):
        placement = Placement(x, y, 0)
        _check_inside(font, idx, placement, bounds)
        font.glyphs[idx].placement = placement
    return bounds, 1


def _place_pages(
    font: Font, indices: List[int], page_size: Size, oracle: PackingOracle
) -> Tuple[Size, int]:
    sizes = [font.glyphs[idx].size for idx in indices]
    count, placements = oracle.pack_multiple(page_size, sizes)
    _check_count(len(indices), len(placements))
    if count == 0:
        raise PackingError("empty texture")
    for idx, placement in zip(indices, placements):
        if not 0 <= placement.page < count:
            raise PackingError(
                f"glyph #{idx} assigned to page {placement.page}, but only {count} page(s) exist"
            )
        _check_inside(font, idx, placement, page_size)
        font.glyphs[idx].placement = placement
    # Pages are stacked vertically in the combined image.
    return (page_size[0], page_size[1] * count), count


def _check_count(submitted: int, returned: int) -> None:
    if returned != submitted:
        raise PackingError(f"packer returned {returned} placement(s) for {submitted} glyph(s)")


def _check_inside(font: Font, idx: int, placement: Placement, bounds: Size) -> None:
    glyph = font.glyphs[idx]
    rect = Rect(placement.x, placement.y, glyph.width, glyph.height)
    if not rect_within(rect, *bounds):
        raise PackingError(
            f"glyph #{idx} ({glyph.name}) placed at {rect.box()} outside its {bounds[0]}x{bounds[1]} page"
        )


def _combined_position(placement: Placement, page_size: Size | None) -> Tuple[int, int]:
    if page_size is None:
        return placement.x, placement.y
    return placement.x, placement.y + page_size[1] * placement.page


def pack(
    font: Font,
    page_size: Size | None = None,
    *,
    oracle: PackingOracle | None = None,
) -> Image.Image:
    """
    Assign every visible glyph a placement and composite the atlas.

    Without ``page_size`` all glyphs go into one region sized by the oracle.
    With it, glyphs are spread over as many ``page_size`` pages as needed;
    the returned image holds the pages stacked top to bottom and
    ``font.textures`` receives one crop per page. Glyphs without a bitmap
    are never submitted and keep ``placement = None``.
    """

    if oracle is None:
        oracle = ShelfPacker()
    for glyph in font.glyphs:
        glyph.placement = None
    indices = [idx for idx, _glyph in font.visible_glyphs()]
    if page_size is None:
        bounds, count = _place_single(font, indices, oracle)
    else:
        bounds, count = _place_pages(font, indices, page_size, oracle)

    image = Image.new("RGBA", bounds, (0, 0, 0, 0))
    for idx in indices:
        glyph = font.glyphs[idx]
        image.paste(glyph.bitmap, _combined_position(glyph.placement, page_size))

    if page_size is None:
        font.textures = [image]
    else:
        width, height = page_size
        font.textures = [
            image.crop((0, page * height, width, (page + 1) * height))
            for page in range(count)
        ]
    return image
