"""
Rectangle packing used to lay glyph bitmaps out in atlas pages.

The atlas code only talks to a :class:`PackingOracle`; :class:`ShelfPacker`
is the default implementation. It sorts rectangles by height and fills
horizontal shelves left to right, which is close enough to optimal for the
narrow height spread of glyphs from a single font. Rotation is never used.
"""

from __future__ import annotations

import math
from typing import List, Protocol, Sequence, Tuple

from .errors import PackingError
from .fonts import Placement

Size = Tuple[int, int]


class PackingOracle(Protocol):
    def pack_single(self, sizes: Sequence[Size]) -> Tuple[Size, List[Tuple[int, int]]]:
        """Pack everything into one region; returns its bounds and one position per size."""

    def pack_multiple(self, page_size: Size, sizes: Sequence[Size]) -> Tuple[int, List[Placement]]:
        """Pack into fixed-size pages; returns the page count and one placement per size."""


def _check_sizes(sizes: Sequence[Size]) -> None:
    for idx, (width, height) in enumerate(sizes):
        if width < 0 or height < 0:
            raise PackingError(f"rectangle #{idx} has negative size {width}x{height}")


def _shelf_order(sizes: Sequence[Size]) -> List[int]:
    return sorted(
        (idx for idx, (w, h) in enumerate(sizes) if w > 0 and h > 0),
        key=lambda idx: (-sizes[idx][1], -sizes[idx][0], idx),
    )


def _shelf_pack(sizes: Sequence[Size], order: Sequence[int], width: int) -> Tuple[List[Tuple[int, int]], Size]:
    positions: List[Tuple[int, int]] = [(0, 0)] * len(sizes)
    cursor_x = cursor_y = row_height = 0
    used_width = 0
    for idx in order:
        w, h = sizes[idx]
        if cursor_x > 0 and cursor_x + w > width:
            cursor_x = 0
            cursor_y += row_height
            row_height = 0
        positions[idx] = (cursor_x, cursor_y)
        cursor_x += w
        row_height = max(row_height, h)
        used_width = max(used_width, cursor_x)
    return positions, (used_width, cursor_y + row_height)


def _candidate_widths(sizes: Sequence[Size], order: Sequence[int]) -> List[int]:
    widest = max(sizes[idx][0] for idx in order)
    total_width = sum(sizes[idx][0] for idx in order)
    total_area = sum(sizes[idx][0] * sizes[idx][1] for idx in order)
    side = math.isqrt(total_area)
    candidates = {widest, total_width}
    for scale in (1.0, 1.25, 1.5, 2.0):
        candidates.add(int(math.ceil(side * scale)))
    power = 1
    while power < total_width:
        candidates.add(power)
        power *= 2
    return sorted(w for w in candidates if widest <= w <= total_width)


class ShelfPacker:
    def pack_single(self, sizes: Sequence[Size]) -> Tuple[Size, List[Tuple[int, int]]]:
        _check_sizes(sizes)
        order = _shelf_order(sizes)
        if not order:
            return (0, 0), [(0, 0)] * len(sizes)
        # The widest rectangle is always a candidate width.
        results = []
        for width in _candidate_widths(sizes, order):
            positions, bounds = _shelf_pack(sizes, order, width)
            results.append(((bounds[0] * bounds[1], max(bounds), width), positions, bounds))
        _score, positions, bounds = min(results, key=lambda item: item[0])
        return bounds, positions

    def pack_multiple(self, page_size: Size, sizes: Sequence[Size]) -> Tuple[int, List[Placement]]:
        _check_sizes(sizes)
        page_width, page_height = page_size
        if page_width <= 0 or page_height <= 0:
            raise PackingError(f"invalid page size {page_width}x{page_height}")
        for idx, (w, h) in enumerate(sizes):
            if w > page_width or h > page_height:
                raise PackingError(
                    f"rectangle #{idx} ({w}x{h}) does not fit in a {page_width}x{page_height} page"
                )
        placements: List[Placement] = [Placement(0, 0, 0)] * len(sizes)
        order = _shelf_order(sizes)
        if not order:
            return 0, placements
        page = cursor_x = cursor_y = row_height = 0
        for idx in order:
            w, h = sizes[idx]
            if cursor_x > 0 and cursor_x + w > page_width:
                cursor_x = 0
                cursor_y += row_height
                row_height = 0
            if cursor_y + h > page_height:
                page += 1
                cursor_x = cursor_y = row_height = 0
            placements[idx] = Placement(cursor_x, cursor_y, page)
            cursor_x += w
            row_height = max(row_height, h)
        return page + 1, placements
