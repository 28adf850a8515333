from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def area(self) -> int:
        return self.width * self.height

    def box(self) -> Tuple[int, int, int, int]:
        """Pillow-style ``(left, upper, right, lower)`` box."""

        return self.x, self.y, self.right, self.bottom


def rects_overlap(a: Rect, b: Rect) -> bool:
    if a.area == 0 or b.area == 0:
        return False
    return a.x < b.right and b.x < a.right and a.y < b.bottom and b.y < a.bottom


def rect_within(rect: Rect, width: int, height: int) -> bool:
    return rect.x >= 0 and rect.y >= 0 and rect.right <= width and rect.bottom <= height
