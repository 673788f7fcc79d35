"""
Rectangle primitives over integer grid coordinates.
"""

from __future__ import annotations

from typing import Iterable, List, NamedTuple, Optional, Tuple, Union

from gridboard.models import LayoutItem


class Rect(NamedTuple):
    """Axis-aligned rectangle in grid cells."""
    x: int
    y: int
    w: int
    h: int


RectLike = Union[Rect, LayoutItem]


def as_rect(item: RectLike) -> Rect:
    if isinstance(item, Rect):
        return item
    return Rect(item.x, item.y, item.w, item.h)


def collides(a: RectLike, b: RectLike) -> bool:
    """True if the two rectangles share at least one cell."""
    ra, rb = as_rect(a), as_rect(b)
    return (
        ra.x < rb.x + rb.w
        and ra.x + ra.w > rb.x
        and ra.y < rb.y + rb.h
        and ra.y + ra.h > rb.y
    )


def overlaps_horizontally(a: RectLike, b: RectLike) -> bool:
    """True if the column spans of the two rectangles intersect."""
    ra, rb = as_rect(a), as_rect(b)
    return ra.x < rb.x + rb.w and ra.x + ra.w > rb.x


def collides_with_any(
    item: RectLike,
    items: Iterable[LayoutItem],
    ignore: Optional[str] = None,
) -> bool:
    """True if ``item`` collides with any of ``items`` other than ``ignore``."""
    for other in items:
        if ignore is not None and other.i == ignore:
            continue
        if collides(item, other):
            return True
    return False


def find_collisions(items: List[LayoutItem]) -> List[Tuple[str, str]]:
    """All colliding id pairs in a single grid and breakpoint."""
    pairs: List[Tuple[str, str]] = []
    for index, a in enumerate(items):
        for b in items[index + 1:]:
            if collides(a, b):
                pairs.append((a.i, b.i))
    return pairs


def layout_bottom(items: Iterable[LayoutItem]) -> int:
    """Lowest occupied row edge, ``max(y + h)``, or 0 for an empty layout."""
    return max((item.y + item.h for item in items), default=0)
