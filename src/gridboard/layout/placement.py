"""
First-fit placement of layout items.

New items go to the top-left-most free slot: rows are scanned from the
top, and within each row columns are scanned from the left. After
``max_rows`` rows without a fit the item is appended below everything.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from gridboard.layout.geometry import Rect, collides_with_any, layout_bottom
from gridboard.models import LayoutItem, Layouts
from gridboard.observability import get_logger

logger = get_logger("layout.placement")

DEFAULT_MAX_ROWS = 200


@dataclass(frozen=True)
class PlacementSize:
    """Size and minimums of an item to place, in cells of the target grid."""
    w: int
    h: int
    minW: int = 1
    minH: int = 1

    def clamped(self, columns: int) -> PlacementSize:
        """Fit the width into ``columns`` so that ``x + w <= columns`` can hold."""
        w = min(max(self.w, 1), columns)
        return PlacementSize(
            w=w,
            h=max(self.h, 1),
            minW=min(max(self.minW, 1), w),
            minH=max(self.minH, 1),
        )


def _scan(w: int, h: int, existing: Sequence[LayoutItem], columns: int, max_rows: int) -> Optional[Tuple[int, int]]:
    for y in range(max_rows):
        for x in range(columns - w + 1):
            if not collides_with_any(Rect(x, y, w, h), existing):
                return (x, y)
    return None


def place(
    size: PlacementSize,
    existing: Sequence[LayoutItem],
    columns: int,
    max_rows: int = DEFAULT_MAX_ROWS,
) -> Tuple[int, int]:
    """
    Find the first free ``(x, y)`` for an item of ``size``.

    Args:
        size: Item size; widths beyond the grid are clamped to ``columns``
        existing: Items already in the same grid and breakpoint
        columns: Column count of the grid
        max_rows: Number of rows to scan before appending below the layout

    Returns:
        Top-left cell of the placement
    """
    fitted = size.clamped(columns)
    found = _scan(fitted.w, fitted.h, existing, columns, max_rows)
    if found is not None:
        return found
    return (0, layout_bottom(existing))


def place_item(
    widget_id: str,
    size: PlacementSize,
    existing: Sequence[LayoutItem],
    columns: int,
    max_rows: int = DEFAULT_MAX_ROWS,
    breakpoint: str = "",
) -> LayoutItem:
    """Place a new item and return its layout entry."""
    fitted = size.clamped(columns)
    found = _scan(fitted.w, fitted.h, existing, columns, max_rows)
    if found is None:
        found = (0, layout_bottom(existing))
        logger.placement_fallback(widget_id, breakpoint, found[1])
    x, y = found
    return LayoutItem(
        i=widget_id,
        x=x,
        y=y,
        w=fitted.w,
        h=fitted.h,
        minW=fitted.minW,
        minH=fitted.minH,
    )


def place_in_all_breakpoints(
    widget_id: str,
    size: PlacementSize,
    layouts: Layouts,
    columns_by_breakpoint: Dict[str, int],
    max_rows: int = DEFAULT_MAX_ROWS,
) -> Layouts:
    """
    Place an item independently in every breakpoint.

    Each breakpoint has its own column count, so the same item can land at
    different coordinates per breakpoint. Returns new layouts; the input
    lists are not modified.
    """
    result: Layouts = {bp: list(items) for bp, items in layouts.items()}
    for bp, columns in columns_by_breakpoint.items():
        existing = result.get(bp, [])
        item = place_item(widget_id, size, existing, columns, max_rows, breakpoint=bp)
        result[bp] = existing + [item]
    return result


def clamp_to_grid(item: LayoutItem, columns: int) -> LayoutItem:
    """Clip an item's geometry into the grid's column range."""
    w = min(max(item.w, 1), columns)
    x = min(max(item.x, 0), columns - w)
    return item.copy(x=x, y=max(item.y, 0), w=w, h=max(item.h, 1))


def push_down(item: LayoutItem, accepted: Sequence[LayoutItem]) -> LayoutItem:
    """Move ``item`` down in its column span until it clears ``accepted``."""
    floor = layout_bottom(accepted)
    y = item.y
    while y < floor and collides_with_any(Rect(item.x, y, item.w, item.h), accepted):
        y += 1
    return item.copy(y=y)


def resolve_collisions(
    items: Iterable[LayoutItem],
    columns: int,
    priority: Iterable[str] = (),
) -> List[LayoutItem]:
    """
    Make a layout collision-free.

    Items are clipped into the grid, then taken in ``(y, x)`` order, with
    ids in ``priority`` first. An item that collides with one already
    accepted keeps its column and is pushed down until it clears; below the
    accepted layout nothing can collide, so this always terminates.
    The result keeps the input order.
    """
    originals = [clamp_to_grid(item, columns) for item in items]
    first = set(priority)
    order = sorted(
        range(len(originals)),
        key=lambda idx: (
            originals[idx].i not in first,
            originals[idx].y,
            originals[idx].x,
            originals[idx].i,
        ),
    )

    accepted: List[LayoutItem] = []
    placed: Dict[int, LayoutItem] = {}
    for idx in order:
        item = originals[idx]
        if collides_with_any(item, accepted):
            item = push_down(item, accepted)
        accepted.append(item)
        placed[idx] = item

    return [placed[idx] for idx in range(len(originals))]
