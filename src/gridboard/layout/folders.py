"""
Folder geometry for Gridboard.

A folder's height in its parent grid is derived from the rows its nested
grid occupies. The nested grid uses smaller rows than the parent, so the
conversion goes through pixels: nested rows to pixels, plus folder chrome,
back to parent rows.

Collapsing or expanding a folder changes its height and shifts the items
below it by the difference, breakpoint by breakpoint.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Set, Tuple

from gridboard.config import NESTED_DENSITY, GridConfiguration
from gridboard.layout.geometry import find_collisions, layout_bottom, overlaps_horizontally
from gridboard.layout.synchronizer import grid_layouts_for
from gridboard.models import FolderData, LayoutItem, Widget, Workspace
from gridboard.observability import get_logger
from gridboard.widgets import WidgetCatalog, get_catalog

logger = get_logger("layout.folders")


@dataclass(frozen=True)
class GridMetrics:
    """Row height and vertical margin of a grid, in pixels."""
    row_height: int
    margin_y: int

    def rows_to_pixels(self, rows: int) -> int:
        if rows <= 0:
            return 0
        return rows * self.row_height + (rows - 1) * self.margin_y

    def pixels_to_rows(self, pixels: int) -> int:
        """Smallest row count whose span covers ``pixels``."""
        return math.ceil((pixels + self.margin_y) / (self.row_height + self.margin_y))


class FolderHeightResolver:
    """Converts a folder's nested layout into a height in parent-grid rows."""

    def __init__(self, config: Optional[GridConfiguration] = None):
        config = config or GridConfiguration()
        self.parent_metrics = GridMetrics(config.grid.row_height, config.grid.margin_y)
        self.nested_metrics = GridMetrics(
            config.nested_grid.row_height, config.nested_grid.margin_y
        )
        self.header_px = config.folder.header_px
        self.padding_y_px = config.folder.content_padding_y_px

    def content_pixels(self, nested_layout: Sequence[LayoutItem]) -> int:
        """Pixel height of the folder body: nested rows plus padding and header."""
        rows = layout_bottom(nested_layout)
        content = self.nested_metrics.rows_to_pixels(rows) + 2 * self.padding_y_px
        return content + self.header_px

    def resolve_height(
        self,
        nested_layout: Sequence[LayoutItem],
        is_collapsed: bool,
        min_h: int,
        default_h: int,
        parent_metrics: Optional[GridMetrics] = None,
    ) -> int:
        """
        Height of a folder in parent-grid rows.

        Args:
            nested_layout: The folder's nested items for one breakpoint
            is_collapsed: Collapsed folders are always ``min_h`` tall
            min_h: The folder's minimum height, also the floor of the result
            default_h: Height of an empty expanded folder
            parent_metrics: Metrics of the grid holding the folder; the
                top-level grid when omitted

        Returns:
            Height in rows of the parent grid
        """
        if is_collapsed:
            return min_h
        if not nested_layout:
            return max(default_h, min_h)
        metrics = parent_metrics or self.parent_metrics
        height = metrics.pixels_to_rows(self.content_pixels(nested_layout))
        return max(height, min_h)


def plan_shift(
    items: Sequence[LayoutItem],
    folder_id: str,
    old_h: int,
    new_h: int,
) -> Tuple[int, Set[str]]:
    """
    Work out how the items below a resized folder move.

    Items whose top edge is at or below the folder's old bottom edge form
    the moving block. Growth moves the block by ``new_h - old_h``. When the
    folder shrinks, the block stops early if an item that stays in place
    (for example a tall neighbour beside the folder) would otherwise be
    overlapped.

    Returns:
        The vertical shift and the ids of the moving block
    """
    folder = next((item for item in items if item.i == folder_id), None)
    if folder is None:
        return 0, set()

    threshold = folder.y + old_h
    moving = {item.i for item in items if item.i != folder_id and item.y >= threshold}

    shift = new_h - old_h
    if shift < 0:
        staying = [folder.copy(h=new_h)] + [
            item for item in items if item.i != folder_id and item.i not in moving
        ]
        for item in items:
            if item.i not in moving:
                continue
            for other in staying:
                if overlaps_horizontally(item, other):
                    shift = max(shift, other.bottom - item.y)
        shift = min(shift, 0)
    return shift, moving


def shift_below(
    items: Sequence[LayoutItem],
    folder_id: str,
    old_h: int,
    new_h: int,
) -> List[LayoutItem]:
    """
    Resize a folder item and shift everything below it as ``plan_shift``
    decides.

    Returns a new list in the same order.
    """
    shift, moving = plan_shift(items, folder_id, old_h, new_h)
    result: List[LayoutItem] = []
    for item in items:
        if item.i == folder_id:
            result.append(item.copy(h=new_h))
        elif item.i in moving and shift:
            result.append(item.copy(y=item.y + shift))
        else:
            result.append(item)
    return result


class FolderTransposer:
    """
    Collapse/expand state machine for folders.

    Expanded -> Collapsed records each breakpoint's height and shrinks the
    folder to its minimum height. Collapsed -> Expanded restores the
    recorded height. Both shift the items below the folder.
    """

    def __init__(
        self,
        config: Optional[GridConfiguration] = None,
        catalog: Optional[WidgetCatalog] = None,
    ):
        self.config = config or GridConfiguration()
        self.catalog = catalog or get_catalog()
        self.resolver = FolderHeightResolver(self.config)

    def _scale(self, folder: Widget) -> int:
        return NESTED_DENSITY if folder.parentId else 1

    def _parent_metrics(self, folder: Widget) -> GridMetrics:
        if folder.parentId:
            return self.resolver.nested_metrics
        return self.resolver.parent_metrics

    def _resize(
        self,
        data: FolderData,
        breakpoint: str,
        items: Sequence[LayoutItem],
        folder_id: str,
        old_h: int,
        new_h: int,
    ) -> List[LayoutItem]:
        """
        Resize the folder in one breakpoint and move the items below it.

        A shrink records how far each item of the moving block went, and the
        height the block was laid out for. The next growth first moves those
        items back (if they are still where the shrink left them), then grows
        from the recorded height, so a shrink followed by a growth to the
        same height is exact even when a tall neighbour capped the shrink.
        If moving them back would overlap something placed since, the record
        is dropped and the growth shifts the block by the plain difference.
        """
        record = data.shift_record_for(breakpoint)

        if new_h < old_h:
            before = {item.i: item.y for item in items}
            shift, moving = plan_shift(items, folder_id, old_h, new_h)
            result = shift_below(items, folder_id, old_h, new_h)
            moved = dict(record["moved"]) if record else {}
            if shift:
                for item in result:
                    if item.i not in moving:
                        continue
                    dy = shift
                    prior = moved.get(item.i)
                    if prior is not None and prior["y"] == before[item.i]:
                        dy += prior["dy"]
                    moved[item.i] = {"y": item.y, "dy": dy}
            from_h = record["fromH"] if record else old_h
            data.record_shift(breakpoint, from_h, moved)
            return result

        if record is None:
            return shift_below(items, folder_id, old_h, new_h)

        restored: List[LayoutItem] = []
        for item in items:
            entry = record["moved"].get(item.i)
            if item.i != folder_id and entry is not None and entry["y"] == item.y:
                item = item.copy(y=item.y - entry["dy"])
            restored.append(item)

        if set(find_collisions(restored)) - set(find_collisions(items)):
            logger.debug(f"Dropping stale shift record of folder {folder_id} in '{breakpoint}'")
            data.clear_shift(breakpoint)
            return shift_below(items, folder_id, old_h, new_h)

        from_h = record["fromH"]
        if new_h >= from_h:
            data.clear_shift(breakpoint)
            return shift_below(restored, folder_id, from_h, new_h)
        data.record_shift(breakpoint, from_h, {})
        return [item.copy(h=new_h) if item.i == folder_id else item for item in restored]

    def collapsed_height(self, folder: Widget) -> int:
        min_h = folder.minH or self.catalog.get_template(folder.type).minH
        return min_h * self._scale(folder)

    def toggle(self, workspace: Workspace, folder_id: str) -> bool:
        """
        Flip a folder between collapsed and expanded in every breakpoint.

        Mutates ``workspace``. Returns False if ``folder_id`` is not a folder.
        """
        folder = workspace.get_folder(folder_id)
        if folder is None:
            logger.debug(f"Toggle ignored, no folder {folder_id}")
            return False

        data = folder.folder()
        collapsing = not data.is_collapsed
        collapsed_h = self.collapsed_height(folder)
        grid = grid_layouts_for(workspace, folder)
        primary = self.config.breakpoint_names[0]

        for bp, items in list(grid.items()):
            item = next((entry for entry in items if entry.i == folder_id), None)
            if item is None:
                continue
            old_h = item.h
            if collapsing:
                data.record_expanded_height(bp, old_h, primary=bp == primary)
                new_h = collapsed_h
            else:
                new_h = data.expanded_height_for(bp) or item.h
            if old_h == new_h:
                continue
            grid[bp] = self._resize(data, bp, items, folder_id, old_h, new_h)

        data.is_collapsed = collapsing
        logger.folder_toggled(folder_id, collapsing)

        if folder.parentId:
            self.refit(workspace, folder.parentId)
        return True

    def refit(self, workspace: Workspace, folder_id: str) -> None:
        """
        Recompute an expanded folder's height from its nested layout.

        Runs after the nested layout changes, then walks up to the folder's
        own parent, whose content just changed height too. Mutates
        ``workspace``.
        """
        folder = workspace.get_folder(folder_id)
        if folder is None:
            return

        data = folder.folder()
        if not data.is_collapsed:
            template = self.catalog.get_template(folder.type)
            scale = self._scale(folder)
            grid = grid_layouts_for(workspace, folder)
            primary = self.config.breakpoint_names[0]

            for bp, items in list(grid.items()):
                item = next((entry for entry in items if entry.i == folder_id), None)
                if item is None:
                    continue
                new_h = self.resolver.resolve_height(
                    data.children_layouts.get(bp, []),
                    is_collapsed=False,
                    min_h=(folder.minH or template.minH) * scale,
                    default_h=template.h * scale,
                    parent_metrics=self._parent_metrics(folder),
                )
                data.record_expanded_height(bp, new_h, primary=bp == primary)
                if new_h != item.h:
                    grid[bp] = self._resize(data, bp, items, folder_id, item.h, new_h)

        if folder.parentId:
            self.refit(workspace, folder.parentId)
