"""
Layout synchronization for Gridboard.

Projects the authoritative widget list onto per-breakpoint layouts so that
every widget has exactly one item per breakpoint in the grid that holds it,
carrying the current minimum size of its type. The projection is computed
on read and never needs a migration when type defaults change.
"""

from __future__ import annotations

import copy
from typing import Dict, List, Optional, Sequence

from gridboard.config import NESTED_DENSITY, GridConfiguration
from gridboard.layout.placement import PlacementSize, place_item, resolve_collisions
from gridboard.models import DashboardState, LayoutItem, Layouts, Widget, Workspace
from gridboard.observability import get_logger
from gridboard.widgets import WidgetCatalog, get_catalog

logger = get_logger("layout.synchronizer")


class LayoutSynchronizer:
    """
    Keeps layout mappings consistent with the widgets they place.

    Repairs are silent: stale entries are dropped, missing entries are
    placed with the first-fit solver, overlapping entries are pushed apart.
    """

    def __init__(
        self,
        config: Optional[GridConfiguration] = None,
        catalog: Optional[WidgetCatalog] = None,
    ):
        self.config = config or GridConfiguration()
        self.catalog = catalog or get_catalog()

    def synchronize(
        self,
        widgets: Sequence[Widget],
        layouts: Layouts,
        nested: bool = False,
    ) -> Layouts:
        """
        Build a consistent layout mapping for the widgets of one grid.

        Args:
            widgets: Widgets that belong in this grid, in insertion order
            layouts: Current breakpoint -> items mapping for the grid
            nested: True for a folder's grid (double column density)

        Returns:
            New mapping with an entry for every configured breakpoint
        """
        by_id: Dict[str, Widget] = {w.id: w for w in widgets}
        columns_by_bp = self.config.columns(nested=nested)
        result: Layouts = {}

        for bp, columns in columns_by_bp.items():
            kept: List[LayoutItem] = []
            seen = set()
            for item in layouts.get(bp) or []:
                widget = by_id.get(item.i)
                if widget is None or item.i in seen:
                    logger.debug(f"Dropping stale layout item {item.i} from '{bp}'")
                    continue
                seen.add(item.i)
                min_w, min_h = self.catalog.min_size(widget, nested=nested)
                kept.append(item.copy(
                    minW=min(min_w, columns),
                    minH=min_h,
                    isDraggable=None,
                    isResizable=None,
                ))

            kept = resolve_collisions(kept, columns)

            for widget in widgets:
                if widget.id in seen:
                    continue
                logger.debug(f"Placing widget {widget.id} missing from '{bp}'")
                kept.append(place_item(
                    widget.id,
                    self.default_size(widget, nested=nested),
                    kept,
                    columns,
                    self.config.placement_max_rows,
                    breakpoint=bp,
                ))
            result[bp] = kept

        return result

    def default_size(self, widget: Widget, nested: bool = False) -> PlacementSize:
        """Default placement size for a widget's type in the given grid."""
        template = self.catalog.templates.get(widget.type)
        if template is None:
            factor = NESTED_DENSITY if nested else 1
            return PlacementSize(
                w=widget.minW * factor,
                h=widget.minH * factor,
                minW=widget.minW * factor,
                minH=widget.minH * factor,
            )
        return PlacementSize(**template.size(nested=nested))

    def normalize_workspace(self, workspace: Workspace) -> None:
        """Repair one workspace in place."""
        unique: List[Widget] = []
        ids = set()
        for widget in workspace.widgets:
            if widget.id in ids:
                logger.warning(f"Dropping duplicate widget id {widget.id}")
                continue
            ids.add(widget.id)
            unique.append(widget)
        workspace.widgets = unique

        self._repair_parents(workspace)

        workspace.layouts = self.synchronize(
            workspace.top_level_widgets(), workspace.layouts
        )
        for widget in workspace.widgets:
            if not widget.is_folder:
                continue
            folder = widget.folder()
            folder.data.setdefault("isCollapsed", False)
            folder.children_layouts = self.synchronize(
                workspace.children_of(widget.id),
                folder.children_layouts,
                nested=True,
            )

    def _repair_parents(self, workspace: Workspace) -> None:
        """Promote widgets whose parent is missing, not a folder, or cyclic."""
        by_id = {w.id: w for w in workspace.widgets}
        for widget in workspace.widgets:
            if not widget.parentId:
                continue
            parent = by_id.get(widget.parentId)
            if parent is None or not parent.is_folder:
                logger.warning(
                    f"Widget {widget.id} references missing folder {widget.parentId}, "
                    "moving it to the top level"
                )
                widget.parentId = None

        for widget in workspace.widgets:
            visited = {widget.id}
            current = widget
            while current.parentId:
                if current.parentId in visited:
                    logger.warning(f"Breaking folder cycle at widget {current.id}")
                    current.parentId = None
                    break
                visited.add(current.parentId)
                current = by_id[current.parentId]

    def normalize(
        self,
        state: DashboardState,
        dragging_widget_id: Optional[str] = None,
    ) -> DashboardState:
        """
        Return a repaired copy of ``state``.

        Idempotent: normalizing a normalized state yields an equal state.
        While ``dragging_widget_id`` names a widget inside a folder, that
        folder's own item is locked against dragging and resizing.
        """
        state = copy.deepcopy(state)
        if not state.workspaces:
            state = DashboardState.default()
        if state.get_workspace(state.activeWorkspaceId) is None:
            state.activeWorkspaceId = state.workspaces[0].id

        for workspace in state.workspaces:
            self.normalize_workspace(workspace)

        if dragging_widget_id:
            for workspace in state.workspaces:
                if workspace.get_widget(dragging_widget_id) is not None:
                    lock_parent_folder(workspace, dragging_widget_id)
                    break

        return state


def grid_layouts_for(workspace: Workspace, widget: Widget) -> Layouts:
    """The layout mapping of the grid that holds ``widget``."""
    if widget.parentId:
        parent = workspace.get_folder(widget.parentId)
        if parent is not None:
            return parent.folder().children_layouts
    return workspace.layouts


def lock_parent_folder(workspace: Workspace, dragging_widget_id: str) -> None:
    """
    Mark the parent folder of a dragged child as non-draggable and
    non-resizable in every breakpoint of the grid that holds the folder.

    Only this direction is locked: dragging a folder leaves its children
    interactive.
    """
    widget = workspace.get_widget(dragging_widget_id)
    if widget is None or not widget.parentId:
        return
    parent = workspace.get_folder(widget.parentId)
    if parent is None:
        return
    for items in grid_layouts_for(workspace, parent).values():
        for index, item in enumerate(items):
            if item.i == parent.id:
                items[index] = item.copy(isDraggable=False, isResizable=False)


def normalize(
    state: DashboardState,
    config: Optional[GridConfiguration] = None,
    dragging_widget_id: Optional[str] = None,
) -> DashboardState:
    """Convenience wrapper around LayoutSynchronizer.normalize()."""
    return LayoutSynchronizer(config).normalize(state, dragging_widget_id)
