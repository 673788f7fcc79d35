"""
Layout engine for Gridboard.

Provides collision geometry, first-fit placement, layout synchronization
and folder collapse/expand geometry.
"""

from gridboard.layout.folders import (
    FolderHeightResolver,
    FolderTransposer,
    GridMetrics,
    shift_below,
)
from gridboard.layout.geometry import (
    Rect,
    collides,
    collides_with_any,
    find_collisions,
    layout_bottom,
    overlaps_horizontally,
)
from gridboard.layout.placement import (
    DEFAULT_MAX_ROWS,
    PlacementSize,
    place,
    place_in_all_breakpoints,
    place_item,
    resolve_collisions,
)
from gridboard.layout.synchronizer import (
    LayoutSynchronizer,
    grid_layouts_for,
    lock_parent_folder,
    normalize,
)

__all__ = [
    # Geometry
    "Rect",
    "collides",
    "collides_with_any",
    "find_collisions",
    "layout_bottom",
    "overlaps_horizontally",
    # Placement
    "DEFAULT_MAX_ROWS",
    "PlacementSize",
    "place",
    "place_in_all_breakpoints",
    "place_item",
    "resolve_collisions",
    # Synchronization
    "LayoutSynchronizer",
    "grid_layouts_for",
    "lock_parent_folder",
    "normalize",
    # Folders
    "FolderHeightResolver",
    "FolderTransposer",
    "GridMetrics",
    "shift_below",
]
