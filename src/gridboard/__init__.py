"""
Gridboard - responsive dashboard layout engine.

Places widgets onto a multi-column grid with one layout per responsive
breakpoint, keeps those layouts consistent with the widget list, and
supports collapsible folder widgets holding a nested grid of their own.

Quick Start:
    >>> from gridboard import WorkspaceStore, WidgetType
    >>>
    >>> store = WorkspaceStore()
    >>> folder_id = store.add_widget(WidgetType.FOLDER)
    >>> store.add_widget(WidgetType.PIE, parent_id=folder_id)
    >>> store.toggle_folder(folder_id)
    >>> store.undo()
"""

from __future__ import annotations

__version__ = "0.1.0"

# Core models
from gridboard.models import (
    DEFAULT_WORKSPACE_ID,
    DashboardState,
    FolderData,
    LayoutItem,
    Layouts,
    Widget,
    WidgetType,
    Workspace,
)

# Configuration
from gridboard.config import GridConfiguration

# Engine
from gridboard.history import HistorySnapshot, HistoryStack
from gridboard.layout import (
    FolderHeightResolver,
    FolderTransposer,
    LayoutSynchronizer,
    normalize,
    place,
)
from gridboard.store import WorkspaceStore
from gridboard.widgets import WidgetCatalog, get_catalog

__all__ = [
    "__version__",
    # Models
    "DEFAULT_WORKSPACE_ID",
    "DashboardState",
    "FolderData",
    "LayoutItem",
    "Layouts",
    "Widget",
    "WidgetType",
    "Workspace",
    # Configuration
    "GridConfiguration",
    # Engine
    "FolderHeightResolver",
    "FolderTransposer",
    "HistorySnapshot",
    "HistoryStack",
    "LayoutSynchronizer",
    "WidgetCatalog",
    "WorkspaceStore",
    "get_catalog",
    "normalize",
    "place",
]
