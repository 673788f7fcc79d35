"""
Workspace and widget store for Gridboard.

The store owns the authoritative DashboardState. Every mutation goes
through ``_commit``, which works on a deep copy of the previous state,
normalizes the result, records the pre-mutation state in the undo history
and persists. No state object handed out or held by the history is ever
mutated afterwards.
"""

from __future__ import annotations

import copy
import random
import uuid
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from gridboard.config import GridConfiguration
from gridboard.history import HistoryStack
from gridboard.layout.folders import FolderTransposer
from gridboard.layout.placement import PlacementSize, place_in_all_breakpoints, resolve_collisions
from gridboard.layout.synchronizer import LayoutSynchronizer
from gridboard.models import (
    DashboardState,
    LayoutItem,
    Layouts,
    WidgetType,
    Workspace,
)
from gridboard.observability import get_logger
from gridboard.storage import StateStorage, StorageError, resolve_namespace
from gridboard.widgets import WidgetCatalog, assign_colors, get_catalog

GESTURE_KINDS = ("drag", "resize")

# Keys of a folder payload that only layout operations may change.
FOLDER_GEOMETRY_KEYS = (
    "childrenLayouts",
    "isCollapsed",
    "expandedH",
    "expandedHeights",
    "shiftRecords",
)

ItemLike = Union[LayoutItem, Dict[str, Any]]
Updater = Callable[[DashboardState], bool]


def _moved_ids(incoming: List[LayoutItem], current: Iterable[LayoutItem]) -> List[str]:
    """Ids of items that are new or whose geometry differs from ``current``."""
    before = {item.i: (item.x, item.y, item.w, item.h) for item in current}
    return [
        item.i for item in incoming
        if before.get(item.i) != (item.x, item.y, item.w, item.h)
    ]


def _as_items(items: Iterable[ItemLike]) -> List[LayoutItem]:
    result: List[LayoutItem] = []
    for item in items:
        if isinstance(item, LayoutItem):
            result.append(item.copy())
        else:
            result.append(LayoutItem.from_dict(item))
    return result


def _forget_shifts(workspace: Workspace, breakpoint: str, moved: Iterable[str]) -> None:
    """Drop the recorded collapse shifts of folders the user moved or resized."""
    for widget_id in moved:
        folder = workspace.get_folder(widget_id)
        if folder is not None:
            folder.folder().clear_shift(breakpoint)


class WorkspaceStore:
    """
    Authoritative store of workspaces, widgets and layouts.

    Operations that reference an unknown widget, folder or workspace are
    silent no-ops: they return a falsy value and neither record history nor
    persist.

    Example:
        store = WorkspaceStore(storage=get_storage("local"))
        store.load()
        folder_id = store.add_widget(WidgetType.FOLDER)
        store.add_widget(WidgetType.TEXT, parent_id=folder_id)
        store.toggle_folder(folder_id)
        store.undo()
    """

    def __init__(
        self,
        config: Optional[GridConfiguration] = None,
        storage: Optional[StateStorage] = None,
        namespace: Optional[str] = None,
        catalog: Optional[WidgetCatalog] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize the store with a default, unsaved state.

        Args:
            config: Grid configuration; defaults apply when omitted
            storage: Persistence backend; None keeps state in memory only
            namespace: Per-user storage namespace; None uses shared storage
            catalog: Widget type catalog
            rng: Random source for widget colours
        """
        self.config = config or GridConfiguration()
        self.storage = storage
        self.namespace = resolve_namespace(namespace)
        self.catalog = catalog or get_catalog()
        self.rng = rng or random.Random()
        self.synchronizer = LayoutSynchronizer(self.config, self.catalog)
        self.transposer = FolderTransposer(self.config, self.catalog)
        self.history = HistoryStack(self.config.history.limit)
        self.logger = get_logger("store")
        self.logger.set_context(namespace=self.namespace)

        self._state = self.synchronizer.normalize(DashboardState.default())
        self._gesture: Optional[Tuple[str, str]] = None
        self._gesture_base: Optional[DashboardState] = None

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def state(self) -> DashboardState:
        """Current state. Treat as read-only; mutate through operations."""
        return self._state

    @property
    def active_workspace(self) -> Workspace:
        workspace = self._state.active_workspace
        if workspace is None:
            self.logger.warning("State has no workspaces, restoring the default workspace")
            self._state = self.synchronizer.normalize(self._state)
            workspace = self._state.workspaces[0]
        return workspace

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def gesture(self) -> Optional[Tuple[str, str]]:
        """The ``(widget_id, kind)`` of the gesture in progress, if any."""
        return self._gesture

    def _dragging_widget_id(self) -> Optional[str]:
        if self._gesture and self._gesture[1] == "drag":
            return self._gesture[0]
        return None

    def layouts_for(self, workspace_id: Optional[str] = None) -> Layouts:
        """
        Presented top-level layouts of a workspace.

        Computed through the synchronizer on every call, including the lock
        on the parent folder of a child being dragged.
        """
        projected = self.synchronizer.normalize(
            self._state, dragging_widget_id=self._dragging_widget_id()
        )
        workspace = projected.get_workspace(workspace_id or projected.activeWorkspaceId)
        if workspace is None:
            return {}
        return workspace.layouts

    def children_layouts_for(self, folder_id: str) -> Layouts:
        """Presented nested layouts of a folder in the active workspace."""
        projected = self.synchronizer.normalize(
            self._state, dragging_widget_id=self._dragging_widget_id()
        )
        workspace = projected.active_workspace
        folder = workspace.get_folder(folder_id) if workspace else None
        if folder is None:
            return {}
        return folder.folder().children_layouts

    # ------------------------------------------------------------------
    # Update entry point
    # ------------------------------------------------------------------

    def _commit(self, action: str, updater: Updater, record: bool = True) -> bool:
        """
        Apply ``updater`` to a copy of the state and make it current.

        The updater mutates the copy it receives and returns False to
        abandon the update. Inside a gesture, history and persistence are
        deferred to ``end_gesture``.
        """
        previous = self._state
        draft = copy.deepcopy(previous)
        if updater(draft) is False:
            return False

        self._state = self.synchronizer.normalize(draft)
        if self._gesture is not None:
            return True
        if record:
            self.history.push(previous, action)
        self._persist()
        return True

    def _persist(self) -> None:
        if self.storage is not None:
            self.save()

    # ------------------------------------------------------------------
    # Widgets
    # ------------------------------------------------------------------

    def add_widget(
        self,
        widget_type: Union[WidgetType, str],
        parent_id: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> Optional[str]:
        """
        Add a widget to the active workspace.

        Top-level widgets are placed per breakpoint at their type's default
        size. Widgets inside a folder are placed in the folder's nested grid
        at double size, and the folder is refit to its new content.

        Returns:
            The new widget id, or None if ``parent_id`` is not a folder
        """
        widget_type = WidgetType.parse(widget_type)
        widget = self.catalog.create_widget(
            widget_type, parent_id=parent_id, data=data, rng=self.rng
        )

        def updater(state: DashboardState) -> bool:
            workspace = state.active_workspace
            if workspace is None:
                return False
            template = self.catalog.get_template(widget_type)

            if parent_id is None:
                size = PlacementSize(**template.size())
                workspace.layouts = place_in_all_breakpoints(
                    widget.id,
                    size,
                    workspace.layouts,
                    self.config.columns(),
                    self.config.placement_max_rows,
                )
                workspace.widgets.append(widget)
                return True

            parent = workspace.get_folder(parent_id)
            if parent is None:
                self.logger.debug(f"Add ignored, no folder {parent_id}")
                return False
            folder = parent.folder()
            size = PlacementSize(**template.size(nested=True))
            folder.children_layouts = place_in_all_breakpoints(
                widget.id,
                size,
                folder.children_layouts,
                self.config.columns(nested=True),
                self.config.placement_max_rows,
            )
            workspace.widgets.append(widget)
            self.transposer.refit(workspace, parent_id)
            return True

        if not self._commit("add_widget", updater):
            return None
        self.logger.widget_added(widget.id, widget_type.value, parent_id)
        return widget.id

    def remove_widget(self, widget_id: str) -> bool:
        """
        Remove a widget from the active workspace.

        Removing a folder removes everything nested in it, at any depth.
        Every removed id is purged from the top-level layouts and from every
        folder's nested layouts.
        """
        removed: List[str] = []

        def updater(state: DashboardState) -> bool:
            workspace = state.active_workspace
            widget = workspace.get_widget(widget_id) if workspace else None
            if workspace is None or widget is None:
                self.logger.debug(f"Remove ignored, no widget {widget_id}")
                return False

            doomed = {widget_id}
            if widget.is_folder:
                doomed.update(w.id for w in workspace.descendants_of(widget_id))
            removed.extend(doomed)

            workspace.widgets = [w for w in workspace.widgets if w.id not in doomed]
            workspace.layouts = {
                bp: [item for item in items if item.i not in doomed]
                for bp, items in workspace.layouts.items()
            }
            for other in workspace.widgets:
                if not other.is_folder:
                    continue
                folder = other.folder()
                folder.children_layouts = {
                    bp: [item for item in items if item.i not in doomed]
                    for bp, items in folder.children_layouts.items()
                }

            if widget.parentId and workspace.get_folder(widget.parentId):
                self.transposer.refit(workspace, widget.parentId)
            return True

        if not self._commit("remove_widget", updater):
            return False
        self.logger.widget_removed(widget_id, len(removed))
        return True

    def update_widget_data(self, widget_id: str, data: Dict[str, Any]) -> bool:
        """
        Replace a widget's payload.

        Folder geometry (nested layouts, collapse state, expanded heights)
        is kept from the current payload; it changes only through layout
        operations. Content edits are not recorded in the undo history.
        """

        def updater(state: DashboardState) -> bool:
            workspace = state.active_workspace
            widget = workspace.get_widget(widget_id) if workspace else None
            if widget is None:
                self.logger.debug(f"Update ignored, no widget {widget_id}")
                return False
            payload = copy.deepcopy(dict(data))
            if widget.is_folder:
                for key in FOLDER_GEOMETRY_KEYS:
                    payload.pop(key, None)
                    if key in widget.data:
                        payload[key] = widget.data[key]
            widget.data = payload
            return True

        return self._commit("update_widget_data", updater, record=False)

    # ------------------------------------------------------------------
    # Layouts
    # ------------------------------------------------------------------

    def _apply_top_level(self, workspace: Workspace, breakpoint: str, items: Iterable[ItemLike]) -> bool:
        if breakpoint not in self.config.breakpoint_names:
            self.logger.debug(f"Layout change ignored, unknown breakpoint '{breakpoint}'")
            return False
        columns = self.config.breakpoints.columns_for(breakpoint)

        top_level = {w.id for w in workspace.top_level_widgets()}
        incoming = [item for item in _as_items(items) if item.i in top_level]
        moved = _moved_ids(incoming, workspace.layouts.get(breakpoint, []))
        resolved = resolve_collisions(incoming, columns, priority=moved)
        workspace.layouts[breakpoint] = resolved
        _forget_shifts(workspace, breakpoint, moved)

        primary = self.config.breakpoint_names[0]
        for item in resolved:
            folder = workspace.get_folder(item.i)
            if folder is not None and not folder.folder().is_collapsed:
                folder.folder().record_expanded_height(
                    breakpoint, item.h, primary=breakpoint == primary
                )
        return True

    def change_layout(self, breakpoint: str, items: Iterable[ItemLike]) -> bool:
        """
        Replace one breakpoint of the active workspace's top-level layout.

        Items that were moved or resized win over items they now overlap,
        which are pushed down. Expanded folders remember their new height.
        """
        items = list(items)

        def updater(state: DashboardState) -> bool:
            workspace = state.active_workspace
            if workspace is None:
                return False
            return self._apply_top_level(workspace, breakpoint, items)

        return self._commit("change_layout", updater)

    def change_layouts(self, layouts: Dict[str, Iterable[ItemLike]]) -> bool:
        """Replace several breakpoints at once, as one action."""
        layouts = {bp: list(items) for bp, items in layouts.items()}

        def updater(state: DashboardState) -> bool:
            workspace = state.active_workspace
            if workspace is None:
                return False
            applied = [
                self._apply_top_level(workspace, bp, items)
                for bp, items in layouts.items()
            ]
            return any(applied)

        return self._commit("change_layouts", updater)

    def change_children_layout(
        self,
        folder_id: str,
        breakpoint: str,
        items: Iterable[ItemLike],
    ) -> bool:
        """Replace one breakpoint of a folder's nested layout and refit the folder."""
        items = list(items)

        def updater(state: DashboardState) -> bool:
            workspace = state.active_workspace
            folder = workspace.get_folder(folder_id) if workspace else None
            if workspace is None or folder is None:
                self.logger.debug(f"Nested layout change ignored, no folder {folder_id}")
                return False
            if breakpoint not in self.config.breakpoint_names:
                return False
            columns = self.config.breakpoints.columns_for(breakpoint, nested=True)

            children = {w.id for w in workspace.children_of(folder_id)}
            incoming = [item for item in _as_items(items) if item.i in children]
            moved = _moved_ids(incoming, folder.folder().children_layouts.get(breakpoint, []))
            folder.folder().children_layouts[breakpoint] = resolve_collisions(
                incoming, columns, priority=moved
            )
            _forget_shifts(workspace, breakpoint, moved)
            self.transposer.refit(workspace, folder_id)
            return True

        return self._commit("change_children_layout", updater)

    def toggle_folder(self, folder_id: str) -> bool:
        """Collapse an expanded folder or expand a collapsed one."""

        def updater(state: DashboardState) -> bool:
            workspace = state.active_workspace
            if workspace is None:
                return False
            return self.transposer.toggle(workspace, folder_id)

        return self._commit("toggle_folder", updater)

    # ------------------------------------------------------------------
    # Gestures
    # ------------------------------------------------------------------

    def begin_gesture(self, widget_id: str, kind: str = "drag") -> bool:
        """
        Start a drag or resize of a widget.

        Layout changes made until ``end_gesture`` form one action: a single
        history snapshot and a single save, both at the end. While a child
        of a folder is dragged, the folder itself is locked in presented
        layouts.

        Raises:
            ValueError: If ``kind`` is not a gesture kind
        """
        if kind not in GESTURE_KINDS:
            raise ValueError(f"Unknown gesture kind: {kind}. Expected one of {GESTURE_KINDS}")
        if self.active_workspace.get_widget(widget_id) is None:
            self.logger.debug(f"Gesture ignored, no widget {widget_id}")
            return False
        if self._gesture is not None:
            self.end_gesture()
        self._gesture = (widget_id, kind)
        self._gesture_base = self._state
        return True

    def end_gesture(self) -> bool:
        """
        Finish the current gesture.

        Returns:
            True if the gesture changed the state and was recorded
        """
        if self._gesture is None:
            return False
        _, kind = self._gesture
        base = self._gesture_base
        self._gesture = None
        self._gesture_base = None

        if base is None or base is self._state:
            return False
        self.history.push(base, f"{kind}_stop")
        self._persist()
        return True

    # ------------------------------------------------------------------
    # Workspaces
    # ------------------------------------------------------------------

    def add_workspace(self, name: Optional[str] = None) -> str:
        """Create a workspace, make it active and return its id."""
        workspace_id = str(uuid.uuid4())

        def updater(state: DashboardState) -> bool:
            label = (name or "").strip() or f"Workspace {len(state.workspaces) + 1}"
            state.workspaces.append(Workspace(id=workspace_id, name=label))
            state.activeWorkspaceId = workspace_id
            return True

        self._commit("add_workspace", updater)
        self.logger.info(f"Workspace added: {workspace_id}", workspace_id=workspace_id)
        return workspace_id

    def remove_workspace(self, workspace_id: str) -> bool:
        """
        Delete a workspace.

        If it was active, the first remaining workspace becomes active.
        Removing the last workspace leaves a fresh default one.
        """

        def updater(state: DashboardState) -> bool:
            if state.get_workspace(workspace_id) is None:
                self.logger.debug(f"Remove ignored, no workspace {workspace_id}")
                return False
            state.workspaces = [ws for ws in state.workspaces if ws.id != workspace_id]
            if state.activeWorkspaceId == workspace_id and state.workspaces:
                state.activeWorkspaceId = state.workspaces[0].id
            return True

        return self._commit("remove_workspace", updater)

    def rename_workspace(self, workspace_id: str, name: str) -> bool:
        """Rename a workspace. Blank names are ignored."""
        name = (name or "").strip()

        def updater(state: DashboardState) -> bool:
            workspace = state.get_workspace(workspace_id)
            if workspace is None or not name or workspace.name == name:
                return False
            workspace.name = name
            return True

        return self._commit("rename_workspace", updater)

    def switch_workspace(self, workspace_id: str) -> bool:
        """Make a workspace active. Not recorded in the undo history."""

        def updater(state: DashboardState) -> bool:
            if state.get_workspace(workspace_id) is None:
                self.logger.debug(f"Switch ignored, no workspace {workspace_id}")
                return False
            if state.activeWorkspaceId == workspace_id:
                return False
            state.activeWorkspaceId = workspace_id
            return True

        return self._commit("switch_workspace", updater, record=False)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def undo(self) -> bool:
        """Restore the state before the most recent recorded action."""
        if self._gesture is not None:
            self._gesture = None
            self._gesture_base = None
        snapshot = self.history.undo()
        if snapshot is None:
            return False
        self._state = self.synchronizer.normalize(snapshot.restore())
        self.logger.debug(f"Undid {snapshot.action or 'action'}", action=snapshot.action)
        self._persist()
        return True

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> DashboardState:
        """
        Load state from storage.

        A missing namespace, or a storage failure, yields the default state.
        Widgets without colours get them, and the result is normalized.
        History starts empty.
        """
        state: Optional[DashboardState] = None
        if self.storage is not None:
            try:
                state = self.storage.load(self.namespace)
            except StorageError as e:
                self.logger.persistence_failed(self.namespace, "load", str(e))
        if state is None:
            state = DashboardState.default()

        for workspace in state.workspaces:
            for widget in workspace.widgets:
                assign_colors(widget.type, widget.data, self.rng)

        self._state = self.synchronizer.normalize(state)
        self._gesture = None
        self._gesture_base = None
        self.history.clear()
        return self._state

    def save(self) -> bool:
        """
        Save the current state.

        Returns:
            True if the state reached storage
        """
        if self.storage is None:
            return False
        try:
            self.storage.save(self.namespace, self._state)
        except StorageError as e:
            self.logger.persistence_failed(self.namespace, "save", str(e))
            return False
        self.logger.state_persisted(self.namespace, len(self._state.workspaces))
        return True
