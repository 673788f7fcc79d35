"""
Core data models for Gridboard.

Workspaces own widgets and a per-breakpoint layout mapping. Folder widgets
carry a nested layout mapping for their children inside their data payload.
All models serialize to the camelCase format used by persisted state.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_WORKSPACE_ID = "default-workspace"
DEFAULT_WORKSPACE_NAME = "My workspace"


class WidgetType(Enum):
    """Types of dashboard widgets."""
    PLAN = "Plan"
    PIE = "Pie"
    LINE = "Line"
    TEXT = "Text"
    TITLE = "Title"
    CHECKLIST = "Checklist"
    IMAGE = "Image"
    ARTICLE = "Article"
    FOLDER = "Folder"

    @classmethod
    def parse(cls, value: Any) -> WidgetType:
        """Resolve a type from its persisted value or its name, case-insensitively."""
        if isinstance(value, WidgetType):
            return value
        text = str(value).strip()
        for member in cls:
            if text.lower() in (member.value.lower(), member.name.lower()):
                return member
        raise ValueError(f"Unknown widget type: {value}")


@dataclass
class LayoutItem:
    """
    Grid placement of one widget in one breakpoint of one grid.

    ``i`` references the widget id. ``isDraggable`` / ``isResizable`` stay
    None unless a read-time projection locks the item.
    """
    i: str
    x: int = 0
    y: int = 0
    w: int = 1
    h: int = 1
    minW: Optional[int] = None
    minH: Optional[int] = None
    isDraggable: Optional[bool] = None
    isResizable: Optional[bool] = None

    @property
    def bottom(self) -> int:
        return self.y + self.h

    @property
    def right(self) -> int:
        return self.x + self.w

    def copy(self, **changes: Any) -> LayoutItem:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        result: Dict[str, Any] = {
            "i": self.i,
            "x": self.x,
            "y": self.y,
            "w": self.w,
            "h": self.h,
        }
        if self.minW is not None:
            result["minW"] = self.minW
        if self.minH is not None:
            result["minH"] = self.minH
        if self.isDraggable is not None:
            result["isDraggable"] = self.isDraggable
        if self.isResizable is not None:
            result["isResizable"] = self.isResizable
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> LayoutItem:
        """Create from dictionary."""
        return cls(
            i=str(data["i"]),
            x=int(data.get("x", 0)),
            y=int(data.get("y", 0)),
            w=int(data.get("w", 1)),
            h=int(data.get("h", 1)),
            minW=int(data["minW"]) if data.get("minW") is not None else None,
            minH=int(data["minH"]) if data.get("minH") is not None else None,
            isDraggable=data.get("isDraggable"),
            isResizable=data.get("isResizable"),
        )


Layouts = Dict[str, List[LayoutItem]]


def layouts_to_dict(layouts: Layouts) -> Dict[str, List[Dict[str, Any]]]:
    """Serialize a breakpoint -> items mapping."""
    return {bp: [item.to_dict() for item in items] for bp, items in layouts.items()}


def layouts_from_dict(data: Any) -> Layouts:
    """
    Deserialize a breakpoint -> items mapping.

    Malformed entries are skipped; the synchronizer restores anything that
    goes missing here.
    """
    layouts: Layouts = {}
    if not isinstance(data, dict):
        return layouts
    for bp, raw_items in data.items():
        items: List[LayoutItem] = []
        if isinstance(raw_items, list):
            for raw in raw_items:
                try:
                    items.append(LayoutItem.from_dict(raw))
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning(f"Skipping malformed layout item in '{bp}': {e}")
        layouts[str(bp)] = items
    return layouts


@dataclass
class Widget:
    """A dashboard widget. ``parentId`` is set iff it lives inside a Folder."""
    id: str
    type: WidgetType
    data: Dict[str, Any] = field(default_factory=dict)
    minW: int = 1
    minH: int = 1
    parentId: Optional[str] = None

    @property
    def is_folder(self) -> bool:
        return self.type == WidgetType.FOLDER

    @property
    def title(self) -> str:
        return str(self.data.get("title") or "")

    def folder(self) -> FolderData:
        """Return a folder view over this widget's data."""
        if not self.is_folder:
            raise ValueError(f"Widget {self.id} is not a folder")
        return FolderData(self.data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data = copy.deepcopy(self.data)
        if self.is_folder and "childrenLayouts" in data:
            data["childrenLayouts"] = layouts_to_dict(data["childrenLayouts"])
        result: Dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "data": data,
            "minW": self.minW,
            "minH": self.minH,
        }
        if self.parentId:
            result["parentId"] = self.parentId
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Widget:
        """Create from dictionary."""
        widget_type = WidgetType.parse(data["type"])
        raw_payload = data.get("data")
        if raw_payload is not None and not isinstance(raw_payload, dict):
            logger.warning(f"Replacing unreadable payload of widget {data.get('id')}")
            raw_payload = None
        payload = copy.deepcopy(raw_payload or {})
        if widget_type == WidgetType.FOLDER:
            payload["childrenLayouts"] = layouts_from_dict(payload.get("childrenLayouts"))
        return cls(
            id=str(data["id"]),
            type=widget_type,
            data=payload,
            minW=int(data.get("minW", 1)),
            minH=int(data.get("minH", 1)),
            parentId=data.get("parentId") or None,
        )


class FolderData:
    """
    Typed accessor over a Folder widget's data payload.

    Writes go straight through to the wrapped dict, so the owning widget
    sees every change.
    """

    def __init__(self, data: Dict[str, Any]):
        self.data = data

    @property
    def is_collapsed(self) -> bool:
        return bool(self.data.get("isCollapsed", False))

    @is_collapsed.setter
    def is_collapsed(self, value: bool) -> None:
        self.data["isCollapsed"] = bool(value)

    @property
    def expanded_h(self) -> Optional[int]:
        value = self.data.get("expandedH")
        return int(value) if value else None

    @expanded_h.setter
    def expanded_h(self, value: Optional[int]) -> None:
        self.data["expandedH"] = value

    @property
    def expanded_heights(self) -> Dict[str, int]:
        heights = self.data.get("expandedHeights")
        if not isinstance(heights, dict):
            heights = {}
            self.data["expandedHeights"] = heights
        return heights

    def expanded_height_for(self, breakpoint: str) -> Optional[int]:
        """Last known expanded height for a breakpoint, else the shared value."""
        value = self.expanded_heights.get(breakpoint)
        if value:
            return int(value)
        return self.expanded_h

    def record_expanded_height(self, breakpoint: str, height: int, primary: bool = False) -> None:
        """Remember a breakpoint's expanded height; the primary one also sets expandedH."""
        self.expanded_heights[breakpoint] = int(height)
        if primary or self.expanded_h is None:
            self.expanded_h = int(height)

    def shift_record_for(self, breakpoint: str) -> Optional[Dict[str, Any]]:
        """
        The pending shrink record of a breakpoint, if any.

        ``{"fromH": int, "moved": {id: {"y": int, "dy": int}}}``: the height
        the items below were laid out for, and where each moved item was
        left and by how much it moved. Unreadable records count as absent.
        """
        records = self.data.get("shiftRecords")
        if not isinstance(records, dict):
            return None
        raw = records.get(breakpoint)
        if not isinstance(raw, dict):
            return None
        try:
            return {
                "fromH": int(raw["fromH"]),
                "moved": {
                    str(item_id): {"y": int(entry["y"]), "dy": int(entry["dy"])}
                    for item_id, entry in (raw.get("moved") or {}).items()
                },
            }
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable shift record for '{breakpoint}': {e}")
            return None

    def record_shift(self, breakpoint: str, from_h: int, moved: Dict[str, Dict[str, int]]) -> None:
        records = self.data.get("shiftRecords")
        if not isinstance(records, dict):
            records = {}
            self.data["shiftRecords"] = records
        records[breakpoint] = {"fromH": int(from_h), "moved": moved}

    def clear_shift(self, breakpoint: str) -> None:
        records = self.data.get("shiftRecords")
        if isinstance(records, dict):
            records.pop(breakpoint, None)

    @property
    def children_layouts(self) -> Layouts:
        layouts = self.data.get("childrenLayouts")
        if not isinstance(layouts, dict):
            layouts = {}
            self.data["childrenLayouts"] = layouts
        return layouts

    @children_layouts.setter
    def children_layouts(self, value: Layouts) -> None:
        self.data["childrenLayouts"] = value


@dataclass
class Workspace:
    """A named container of widgets and their top-level layouts."""
    id: str
    name: str
    widgets: List[Widget] = field(default_factory=list)
    layouts: Layouts = field(default_factory=dict)

    def get_widget(self, widget_id: Optional[str]) -> Optional[Widget]:
        """Get a widget by ID."""
        if widget_id is None:
            return None
        for widget in self.widgets:
            if widget.id == widget_id:
                return widget
        return None

    def get_folder(self, widget_id: Optional[str]) -> Optional[Widget]:
        """Get a widget by ID if it is a folder."""
        widget = self.get_widget(widget_id)
        if widget is not None and widget.is_folder:
            return widget
        return None

    def children_of(self, folder_id: str) -> List[Widget]:
        return [w for w in self.widgets if w.parentId == folder_id]

    def descendants_of(self, folder_id: str) -> List[Widget]:
        """All widgets nested under a folder, at any depth."""
        result: List[Widget] = []
        pending = [folder_id]
        seen = {folder_id}
        while pending:
            current = pending.pop()
            for child in self.children_of(current):
                if child.id in seen:
                    continue
                seen.add(child.id)
                result.append(child)
                if child.is_folder:
                    pending.append(child.id)
        return result

    def top_level_widgets(self) -> List[Widget]:
        return [w for w in self.widgets if not w.parentId]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "widgets": [w.to_dict() for w in self.widgets],
            "layouts": layouts_to_dict(self.layouts),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Workspace:
        """Create from dictionary, skipping widgets that cannot be read."""
        widgets: List[Widget] = []
        for raw in data.get("widgets") or []:
            try:
                widgets.append(Widget.from_dict(raw))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping malformed widget in workspace {data.get('id')}: {e}")
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            widgets=widgets,
            layouts=layouts_from_dict(data.get("layouts")),
        )


@dataclass
class DashboardState:
    """The persisted unit: every workspace plus the active workspace id."""
    workspaces: List[Workspace] = field(default_factory=list)
    activeWorkspaceId: str = DEFAULT_WORKSPACE_ID

    @property
    def active_workspace(self) -> Optional[Workspace]:
        """The active workspace, falling back to the first one."""
        workspace = self.get_workspace(self.activeWorkspaceId)
        if workspace is None and self.workspaces:
            return self.workspaces[0]
        return workspace

    def get_workspace(self, workspace_id: Optional[str]) -> Optional[Workspace]:
        """Get a workspace by ID."""
        for workspace in self.workspaces:
            if workspace.id == workspace_id:
                return workspace
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "workspaces": [ws.to_dict() for ws in self.workspaces],
            "activeWorkspaceId": self.activeWorkspaceId,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> DashboardState:
        """Create from dictionary."""
        workspaces: List[Workspace] = []
        for raw in data.get("workspaces") or []:
            try:
                workspaces.append(Workspace.from_dict(raw))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping malformed workspace: {e}")
        return cls(
            workspaces=workspaces,
            activeWorkspaceId=str(data.get("activeWorkspaceId") or DEFAULT_WORKSPACE_ID),
        )

    @classmethod
    def default(cls, name: str = DEFAULT_WORKSPACE_NAME) -> DashboardState:
        """State for a first login: one empty workspace."""
        return cls(
            workspaces=[Workspace(id=DEFAULT_WORKSPACE_ID, name=name)],
            activeWorkspaceId=DEFAULT_WORKSPACE_ID,
        )
