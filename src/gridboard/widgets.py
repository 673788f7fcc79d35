"""
Widget type catalog for Gridboard.

Holds the default size, minimum size and starting payload of every widget
type, plus the colour assignment and line-series dependency helpers that
operate on widget payloads.
"""

from __future__ import annotations

import copy
import random
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from gridboard.config import NESTED_DENSITY
from gridboard.models import Widget, WidgetType

GRADIENT_TYPES = (WidgetType.PLAN, WidgetType.PIE, WidgetType.LINE)

GRADIENTS: List[Tuple[str, str]] = [
    ("#8A2BE2", "#BA55D3"),
    ("#4FACFE", "#00F2FE"),
    ("#43E97B", "#38F9D7"),
    ("#FA709A", "#FEE140"),
    ("#F6D365", "#FDA085"),
    ("#667EEA", "#764BA2"),
]

FOLDER_COLORS: List[str] = [
    "rgba(138, 43, 226, 0.15)",
    "rgba(79, 172, 254, 0.15)",
    "rgba(67, 233, 123, 0.15)",
    "rgba(250, 112, 154, 0.15)",
    "rgba(246, 211, 101, 0.15)",
]


@dataclass
class WidgetTemplate:
    """
    Defaults for one widget type.

    Sizes are in top-level grid cells; nested grids use NESTED_DENSITY
    times these values.
    """
    widget_type: WidgetType
    w: int
    h: int
    minW: int
    minH: int
    default_data: Dict[str, Any] = field(default_factory=dict)

    def size(self, nested: bool = False) -> Dict[str, int]:
        """Default size and minimums, scaled for nested grids."""
        factor = NESTED_DENSITY if nested else 1
        return {
            "w": self.w * factor,
            "h": self.h * factor,
            "minW": self.minW * factor,
            "minH": self.minH * factor,
        }

    def new_data(self, rng: Optional[random.Random] = None) -> Dict[str, Any]:
        """A fresh payload for a new widget of this type."""
        data = copy.deepcopy(self.default_data)
        if self.widget_type == WidgetType.LINE:
            for series in data.get("series", []):
                for point in series.get("data", []):
                    point["id"] = str(uuid.uuid4())
        assign_colors(self.widget_type, data, rng)
        return data

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "type": self.widget_type.value,
            "w": self.w,
            "h": self.h,
            "minW": self.minW,
            "minH": self.minH,
        }


class WidgetCatalog:
    """
    Catalog of widget types and their defaults.

    The synchronizer reads minimum sizes from here on every read, so a
    change to a type's defaults applies to existing widgets without a
    migration.
    """

    def __init__(self):
        self.templates: Dict[WidgetType, WidgetTemplate] = {}
        self._load_default_templates()

    def _load_default_templates(self) -> None:
        self.add_template(WidgetTemplate(
            widget_type=WidgetType.PLAN,
            w=4, h=5, minW=3, minH=5,
            default_data={
                "title": "Progress plan",
                "current": 7500,
                "target": 10000,
                "unit": "$",
                "customUnit": "days",
            },
        ))
        self.add_template(WidgetTemplate(
            widget_type=WidgetType.PIE,
            w=4, h=5, minW=3, minH=4,
            default_data={
                "title": "Ratio",
                "total": 100,
                "part": 30,
                "totalLabel": "Total",
                "partLabel": "Part",
            },
        ))
        self.add_template(WidgetTemplate(
            widget_type=WidgetType.LINE,
            w=4, h=6, minW=4, minH=4,
            default_data={
                "title": "Trend",
                "series": [
                    {
                        "name": "Sales",
                        "data": [
                            {"x": "Jan", "y": 30},
                            {"x": "Feb", "y": 40},
                            {"x": "Mar", "y": 45},
                            {"x": "Apr", "y": 50},
                            {"x": "May", "y": 49},
                            {"x": "Jun", "y": 60},
                        ],
                    },
                ],
            },
        ))
        self.add_template(WidgetTemplate(
            widget_type=WidgetType.TEXT,
            w=3, h=4, minW=2, minH=2,
            default_data={
                "title": "Note",
                "content": "This is a text widget. Write your thoughts here.",
            },
        ))
        self.add_template(WidgetTemplate(
            widget_type=WidgetType.TITLE,
            w=12, h=2, minW=2, minH=2,
            default_data={"title": "Section title"},
        ))
        self.add_template(WidgetTemplate(
            widget_type=WidgetType.CHECKLIST,
            w=4, h=5, minW=3, minH=5,
            default_data={
                "title": "To do",
                "items": [
                    {"id": "1", "text": "First task", "completed": False},
                    {"id": "2", "text": "Second task", "completed": True},
                ],
            },
        ))
        self.add_template(WidgetTemplate(
            widget_type=WidgetType.IMAGE,
            w=4, h=5, minW=2, minH=2,
            default_data={"title": "Image", "src": None},
        ))
        self.add_template(WidgetTemplate(
            widget_type=WidgetType.ARTICLE,
            w=4, h=8, minW=4, minH=4,
            default_data={
                "title": "Article",
                "content": "## Article title\n\nStart writing here...",
            },
        ))
        self.add_template(WidgetTemplate(
            widget_type=WidgetType.FOLDER,
            w=12, h=6, minW=4, minH=1,
            default_data={
                "title": "New folder",
                "isCollapsed": False,
                "expandedH": 6,
            },
        ))

    def add_template(self, template: WidgetTemplate) -> None:
        """Add or replace the template for a widget type."""
        self.templates[template.widget_type] = template

    def get_template(self, widget_type: WidgetType) -> WidgetTemplate:
        return self.templates[widget_type]

    def min_size(self, widget: Widget, nested: bool = False) -> Tuple[int, int]:
        """Current minimum (w, h) for a widget, from its type's defaults."""
        template = self.templates.get(widget.type)
        factor = NESTED_DENSITY if nested else 1
        if template is None:
            return (widget.minW * factor, widget.minH * factor)
        return (template.minW * factor, template.minH * factor)

    def create_widget(
        self,
        widget_type: WidgetType,
        parent_id: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
        widget_id: Optional[str] = None,
        rng: Optional[random.Random] = None,
    ) -> Widget:
        """Create a widget instance from its type's template."""
        template = self.get_template(widget_type)
        payload = template.new_data(rng)
        if data:
            payload.update(data)
        if widget_type == WidgetType.FOLDER:
            payload.setdefault("childrenLayouts", {})
        return Widget(
            id=widget_id or str(uuid.uuid4()),
            type=widget_type,
            data=payload,
            minW=template.minW,
            minH=template.minH,
            parentId=parent_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert catalog to dictionary."""
        return {
            "templates": [t.to_dict() for t in self.templates.values()],
            "total_count": len(self.templates),
        }


def assign_colors(
    widget_type: WidgetType,
    data: Dict[str, Any],
    rng: Optional[random.Random] = None,
) -> bool:
    """
    Give a widget payload its random colours if it has none yet.

    Gradient widgets get a colour pair unless the user picked colours;
    folders get a tint. Returns True if the payload changed.
    """
    rng = rng or random
    if widget_type in GRADIENT_TYPES:
        if data.get("userSetColors"):
            return False
        if widget_type == WidgetType.PIE:
            if data.get("color1") and data.get("color2"):
                return False
            data["color1"], data["color2"] = rng.choice(GRADIENTS)
        else:
            if data.get("color") and data.get("color2"):
                return False
            data["color"], data["color2"] = rng.choice(GRADIENTS)
        data["userSetColors"] = False
        return True
    if widget_type == WidgetType.FOLDER and not data.get("color"):
        data["color"] = rng.choice(FOLDER_COLORS)
        return True
    return False


def resolve_dependencies(widgets: List[Widget]) -> List[Widget]:
    """
    Resolve line-series points bound to Plan or Pie values.

    A Line point carrying ``dependency: {widgetId, dataKey}`` takes its
    ``y`` from the referenced widget's numeric field. Returns new widgets;
    the input list is not modified.
    """
    by_id = {w.id: w for w in widgets}
    resolved: List[Widget] = []
    for widget in widgets:
        if widget.type != WidgetType.LINE:
            resolved.append(widget)
            continue
        data = copy.deepcopy(widget.data)
        for series in data.get("series", []):
            for point in series.get("data", []):
                dependency = point.get("dependency")
                if not dependency:
                    continue
                source = by_id.get(dependency.get("widgetId"))
                if source is None or source.type not in (WidgetType.PLAN, WidgetType.PIE):
                    continue
                value = source.data.get(dependency.get("dataKey"))
                if isinstance(value, (int, float)) and not isinstance(value, bool):
                    point["y"] = value
        resolved.append(Widget(
            id=widget.id,
            type=widget.type,
            data=data,
            minW=widget.minW,
            minH=widget.minH,
            parentId=widget.parentId,
        ))
    return resolved


_default_catalog: Optional[WidgetCatalog] = None


def get_catalog() -> WidgetCatalog:
    """Shared default catalog."""
    global _default_catalog
    if _default_catalog is None:
        _default_catalog = WidgetCatalog()
    return _default_catalog
