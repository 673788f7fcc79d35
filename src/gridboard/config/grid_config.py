"""
Grid configuration for Gridboard.

Provides the breakpoint column counts, pixel metrics, folder constants,
history and storage settings that the layout engine receives explicitly.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

import yaml

DEFAULT_COLUMNS: Dict[str, int] = {"lg": 12, "md": 10, "sm": 6, "xs": 4, "xxs": 2}
DEFAULT_WIDTHS: Dict[str, int] = {"lg": 1200, "md": 996, "sm": 768, "xs": 480, "xxs": 0}

# Nested grids inside folders always run at this multiple of the
# top-level column count for the same breakpoint.
NESTED_DENSITY = 2


@dataclass
class BreakpointConfig:
    """Responsive breakpoints: column counts and minimum viewport widths."""

    columns: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_COLUMNS))
    widths: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_WIDTHS))

    @property
    def names(self) -> List[str]:
        """Breakpoint names, widest first."""
        return sorted(self.columns, key=lambda bp: -self.widths.get(bp, 0))

    def columns_for(self, breakpoint: str, nested: bool = False) -> int:
        cols = self.columns[breakpoint]
        return cols * NESTED_DENSITY if nested else cols

    def nested_columns(self) -> Dict[str, int]:
        return {bp: cols * NESTED_DENSITY for bp, cols in self.columns.items()}

    def breakpoint_for_width(self, width: int) -> str:
        """Pick the breakpoint active at a viewport width."""
        for bp in self.names:
            if width >= self.widths.get(bp, 0):
                return bp
        return self.names[-1]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {"columns": dict(self.columns), "widths": dict(self.widths)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> BreakpointConfig:
        """Create from dictionary."""
        columns = {str(k): int(v) for k, v in (data.get("columns") or DEFAULT_COLUMNS).items()}
        widths = {str(k): int(v) for k, v in (data.get("widths") or DEFAULT_WIDTHS).items()}
        for bp, cols in columns.items():
            if cols < 1:
                raise ValueError(f"Breakpoint '{bp}' must have at least one column")
        return cls(columns=columns, widths=widths)


@dataclass
class GridMetricsConfig:
    """Pixel metrics of a grid: row height and vertical margin."""

    row_height: int = 50
    margin_y: int = 16

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {"row_height": self.row_height, "margin_y": self.margin_y}

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default: GridMetricsConfig | None = None) -> GridMetricsConfig:
        """Create from dictionary."""
        base = default or cls()
        return cls(
            row_height=int(data.get("row_height", base.row_height)),
            margin_y=int(data.get("margin_y", base.margin_y)),
        )


@dataclass
class FolderConfig:
    """Folder chrome sizes used to convert nested rows into parent rows."""

    header_px: int = 53
    content_padding_y_px: int = 8  # Applied above and below the nested grid

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "header_px": self.header_px,
            "content_padding_y_px": self.content_padding_y_px,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> FolderConfig:
        """Create from dictionary."""
        return cls(
            header_px=int(data.get("header_px", 53)),
            content_padding_y_px=int(data.get("content_padding_y_px", 8)),
        )


@dataclass
class HistoryConfig:
    """Undo history settings."""

    limit: int = 20

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {"limit": self.limit}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> HistoryConfig:
        """Create from dictionary."""
        return cls(limit=int(data.get("limit", 20)))


@dataclass
class StorageConfig:
    """Configuration for storage backends."""

    backend: str = "local"  # local, s3
    local_path: str = "~/.gridboard/gridboard.db"
    s3_bucket: str = ""
    s3_prefix: str = "gridboard"
    s3_region: str = "us-east-1"

    def backend_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for get_storage()."""
        if self.backend.lower() == "s3":
            return {
                "bucket": self.s3_bucket,
                "prefix": self.s3_prefix,
                "region": self.s3_region,
            }
        return {"db_path": self.local_path}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "backend": self.backend,
            "local_path": self.local_path,
            "s3_bucket": self.s3_bucket,
            "s3_prefix": self.s3_prefix,
            "s3_region": self.s3_region,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> StorageConfig:
        """Create from dictionary."""
        return cls(
            backend=data.get("backend", "local"),
            local_path=data.get("local_path", "~/.gridboard/gridboard.db"),
            s3_bucket=data.get("s3_bucket", ""),
            s3_prefix=data.get("s3_prefix", "gridboard"),
            s3_region=data.get("s3_region", "us-east-1"),
        )


@dataclass
class GridConfiguration:
    """
    Complete engine configuration.

    Everything the placement solver, synchronizer, folder resolver and
    store need is carried here and passed in explicitly.
    """

    breakpoints: BreakpointConfig = field(default_factory=BreakpointConfig)
    grid: GridMetricsConfig = field(default_factory=GridMetricsConfig)
    nested_grid: GridMetricsConfig = field(
        default_factory=lambda: GridMetricsConfig(row_height=21, margin_y=8)
    )
    folder: FolderConfig = field(default_factory=FolderConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    placement_max_rows: int = 200

    @property
    def breakpoint_names(self) -> List[str]:
        return self.breakpoints.names

    def columns(self, nested: bool = False) -> Dict[str, int]:
        """Breakpoint -> column count for the top-level or nested grid."""
        if nested:
            return self.breakpoints.nested_columns()
        return dict(self.breakpoints.columns)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "breakpoints": self.breakpoints.to_dict(),
            "grid": self.grid.to_dict(),
            "nested_grid": self.nested_grid.to_dict(),
            "folder": self.folder.to_dict(),
            "history": self.history.to_dict(),
            "storage": self.storage.to_dict(),
            "placement_max_rows": self.placement_max_rows,
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> GridConfiguration:
        """Create from dictionary."""
        return cls(
            breakpoints=BreakpointConfig.from_dict(data.get("breakpoints", {})),
            grid=GridMetricsConfig.from_dict(data.get("grid", {})),
            nested_grid=GridMetricsConfig.from_dict(
                data.get("nested_grid", {}),
                default=GridMetricsConfig(row_height=21, margin_y=8),
            ),
            folder=FolderConfig.from_dict(data.get("folder", {})),
            history=HistoryConfig.from_dict(data.get("history", {})),
            storage=StorageConfig.from_dict(data.get("storage", {})),
            placement_max_rows=int(data.get("placement_max_rows", 200)),
        )

    @classmethod
    def from_json(cls, json_str: str) -> GridConfiguration:
        """Create from JSON string."""
        return cls.from_dict(json.loads(json_str))

    @classmethod
    def from_file(cls, path: str) -> GridConfiguration:
        """Load configuration from a JSON or YAML file."""
        path = os.path.expanduser(path)
        with open(path, "r", encoding="utf-8") as f:
            if path.endswith(".json"):
                return cls.from_dict(json.load(f))
            return cls.from_dict(yaml.safe_load(f) or {})

    def save(self, path: str) -> None:
        """Save configuration to file."""
        path = os.path.expanduser(path)
        Path(path).parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            if path.endswith(".json"):
                json.dump(self.to_dict(), f, indent=2)
            else:
                yaml.safe_dump(self.to_dict(), f, default_flow_style=False)

    @classmethod
    def from_env(cls) -> GridConfiguration:
        """
        Build configuration from the environment.

        GRIDBOARD_CONFIG names a config file; GRIDBOARD_STORAGE_BACKEND,
        GRIDBOARD_DB_PATH and GRIDBOARD_S3_BUCKET override storage fields.
        """
        config_path = os.getenv("GRIDBOARD_CONFIG")
        config = cls.from_file(config_path) if config_path else cls()

        backend = os.getenv("GRIDBOARD_STORAGE_BACKEND")
        if backend:
            config.storage.backend = backend
        db_path = os.getenv("GRIDBOARD_DB_PATH")
        if db_path:
            config.storage.local_path = db_path
        bucket = os.getenv("GRIDBOARD_S3_BUCKET")
        if bucket:
            config.storage.s3_bucket = bucket
        return config
