"""
Configuration management for Gridboard.

Provides configuration classes for breakpoints, grid pixel metrics,
folder chrome, undo history and storage settings.
"""

from gridboard.config.grid_config import (
    DEFAULT_COLUMNS,
    DEFAULT_WIDTHS,
    NESTED_DENSITY,
    BreakpointConfig,
    FolderConfig,
    GridConfiguration,
    GridMetricsConfig,
    HistoryConfig,
    StorageConfig,
)

__all__ = [
    "DEFAULT_COLUMNS",
    "DEFAULT_WIDTHS",
    "NESTED_DENSITY",
    "BreakpointConfig",
    "FolderConfig",
    "GridConfiguration",
    "GridMetricsConfig",
    "HistoryConfig",
    "StorageConfig",
]
