"""
Pytest configuration and fixtures for Gridboard tests.

This module provides common fixtures used across the unit tests.
"""

from __future__ import annotations

import random
from typing import Callable, List

import pytest

from gridboard.config import GridConfiguration
from gridboard.layout import LayoutSynchronizer, find_collisions
from gridboard.models import DashboardState, LayoutItem, Widget, WidgetType, Workspace
from gridboard.storage import LocalStorage
from gridboard.store import WorkspaceStore
from gridboard.widgets import WidgetCatalog


@pytest.fixture
def config() -> GridConfiguration:
    """Return the default grid configuration."""
    return GridConfiguration()


@pytest.fixture
def catalog() -> WidgetCatalog:
    """Return a fresh widget catalog."""
    return WidgetCatalog()


@pytest.fixture
def rng() -> random.Random:
    """Return a seeded random source."""
    return random.Random(1234)


@pytest.fixture
def make_widget(catalog, rng) -> Callable[..., Widget]:
    """Return a factory for widgets with fixed ids."""

    def _make(widget_id: str, widget_type: WidgetType, parent_id: str | None = None) -> Widget:
        return catalog.create_widget(
            widget_type, parent_id=parent_id, widget_id=widget_id, rng=rng
        )

    return _make


@pytest.fixture
def synchronizer(config, catalog) -> LayoutSynchronizer:
    """Return a layout synchronizer over the default configuration."""
    return LayoutSynchronizer(config, catalog)


@pytest.fixture
def folder_workspace(make_widget, synchronizer) -> Workspace:
    """
    Return a normalized workspace with a full-width folder ``f`` at the top
    and a Text widget ``t`` right below it in every breakpoint.
    """
    workspace = Workspace(
        id="ws",
        name="Folder workspace",
        widgets=[make_widget("f", WidgetType.FOLDER), make_widget("t", WidgetType.TEXT)],
    )
    synchronizer.normalize_workspace(workspace)
    return workspace


@pytest.fixture
def store(config, catalog, rng) -> WorkspaceStore:
    """Return an in-memory store."""
    return WorkspaceStore(config, catalog=catalog, rng=rng)


@pytest.fixture
def local_storage(tmp_path) -> LocalStorage:
    """Return a LocalStorage backed by a temporary database."""
    return LocalStorage(db_path=str(tmp_path / "gridboard.db"))


@pytest.fixture
def persistent_store(config, catalog, rng, local_storage) -> WorkspaceStore:
    """Return a store that persists to a temporary SQLite database."""
    return WorkspaceStore(config, storage=local_storage, catalog=catalog, rng=rng)


def item_by_id(items: List[LayoutItem], widget_id: str) -> LayoutItem:
    """Find a layout item by widget id."""
    for item in items:
        if item.i == widget_id:
            return item
    raise AssertionError(f"No layout item for {widget_id}")


def assert_no_overlaps(state: DashboardState, config: GridConfiguration) -> None:
    """Check every grid of every workspace for collisions and overflow."""
    for workspace in state.workspaces:
        grids = [(workspace.layouts, config.columns())]
        for widget in workspace.widgets:
            if widget.is_folder:
                grids.append((widget.folder().children_layouts, config.columns(nested=True)))
        for layouts, columns in grids:
            for bp, cols in columns.items():
                items = layouts[bp]
                assert find_collisions(items) == [], f"collision in {workspace.id}/{bp}"
                for item in items:
                    assert 0 <= item.x and item.x + item.w <= cols


@pytest.fixture
def find_item() -> Callable[[List[LayoutItem], str], LayoutItem]:
    """Return the layout item lookup helper."""
    return item_by_id


@pytest.fixture
def check_no_overlaps(config) -> Callable[[DashboardState], None]:
    """Return a checker for the no-overlap invariant under ``config``."""
    return lambda state: assert_no_overlaps(state, config)
