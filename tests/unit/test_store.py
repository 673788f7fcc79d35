"""
Tests for the Gridboard workspace store.

Tests cover:
- Adding widgets at the top level and inside folders
- Cascade delete
- Layout changes, gestures and the drag lock
- Folder toggles, including nested folders
- Workspace management
- Undo history
- Persistence and degraded persistence
"""

from __future__ import annotations

import json
import logging
import random
import sqlite3
from unittest.mock import MagicMock

import pytest

from gridboard.models import (
    DEFAULT_WORKSPACE_ID,
    DashboardState,
    LayoutItem,
    Widget,
    WidgetType,
    Workspace,
)
from gridboard.storage import StateStorage, StorageError
from gridboard.store import WorkspaceStore


def _all_ids(workspace: Workspace) -> set:
    ids = set()
    for items in workspace.layouts.values():
        ids.update(item.i for item in items)
    for widget in workspace.widgets:
        if widget.is_folder:
            for items in widget.folder().children_layouts.values():
                ids.update(item.i for item in items)
    return ids


class TestAddWidget:
    """Tests for WorkspaceStore.add_widget()."""

    def test_top_level_first_fit(self, store, find_item):
        """Test new widgets fill the first row, then the next."""
        ids = [
            store.add_widget(WidgetType.PLAN),
            store.add_widget(WidgetType.PLAN),
            store.add_widget(WidgetType.PIE),
            store.add_widget(WidgetType.TEXT),
        ]
        lg = store.active_workspace.layouts["lg"]
        positions = [(find_item(lg, i).x, find_item(lg, i).y) for i in ids]
        assert positions == [(0, 0), (4, 0), (8, 0), (0, 5)]

    def test_added_widget_is_in_every_breakpoint(self, store, config):
        """Test the widget gets an item per breakpoint."""
        widget_id = store.add_widget("Line")
        for bp in config.breakpoint_names:
            assert [item.i for item in store.active_workspace.layouts[bp]] == [widget_id]

    def test_widget_gets_type_defaults(self, store):
        """Test payload and minimums come from the catalog."""
        widget_id = store.add_widget(WidgetType.PIE, data={"title": "Budget"})
        widget = store.active_workspace.get_widget(widget_id)

        assert widget.title == "Budget"
        assert (widget.minW, widget.minH) == (3, 4)
        assert widget.data["color1"] and widget.data["color2"]
        assert widget.data["userSetColors"] is False

    def test_add_into_folder(self, store, find_item):
        """Test a child goes into the folder grid at double size."""
        folder_id = store.add_widget(WidgetType.FOLDER)
        child_id = store.add_widget(WidgetType.TEXT, parent_id=folder_id)
        workspace = store.active_workspace

        assert workspace.get_widget(child_id).parentId == folder_id
        for items in workspace.layouts.values():
            assert child_id not in [item.i for item in items]

        child = find_item(workspace.get_folder(folder_id).folder().children_layouts["lg"], child_id)
        assert (child.x, child.y, child.w, child.h) == (0, 0, 6, 8)
        assert (child.minW, child.minH) == (4, 4)

    def test_add_into_folder_refits_folder(self, store, find_item):
        """Test the folder height follows its nested content."""
        folder_id = store.add_widget(WidgetType.FOLDER)
        store.add_widget(WidgetType.TEXT, parent_id=folder_id)

        # 8 nested rows: 168 + 56 + 16 + 53 = 293 px -> ceil(309 / 66) = 5
        assert find_item(store.active_workspace.layouts["lg"], folder_id).h == 5

    def test_unknown_parent_is_noop(self, store):
        """Test adding into a missing folder changes nothing."""
        before = store.state
        assert store.add_widget(WidgetType.TEXT, parent_id="missing") is None
        assert store.state is before
        assert len(store.history) == 0

    def test_parent_that_is_not_folder_is_noop(self, store):
        """Test adding into a non-folder widget changes nothing."""
        plan_id = store.add_widget(WidgetType.PLAN)
        assert store.add_widget(WidgetType.TEXT, parent_id=plan_id) is None
        assert len(store.active_workspace.widgets) == 1
        assert len(store.history) == 1


class TestRemoveWidget:
    """Tests for WorkspaceStore.remove_widget()."""

    def test_removing_folder_cascades(self, store):
        """Test a folder and its two children disappear together."""
        folder_id = store.add_widget(WidgetType.FOLDER)
        first = store.add_widget(WidgetType.TEXT, parent_id=folder_id)
        second = store.add_widget(WidgetType.PIE, parent_id=folder_id)
        other = store.add_widget(WidgetType.TITLE)

        assert store.remove_widget(folder_id) is True

        workspace = store.active_workspace
        assert [w.id for w in workspace.widgets] == [other]
        assert _all_ids(workspace).isdisjoint({folder_id, first, second})

    def test_removing_folder_cascades_through_nested_folders(self, store):
        """Test removal reaches widgets nested two levels deep."""
        outer = store.add_widget(WidgetType.FOLDER)
        inner = store.add_widget(WidgetType.FOLDER, parent_id=outer)
        store.add_widget(WidgetType.TEXT, parent_id=inner)

        store.remove_widget(outer)
        assert store.active_workspace.widgets == []

    def test_removing_child_purges_folder_layout(self, store):
        """Test a removed child leaves its folder's nested layouts."""
        folder_id = store.add_widget(WidgetType.FOLDER)
        child_id = store.add_widget(WidgetType.TEXT, parent_id=folder_id)

        store.remove_widget(child_id)

        folder = store.active_workspace.get_folder(folder_id)
        for items in folder.folder().children_layouts.values():
            assert items == []

    def test_unknown_widget_is_noop(self, store):
        """Test removing a missing id is silent."""
        assert store.remove_widget("missing") is False
        assert len(store.history) == 0


class TestLayoutChanges:
    """Tests for layout changes and gestures."""

    def test_moved_item_wins(self, store, find_item):
        """Test dropping an item onto another pushes the other down."""
        a = store.add_widget(WidgetType.PLAN)
        b = store.add_widget(WidgetType.PLAN)

        assert store.change_layout("lg", [
            {"i": a, "x": 0, "y": 0, "w": 4, "h": 5},
            {"i": b, "x": 0, "y": 0, "w": 4, "h": 5},
        ]) is True

        lg = store.active_workspace.layouts["lg"]
        assert (find_item(lg, b).x, find_item(lg, b).y) == (0, 0)
        assert find_item(lg, a).y == 5
        assert len(store.history) == 3

    def test_unknown_breakpoint_is_noop(self, store):
        """Test a change for an unconfigured breakpoint is ignored."""
        store.add_widget(WidgetType.PLAN)
        assert store.change_layout("huge", []) is False
        assert len(store.history) == 1

    def test_change_layouts_is_one_action(self, store, find_item):
        """Test several breakpoints change under one snapshot."""
        a = store.add_widget(WidgetType.TEXT)
        store.change_layouts({
            "lg": [LayoutItem(i=a, x=5, y=2, w=3, h=4)],
            "md": [LayoutItem(i=a, x=1, y=1, w=3, h=4)],
        })
        workspace = store.active_workspace
        assert find_item(workspace.layouts["lg"], a).x == 5
        assert find_item(workspace.layouts["md"], a).x == 1
        assert len(store.history) == 2

    def test_resizing_folder_records_expanded_height(self, store):
        """Test an expanded folder remembers a resized height."""
        folder_id = store.add_widget(WidgetType.FOLDER)
        store.change_layout("lg", [LayoutItem(i=folder_id, x=0, y=0, w=12, h=9)])

        folder = store.active_workspace.get_folder(folder_id).folder()
        assert folder.expanded_height_for("lg") == 9
        assert folder.expanded_h == 9

    def test_change_children_layout_refits_folder(self, store, find_item):
        """Test resizing a child grows its folder."""
        folder_id = store.add_widget(WidgetType.FOLDER)
        child_id = store.add_widget(WidgetType.TEXT, parent_id=folder_id)

        store.change_children_layout(
            folder_id, "lg", [LayoutItem(i=child_id, x=0, y=0, w=6, h=20)]
        )

        workspace = store.active_workspace
        assert find_item(workspace.layouts["lg"], folder_id).h == 10

    def test_change_children_layout_unknown_folder(self, store):
        """Test a nested change for a missing folder is a no-op."""
        assert store.change_children_layout("missing", "lg", []) is False

    def test_gesture_records_one_snapshot(self, store, find_item, caplog):
        """Test a drag with many moves is one undo step."""
        a = store.add_widget(WidgetType.PLAN)
        b = store.add_widget(WidgetType.PLAN)

        assert store.begin_gesture(b, "drag") is True
        store.change_layout("lg", [LayoutItem(i=a, x=0, y=0, w=4, h=5), LayoutItem(i=b, x=6, y=0, w=4, h=5)])
        store.change_layout("lg", [LayoutItem(i=a, x=0, y=0, w=4, h=5), LayoutItem(i=b, x=8, y=0, w=4, h=5)])
        assert len(store.history) == 2

        assert store.end_gesture() is True
        assert len(store.history) == 3

        with caplog.at_level(logging.DEBUG, logger="gridboard.store"):
            store.undo()
        assert caplog.records[-1].action == "drag_stop"
        assert find_item(store.active_workspace.layouts["lg"], b).x == 4

    def test_gesture_without_change_records_nothing(self, store):
        """Test a gesture that moved nothing leaves history alone."""
        a = store.add_widget(WidgetType.PLAN)
        store.begin_gesture(a, "resize")
        assert store.end_gesture() is False
        assert len(store.history) == 1

    def test_gesture_on_unknown_widget(self, store):
        """Test a gesture for a missing widget does not start."""
        assert store.begin_gesture("missing", "drag") is False
        assert store.gesture is None

    def test_invalid_gesture_kind(self, store):
        """Test only drag and resize gestures exist."""
        a = store.add_widget(WidgetType.PLAN)
        with pytest.raises(ValueError):
            store.begin_gesture(a, "spin")

    def test_drag_lock_during_child_drag(self, store, find_item):
        """Test the parent folder is locked only while its child is dragged."""
        folder_id = store.add_widget(WidgetType.FOLDER)
        child_id = store.add_widget(WidgetType.TEXT, parent_id=folder_id)

        store.begin_gesture(child_id, "drag")
        locked = find_item(store.layouts_for()["lg"], folder_id)
        assert locked.isDraggable is False
        assert locked.isResizable is False
        assert find_item(store.active_workspace.layouts["lg"], folder_id).isDraggable is None

        store.end_gesture()
        assert find_item(store.layouts_for()["lg"], folder_id).isDraggable is None

    def test_resize_does_not_lock(self, store, find_item):
        """Test resizing a child leaves the folder interactive."""
        folder_id = store.add_widget(WidgetType.FOLDER)
        child_id = store.add_widget(WidgetType.TEXT, parent_id=folder_id)

        store.begin_gesture(child_id, "resize")
        assert find_item(store.layouts_for()["lg"], folder_id).isDraggable is None

    def test_children_layouts_for(self, store):
        """Test nested layouts are presented per breakpoint."""
        folder_id = store.add_widget(WidgetType.FOLDER)
        child_id = store.add_widget(WidgetType.TEXT, parent_id=folder_id)

        layouts = store.children_layouts_for(folder_id)
        assert [item.i for item in layouts["sm"]] == [child_id]
        assert store.children_layouts_for("missing") == {}


class TestToggleFolder:
    """Tests for WorkspaceStore.toggle_folder()."""

    def test_toggle_round_trip(self, store):
        """Test collapse then expand restores every position."""
        folder_id = store.add_widget(WidgetType.FOLDER)
        store.add_widget(WidgetType.PLAN)
        store.add_widget(WidgetType.TEXT)
        before = store.active_workspace.to_dict()["layouts"]

        store.toggle_folder(folder_id)
        assert store.active_workspace.to_dict()["layouts"] != before
        store.toggle_folder(folder_id)

        assert store.active_workspace.to_dict()["layouts"] == before

    def _beside_tall_plan(self, store):
        folder_id = store.add_widget(WidgetType.FOLDER)
        side = store.add_widget(WidgetType.PLAN)
        below = store.add_widget(WidgetType.TEXT)
        store.change_layout("lg", [
            LayoutItem(i=folder_id, x=0, y=0, w=6, h=6),
            LayoutItem(i=side, x=6, y=0, w=6, h=8),
            LayoutItem(i=below, x=0, y=10, w=12, h=2),
        ])
        return folder_id, side, below

    def test_round_trip_beside_tall_neighbour(self, store, find_item):
        """Test items below return to their rows when a tall neighbour limited the collapse."""
        folder_id, side, below = self._beside_tall_plan(store)
        before = store.active_workspace.to_dict()["layouts"]

        store.toggle_folder(folder_id)
        lg = store.active_workspace.layouts["lg"]
        assert find_item(lg, below).y == 8
        assert find_item(lg, side).y == 0

        store.toggle_folder(folder_id)
        assert store.active_workspace.to_dict()["layouts"] == before

    def test_round_trip_survives_reload(self, persistent_store, local_storage, config, catalog, find_item):
        """Test a collapse saved in one session expands exactly in the next."""
        folder_id, _, below = self._beside_tall_plan(persistent_store)
        persistent_store.toggle_folder(folder_id)

        reloaded = WorkspaceStore(config, storage=local_storage, catalog=catalog)
        reloaded.load()
        reloaded.toggle_folder(folder_id)

        lg = reloaded.active_workspace.layouts["lg"]
        assert find_item(lg, folder_id).h == 6
        assert find_item(lg, below).y == 10

    def test_moving_collapsed_folder_drops_recorded_shift(self, store, find_item):
        """Test a folder moved while collapsed expands with a plain shift."""
        folder_id, side, below = self._beside_tall_plan(store)
        store.toggle_folder(folder_id)
        assert store.active_workspace.get_folder(folder_id).folder().shift_record_for("lg")

        store.change_layout("lg", [
            LayoutItem(i=folder_id, x=0, y=12, w=6, h=1),
            LayoutItem(i=side, x=6, y=0, w=6, h=8),
            LayoutItem(i=below, x=0, y=8, w=12, h=2),
        ])
        assert store.active_workspace.get_folder(folder_id).folder().shift_record_for("lg") is None

        store.toggle_folder(folder_id)
        lg = store.active_workspace.layouts["lg"]
        assert find_item(lg, folder_id).h == 6
        assert find_item(lg, below).y == 8

    def test_nested_folder_toggle_refits_parent(self, store, find_item):
        """Test collapsing an inner folder shrinks the outer folder."""
        outer = store.add_widget(WidgetType.FOLDER)
        inner = store.add_widget(WidgetType.FOLDER, parent_id=outer)
        store.add_widget(WidgetType.TEXT, parent_id=inner)

        def heights():
            workspace = store.active_workspace
            nested = workspace.get_folder(outer).folder().children_layouts["lg"]
            return find_item(workspace.layouts["lg"], outer).h, find_item(nested, inner).h

        assert heights() == (6, 11)
        store.toggle_folder(inner)
        assert heights() == (3, 2)
        store.toggle_folder(inner)
        assert heights() == (6, 11)

    def test_toggle_is_undoable(self, store):
        """Test undo reverts a toggle."""
        folder_id = store.add_widget(WidgetType.FOLDER)
        store.toggle_folder(folder_id)
        store.undo()
        assert store.active_workspace.get_folder(folder_id).folder().is_collapsed is False

    def test_toggle_unknown_is_noop(self, store):
        """Test toggling a missing folder is silent."""
        assert store.toggle_folder("missing") is False
        assert len(store.history) == 0


class TestUpdateWidgetData:
    """Tests for WorkspaceStore.update_widget_data()."""

    def test_update_replaces_payload_without_history(self, store):
        """Test content edits are not undo steps."""
        widget_id = store.add_widget(WidgetType.TEXT)
        assert store.update_widget_data(widget_id, {"title": "Notes", "content": "hi"}) is True

        assert store.active_workspace.get_widget(widget_id).data == {"title": "Notes", "content": "hi"}
        assert len(store.history) == 1

    def test_update_keeps_folder_geometry(self, store):
        """Test a folder payload update cannot change its layout."""
        folder_id = store.add_widget(WidgetType.FOLDER)
        child_id = store.add_widget(WidgetType.TEXT, parent_id=folder_id)

        store.update_widget_data(
            folder_id, {"title": "Renamed", "childrenLayouts": {}, "isCollapsed": True}
        )

        folder = store.active_workspace.get_folder(folder_id)
        assert folder.title == "Renamed"
        assert folder.folder().is_collapsed is False
        assert [item.i for item in folder.folder().children_layouts["lg"]] == [child_id]

    def test_update_unknown_widget(self, store):
        """Test updating a missing widget is silent."""
        assert store.update_widget_data("missing", {}) is False


class TestWorkspaces:
    """Tests for workspace management."""

    def test_add_workspace_becomes_active(self, store):
        """Test a new workspace is named and selected."""
        workspace_id = store.add_workspace()

        assert store.state.activeWorkspaceId == workspace_id
        assert store.active_workspace.name == "Workspace 2"
        assert len(store.history) == 1

    def test_add_workspace_with_name(self, store):
        """Test an explicit workspace name is used."""
        store.add_workspace("Plans")
        assert store.active_workspace.name == "Plans"

    def test_operations_target_active_workspace(self, store):
        """Test widgets are added to the selected workspace only."""
        second = store.add_workspace()
        store.add_widget(WidgetType.TEXT)

        assert len(store.state.get_workspace(second).widgets) == 1
        assert store.state.get_workspace(DEFAULT_WORKSPACE_ID).widgets == []

    def test_switch_workspace_is_not_recorded(self, store):
        """Test switching changes the active workspace without history."""
        store.add_workspace()
        assert store.switch_workspace(DEFAULT_WORKSPACE_ID) is True
        assert store.state.activeWorkspaceId == DEFAULT_WORKSPACE_ID
        assert len(store.history) == 1

    def test_rename_workspace(self, store):
        """Test renaming records history."""
        assert store.rename_workspace(DEFAULT_WORKSPACE_ID, "Home") is True
        assert store.active_workspace.name == "Home"
        assert store.rename_workspace(DEFAULT_WORKSPACE_ID, "   ") is False
        assert len(store.history) == 1

    def test_remove_active_workspace_selects_first(self, store):
        """Test removing the active workspace falls back to the first."""
        second = store.add_workspace()
        assert store.remove_workspace(second) is True
        assert store.state.activeWorkspaceId == DEFAULT_WORKSPACE_ID

    def test_remove_last_workspace_leaves_default(self, store):
        """Test the store always has one workspace."""
        store.remove_workspace(DEFAULT_WORKSPACE_ID)
        assert [ws.id for ws in store.state.workspaces] == [DEFAULT_WORKSPACE_ID]

    def test_active_workspace_restores_default_when_empty(self, store):
        """Test a state emptied behind the store's back yields the default workspace."""
        store.state.workspaces = []

        workspace = store.active_workspace
        assert workspace.id == DEFAULT_WORKSPACE_ID
        assert [ws.id for ws in store.state.workspaces] == [DEFAULT_WORKSPACE_ID]

    def test_unknown_workspace_operations_are_noops(self, store):
        """Test every workspace operation ignores missing ids."""
        assert store.remove_workspace("missing") is False
        assert store.rename_workspace("missing", "x") is False
        assert store.switch_workspace("missing") is False
        assert len(store.history) == 0


class TestUndo:
    """Tests for WorkspaceStore.undo()."""

    def test_undo_add(self, store):
        """Test undo removes the added widget."""
        store.add_widget(WidgetType.TEXT)
        assert store.undo() is True
        assert store.active_workspace.widgets == []

    def test_undo_empty(self, store):
        """Test undo without history is a silent no-op."""
        assert store.undo() is False
        assert store.can_undo is False

    def test_undo_restores_removed_folder(self, store):
        """Test undo brings back a cascade-deleted folder."""
        folder_id = store.add_widget(WidgetType.FOLDER)
        store.add_widget(WidgetType.TEXT, parent_id=folder_id)
        store.remove_widget(folder_id)

        store.undo()
        assert len(store.active_workspace.widgets) == 2

    def test_history_is_capped(self, store):
        """Test only the newest 20 actions can be undone."""
        for _ in range(25):
            store.add_widget(WidgetType.TEXT)

        undone = 0
        while store.undo():
            undone += 1
        assert undone == 20
        assert len(store.active_workspace.widgets) == 5

    def test_snapshots_are_not_aliased(self, store):
        """Test later actions never change an earlier snapshot."""
        widget_id = store.add_widget(WidgetType.TEXT)
        store.change_layout("lg", [LayoutItem(i=widget_id, x=6, y=3, w=3, h=4)])

        before_move = store.history.undo().state
        item = before_move.workspaces[0].layouts["lg"][0]
        assert (item.x, item.y) == (0, 0)
        assert store.history.undo().state.workspaces[0].widgets == []


class TestNoOverlapInvariant:
    """Randomized operation sequences keep every grid collision-free."""

    @pytest.mark.parametrize("seed", [1, 7, 42])
    def test_random_operation_sequence(self, store, check_no_overlaps, seed):
        """Test adds, moves, resizes, toggles and removes never overlap."""
        rng = random.Random(seed)
        types = [t for t in WidgetType if t != WidgetType.FOLDER]

        for _ in range(60):
            workspace = store.active_workspace
            folders = [w.id for w in workspace.widgets if w.is_folder]
            top = [w.id for w in workspace.top_level_widgets()]
            op = rng.choice(["add", "add", "folder", "nested", "move", "resize", "toggle", "remove"])

            if op == "add":
                store.add_widget(rng.choice(types))
            elif op == "folder":
                store.add_widget(WidgetType.FOLDER, parent_id=rng.choice(folders + [None]))
            elif op == "nested" and folders:
                store.add_widget(rng.choice(types), parent_id=rng.choice(folders))
            elif op == "move" and top:
                bp = rng.choice(["lg", "md", "sm", "xs", "xxs"])
                items = list(workspace.layouts[bp])
                index = rng.randrange(len(items))
                items[index] = items[index].copy(x=rng.randrange(12), y=rng.randrange(20))
                store.begin_gesture(items[index].i, "drag")
                store.change_layout(bp, items)
                store.end_gesture()
            elif op == "resize" and folders:
                folder_id = rng.choice(folders)
                items = list(workspace.get_folder(folder_id).folder().children_layouts["lg"])
                if items:
                    index = rng.randrange(len(items))
                    items[index] = items[index].copy(w=rng.randint(1, 30), h=rng.randint(1, 30))
                    store.change_children_layout(folder_id, "lg", items)
            elif op == "toggle" and folders:
                store.toggle_folder(rng.choice(folders))
            elif op == "remove" and workspace.widgets:
                store.remove_widget(rng.choice(workspace.widgets).id)

            check_no_overlaps(store.state)


class TestPersistence:
    """Tests for load/save and degraded persistence."""

    def test_changes_are_persisted(self, persistent_store, local_storage, config, catalog):
        """Test every committed action reaches storage."""
        widget_id = persistent_store.add_widget(WidgetType.CHECKLIST)

        reloaded = WorkspaceStore(config, storage=local_storage, catalog=catalog)
        state = reloaded.load()
        assert [w.id for w in state.active_workspace.widgets] == [widget_id]
        assert reloaded.can_undo is False

    def test_namespaces_are_separate(self, local_storage, config):
        """Test stores with different namespaces do not share state."""
        alice = WorkspaceStore(config, storage=local_storage, namespace="alice")
        alice.add_widget(WidgetType.TEXT)

        shared = WorkspaceStore(config, storage=local_storage)
        assert shared.load().active_workspace.widgets == []
        assert local_storage.list_namespaces() == ["alice"]

    def test_load_missing_namespace_gives_default(self, persistent_store):
        """Test a first load creates the default workspace."""
        state = persistent_store.load()
        assert [ws.id for ws in state.workspaces] == [DEFAULT_WORKSPACE_ID]

    def test_load_backfills_colours(self, local_storage, config):
        """Test widgets saved without colours get them on load."""
        state = DashboardState(
            workspaces=[Workspace(id="w", name="W", widgets=[
                Widget(id="p", type=WidgetType.PIE, data={"title": "Pie"}),
                Widget(id="f", type=WidgetType.FOLDER, data={"title": "F"}),
            ])],
            activeWorkspaceId="w",
        )
        local_storage.save(None, state)

        store = WorkspaceStore(config, storage=local_storage)
        workspace = store.load().active_workspace
        assert workspace.get_widget("p").data["color1"]
        assert workspace.get_widget("f").data["color"]

    def test_load_repairs_corrupt_layouts(self, local_storage, config, check_no_overlaps):
        """Test overlapping and missing layout entries are repaired on load."""
        state = DashboardState(
            workspaces=[Workspace(
                id="w",
                name="W",
                widgets=[
                    Widget(id="a", type=WidgetType.TEXT, minW=2, minH=2),
                    Widget(id="b", type=WidgetType.TEXT, minW=2, minH=2),
                ],
                layouts={"lg": [
                    LayoutItem(i="a", x=0, y=0, w=3, h=4),
                    LayoutItem(i="b", x=0, y=0, w=3, h=4),
                ]},
            )],
            activeWorkspaceId="w",
        )
        local_storage.save(None, state)

        loaded = WorkspaceStore(config, storage=local_storage).load()
        check_no_overlaps(loaded)

    def test_load_tolerates_non_mapping_payload(self, local_storage, config):
        """Test a stored widget whose data is a string loads with fresh defaults."""
        local_storage.save(None, DashboardState.default())
        raw = {
            "workspaces": [{
                "id": "w",
                "name": "W",
                "widgets": [{"id": "p", "type": "Plan", "data": "oops"}],
                "layouts": {},
            }],
            "activeWorkspaceId": "w",
        }
        conn = sqlite3.connect(local_storage.db_path)
        conn.execute("UPDATE dashboard_state SET state = ?", (json.dumps(raw),))
        conn.commit()
        conn.close()

        store = WorkspaceStore(config, storage=local_storage)
        widget = store.load().active_workspace.get_widget("p")

        assert widget is not None
        assert widget.data["color"]
        assert len(store.active_workspace.layouts["lg"]) == 1

    def test_store_logs_carry_namespace(self, local_storage, config, caplog):
        """Test store events are tagged with the store's namespace."""
        store = WorkspaceStore(config, storage=local_storage, namespace="alice")
        with caplog.at_level(logging.INFO, logger="gridboard.store"):
            store.add_widget(WidgetType.TEXT)

        added = [r for r in caplog.records if getattr(r, "event_type", None) == "widget.added"]
        assert added[-1].namespace == "alice"

    def test_save_failure_keeps_memory_state(self, config, caplog):
        """Test a failing backend does not lose the in-memory change."""
        storage = MagicMock(spec=StateStorage)
        storage.save.side_effect = StorageError("disk full")
        store = WorkspaceStore(config, storage=storage)

        with caplog.at_level(logging.ERROR, logger="gridboard"):
            widget_id = store.add_widget(WidgetType.TEXT)

        assert widget_id is not None
        assert store.active_workspace.get_widget(widget_id) is not None
        assert any(
            getattr(record, "event_type", None) == "state.persistence_failed"
            for record in caplog.records
        )

    def test_load_failure_gives_default(self, config):
        """Test a failing read yields the default state."""
        storage = MagicMock(spec=StateStorage)
        storage.load.side_effect = StorageError("unreachable")
        store = WorkspaceStore(config, storage=storage)

        state = store.load()
        assert [ws.id for ws in state.workspaces] == [DEFAULT_WORKSPACE_ID]

    def test_save_without_storage(self, store):
        """Test an in-memory store reports nothing saved."""
        assert store.save() is False
