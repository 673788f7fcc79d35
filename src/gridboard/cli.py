"""
Gridboard CLI entry point.

This module provides a command-line interface for inspecting and editing
stored dashboards: listing workspaces, printing layouts, adding, removing
and toggling widgets, and checking or repairing stored geometry.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Dict, List

from gridboard import __version__
from gridboard.config import GridConfiguration
from gridboard.layout import LayoutSynchronizer, find_collisions
from gridboard.models import DashboardState, WidgetType, Workspace
from gridboard.observability import configure_logging
from gridboard.storage import StateStorage, StorageError, get_storage
from gridboard.store import WorkspaceStore


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="gridboard",
        description="Gridboard - responsive dashboard layout engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"gridboard {__version__}",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (can be repeated)",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to a JSON or YAML configuration file",
    )
    parser.add_argument(
        "--backend",
        type=str,
        choices=["local", "s3"],
        help="Storage backend (default: from configuration)",
    )
    parser.add_argument(
        "--db-path",
        type=str,
        help="SQLite database path for the local backend",
    )
    parser.add_argument(
        "--namespace",
        type=str,
        help="Storage namespace (default: shared)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # workspaces command
    workspaces_parser = subparsers.add_parser("workspaces", help="List workspaces")
    workspaces_parser.add_argument(
        "--format",
        type=str,
        default="table",
        choices=["table", "json"],
        help="Output format (default: table)",
    )

    # show command
    show_parser = subparsers.add_parser("show", help="Show a workspace's widgets and layout")
    show_parser.add_argument(
        "--workspace",
        type=str,
        help="Workspace id (default: active workspace)",
    )
    show_parser.add_argument(
        "--breakpoint",
        type=str,
        default="lg",
        help="Breakpoint to print (default: lg)",
    )
    show_parser.add_argument(
        "--width",
        type=int,
        help="Viewport width in pixels; picks the breakpoint active at that width",
    )
    show_parser.add_argument(
        "--format",
        type=str,
        default="table",
        choices=["table", "json"],
        help="Output format (default: table)",
    )

    # add command
    add_parser = subparsers.add_parser("add", help="Add a widget to the active workspace")
    add_parser.add_argument(
        "widget_type",
        type=str,
        choices=[t.value for t in WidgetType],
        help="Widget type",
    )
    add_parser.add_argument(
        "--parent",
        type=str,
        help="Folder id to add the widget into",
    )
    add_parser.add_argument(
        "--title",
        type=str,
        help="Widget title",
    )

    # remove command
    remove_parser = subparsers.add_parser("remove", help="Remove a widget (folders cascade)")
    remove_parser.add_argument("widget_id", type=str, help="Widget id")

    # toggle command
    toggle_parser = subparsers.add_parser("toggle", help="Collapse or expand a folder")
    toggle_parser.add_argument("folder_id", type=str, help="Folder widget id")

    # rename command
    rename_parser = subparsers.add_parser("rename", help="Rename a workspace")
    rename_parser.add_argument("workspace_id", type=str, help="Workspace id")
    rename_parser.add_argument("name", type=str, help="New name")

    # check command
    check_parser = subparsers.add_parser(
        "check",
        help="Report collisions and inconsistencies in stored layouts",
    )
    check_parser.add_argument(
        "--format",
        type=str,
        default="table",
        choices=["table", "json"],
        help="Output format (default: table)",
    )

    # normalize command
    subparsers.add_parser("normalize", help="Repair stored layouts and save them back")

    return parser


def _get_config(args: argparse.Namespace) -> GridConfiguration:
    if args.config:
        config = GridConfiguration.from_file(args.config)
    else:
        config = GridConfiguration.from_env()
    if args.backend:
        config.storage.backend = args.backend
    if args.db_path:
        config.storage.local_path = args.db_path
    return config


def _get_storage(config: GridConfiguration) -> StateStorage:
    return get_storage(config.storage.backend, **config.storage.backend_kwargs())


def _open_store(args: argparse.Namespace) -> WorkspaceStore:
    config = _get_config(args)
    store = WorkspaceStore(config, storage=_get_storage(config), namespace=args.namespace)
    store.load()
    return store


def _find_issues(state: DashboardState, config: GridConfiguration) -> List[Dict[str, Any]]:
    """Collisions, out-of-grid items and missing breakpoints in a raw state."""
    issues: List[Dict[str, Any]] = []

    def check_grid(workspace: Workspace, grid: str, layouts: Dict, nested: bool) -> None:
        columns = config.columns(nested=nested)
        for bp, cols in columns.items():
            if bp not in layouts:
                issues.append({
                    "workspace": workspace.id, "grid": grid, "breakpoint": bp,
                    "issue": "missing breakpoint",
                })
                continue
            items = layouts[bp]
            for a, b in find_collisions(items):
                issues.append({
                    "workspace": workspace.id, "grid": grid, "breakpoint": bp,
                    "issue": f"collision {a} / {b}",
                })
            for item in items:
                if item.x < 0 or item.x + item.w > cols:
                    issues.append({
                        "workspace": workspace.id, "grid": grid, "breakpoint": bp,
                        "issue": f"{item.i} exceeds {cols} columns",
                    })

    for workspace in state.workspaces:
        check_grid(workspace, "top", workspace.layouts, nested=False)
        for widget in workspace.widgets:
            if widget.is_folder:
                check_grid(workspace, widget.id, widget.folder().children_layouts, nested=True)
    return issues


def cmd_workspaces(args: argparse.Namespace) -> int:
    """List workspaces."""
    store = _open_store(args)
    state = store.state
    rows = [
        {
            "id": ws.id,
            "name": ws.name,
            "widgets": len(ws.widgets),
            "active": ws.id == state.activeWorkspaceId,
        }
        for ws in state.workspaces
    ]

    if args.format == "json":
        print(json.dumps({"workspaces": rows, "total": len(rows)}, indent=2))
    else:
        print(f"\nWorkspaces ({len(rows)} total)")
        print("=" * 70)
        for row in rows:
            marker = "*" if row["active"] else " "
            print(f" {marker} {row['id']:<38} {row['name']:<20} {row['widgets']:>3} widgets")
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    """Show one workspace."""
    store = _open_store(args)
    workspace = store.state.get_workspace(args.workspace or store.state.activeWorkspaceId)
    if workspace is None:
        print(f"Error: Workspace not found: {args.workspace}")
        return 1
    breakpoint = args.breakpoint
    if args.width is not None:
        breakpoint = store.config.breakpoints.breakpoint_for_width(args.width)
    if breakpoint not in store.config.breakpoint_names:
        print(f"Error: Unknown breakpoint: {breakpoint}")
        return 1

    if args.format == "json":
        print(json.dumps(workspace.to_dict(), indent=2))
        return 0

    print(f"\nWorkspace: {workspace.name} ({workspace.id}) [{breakpoint}]")
    print("=" * 70)
    by_id = {w.id: w for w in workspace.widgets}
    for item in workspace.layouts.get(breakpoint, []):
        widget = by_id[item.i]
        print(f"  {widget.type.value:<10} {widget.id:<38} x={item.x} y={item.y} w={item.w} h={item.h}")
        if widget.is_folder:
            folder = widget.folder()
            state = "collapsed" if folder.is_collapsed else "expanded"
            print(f"    [{state}] {widget.title}")
            for child in folder.children_layouts.get(breakpoint, []):
                child_widget = by_id[child.i]
                print(
                    f"      {child_widget.type.value:<10} {child.i:<38} "
                    f"x={child.x} y={child.y} w={child.w} h={child.h}"
                )
    return 0


def cmd_add(args: argparse.Namespace) -> int:
    """Add a widget."""
    store = _open_store(args)
    data = {"title": args.title} if args.title else None
    widget_id = store.add_widget(args.widget_type, parent_id=args.parent, data=data)
    if widget_id is None:
        print(f"Error: Folder not found: {args.parent}")
        return 1
    print(widget_id)
    return 0


def cmd_remove(args: argparse.Namespace) -> int:
    """Remove a widget."""
    store = _open_store(args)
    if not store.remove_widget(args.widget_id):
        print(f"Error: Widget not found: {args.widget_id}")
        return 1
    print(f"Removed {args.widget_id}")
    return 0


def cmd_toggle(args: argparse.Namespace) -> int:
    """Collapse or expand a folder."""
    store = _open_store(args)
    if not store.toggle_folder(args.folder_id):
        print(f"Error: Folder not found: {args.folder_id}")
        return 1
    folder = store.active_workspace.get_folder(args.folder_id)
    state = "collapsed" if folder.folder().is_collapsed else "expanded"
    print(f"Folder {args.folder_id} {state}")
    return 0


def cmd_rename(args: argparse.Namespace) -> int:
    """Rename a workspace."""
    store = _open_store(args)
    if store.state.get_workspace(args.workspace_id) is None:
        print(f"Error: Workspace not found: {args.workspace_id}")
        return 1
    store.rename_workspace(args.workspace_id, args.name)
    print(f"Renamed {args.workspace_id}")
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """Report problems in the stored layouts without repairing them."""
    config = _get_config(args)
    try:
        state = _get_storage(config).load(args.namespace)
    except StorageError as e:
        print(f"Error: {e}")
        return 1
    if state is None:
        print("No stored state")
        return 0

    issues = _find_issues(state, config)
    if args.format == "json":
        print(json.dumps({"issues": issues, "total": len(issues)}, indent=2))
    elif not issues:
        print("No issues found")
    else:
        print(f"\nIssues ({len(issues)} total)")
        print("=" * 70)
        for issue in issues:
            print(f"  {issue['workspace']} [{issue['grid']}/{issue['breakpoint']}] {issue['issue']}")
    return 1 if issues else 0


def cmd_normalize(args: argparse.Namespace) -> int:
    """Repair stored layouts and save them back."""
    config = _get_config(args)
    storage = _get_storage(config)
    try:
        state = storage.load(args.namespace)
        if state is None:
            print("No stored state")
            return 0
        before = len(_find_issues(state, config))
        repaired = LayoutSynchronizer(config).normalize(state)
        storage.save(args.namespace, repaired)
    except StorageError as e:
        print(f"Error: {e}")
        return 1
    print(f"Repaired {before} issue(s)")
    return 0


def main(argv: List[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        configure_logging(level="DEBUG" if args.verbose > 1 else "INFO")

    if args.command is None:
        parser.print_help()
        return 0

    command_handlers = {
        "workspaces": cmd_workspaces,
        "show": cmd_show,
        "add": cmd_add,
        "remove": cmd_remove,
        "toggle": cmd_toggle,
        "rename": cmd_rename,
        "check": cmd_check,
        "normalize": cmd_normalize,
    }

    handler = command_handlers.get(args.command)
    if handler:
        try:
            return handler(args)
        except (StorageError, ValueError) as e:
            print(f"Error: {e}")
            return 1

    print(f"Unknown command: {args.command}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
