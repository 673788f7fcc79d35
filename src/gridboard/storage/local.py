"""
SQLite-based local storage implementation.

This module provides LocalStorage, a SQLite-based storage backend
suitable for development and single-user scenarios. Each namespace is one
row holding the serialized dashboard state.
"""

from __future__ import annotations

import json
import os
import sqlite3
from datetime import datetime
from pathlib import Path

from gridboard.models import DashboardState
from gridboard.storage.base import StateStorage, StorageError, resolve_namespace


class LocalStorage(StateStorage):
    """
    SQLite-based local storage.

    Attributes:
        db_path: Path to the SQLite database file
    """

    name = "local"

    def __init__(self, db_path: str = "~/.gridboard/gridboard.db") -> None:
        """
        Initialize the local storage backend.

        Creates the database directory and file if they don't exist,
        and initializes the database schema.

        Args:
            db_path: Path to the SQLite database file.
                     Supports ~ for home directory.

        Raises:
            StorageError: If the database cannot be created
        """
        self.db_path = os.path.expanduser(db_path)

        db_dir = os.path.dirname(self.db_path)
        try:
            if db_dir:
                Path(db_dir).mkdir(parents=True, exist_ok=True)
            self._init_db()
        except (OSError, sqlite3.Error) as e:
            raise StorageError(f"Cannot open database {self.db_path}: {e}") from e

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        """Initialize database schema."""
        conn = self._get_connection()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS dashboard_state (
                    namespace TEXT PRIMARY KEY,
                    state TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.commit()
        finally:
            conn.close()

    def load(self, namespace: str | None = None) -> DashboardState | None:
        """Load the state saved under a namespace."""
        key = resolve_namespace(namespace)
        try:
            conn = self._get_connection()
            try:
                row = conn.execute(
                    "SELECT state FROM dashboard_state WHERE namespace = ?",
                    (key,),
                ).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read namespace '{key}': {e}", key) from e

        if row is None:
            return None
        try:
            return DashboardState.from_dict(json.loads(row["state"]))
        except (json.JSONDecodeError, TypeError, AttributeError) as e:
            raise StorageError(f"Corrupt state in namespace '{key}': {e}", key) from e

    def save(self, namespace: str | None, state: DashboardState) -> None:
        """Replace the state saved under a namespace."""
        key = resolve_namespace(namespace)
        payload = json.dumps(state.to_dict())
        try:
            conn = self._get_connection()
            try:
                conn.execute(
                    """
                    INSERT OR REPLACE INTO dashboard_state (namespace, state, updated_at)
                    VALUES (?, ?, ?)
                    """,
                    (key, payload, datetime.utcnow().isoformat()),
                )
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to write namespace '{key}': {e}", key) from e

    def delete(self, namespace: str | None = None) -> bool:
        """Remove a namespace's state."""
        key = resolve_namespace(namespace)
        try:
            conn = self._get_connection()
            try:
                cursor = conn.execute(
                    "DELETE FROM dashboard_state WHERE namespace = ?", (key,)
                )
                conn.commit()
                return cursor.rowcount > 0
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to delete namespace '{key}': {e}", key) from e

    def list_namespaces(self) -> list[str]:
        """List namespaces that have saved state."""
        try:
            conn = self._get_connection()
            try:
                rows = conn.execute(
                    "SELECT namespace FROM dashboard_state ORDER BY namespace"
                ).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to list namespaces: {e}") from e
        return [row["namespace"] for row in rows]
