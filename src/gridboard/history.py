"""
Undo history for Gridboard.

Snapshots are full deep copies of the dashboard state taken before a
mutating action. The stack keeps the newest ``limit`` snapshots: pushing
past the limit evicts the oldest, undo pops the newest.
"""

from __future__ import annotations

import copy
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Deque, Optional

from gridboard.models import DashboardState
from gridboard.observability import get_logger

logger = get_logger("history")

DEFAULT_HISTORY_LIMIT = 20


@dataclass(frozen=True)
class HistorySnapshot:
    """State captured before one user-visible action."""
    state: DashboardState
    action: str = ""
    captured_at: datetime = field(default_factory=datetime.utcnow)

    def restore(self) -> DashboardState:
        """A fresh copy of the captured state, safe to mutate."""
        return copy.deepcopy(self.state)


class HistoryStack:
    """Bounded undo buffer with FIFO eviction and LIFO undo."""

    def __init__(self, limit: int = DEFAULT_HISTORY_LIMIT):
        if limit < 1:
            raise ValueError("History limit must be at least 1")
        self.limit = limit
        self._entries: Deque[HistorySnapshot] = deque(maxlen=limit)

    def push(self, state: DashboardState, action: str = "") -> HistorySnapshot:
        """
        Record ``state`` as it was before ``action``.

        The state is deep-copied so later mutations of the caller's object
        never reach the snapshot.
        """
        snapshot = HistorySnapshot(state=copy.deepcopy(state), action=action)
        self._entries.append(snapshot)
        logger.history_pushed(action, len(self._entries))
        return snapshot

    def undo(self) -> Optional[HistorySnapshot]:
        """Pop the most recent snapshot, or None when empty."""
        if not self._entries:
            return None
        return self._entries.pop()

    def clear(self) -> None:
        self._entries.clear()

    @property
    def can_undo(self) -> bool:
        return bool(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
