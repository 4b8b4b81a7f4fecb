"""
Lightweight progress reporting for long-running storage operations.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Optional


@dataclass
class ProgressSnapshot:
    """Last progress report seen for one operation."""

    operation_id: str
    completed: int
    total: int
    current_item_name: str
    context_name: str


class ProgressReporter:
    """Log per-item progress to the performance logger, rate-limited per operation.

    An operation is forgotten once it reports completion. At most
    ``max_tracked`` unfinished operations are remembered; the least recently
    updated one is dropped first.
    """

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        interval_seconds: float = 2.0,
        max_tracked: int = 64,
    ) -> None:
        self.logger = logger or logging.getLogger("file_ops.performance")
        self.interval_seconds = max(interval_seconds, 0.0)
        self.max_tracked = max(max_tracked, 1)
        self._lock = threading.Lock()
        self._last_logged: dict[str, float] = {}
        self._snapshots: dict[str, ProgressSnapshot] = {}

    def report(
        self,
        operation_id: str,
        completed: int,
        total: int,
        current_item_name: str,
        context_name: str,
    ) -> None:
        snapshot = ProgressSnapshot(
            operation_id=operation_id,
            completed=completed,
            total=total,
            current_item_name=current_item_name,
            context_name=context_name,
        )
        now = time.monotonic()
        finished = completed >= total
        with self._lock:
            last = self._last_logged.get(operation_id)
            due = last is None or (now - last) >= self.interval_seconds or finished
            if finished:
                self._snapshots.pop(operation_id, None)
                self._last_logged.pop(operation_id, None)
            else:
                self._remember(operation_id, snapshot, now if due else last)
        if due:
            self._log_snapshot(snapshot)

    def snapshot(self, operation_id: str) -> Optional[ProgressSnapshot]:
        with self._lock:
            return self._snapshots.get(operation_id)

    def _remember(self, operation_id: str, snapshot: ProgressSnapshot, last_logged: float) -> None:
        # Re-inserting keeps both dicts ordered from least to most recently updated.
        self._snapshots.pop(operation_id, None)
        self._last_logged.pop(operation_id, None)
        while len(self._snapshots) >= self.max_tracked:
            oldest = next(iter(self._snapshots))
            del self._snapshots[oldest]
            self._last_logged.pop(oldest, None)
        self._snapshots[operation_id] = snapshot
        self._last_logged[operation_id] = last_logged

    def _log_snapshot(self, snapshot: ProgressSnapshot) -> None:
        self.logger.info(
            "Progress %s | %s/%s | item=%s context=%s",
            snapshot.operation_id,
            snapshot.completed,
            snapshot.total,
            snapshot.current_item_name,
            snapshot.context_name,
        )
