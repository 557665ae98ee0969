"""
Boundary-layer helpers around the dataset: undo/redo history and an outbox
for deferred writes. The engine itself never touches either.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol

from .store import SchoolData

logger = logging.getLogger(__name__)


class SnapshotHistory:
    """Bounded undo/redo stack of immutable dataset snapshots."""

    def __init__(self, initial: SchoolData, limit: int = 50):
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self.limit = limit
        self._snapshots: list[SchoolData] = [initial]
        self._pointer = 0

    @property
    def current(self) -> SchoolData:
        return self._snapshots[self._pointer]

    @property
    def can_undo(self) -> bool:
        return self._pointer > 0

    @property
    def can_redo(self) -> bool:
        return self._pointer < len(self._snapshots) - 1

    def __len__(self) -> int:
        return len(self._snapshots)

    def push(self, snapshot: SchoolData) -> SchoolData:
        """Record a new snapshot; anything that could be redone is dropped."""
        self._snapshots = self._snapshots[: self._pointer + 1]
        self._snapshots.append(snapshot)
        if len(self._snapshots) > self.limit:
            self._snapshots = self._snapshots[-self.limit:]
        self._pointer = len(self._snapshots) - 1
        return snapshot

    def undo(self) -> SchoolData:
        if self.can_undo:
            self._pointer -= 1
        return self.current

    def redo(self) -> SchoolData:
        if self.can_redo:
            self._pointer += 1
        return self.current


class SnapshotSink(Protocol):
    """Receives replacement collections, e.g. {"substitutions": [...]}."""

    def write(self, delta: dict[str, Any]) -> None:
        ...


@dataclass
class Outbox:
    """Queue of pending writes delivered to a sink with bounded retries."""
    max_attempts: int = 3
    backoff_seconds: float = 0.5
    sleep: Callable[[float], None] = time.sleep
    _pending: deque = field(default_factory=deque)

    def enqueue(self, delta: dict[str, Any]) -> None:
        self._pending.append(delta)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def flush(self, sink: SnapshotSink) -> int:
        """
        Deliver queued deltas in order.

        Stops at the first delta that still fails after ``max_attempts``;
        it stays queued together with everything behind it.

        Returns:
            Number of deltas delivered
        """
        delivered = 0
        while self._pending:
            delta = self._pending[0]
            if not self._deliver(sink, delta):
                break
            self._pending.popleft()
            delivered += 1
        return delivered

    def _deliver(self, sink: SnapshotSink, delta: dict[str, Any]) -> bool:
        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                sink.write(delta)
                return True
            except Exception as e:
                last_error = e
                logger.warning("Write attempt %d/%d failed: %s", attempt, self.max_attempts, e)
                if attempt < self.max_attempts:
                    self.sleep(self.backoff_seconds * 2 ** (attempt - 1))
        logger.error("Giving up on write of %s: %s", sorted(delta), last_error)
        return False
