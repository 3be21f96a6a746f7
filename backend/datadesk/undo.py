"""Single-slot, time-boxed undo for cleaning mutations."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Sequence

from .models import CleaningAction, Dataset, Row, copy_rows

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UndoSnapshot:
    """State before mutation ``version`` was committed."""
    version: int
    rows: Dataset
    actions: tuple[CleaningAction, ...]
    deadline: float


class UndoManager:
    """Holds at most one pending snapshot, valid for ``window_s`` after it was taken.

    Starting a new window replaces the pending one. Expired snapshots are
    discarded the next time the manager is consulted.
    """

    def __init__(self, window_s: float = 5.0, clock: Callable[[], float] = time.monotonic) -> None:
        self.window_s = window_s
        self._clock = clock
        self._pending: UndoSnapshot | None = None

    def begin(self, version: int, rows: Sequence[Row], actions: Sequence[CleaningAction]) -> None:
        if self._pending is not None:
            logger.debug("Undo window for version %d replaced", self._pending.version)
        self._pending = UndoSnapshot(
            version=version,
            rows=copy_rows(rows),
            actions=tuple(actions),
            deadline=self._clock() + self.window_s,
        )

    def cancel(self) -> None:
        self._pending = None

    @property
    def pending(self) -> UndoSnapshot | None:
        snapshot = self._pending
        if snapshot is not None and self._clock() >= snapshot.deadline:
            logger.debug("Undo window for version %d expired", snapshot.version)
            self._pending = None
            return None
        return snapshot

    def remaining(self) -> int:
        """Whole seconds left in the current window (0 when nothing can be undone)."""
        snapshot = self.pending
        if snapshot is None:
            return 0
        return math.ceil(snapshot.deadline - self._clock())

    def take(self, current_version: int) -> UndoSnapshot | None:
        """Consume the snapshot if it reverts the latest mutation."""
        snapshot = self.pending
        if snapshot is None or snapshot.version != current_version:
            return None
        self._pending = None
        return snapshot
