"""Bounded undo/redo log of immutable grid snapshots."""

from __future__ import annotations

import logging
from collections.abc import Callable

import numpy as np

logger = logging.getLogger(__name__)

MAX_HISTORY = 50


def _frozen_copy(cells: np.ndarray) -> np.ndarray:
    snap = np.array(cells, dtype=object, copy=True)
    snap.flags.writeable = False
    return snap


class HistoryManager:
    """Append-only snapshot log with a single undo/redo pointer.

    ``undo``/``redo`` hand back a snapshot for the caller to install and
    arm a suppress flag; the caller's next :meth:`commit` (the one that
    follows installing that snapshot) is swallowed instead of recorded.
    """

    def __init__(self, initial: np.ndarray, max_entries: int = MAX_HISTORY) -> None:
        if max_entries < 1:
            msg = "max_entries must be at least 1"
            raise ValueError(msg)
        self.max_entries = max_entries
        self._log: list[np.ndarray] = []
        self._pointer = -1
        self._suppress = False
        self.listeners: list[Callable[[], None]] = []
        self.reset(initial)

    def __len__(self) -> int:
        return len(self._log)

    @property
    def pointer(self) -> int:
        return self._pointer

    @property
    def current(self) -> np.ndarray:
        return self._log[self._pointer]

    @property
    def can_undo(self) -> bool:
        return self._pointer > 0

    @property
    def can_redo(self) -> bool:
        return self._pointer < len(self._log) - 1

    def reset(self, initial: np.ndarray) -> None:
        """Start a fresh log whose first entry is ``initial``."""
        self._log = [_frozen_copy(initial)]
        self._pointer = 0
        self._suppress = False

    def commit(self, cells: np.ndarray) -> bool:
        """Record ``cells`` as the newest state; ``False`` when suppressed."""
        if self._suppress:
            self._suppress = False
            return False

        del self._log[self._pointer + 1 :]
        self._log.append(_frozen_copy(cells))
        if len(self._log) > self.max_entries:
            del self._log[0]
        self._pointer = min(len(self._log) - 1, self.max_entries - 1)
        logger.debug("History commit -> %d/%d", self._pointer + 1, len(self._log))
        for listener in self.listeners:
            listener()
        return True

    def undo(self) -> np.ndarray | None:
        if not self.can_undo:
            return None
        self._suppress = True
        self._pointer -= 1
        return self._log[self._pointer].copy()

    def redo(self) -> np.ndarray | None:
        if not self.can_redo:
            return None
        self._suppress = True
        self._pointer += 1
        return self._log[self._pointer].copy()
