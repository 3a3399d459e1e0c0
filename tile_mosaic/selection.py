"""Rectangular selection, clipboard, and move/duplicate staging.

State machine::

    NONE -> SELECTING -> SELECTED -> DRAGGING    -> SELECTED
                                  -> DUPLICATING -> SELECTED
    any  -> NONE (clear)

Staged previews never reach the grid or history until committed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum

import numpy as np

from tile_mosaic.cells import CLEAR, Cell
from tile_mosaic.grid import GridStore, Rect
from tile_mosaic.history import HistoryManager

logger = logging.getLogger(__name__)


class SelectionState(Enum):
    NONE = "none"
    SELECTING = "selecting"
    SELECTED = "selected"
    DRAGGING = "dragging"
    DUPLICATING = "duplicating"


class SelectionModel:
    def __init__(
        self,
        grid: GridStore,
        history: HistoryManager,
        before_edit: Callable[[], object] | None = None,
    ) -> None:
        self._grid = grid
        self._history = history
        self._before_edit = before_edit
        self.state = SelectionState.NONE
        self.rect: Rect | None = None
        self.clipboard: np.ndarray | None = None
        self.preview: Rect | None = None
        self._anchor: tuple[int, int] | None = None
        self._drag_offset: tuple[int, int] = (0, 0)
        self._payload: np.ndarray | None = None

    @property
    def has_selection(self) -> bool:
        return self.rect is not None

    def _begin_edit(self) -> None:
        if self._before_edit is not None:
            self._before_edit()

    def _record(self) -> None:
        self._history.commit(self._grid.cells)

    # -- Selecting -----------------------------------------------------

    def begin(self, row: int, col: int) -> None:
        """Pointer-down: start a new one-cell selection at ``(row, col)``."""
        self._drop_staging()
        self._anchor = (row, col)
        self.rect = Rect.spanning(row, col, row, col)
        self.state = SelectionState.SELECTING

    def extend(self, row: int, col: int) -> None:
        if self.state is not SelectionState.SELECTING or self._anchor is None:
            return
        self.rect = Rect.spanning(*self._anchor, row, col)

    def finish(self) -> None:
        """Pointer-up: keep the part of the rectangle on the grid, if any."""
        if self.state is not SelectionState.SELECTING:
            return
        self._anchor = None
        if self.rect is not None:
            self.rect = self.rect.clipped(self._grid.rows, self._grid.cols)
        self.state = SelectionState.SELECTED if self.rect else SelectionState.NONE

    def select(self, rect: Rect) -> bool:
        """Select ``rect`` directly (clipped); ``False`` if it misses the grid."""
        clip = rect.clipped(self._grid.rows, self._grid.cols)
        self._drop_staging()
        self._anchor = None
        self.rect = clip
        self.state = SelectionState.SELECTED if clip else SelectionState.NONE
        return clip is not None

    def clear(self) -> None:
        self._drop_staging()
        self._anchor = None
        self.rect = None
        self.state = SelectionState.NONE

    def revalidate(self) -> None:
        """Clip the selection to the grid after a dimension change."""
        if self.rect is None:
            return
        clip = self.rect.clipped(self._grid.rows, self._grid.cols)
        if clip is None:
            self.clear()
            return
        self.rect = clip
        if self.state in (SelectionState.DRAGGING, SelectionState.DUPLICATING):
            self._drop_staging()
            self.state = SelectionState.SELECTED

    # -- Clipboard -----------------------------------------------------

    def copy(self) -> bool:
        if self.state is not SelectionState.SELECTED or self.rect is None:
            return False
        self.clipboard = self._grid.extract(self.rect)
        logger.debug("Copied %dx%d block", *self.clipboard.shape)
        return True

    def paste(self) -> bool:
        """Write the clipboard at the selection's top-left; one history entry."""
        if self.clipboard is None or not self.clipboard.size:
            return False
        if self.state is not SelectionState.SELECTED or self.rect is None:
            return False
        self._begin_edit()
        self._grid.write_block(self.clipboard, self.rect.start_row, self.rect.start_col)
        self._record()
        return True

    def fill(self, cell: Cell) -> bool:
        if self.state is not SelectionState.SELECTED or self.rect is None:
            return False
        self._begin_edit()
        self._grid.fill_region(self.rect, cell)
        self._record()
        return True

    def erase(self) -> bool:
        return self.fill(CLEAR)

    # -- Drag-move -----------------------------------------------------

    def start_drag(self, row: int, col: int) -> bool:
        """Grab the selection at ``(row, col)``, which must lie inside it."""
        if self.state is not SelectionState.SELECTED or self.rect is None:
            return False
        if not self.rect.contains(row, col):
            return False
        self._drag_offset = (row - self.rect.start_row, col - self.rect.start_col)
        self.preview = self.rect
        self.state = SelectionState.DRAGGING
        return True

    def move_drag(self, row: int, col: int) -> None:
        if self.state is not SelectionState.DRAGGING or self.rect is None:
            return
        d_row, d_col = self._drag_offset
        self.preview = self.rect.moved_to(row - d_row, col - d_col)

    def commit_drag(self) -> bool:
        """Move the selected block to the preview; one history entry."""
        if self.state is not SelectionState.DRAGGING or self.rect is None:
            return False
        preview = self.preview or self.rect
        self.preview = None
        if preview == self.rect:
            self.state = SelectionState.SELECTED
            return False

        self._begin_edit()
        dest = self._grid.move_region(self.rect, preview.start_row, preview.start_col)
        self._record()
        self.rect = dest
        self.state = SelectionState.SELECTED if dest else SelectionState.NONE
        return True

    # -- Duplicate -----------------------------------------------------

    def start_duplicate(self) -> bool:
        if self.state is not SelectionState.SELECTED or self.rect is None:
            return False
        self._payload = self._grid.extract(self.rect)
        self.preview = self.rect
        self.state = SelectionState.DUPLICATING
        return True

    def move_duplicate(self, row: int, col: int) -> None:
        if self.state is not SelectionState.DUPLICATING or self.rect is None:
            return
        self.preview = self.rect.moved_to(row, col)

    def place_duplicate(self, row: int, col: int) -> bool:
        """Stamp the payload with its top-left at ``(row, col)``; one history entry."""
        if self.state is not SelectionState.DUPLICATING or self._payload is None:
            return False
        self._begin_edit()
        self._grid.duplicate_region(self._payload, row, col)
        self._record()
        self._drop_staging()
        self.state = SelectionState.SELECTED
        return True

    # -- Cancel --------------------------------------------------------

    def cancel(self, clear_selection: bool = False) -> None:
        """Escape: drop any staged move/duplicate, optionally the selection too."""
        if clear_selection:
            self.clear()
            return
        if self.state in (SelectionState.DRAGGING, SelectionState.DUPLICATING):
            self._drop_staging()
            self.state = SelectionState.SELECTED
        else:
            self.clear()

    def _drop_staging(self) -> None:
        self.preview = None
        self._payload = None
        self._drag_offset = (0, 0)
