"""GridStore: the canonical rows x cols matrix of cell values.

Cells live in a 2-D numpy ``object`` array holding immutable :class:`Cell`
values, so a shallow ``copy()`` is already a deep snapshot. Every
mutation primitive keeps the grid rectangular with at least one row and
one column; history recording is the caller's job (see ``editor.py``).
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from enum import Enum

import numpy as np

from tile_mosaic.cells import CLEAR, Cell

logger = logging.getLogger(__name__)


class MirrorMode(str, Enum):
    NONE = "none"
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    BOTH = "both"


@dataclass(frozen=True)
class Rect:
    """Inclusive cell rectangle with ``start <= end`` on both axes."""

    start_row: int
    start_col: int
    end_row: int
    end_col: int

    @classmethod
    def spanning(cls, row_a: int, col_a: int, row_b: int, col_b: int) -> Rect:
        """Rectangle covering two corners given in any order."""
        return cls(
            min(row_a, row_b), min(col_a, col_b),
            max(row_a, row_b), max(col_a, col_b),
        )

    @property
    def height(self) -> int:
        return self.end_row - self.start_row + 1

    @property
    def width(self) -> int:
        return self.end_col - self.start_col + 1

    def contains(self, row: int, col: int) -> bool:
        return (
            self.start_row <= row <= self.end_row
            and self.start_col <= col <= self.end_col
        )

    def moved_to(self, row: int, col: int) -> Rect:
        """Same size, new top-left corner."""
        return Rect(row, col, row + self.height - 1, col + self.width - 1)

    def clipped(self, rows: int, cols: int) -> Rect | None:
        """Intersection with a rows x cols grid, ``None`` if they do not overlap."""
        r0, c0 = max(self.start_row, 0), max(self.start_col, 0)
        r1, c1 = min(self.end_row, rows - 1), min(self.end_col, cols - 1)
        if r0 > r1 or c0 > c1:
            return None
        return Rect(r0, c0, r1, c1)


def blank_grid(rows: int, cols: int) -> np.ndarray:
    """(rows, cols) object array filled with Clear."""
    return np.full((max(1, rows), max(1, cols)), CLEAR, dtype=object)


def as_grid(data: object) -> np.ndarray:
    """Validate nested rows of :class:`Cell` (or an object array) into a grid array.

    Raises:
        ValueError: if the rows are empty or ragged.
        TypeError:  if any element is not a ``Cell``.
    """
    if isinstance(data, np.ndarray):
        rows = data.tolist() if data.ndim == 2 else None
    else:
        rows = [list(r) for r in data]  # type: ignore[union-attr]
    if not rows or not rows[0]:
        msg = "A grid needs at least one row and one column"
        raise ValueError(msg)
    width = len(rows[0])
    if any(len(r) != width for r in rows):
        msg = "All grid rows must have the same length"
        raise ValueError(msg)

    out = np.empty((len(rows), width), dtype=object)
    for r, row in enumerate(rows):
        for c, cell in enumerate(row):
            _check_cell(cell)
            out[r, c] = cell
    return out


def cell_mask(cells: np.ndarray, cell: Cell) -> np.ndarray:
    """Boolean array marking positions equal to ``cell``."""
    return np.fromiter(
        (c == cell for c in cells.flat), dtype=bool, count=cells.size,
    ).reshape(cells.shape)


def _check_cell(cell: object) -> None:
    if not isinstance(cell, Cell):
        msg = f"Grid values must be Cell instances, got {type(cell).__name__}"
        raise TypeError(msg)


class GridStore:
    """Mutable grid with paint, fill, structural, and region primitives."""

    def __init__(
        self,
        rows: int = 5,
        cols: int = 8,
        mirror_mode: MirrorMode = MirrorMode.NONE,
    ) -> None:
        self._cells = blank_grid(rows, cols)
        self.mirror_mode = MirrorMode(mirror_mode)

    # -- Queries -------------------------------------------------------

    @property
    def cells(self) -> np.ndarray:
        """Live cell array. Read-only for collaborators; mutate via methods."""
        return self._cells

    @property
    def rows(self) -> int:
        return self._cells.shape[0]

    @property
    def cols(self) -> int:
        return self._cells.shape[1]

    @property
    def shape(self) -> tuple[int, int]:
        return (self.rows, self.cols)

    def __getitem__(self, pos: tuple[int, int]) -> Cell:
        return self._cells[pos]

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.cols

    def snapshot(self) -> np.ndarray:
        """Read-only copy of the current cells."""
        snap = self._cells.copy()
        snap.flags.writeable = False
        return snap

    def counts(self) -> Counter[Cell]:
        return Counter(self._cells.flat)

    def extract(self, rect: Rect) -> np.ndarray:
        """Copy of the cells under ``rect``, clipped to the grid."""
        clip = rect.clipped(self.rows, self.cols)
        if clip is None:
            return np.empty((0, 0), dtype=object)
        return self._cells[
            clip.start_row : clip.end_row + 1, clip.start_col : clip.end_col + 1
        ].copy()

    # -- Whole-grid replacement ----------------------------------------

    def restore(self, cells: object) -> None:
        """Install ``cells`` as the live grid (undo/redo, load, import)."""
        self._cells = as_grid(cells)

    def resize(self, new_rows: int, new_cols: int) -> bool:
        """Resize keeping the overlapping top-left region; ``False`` if unchanged."""
        new_rows, new_cols = max(1, int(new_rows)), max(1, int(new_cols))
        if (new_rows, new_cols) == self.shape:
            return False
        grid = blank_grid(new_rows, new_cols)
        keep_r, keep_c = min(self.rows, new_rows), min(self.cols, new_cols)
        grid[:keep_r, :keep_c] = self._cells[:keep_r, :keep_c]
        self._cells = grid
        logger.debug("Grid resized to %dx%d", new_rows, new_cols)
        return True

    # -- Painting and fills --------------------------------------------

    def mirrored_positions(self, row: int, col: int) -> list[tuple[int, int]]:
        """Target cells for a single paint under the current mirror mode.

        Out-of-range targets are dropped and duplicates (centre lines)
        collapsed.
        """
        mirror_row = self.rows - 1 - row
        mirror_col = self.cols - 1 - col
        candidates = [(row, col)]
        if self.mirror_mode in (MirrorMode.HORIZONTAL, MirrorMode.BOTH):
            candidates.append((row, mirror_col))
        if self.mirror_mode in (MirrorMode.VERTICAL, MirrorMode.BOTH):
            candidates.append((mirror_row, col))
        if self.mirror_mode is MirrorMode.BOTH:
            candidates.append((mirror_row, mirror_col))

        positions: list[tuple[int, int]] = []
        for pos in candidates:
            if self.in_bounds(*pos) and pos not in positions:
                positions.append(pos)
        return positions

    def paint(self, row: int, col: int, cell: Cell) -> int:
        """Paint one cell plus its mirror images; returns how many cells changed."""
        _check_cell(cell)
        changed = 0
        for r, c in self.mirrored_positions(row, col):
            if self._cells[r, c] != cell:
                self._cells[r, c] = cell
                changed += 1
        return changed

    def fill_row(self, row: int, cell: Cell) -> bool:
        _check_cell(cell)
        if not 0 <= row < self.rows:
            return False
        self._cells[row, :] = cell
        return True

    def fill_column(self, col: int, cell: Cell) -> bool:
        _check_cell(cell)
        if not 0 <= col < self.cols:
            return False
        self._cells[:, col] = cell
        return True

    def fill_region(self, rect: Rect, cell: Cell) -> bool:
        _check_cell(cell)
        clip = rect.clipped(self.rows, self.cols)
        if clip is None:
            return False
        self._cells[
            clip.start_row : clip.end_row + 1, clip.start_col : clip.end_col + 1
        ] = cell
        return True

    def fill_all(self, cell: Cell) -> None:
        _check_cell(cell)
        self._cells[:, :] = cell

    def replace_color(
        self,
        source: Cell,
        target: Cell,
        scope: Rect | None = None,
    ) -> int:
        """Replace every ``source`` cell with ``target``; returns the count replaced."""
        _check_cell(target)
        if scope is None:
            view = self._cells
        else:
            clip = scope.clipped(self.rows, self.cols)
            if clip is None:
                return 0
            view = self._cells[
                clip.start_row : clip.end_row + 1, clip.start_col : clip.end_col + 1
            ]
        mask = cell_mask(view, source)
        view[mask] = target
        return int(mask.sum())

    # -- Structural edits ----------------------------------------------

    def insert_rows(self, index: int, position: str = "below", count: int = 1) -> int:
        """Insert ``count`` Clear rows above or below row ``index``."""
        at = _insert_point(index, position, ("above", "below"), self.rows)
        count = max(1, int(count))
        self._cells = np.concatenate(
            [self._cells[:at], blank_grid(count, self.cols), self._cells[at:]], axis=0,
        )
        return count

    def insert_columns(self, index: int, position: str = "right", count: int = 1) -> int:
        """Insert ``count`` Clear columns left or right of column ``index``."""
        at = _insert_point(index, position, ("left", "right"), self.cols)
        count = max(1, int(count))
        self._cells = np.concatenate(
            [self._cells[:, :at], blank_grid(self.rows, count), self._cells[:, at:]],
            axis=1,
        )
        return count

    def delete_rows(self, index: int, count: int = 1) -> int:
        """Delete up to ``count`` rows from ``index``; at least one row always remains."""
        n = _deletable(index, count, self.rows)
        if n:
            self._cells = np.delete(self._cells, slice(index, index + n), axis=0)
        return n

    def delete_columns(self, index: int, count: int = 1) -> int:
        """Delete up to ``count`` columns from ``index``; at least one column always remains."""
        n = _deletable(index, count, self.cols)
        if n:
            self._cells = np.delete(self._cells, slice(index, index + n), axis=1)
        return n

    # -- Region moves --------------------------------------------------

    def write_block(self, content: np.ndarray, row: int, col: int) -> int:
        """Overwrite cells from top-left ``(row, col)``; parts off the grid are dropped."""
        h, w = content.shape[:2] if content.size else (0, 0)
        r0, r1 = max(row, 0), min(row + h, self.rows)
        c0, c1 = max(col, 0), min(col + w, self.cols)
        if r0 >= r1 or c0 >= c1:
            return 0
        self._cells[r0:r1, c0:c1] = content[r0 - row : r1 - row, c0 - col : c1 - col]
        return (r1 - r0) * (c1 - c0)

    def move_region(self, rect: Rect, row: int, col: int) -> Rect | None:
        """Cut ``rect`` and paste it at ``(row, col)``.

        ``(row, col)`` is where ``rect``'s top-left lands, even when that
        corner lies off the grid. The source is cleared before writing, and
        content that lands outside the grid is lost. Returns the clipped
        destination.
        """
        clip = rect.clipped(self.rows, self.cols)
        if clip is None:
            return None
        row += clip.start_row - rect.start_row
        col += clip.start_col - rect.start_col
        content = self.extract(clip)
        self.fill_region(clip, CLEAR)
        self.write_block(content, row, col)
        return clip.moved_to(row, col).clipped(self.rows, self.cols)

    def duplicate_region(self, content: np.ndarray, row: int, col: int) -> Rect | None:
        """Paste external ``content`` at ``(row, col)`` without touching its source."""
        if not content.size:
            return None
        self.write_block(content, row, col)
        h, w = content.shape[:2]
        return Rect(row, col, row + h - 1, col + w - 1).clipped(self.rows, self.cols)


def _insert_point(index: int, position: str, names: tuple[str, str], size: int) -> int:
    before, after = names
    if position not in names:
        msg = f"Unknown insert position '{position}'. Available: {before}, {after}"
        raise ValueError(msg)
    at = index if position == before else index + 1
    return min(max(at, 0), size)


def _deletable(index: int, count: int, size: int) -> int:
    if not 0 <= index < size:
        return 0
    return max(0, min(int(count), size - 1, size - index))
