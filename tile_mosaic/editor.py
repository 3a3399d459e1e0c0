"""Editor: the single state container behind a mosaic-planning session.

Owns the grid, its history, the palette, and the selection, and exposes
every mutation the presentation layer may trigger. Each mutation either
applies fully and records exactly one history entry, or does nothing.
A paint stroke (pointer drag) is recorded once, when it ends; any other
mutation, selection edits included, ends an open stroke first.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable
from pathlib import Path

import numpy as np

from tile_mosaic.assignment import AssignmentResult, assign_colors
from tile_mosaic.cells import CLEAR, Cell
from tile_mosaic.config import EditorConfig
from tile_mosaic.grid import GridStore, MirrorMode, Rect
from tile_mosaic.history import HistoryManager
from tile_mosaic.image_io import (
    ImageSource,
    compute_supply_size,
    load_image,
    sample_raster,
)
from tile_mosaic.palette import UNLIMITED, PaletteRegistry, parse_palette_text
from tile_mosaic.project_io import (
    Project,
    dumps_project,
    load_project,
    loads_project,
    project_to_dict,
    save_project,
)
from tile_mosaic.selection import SelectionModel
from tile_mosaic.stats import UsageReport, usage_report

logger = logging.getLogger(__name__)


def _as_cell(value: Cell | str) -> Cell:
    return value if isinstance(value, Cell) else Cell.parse(value)


class Editor:
    def __init__(
        self,
        config: EditorConfig | None = None,
        palette: PaletteRegistry | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or EditorConfig()
        self.grid = GridStore(self.config.initial_rows, self.config.initial_cols)
        self.history = HistoryManager(self.grid.snapshot(), self.config.max_history)
        self.palette = palette or PaletteRegistry()
        self._stroke_active = False
        self._stroke_changed = 0
        self.selection = SelectionModel(self.grid, self.history, before_edit=self.end_stroke)

        self._clock = clock
        self.unsaved_since: float | None = None
        self.history.listeners.append(self._mark_dirty)

        self._import_generation = 0
        self._applied_generation = 0

    # -- Unsaved-work marker -------------------------------------------

    @property
    def has_unsaved_changes(self) -> bool:
        return self.unsaved_since is not None

    def _mark_dirty(self) -> None:
        if self.unsaved_since is None:
            self.unsaved_since = self._clock()

    def mark_saved(self) -> None:
        self.unsaved_since = None

    def _commit(self) -> None:
        self.history.commit(self.grid.cells)

    def _target(self, cell: Cell | str | None) -> Cell:
        """Resolve a paint value; regular colours must be in the palette."""
        if cell is None:
            return self.palette.active
        target = _as_cell(cell)
        if target.is_color and target not in self.palette:
            msg = f"Colour {target.hex} is not in the palette"
            raise ValueError(msg)
        return target

    # -- Mirror mode ---------------------------------------------------

    @property
    def mirror_mode(self) -> MirrorMode:
        return self.grid.mirror_mode

    @mirror_mode.setter
    def mirror_mode(self, mode: MirrorMode | str) -> None:
        self.grid.mirror_mode = MirrorMode(mode)

    # -- Painting ------------------------------------------------------

    def begin_stroke(self) -> None:
        """Pointer-down on the grid: paints until :meth:`end_stroke` form one entry."""
        self._stroke_active = True
        self._stroke_changed = 0

    def paint(self, row: int, col: int, cell: Cell | str | None = None) -> int:
        """Paint with ``cell`` (default: the active colour) honouring mirror mode."""
        target = self._target(cell)
        changed = self.grid.paint(row, col, target)
        if self._stroke_active:
            self._stroke_changed += changed
        elif changed:
            self._commit()
        return changed

    def end_stroke(self) -> bool:
        """Pointer-up: record the whole stroke; ``False`` if it changed nothing."""
        if not self._stroke_active:
            return False
        self._stroke_active = False
        if not self._stroke_changed:
            return False
        self._commit()
        return True

    def fill_row(self, row: int, cell: Cell | str | None = None) -> bool:
        self.end_stroke()
        target = self._target(cell)
        if not self.grid.fill_row(row, target):
            return False
        self._commit()
        return True

    def fill_column(self, col: int, cell: Cell | str | None = None) -> bool:
        self.end_stroke()
        target = self._target(cell)
        if not self.grid.fill_column(col, target):
            return False
        self._commit()
        return True

    def fill_region(self, rect: Rect, cell: Cell | str | None = None) -> bool:
        self.end_stroke()
        target = self._target(cell)
        if not self.grid.fill_region(rect, target):
            return False
        self._commit()
        return True

    def clear_grid(self) -> None:
        self.end_stroke()
        self.grid.fill_all(CLEAR)
        self._commit()

    def replace_color(
        self,
        source: Cell | str,
        target: Cell | str,
        scope: Rect | None = None,
    ) -> int:
        self.end_stroke()
        count = self.grid.replace_color(_as_cell(source), self._target(target), scope)
        self._commit()
        return count

    # -- Structure -----------------------------------------------------

    def resize(self, rows: int, cols: int) -> bool:
        self.end_stroke()
        if not self.grid.resize(rows, cols):
            return False
        self._commit()
        self.selection.revalidate()
        return True

    def insert_rows(self, index: int, position: str = "below", count: int = 1) -> int:
        self.end_stroke()
        n = self.grid.insert_rows(index, position, count)
        self._commit()
        self.selection.revalidate()
        return n

    def insert_columns(self, index: int, position: str = "right", count: int = 1) -> int:
        self.end_stroke()
        n = self.grid.insert_columns(index, position, count)
        self._commit()
        self.selection.revalidate()
        return n

    def delete_rows(self, index: int, count: int = 1) -> int:
        self.end_stroke()
        n = self.grid.delete_rows(index, count)
        if not n:
            return 0
        self._commit()
        rect = self.selection.rect
        if rect and rect.start_row < index + n and index <= rect.end_row:
            self.selection.clear()
        self.selection.revalidate()
        return n

    def delete_columns(self, index: int, count: int = 1) -> int:
        self.end_stroke()
        n = self.grid.delete_columns(index, count)
        if not n:
            return 0
        self._commit()
        rect = self.selection.rect
        if rect and rect.start_col < index + n and index <= rect.end_col:
            self.selection.clear()
        self.selection.revalidate()
        return n

    # -- Undo / redo ---------------------------------------------------

    def undo(self) -> bool:
        self.end_stroke()
        snap = self.history.undo()
        if snap is None:
            return False
        self._install(snap)
        return True

    def redo(self) -> bool:
        self.end_stroke()
        snap = self.history.redo()
        if snap is None:
            return False
        self._install(snap)
        return True

    def _install(self, snap: np.ndarray) -> None:
        self.grid.restore(snap)
        # Consumes the suppress flag armed by undo/redo
        self.history.commit(self.grid.cells)
        self.selection.revalidate()
        self._mark_dirty()

    # -- Palette -------------------------------------------------------

    def set_active_color(self, key: Cell | str) -> bool:
        return self.palette.set_active(_as_cell(key))

    def add_color(
        self,
        key: Cell | str,
        quantity: float = UNLIMITED,
        name: str | None = None,
    ) -> bool:
        return self.palette.add_color(_as_cell(key), quantity, name)

    def edit_color(self, old: Cell | str, new: Cell | str) -> bool:
        """Rename a palette colour and repaint every grid cell using it.

        Palette and grid change together with one history entry, or not at
        all (renaming onto an existing palette colour is rejected).
        """
        old_cell, new_cell = _as_cell(old), _as_cell(new)
        if not self.palette.edit_color(old_cell, new_cell):
            return False
        self.end_stroke()
        self.grid.replace_color(old_cell, new_cell)
        self._commit()
        return True

    def remove_colors(self, keys: Iterable[Cell | str]) -> list[Cell]:
        return self.palette.remove_colors(_as_cell(k) for k in keys)

    def import_palette(self, text: str) -> int:
        """Replace the palette with a parsed JSON or delimited-text document."""
        entries = parse_palette_text(text)
        self.palette.replace_all(entries)
        logger.info("Imported palette with %d entries", len(self.palette))
        return len(self.palette)

    # -- Project files -------------------------------------------------

    def to_project(self) -> dict:
        return project_to_dict(self.grid.cells, self.palette)

    def dumps_project(self) -> str:
        return dumps_project(self.grid.cells, self.palette)

    def save_project(self, path: str | Path) -> None:
        save_project(path, self.grid.cells, self.palette)
        self.mark_saved()

    def load_project(self, path: str | Path) -> None:
        """Load a project file; on :class:`ProjectFormatError` nothing changes."""
        self._apply_project(load_project(path))

    def loads_project(self, text: str) -> None:
        self._apply_project(loads_project(text))

    def _apply_project(self, project: Project) -> None:
        self.end_stroke()
        self.grid.restore(project.cells)
        self.palette.replace_all(project.palette)
        self.selection.clear()
        self._commit()
        self.mark_saved()
        logger.info("Loaded %dx%d project", project.rows, project.columns)

    # -- Image import --------------------------------------------------

    def import_image(
        self,
        source: ImageSource,
        fit_to_supply: bool = False,
    ) -> AssignmentResult:
        """Convert an image into the grid as one history entry."""
        self._import_generation += 1
        self._applied_generation = self._import_generation
        raster = self._decode(source, self.grid.shape, self._sizing_supply(fit_to_supply))
        return self._apply_import(raster)

    async def import_image_async(
        self,
        source: ImageSource,
        fit_to_supply: bool = False,
    ) -> AssignmentResult | None:
        """Decode off the event loop, then apply unless a newer import already landed.

        Returns ``None`` when this import was superseded.
        """
        self._import_generation += 1
        generation = self._import_generation
        raster = await asyncio.to_thread(
            self._decode, source, self.grid.shape, self._sizing_supply(fit_to_supply),
        )
        if generation < self._applied_generation:
            logger.info("Discarding superseded image import #%d", generation)
            return None
        self._applied_generation = generation
        return self._apply_import(raster)

    def _sizing_supply(self, fit_to_supply: bool) -> int | None:
        return self.palette.total_supply() if fit_to_supply else None

    def _decode(
        self,
        source: ImageSource,
        shape: tuple[int, int],
        total_supply: int | None,
    ) -> np.ndarray:
        img = load_image(source)
        rows, cols = shape
        if total_supply is not None:
            size = compute_supply_size(
                img.width, img.height, total_supply,
                self.config.supply_fill_ratio, self.config.min_import_side,
            )
            if size is None:
                logger.info("No finite supply to size against; keeping %dx%d", rows, cols)
            else:
                rows, cols = size
        logger.info("Sampling %dx%d image to %dx%d grid", img.width, img.height, rows, cols)
        return sample_raster(img, rows, cols, self.config.alpha_threshold)

    def _apply_import(self, raster: np.ndarray) -> AssignmentResult:
        self.end_stroke()
        result = assign_colors(raster, self.palette, self.config.max_rounds)
        self.grid.restore(result.cells)
        self.selection.clear()
        self._commit()
        return result

    # -- Statistics ----------------------------------------------------

    def usage(self) -> UsageReport:
        return usage_report(self.grid.cells, self.palette, self.config.approaching_margin)
