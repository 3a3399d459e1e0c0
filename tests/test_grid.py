"""Tests for cells, the grid store, history, and selection."""

from __future__ import annotations

import pytest

from tile_mosaic.cells import CLEAR, RESERVED, Cell, CellKind
from tile_mosaic.grid import GridStore, MirrorMode, Rect
from tile_mosaic.history import HistoryManager
from tile_mosaic.selection import SelectionModel, SelectionState

RED = Cell.color("#ff0000")
BLUE = Cell.color("#0000ff")


def count(grid: GridStore, cell: Cell) -> int:
    return sum(1 for c in grid.cells.flat if c == cell)


# -- Cells -------------------------------------------------------------

class TestCells:
    def test_hex_canonicalised(self) -> None:
        assert Cell.color("FF00AA").hex == "#ff00aa"
        assert Cell.color(" #Ff00aA ") == Cell.color("ff00aa")

    def test_invalid_hex(self) -> None:
        with pytest.raises(ValueError):
            Cell.color("#ff00")
        with pytest.raises(ValueError):
            Cell(CellKind.COLOR, "#FF0000")

    def test_tokens(self) -> None:
        for cell in (CLEAR, RESERVED, RED):
            assert Cell.parse(cell.to_token()) == cell
        assert CLEAR.to_token() == "clear"
        assert RED.to_token() == "#ff0000"

    def test_kinds_distinct(self) -> None:
        assert CLEAR != RESERVED
        assert CLEAR.is_special and RESERVED.is_special
        assert RED.is_color and not RED.is_special


# -- Grid store --------------------------------------------------------

class TestGridStore:
    def test_initial_all_clear(self) -> None:
        g = GridStore(3, 4)
        assert g.shape == (3, 4)
        assert count(g, CLEAR) == 12

    def test_dimensions_floored(self) -> None:
        assert GridStore(0, -2).shape == (1, 1)

    def test_paint(self) -> None:
        g = GridStore(3, 3)
        assert g.paint(1, 2, RED) == 1
        assert g[1, 2] == RED
        assert g.paint(1, 2, RED) == 0

    def test_paint_out_of_bounds_is_noop(self) -> None:
        g = GridStore(2, 2)
        assert g.paint(5, 5, RED) == 0
        assert g.paint(-1, 0, RED) == 0
        assert count(g, RED) == 0

    def test_paint_rejects_non_cells(self) -> None:
        with pytest.raises(TypeError):
            GridStore(2, 2).paint(0, 0, "#ff0000")  # type: ignore[arg-type]

    def test_mirror_both(self) -> None:
        g = GridStore(4, 5, mirror_mode=MirrorMode.BOTH)
        g.paint(0, 1, RED)
        for pos in [(0, 1), (0, 3), (3, 1), (3, 3)]:
            assert g[pos] == RED
        assert count(g, RED) == 4

    def test_mirror_horizontal(self) -> None:
        g = GridStore(2, 4, mirror_mode="horizontal")
        g.paint(0, 0, RED)
        assert g[0, 0] == RED
        assert g[0, 3] == RED
        assert count(g, RED) == 2

    def test_mirror_vertical(self) -> None:
        g = GridStore(3, 2, mirror_mode=MirrorMode.VERTICAL)
        g.paint(0, 1, RED)
        assert g[2, 1] == RED
        assert count(g, RED) == 2

    def test_mirror_centre_collapses(self) -> None:
        g = GridStore(3, 3, mirror_mode=MirrorMode.BOTH)
        assert g.mirrored_positions(1, 1) == [(1, 1)]
        assert g.paint(1, 1, RED) == 1

    def test_fills(self) -> None:
        g = GridStore(3, 4)
        assert g.fill_row(1, RED)
        assert count(g, RED) == 4
        assert g.fill_column(0, BLUE)
        assert count(g, BLUE) == 3
        assert not g.fill_row(7, RED)
        assert g.fill_region(Rect(1, 2, 5, 9), RESERVED)
        assert count(g, RESERVED) == 4

    def test_replace_color(self) -> None:
        g = GridStore(2, 3)
        g.fill_all(RED)
        assert g.replace_color(RED, BLUE, scope=Rect(0, 0, 0, 1)) == 2
        assert count(g, BLUE) == 2
        assert g.replace_color(RED, BLUE) == 4
        assert count(g, RED) == 0

    def test_resize_keeps_top_left(self) -> None:
        g = GridStore(3, 3)
        g.paint(0, 0, RED)
        g.paint(2, 2, BLUE)
        assert g.resize(2, 5)
        assert g.shape == (2, 5)
        assert g[0, 0] == RED
        assert count(g, BLUE) == 0
        assert g[1, 4] == CLEAR

    def test_resize_unchanged_is_noop(self) -> None:
        assert not GridStore(2, 2).resize(2, 2)

    @pytest.mark.parametrize("rows,cols", [(1, 1), (3, 7), (0, 0), (-2, 5), (10, 1)])
    def test_resize_stays_rectangular(self, rows: int, cols: int) -> None:
        g = GridStore(4, 4)
        g.resize(rows, cols)
        assert g.rows >= 1 and g.cols >= 1
        assert all(len(row) == g.cols for row in g.cells.tolist())

    def test_insert_rows(self) -> None:
        g = GridStore(2, 2)
        g.paint(0, 0, RED)
        g.insert_rows(0, "above", 2)
        assert g.rows == 4
        assert g[2, 0] == RED
        g.insert_rows(0, "below")
        assert g.rows == 5
        assert g[1, 0] == CLEAR
        assert g[3, 0] == RED

    def test_insert_columns(self) -> None:
        g = GridStore(2, 2)
        g.paint(1, 1, RED)
        g.insert_columns(1, "right", 3)
        assert g.cols == 5
        assert g[1, 1] == RED
        g.insert_columns(0, "left")
        assert g[1, 2] == RED

    def test_insert_bad_position(self) -> None:
        with pytest.raises(ValueError):
            GridStore(2, 2).insert_rows(0, "left")

    def test_delete_rows_capped(self) -> None:
        g = GridStore(3, 2)
        assert g.delete_rows(0, 10) == 2
        assert g.rows == 1

    def test_delete_never_below_one(self) -> None:
        g = GridStore(1, 1)
        assert g.delete_columns(0, 1) == 0
        assert g.delete_rows(0, 5) == 0
        assert g.shape == (1, 1)

    def test_delete_rows_from_index(self) -> None:
        g = GridStore(4, 1)
        g.paint(0, 0, RED)
        g.paint(3, 0, BLUE)
        assert g.delete_rows(1, 2) == 2
        assert [g[0, 0], g[1, 0]] == [RED, BLUE]
        assert g.delete_rows(9) == 0

    def test_move_region(self) -> None:
        g = GridStore(3, 3)
        g.fill_region(Rect(0, 0, 0, 1), RED)
        dest = g.move_region(Rect(0, 0, 0, 1), 2, 1)
        assert dest == Rect(2, 1, 2, 2)
        assert g[0, 0] == CLEAR
        assert g[2, 1] == RED and g[2, 2] == RED

    def test_move_region_loses_clipped_content(self) -> None:
        g = GridStore(3, 3)
        g.fill_region(Rect(0, 0, 0, 1), RED)
        dest = g.move_region(Rect(0, 0, 0, 1), 2, 2)
        assert dest == Rect(2, 2, 2, 2)
        assert count(g, RED) == 1

    def test_move_region_partly_off_grid(self) -> None:
        g = GridStore(4, 4)
        g.paint(0, 0, RED)
        dest = g.move_region(Rect(-1, 0, 0, 0), 1, 2)
        assert dest == Rect(2, 2, 2, 2)
        assert g[2, 2] == RED
        assert count(g, RED) == 1

    def test_duplicate_region_keeps_source(self) -> None:
        g = GridStore(3, 3)
        g.fill_region(Rect(0, 0, 0, 1), RED)
        content = g.extract(Rect(0, 0, 0, 1))
        g.duplicate_region(content, 1, 0)
        assert count(g, RED) == 4

    def test_snapshot_is_read_only(self) -> None:
        snap = GridStore(2, 2).snapshot()
        with pytest.raises(ValueError):
            snap[0, 0] = RED

    def test_restore_validates(self) -> None:
        g = GridStore(2, 2)
        with pytest.raises(ValueError):
            g.restore([[CLEAR, CLEAR], [CLEAR]])
        with pytest.raises(TypeError):
            g.restore([["clear"]])
        g.restore([[RED, BLUE, CLEAR]])
        assert g.shape == (1, 3)


# -- History -----------------------------------------------------------

class TestHistory:
    def test_first_entry_is_initial(self) -> None:
        g = GridStore(2, 2)
        h = HistoryManager(g.snapshot())
        assert len(h) == 1
        assert h.pointer == 0
        assert not h.can_undo and not h.can_redo

    def test_undo_redo_exact(self) -> None:
        g = GridStore(2, 2)
        h = HistoryManager(g.snapshot())
        before = g.snapshot()
        g.paint(0, 0, RED)
        h.commit(g.cells)
        after = g.snapshot()

        snap = h.undo()
        assert snap.tolist() == before.tolist()
        g.restore(snap)
        assert not h.commit(g.cells)  # suppressed

        snap = h.redo()
        assert snap.tolist() == after.tolist()

    def test_snapshots_are_isolated(self) -> None:
        g = GridStore(1, 1)
        h = HistoryManager(g.snapshot())
        g.paint(0, 0, RED)
        assert h.current[0, 0] == CLEAR

    def test_bounded(self) -> None:
        g = GridStore(1, 1)
        h = HistoryManager(g.snapshot())
        for i in range(120):
            g.paint(0, 0, RED if i % 2 else BLUE)
            h.commit(g.cells)
            assert len(h) <= 50
        assert len(h) == 50
        assert h.pointer == 49

    def test_commit_truncates_redo(self) -> None:
        g = GridStore(1, 2)
        h = HistoryManager(g.snapshot())
        for col in range(2):
            g.paint(0, col, RED)
            h.commit(g.cells)
        g.restore(h.undo())
        h.commit(g.cells)
        assert h.can_redo
        g.paint(0, 1, BLUE)
        h.commit(g.cells)
        assert not h.can_redo
        assert len(h) == 3

    def test_undo_redo_at_ends(self) -> None:
        h = HistoryManager(GridStore(1, 1).snapshot())
        assert h.undo() is None
        assert h.redo() is None


# -- Selection ---------------------------------------------------------

@pytest.fixture
def grid() -> GridStore:
    return GridStore(4, 4)


@pytest.fixture
def history(grid: GridStore) -> HistoryManager:
    return HistoryManager(grid.snapshot())


@pytest.fixture
def selection(grid: GridStore, history: HistoryManager) -> SelectionModel:
    return SelectionModel(grid, history)


class TestSelection:
    def test_bounds_normalise(self, selection: SelectionModel) -> None:
        selection.begin(3, 3)
        assert selection.state is SelectionState.SELECTING
        selection.extend(1, 0)
        assert selection.rect == Rect(1, 0, 3, 3)
        selection.finish()
        assert selection.state is SelectionState.SELECTED

    def test_copy_requires_selection(self, selection: SelectionModel) -> None:
        assert not selection.copy()
        assert not selection.paste()

    def test_copy_paste(
        self, grid: GridStore, history: HistoryManager, selection: SelectionModel,
    ) -> None:
        grid.paint(0, 0, RED)
        grid.paint(0, 1, BLUE)
        selection.select(Rect(0, 0, 0, 1))
        assert selection.copy()
        selection.select(Rect(3, 3, 3, 3))
        assert selection.paste()
        assert grid[3, 3] == RED
        assert len(history) == 2

    def test_clipboard_outlives_selection(
        self, grid: GridStore, selection: SelectionModel,
    ) -> None:
        grid.paint(0, 0, RED)
        selection.select(Rect(0, 0, 0, 0))
        selection.copy()
        selection.clear()
        for row in (1, 2):
            selection.select(Rect(row, 2, row, 2))
            assert selection.paste()
        assert count(grid, RED) == 3

    def test_start_drag_outside_rejected(self, selection: SelectionModel) -> None:
        selection.select(Rect(0, 0, 1, 1))
        assert not selection.start_drag(3, 3)
        assert selection.state is SelectionState.SELECTED

    def test_drag_commit(
        self, grid: GridStore, history: HistoryManager, selection: SelectionModel,
    ) -> None:
        grid.fill_region(Rect(0, 0, 1, 1), RED)
        selection.select(Rect(0, 0, 1, 1))
        assert selection.start_drag(1, 1)
        selection.move_drag(3, 3)
        assert selection.preview == Rect(2, 2, 3, 3)
        assert grid[0, 0] == RED  # preview only

        assert selection.commit_drag()
        assert grid[0, 0] == CLEAR
        assert grid[2, 2] == RED and grid[3, 3] == RED
        assert selection.rect == Rect(2, 2, 3, 3)
        assert selection.state is SelectionState.SELECTED
        assert len(history) == 2

    def test_selection_clipped_on_finish(self, selection: SelectionModel) -> None:
        selection.begin(-1, 0)
        selection.extend(0, 0)
        selection.finish()
        assert selection.rect == Rect(0, 0, 0, 0)
        assert selection.state is SelectionState.SELECTED

    def test_selection_off_grid_dropped(self, selection: SelectionModel) -> None:
        selection.begin(-3, -3)
        selection.extend(-1, -2)
        selection.finish()
        assert selection.rect is None
        assert selection.state is SelectionState.NONE

    def test_drag_from_edge_selection(
        self, grid: GridStore, selection: SelectionModel,
    ) -> None:
        grid.paint(0, 0, RED)
        selection.begin(-1, 0)
        selection.extend(0, 0)
        selection.finish()
        assert selection.start_drag(0, 0)
        selection.move_drag(2, 2)
        assert selection.commit_drag()
        assert grid[2, 2] == RED
        assert count(grid, RED) == 1
        assert selection.rect == Rect(2, 2, 2, 2)

    def test_drag_clamped(self, grid: GridStore, selection: SelectionModel) -> None:
        grid.fill_region(Rect(0, 0, 1, 1), RED)
        selection.select(Rect(0, 0, 1, 1))
        selection.start_drag(0, 0)
        selection.move_drag(3, 3)
        selection.commit_drag()
        assert selection.rect == Rect(3, 3, 3, 3)
        assert count(grid, RED) == 1

    def test_cancel_drag(
        self, grid: GridStore, history: HistoryManager, selection: SelectionModel,
    ) -> None:
        grid.fill_region(Rect(0, 0, 1, 1), RED)
        selection.select(Rect(0, 0, 1, 1))
        selection.start_drag(0, 0)
        selection.move_drag(2, 2)
        selection.cancel()
        assert selection.state is SelectionState.SELECTED
        assert selection.preview is None
        assert count(grid, RED) == 4
        assert len(history) == 1

    def test_duplicate(
        self, grid: GridStore, history: HistoryManager, selection: SelectionModel,
    ) -> None:
        grid.fill_region(Rect(0, 0, 0, 1), RED)
        selection.select(Rect(0, 0, 0, 1))
        assert selection.start_duplicate()
        assert selection.state is SelectionState.DUPLICATING
        selection.move_duplicate(2, 3)
        assert selection.preview == Rect(2, 3, 2, 4)
        assert selection.place_duplicate(2, 3)
        assert grid[0, 0] == RED and grid[0, 1] == RED
        assert grid[2, 3] == RED
        assert count(grid, RED) == 3
        assert selection.state is SelectionState.SELECTED
        assert len(history) == 2

    def test_escape_clears(self, selection: SelectionModel) -> None:
        selection.select(Rect(0, 0, 1, 1))
        selection.cancel()
        assert selection.state is SelectionState.NONE
        assert selection.rect is None

    def test_revalidate_after_shrink(
        self, grid: GridStore, selection: SelectionModel,
    ) -> None:
        selection.select(Rect(1, 1, 3, 3))
        grid.resize(2, 2)
        selection.revalidate()
        assert selection.rect == Rect(1, 1, 1, 1)
        grid.resize(4, 4)
        selection.select(Rect(3, 3, 3, 3))
        grid.resize(2, 2)
        selection.revalidate()
        assert selection.state is SelectionState.NONE

    def test_fill_and_erase(
        self, grid: GridStore, history: HistoryManager, selection: SelectionModel,
    ) -> None:
        selection.select(Rect(0, 0, 1, 1))
        assert selection.fill(BLUE)
        assert count(grid, BLUE) == 4
        assert selection.erase()
        assert count(grid, BLUE) == 0
        assert len(history) == 3
