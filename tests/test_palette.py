"""Tests for the palette registry, palette import, and project files."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from tile_mosaic.cells import CLEAR, RESERVED, Cell
from tile_mosaic.grid import GridStore
from tile_mosaic.palette import (
    UNLIMITED,
    PaletteEntry,
    PaletteRegistry,
    load_palette_file,
    parse_palette_text,
    parse_quantity,
)
from tile_mosaic.project_io import (
    ProjectFormatError,
    dumps_project,
    load_project,
    loads_project,
    save_project,
)

RED = Cell.color("#ff0000")
GREEN = Cell.color("#00ff00")
BLUE = Cell.color("#0000ff")


@pytest.fixture
def palette() -> PaletteRegistry:
    return PaletteRegistry([
        PaletteEntry(RED, 4, "Red"),
        PaletteEntry(BLUE, UNLIMITED),
        PaletteEntry(RESERVED, 7, "Silver"),
    ])


# -- Registry ----------------------------------------------------------

class TestPaletteRegistry:
    def test_clear_synthesized(self) -> None:
        assert PaletteRegistry().keys() == [CLEAR]

    def test_clear_present_once(self) -> None:
        reg = PaletteRegistry([PaletteEntry(RED), PaletteEntry(CLEAR)])
        assert reg.keys() == [RED, CLEAR]
        assert reg.keys().count(CLEAR) == 1

    def test_add_duplicate_is_rejected(self, palette: PaletteRegistry) -> None:
        assert palette.add_color(GREEN, 3)
        assert not palette.add_color(RED, 99)
        assert palette.get(RED).quantity == 4
        assert palette.keys()[-1] == GREEN

    def test_remove_protects_clear(self, palette: PaletteRegistry) -> None:
        palette.set_active(RED)
        removed = palette.remove_colors([CLEAR, RED])
        assert removed == [RED]
        assert CLEAR in palette
        assert RED not in palette
        assert palette.active == CLEAR

    def test_edit_renames_in_place(self, palette: PaletteRegistry) -> None:
        palette.set_active(RED)
        index = palette.keys().index(RED)
        assert palette.edit_color(RED, GREEN)
        assert palette.keys().index(GREEN) == index
        assert palette.get(GREEN).quantity == 4
        assert palette.get(GREEN).name == "Red"
        assert palette.active == GREEN

    def test_edit_rejects_collision(self, palette: PaletteRegistry) -> None:
        before = palette.entries
        assert not palette.edit_color(RED, BLUE)
        assert not palette.edit_color(CLEAR, GREEN)
        assert not palette.edit_color(RED, RESERVED)
        assert palette.entries == before

    def test_supply_excludes_specials(self, palette: PaletteRegistry) -> None:
        assert palette.supply() == {RED: 4, BLUE: UNLIMITED}
        assert palette.total_supply() == 4

    def test_set_quantity(self, palette: PaletteRegistry) -> None:
        assert palette.set_quantity(BLUE, "12")
        assert palette.get(BLUE).quantity == 12
        assert not palette.set_quantity(GREEN, 3)
        assert palette.total_supply() == 16

    def test_sort_by_hue(self, palette: PaletteRegistry) -> None:
        palette.add_color(GREEN)
        palette.sort_by_hue()
        assert palette.keys() == [CLEAR, RESERVED, RED, GREEN, BLUE]

    def test_set_active_unknown(self, palette: PaletteRegistry) -> None:
        assert not palette.set_active(GREEN)
        assert palette.active == CLEAR

    def test_quantity_parsing(self) -> None:
        assert parse_quantity(12) == 12
        assert parse_quantity("7") == 7
        assert parse_quantity("unlimited") == UNLIMITED
        assert parse_quantity("lots") == UNLIMITED
        assert parse_quantity(-3) == UNLIMITED
        assert parse_quantity(None) == UNLIMITED


# -- Palette import ----------------------------------------------------

class TestPaletteImport:
    def test_json_object(self) -> None:
        text = json.dumps({"colors": [
            {"hex": "0000FF", "quantity": 3, "name": "Blue"},
            {"hex": "#ff0000"},
        ]})
        entries = parse_palette_text(text)
        assert [e.key for e in entries] == [RED, BLUE]
        assert entries[0].quantity == UNLIMITED
        assert entries[1].quantity == 3
        assert entries[1].name == "Blue"

    def test_json_array_drops_bad_hex(self) -> None:
        text = json.dumps([
            {"hex": "#00ff00", "quantity": "5"},
            {"hex": "#12345", "quantity": 1},
            {"quantity": 2},
        ])
        entries = parse_palette_text(text)
        assert [e.key for e in entries] == [GREEN]
        assert entries[0].quantity == 5

    def test_delimited_with_header_and_specials(self) -> None:
        text = (
            "Name,Quantity,Hex\n"
            "Empty,0,\n"
            "Silver,12,n/a\n"
            "Extra,5,N/A\n"
            "Blue,10,#0000FF\n"
            "Red,abc,ff0000\n"
            "Bad,3,#12345\n"
        )
        entries = parse_palette_text(text)
        assert [e.key for e in entries] == [CLEAR, RESERVED, RED, BLUE]
        assert entries[0].name == "Empty"
        assert entries[1].quantity == 12
        assert entries[2].quantity == UNLIMITED
        assert entries[3].quantity == 10

    def test_delimited_without_header(self) -> None:
        entries = parse_palette_text("Lime,4,#00ff00\n\nRuby,2,#ff0000\n")
        assert [e.key for e in entries] == [RED, GREEN]
        assert [e.name for e in entries] == ["Ruby", "Lime"]

    def test_specials_come_first(self) -> None:
        entries = parse_palette_text("Blue,1,#0000ff\nNone,1,-\n")
        assert [e.key for e in entries] == [CLEAR, BLUE]

    def test_rainbow_order(self) -> None:
        entries = parse_palette_text(
            "a,1,#0000ff\nb,1,#ffff00\nc,1,#ff0000\nd,1,#00ffff\n"
        )
        assert [e.key.hex for e in entries] == [
            "#ff0000", "#ffff00", "#00ffff", "#0000ff",
        ]

    def test_invalid_json(self) -> None:
        with pytest.raises(ValueError):
            parse_palette_text("{not json")

    def test_load_file(self, tmp_path: Path) -> None:
        p = tmp_path / "tiles.csv"
        p.write_text("name,quantity,hex\nRed,3,#ff0000\n", encoding="utf-8")
        reg = load_palette_file(p)
        assert reg.keys() == [CLEAR, RED]
        assert reg.total_supply() == 3


# -- Project files -----------------------------------------------------

def _doc(**overrides: object) -> str:
    doc: dict[str, object] = {
        "rows": 1,
        "columns": 2,
        "cells": [["clear", "#ff0000"]],
        "palette": [{"hex": "#ff0000", "quantity": 2}],
    }
    doc.update(overrides)
    return json.dumps({k: v for k, v in doc.items() if v is not None})


class TestProjectIO:
    def test_round_trip(self, palette: PaletteRegistry, tmp_path: Path) -> None:
        g = GridStore(2, 3)
        g.paint(0, 1, RED)
        g.paint(1, 2, RESERVED)
        g.paint(1, 0, Cell.color("#123abc"))

        path = tmp_path / "layout.json"
        save_project(path, g.cells, palette)
        project = load_project(path)

        assert project.cells.tolist() == g.cells.tolist()
        keys = [e.key for e in project.palette]
        assert keys.count(CLEAR) == 1
        assert set(keys) == set(palette.keys())
        assert [e.quantity for e in project.palette][1:] == [4, UNLIMITED, 7]

    def test_unlimited_serialized_as_marker(self, palette: PaletteRegistry) -> None:
        data = json.loads(dumps_project(GridStore(1, 1).cells, palette))
        quantities = {e["hex"]: e["quantity"] for e in data["palette"]}
        assert quantities["#0000ff"] == "unlimited"
        assert quantities["#ff0000"] == 4

    @pytest.mark.parametrize("field", ["rows", "columns", "cells"])
    def test_missing_field(self, field: str) -> None:
        with pytest.raises(ProjectFormatError):
            loads_project(_doc(**{field: None}))

    def test_invalid_json(self) -> None:
        with pytest.raises(ProjectFormatError):
            loads_project("{")

    def test_ragged_cells(self) -> None:
        with pytest.raises(ProjectFormatError):
            loads_project(_doc(rows=2, cells=[["clear", "clear"], ["clear"]]))

    def test_unknown_token(self) -> None:
        with pytest.raises(ProjectFormatError):
            loads_project(_doc(cells=[["clear", "rainbow"]]))

    def test_is_value_error(self) -> None:
        assert issubclass(ProjectFormatError, ValueError)

    def test_clear_prepended(self) -> None:
        project = loads_project(_doc())
        assert project.palette[0].key == CLEAR
        assert project.palette[1].key == RED
        assert project.palette[1].quantity == 2

    def test_legacy_string_palette(self) -> None:
        project = loads_project(_doc(palette=["clear", "#FF0000"]))
        assert [e.key for e in project.palette] == [CLEAR, RED]
        assert project.palette[1].quantity == UNLIMITED

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ProjectFormatError):
            load_project(tmp_path / "nope.json")
