"""Project file export/import (JSON).

Layout::

    {
      "rows": 5,
      "columns": 8,
      "cells": [["clear", "#ff0000", ...], ...],
      "palette": [{"hex": "clear", "quantity": "unlimited", "name": "Clear"}, ...]
    }
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from tile_mosaic.cells import Cell
from tile_mosaic.palette import (
    PaletteEntry,
    PaletteRegistry,
    entry_from_record,
    format_quantity,
)

logger = logging.getLogger(__name__)


class ProjectFormatError(ValueError):
    """A project document could not be parsed or is missing required fields."""


@dataclass
class Project:
    cells: np.ndarray
    palette: list[PaletteEntry]

    @property
    def rows(self) -> int:
        return self.cells.shape[0]

    @property
    def columns(self) -> int:
        return self.cells.shape[1]


def project_to_dict(cells: np.ndarray, palette: PaletteRegistry) -> dict:
    rows, cols = cells.shape
    return {
        "rows": rows,
        "columns": cols,
        "cells": [[cell.to_token() for cell in row] for row in cells],
        "palette": [
            {
                "hex": e.key.to_token(),
                "quantity": format_quantity(e.quantity),
                **({"name": e.name} if e.name else {}),
            }
            for e in palette.entries
        ],
    }


def dumps_project(cells: np.ndarray, palette: PaletteRegistry) -> str:
    return json.dumps(project_to_dict(cells, palette), indent=2)


def save_project(path: str | Path, cells: np.ndarray, palette: PaletteRegistry) -> None:
    Path(path).write_text(dumps_project(cells, palette), encoding="utf-8")
    logger.info("Project saved to %s", path)


def loads_project(text: str) -> Project:
    """Parse and validate a project document.

    Raises:
        ProjectFormatError: on invalid JSON, missing ``rows``/``columns``/``cells``,
            bad dimensions, ragged cells, or unknown cell tokens.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        msg = f"Project file is not valid JSON: {exc}"
        raise ProjectFormatError(msg) from exc
    if not isinstance(data, dict):
        msg = "Project file must contain a JSON object"
        raise ProjectFormatError(msg)

    missing = [k for k in ("rows", "columns", "cells") if not data.get(k)]
    if missing:
        msg = f"Project file is missing required fields: {', '.join(missing)}"
        raise ProjectFormatError(msg)

    rows, cols = data["rows"], data["columns"]
    if not all(isinstance(v, int) and not isinstance(v, bool) and v >= 1 for v in (rows, cols)):
        msg = "'rows' and 'columns' must be positive integers"
        raise ProjectFormatError(msg)

    raw = data["cells"]
    if not isinstance(raw, list) or len(raw) != rows:
        msg = f"'cells' must hold {rows} rows"
        raise ProjectFormatError(msg)

    cells = np.empty((rows, cols), dtype=object)
    for r, row in enumerate(raw):
        if not isinstance(row, list) or len(row) != cols:
            msg = f"Row {r} of 'cells' must hold {cols} values"
            raise ProjectFormatError(msg)
        for c, token in enumerate(row):
            if not isinstance(token, str):
                msg = f"Cell ({r}, {c}) is not a string"
                raise ProjectFormatError(msg)
            try:
                cells[r, c] = Cell.parse(token)
            except ValueError as exc:
                msg = f"Cell ({r}, {c}) has unknown value {token!r}"
                raise ProjectFormatError(msg) from exc

    palette = _palette_from_records(data.get("palette") or [])
    return Project(cells=cells, palette=palette)


def load_project(path: str | Path) -> Project:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        msg = f"Could not read project file {path}: {exc}"
        raise ProjectFormatError(msg) from exc
    return loads_project(text)


def _palette_from_records(records: object) -> list[PaletteEntry]:
    """Palette entries in file order; the registry prepends Clear if absent."""
    if not isinstance(records, list):
        msg = "'palette' must be a list"
        raise ProjectFormatError(msg)
    entries = []
    for record in records:
        entry = entry_from_record(record)
        if entry is None:
            logger.debug("Skipping palette record %r", record)
            continue
        entries.append(entry)
    return PaletteRegistry(entries).entries
