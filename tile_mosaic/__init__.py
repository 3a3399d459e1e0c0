"""
Tile Mosaic Planner
===================

Plan mosaics built from a finite inventory of coloured tiles on a
rectangular grid. Paint by hand with undo/redo, selections, and mirror
modes, or import an image and let the rationing solver share scarce
colours across the pixels that match them best.
"""

__version__ = "1.0.0"

from tile_mosaic.assignment import AssignmentResult, assign_colors, ration_assignment
from tile_mosaic.cells import CLEAR, RESERVED, Cell, CellKind
from tile_mosaic.config import EditorConfig
from tile_mosaic.editor import Editor
from tile_mosaic.grid import GridStore, MirrorMode, Rect
from tile_mosaic.history import HistoryManager
from tile_mosaic.palette import (
    UNLIMITED,
    PaletteEntry,
    PaletteRegistry,
    load_palette_file,
    parse_palette_text,
)
from tile_mosaic.project_io import ProjectFormatError, load_project, save_project
from tile_mosaic.reminder import SaveReminder, UnsavedEvent
from tile_mosaic.selection import SelectionModel, SelectionState
from tile_mosaic.stats import usage_report

__all__ = [
    "CLEAR",
    "RESERVED",
    "UNLIMITED",
    "AssignmentResult",
    "Cell",
    "CellKind",
    "Editor",
    "EditorConfig",
    "GridStore",
    "HistoryManager",
    "MirrorMode",
    "PaletteEntry",
    "PaletteRegistry",
    "ProjectFormatError",
    "Rect",
    "SaveReminder",
    "SelectionModel",
    "SelectionState",
    "UnsavedEvent",
    "assign_colors",
    "load_palette_file",
    "load_project",
    "parse_palette_text",
    "ration_assignment",
    "save_project",
    "usage_report",
]
