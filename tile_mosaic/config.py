"""Centralised configuration via a frozen dataclass."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class EditorConfig:
    """All tuneable parameters for an editing session.

    Attributes:
        initial_rows:       Rows of the blank grid created at startup.
        initial_cols:       Columns of the blank grid created at startup.
        max_history:        Maximum number of snapshots kept for undo/redo.
        alpha_threshold:    Source pixels with alpha below this become Clear.
        max_rounds:         Round cap for the rationing colour assignment.
        supply_fill_ratio:  Share of the finite supply an image import aims to use
                            when sizing the grid from the palette.
        min_import_side:    Minimum rows / columns of a supply-sized import.
        approaching_margin: Remaining count at which a colour is "nearly used up".
        reminder_interval:  Seconds between save-reminder polls.
        reminder_threshold: Seconds of unsaved work before the reminder fires.
        pixel_upscale:      Each cell becomes n x n pixels in rendered previews.
        output_dir:         Folder for CLI results.
    """

    # Grid
    initial_rows: int = 5
    initial_cols: int = 8

    # History
    max_history: int = 50

    # Image import
    alpha_threshold: int = 128
    max_rounds: int = 10
    supply_fill_ratio: float = 0.85
    min_import_side: int = 10

    # Statistics
    approaching_margin: int = 10

    # Save reminder
    reminder_interval: float = 60.0
    reminder_threshold: float = 600.0

    # Output
    pixel_upscale: int = 12
    output_dir: Path = field(default_factory=lambda: Path("output"))

    SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(
        {".jpg", ".jpeg", ".png", ".bmp", ".gif", ".tiff", ".tif", ".webp"}
    )
