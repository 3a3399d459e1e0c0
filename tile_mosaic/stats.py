"""Tile usage statistics: how many of each colour a layout needs vs. stock."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass

import numpy as np

from tile_mosaic.cells import Cell
from tile_mosaic.palette import UNLIMITED, PaletteRegistry


@dataclass(frozen=True)
class ColorUsage:
    key: Cell
    used: int
    available: float
    name: str | None = None
    approaching_margin: int = 10

    @property
    def remaining(self) -> float:
        return self.available - self.used

    @property
    def over_limit(self) -> bool:
        return self.available != UNLIMITED and self.used > self.available

    @property
    def approaching_limit(self) -> bool:
        return (
            self.available != UNLIMITED
            and not self.over_limit
            and self.remaining <= self.approaching_margin
        )


@dataclass(frozen=True)
class UsageReport:
    colors: list[ColorUsage]
    total_cells: int
    clear_cells: int
    reserved_cells: int
    total_available: int
    palette_colors: int

    @property
    def colored_cells(self) -> int:
        return self.total_cells - self.clear_cells - self.reserved_cells

    @property
    def colors_used(self) -> int:
        return sum(1 for u in self.colors if u.key.is_color)

    @property
    def has_warnings(self) -> bool:
        return any(u.over_limit for u in self.colors)

    @property
    def shortages(self) -> list[ColorUsage]:
        return [u for u in self.colors if u.over_limit]


def usage_report(
    cells: np.ndarray,
    palette: PaletteRegistry,
    approaching_margin: int = 10,
) -> UsageReport:
    """Count cells per value and compare against palette stock.

    Colours painted but missing from the palette count as unlimited.
    Ordering: Clear, Reserved, then by usage descending.
    """
    counts: Counter[Cell] = Counter(cells.flat)

    colors = []
    for key, used in counts.items():
        entry = palette.get(key)
        colors.append(
            ColorUsage(
                key=key,
                used=used,
                available=entry.quantity if entry else UNLIMITED,
                name=entry.name if entry else None,
                approaching_margin=approaching_margin,
            )
        )
    colors.sort(key=lambda u: (0 if u.key.is_clear else 1 if u.key.is_reserved else 2, -u.used))

    return UsageReport(
        colors=colors,
        total_cells=int(cells.size),
        clear_cells=sum(u.used for u in colors if u.key.is_clear),
        reserved_cells=sum(u.used for u in colors if u.key.is_reserved),
        total_available=palette.total_supply(),
        palette_colors=len(palette.color_entries()),
    )
