"""Cell values: the tagged union stored in every grid position.

A cell is exactly one of

- ``CLEAR`` - no tile placed,
- ``RESERVED`` - a special non-purchasable material,
- ``Cell.color("#rrggbb")`` - a regular coloured tile.

Cells are immutable and hashable, so grids can be copied shallowly and
cells can key dictionaries (palette lookups, usage counters).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

HEX_PATTERN = re.compile(r"^#[0-9a-f]{6}$")

CLEAR_TOKEN = "clear"
RESERVED_TOKEN = "reserved"


class CellKind(Enum):
    CLEAR = "clear"
    RESERVED = "reserved"
    COLOR = "color"


def canonical_hex(value: str) -> str | None:
    """Normalise ``value`` to ``#rrggbb`` or return ``None`` if it is not a hex colour."""
    s = value.strip().lower()
    if not s.startswith("#"):
        s = "#" + s
    return s if HEX_PATTERN.match(s) else None


@dataclass(frozen=True)
class Cell:
    kind: CellKind
    hex: str | None = None

    def __post_init__(self) -> None:
        if self.kind is CellKind.COLOR:
            if self.hex is None or not HEX_PATTERN.match(self.hex):
                msg = f"Colour cells need a canonical '#rrggbb' hex, got {self.hex!r}"
                raise ValueError(msg)
        elif self.hex is not None:
            msg = f"{self.kind.value} cells carry no hex value"
            raise ValueError(msg)

    @classmethod
    def color(cls, value: str) -> Cell:
        """Build a colour cell from any accepted hex spelling (``FF0000``, ``#ff0000``)."""
        hx = canonical_hex(value)
        if hx is None:
            msg = f"Invalid hex colour: {value!r} (expected '#RRGGBB')"
            raise ValueError(msg)
        return cls(CellKind.COLOR, hx)

    @classmethod
    def parse(cls, token: str) -> Cell:
        """Inverse of :meth:`to_token`."""
        t = token.strip().lower()
        if t == CLEAR_TOKEN:
            return CLEAR
        if t == RESERVED_TOKEN:
            return RESERVED
        return cls.color(t)

    @property
    def is_clear(self) -> bool:
        return self.kind is CellKind.CLEAR

    @property
    def is_reserved(self) -> bool:
        return self.kind is CellKind.RESERVED

    @property
    def is_color(self) -> bool:
        return self.kind is CellKind.COLOR

    @property
    def is_special(self) -> bool:
        """Clear and Reserved never take part in colour matching or supply."""
        return self.kind is not CellKind.COLOR

    def to_token(self) -> str:
        if self.kind is CellKind.COLOR:
            return self.hex  # type: ignore[return-value]
        return self.kind.value

    def __str__(self) -> str:
        return self.to_token()


CLEAR = Cell(CellKind.CLEAR)
RESERVED = Cell(CellKind.RESERVED)
