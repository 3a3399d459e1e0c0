"""Palette registry: ordered colour entries with finite or unlimited supply.

Also parses the two textual palette formats accepted on import:

- JSON - ``{"colors": [...]}`` or a bare array of ``{hex, quantity, name}``.
- Delimited text - one ``name, quantity, hex`` entry per line, optional header.
"""

from __future__ import annotations

import csv
import io
import json
import logging
import math
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, replace
from pathlib import Path

from tile_mosaic.cells import CLEAR, RESERVED, Cell, canonical_hex
from tile_mosaic.color_utils import hue_degrees

logger = logging.getLogger(__name__)

UNLIMITED = math.inf

# Hex field spellings that mark a special (non-colour) row in delimited text
NOT_APPLICABLE = frozenset({"", "n/a", "na", "none", "-"})
HEADER_WORDS = ("hex", "color", "name")


@dataclass(frozen=True)
class PaletteEntry:
    """One paintable colour.

    ``quantity`` is a non-negative ``int`` or :data:`UNLIMITED`.
    """

    key: Cell
    quantity: float = UNLIMITED
    name: str | None = None

    @property
    def is_unlimited(self) -> bool:
        return self.quantity == UNLIMITED


def parse_quantity(value: object) -> float:
    """Coerce a serialized quantity; anything unusable means unlimited."""
    if value is None or isinstance(value, bool):
        return UNLIMITED
    if isinstance(value, (int, float)):
        if math.isinf(value) or math.isnan(value) or value < 0:
            return UNLIMITED
        return int(value)
    s = str(value).strip().lower()
    if s in {"", "unlimited", "inf", "infinity", "∞"}:
        return UNLIMITED
    try:
        q = float(s)
    except ValueError:
        logger.debug("Unparsable quantity %r, treating as unlimited", value)
        return UNLIMITED
    return parse_quantity(q)


def format_quantity(quantity: float) -> int | str:
    return "unlimited" if quantity == UNLIMITED else int(quantity)


class PaletteRegistry:
    """Ordered palette that always holds exactly one Clear entry.

    The registry also tracks the *active* painting colour.
    """

    def __init__(self, entries: Iterable[PaletteEntry] = ()) -> None:
        self._entries: list[PaletteEntry] = []
        for entry in entries:
            if self.get(entry.key) is None:
                self._entries.append(entry)
        if self.get(CLEAR) is None:
            self._entries.insert(0, PaletteEntry(CLEAR, UNLIMITED, "Clear"))
        self.active: Cell = CLEAR

    # -- Queries -------------------------------------------------------

    @property
    def entries(self) -> list[PaletteEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[PaletteEntry]:
        return iter(list(self._entries))

    def __contains__(self, key: object) -> bool:
        return any(e.key == key for e in self._entries)

    def get(self, key: Cell) -> PaletteEntry | None:
        for entry in self._entries:
            if entry.key == key:
                return entry
        return None

    def keys(self) -> list[Cell]:
        return [e.key for e in self._entries]

    def color_entries(self) -> list[PaletteEntry]:
        """Regular colours only; Clear and Reserved are excluded."""
        return [e for e in self._entries if e.key.is_color]

    def supply(self) -> dict[Cell, float]:
        return {e.key: e.quantity for e in self.color_entries()}

    def total_supply(self) -> int:
        """Sum of the finite regular-colour quantities."""
        return int(sum(e.quantity for e in self.color_entries() if not e.is_unlimited))

    # -- Mutation ------------------------------------------------------

    def set_active(self, key: Cell) -> bool:
        if key not in self:
            return False
        self.active = key
        return True

    def add_color(
        self,
        key: Cell,
        quantity: float = UNLIMITED,
        name: str | None = None,
    ) -> bool:
        """Append ``key``; an already present key is left untouched and ``False`` returned."""
        if key in self:
            return False
        self._entries.append(PaletteEntry(key, parse_quantity(quantity), name))
        return True

    def edit_color(self, old: Cell, new: Cell) -> bool:
        """Rename ``old`` to ``new`` in place, keeping quantity and name.

        Rejected (``False``) when ``old`` is missing or special, ``new`` is
        special, or ``new`` already names another entry. Grid cells are not
        touched here; see :meth:`tile_mosaic.editor.Editor.edit_color`.
        """
        if old == new or old.is_special or new.is_special:
            return False
        if old not in self or new in self:
            return False
        self._entries = [
            replace(e, key=new) if e.key == old else e for e in self._entries
        ]
        if self.active == old:
            self.active = new
        return True

    def set_quantity(self, key: Cell, quantity: float) -> bool:
        if key not in self:
            return False
        q = parse_quantity(quantity)
        self._entries = [
            replace(e, quantity=q) if e.key == key else e for e in self._entries
        ]
        return True

    def remove_colors(self, keys: Iterable[Cell]) -> list[Cell]:
        """Drop every entry in ``keys`` except Clear; returns what was removed."""
        doomed = {k for k in keys if not k.is_clear}
        removed = [e.key for e in self._entries if e.key in doomed]
        self._entries = [e for e in self._entries if e.key not in doomed]
        if self.active in doomed:
            self.active = CLEAR
        return removed

    def replace_all(self, entries: Iterable[PaletteEntry]) -> None:
        """Swap in a new palette wholesale (import / project load)."""
        fresh = PaletteRegistry(entries)
        self._entries = fresh._entries
        if self.active not in self:
            self.active = CLEAR

    def sort_by_hue(self) -> None:
        self._entries = order_entries(self._entries)


def order_entries(entries: Iterable[PaletteEntry]) -> list[PaletteEntry]:
    """Clear first, Reserved second, then regular colours in rainbow order."""
    entries = list(entries)
    specials = sorted(
        (e for e in entries if e.key.is_special),
        key=lambda e: 0 if e.key.is_clear else 1,
    )
    colors = [e for e in entries if e.key.is_color]
    hues = hue_degrees([e.key.hex for e in colors])  # type: ignore[misc]
    order = sorted(range(len(colors)), key=lambda i: hues[i])
    return specials + [colors[i] for i in order]


# -- Import parsing ----------------------------------------------------


def parse_palette_text(text: str) -> list[PaletteEntry]:
    """Parse either palette format and return entries ready for a registry.

    Malformed rows are skipped. The result starts with the special
    entries followed by the regular colours sorted by hue.
    """
    stripped = text.lstrip()
    if stripped.startswith(("{", "[")):
        try:
            data = json.loads(stripped)
        except json.JSONDecodeError as exc:
            msg = f"Palette JSON could not be parsed: {exc}"
            raise ValueError(msg) from exc
        entries = _parse_json_entries(data)
    else:
        entries = _parse_delimited_entries(text)

    seen: set[Cell] = set()
    unique = []
    for entry in entries:
        if entry.key not in seen:
            seen.add(entry.key)
            unique.append(entry)
    return order_entries(unique)


def load_palette_file(path: str | Path) -> PaletteRegistry:
    text = Path(path).read_text(encoding="utf-8")
    entries = parse_palette_text(text)
    logger.info("Palette loaded from %s (%d entries)", path, len(entries))
    return PaletteRegistry(entries)


def _parse_json_entries(data: object) -> list[PaletteEntry]:
    if isinstance(data, dict):
        data = data.get("colors", [])
    if not isinstance(data, list):
        msg = "Palette JSON must be a list or an object with a 'colors' list"
        raise ValueError(msg)

    entries = []
    for item in data:
        entry = entry_from_record(item)
        if entry is None:
            logger.debug("Skipping palette record %r", item)
            continue
        entries.append(entry)
    return entries


def entry_from_record(item: object) -> PaletteEntry | None:
    """Build an entry from ``{hex, quantity, name}`` or a bare hex string."""
    if isinstance(item, str):
        item = {"hex": item}
    if not isinstance(item, dict) or not isinstance(item.get("hex"), str):
        return None

    token = item["hex"].strip().lower()
    if token == "clear":
        key = CLEAR
    elif token == "reserved":
        key = RESERVED
    else:
        hx = canonical_hex(token)
        if hx is None:
            return None
        key = Cell.color(hx)

    name = item.get("name")
    return PaletteEntry(
        key,
        parse_quantity(item.get("quantity")),
        str(name) if name else None,
    )


def _parse_delimited_entries(text: str) -> list[PaletteEntry]:
    rows = [r for r in csv.reader(io.StringIO(text)) if any(f.strip() for f in r)]
    if rows and any(w in rows[0][0].strip().lower() for w in HEADER_WORDS):
        rows = rows[1:]

    entries = []
    specials = [CLEAR, RESERVED]
    for row in rows:
        fields = [f.strip() for f in row] + ["", "", ""]
        name, quantity, hex_field = fields[0], fields[1], fields[2]

        if hex_field.lower() in NOT_APPLICABLE:
            if not specials:
                logger.debug("Ignoring extra special row %r", row)
                continue
            key = specials.pop(0)
            default_name = "Clear" if key.is_clear else "Reserved"
            entries.append(
                PaletteEntry(key, parse_quantity(quantity), name or default_name)
            )
            continue

        hx = canonical_hex(hex_field)
        if hx is None:
            logger.debug("Skipping palette row with bad hex %r", row)
            continue
        entries.append(
            PaletteEntry(Cell.color(hx), parse_quantity(quantity), name or None)
        )
    return entries
