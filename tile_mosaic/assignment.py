"""Supply-constrained colour assignment by multi-round rationing.

A greedy per-pixel scan spends scarce colours on whichever pixels come
first. Here every pixel ranks the whole palette up front, then each round
groups the still-unassigned pixels by their best colour that has stock
left. A group that fits its colour's remaining stock is assigned whole; an
oversized group hands the colour to its closest members only, and the
rest move on to their next preference in the following round.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field

import numpy as np

from tile_mosaic.cells import CLEAR, Cell
from tile_mosaic.color_utils import compute_cost_matrix, hexes_to_array
from tile_mosaic.palette import PaletteEntry, PaletteRegistry

logger = logging.getLogger(__name__)

MAX_ROUNDS = 10


@dataclass
class AssignmentResult:
    """Output of :func:`assign_colors`.

    Attributes:
        cells:          (H, W) object array of assigned cells.
        oversubscribed: Positions that received a colour with no stock left.
        rounds:         Rationing rounds actually run.
        usage:          Cells assigned per palette colour.
    """

    cells: np.ndarray
    oversubscribed: list[tuple[int, int]] = field(default_factory=list)
    rounds: int = 0
    usage: Counter[Cell] = field(default_factory=Counter)


def ration_assignment(
    cost: np.ndarray,
    supply: np.ndarray,
    max_rounds: int = MAX_ROUNDS,
) -> tuple[np.ndarray, np.ndarray, int]:
    """Assign each row of ``cost`` a column under per-column supply limits.

    Args:
        cost:       (N, K) distance of pixel ``i`` to colour ``j``.
        supply:     (K,) stock per colour; ``inf`` never runs out.
        max_rounds: Round cap; pixels still pending afterwards fall back
            to their first preference.

    Returns:
        ``(choice, oversubscribed, rounds)`` - (N,) column per pixel
        (``-1`` only when ``K == 0``), (N,) bool flags for pixels that got
        a colour beyond its stock, and the number of rounds run.
    """
    n, k = cost.shape
    choice = np.full(n, -1, dtype=np.intp)
    oversubscribed = np.zeros(n, dtype=bool)
    if n == 0 or k == 0:
        return choice, oversubscribed, 0

    # Stable sort: equal distances keep palette order
    prefs = np.argsort(cost, axis=1, kind="stable")
    remaining = np.asarray(supply, dtype=np.float64).copy()
    pending = np.arange(n)
    rounds = 0

    while pending.size and rounds < max_rounds:
        rounds += 1

        in_stock = remaining[prefs[pending]] > 0
        has_option = in_stock.any(axis=1)
        wanted = prefs[pending, in_stock.argmax(axis=1)]

        exhausted = pending[~has_option]
        choice[exhausted] = prefs[exhausted, 0]
        oversubscribed[exhausted] = True

        live = pending[has_option]
        live_wanted = wanted[has_option]
        for j in np.unique(live_wanted):
            members = live[live_wanted == j]
            stock = remaining[j]
            if members.size > stock:
                # Closest pixels first; raster order breaks ties
                order = np.lexsort((members, cost[members, j]))
                members = members[order[: int(stock)]]
            choice[members] = j
            remaining[j] -= members.size

        pending = np.flatnonzero(choice < 0)
        logger.debug("Round %d: %d pixels still pending", rounds, pending.size)

    if pending.size:
        choice[pending] = prefs[pending, 0]
        oversubscribed[pending] = True

    return choice, oversubscribed, rounds


def assign_colors(
    raster: np.ndarray,
    palette: PaletteRegistry | Iterable[PaletteEntry],
    max_rounds: int = MAX_ROUNDS,
) -> AssignmentResult:
    """Map a sampled raster onto palette colours respecting quantities.

    Args:
        raster:  (H, W) object array of cells; anything but a colour cell
            (transparent source pixels) stays Clear.
        palette: Registry or entries; Clear/Reserved never take part.
        max_rounds: Round cap for :func:`ration_assignment`.

    Returns:
        An :class:`AssignmentResult`; deterministic for identical input.
    """
    if isinstance(palette, PaletteRegistry):
        entries = palette.color_entries()
    else:
        entries = [e for e in palette if e.key.is_color]

    h, w = raster.shape
    flat = raster.ravel()
    out = np.full(h * w, CLEAR, dtype=object)
    opaque = np.array([i for i, c in enumerate(flat) if c.is_color], dtype=np.intp)

    if not entries or not opaque.size:
        return AssignmentResult(cells=out.reshape(h, w))

    t0 = time.perf_counter()
    target = hexes_to_array(flat[i].hex for i in opaque)
    pal_rgb = hexes_to_array(e.key.hex for e in entries)
    supply = np.array([e.quantity for e in entries], dtype=np.float64)
    cost = compute_cost_matrix(target, pal_rgb)

    choice, over, rounds = ration_assignment(cost, supply, max_rounds)

    keys = [e.key for e in entries]
    for pos, j in zip(opaque, choice, strict=True):
        out[pos] = keys[j]

    oversubscribed = [divmod(int(pos), w) for pos in opaque[over]]
    usage = Counter(keys[j] for j in choice)
    logger.info(
        "Assigned %d pixels to %d colours in %d rounds (%.2f s)",
        opaque.size, len(usage), rounds, time.perf_counter() - t0,
    )
    if oversubscribed:
        logger.warning(
            "%d pixels exceed available supply and use their closest colour anyway",
            len(oversubscribed),
        )

    return AssignmentResult(
        cells=out.reshape(h, w),
        oversubscribed=oversubscribed,
        rounds=rounds,
        usage=usage,
    )
