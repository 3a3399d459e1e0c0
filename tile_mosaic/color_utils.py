"""Colour parsing, perceptual distance, and cost-matrix computation."""

from __future__ import annotations

import math
from collections.abc import Iterable

import numpy as np
from skimage.color import rgb2hsv

from tile_mosaic.cells import canonical_hex


def hex_to_rgb(hex_str: str) -> tuple[int, int, int] | None:
    """Parse '#RRGGBB' (``#`` optional, any case); ``None`` when malformed."""
    h = canonical_hex(hex_str)
    if h is None:
        return None
    return (int(h[1:3], 16), int(h[3:5], 16), int(h[5:7], 16))


def rgb_to_hex(r: int, g: int, b: int) -> str:
    return f"#{int(r):02x}{int(g):02x}{int(b):02x}"


def hexes_to_array(hex_list: Iterable[str]) -> np.ndarray:
    """Stack canonical hex strings into an (N, 3) uint8 array."""
    rows = [hex_to_rgb(h) for h in hex_list]
    if any(r is None for r in rows):
        msg = "hexes_to_array() got a malformed hex colour"
        raise ValueError(msg)
    return np.array(rows, dtype=np.uint8).reshape(-1, 3)


def color_distance(hex1: str, hex2: str) -> float:
    """Redmean-weighted Euclidean distance between two hex colours.

    Red and blue differences are weighted by the mean red level, green
    counts double. Unparseable input yields ``math.inf`` so the candidate
    never wins a comparison.
    """
    a = hex_to_rgb(hex1)
    b = hex_to_rgb(hex2)
    if a is None or b is None:
        return math.inf

    rmean = (a[0] + b[0]) / 2
    dr = a[0] - b[0]
    dg = a[1] - b[1]
    db = a[2] - b[2]
    return math.sqrt(
        (2 + rmean / 256) * dr * dr
        + 4 * dg * dg
        + (2 + (255 - rmean) / 256) * db * db
    )


def compute_cost_matrix(
    target: np.ndarray,
    palette: np.ndarray,
    chunk_size: int = 512,
) -> np.ndarray:
    """Pairwise redmean distance between target pixels and palette colours.

    Args:
        target:  (N, 3) uint8 RGB.
        palette: (K, 3) uint8 RGB.
        chunk_size: Target rows computed per batch (controls peak RAM).

    Returns:
        (N, K) float64 cost matrix; row ``i`` ranks the palette for pixel ``i``.
    """
    t = target.astype(np.float64).reshape(-1, 3)
    p = palette.astype(np.float64).reshape(-1, 3)

    n = len(t)
    cost = np.empty((n, len(p)), dtype=np.float64)
    for i in range(0, n, chunk_size):
        j = min(i + chunk_size, n)
        diff = t[i:j, np.newaxis, :] - p[np.newaxis, :, :]
        rmean = (t[i:j, np.newaxis, 0] + p[np.newaxis, :, 0]) / 2
        cost[i:j] = np.sqrt(
            (2 + rmean / 256) * diff[..., 0] ** 2
            + 4 * diff[..., 1] ** 2
            + (2 + (255 - rmean) / 256) * diff[..., 2] ** 2
        )
    return cost


def hue_degrees(hex_list: list[str]) -> np.ndarray:
    """Hue in [0, 360) for each colour; greys report 0."""
    if not hex_list:
        return np.zeros(0, dtype=np.float64)
    rgb = hexes_to_array(hex_list).astype(np.float64) / 255.0
    return rgb2hsv(rgb.reshape(1, -1, 3)).reshape(-1, 3)[:, 0] * 360.0
