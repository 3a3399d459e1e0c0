"""Image decoding, import sizing, raster sampling, and layout previews."""

from __future__ import annotations

import io
import math
from pathlib import Path

import numpy as np
from PIL import Image

from tile_mosaic.cells import CLEAR, Cell
from tile_mosaic.color_utils import hex_to_rgb, rgb_to_hex

ALPHA_THRESHOLD = 128

RESERVED_RGBA = (192, 192, 192, 255)
CLEAR_RGBA = (0, 0, 0, 0)

ImageSource = str | Path | bytes | Image.Image


def compute_target_size(
    original_width: int,
    original_height: int,
    max_side: int,
) -> tuple[int, int]:
    """Compute downscaled (w, h) preserving aspect ratio.

    The longest side becomes *max_side*; the other is scaled
    proportionally (rounded to the nearest integer, minimum 1).
    """
    if original_width >= original_height:
        w = max_side
        h = max(1, round(original_height * max_side / original_width))
    else:
        h = max_side
        w = max(1, round(original_width * max_side / original_height))
    return w, h


def compute_supply_size(
    original_width: int,
    original_height: int,
    total_supply: int,
    fill_ratio: float = 0.85,
    min_side: int = 10,
) -> tuple[int, int] | None:
    """Grid (rows, cols) that keeps the image aspect and uses ~*fill_ratio* of the supply.

    Returns ``None`` when there is no finite supply to size against.
    """
    if total_supply <= 0 or original_width <= 0 or original_height <= 0:
        return None
    cells = total_supply * fill_ratio
    aspect = original_width / original_height
    cols = max(min_side, round(math.sqrt(cells * aspect)))
    rows = max(min_side, round(math.sqrt(cells / aspect)))
    return rows, cols


def load_image(source: ImageSource) -> Image.Image:
    """Decode ``source`` (path, raw bytes, or an open image) to RGBA."""
    if isinstance(source, Image.Image):
        img = source
    elif isinstance(source, bytes):
        img = Image.open(io.BytesIO(source))
    else:
        img = Image.open(source)
    img.load()
    return img.convert("RGBA")


def sample_raster(
    img: Image.Image,
    rows: int,
    cols: int,
    alpha_threshold: int = ALPHA_THRESHOLD,
) -> np.ndarray:
    """Resample to exactly rows x cols and convert pixels to cells.

    Returns:
        (rows, cols) object array; pixels with alpha below
        *alpha_threshold* are Clear, the rest colour cells.
    """
    small = img.convert("RGBA").resize((cols, rows), Image.LANCZOS)
    pixels = np.array(small, dtype=np.uint8)

    raster = np.empty((rows, cols), dtype=object)
    for r in range(rows):
        for c in range(cols):
            red, green, blue, alpha = pixels[r, c]
            if alpha < alpha_threshold:
                raster[r, c] = CLEAR
            else:
                raster[r, c] = Cell.color(rgb_to_hex(red, green, blue))
    return raster


def cells_to_rgba(cells: np.ndarray) -> np.ndarray:
    """(H, W) cells -> (H, W, 4) uint8; Clear is transparent, Reserved silver."""
    h, w = cells.shape
    out = np.zeros((h, w, 4), dtype=np.uint8)
    for r in range(h):
        for c in range(w):
            cell = cells[r, c]
            if cell.is_color:
                out[r, c] = (*hex_to_rgb(cell.hex), 255)
            elif cell.is_reserved:
                out[r, c] = RESERVED_RGBA
            else:
                out[r, c] = CLEAR_RGBA
    return out


def save_layout(
    cells: np.ndarray,
    path: str | Path,
    pixel_upscale: int = 12,
) -> None:
    """Save a grid as a nearest-neighbour-upscaled image."""
    img = Image.fromarray(cells_to_rgba(cells))
    h, w = cells.shape
    img = img.resize((w * pixel_upscale, h * pixel_upscale), Image.NEAREST)
    img.save(path)
