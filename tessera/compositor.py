"""Canvas allocation and tile placement."""

from __future__ import annotations

import logging

import numpy as np

from tessera.errors import CanvasAllocationFailed
from tessera.palette import Palette, Tile
from tessera.sampler import Block, Grid, Region

logger = logging.getLogger(__name__)


def allocate_canvas(grid: Grid, max_pixels: int | None = None) -> np.ndarray:
    """Zeroed (rows*t, cols*t, 3) uint8 canvas for *grid*.

    Raises:
        CanvasAllocationFailed: larger than *max_pixels*, or out of memory.
    """
    width, height = grid.canvas_size
    if max_pixels is not None and width * height > max_pixels:
        raise CanvasAllocationFailed(
            f"output canvas {width}x{height} exceeds the limit of {max_pixels} pixels"
        )
    try:
        canvas = np.zeros((height, width, 3), dtype=np.uint8)
    except (MemoryError, ValueError) as exc:
        raise CanvasAllocationFailed(
            f"cannot allocate a {width}x{height} output canvas: {exc}"
        ) from exc
    logger.debug("Allocated %dx%d canvas (%.1f MB)", width, height, canvas.nbytes / 1e6)
    return canvas


def place(canvas: np.ndarray, block: Block, tile: Tile) -> None:
    """Copy *tile* into the cell at ``(block.row, block.col)``."""
    t = tile.bitmap.shape[0]
    y, x = block.row * t, block.col * t
    canvas[y:y + t, x:x + t] = tile.bitmap


def place_region(
    canvas: np.ndarray,
    region: Region,
    tile_ids: np.ndarray,
    palette: Palette,
) -> None:
    """Write every tile of *region*, touching only that region's sub-view.

    Args:
        canvas: full output canvas.
        region: cells to fill.
        tile_ids: (region rows, region cols) int tile ids.
        palette: source of the bitmaps.
    """
    t = palette.tile_size
    rows, cols = region.shape
    # (rows, cols, t, t, 3) → (rows, t, cols, t, 3) → (rows*t, cols*t, 3)
    tiles = palette.bitmaps[np.asarray(tile_ids).reshape(rows, cols)]
    region.view(canvas, t)[...] = tiles.transpose(0, 2, 1, 3, 4).reshape(rows * t, cols * t, 3)
