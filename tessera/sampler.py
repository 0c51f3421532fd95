"""Tile-aligned block grid over the source image and per-block mean colours."""

from __future__ import annotations

import math
from collections.abc import Iterator
from dataclasses import dataclass

import numpy as np

from tessera.color_utils import Color, mean_color


@dataclass(frozen=True)
class Region:
    """Rectangle of grid cells ``[row_start, row_stop) x [col_start, col_stop)``."""

    row_start: int
    row_stop: int
    col_start: int
    col_stop: int

    @property
    def shape(self) -> tuple[int, int]:
        return self.row_stop - self.row_start, self.col_stop - self.col_start

    def pixel_slices(self, tile_size: int) -> tuple[slice, slice]:
        """(y, x) slices of the canvas this region covers."""
        return (
            slice(self.row_start * tile_size, self.row_stop * tile_size),
            slice(self.col_start * tile_size, self.col_stop * tile_size),
        )

    def view(self, canvas: np.ndarray, tile_size: int) -> np.ndarray:
        """Writable sub-view of *canvas* owned by this region."""
        ys, xs = self.pixel_slices(tile_size)
        return canvas[ys, xs]


@dataclass(frozen=True)
class Block:
    row: int
    col: int
    color: Color


@dataclass(frozen=True)
class Grid:
    cols: int
    rows: int
    tile_size: int

    @classmethod
    def for_image(cls, width: int, height: int, tile_size: int) -> Grid:
        """Grid covering a *width* x *height* image; partial edge cells count."""
        if tile_size < 1:
            raise ValueError(f"tile_size must be positive, got {tile_size}")
        if width < 1 or height < 1:
            raise ValueError(f"image must be at least 1x1, got {width}x{height}")
        return cls(
            cols=math.ceil(width / tile_size),
            rows=math.ceil(height / tile_size),
            tile_size=tile_size,
        )

    @property
    def canvas_size(self) -> tuple[int, int]:
        """Output (width, height); always a multiple of the tile size."""
        return self.cols * self.tile_size, self.rows * self.tile_size

    @property
    def full(self) -> Region:
        return Region(0, self.rows, 0, self.cols)

    def bands(self, count: int) -> list[Region]:
        """Split the grid into at most *count* non-overlapping full-width row bands."""
        count = max(1, min(count, self.rows))
        edges = np.linspace(0, self.rows, count + 1).round().astype(int)
        return [
            Region(int(a), int(b), 0, self.cols)
            for a, b in zip(edges[:-1], edges[1:], strict=True)
            if b > a
        ]


def sample_region(space_image: np.ndarray, grid: Grid, region: Region) -> np.ndarray:
    """Mean colour of every cell in *region*.

    Edge cells average only the pixels inside the image.

    Args:
        space_image: (H, W, 3) float64 source already in the comparison space.
        grid: grid built for this image.
        region: cells to sample.

    Returns:
        (region rows, region cols, 3) float64.
    """
    t = grid.tile_size
    h, w = space_image.shape[:2]
    y0, x0 = region.row_start * t, region.col_start * t
    y1, x1 = min(region.row_stop * t, h), min(region.col_stop * t, w)
    patch = space_image[y0:y1, x0:x1]

    ys = np.arange(0, y1 - y0, t)
    xs = np.arange(0, x1 - x0, t)
    sums = np.add.reduceat(np.add.reduceat(patch, ys, axis=0), xs, axis=1)
    heights = np.diff(np.append(ys, y1 - y0))
    widths = np.diff(np.append(xs, x1 - x0))
    counts = np.outer(heights, widths)[..., np.newaxis]
    return sums / counts


def sample_grid(space_image: np.ndarray, grid: Grid) -> np.ndarray:
    """(rows, cols, 3) mean colours for the whole grid."""
    return sample_region(space_image, grid, grid.full)


def iter_blocks(space_image: np.ndarray, grid: Grid) -> Iterator[Block]:
    """Lazily yield one :class:`Block` per cell in row-major order."""
    t = grid.tile_size
    for r in range(grid.rows):
        for c in range(grid.cols):
            cell = space_image[r * t:(r + 1) * t, c * t:(c + 1) * t]
            yield Block(r, c, mean_color(cell))
