"""End-to-end mosaic rendering: palette → canvas → sample → match → place → save."""

from __future__ import annotations

import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import numpy as np

from tessera.color_utils import to_color_space
from tessera.compositor import allocate_canvas, place_region
from tessera.config import MosaicConfig
from tessera.dithering import diffuse_errors
from tessera.image_io import load_rgb, output_format, save_canvas
from tessera.matcher import ColorMatcher
from tessera.palette import Palette, load_palette
from tessera.sampler import Grid, Region, sample_region

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class MosaicResult:
    canvas: np.ndarray  # (rows*t, cols*t, 3) uint8, read-only
    grid: Grid
    tile_ids: np.ndarray  # (rows, cols) int64
    palette: Palette


def _worker_count(workers: int | None) -> int:
    return workers if workers is not None else (os.cpu_count() or 1)


def render_mosaic(
    source: np.ndarray,
    palette: Palette,
    dither: bool = False,
    workers: int | None = None,
    max_canvas_pixels: int | None = None,
) -> MosaicResult:
    """Render *source* with the tiles of *palette*.

    The grid is cut into row bands; each band is sampled, matched and
    placed by one worker that writes only its own rectangle of the canvas.

    Args:
        source: (H, W, 3) uint8 RGB.
        palette: tiles to draw with; its tile size and colour space apply.
        dither: diffuse matching error between neighbouring blocks.
        workers: thread pool size (None = one per CPU).
        max_canvas_pixels: refuse larger outputs.

    Raises:
        CanvasAllocationFailed: before any sampling work starts.
    """
    h, w = source.shape[:2]
    grid = Grid.for_image(w, h, palette.tile_size)
    canvas = allocate_canvas(grid, max_canvas_pixels)
    matcher = ColorMatcher(palette.index)
    n_workers = _worker_count(workers)
    regions = grid.bands(n_workers)
    t = grid.tile_size

    def sample_band(region: Region) -> np.ndarray:
        # Convert only this band's pixels; the band then starts at row 0.
        ys, _ = region.pixel_slices(t)
        band = to_color_space(source[ys], palette.color_space)
        return sample_region(band, grid, Region(0, region.shape[0], 0, grid.cols))

    logger.info(
        "Rendering %dx%d grid of %dpx tiles (%d bands, %d workers) …",
        grid.cols, grid.rows, t, len(regions), n_workers,
    )
    t0 = time.perf_counter()
    with ThreadPoolExecutor(max_workers=n_workers) as pool:
        band_colors = list(pool.map(sample_band, regions))

        if dither:
            ids = diffuse_errors(np.concatenate(band_colors), matcher, palette.colors)
            band_ids = [ids[r.row_start:r.row_stop] for r in regions]
        else:
            band_ids = list(pool.map(matcher.match_many, band_colors))

        list(pool.map(
            lambda job: place_region(canvas, job[0], job[1], palette),
            zip(regions, band_ids, strict=True),
        ))

    canvas.flags.writeable = False
    tile_ids = np.concatenate(band_ids)
    logger.info(
        "Placed %d tiles, %d distinct  (%.1f s)",
        tile_ids.size, len(np.unique(tile_ids)), time.perf_counter() - t0,
    )
    return MosaicResult(canvas=canvas, grid=grid, tile_ids=tile_ids, palette=palette)


def run(cfg: MosaicConfig) -> MosaicResult:
    """Build the palette, render the input and write the output file.

    Nothing is written unless every stage succeeds.
    """
    # Reject an unwritable format before doing any work.
    output_format(cfg.output_path)

    palette = load_palette(
        cfg.palette_dir,
        cfg.tile_size,
        color_space=cfg.color_space,
        extensions=cfg.SUPPORTED_EXTENSIONS,
        workers=cfg.workers,
    )

    source = load_rgb(cfg.input_path)
    logger.info("Input: %dx%d  (%s)", source.shape[1], source.shape[0], cfg.input_path)

    result = render_mosaic(
        source,
        palette,
        dither=cfg.dither,
        workers=cfg.workers,
        max_canvas_pixels=cfg.max_canvas_pixels,
    )

    t0 = time.perf_counter()
    save_canvas(result.canvas, cfg.output_path)
    logger.info("Saved %s  (%.1f s)", cfg.output_path, time.perf_counter() - t0)
    return result
