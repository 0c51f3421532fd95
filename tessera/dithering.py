"""Floyd-Steinberg error diffusion across the block grid.

Without dithering every block takes the tile nearest its own colour, so a
smooth gradient that falls between two palette colours collapses into a
flat band. Here the quantisation error of each block (its colour minus the
chosen tile's colour) is pushed onto its unvisited neighbours before they
are matched, so neighbouring tiles alternate and average out to the
gradient when viewed from afar.

The scan is row-major and sequential, so the result is deterministic but
blocks are no longer independent units of work.
"""

from __future__ import annotations

import numpy as np

from tessera.matcher import ColorMatcher


def diffuse_errors(
    colors: np.ndarray,
    matcher: ColorMatcher,
    palette_colors: np.ndarray,
) -> np.ndarray:
    """Match every block, diffusing the error to the right and below.

    Args:
        colors:  (rows, cols, 3) float64 block colours in the comparison space.
        matcher: matcher over the palette.
        palette_colors: (N, 3) tile colours, row = tile id.

    Returns:
        (rows, cols) int64 tile ids.
    """
    h, w = colors.shape[:2]
    work = np.array(colors, dtype=np.float64)
    ids = np.empty((h, w), dtype=np.int64)

    for y in range(h):
        for x in range(w):
            desired = work[y, x]
            tile_id = matcher.match(desired)
            ids[y, x] = tile_id
            quant_err = desired - palette_colors[tile_id]

            if x + 1 < w:
                work[y, x + 1] += quant_err * 7 / 16
            if y + 1 < h:
                if x - 1 >= 0:
                    work[y + 1, x - 1] += quant_err * 3 / 16
                work[y + 1, x] += quant_err * 5 / 16
                if x + 1 < w:
                    work[y + 1, x + 1] += quant_err * 1 / 16

    return ids
