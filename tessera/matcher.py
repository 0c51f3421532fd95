"""Resolve block colours to palette tile ids."""

from __future__ import annotations

import numpy as np

from tessera.color_utils import Color
from tessera.search import SearchIndex


class ColorMatcher:
    """Nearest-tile lookup backed by a palette's :class:`SearchIndex`.

    Holds no mutable state, so one instance may serve many threads.
    """

    def __init__(self, index: SearchIndex) -> None:
        self._index = index

    @property
    def index(self) -> SearchIndex:
        return self._index

    def match(self, color: Color | np.ndarray) -> int:
        """Id of the tile closest to *color* (smallest id on exact ties)."""
        return self._index.nearest(color)

    def match_many(self, colors: np.ndarray) -> np.ndarray:
        """Match an array of colours.

        Identical colours are looked up once per call; large flat areas of
        the source collapse to a handful of queries.

        Args:
            colors: (..., 3) float64.

        Returns:
            (...) int64 tile ids.
        """
        colors = np.asarray(colors, dtype=np.float64)
        lead = colors.shape[:-1]
        flat = colors.reshape(-1, 3)
        if len(flat) == 0:
            return np.empty(lead, dtype=np.int64)
        unique, inverse = np.unique(flat, axis=0, return_inverse=True)
        ids = self._index.nearest_many(unique)
        return ids[inverse.reshape(-1)].reshape(lead)
