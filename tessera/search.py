"""Immutable k-d tree over palette colours with deterministic tie-breaking."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy.spatial import cKDTree

from tessera.color_utils import Color, squared_distances

# Neighbours fetched per query before exact re-ranking.
CANDIDATES = 4


@dataclass(frozen=True, eq=False)
class SearchIndex:
    """Nearest-colour lookup over ``(color, id)`` pairs, where id = row index.

    Built once from a finalised colour matrix and never mutated; a rebuild
    produces a new instance. Queries only read, so any number of threads may
    share one index.
    """

    colors: np.ndarray
    tree: cKDTree

    @classmethod
    def from_colors(cls, colors: np.ndarray) -> SearchIndex:
        colors = np.array(colors, dtype=np.float64).reshape(-1, 3)
        if len(colors) == 0:
            raise ValueError("SearchIndex needs at least one colour")
        colors.flags.writeable = False
        # balanced_tree splits at the median, keeping depth ~ log2(N).
        tree = cKDTree(colors, balanced_tree=True, compact_nodes=True)
        return cls(colors=colors, tree=tree)

    def __len__(self) -> int:
        return len(self.colors)

    def nearest(self, color: Color | np.ndarray) -> int:
        """Id of the closest colour; exact ties go to the smallest id."""
        return int(self.nearest_many(np.asarray(color, dtype=np.float64).reshape(1, 3))[0])

    def nearest_many(self, queries: np.ndarray) -> np.ndarray:
        """Vectorised :meth:`nearest` for an (M, 3) array; returns (M,) int64."""
        queries = np.asarray(queries, dtype=np.float64).reshape(-1, 3)
        n = len(self.colors)
        if len(queries) == 0:
            return np.empty(0, dtype=np.int64)

        k = min(CANDIDATES, n)
        _, idx = self.tree.query(queries, k=k)
        idx = np.asarray(idx, dtype=np.int64).reshape(len(queries), k)

        # Re-rank with the exact metric so traversal order cannot decide ties.
        d2 = squared_distances(self.colors[idx], queries[:, np.newaxis, :])
        best = d2.min(axis=1)
        tied = d2 == best[:, np.newaxis]
        result = np.where(tied, idx, n).min(axis=1)

        # Every candidate tied: more equidistant tiles may lie beyond k.
        if k < n:
            for row in np.flatnonzero(tied.all(axis=1)):
                result[row] = self._smallest_tied(queries[row], best[row])
        return result

    def _smallest_tied(self, query: np.ndarray, best_d2: float) -> int:
        radius = float(np.sqrt(best_d2))
        members = self.tree.query_ball_point(query, r=radius * (1 + 1e-9) + 1e-12)
        members = np.asarray(members, dtype=np.int64)
        d2 = squared_distances(self.colors[members], query)
        return int(members[d2 == d2.min()].min())
