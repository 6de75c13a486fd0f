# MIT License (see LICENSE)
"""
Balanced k-d tree index backed by scipy.spatial.cKDTree.

cKDTree builds a balanced tree on construction in O(N log N) and answers
radius and k-nearest queries in O(log N + m). Rebuilding every frame is
cheap compared with the force computation that follows it.
"""
from __future__ import annotations
from typing import Iterator

import numpy as np
from scipy.spatial import cKDTree

from .index import SpatialIndex


class KDTreeIndex(SpatialIndex):
    """
    k-d tree over a point snapshot.

    Args:
        leafsize: Points per leaf before the tree stops splitting; passed
                  straight to cKDTree.
    """

    def __init__(self, leafsize: int = 16) -> None:
        super().__init__()
        self.leafsize = int(leafsize)
        self._tree: cKDTree | None = None

    def _build(self, points: np.ndarray) -> None:
        self._tree = cKDTree(points, leafsize=self.leafsize) if len(points) else None

    def _radius_rows(self, p: np.ndarray, radius: float) -> Iterator[tuple[int, float]]:
        # Query slightly wide, then apply the exact inclusive test so results
        # match the other indexes bit for bit at the boundary.
        rows = np.asarray(self._tree.query_ball_point(p, radius * (1.0 + 1e-12) + 1e-15), dtype=np.int64)
        if len(rows) == 0:
            return
        d2 = self._sq_dist(rows, p)
        keep = d2 <= radius * radius
        for row, dist2 in zip(rows[keep], d2[keep]):
            yield int(row), float(dist2)

    def _knn_rows(self, p: np.ndarray, k: int) -> Iterator[tuple[int, float]]:
        dist, rows = self._tree.query(p, k=k)
        for d, row in zip(np.atleast_1d(dist), np.atleast_1d(rows)):
            yield int(row), float(d * d)

    def _pair_rows(self, radius: float) -> Iterator[tuple[int, int, float]]:
        pairs = self._tree.query_pairs(radius, output_type="ndarray")
        if len(pairs) == 0:
            return
        d = self._points[pairs[:, 0]] - self._points[pairs[:, 1]]
        d2 = np.einsum("ij,ij->i", d, d)
        keep = d2 <= radius * radius
        for (a, b), dist2 in zip(pairs[keep], d2[keep]):
            yield int(min(a, b)), int(max(a, b)), float(dist2)
