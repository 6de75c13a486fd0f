# MIT License (see LICENSE)
"""
Uniform hash grid for neighbor queries.

This module partitions space into cubic cells of uniform size. Each point
is hashed into the one cell containing it; a radius query visits only the
cells overlapped by the query sphere's bounding box, so with a cell size
close to the typical query radius a query touches 27 cells regardless of N.

Key concepts:
- Spatial hashing: O(1) expected cell lookup, O(N) rebuild.
- Cell coordinates are floor(p / cell_size) on each axis.
- Cells are stored in a dict, so unbounded / sparse worlds cost nothing.
"""
from __future__ import annotations
from collections import defaultdict
import heapq
from typing import Iterator

import numpy as np

from ..util import require_positive
from .index import SpatialIndex


Cell = tuple[int, int, int]


class UniformGridIndex(SpatialIndex):
    """
    Spatial hash grid over a point snapshot.

    Attributes:
        cell: The size of each grid cell in world units.

    Example:
        grid = UniformGridIndex(cell_size=2.0)
        grid.rebuild(positions)
        for row, d2 in grid.query_radius(positions[0], 2.0):
            ...
    """

    def __init__(self, cell_size: float = 1.0) -> None:
        """
        Initialize the spatial hash grid.

        Args:
            cell_size: Size of each grid cell in world units. Larger cells
                       reduce hashing cost but increase false candidates.
        """
        super().__init__()
        self.cell = require_positive("cell_size", cell_size)
        self._grid: dict[Cell, list[int]] = {}
        self._cells = np.zeros((0, 3), dtype=np.int64)
        # Occupied cell range, bounds the ring search
        self._lo = np.zeros(3, dtype=np.int64)
        self._hi = np.zeros(3, dtype=np.int64)

    def _cell_of(self, p: np.ndarray) -> Cell:
        c = np.floor(p / self.cell).astype(np.int64)
        return int(c[0]), int(c[1]), int(c[2])

    def _cells_for_box(self, lo: np.ndarray, hi: np.ndarray) -> Iterator[Cell]:
        """
        Yield all grid cell coordinates that overlap with an AABB.

        Args:
            lo, hi: Min and max corners of the box.

        Yields:
            (ix, iy, iz) integer cell coordinates.
        """
        ix0, iy0, iz0 = self._cell_of(lo)
        ix1, iy1, iz1 = self._cell_of(hi)
        for ix in range(ix0, ix1 + 1):
            for iy in range(iy0, iy1 + 1):
                for iz in range(iz0, iz1 + 1):
                    yield (ix, iy, iz)

    def _build(self, points: np.ndarray) -> None:
        grid: dict[Cell, list[int]] = defaultdict(list)
        self._cells = np.floor(points / self.cell).astype(np.int64)
        for row, c in enumerate(self._cells):
            grid[(int(c[0]), int(c[1]), int(c[2]))].append(row)
        self._grid = dict(grid)
        if len(self._cells):
            self._lo = self._cells.min(axis=0)
            self._hi = self._cells.max(axis=0)
        else:
            self._lo = np.zeros(3, dtype=np.int64)
            self._hi = np.zeros(3, dtype=np.int64)

    def _candidates(self, p: np.ndarray, radius: float) -> Iterator[int]:
        # A huge radius would enumerate more empty cells than there are
        # points; fall back to scanning occupied cells in that case.
        span = int(np.ceil(2.0 * radius / self.cell)) + 1
        if span ** 3 > 2 * len(self._grid):
            for rows in self._grid.values():
                yield from rows
            return
        for c in self._cells_for_box(p - radius, p + radius):
            rows = self._grid.get(c)
            if rows:
                yield from rows

    def _radius_rows(self, p: np.ndarray, radius: float) -> Iterator[tuple[int, float]]:
        r2 = radius * radius
        rows = np.fromiter(self._candidates(p, radius), dtype=np.int64)
        if len(rows) == 0:
            return
        d2 = self._sq_dist(rows, p)
        for row, dist2 in zip(rows[d2 <= r2], d2[d2 <= r2]):
            yield int(row), float(dist2)

    def _knn_rows(self, p: np.ndarray, k: int) -> Iterator[tuple[int, float]]:
        """
        Grow a search shell ring by ring until k candidates are confirmed.

        After scanning all cells within Chebyshev ring n of the query cell,
        any point not yet seen is at least n * cell away, so candidates
        closer than that are final.
        """
        center = np.array(self._cell_of(p), dtype=np.int64)
        seen: list[tuple[float, int]] = []
        max_ring = int(max(np.max(center - self._lo), np.max(self._hi - center), 0))
        # Rings closer than the occupied block are empty
        ring = int(max(np.max(self._lo - center), np.max(center - self._hi), 0))
        while True:
            for rows in self._ring_rows(center, ring):
                d2 = self._sq_dist(np.asarray(rows, dtype=np.int64), p)
                seen.extend(zip(d2.tolist(), rows))
            safe = ring * self.cell
            confirmed = sum(1 for d2, _ in seen if d2 <= safe * safe)
            if confirmed >= k or ring >= max_ring:
                break
            ring += 1
        # Ties broken by row so results match the brute-force order
        for d2, row in heapq.nsmallest(k, seen, key=lambda item: (item[0], item[1])):
            yield int(row), float(d2)

    def _ring_rows(self, center: np.ndarray, ring: int) -> Iterator[list[int]]:
        """
        Yield the row lists of occupied cells exactly ``ring`` cells from center.

        Only the cells of the shell are looked up; a shell with more cells
        than the grid has occupied cells is found by scanning those instead.
        """
        cx, cy, cz = int(center[0]), int(center[1]), int(center[2])
        if ring == 0:
            rows = self._grid.get((cx, cy, cz))
            if rows:
                yield rows
            return
        shell = (2 * ring + 1) ** 3 - (2 * ring - 1) ** 3
        if shell > len(self._grid):
            for c, rows in self._grid.items():
                if max(abs(c[0] - cx), abs(c[1] - cy), abs(c[2] - cz)) == ring:
                    yield rows
            return
        full = range(-ring, ring + 1)
        for dx in full:
            for dy in full:
                # Interior columns only touch the shell at their two ends
                dzs = full if abs(dx) == ring or abs(dy) == ring else (-ring, ring)
                for dz in dzs:
                    rows = self._grid.get((cx + dx, cy + dy, cz + dz))
                    if rows:
                        yield rows

    def _pair_rows(self, radius: float) -> Iterator[tuple[int, int, float]]:
        """
        All pairs within radius, visiting each pair of neighboring cells once.

        Uses the half-neighborhood trick: a cell is paired with itself and
        with the neighbor cells that compare greater, so no pair is
        produced twice.
        """
        reach = int(np.ceil(radius / self.cell))
        r2 = radius * radius
        offsets = [
            (dx, dy, dz)
            for dx in range(-reach, reach + 1)
            for dy in range(-reach, reach + 1)
            for dz in range(-reach, reach + 1)
            if (dx, dy, dz) > (0, 0, 0)
        ]
        for c, rows in self._grid.items():
            a = np.asarray(rows, dtype=np.int64)
            # Same cell
            for n, ra in enumerate(a):
                if n + 1 < len(a):
                    rest = a[n + 1:]
                    d2 = self._sq_dist(rest, self._points[ra])
                    for rb, dist2 in zip(rest[d2 <= r2], d2[d2 <= r2]):
                        yield (int(min(ra, rb)), int(max(ra, rb)), float(dist2))
            # Forward neighbors
            for dx, dy, dz in offsets:
                other = self._grid.get((c[0] + dx, c[1] + dy, c[2] + dz))
                if not other:
                    continue
                b = np.asarray(other, dtype=np.int64)
                for ra in a:
                    d2 = self._sq_dist(b, self._points[ra])
                    for rb, dist2 in zip(b[d2 <= r2], d2[d2 <= r2]):
                        yield (int(min(ra, rb)), int(max(ra, rb)), float(dist2))
