# MIT License (see LICENSE)
"""
Neighbor-query interface shared by flocking and mesh self-collision.

A SpatialIndex holds a snapshot of N point positions plus one key per point
that maps back to the owning entity (normally the entity's index in its
simulation's storage). The index never owns the entities themselves.

Lifecycle:
    index.rebuild(positions, keys)      # once per frame
    index.query_radius(p, r)            # many times, read-only
    index.query_knn(p, k)

Queries return lazy iterators of (key, squared_distance) pairs:
- query_radius: every point with |x - p| <= r, in no particular order.
- query_knn: the k nearest points, ordered by increasing distance.
An empty index yields nothing.

BruteForceIndex is the O(N) reference implementation the faster indexes
are checked against.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Iterator, Sequence

import numpy as np

from ..errors import ConfigurationError
from ..util import f64, require_non_negative


Neighbor = tuple[Any, float]


class SpatialIndex(ABC):
    """
    Abstract base class for point neighbor queries.

    Subclasses build their acceleration structure in ``_build`` and answer
    queries in terms of row indices; key translation and validation live
    here.
    """

    def __init__(self) -> None:
        self._points = np.zeros((0, 3), dtype=np.float64)
        self._keys: Sequence[Any] | None = None

    def rebuild(self, points: np.ndarray, keys: Sequence[Any] | None = None) -> None:
        """
        Replace the indexed snapshot.

        Args:
            points: Positions (N, 3). Copied, so later mutation by the
                    caller does not affect queries.
            keys: One back-reference per point; defaults to the row index.
        """
        pts = f64(points).reshape(-1, 3)
        if keys is not None and len(keys) != len(pts):
            raise ConfigurationError(f"Got {len(keys)} keys for {len(pts)} points")
        self._points = pts
        self._keys = keys
        self._build(pts)

    def __len__(self) -> int:
        return len(self._points)

    @property
    def points(self) -> np.ndarray:
        return self._points

    def key(self, row: int) -> Any:
        """Back-reference of the point stored at row."""
        return row if self._keys is None else self._keys[row]

    def query_radius(self, point, radius: float) -> Iterator[Neighbor]:
        """Yield (key, squared_distance) for every point within radius (inclusive)."""
        radius = require_non_negative("query radius", radius)
        if len(self) == 0:
            return iter(())
        p = f64(point)
        return ((self.key(row), d2) for row, d2 in self._radius_rows(p, radius))

    def query_knn(self, point, k: int) -> Iterator[Neighbor]:
        """Yield (key, squared_distance) for the k nearest points, closest first."""
        if k < 0:
            raise ConfigurationError(f"k must be >= 0, got {k}")
        k = min(int(k), len(self))
        if k == 0:
            return iter(())
        p = f64(point)
        return ((self.key(row), d2) for row, d2 in self._knn_rows(p, k))

    def pairs_within(self, radius: float) -> Iterator[tuple[Any, Any, float]]:
        """
        Yield each unordered pair of points closer than radius once.

        Items are (key_a, key_b, squared_distance) with row(a) < row(b).
        """
        radius = require_non_negative("pair radius", radius)
        if len(self) < 2:
            return iter(())
        return (
            (self.key(a), self.key(b), d2) for a, b, d2 in self._pair_rows(radius)
        )

    def _pair_rows(self, radius: float) -> Iterator[tuple[int, int, float]]:
        # Generic fallback: one radius query per point
        for a in range(len(self)):
            for b, d2 in self._radius_rows(self._points[a], radius):
                if b > a:
                    yield a, b, d2

    def _sq_dist(self, rows: np.ndarray, p: np.ndarray) -> np.ndarray:
        d = self._points[rows] - p
        return np.einsum("ij,ij->i", d, d)

    @abstractmethod
    def _build(self, points: np.ndarray) -> None:
        """Build the acceleration structure for the given (N, 3) points."""

    @abstractmethod
    def _radius_rows(self, p: np.ndarray, radius: float) -> Iterator[tuple[int, float]]:
        """Yield (row, squared_distance) within radius of p."""

    @abstractmethod
    def _knn_rows(self, p: np.ndarray, k: int) -> Iterator[tuple[int, float]]:
        """Yield the k nearest (row, squared_distance), closest first."""


class BruteForceIndex(SpatialIndex):
    """Exhaustive O(N) queries. Reference implementation and tiny-N fallback."""

    def _build(self, points: np.ndarray) -> None:
        pass

    def _radius_rows(self, p: np.ndarray, radius: float) -> Iterator[tuple[int, float]]:
        d2 = self._sq_dist(np.arange(len(self)), p)
        for row in np.nonzero(d2 <= radius * radius)[0]:
            yield int(row), float(d2[row])

    def _knn_rows(self, p: np.ndarray, k: int) -> Iterator[tuple[int, float]]:
        d2 = self._sq_dist(np.arange(len(self)), p)
        # Stable sort so equidistant points come out in row order
        for row in np.argsort(d2, kind="stable")[:k]:
            yield int(row), float(d2[row])
