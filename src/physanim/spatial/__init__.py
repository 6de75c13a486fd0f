# MIT License (see LICENSE)
"""
Neighbor-query structures over dynamic point sets.

This subpackage provides:
    - SpatialIndex: Abstract interface (rebuild, query_radius, query_knn,
      pairs_within).
    - UniformGridIndex: Spatial hash grid, O(N) rebuild.
    - KDTreeIndex: Balanced k-d tree (scipy cKDTree), O(N log N) rebuild.
    - BruteForceIndex: O(N) reference implementation.
    - make_index: Build one of the above by name.

Typical usage:
    from physanim.spatial import make_index

    index = make_index("grid", cell_size=1.0)
    index.rebuild(positions)
    for key, d2 in index.query_radius(positions[0], 1.0):
        ...
"""
from ..errors import ConfigurationError
from .index import SpatialIndex, BruteForceIndex
from .grid import UniformGridIndex
from .kdtree import KDTreeIndex

_KINDS = {
    "grid": UniformGridIndex,
    "kdtree": KDTreeIndex,
    "brute": BruteForceIndex,
}


def make_index(kind: str = "grid", **kwargs) -> SpatialIndex:
    """
    Construct a spatial index by name.

    Args:
        kind: "grid", "kdtree" or "brute".
        **kwargs: Forwarded to the index constructor (e.g. cell_size).
    """
    try:
        cls = _KINDS[kind]
    except KeyError:
        raise ConfigurationError(f"Unknown spatial index: {kind!r} (expected one of {sorted(_KINDS)})") from None
    return cls(**kwargs)


__all__ = [
    "SpatialIndex",
    "UniformGridIndex",
    "KDTreeIndex",
    "BruteForceIndex",
    "make_index",
]
