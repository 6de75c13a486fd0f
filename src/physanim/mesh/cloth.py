# MIT License (see LICENSE)
"""
Rectangular cloth builder.

Lays out a rows x cols grid of mass points in the x-y plane, centered on
``position``, with row 0 at the top. Struts:
    - TENSILE: horizontal and vertical neighbors
    - SHEAR: both diagonals of every grid cell
    - BEND: points two apart along a row or a column
Every cell is split into two triangles for aerodynamics and rendering.

Counts for R rows and C cols:
    tensile  R(C-1) + C(R-1)
    shear    2(R-1)(C-1)
    bend     R·max(C-2, 0) + C·max(R-2, 0)
    faces    2(R-1)(C-1)
"""
from __future__ import annotations
from typing import Iterable

import numpy as np

from ..errors import ConfigurationError
from ..profiler import Profiler
from ..util import require_positive, vec3
from .springy import DeformableMesh, MassPoint, MeshConfig, Strut, StrutKind


def cloth_index(row: int, col: int, cols: int) -> int:
    """Point index of grid cell (row, col)."""
    return row * cols + col


def make_cloth(
    rows: int,
    cols: int,
    spacing: float,
    position=(0.0, 0.0, 0.0),
    point_mass: float = 0.1,
    pinned: Iterable[int] | str | None = "top_corners",
    config: MeshConfig | None = None,
    profiler: Profiler | None = None,
) -> DeformableMesh:
    """
    Build a hanging cloth.

    Args:
        rows, cols: Number of points along each side (>= 2).
        spacing: Rest distance between neighboring points (> 0).
        position: Center of the cloth.
        point_mass: Mass of each point.
        pinned: Point indices to pin, or "top_corners" / "top_row", or None.
        config: Mesh parameters (stiffness per strut kind, wind, ...).

    Returns:
        The DeformableMesh.
    """
    rows, cols = int(rows), int(cols)
    if rows < 2 or cols < 2:
        raise ConfigurationError(f"Cloth needs at least 2x2 points, got {rows}x{cols}")
    spacing = require_positive("Cloth spacing", spacing)
    config = config if config is not None else MeshConfig()
    center = vec3(position)

    def idx(r: int, c: int) -> int:
        return cloth_index(r, c, cols)

    width, height = (cols - 1) * spacing, (rows - 1) * spacing
    top_left = center + np.array([-0.5 * width, 0.5 * height, 0.0])

    pins = _resolve_pins(pinned, rows, cols)
    points = [
        MassPoint(
            top_left + np.array([c * spacing, -r * spacing, 0.0]),
            mass=point_mass,
            pinned=idx(r, c) in pins,
        )
        for r in range(rows)
        for c in range(cols)
    ]

    diag = spacing * np.sqrt(2.0)
    struts: list[Strut] = []
    faces: list[tuple[int, int, int]] = []
    for r in range(rows):
        for c in range(cols):
            i = idx(r, c)
            if c + 1 < cols:
                struts.append(config.make_strut(i, idx(r, c + 1), spacing, StrutKind.TENSILE))
            if r + 1 < rows:
                struts.append(config.make_strut(i, idx(r + 1, c), spacing, StrutKind.TENSILE))
            if c + 2 < cols:
                struts.append(config.make_strut(i, idx(r, c + 2), 2.0 * spacing, StrutKind.BEND))
            if r + 2 < rows:
                struts.append(config.make_strut(i, idx(r + 2, c), 2.0 * spacing, StrutKind.BEND))
            if r + 1 < rows and c + 1 < cols:
                struts.append(config.make_strut(i, idx(r + 1, c + 1), diag, StrutKind.SHEAR))
                struts.append(config.make_strut(idx(r, c + 1), idx(r + 1, c), diag, StrutKind.SHEAR))
                # Counter-clockwise seen from +z
                faces.append((i, idx(r + 1, c), idx(r, c + 1)))
                faces.append((idx(r, c + 1), idx(r + 1, c), idx(r + 1, c + 1)))

    return DeformableMesh(points, struts, faces=faces, config=config, profiler=profiler)


def _resolve_pins(pinned: Iterable[int] | str | None, rows: int, cols: int) -> set[int]:
    if pinned is None:
        return set()
    if isinstance(pinned, str):
        if pinned == "top_corners":
            return {0, cols - 1}
        if pinned == "top_row":
            return set(range(cols))
        raise ConfigurationError(f"Unknown pin preset: {pinned!r} (expected 'top_corners' or 'top_row')")
    out = set(int(i) for i in pinned)
    bad = [i for i in out if not 0 <= i < rows * cols]
    if bad:
        raise ConfigurationError(f"Pinned indices out of range: {sorted(bad)}")
    return out
