# MIT License (see LICENSE)
"""
Shared geometric and field types.

Defines the environment primitives every simulation can collide with or be
influenced by:
- Plane, Sphere, TriangleMesh: static or moving collision primitives
- PointAttractor: attracting / repelling point field
- BoundingBox: axis-aligned box for culling and soft containment

Primitives are immutable; a driver moves a dynamic primitive by replacing it
(``dataclasses.replace``) between frames. Their ``velocity`` is used only to
compute the relative velocity during collision response.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from .constants import FIELD_SOFTENING, GEOMETRY_EPSILON
from .errors import ConfigurationError
from .materials import Material
from .util import f64, vec3, unit, require_non_negative, require_positive


# =============================================================================
# Collision primitives
# =============================================================================

@dataclass(frozen=True)
class Plane:
    """
    Infinite plane; the solid side is opposite the normal.

    Attributes:
        point: Any point on the plane.
        normal: Outward normal (normalized on init).
        velocity: Velocity of the plane for moving-surface response.
        material: Restitution / friction used for contacts with this plane.
    """
    point: np.ndarray | tuple[float, float, float] = (0.0, 0.0, 0.0)
    normal: np.ndarray | tuple[float, float, float] = (0.0, 1.0, 0.0)
    velocity: np.ndarray | tuple[float, float, float] = (0.0, 0.0, 0.0)
    material: Material = field(default_factory=Material)

    def __post_init__(self) -> None:
        n = vec3(self.normal)
        if np.linalg.norm(n) < 1e-12:
            raise ConfigurationError("Plane normal must be non-zero")
        object.__setattr__(self, "point", vec3(self.point))
        object.__setattr__(self, "normal", unit(n))
        object.__setattr__(self, "velocity", vec3(self.velocity))

    def signed_distance(self, points: np.ndarray) -> np.ndarray:
        """Signed distance of each row of points (N, 3) to the plane."""
        return (f64(points).reshape(-1, 3) - self.point) @ self.normal

    def normals(self, points: np.ndarray) -> np.ndarray:
        """Outward surface normal at each point (constant for a plane)."""
        n = len(f64(points).reshape(-1, 3))
        return np.tile(self.normal, (n, 1))


@dataclass(frozen=True)
class Sphere:
    """
    Solid sphere.

    Attributes:
        center: Sphere center in world space.
        radius: Radius in meters (>= 0).
        velocity: Velocity of the sphere for moving-surface response.
        material: Restitution / friction used for contacts with this sphere.
    """
    center: np.ndarray | tuple[float, float, float] = (0.0, 0.0, 0.0)
    radius: float = 1.0
    velocity: np.ndarray | tuple[float, float, float] = (0.0, 0.0, 0.0)
    material: Material = field(default_factory=Material)

    def __post_init__(self) -> None:
        object.__setattr__(self, "center", vec3(self.center))
        object.__setattr__(self, "radius", require_non_negative("Sphere radius", self.radius))
        object.__setattr__(self, "velocity", vec3(self.velocity))

    def signed_distance(self, points: np.ndarray) -> np.ndarray:
        d = f64(points).reshape(-1, 3) - self.center
        return np.linalg.norm(d, axis=1) - self.radius

    def normals(self, points: np.ndarray) -> np.ndarray:
        """
        Outward normal at each point.

        A point exactly at the center gets +y so the projection is still
        well defined.
        """
        d = f64(points).reshape(-1, 3) - self.center
        lengths = np.linalg.norm(d, axis=1)
        out = np.zeros_like(d)
        ok = lengths > 1e-12
        out[ok] = d[ok] / lengths[ok, None]
        out[~ok] = (0.0, 1.0, 0.0)
        return out


# Point-face pairs evaluated per batch by TriangleMesh
_CLOSEST_BATCH = 65536


def _ratio(num: np.ndarray, den: np.ndarray) -> np.ndarray:
    return num / np.where(den != 0.0, den, 1.0)


def _closest_on_triangles(p: np.ndarray, a: np.ndarray, b: np.ndarray, c: np.ndarray) -> np.ndarray:
    """
    Closest point on each of M triangles to each of N points, shape (N, M, 3).

    Voronoi-region test of Ericson, "Real-Time Collision Detection" §5.1.5.
    Regions are written from the face interior outward; each later region
    overrides the earlier ones, so vertex a has the last word.
    """
    p = p[:, None, :]
    ab, ac = b - a, c - a
    ap, bp, cp = p - a, p - b, p - c

    def dot(u, w):
        return np.einsum("...k,...k->...", u, w)

    d1, d2 = dot(ab, ap), dot(ac, ap)
    d3, d4 = dot(ab, bp), dot(ac, bp)
    d5, d6 = dot(ab, cp), dot(ac, cp)
    va = d3 * d6 - d5 * d4
    vb = d5 * d2 - d1 * d6
    vc = d1 * d4 - d3 * d2

    denom = va + vb + vc
    out = a + ab * _ratio(vb, denom)[..., None] + ac * _ratio(vc, denom)[..., None]

    on_bc = (va <= 0.0) & (d4 - d3 >= 0.0) & (d5 - d6 >= 0.0)
    w = _ratio(d4 - d3, (d4 - d3) + (d5 - d6))
    out = np.where(on_bc[..., None], b + (c - b) * w[..., None], out)

    on_ac = (vb <= 0.0) & (d2 >= 0.0) & (d6 <= 0.0)
    out = np.where(on_ac[..., None], a + ac * _ratio(d2, d2 - d6)[..., None], out)

    out = np.where(((d6 >= 0.0) & (d5 <= d6))[..., None], c, out)

    on_ab = (vc <= 0.0) & (d1 >= 0.0) & (d3 <= 0.0)
    out = np.where(on_ab[..., None], a + ab * _ratio(d1, d1 - d3)[..., None], out)

    out = np.where(((d3 >= 0.0) & (d4 <= d3))[..., None], b, out)
    out = np.where(((d1 <= 0.0) & (d2 <= 0.0))[..., None], a, out)
    return out


@dataclass(frozen=True)
class TriangleMesh:
    """
    Triangle-mesh obstacle (terrain, ramps, imported props).

    Triangles are wound counter-clockwise seen from outside, so their
    normals point out of the solid. A point's signed distance is its
    distance to the nearest face, negative when it lies behind that face.

    An open mesh is solid only within ``thickness`` behind its faces;
    points deeper than that pass underneath. A ``closed`` mesh is solid
    all the way through.

    Points outside the mesh's bounding box grown by ``thickness`` are never
    tested against the faces and report an infinite distance. Zero-area
    triangles are ignored.

    Attributes:
        vertices: Vertex positions (N, 3).
        triangles: Vertex indices (F, 3).
        thickness: Depth of the solid layer of an open mesh (> 0).
        closed: The mesh encloses a volume.
        velocity: Velocity of the mesh for moving-surface response.
        material: Restitution / friction used for contacts with this mesh.
    """
    vertices: np.ndarray | Sequence[Sequence[float]]
    triangles: np.ndarray | Sequence[Sequence[int]]
    thickness: float = 0.1
    closed: bool = False
    velocity: np.ndarray | tuple[float, float, float] = (0.0, 0.0, 0.0)
    material: Material = field(default_factory=Material)

    def __post_init__(self) -> None:
        verts = f64(self.vertices).reshape(-1, 3)
        tris = np.array(self.triangles, dtype=np.int64).reshape(-1, 3)
        if len(tris) and (tris.min() < 0 or tris.max() >= len(verts)):
            raise ConfigurationError("TriangleMesh triangle references a vertex outside the mesh")
        require_positive("TriangleMesh thickness", self.thickness)

        a, b, c = verts[tris[:, 0]], verts[tris[:, 1]], verts[tris[:, 2]]
        cross = np.cross(b - a, c - a)
        double_area = np.linalg.norm(cross, axis=1)
        ok = double_area > GEOMETRY_EPSILON
        if not np.any(ok):
            raise ConfigurationError("TriangleMesh needs at least one triangle with non-zero area")

        object.__setattr__(self, "vertices", verts)
        object.__setattr__(self, "triangles", tris)
        object.__setattr__(self, "velocity", vec3(self.velocity))
        object.__setattr__(self, "_a", a[ok])
        object.__setattr__(self, "_b", b[ok])
        object.__setattr__(self, "_c", c[ok])
        object.__setattr__(self, "_normals", cross[ok] / double_area[ok, None])
        used = verts[np.unique(tris[ok])]
        object.__setattr__(self, "_lo", used.min(axis=0) - self.thickness)
        object.__setattr__(self, "_hi", used.max(axis=0) + self.thickness)

    def in_bounds(self, points: np.ndarray) -> np.ndarray:
        """Mask of points inside the padded bounding box."""
        p = f64(points).reshape(-1, 3)
        return np.all((p >= self._lo) & (p <= self._hi), axis=1)

    def _nearest(self, points: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        p = f64(points).reshape(-1, 3)
        dist = np.full(len(p), np.inf)
        normals = np.tile((0.0, 1.0, 0.0), (len(p), 1))
        rows = np.flatnonzero(self.in_bounds(p))
        # Bounded (chunk, faces, 3) temporaries
        chunk = max(1, _CLOSEST_BATCH // len(self._a))
        for start in range(0, len(rows), chunk):
            r = rows[start:start + chunk]
            d = p[r][:, None, :] - _closest_on_triangles(p[r], self._a, self._b, self._c)
            d2 = np.einsum("nmk,nmk->nm", d, d)
            best = np.argmin(d2, axis=1)
            pick = np.arange(len(r))
            n = self._normals[best]
            side = np.einsum("nk,nk->n", d[pick, best], n)
            dist[r] = np.where(side < 0.0, -1.0, 1.0) * np.sqrt(d2[pick, best])
            normals[r] = n
        if not self.closed:
            dist[dist < -self.thickness] = np.inf
        return dist, normals

    def signed_distance(self, points: np.ndarray) -> np.ndarray:
        return self._nearest(points)[0]

    def normals(self, points: np.ndarray) -> np.ndarray:
        """Outward normal of the nearest face to each point."""
        return self._nearest(points)[1]


Primitive = Plane | Sphere | TriangleMesh


# =============================================================================
# Fields and volumes
# =============================================================================

@dataclass(frozen=True)
class PointAttractor:
    """
    Point field attracting (strength > 0) or repelling (strength < 0).

    Acceleration on a body at distance r is
        a = strength / (r² + softening²)^(falloff/2) * unit(center - p)
    so falloff=2 gives the familiar inverse-square law.

    Attributes:
        position: Field center.
        strength: Signed magnitude; negative values repel.
        falloff: Distance exponent (>= 0).
        radius: Optional cut-off; 0 means unbounded.
        velocity: Velocity of a moving attractor (see ``advanced``).
    """
    position: np.ndarray | tuple[float, float, float] = (0.0, 0.0, 0.0)
    strength: float = 1.0
    falloff: float = 2.0
    radius: float = 0.0
    softening: float = FIELD_SOFTENING
    velocity: np.ndarray | tuple[float, float, float] = (0.0, 0.0, 0.0)

    def __post_init__(self) -> None:
        object.__setattr__(self, "position", vec3(self.position))
        object.__setattr__(self, "velocity", vec3(self.velocity))
        require_non_negative("Attractor falloff", self.falloff)
        require_non_negative("Attractor radius", self.radius)
        require_positive("Attractor softening", self.softening)

    def acceleration(self, points: np.ndarray) -> np.ndarray:
        """Field acceleration at each row of points (N, 3)."""
        d = self.position - f64(points).reshape(-1, 3)
        r2 = np.einsum("ij,ij->i", d, d)
        r = np.sqrt(r2)
        soft = r2 + self.softening * self.softening
        mag = self.strength / soft ** (0.5 * self.falloff)
        if self.radius > 0.0:
            mag = np.where(r <= self.radius, mag, 0.0)
        inv_r = np.where(r > 1e-12, 1.0 / np.maximum(r, 1e-12), 0.0)
        return d * (mag * inv_r)[:, None]

    def advanced(self, dt: float) -> PointAttractor:
        """A copy moved along its velocity by dt."""
        return PointAttractor(
            position=self.position + dt * self.velocity,
            strength=self.strength,
            falloff=self.falloff,
            radius=self.radius,
            softening=self.softening,
            velocity=self.velocity,
        )


@dataclass(frozen=True)
class BoundingBox:
    """
    Axis-aligned box given by its min and max corners.

    Used to cull particles that leave the simulated volume and to keep
    flocks inside a region.
    """
    lo: np.ndarray | tuple[float, float, float] = (-10.0, -10.0, -10.0)
    hi: np.ndarray | tuple[float, float, float] = (10.0, 10.0, 10.0)

    def __post_init__(self) -> None:
        lo, hi = vec3(self.lo), vec3(self.hi)
        if np.any(hi <= lo):
            raise ConfigurationError(f"BoundingBox needs hi > lo on every axis, got {lo} / {hi}")
        object.__setattr__(self, "lo", lo)
        object.__setattr__(self, "hi", hi)

    def contains(self, points: np.ndarray) -> np.ndarray:
        """Boolean mask of rows of points (N, 3) inside the box (inclusive)."""
        p = f64(points).reshape(-1, 3)
        return np.all((p >= self.lo) & (p <= self.hi), axis=1)

    def repulsion(self, points: np.ndarray, eps: float = FIELD_SOFTENING) -> np.ndarray:
        """
        Soft containment: each wall pushes with 1 / d² along its inward normal.

        Points outside the box are pushed back toward it with the
        magnitude at distance eps.
        """
        p = f64(points).reshape(-1, 3)
        d_lo = np.maximum(p - self.lo, eps)
        d_hi = np.maximum(self.hi - p, eps)
        return 1.0 / (d_lo * d_lo) - 1.0 / (d_hi * d_hi)
