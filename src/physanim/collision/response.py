# MIT License (see LICENSE)
"""
Point-versus-primitive collision response.

Used by the particle system and the deformable mesh after integration:
any point found inside a primitive is projected back onto its surface
(plus a small offset) and its velocity is split into normal and tangential
parts relative to the surface:

    v_n' = -e * v_n                              (restitution)
    v_t' = v_t - unit(v_t) * min(μ |v_n|, |v_t|) (Coulomb friction)

Only points moving into the surface have their velocity changed; a point
already separating keeps its velocity and is just projected.

All functions operate on (N, 3) arrays in place and return the mask of
points that were in contact, so callers can count or log contacts.
"""
from __future__ import annotations
from typing import Iterable

import numpy as np

from ..constants import CONTACT_EPSILON
from ..materials import Material
from ..types import Primitive


def collide_points(
    x: np.ndarray,
    v: np.ndarray,
    primitive: Primitive,
    material: Material | None = None,
    active: np.ndarray | None = None,
    offset: float = CONTACT_EPSILON,
) -> np.ndarray:
    """
    Resolve penetration of points against one primitive.

    Args:
        x: Positions (N, 3), modified in place.
        v: Velocities (N, 3), modified in place.
        primitive: Plane, Sphere or TriangleMesh to collide against.
        material: Overrides the primitive's own material when given.
        active: Optional boolean mask; inactive rows (e.g. pinned points)
                are never touched.
        offset: Distance to leave between the point and the surface.

    Returns:
        Boolean mask (N,) of the points that were in contact.
    """
    if len(x) == 0:
        return np.zeros(0, dtype=bool)
    mat = material if material is not None else primitive.material

    dist = primitive.signed_distance(x)
    hit = dist < 0.0
    if active is not None:
        hit &= active
    if not np.any(hit):
        return hit

    n = primitive.normals(x[hit])
    x[hit] += n * (offset - dist[hit])[:, None]

    # Velocity relative to the (possibly moving) surface
    rel = v[hit] - primitive.velocity
    vn_mag = np.einsum("ij,ij->i", rel, n)
    approaching = vn_mag < 0.0

    vn = vn_mag[:, None] * n
    vt = rel - vn
    vt_len = np.linalg.norm(vt, axis=1)
    reduce = np.minimum(mat.friction * np.abs(vn_mag), vt_len)
    scale = np.where(vt_len > 1e-12, reduce / np.maximum(vt_len, 1e-12), 0.0)
    vt_new = vt - vt * scale[:, None]

    new_rel = np.where(approaching[:, None], -mat.restitution * vn + vt_new, rel)
    v[hit] = new_rel + primitive.velocity
    return hit


def collide_all(
    x: np.ndarray,
    v: np.ndarray,
    primitives: Iterable[Primitive],
    active: np.ndarray | None = None,
    material: Material | None = None,
) -> int:
    """
    Resolve points against every primitive in turn.

    Returns:
        Total number of point-primitive contacts resolved.
    """
    count = 0
    for prim in primitives:
        count += int(np.count_nonzero(collide_points(x, v, prim, material=material, active=active)))
    return count
