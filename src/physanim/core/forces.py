# MIT License (see LICENSE)
"""
Force generators shared by the simulations.

Each function takes the positions / velocities of N points as (N, 3)
arrays and returns the force (or acceleration, where noted) on every point
as a new (N, 3) array. Callers sum the contributions into their
accumulators before integration.

Key concepts:
- Gravity is a uniform acceleration: F = m g.
- Drag is quadratic in the velocity relative to the wind:
  F = -c |v - w| (v - w).
- Point attractors and the axis attractor are acceleration fields.
- Strut forces are the damped-spring law used by the deformable mesh.
- Hinge forces are torsional springs across the shared edges of a mesh.
"""
from __future__ import annotations
from typing import Iterable

import numpy as np

from ..constants import FIELD_SOFTENING, GEOMETRY_EPSILON
from ..types import PointAttractor


def gravity_forces(masses: np.ndarray, g: np.ndarray) -> np.ndarray:
    """
    Gravitational force on each point, F = m * g.

    Args:
        masses: Point masses (N,).
        g: Gravitational acceleration [gx, gy, gz] in m/s².
    """
    return masses[:, None] * g[None, :]


def quadratic_drag_forces(
    velocities: np.ndarray,
    drag: np.ndarray | float,
    wind: np.ndarray | None = None,
) -> np.ndarray:
    """
    Air resistance proportional to the square of the relative speed.

    Implements F = -c * |v_rel| * v_rel with v_rel = v - wind, so a body at
    rest in a wind is pushed along the wind.

    Args:
        velocities: Point velocities (N, 3).
        drag: Drag coefficient, scalar or per point (N,).
        wind: Uniform wind velocity; defaults to still air.
    """
    rel = velocities if wind is None else velocities - wind
    speed = np.linalg.norm(rel, axis=1)
    c = np.broadcast_to(np.asarray(drag, dtype=np.float64), speed.shape)
    return -(c * speed)[:, None] * rel


def attractor_accelerations(positions: np.ndarray, attractors: Iterable[PointAttractor]) -> np.ndarray:
    """Sum of the acceleration fields of all attractors / repellers at each point."""
    acc = np.zeros_like(positions)
    for a in attractors:
        acc += a.acceleration(positions)
    return acc


def axis_attractor_accelerations(
    positions: np.ndarray,
    strength: float,
    axis: np.ndarray = np.array([0.0, 1.0, 0.0]),
    softening: float = FIELD_SOFTENING,
) -> np.ndarray:
    """
    Inverse-square pull toward a line through the origin (a vortex core).

    The component of each position along ``axis`` is removed, and the
    remaining radial offset r gets an acceleration of -strength / |r|² * r̂.
    """
    if strength == 0.0:
        return np.zeros_like(positions)
    along = (positions @ axis)[:, None] * axis[None, :]
    radial = positions - along
    r2 = np.einsum("ij,ij->i", radial, radial) + softening * softening
    r = np.sqrt(r2)
    return -(strength / (r2 * r))[:, None] * radial


def strut_forces(
    x: np.ndarray,
    v: np.ndarray,
    i: np.ndarray,
    j: np.ndarray,
    rest: np.ndarray,
    stiffness: np.ndarray,
    damping: np.ndarray,
) -> np.ndarray:
    """
    Damped spring forces for a set of struts, summed per point.

    For a strut between points i and j with u = unit(x_j - x_i):
        f_i = k (|x_j - x_i| - L0) u + c ((v_j - v_i) · u) u
        f_j = -f_i
    Struts shorter than GEOMETRY_EPSILON have no defined direction and
    contribute zero force.

    Args:
        x, v: Positions and velocities (N, 3).
        i, j: Endpoint indices (M,).
        rest: Rest lengths (M,).
        stiffness, damping: Per-strut coefficients (M,).

    Returns:
        Accumulated force on each point (N, 3).
    """
    out = np.zeros_like(x)
    if len(i) == 0:
        return out
    d = x[j] - x[i]
    length = np.linalg.norm(d, axis=1)
    ok = length > GEOMETRY_EPSILON
    u = np.zeros_like(d)
    u[ok] = d[ok] / length[ok, None]

    stretch = np.where(ok, length - rest, 0.0)
    closing = np.einsum("ij,ij->i", v[j] - v[i], u)
    f = (stiffness * stretch + damping * closing)[:, None] * u

    # Equal and opposite; np.add.at handles points shared by many struts
    np.add.at(out, i, f)
    np.add.at(out, j, -f)
    return out


def _hinge_geometry(x: np.ndarray, hinges: np.ndarray):
    """
    Shared frame of hinges (x0, x1, x2, x3): x0 -> x1 is the shared edge,
    x2 the third vertex of the face wound x0 -> x1, x3 that of the face
    wound x1 -> x0. Both face normals point out of the same side of a
    consistently wound surface.
    """
    x0, x1, x2, x3 = (x[hinges[:, k]] for k in range(4))
    e = x1 - x0
    a2, a3 = x2 - x0, x3 - x0
    nl, nr = np.cross(e, a2), np.cross(a3, e)
    le = np.linalg.norm(e, axis=1)
    ll, lr = np.linalg.norm(nl, axis=1), np.linalg.norm(nr, axis=1)
    ok = (le > GEOMETRY_EPSILON) & (ll > GEOMETRY_EPSILON) & (lr > GEOMETRY_EPSILON)
    h = e / np.where(ok, le, 1.0)[:, None]
    nl = nl / np.where(ok, ll, 1.0)[:, None]
    nr = nr / np.where(ok, lr, 1.0)[:, None]
    theta = np.where(ok, np.arctan2(np.einsum("ij,ij->i", np.cross(nl, nr), h), np.einsum("ij,ij->i", nl, nr)), 0.0)
    return ok, e, le, a2, a3, h, nl, nr, theta


def hinge_angles(x: np.ndarray, hinges: np.ndarray) -> np.ndarray:
    """
    Signed angle between the two face normals of each hinge (H,), in (-π, π].

    A flat hinge has angle 0. Degenerate hinges report 0.
    """
    if len(hinges) == 0:
        return np.zeros(0)
    return _hinge_geometry(x, hinges)[-1]


def hinge_forces(
    x: np.ndarray,
    v: np.ndarray,
    hinges: np.ndarray,
    rest: np.ndarray,
    stiffness: float,
    damping: float,
) -> np.ndarray:
    """
    Torsional springs across shared mesh edges, summed per point.

    With h the unit hinge axis, r_l and r_r the offsets of the wing
    vertices x2, x3 perpendicular to it and d_02, d_03 their offsets along
    it, a torque
        τ = k (θ - θ0) - c (θ̇_l + θ̇_r),   θ̇_l = (v2 - v_hinge) · n_l / |r_l|
    acts on the wings as
        f2 = τ / |r_l| n_l,   f3 = τ / |r_r| n_r,
        f1 = -(d_02 f2 + d_03 f3) / |x1 - x0|,   f0 = -(f1 + f2 + f3)
    so the four forces have no net force or torque. Hinges with a
    zero-length edge or a zero-area wing contribute nothing.

    Args:
        x, v: Positions and velocities (N, 3).
        hinges: Point indices (H, 4), see hinge_angles.
        rest: Rest angles (H,).
        stiffness: Torsional stiffness k (N·m/rad).
        damping: Torsional damping c (N·m·s/rad).

    Reference:
        Keyser & House, "Foundations of Physically Based Modeling and
        Animation", section 8.3.2.
    """
    out = np.zeros_like(x)
    if len(hinges) == 0:
        return out
    ok, e, le, a2, a3, h, nl, nr, theta = _hinge_geometry(x, hinges)
    i0, i1, i2, i3 = hinges.T
    d02 = np.einsum("ij,ij->i", a2, h)
    d03 = np.einsum("ij,ij->i", a3, h)
    rl = np.linalg.norm(a2 - d02[:, None] * h, axis=1)
    rr = np.linalg.norm(a3 - d03[:, None] * h, axis=1)
    rl, rr, le = (np.where(ok, r, 1.0) for r in (rl, rr, le))

    v_hinge = 0.5 * (v[i0] + v[i1])
    rate_l = np.einsum("ij,ij->i", v[i2] - v_hinge, nl) / rl
    rate_r = np.einsum("ij,ij->i", v[i3] - v_hinge, nr) / rr
    # Wrapped so a hinge folding through ±π turns back the short way
    bend = np.mod(theta - rest + np.pi, 2.0 * np.pi) - np.pi
    tau = np.where(ok, stiffness * bend - damping * (rate_l + rate_r), 0.0)

    f2 = (tau / rl)[:, None] * nl
    f3 = (tau / rr)[:, None] * nr
    f1 = -(d02[:, None] * f2 + d03[:, None] * f3) / le[:, None]
    f0 = -(f1 + f2 + f3)
    for idx, f in ((i0, f0), (i1, f1), (i2, f2), (i3, f3)):
        np.add.at(out, idx, f)
    return out
