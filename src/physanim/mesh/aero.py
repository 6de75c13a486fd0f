# MIT License (see LICENSE)
"""
Per-face aerodynamic forces for surface meshes.

Each triangle sees the air moving at ``v_rel = v_face - wind`` where
v_face is the mean of its three vertex velocities. Only the projected area
|cos θ| * A facing the flow generates force, with cos θ = n̂ · v̂_rel:

    drag = -C_d * A_eff * |v_rel| * v_rel
    lift = -C_l * A_eff * |v_rel|² * unit(n̂_eff - |cos θ| v̂_rel)

n̂_eff is the face normal flipped toward the flow, so the lift direction is
perpendicular to the relative wind, in the plane spanned by the wind and the
normal. The total is split equally between the three vertices.

Zero-area faces and faces with no relative wind contribute nothing.
"""
from __future__ import annotations

import numpy as np

from ..constants import GEOMETRY_EPSILON


def face_normals_areas(x: np.ndarray, faces: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """
    Unit normals (F, 3) and areas (F,) of triangle faces.

    Degenerate faces get a zero normal and zero area.
    """
    a, b, c = x[faces[:, 0]], x[faces[:, 1]], x[faces[:, 2]]
    cross = np.cross(b - a, c - a)
    double_area = np.linalg.norm(cross, axis=1)
    ok = double_area > GEOMETRY_EPSILON
    normals = np.zeros_like(cross)
    normals[ok] = cross[ok] / double_area[ok, None]
    return normals, 0.5 * np.where(ok, double_area, 0.0)


def face_aero_forces(
    x: np.ndarray,
    v: np.ndarray,
    faces: np.ndarray,
    wind: np.ndarray,
    drag_coefficient: float,
    lift_coefficient: float,
) -> np.ndarray:
    """
    Aerodynamic drag and lift accumulated on the vertices.

    Args:
        x, v: Point positions and velocities (N, 3).
        faces: Vertex indices (F, 3).
        wind: Uniform wind velocity (3,).
        drag_coefficient, lift_coefficient: Empirical coefficients C_d, C_l.

    Returns:
        Force on each point (N, 3).
    """
    out = np.zeros_like(x)
    if len(faces) == 0 or (drag_coefficient == 0.0 and lift_coefficient == 0.0):
        return out

    normals, areas = face_normals_areas(x, faces)
    v_rel = (v[faces[:, 0]] + v[faces[:, 1]] + v[faces[:, 2]]) / 3.0 - wind
    speed = np.linalg.norm(v_rel, axis=1)

    ok = (speed > GEOMETRY_EPSILON) & (areas > 0.0)
    if not np.any(ok):
        return out

    v_hat = np.zeros_like(v_rel)
    v_hat[ok] = v_rel[ok] / speed[ok, None]
    cos = np.einsum("ij,ij->i", normals, v_hat)
    abs_cos = np.abs(cos)
    n_eff = np.where(cos[:, None] < 0.0, -normals, normals)
    a_eff = areas * abs_cos

    force = -(drag_coefficient * a_eff * speed)[:, None] * v_rel

    if lift_coefficient != 0.0:
        lift_dir = n_eff - abs_cos[:, None] * v_hat
        lift_len = np.linalg.norm(lift_dir, axis=1)
        # Face edge-on or face-on to the flow: no lift direction
        has_lift = ok & (lift_len > GEOMETRY_EPSILON)
        lift_dir[has_lift] /= lift_len[has_lift, None]
        lift_dir[~has_lift] = 0.0
        force -= (lift_coefficient * a_eff * speed * speed)[:, None] * lift_dir

    force[~ok] = 0.0
    share = force / 3.0
    for col in range(3):
        np.add.at(out, faces[:, col], share)
    return out
