# MIT License (see LICENSE)
"""
Utility functions for vector math, quaternions and argument validation.

Provides low-level 3D vector operations shared by every simulation,
including normalization, array conversion and the unit-quaternion helpers
used by the rigid body model. Vectors are numpy arrays of shape (3,);
quaternions are arrays (w, x, y, z).

The validation helpers raise the typed errors from ``physanim.errors`` so
bad configuration fails at construction time.
"""
from __future__ import annotations
import math

import numpy as np

from .errors import ConfigurationError, InvalidStepError


def f64(x) -> np.ndarray:
    """
    Convert any array-like to a float64 numpy array.

    Used throughout the codebase to ensure consistent numeric precision
    and allow tuple/list inputs for positions and velocities.
    """
    return np.array(x, dtype=np.float64)


def vec3(x) -> np.ndarray:
    """Convert to a float64 vector of shape (3,), rejecting other shapes."""
    v = f64(x)
    if v.shape != (3,):
        raise ConfigurationError(f"Expected a 3-vector, got shape {v.shape}")
    return v


def norm2(v: np.ndarray) -> float:
    """Squared magnitude of a 3D vector. Avoids sqrt for performance."""
    return float(v[0] * v[0] + v[1] * v[1] + v[2] * v[2])


def norm(v: np.ndarray) -> float:
    """Magnitude (length) of a 3D vector."""
    return float(np.sqrt(norm2(v)))


def unit(v: np.ndarray, eps: float = 1e-12) -> np.ndarray:
    """
    Return a unit (normalized) vector in the same direction as v.

    Returns zero vector if |v| < eps to avoid division by zero.
    """
    n = norm(v)
    if n < eps:
        return np.zeros(3, dtype=np.float64)
    return v / n


def clamp_length(v: np.ndarray, max_len: float) -> np.ndarray:
    """Scale v down so that |v| <= max_len. Leaves shorter vectors alone."""
    n = norm(v)
    if n > max_len and n > 0.0:
        return v * (max_len / n)
    return v


def clamp_rows(a: np.ndarray, max_len: float) -> np.ndarray:
    """Row-wise version of clamp_length for an (N, 3) array."""
    if len(a) == 0:
        return a
    lengths = np.linalg.norm(a, axis=1)
    scale = np.ones_like(lengths)
    over = lengths > max_len
    scale[over] = max_len / lengths[over]
    return a * scale[:, None]


def orthonormal_basis(n: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """
    Two unit vectors perpendicular to the unit vector n and to each other.

    Picks the helper axis least aligned with n so the cross product never
    degenerates.
    """
    helper = np.array([1.0, 0.0, 0.0]) if abs(n[0]) < 0.9 else np.array([0.0, 0.0, 1.0])
    t1 = unit(np.cross(n, helper))
    t2 = np.cross(n, t1)
    return t1, t2


# =============================================================================
# Quaternions (w, x, y, z)
# =============================================================================

def quat_identity() -> np.ndarray:
    return np.array([1.0, 0.0, 0.0, 0.0], dtype=np.float64)


def quat_mul(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Hamilton product a ⊗ b."""
    aw, ax, ay, az = a
    bw, bx, by, bz = b
    return np.array([
        aw * bw - ax * bx - ay * by - az * bz,
        aw * bx + ax * bw + ay * bz - az * by,
        aw * by - ax * bz + ay * bw + az * bx,
        aw * bz + ax * by - ay * bx + az * bw,
    ], dtype=np.float64)


def quat_normalize(q: np.ndarray) -> np.ndarray:
    """Return q / |q|; falls back to identity for a zero quaternion."""
    n = float(np.sqrt(np.dot(q, q)))
    if n < 1e-12:
        return quat_identity()
    return q / n


def quat_from_axis_angle(axis, angle: float) -> np.ndarray:
    """Unit quaternion rotating by angle (radians) about axis."""
    a = unit(vec3(axis))
    s = math.sin(0.5 * angle)
    return np.array([math.cos(0.5 * angle), a[0] * s, a[1] * s, a[2] * s], dtype=np.float64)


def quat_to_matrix(q: np.ndarray) -> np.ndarray:
    """
    Rotation matrix R for a unit quaternion.

    Reference: https://en.wikipedia.org/wiki/Quaternions_and_spatial_rotation
    """
    w, x, y, z = q
    return np.array([
        [1 - 2 * (y * y + z * z), 2 * (x * y - z * w), 2 * (x * z + y * w)],
        [2 * (x * y + z * w), 1 - 2 * (x * x + z * z), 2 * (y * z - x * w)],
        [2 * (x * z - y * w), 2 * (y * z + x * w), 1 - 2 * (x * x + y * y)],
    ], dtype=np.float64)


# =============================================================================
# Validation
# =============================================================================

def check_dt(dt: float) -> float:
    """Return dt as float, raising InvalidStepError unless 0 < dt < inf."""
    dt = float(dt)
    if not (dt > 0.0) or not math.isfinite(dt):
        raise InvalidStepError(f"Timestep must be positive and finite, got {dt}")
    return dt


def require_positive(name: str, value: float) -> float:
    value = float(value)
    if not (value > 0.0) or not math.isfinite(value):
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


def require_non_negative(name: str, value: float) -> float:
    value = float(value)
    if not (value >= 0.0) or not math.isfinite(value):
        raise ConfigurationError(f"{name} must be >= 0, got {value}")
    return value


def require_unit_range(name: str, value: float) -> float:
    value = float(value)
    if not 0.0 <= value <= 1.0:
        raise ConfigurationError(f"{name} must lie in [0, 1], got {value}")
    return value


def readonly(a: np.ndarray) -> np.ndarray:
    """Copy a and mark the copy read-only, for snapshots handed to renderers."""
    out = np.array(a, dtype=np.float64, copy=True)
    out.setflags(write=False)
    return out
