# MIT License (see LICENSE)
"""
Utilities for calculating physical invariants and conserved quantities.

Used for verifying simulation correctness and debugging stability issues.
In a closed system with no dissipation (drag/friction) or external forces,
total energy and momentum should remain constant (within integration error).

Point sets (particles, mesh points, boids) are passed as mass and velocity
arrays; rigid bodies as a list of RigidBody.
"""
from __future__ import annotations

import numpy as np

from ..rigid.body import RigidBody


def point_kinetic_energy(masses: np.ndarray, velocities: np.ndarray) -> float:
    """
    Total kinetic energy of N point masses.

    T = Σ 0.5 * m * |v|²
    """
    v = np.asarray(velocities, dtype=np.float64).reshape(-1, 3)
    return float(0.5 * np.sum(np.asarray(masses) * np.einsum("ij,ij->i", v, v)))


def point_linear_momentum(masses: np.ndarray, velocities: np.ndarray) -> np.ndarray:
    """Total momentum P = Σ m v of N point masses, [Px, Py, Pz] in kg·m/s."""
    v = np.asarray(velocities, dtype=np.float64).reshape(-1, 3)
    return (np.asarray(masses)[:, None] * v).sum(axis=0)


def kinetic_energy(bodies: list[RigidBody]) -> float:
    """
    Calculate the total kinetic energy of a system of rigid bodies.

    T = Σ (0.5 * m * |v|² + 0.5 * ω · L)

    Args:
        bodies: List of rigid bodies.

    Returns:
        Total kinetic energy in Joules.
    """
    ke = 0.0
    for b in bodies:
        v = b.velocity
        ke += 0.5 * b.mass * float(np.dot(v, v))
        ke += 0.5 * float(np.dot(b.angular_velocity, b.angular_momentum))
    return ke


def linear_momentum(bodies: list[RigidBody]) -> np.ndarray:
    """
    Calculate the total linear momentum of a system.

    P = Σ (m * v)

    Returns:
        Total momentum vector [Px, Py, Pz] in kg·m/s.
    """
    p = np.zeros(3, dtype=np.float64)
    for b in bodies:
        p += b.momentum
    return p


def angular_momentum(bodies: list[RigidBody], origin=(0.0, 0.0, 0.0)) -> np.ndarray:
    """
    Total angular momentum about origin.

    L_total = Σ ((x - origin) × P + L_spin)
    """
    o = np.asarray(origin, dtype=np.float64)
    total = np.zeros(3, dtype=np.float64)
    for b in bodies:
        total += np.cross(b.position - o, b.momentum) + b.angular_momentum
    return total
