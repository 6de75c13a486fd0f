# MIT License (see LICENSE)
"""
Rigid body model (momentum form).

A body's state is (x, q, P, L): center-of-mass position, unit orientation
quaternion, linear momentum and angular momentum. Velocities are derived:

    v = P / m
    I⁻¹_world = R I⁻¹_body Rᵀ        (R from q)
    ω = I⁻¹_world L

and the state derivative is

    dx/dt = v,   dq/dt = ½ (0, ω) ⊗ q,   dP/dt = F,   dL/dt = τ

Integrating momenta instead of velocities keeps L exactly constant for a
torque-free body even when its inertia is not isotropic.

Reference:
    Baraff, "An Introduction to Physically Based Modeling: Rigid Body
    Simulation I", SIGGRAPH course notes, 1997.
"""
from __future__ import annotations
from dataclasses import dataclass

import numpy as np

from ..errors import ConfigurationError
from ..util import (
    f64,
    quat_identity,
    quat_mul,
    quat_normalize,
    quat_to_matrix,
    require_positive,
    vec3,
)


def sphere_inertia(mass: float, radius: float) -> np.ndarray:
    """Body-frame inertia tensor of a solid sphere: (2/5) m r² I."""
    return np.eye(3) * (0.4 * mass * radius * radius)


def box_inertia(mass: float, size) -> np.ndarray:
    """Body-frame inertia tensor of a solid box with edge lengths (a, b, c)."""
    a, b, c = vec3(size)
    return np.diag([
        mass * (b * b + c * c) / 12.0,
        mass * (a * a + c * c) / 12.0,
        mass * (a * a + b * b) / 12.0,
    ])


def _inertia_tensor(inertia) -> np.ndarray:
    """Accept a 3x3 tensor or the 3 principal moments; reject non-SPD input."""
    t = f64(inertia)
    if t.shape == (3,):
        t = np.diag(t)
    if t.shape != (3, 3):
        raise ConfigurationError(f"Inertia must be a 3x3 tensor or 3 principal moments, got shape {t.shape}")
    if not np.allclose(t, t.T):
        raise ConfigurationError("Inertia tensor must be symmetric")
    if np.any(np.linalg.eigvalsh(t) <= 0.0):
        raise ConfigurationError("Inertia tensor must be positive definite")
    return t


@dataclass(frozen=True)
class RigidState:
    """
    Integrable state of one rigid body.

    mass and inv_inertia_body are constants carried along so that ``drift``
    can derive velocities. As a rate, the fields hold (v, dq/dt, F, τ).
    """
    x: np.ndarray
    q: np.ndarray
    P: np.ndarray
    L: np.ndarray
    mass: float
    inv_inertia_body: np.ndarray

    def inv_inertia_world(self) -> np.ndarray:
        R = quat_to_matrix(quat_normalize(self.q))
        return R @ self.inv_inertia_body @ R.T

    def velocity(self) -> np.ndarray:
        return self.P / self.mass

    def angular_velocity(self) -> np.ndarray:
        return self.inv_inertia_world() @ self.L

    def spin(self) -> np.ndarray:
        """dq/dt = ½ (0, ω) ⊗ q."""
        w = self.angular_velocity()
        return 0.5 * quat_mul(np.array([0.0, w[0], w[1], w[2]]), self.q)

    def _with(self, x, q, P, L) -> RigidState:
        return RigidState(x, q, P, L, self.mass, self.inv_inertia_body)

    def combine(self, rate: RigidState, h: float) -> RigidState:
        return self._with(self.x + h * rate.x, self.q + h * rate.q, self.P + h * rate.P, self.L + h * rate.L)

    def kick(self, rate: RigidState, h: float) -> RigidState:
        return self._with(self.x, self.q, self.P + h * rate.P, self.L + h * rate.L)

    def drift(self, h: float) -> RigidState:
        return self._with(self.x + h * self.velocity(), self.q + h * self.spin(), self.P, self.L)

    def distance(self, other: RigidState) -> float:
        return float(
            np.linalg.norm(self.x - other.x)
            + np.linalg.norm(self.q - other.q)
            + np.linalg.norm(self.P - other.P)
            + np.linalg.norm(self.L - other.L)
        )

    def rate(self, force: np.ndarray, torque: np.ndarray) -> RigidState:
        """Time derivative of this state under a constant force and torque."""
        return self._with(self.velocity(), self.spin(), force, torque)


class RigidBody:
    """
    A single rigid body in 3D.

    Attributes:
        mass: Mass in kg (> 0).
        inertia: Body-frame inertia tensor (3, 3).
        position: Center-of-mass position.
        orientation: Unit quaternion (w, x, y, z).
        momentum: Linear momentum P.
        angular_momentum: Angular momentum L (world frame).
        force, torque: Accumulators, cleared after every step.

    Example:
        body = RigidBody(2.0, box_inertia(2.0, (1, 1, 1)), position=(0, 5, 0))
        body.apply_force((0, 0, 10), at=(0.5, 5, 0))
    """

    def __init__(
        self,
        mass: float = 1.0,
        inertia=None,
        position=(0.0, 0.0, 0.0),
        orientation=None,
        velocity=(0.0, 0.0, 0.0),
        angular_velocity=(0.0, 0.0, 0.0),
    ) -> None:
        self.mass = require_positive("RigidBody mass", mass)
        self.inertia = _inertia_tensor(sphere_inertia(self.mass, 0.5) if inertia is None else inertia)
        self.inv_inertia = np.linalg.inv(self.inertia)
        self.position = vec3(position)
        q = quat_identity() if orientation is None else f64(orientation)
        if q.shape != (4,) or np.linalg.norm(q) < 1e-12:
            raise ConfigurationError("Orientation must be a non-zero quaternion (w, x, y, z)")
        self.orientation = quat_normalize(q)
        self.momentum = self.mass * vec3(velocity)
        R = self.rotation_matrix()
        self.angular_momentum = (R @ self.inertia @ R.T) @ vec3(angular_velocity)
        self.force = np.zeros(3)
        self.torque = np.zeros(3)

    # -------------------------------------------------------------------------
    # Derived quantities
    # -------------------------------------------------------------------------

    def rotation_matrix(self) -> np.ndarray:
        return quat_to_matrix(self.orientation)

    def inv_inertia_world(self) -> np.ndarray:
        R = self.rotation_matrix()
        return R @ self.inv_inertia @ R.T

    @property
    def velocity(self) -> np.ndarray:
        return self.momentum / self.mass

    @property
    def angular_velocity(self) -> np.ndarray:
        return self.inv_inertia_world() @ self.angular_momentum

    # -------------------------------------------------------------------------
    # Loads
    # -------------------------------------------------------------------------

    def apply_force(self, force, at=None) -> None:
        """
        Accumulate a force for the next step.

        Args:
            force: Force vector in world frame (N).
            at: World-space point of application; a force off the center of
                mass also produces torque (r × F). None means the center.
        """
        f = vec3(force)
        self.force += f
        if at is not None:
            self.torque += np.cross(vec3(at) - self.position, f)

    def apply_torque(self, torque) -> None:
        self.torque += vec3(torque)

    def apply_impulse(self, impulse, at=None) -> None:
        """
        Instantly change momenta: P += J, L += r × J.

        Args:
            impulse: Impulse vector J in world frame (N·s).
            at: World-space point of application (None = center of mass).
        """
        j = vec3(impulse)
        self.momentum = self.momentum + j
        if at is not None:
            self.angular_momentum = self.angular_momentum + np.cross(vec3(at) - self.position, j)

    def clear_forces(self) -> None:
        self.force[:] = 0.0
        self.torque[:] = 0.0

    # -------------------------------------------------------------------------
    # State exchange with the integrators
    # -------------------------------------------------------------------------

    def state(self) -> RigidState:
        return RigidState(
            self.position.copy(),
            self.orientation.copy(),
            self.momentum.copy(),
            self.angular_momentum.copy(),
            self.mass,
            self.inv_inertia,
        )

    def set_state(self, s: RigidState) -> None:
        """Write an integrated state back, renormalizing the orientation."""
        self.position = s.x
        self.orientation = quat_normalize(s.q)
        self.momentum = s.P
        self.angular_momentum = s.L
