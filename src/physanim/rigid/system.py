# MIT License (see LICENSE)
"""
Stepping a set of independent rigid bodies.

Bodies do not interact: there is no contact or constraint resolution
between them, only single-body dynamics under gravity and applied loads.
Forces and torques accumulated on a body are held constant across the
step and cleared afterwards.
"""
from __future__ import annotations
from dataclasses import dataclass
import logging
from typing import Sequence

import numpy as np

from ..constants import GRAVITY
from ..core.integrators import get_integrator
from ..profiler import Profiler, section
from ..util import check_dt, readonly, vec3
from .body import RigidBody, RigidState

logger = logging.getLogger(__name__)


@dataclass
class RigidBodyConfig:
    """
    Attributes:
        gravity: Uniform gravitational acceleration.
        integrator: Scheme name; RK4 by default since orientation error
                    accumulates quickly under first-order schemes.
    """
    gravity: np.ndarray | tuple[float, float, float] = GRAVITY
    integrator: str = "rk4"

    def __post_init__(self) -> None:
        self.gravity = vec3(self.gravity)
        self._scheme = get_integrator(self.integrator)


@dataclass(frozen=True)
class RigidSnapshot:
    """Read-only per-frame view for renderers."""
    time: float
    positions: np.ndarray
    orientations: np.ndarray
    velocities: np.ndarray
    angular_velocities: np.ndarray


class RigidBodySystem:
    """
    Steps a list of rigid bodies.

    Example:
        system = RigidBodySystem([RigidBody(1.0, position=(0, 10, 0))])
        system.bodies[0].apply_torque((0, 1, 0))
        system.step(1 / 120)
    """

    def __init__(
        self,
        bodies: Sequence[RigidBody] = (),
        config: RigidBodyConfig | None = None,
        profiler: Profiler | None = None,
    ) -> None:
        self.config = config if config is not None else RigidBodyConfig()
        self.profiler = profiler
        self.bodies: list[RigidBody] = list(bodies)
        self.time = 0.0
        logger.debug("RigidBodySystem created: %d bodies, integrator=%s", len(self.bodies), self.config.integrator)

    def __len__(self) -> int:
        return len(self.bodies)

    def add(self, body: RigidBody) -> RigidBody:
        self.bodies.append(body)
        return body

    def step(self, dt: float) -> None:
        """
        Advance every body by dt seconds.

        Raises:
            InvalidStepError: dt <= 0; no body is changed.
        """
        dt = check_dt(dt)
        cfg = self.config
        with section(self.profiler, "integrate"):
            for body in self.bodies:
                force = body.force + body.mass * cfg.gravity
                torque = body.torque.copy()

                def derivative_fn(s: RigidState, force=force, torque=torque) -> RigidState:
                    return s.rate(force, torque)

                new = cfg._scheme(body.state(), dt, derivative_fn)
                body.set_state(new)
                body.clear_forces()

                if not np.all(np.isfinite(body.position)):
                    logger.warning("Non-finite rigid body position at t=%.6f", self.time + dt)
        self.time += dt

    def state_snapshot(self) -> RigidSnapshot:
        """Positions, orientations and velocities of every body, read-only."""
        n = len(self.bodies)
        return RigidSnapshot(
            time=self.time,
            positions=readonly(np.array([b.position for b in self.bodies]).reshape(n, 3)),
            orientations=readonly(np.array([b.orientation for b in self.bodies]).reshape(n, 4)),
            velocities=readonly(np.array([b.velocity for b in self.bodies]).reshape(n, 3)),
            angular_velocities=readonly(np.array([b.angular_velocity for b in self.bodies]).reshape(n, 3)),
        )
