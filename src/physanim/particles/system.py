# MIT License (see LICENSE)
"""
Particle system: independent point masses under gravity, drag and fields.

Step order:
    1. Emission (start of step, bounded by max_particles).
    2. Read phase: snapshot live particles into arrays.
    3. Forces: gravity, quadratic drag relative to wind, attractor /
       repeller fields, optional vertical-axis attractor.
    4. Integration via the configured scheme.
    5. Write phase: collisions against primitives, write back, ageing.
    6. Culling of expired / out-of-bounds particles (deferred to the end of
       the step so no list is mutated while it is being iterated).
"""
from __future__ import annotations
from dataclasses import dataclass, field
import logging

import numpy as np

from ..collision.response import collide_all
from ..constants import GRAVITY
from ..core.forces import (
    attractor_accelerations,
    axis_attractor_accelerations,
    gravity_forces,
    quadratic_drag_forces,
)
from ..core.integrators import get_integrator
from ..core.state import PointState
from ..errors import ConfigurationError
from ..materials import Material
from ..profiler import Profiler, section
from ..types import BoundingBox, PointAttractor, Primitive
from ..util import check_dt, readonly, require_non_negative, vec3
from .emitter import DiskEmitter
from .particle import Particle

logger = logging.getLogger(__name__)


@dataclass
class ParticleConfig:
    """
    Construction-time parameters of a ParticleSystem.

    Attributes:
        gravity: Uniform gravitational acceleration.
        drag_coefficient: Drag used for seeded particles and by emitters
                          without their own drag range.
        wind: Uniform wind velocity; drag acts on velocity relative to it.
        attractors: Point attractors / repellers.
        axis_attractor: Strength of the pull toward the vertical axis
                        through the origin (0 disables).
        colliders: Planes, spheres and triangle meshes particles bounce off.
        material: Overrides every collider's material when given.
        bounds: Particles leaving this box are removed.
        max_particles: Hard cap on live particles.
        integrator: Scheme name, see core.integrators.INTEGRATORS.
    """
    gravity: np.ndarray | tuple[float, float, float] = GRAVITY
    drag_coefficient: float = 0.0
    wind: np.ndarray | tuple[float, float, float] = (0.0, 0.0, 0.0)
    attractors: list[PointAttractor] = field(default_factory=list)
    axis_attractor: float = 0.0
    colliders: list[Primitive] = field(default_factory=list)
    material: Material | None = None
    bounds: BoundingBox | None = None
    max_particles: int = 5000
    integrator: str = "semi_implicit"

    def __post_init__(self) -> None:
        self.gravity = vec3(self.gravity)
        self.wind = vec3(self.wind)
        self.drag_coefficient = require_non_negative("drag_coefficient", self.drag_coefficient)
        if int(self.max_particles) <= 0:
            raise ConfigurationError(f"max_particles must be > 0, got {self.max_particles}")
        self.max_particles = int(self.max_particles)
        self._scheme = get_integrator(self.integrator)


@dataclass(frozen=True)
class ParticleSnapshot:
    """Read-only per-frame view for renderers."""
    time: float
    ids: np.ndarray
    positions: np.ndarray
    velocities: np.ndarray
    ages: np.ndarray


class ParticleSystem:
    """
    A pool of independent particles.

    Example:
        system = ParticleSystem(ParticleConfig(max_particles=1000),
                                emitter=DiskEmitter(rate=200, seed=1))
        for _ in range(240):
            system.step(1 / 240)
        frame = system.state_snapshot()
    """

    def __init__(
        self,
        config: ParticleConfig | None = None,
        emitter: DiskEmitter | None = None,
        profiler: Profiler | None = None,
    ) -> None:
        self.config = config if config is not None else ParticleConfig()
        self.emitter = emitter
        self.profiler = profiler
        self.particles: list[Particle] = []
        self.time = 0.0
        self._next_id = 1
        self.dropped = 0
        logger.debug(
            "ParticleSystem created: cap=%d integrator=%s emitter=%s",
            self.config.max_particles, self.config.integrator, type(emitter).__name__,
        )

    def __len__(self) -> int:
        return len(self.particles)

    def _register(self, p: Particle) -> Particle | None:
        if len(self.particles) >= self.config.max_particles:
            self.dropped += 1
            return None
        p.id = self._next_id
        self._next_id += 1
        self.particles.append(p)
        return p

    def seed(
        self,
        position,
        velocity=(0.0, 0.0, 0.0),
        mass: float = 1.0,
        drag: float | None = None,
        lifetime: float | None = None,
    ) -> Particle | None:
        """
        Add one particle explicitly.

        Returns:
            The registered particle, or None if the cap was reached (the
            particle is dropped, not an error).
        """
        drag = self.config.drag_coefficient if drag is None else drag
        return self._register(Particle(position, velocity, mass=mass, drag=drag, lifetime=lifetime))

    def _emit(self, dt: float) -> None:
        if self.emitter is None:
            return
        due = self.emitter.count(dt)
        room = self.config.max_particles - len(self.particles)
        n = min(due, max(0, room))
        if n < due:
            self.dropped += due - n
            logger.debug("Particle cap %d reached, dropped %d emissions", self.config.max_particles, due - n)
        for p in self.emitter.spawn(n, default_drag=self.config.drag_coefficient):
            self._register(p)

    def _derivative(self, masses: np.ndarray, drag: np.ndarray):
        cfg = self.config

        def derivative_fn(state: PointState) -> PointState:
            force = gravity_forces(masses, cfg.gravity)
            force += quadratic_drag_forces(state.v, drag, cfg.wind)
            acc = force / masses[:, None]
            if cfg.attractors:
                acc += attractor_accelerations(state.x, cfg.attractors)
            if cfg.axis_attractor != 0.0:
                acc += axis_attractor_accelerations(state.x, cfg.axis_attractor)
            return PointState.rate(state.v, acc)

        return derivative_fn

    def step(self, dt: float) -> None:
        """
        Advance all live particles by dt seconds.

        Raises:
            InvalidStepError: dt <= 0; the system is left unchanged.
        """
        dt = check_dt(dt)
        cfg = self.config
        prof = self.profiler

        with section(prof, "emit"):
            self._emit(dt)

        if self.particles:
            # Read phase
            state = PointState(
                np.array([p.position for p in self.particles]),
                np.array([p.velocity for p in self.particles]),
            )
            masses = np.array([p.mass for p in self.particles])
            drag = np.array([p.drag for p in self.particles])
            derivative_fn = self._derivative(masses, drag)

            with section(prof, "forces"):
                start_rate = derivative_fn(state)
            with section(prof, "integrate"):
                new = cfg._scheme(state, dt, derivative_fn)

            x, v = new.x.copy(), new.v.copy()
            with section(prof, "collide"):
                collide_all(x, v, cfg.colliders, material=cfg.material)

            if not np.all(np.isfinite(x)):
                logger.warning("Non-finite particle positions after step at t=%.6f", self.time)

            # Write phase
            for k, p in enumerate(self.particles):
                p.force[:] = start_rate.v[k] * p.mass
                p.position = x[k]
                p.velocity = v[k]
                p.age += dt

        self.time += dt

        with section(prof, "cull"):
            self._cull()

    def _cull(self) -> None:
        before = len(self.particles)
        keep = [not p.expired for p in self.particles]
        if self.config.bounds is not None and self.particles:
            inside = self.config.bounds.contains(np.array([p.position for p in self.particles]))
            keep = [k and bool(i) for k, i in zip(keep, inside)]
        self.particles = [p for p, k in zip(self.particles, keep) if k]
        if len(self.particles) != before:
            logger.debug("Culled %d particles", before - len(self.particles))

    def state_snapshot(self) -> ParticleSnapshot:
        """Positions, velocities and ages of all live particles, read-only."""
        n = len(self.particles)
        ids = np.array([p.id for p in self.particles], dtype=np.int64)
        ids.setflags(write=False)
        return ParticleSnapshot(
            time=self.time,
            ids=ids,
            positions=readonly(np.array([p.position for p in self.particles]).reshape(n, 3)),
            velocities=readonly(np.array([p.velocity for p in self.particles]).reshape(n, 3)),
            ages=readonly(np.array([p.age for p in self.particles], dtype=np.float64)),
        )
