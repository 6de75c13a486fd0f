# MIT License (see LICENSE)
"""
Flocking simulation.

Step pipeline:
    1. Rebuild the spatial index over the boid positions (once per step).
    2. For every follower, collect neighbors within perception_radius and
       keep those inside its field of view. Membership is fixed for the
       step; offsets and velocities are re-read from whatever state the
       integrator evaluates, so RK4 stages see consistent geometry.
    3. Steering: obstacle avoidance is allocated first (up to its weight
       and max_force); separation, cohesion, alignment, leader following,
       attractor fields and bounds containment share what is left of the
       max_force budget.
    4. Integration via the configured scheme.
    5. Speed clamp to max_speed; leaders are moved along their path.
    6. Headings updated from the new velocities.
"""
from __future__ import annotations
from dataclasses import dataclass, field
import logging
import math
from typing import Sequence

import numpy as np

from ..core.forces import attractor_accelerations
from ..core.integrators import get_integrator
from ..core.state import PointState
from ..errors import ConfigurationError
from ..profiler import Profiler, section
from ..spatial import make_index
from ..types import BoundingBox, Plane, PointAttractor, Sphere
from ..util import (
    check_dt,
    clamp_length,
    clamp_rows,
    norm,
    readonly,
    require_non_negative,
    require_positive,
    vec3,
)
from . import steering
from .boid import Boid, Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SteeringWeights:
    """Relative weight of each steering behavior (all >= 0)."""
    separation: float = 1.5
    cohesion: float = 1.0
    alignment: float = 1.0
    avoidance: float = 4.0
    leader: float = 3.0
    attractor: float = 1.0
    bounds: float = 1.0

    def __post_init__(self) -> None:
        for name in ("separation", "cohesion", "alignment", "avoidance", "leader", "attractor", "bounds"):
            require_non_negative(f"{name} weight", getattr(self, name))


@dataclass
class FlockConfig:
    """
    Construction-time parameters of a FlockSystem.

    Attributes:
        perception_radius: Neighbors farther than this are ignored (> 0).
        falloff: Width of the band inside perception_radius over which a
                 neighbor's influence fades linearly to zero (0 = hard edge).
        view_angle: Full field-of-view cone angle in radians (2π = all round).
        min_spacing: Separation acts on neighbors closer than this.
        max_speed: Speed clamp applied after integration (> 0).
        max_force: Clamp on the steering acceleration (> 0).
        weights: Per-behavior weights.
        obstacles: Spheres / planes to steer around.
        lookahead: How far ahead, in seconds, boids look for obstacles.
        attractors: Point attractors (strength > 0) and repellers (< 0).
        bounds: Optional box the flock is softly kept inside.
        index: Spatial index kind ("grid", "kdtree", "brute").
        integrator: Scheme name, see core.integrators.INTEGRATORS.
    """
    perception_radius: float = 2.0
    falloff: float = 0.0
    view_angle: float = 2.0 * math.pi
    min_spacing: float = 0.5
    max_speed: float = 5.0
    max_force: float = 10.0
    weights: SteeringWeights = field(default_factory=SteeringWeights)
    obstacles: list[Plane | Sphere] = field(default_factory=list)
    lookahead: float = 1.0
    attractors: list[PointAttractor] = field(default_factory=list)
    bounds: BoundingBox | None = None
    index: str = "grid"
    integrator: str = "semi_implicit"

    def __post_init__(self) -> None:
        self.perception_radius = require_positive("perception_radius", self.perception_radius)
        self.falloff = require_non_negative("falloff", self.falloff)
        if self.falloff > self.perception_radius:
            raise ConfigurationError(
                f"falloff ({self.falloff}) must not exceed perception_radius ({self.perception_radius})"
            )
        self.view_angle = require_positive("view_angle", self.view_angle)
        self.min_spacing = require_non_negative("min_spacing", self.min_spacing)
        self.max_speed = require_positive("max_speed", self.max_speed)
        self.max_force = require_positive("max_force", self.max_force)
        self.lookahead = require_non_negative("lookahead", self.lookahead)
        for ob in self.obstacles:
            if not isinstance(ob, (Plane, Sphere)):
                raise ConfigurationError(f"Flock obstacles must be planes or spheres, got {type(ob).__name__}")
        self._scheme = get_integrator(self.integrator)


@dataclass(frozen=True)
class FlockSnapshot:
    """Read-only per-frame view for renderers."""
    time: float
    positions: np.ndarray
    velocities: np.ndarray
    headings: np.ndarray
    leaders: np.ndarray


class FlockSystem:
    """
    A flock of boids steering by local rules.

    Example:
        flock = FlockSystem([Boid((0, 0, 0), (1, 0, 0)), Boid((1, 0, 0))])
        flock.step(1 / 60)
    """

    def __init__(
        self,
        boids: Sequence[Boid] = (),
        config: FlockConfig | None = None,
        profiler: Profiler | None = None,
    ) -> None:
        self.config = config if config is not None else FlockConfig()
        self.profiler = profiler
        self.time = 0.0
        self.x = np.zeros((0, 3))
        self.v = np.zeros((0, 3))
        self.headings = np.zeros((0, 3))
        self.leaders = np.zeros(0, dtype=bool)
        self.paths: list[Path | None] = []
        self._index = make_index(self.config.index, **self._index_args())
        for b in boids:
            self.add(b)
        logger.debug(
            "FlockSystem created: %d boids (%d leaders), radius=%g index=%s",
            len(self), int(self.leaders.sum()), self.config.perception_radius, self.config.index,
        )

    def _index_args(self) -> dict:
        if self.config.index == "grid":
            return {"cell_size": self.config.perception_radius}
        return {}

    def __len__(self) -> int:
        return len(self.x)

    def add(self, boid: Boid) -> int:
        """Add a boid; returns its index."""
        self.x = np.vstack([self.x, boid.position])
        self.v = np.vstack([self.v, boid.velocity])
        self.headings = np.vstack([self.headings, boid.heading])
        self.leaders = np.append(self.leaders, boid.leader)
        self.paths.append(boid.path)
        if boid.path is not None:
            self.x[-1] = vec3(boid.path(self.time))
        return len(self.x) - 1

    def boid(self, i: int) -> Boid:
        """Copy of boid i."""
        return Boid(self.x[i].copy(), self.v[i].copy(), bool(self.leaders[i]), self.paths[i], self.headings[i].copy())

    # -------------------------------------------------------------------------
    # Simulation
    # -------------------------------------------------------------------------

    def _perceived(self) -> list[np.ndarray]:
        """Neighbor rows of every boid, after the radius and field-of-view filters."""
        cfg = self.config
        self._index.rebuild(self.x)
        out = []
        for i in range(len(self)):
            if self.leaders[i]:
                out.append(np.zeros(0, dtype=np.int64))
                continue
            rows = np.array(
                [r for r, _ in self._index.query_radius(self.x[i], cfg.perception_radius) if r != i],
                dtype=np.int64,
            )
            if len(rows):
                rows = rows[steering.in_view(self.headings[i], self.x[rows] - self.x[i], cfg.view_angle)]
            out.append(rows)
        return out

    def _steer(self, i: int, x: np.ndarray, v: np.ndarray, rows: np.ndarray) -> np.ndarray:
        cfg = self.config
        w = cfg.weights
        p, vel = x[i], v[i]

        avoid = np.zeros(3)
        if cfg.obstacles and w.avoidance > 0.0:
            avoid = clamp_length(w.avoidance * steering.obstacle_avoidance(p, vel, cfg.obstacles, cfg.lookahead), cfg.max_force)

        other = np.zeros(3)
        if len(rows):
            offsets = x[rows] - p
            weights = steering.distance_weights(np.linalg.norm(offsets, axis=1), cfg.perception_radius, cfg.falloff)
            other += w.separation * steering.separation(offsets, cfg.min_spacing, weights)
            other += w.cohesion * steering.cohesion(offsets, weights)
            other += w.alignment * steering.alignment(vel, v[rows], weights)
            lead = self.leaders[rows]
            if w.leader > 0.0 and np.any(lead):
                other += w.leader * steering.cohesion(offsets[lead], weights[lead])
                other += w.leader * steering.alignment(vel, v[rows][lead], weights[lead])
        if cfg.attractors and w.attractor > 0.0:
            other += w.attractor * attractor_accelerations(p[None, :], cfg.attractors)[0]
        if cfg.bounds is not None and w.bounds > 0.0:
            other += w.bounds * cfg.bounds.repulsion(p)[0]

        budget = max(0.0, cfg.max_force - norm(avoid))
        return avoid + clamp_length(other, budget)

    def _derivative(self, perceived: list[np.ndarray]):
        def derivative_fn(state: PointState) -> PointState:
            acc = np.zeros_like(state.x)
            for i, rows in enumerate(perceived):
                if not self.leaders[i]:
                    acc[i] = self._steer(i, state.x, state.v, rows)
            return PointState.rate(state.v, acc)

        return derivative_fn

    def step(self, dt: float) -> None:
        """
        Advance the flock by dt seconds.

        Raises:
            InvalidStepError: dt <= 0; the flock is left unchanged.
        """
        dt = check_dt(dt)
        prof = self.profiler
        if len(self) == 0:
            self.time += dt
            return

        with section(prof, "neighbors"):
            perceived = self._perceived()
        with section(prof, "integrate"):
            new = self.config._scheme(PointState(self.x, self.v), dt, self._derivative(perceived))

        x, v = new.x.copy(), new.v.copy()
        followers = ~self.leaders
        v[followers] = clamp_rows(v[followers], self.config.max_speed)

        t_next = self.time + dt
        for i, path in enumerate(self.paths):
            if path is None:
                continue
            target = vec3(path(t_next))
            v[i] = (target - self.x[i]) / dt
            x[i] = target

        if not np.all(np.isfinite(x)):
            logger.warning("Non-finite boid positions at t=%.6f", t_next)

        # Write phase
        self.x, self.v = x, v
        self.headings = np.array([steering.heading_of(v[i], self.headings[i]) for i in range(len(self))])
        self.time = t_next

    def state_snapshot(self) -> FlockSnapshot:
        """Positions, velocities, headings and leader flags, read-only."""
        leaders = self.leaders.copy()
        leaders.setflags(write=False)
        return FlockSnapshot(
            time=self.time,
            positions=readonly(self.x),
            velocities=readonly(self.v),
            headings=readonly(self.headings),
            leaders=leaders,
        )
