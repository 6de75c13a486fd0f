# MIT License (see LICENSE)
"""
Emission policies for the particle system.

An emitter decides how many particles to create each step and with which
initial state. DiskEmitter spawns particles uniformly over a disk, moving
along the disk normal (optionally spread over a cone), with speed,
lifetime, mass and drag drawn uniformly from configurable ranges.

Emission is expressed as a rate in particles per second. The fractional
remainder is carried between steps so a rate of 30/s at 240 Hz produces
exactly 30 particles per simulated second instead of one per step.

Randomness comes from a seeded numpy Generator, so two systems built with
the same seed produce identical particles.
"""
from __future__ import annotations
from dataclasses import dataclass, field
import math

import numpy as np

from ..errors import ConfigurationError
from ..util import vec3, unit, orthonormal_basis, require_non_negative
from .particle import Particle


Range = tuple[float, float]


def _check_range(name: str, r: Range, positive: bool = False) -> Range:
    lo, hi = float(r[0]), float(r[1])
    if hi < lo:
        raise ConfigurationError(f"{name} range must have lo <= hi, got ({lo}, {hi})")
    if positive and lo <= 0.0:
        raise ConfigurationError(f"{name} range must be > 0, got ({lo}, {hi})")
    if not positive and lo < 0.0:
        raise ConfigurationError(f"{name} range must be >= 0, got ({lo}, {hi})")
    return lo, hi


@dataclass
class DiskEmitter:
    """
    Spawns particles on a disk facing along ``normal``.

    Attributes:
        position: Disk center.
        normal: Emission direction (normalized on init).
        radius: Disk radius (>= 0).
        rate: Particles per second (>= 0).
        speed: (min, max) initial speed along the emission direction.
        spread: Half-angle in radians of the emission cone around normal.
        lifetime: (min, max) lifetime in seconds, or None for immortal.
        mass: (min, max) particle mass (> 0).
        drag: (min, max) drag coefficient, or None to use the system's
              drag_coefficient.
        seed: Seed for the random generator.
    """
    position: np.ndarray | tuple[float, float, float] = (0.0, 2.0, 0.0)
    normal: np.ndarray | tuple[float, float, float] = (0.0, 1.0, 0.0)
    radius: float = 1.0
    rate: float = 100.0
    speed: Range = (0.9, 1.1)
    spread: float = 0.0
    lifetime: Range | None = (5.0, 5.0)
    mass: Range = (1.0, 1.0)
    drag: Range | None = None
    seed: int | None = None

    _rng: np.random.Generator = field(init=False, repr=False)
    _carry: float = field(init=False, default=0.0, repr=False)

    def __post_init__(self) -> None:
        self.position = vec3(self.position)
        n = vec3(self.normal)
        if np.linalg.norm(n) < 1e-12:
            raise ConfigurationError("Emitter normal must be non-zero")
        self.normal = unit(n)
        self.radius = require_non_negative("Emitter radius", self.radius)
        self.rate = require_non_negative("Emitter rate", self.rate)
        self.spread = require_non_negative("Emitter spread", self.spread)
        self.speed = _check_range("speed", self.speed)
        self.mass = _check_range("mass", self.mass, positive=True)
        if self.lifetime is not None:
            self.lifetime = _check_range("lifetime", self.lifetime)
        if self.drag is not None:
            self.drag = _check_range("drag", self.drag)
        self._rng = np.random.default_rng(self.seed)
        self._t1, self._t2 = orthonormal_basis(self.normal)

    def count(self, dt: float) -> int:
        """Number of particles due this step; keeps the fractional remainder."""
        self._carry += self.rate * dt
        n = int(math.floor(self._carry))
        self._carry -= n
        return n

    def spawn(self, n: int, default_drag: float = 0.0) -> list[Particle]:
        """Create n particles (not yet registered with any system)."""
        rng = self._rng
        out = []
        for _ in range(n):
            # sqrt for an area-uniform distribution over the disk
            r = self.radius * math.sqrt(rng.random())
            theta = rng.uniform(0.0, 2.0 * math.pi)
            pos = self.position + r * (math.cos(theta) * self._t1 + math.sin(theta) * self._t2)

            direction = self._direction(rng)
            speed = rng.uniform(*self.speed)
            lifetime = rng.uniform(*self.lifetime) if self.lifetime is not None else None
            drag = rng.uniform(*self.drag) if self.drag is not None else default_drag
            out.append(Particle(
                position=pos,
                velocity=speed * direction,
                mass=rng.uniform(*self.mass),
                drag=drag,
                lifetime=lifetime,
            ))
        return out

    def _direction(self, rng: np.random.Generator) -> np.ndarray:
        if self.spread <= 0.0:
            return self.normal.copy()
        # Uniform over the spherical cap of half-angle `spread`
        cos_a = rng.uniform(math.cos(self.spread), 1.0)
        sin_a = math.sqrt(max(0.0, 1.0 - cos_a * cos_a))
        phi = rng.uniform(0.0, 2.0 * math.pi)
        return (
            cos_a * self.normal
            + sin_a * (math.cos(phi) * self._t1 + math.sin(phi) * self._t2)
        )
