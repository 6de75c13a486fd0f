# MIT License (see LICENSE)
"""
The Particle entity: an independent point mass.

A particle carries its own mass and drag coefficient so emitters can
scatter them over a range. ``lifetime`` of None means the particle lives
until it leaves the bounding volume (if any).
"""
from __future__ import annotations
from dataclasses import dataclass, field

import numpy as np

from ..util import f64, vec3, require_non_negative, require_positive


@dataclass
class Particle:
    """
    A point mass advanced by the ParticleSystem.

    Attributes:
        position: Position [x, y, z] in meters.
        velocity: Velocity [vx, vy, vz] in m/s.
        mass: Mass in kg (> 0).
        drag: Quadratic drag coefficient (>= 0).
        lifetime: Seconds the particle lives, or None for no limit.
        age: Seconds since the particle was created.
        force: Force accumulated at the start of the last step
               (gravity + drag + fields), for inspection.
        id: Unique identifier assigned by the ParticleSystem.
    """
    position: np.ndarray | tuple[float, float, float] = (0.0, 0.0, 0.0)
    velocity: np.ndarray | tuple[float, float, float] = (0.0, 0.0, 0.0)
    mass: float = 1.0
    drag: float = 0.0
    lifetime: float | None = None
    age: float = 0.0

    # Runtime state (not user-specified)
    force: np.ndarray = field(default_factory=lambda: np.zeros(3, dtype=np.float64))
    id: int = -1

    def __post_init__(self) -> None:
        """Convert vectors to float64 arrays and validate scalars."""
        self.position = vec3(self.position)
        self.velocity = vec3(self.velocity)
        self.force = f64(self.force)
        self.mass = require_positive("Particle mass", self.mass)
        self.drag = require_non_negative("Particle drag", self.drag)
        if self.lifetime is not None:
            self.lifetime = require_non_negative("Particle lifetime", self.lifetime)

    @property
    def expired(self) -> bool:
        return self.lifetime is not None and self.age >= self.lifetime
