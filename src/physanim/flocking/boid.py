# MIT License (see LICENSE)
"""
The Boid entity.

A boid is a point with a velocity and a heading. Followers steer by the
flocking rules; leaders (``leader=True``) ignore the flock and either
follow a scripted ``path(t) -> position`` or coast at constant velocity.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Callable

import numpy as np

from ..util import unit, vec3

Path = Callable[[float], "np.ndarray | tuple[float, float, float]"]


@dataclass
class Boid:
    """
    Attributes:
        position: Position [x, y, z] in meters.
        velocity: Velocity in m/s.
        leader: Leaders are followed by the flock and not steered by it.
        path: Scripted position as a function of simulated time (leaders).
        heading: Unit direction of travel; keeps the last non-zero
                 direction while the boid is stopped.
    """
    position: np.ndarray | tuple[float, float, float] = (0.0, 0.0, 0.0)
    velocity: np.ndarray | tuple[float, float, float] = (0.0, 0.0, 0.0)
    leader: bool = False
    path: Path | None = None
    heading: np.ndarray | tuple[float, float, float] | None = None

    def __post_init__(self) -> None:
        self.position = vec3(self.position)
        self.velocity = vec3(self.velocity)
        self.heading = unit(self.velocity) if self.heading is None else unit(vec3(self.heading))
        if self.path is not None:
            self.leader = True
