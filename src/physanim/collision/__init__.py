# MIT License (see LICENSE)
"""
Collision handling against environment primitives.

This subpackage provides:
    - collide_points: Project penetrating points out of a Plane or Sphere
      and apply restitution / friction to their velocity.
    - collide_all: The same against a list of primitives.

Typical usage:
    from physanim.collision import collide_all
    from physanim.types import Plane

    floor = Plane(point=(0, 0, 0), normal=(0, 1, 0))
    contacts = collide_all(positions, velocities, [floor])
"""
from .response import collide_points, collide_all

__all__ = [
    "collide_points",
    "collide_all",
]
