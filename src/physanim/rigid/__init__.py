# MIT License (see LICENSE)
"""
Single rigid bodies in 3D.

This subpackage provides:
    - RigidBody: Mass, inertia tensor, quaternion orientation, momenta
    - RigidState: Integrable (x, q, P, L) state
    - RigidBodySystem, RigidBodyConfig: Steps bodies under gravity and loads
    - box_inertia, sphere_inertia: Common inertia tensors
"""
from .body import RigidBody, RigidState, box_inertia, sphere_inertia
from .system import RigidBodyConfig, RigidBodySystem, RigidSnapshot

__all__ = [
    "RigidBody",
    "RigidState",
    "RigidBodyConfig",
    "RigidBodySystem",
    "RigidSnapshot",
    "box_inertia",
    "sphere_inertia",
]
