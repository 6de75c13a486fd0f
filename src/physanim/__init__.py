# MIT License (see LICENSE)
"""
physanim - A physics-simulation core for computer animation.

This package advances particle systems, spring-mass-damper meshes, flocks
and rigid bodies through time with a shared set of numerical integrators.
Renderers read a per-frame snapshot from each simulation.

Main entry points:
    - ParticleSystem, DiskEmitter: Emitted particles with lifetimes.
    - DeformableMesh, make_cloth: Struts, aerodynamics and collisions.
    - FlockSystem, Boid: Steering behaviors with leaders and obstacles.
    - RigidBodySystem, RigidBody: Quaternion-oriented rigid bodies.
    - Plane, Sphere, TriangleMesh, Material: Collision primitives.

Submodules:
    - core: State protocol, integrators and force generators.
    - spatial: Neighbor queries (uniform grid, k-d tree).
    - collision: Point-versus-primitive response.

Example:
    from physanim import make_cloth, MeshConfig, Plane

    cloth = make_cloth(20, 20, 0.05, config=MeshConfig(colliders=[Plane()]))
    for _ in range(240):
        cloth.step(1 / 240)
    frame = cloth.state_snapshot()

The package logs through the standard ``logging`` module under the
``physanim`` logger and never configures handlers itself.
"""
import logging

from .errors import PhysanimError, ConfigurationError, InvalidStepError
from .materials import Material
from .types import Plane, Sphere, TriangleMesh, PointAttractor, BoundingBox
from .core import PointState, integrate
from .particles import Particle, DiskEmitter, ParticleConfig, ParticleSystem
from .mesh import DeformableMesh, MassPoint, MeshConfig, Strut, StrutKind, StrutParams, make_cloth
from .flocking import Boid, FlockConfig, FlockSystem, SteeringWeights
from .rigid import RigidBody, RigidBodyConfig, RigidBodySystem
from .profiler import Profiler

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Errors
    "PhysanimError",
    "ConfigurationError",
    "InvalidStepError",
    # Environment
    "Material",
    "Plane",
    "Sphere",
    "TriangleMesh",
    "PointAttractor",
    "BoundingBox",
    # Integration
    "PointState",
    "integrate",
    # Particles
    "Particle",
    "DiskEmitter",
    "ParticleConfig",
    "ParticleSystem",
    # Meshes
    "DeformableMesh",
    "MassPoint",
    "MeshConfig",
    "Strut",
    "StrutKind",
    "StrutParams",
    "make_cloth",
    # Flocking
    "Boid",
    "FlockConfig",
    "FlockSystem",
    "SteeringWeights",
    # Rigid bodies
    "RigidBody",
    "RigidBodyConfig",
    "RigidBodySystem",
    # Profiling
    "Profiler",
]
