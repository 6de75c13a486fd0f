# MIT License (see LICENSE)
"""
Flocking (boids).

This subpackage provides:
    - Boid: Position, velocity, heading; optional leader path
    - FlockConfig, SteeringWeights: Construction-time parameters
    - FlockSystem: Steers followers, moves leaders, clamps speed
    - steering: The individual steering behaviors
"""
from .boid import Boid
from .flock import FlockConfig, FlockSnapshot, FlockSystem, SteeringWeights
from . import steering

__all__ = [
    "Boid",
    "FlockConfig",
    "FlockSnapshot",
    "FlockSystem",
    "SteeringWeights",
    "steering",
]
