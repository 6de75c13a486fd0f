# MIT License (see LICENSE)
"""
Particle systems.

This subpackage provides:
    - Particle: Independent point mass with mass, drag and lifetime
    - DiskEmitter: Rate-based emitter spawning particles over a disk
    - ParticleConfig: Construction-time parameters
    - ParticleSystem: Emits, integrates, collides and culls particles
    - ParticleSnapshot: Read-only per-frame view
"""
from .particle import Particle
from .emitter import DiskEmitter
from .system import ParticleConfig, ParticleSnapshot, ParticleSystem

__all__ = [
    "Particle",
    "DiskEmitter",
    "ParticleConfig",
    "ParticleSnapshot",
    "ParticleSystem",
]
