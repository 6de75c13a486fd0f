# MIT License (see LICENSE)
"""
Deformable spring-mass-damper meshes.

This subpackage provides:
    - MassPoint, Strut, StrutKind: Mesh building blocks
    - MeshConfig, StrutParams: Construction-time parameters
    - DeformableMesh: Simulates struts, aerodynamics and collisions
    - make_cloth: Rectangular cloth with tensile, shear and bend struts
    - face_aero_forces: Per-face drag and lift
"""
from .springy import (
    DeformableMesh,
    MassPoint,
    MeshConfig,
    MeshSnapshot,
    Strut,
    StrutKind,
    StrutParams,
)
from .cloth import make_cloth
from .aero import face_aero_forces, face_normals_areas

__all__ = [
    "DeformableMesh",
    "MassPoint",
    "MeshConfig",
    "MeshSnapshot",
    "Strut",
    "StrutKind",
    "StrutParams",
    "make_cloth",
    "face_aero_forces",
    "face_normals_areas",
]
