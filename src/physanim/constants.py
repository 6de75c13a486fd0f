# MIT License (see LICENSE)
"""
Default physical constants and numeric tolerances used throughout the core.

Values use SI units (meters, seconds, kilograms). The y axis points up.
"""
from __future__ import annotations

# Standard gravitational acceleration, m/s².
GRAVITY: tuple[float, float, float] = (0.0, -9.81, 0.0)

# Distance a colliding point is pushed off a surface after projection, so the
# next step does not register the same contact from below the surface.
CONTACT_EPSILON: float = 1e-4

# Edges, faces and separations shorter than this are treated as degenerate
# and contribute zero force.
GEOMETRY_EPSILON: float = 1e-9

# Softening for inverse-square fields: r² → r² + ε².
FIELD_SOFTENING: float = 1e-2

# Reference length for length-scaled strut stiffness. A strut of this rest
# length gets exactly the configured stiffness; shorter struts are stiffer.
NOMINAL_STRUT_LENGTH: float = 1.0
