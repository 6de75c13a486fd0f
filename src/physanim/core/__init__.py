# MIT License (see LICENSE)
"""
Core numerical components shared by every simulation.

This subpackage provides:
    - State protocol and PointState: What the integrators advance.
    - Integrators: semi-implicit Euler (default), Euler, RK4, adaptive RK4.
    - Force generators: Gravity, quadratic drag, attractor fields, struts,
      torsional hinges.

Typical usage:
    from physanim.core import PointState, integrate

    state = PointState(x, v)
    state = integrate(state, 1 / 240, lambda s: PointState.rate(s.v, accel(s.x)))
"""
from .state import State, MeasurableState, PointState
from .forces import (
    gravity_forces,
    quadratic_drag_forces,
    attractor_accelerations,
    axis_attractor_accelerations,
    strut_forces,
    hinge_angles,
    hinge_forces,
)
from .integrators import (
    INTEGRATORS,
    euler_step,
    semi_implicit_euler_step,
    rk4_step,
    rk4_adaptive_step,
    integrate_adaptive,
    get_integrator,
    integrate,
)

__all__ = [
    # State
    "State",
    "MeasurableState",
    "PointState",
    # Forces
    "gravity_forces",
    "quadratic_drag_forces",
    "attractor_accelerations",
    "axis_attractor_accelerations",
    "strut_forces",
    "hinge_angles",
    "hinge_forces",
    # Integrators
    "INTEGRATORS",
    "euler_step",
    "semi_implicit_euler_step",
    "rk4_step",
    "rk4_adaptive_step",
    "integrate_adaptive",
    "get_integrator",
    "integrate",
]
