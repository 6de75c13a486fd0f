# MIT License (see LICENSE)
"""
Numerical integrators, written once against the State protocol.

Every scheme has the signature ``scheme(state, dt, derivative_fn) -> new_state``
where ``derivative_fn(state)`` returns the rate of change of the given
state (velocities and accelerations from gravity, springs, steering, ...).
The integrators know nothing about particles, meshes, flocks or rigid
bodies; see core/state.py for the protocol.

Available integrators:
- semi_implicit_euler_step: Symplectic Euler, velocity first (default)
- euler_step: Fully explicit forward Euler
- rk4_step: Fixed-step 4th-order Runge-Kutta (high accuracy)
- rk4_adaptive_step: Adaptive RK4 with error control (accuracy + efficiency)

NaN/Inf returned by derivative_fn is propagated, never clamped. Keeping
forces bounded is the calling simulation's job.

Reference:
    Runge-Kutta methods: https://en.wikipedia.org/wiki/Runge-Kutta_methods
    Semi-implicit Euler: https://en.wikipedia.org/wiki/Semi-implicit_Euler_method
"""
from __future__ import annotations
from typing import Callable

from ..errors import ConfigurationError
from ..util import check_dt
from .state import DerivativeFn, MeasurableState, S


def euler_step(state: S, dt: float, derivative_fn: DerivativeFn) -> S:
    """
    Advance state by dt using forward (explicit) Euler: S_new = S + dt * S'.

    First order and unconditionally unstable for undamped oscillators;
    kept for comparison with the stable schemes.
    """
    dt = check_dt(dt)
    return state.combine(derivative_fn(state), dt)


def semi_implicit_euler_step(state: S, dt: float, derivative_fn: DerivativeFn) -> S:
    """
    Advance state by dt using semi-implicit (symplectic) Euler.

    The velocity is updated first from the acceleration at the current
    state, then the position is updated using the new velocity:
        v(t+dt) = v(t) + dt * a(x(t), v(t))
        x(t+dt) = x(t) + dt * v(t+dt)

    This is the default scheme: it evaluates derivative_fn once and stays
    bounded for stiff spring systems where explicit Euler blows up.
    """
    dt = check_dt(dt)
    return state.kick(derivative_fn(state), dt).drift(dt)


def rk4_step(state: S, dt: float, derivative_fn: DerivativeFn) -> S:
    """
    Advance state by dt using classical 4th-order Runge-Kutta.

    RK4 evaluates derivatives at 4 points within the timestep (t, twice at
    t + dt/2, and t + dt) and combines them with weights (1, 2, 2, 1)/6 to
    achieve O(dt⁵) local error.

    Reference:
        https://en.wikipedia.org/wiki/Runge-Kutta_methods#The_Runge-Kutta_method
    """
    dt = check_dt(dt)

    # RK4 stages
    k1 = derivative_fn(state)
    k2 = derivative_fn(state.combine(k1, 0.5 * dt))
    k3 = derivative_fn(state.combine(k2, 0.5 * dt))
    k4 = derivative_fn(state.combine(k3, dt))

    # Weighted combination
    return (
        state.combine(k1, dt / 6.0)
        .combine(k2, dt / 3.0)
        .combine(k3, dt / 3.0)
        .combine(k4, dt / 6.0)
    )


def rk4_adaptive_step(
    state: MeasurableState,
    dt: float,
    derivative_fn: DerivativeFn,
    tol: float,
    dt_min: float,
    dt_max: float,
) -> tuple[MeasurableState, float, float]:
    """
    Adaptive RK4 using step-doubling for error estimation.

    Compares a single dt step against two dt/2 steps. If the difference
    exceeds tolerance, the step is rejected and dt is reduced.

    Deterministic acceptance rule (for reproducibility):
        Accept if error ≤ tol OR dt ≤ dt_min

    The next dt is scaled using the standard formula for RK4 (order 4):
        dt_new = dt × (tol / error)^(1/5)

    Args:
        state: State to integrate; must implement ``distance``.
        dt: Proposed timestep.
        derivative_fn: Rate of change at a given state.
        tol: Error tolerance for step acceptance.
        dt_min: Minimum allowed timestep (forces acceptance).
        dt_max: Maximum allowed timestep.

    Returns:
        Tuple (new_state, accepted_dt, suggested_next_dt):
        - new_state: Advanced state on accept, the input state on reject
        - accepted_dt: Actual time advanced (0 if rejected, dt if accepted)
        - suggested_next_dt: Recommended dt for next call
    """
    dt = check_dt(dt)

    # Full step
    full = rk4_step(state, dt, derivative_fn)

    # Two half-steps (more accurate estimate)
    half = rk4_step(state, 0.5 * dt, derivative_fn)
    half = rk4_step(half, 0.5 * dt, derivative_fn)

    err = half.distance(full)

    if err <= tol or dt <= dt_min:
        # Accept the two-half-steps result (it's the more accurate one)
        if err < 1e-18:
            scale = 2.0  # Error negligible, can safely double
        else:
            scale = float((tol / err) ** 0.2)

        # Clamp scale factor to avoid wild swings
        scale = max(0.5, min(2.0, 0.9 * scale))
        dt_next = max(dt_min, min(dt_max, dt * scale))
        return half, dt, dt_next

    # Reject: keep the original state and halve dt
    return state, 0.0, max(dt_min, dt * 0.5)


def integrate_adaptive(
    state: MeasurableState,
    dt: float,
    derivative_fn: DerivativeFn,
    tol: float = 1e-9,
    dt_min: float = 1e-5,
    dt_max: float = 1 / 60,
    max_attempts: int = 64,
) -> MeasurableState:
    """
    Cover a full frame dt with as many adaptive RK4 substeps as needed.

    The final substep is truncated so the covered time equals dt exactly.
    Gives up refining after max_attempts substeps and finishes the frame
    with one plain RK4 step.
    """
    dt = check_dt(dt)
    remaining = dt
    local_dt = min(dt, dt_max)
    attempts = 0
    while remaining > 1e-15 and attempts < max_attempts:
        h = min(remaining, local_dt)
        state, accepted, local_dt = rk4_adaptive_step(state, h, derivative_fn, tol, dt_min, dt_max)
        remaining -= accepted
        attempts += 1
    if remaining > 1e-15:
        state = rk4_step(state, remaining, derivative_fn)
    return state


Scheme = Callable[[S, float, DerivativeFn], S]

INTEGRATORS: dict[str, Scheme] = {
    "euler": euler_step,
    "semi_implicit": semi_implicit_euler_step,
    "rk4": rk4_step,
    "rk4_adaptive": integrate_adaptive,
}


def get_integrator(name: str) -> Scheme:
    """Look up a scheme by name, raising ConfigurationError for unknown names."""
    try:
        return INTEGRATORS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown integrator: {name!r} (expected one of {sorted(INTEGRATORS)})"
        ) from None


def integrate(state: S, dt: float, derivative_fn: DerivativeFn, method: str = "semi_implicit") -> S:
    """
    Advance any conforming state by dt with the named scheme.

    Args:
        state: Current state (left unmodified).
        dt: Timestep in seconds. Must be > 0.
        derivative_fn: Computes the rate of change at a given state.
        method: "semi_implicit" (default), "euler", "rk4" or "rk4_adaptive".

    Returns:
        The advanced state.

    Raises:
        InvalidStepError: dt <= 0 or not finite.
        ConfigurationError: unknown method.
    """
    return get_integrator(method)(state, dt, derivative_fn)
