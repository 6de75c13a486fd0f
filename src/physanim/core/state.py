# MIT License (see LICENSE)
"""
State abstraction shared by every integrator.

A simulation describes itself to the integrators through a value that
implements the ``State`` protocol. The integrators never look inside a
state: they only ask it to combine itself with a scaled rate of change.
A rate is a value of the same type whose components hold time
derivatives (dx/dt, dv/dt, ...), so "state + h * rate" is well defined
for any fractional h, including the half steps RK4 needs.

Mechanical states are split into position-like and velocity-like parts so
that the symplectic (semi-implicit) Euler scheme can update velocity first
(``kick``) and then position from the new velocity (``drift``).

Reference:
    Keyser & House, "Foundations of Physically Based Modeling and
    Animation", 6.2 "Expanding the Concept of State".
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Protocol, TypeVar

import numpy as np

from ..util import f64

S = TypeVar("S", bound="State")


class State(Protocol):
    """Anything the integrators can advance."""

    def combine(self: S, rate: S, h: float) -> S:
        """Return self + h * rate (all components)."""
        ...

    def kick(self: S, rate: S, h: float) -> S:
        """Return a copy with only the velocity-like components advanced by h * rate."""
        ...

    def drift(self: S, h: float) -> S:
        """Return a copy with position-like components advanced using this state's own velocity."""
        ...


class MeasurableState(State, Protocol):
    """A state that can report its distance to another, for error control."""

    def distance(self: S, other: S) -> float:
        ...


# derivative_fn(state) -> rate
DerivativeFn = Callable[[S], S]


@dataclass(frozen=True)
class PointState:
    """
    Positions and velocities of N point masses.

    Attributes:
        x: Positions, shape (N, 3).
        v: Velocities, shape (N, 3).

    As a rate, ``x`` holds dx/dt (velocities) and ``v`` holds dv/dt
    (accelerations).
    """
    x: np.ndarray
    v: np.ndarray

    def __post_init__(self) -> None:
        object.__setattr__(self, "x", f64(self.x).reshape(-1, 3))
        object.__setattr__(self, "v", f64(self.v).reshape(-1, 3))

    def __len__(self) -> int:
        return len(self.x)

    def combine(self, rate: PointState, h: float) -> PointState:
        return PointState(self.x + h * rate.x, self.v + h * rate.v)

    def kick(self, rate: PointState, h: float) -> PointState:
        return PointState(self.x, self.v + h * rate.v)

    def drift(self, h: float) -> PointState:
        return PointState(self.x + h * self.v, self.v)

    def distance(self, other: PointState) -> float:
        """Error measure between two states, used by adaptive stepping."""
        return float(np.linalg.norm(self.x - other.x) + np.linalg.norm(self.v - other.v))

    @classmethod
    def rate(cls, velocity: np.ndarray, acceleration: np.ndarray) -> PointState:
        """Build the time derivative (dx/dt, dv/dt) of a point state."""
        return cls(velocity, acceleration)
