# MIT License (see LICENSE)
"""
Material properties for collision response.

Materials define surface interaction properties used when a particle or
mesh point is pushed out of a collision primitive, including friction and
restitution (bounciness).
"""
from __future__ import annotations
from dataclasses import dataclass

from .util import require_non_negative, require_unit_range


@dataclass(frozen=True)
class Material:
    """
    Physical surface properties for collision response.

    Attributes:
        friction: Coefficient of friction μ (Coulomb friction model).
                  Range [0, 1+], where 0 = frictionless, 1 = high friction.
                  Values > 1 are physically unusual but allowed.
        restitution: Coefficient of restitution e (bounciness).
                     Range [0, 1], where 0 = perfectly inelastic (no bounce),
                     1 = perfectly elastic (full normal speed preserved).

    Note:
        The tangential speed lost to friction is μ times the normal speed at
        impact, capped at the tangential speed itself so friction can stop a
        sliding point but never reverse it. See collision/response.py.
    """
    friction: float = 0.3
    restitution: float = 0.5

    def __post_init__(self) -> None:
        require_non_negative("friction", self.friction)
        require_unit_range("restitution", self.restitution)
