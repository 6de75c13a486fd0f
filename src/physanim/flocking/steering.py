# MIT License (see LICENSE)
"""
Steering behaviors for flocking.

Every function returns an acceleration-like steering vector for ONE boid,
given the offsets (neighbor position - boid position) and velocities of the
neighbors it perceives. Weights and clamping are applied by the flock.

Key concepts:
- Separation pushes away from neighbors closer than a minimum spacing with
  magnitude 1/d, so the push grows as boids close in.
- Cohesion steers toward the centroid of the perceived neighbors.
- Alignment steers the velocity toward the neighbors' mean velocity.
- Obstacle avoidance looks ahead along the current velocity and steers
  sideways away from anything that would be hit within ``lookahead``
  seconds; the closer the predicted hit, the harder the steer.

Reference:
    Reynolds, "Flocks, Herds, and Schools: A Distributed Behavioral Model",
    SIGGRAPH 1987.
"""
from __future__ import annotations
import math
from typing import Iterable

import numpy as np

from ..constants import GEOMETRY_EPSILON
from ..types import Plane, Sphere
from ..util import norm, orthonormal_basis, unit


def distance_weights(dists: np.ndarray, radius: float, falloff: float) -> np.ndarray:
    """
    Influence of each neighbor by distance.

    1 up to ``radius - falloff``, then linearly down to 0 at ``radius``.
    """
    if falloff <= 0.0:
        return np.ones_like(dists)
    return np.clip((radius - dists) / falloff, 0.0, 1.0)


def in_view(heading: np.ndarray, offsets: np.ndarray, view_angle: float) -> np.ndarray:
    """
    Mask of offsets inside the field-of-view cone around heading.

    ``view_angle`` is the full cone angle in radians; 2π or more sees all
    around. A boid with no heading yet, or a neighbor at the same spot,
    always passes.
    """
    n = len(offsets)
    if view_angle >= 2.0 * math.pi or n == 0 or _is_zero(heading):
        return np.ones(n, dtype=bool)
    lengths = np.linalg.norm(offsets, axis=1)
    cos = np.ones(n)
    ok = lengths > GEOMETRY_EPSILON
    cos[ok] = (offsets[ok] @ heading) / lengths[ok]
    return cos >= math.cos(0.5 * view_angle)


def _is_zero(v: np.ndarray) -> bool:
    return float(np.dot(v, v)) < GEOMETRY_EPSILON * GEOMETRY_EPSILON


def separation(offsets: np.ndarray, min_spacing: float, weights: np.ndarray | None = None) -> np.ndarray:
    """
    Sum of -unit(d) / |d| over neighbors closer than min_spacing.

    Coincident neighbors have no defined direction and are skipped.
    """
    out = np.zeros(3)
    if len(offsets) == 0:
        return out
    d = np.linalg.norm(offsets, axis=1)
    close = (d < min_spacing) & (d > GEOMETRY_EPSILON)
    if not np.any(close):
        return out
    w = np.ones(len(d)) if weights is None else weights
    # -unit(d) / |d| == -d / |d|²
    return -np.sum(offsets[close] * (w[close] / (d[close] * d[close]))[:, None], axis=0)


def cohesion(offsets: np.ndarray, weights: np.ndarray | None = None) -> np.ndarray:
    """Vector from the boid to the (weighted) centroid of its neighbors."""
    if len(offsets) == 0:
        return np.zeros(3)
    if weights is None:
        return offsets.mean(axis=0)
    total = float(weights.sum())
    if total <= 0.0:
        return np.zeros(3)
    return (offsets * weights[:, None]).sum(axis=0) / total


def alignment(velocity: np.ndarray, neighbor_velocities: np.ndarray, weights: np.ndarray | None = None) -> np.ndarray:
    """Difference between the neighbors' (weighted) mean velocity and the boid's own."""
    if len(neighbor_velocities) == 0:
        return np.zeros(3)
    if weights is None:
        return neighbor_velocities.mean(axis=0) - velocity
    total = float(weights.sum())
    if total <= 0.0:
        return np.zeros(3)
    return (neighbor_velocities * weights[:, None]).sum(axis=0) / total - velocity


def avoid_sphere(position: np.ndarray, velocity: np.ndarray, sphere: Sphere, lookahead: float) -> np.ndarray:
    """
    Lateral steer away from a sphere the boid is heading into.

    With v split into the part toward the center (v_i) and the rest (v_t),
    the surface is reached after t = (|c - p| - r) / |v_i|. If drifting
    sideways for t seconds already clears the sphere (t |v_t| > r) nothing
    is needed; otherwise steer along v_t with
        a = 2 (r - t |v_t|) / t²
    which is the constant acceleration that clears the radius in time.
    """
    to_center = sphere.center - position
    dist = norm(to_center)
    if dist < GEOMETRY_EPSILON:
        return np.zeros(3)
    toward = to_center / dist
    closing = float(np.dot(velocity, toward))
    if closing <= GEOMETRY_EPSILON:
        return np.zeros(3)
    v_t = velocity - closing * toward
    t = (dist - sphere.radius) / closing
    if t > lookahead:
        return np.zeros(3)
    t = max(t, 1e-3)
    lateral = norm(v_t)
    if t * lateral > sphere.radius:
        return np.zeros(3)
    # Head-on: any sideways direction will do
    side = v_t / lateral if lateral > GEOMETRY_EPSILON else orthonormal_basis(toward)[0]
    return 2.0 * (sphere.radius - t * lateral) / (t * t) * side


def avoid_plane(position: np.ndarray, velocity: np.ndarray, plane: Plane, lookahead: float) -> np.ndarray:
    """
    Steer off a plane the boid would cross within lookahead seconds.

    Removes the approaching normal speed over the remaining time to impact,
    so urgency grows as the hit gets closer.
    """
    vn = float(np.dot(velocity, plane.normal))
    if vn >= -GEOMETRY_EPSILON:
        return np.zeros(3)
    dist = float(plane.signed_distance(position)[0])
    t = dist / -vn
    if t > lookahead:
        return np.zeros(3)
    t = max(t, 1e-3)
    return (-vn / t) * plane.normal


def obstacle_avoidance(
    position: np.ndarray,
    velocity: np.ndarray,
    obstacles: Iterable[Plane | Sphere],
    lookahead: float,
) -> np.ndarray:
    """Summed avoidance steer against every obstacle."""
    out = np.zeros(3)
    for ob in obstacles:
        if isinstance(ob, Sphere):
            out += avoid_sphere(position, velocity, ob, lookahead)
        else:
            out += avoid_plane(position, velocity, ob, lookahead)
    return out


def heading_of(velocity: np.ndarray, previous: np.ndarray) -> np.ndarray:
    """Unit direction of travel, or the previous heading while stopped."""
    if _is_zero(velocity):
        return previous
    return unit(velocity)
