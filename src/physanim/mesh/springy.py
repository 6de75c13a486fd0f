# MIT License (see LICENSE)
"""
Spring-mass-damper meshes (cloth, soft bodies).

A DeformableMesh owns one contiguous array of point positions, velocities
and masses. Struts reference points by index only, never by object, so a
strut can never outlive or keep alive the points it connects and the whole
force pass is a handful of vectorized numpy operations.

Step pipeline (repeated ``substeps`` times with dt / substeps):
    1. Read phase: snapshot positions and velocities into a PointState.
    2. Forces: gravity, damped strut springs, torsional hinges, per-face
       drag and lift.
       Force on a pinned point is discarded.
    3. Integration of the non-pinned points via the configured scheme.
    4. Optional cap on per-step displacement.
    5. Collision response against planes, spheres and triangle meshes,
       then point-point self-collision between points not joined by a
       strut.
    6. Write phase: results become the mesh's new state.

Strut law for endpoints i, j with u = unit(x_j - x_i):
    f_i = k (|x_j - x_i| - L0) u + c ((v_j - v_i) · u) u,   f_j = -f_i

Reference:
    Keyser & House, "Foundations of Physically Based Modeling and
    Animation", chapter 8 "Springy Meshes".
"""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Iterable, Sequence

import numpy as np

from ..collision.response import collide_all
from ..constants import GEOMETRY_EPSILON, GRAVITY, NOMINAL_STRUT_LENGTH
from ..core.forces import gravity_forces, hinge_angles, hinge_forces, strut_forces
from ..core.integrators import get_integrator
from ..core.state import PointState
from ..errors import ConfigurationError
from ..materials import Material
from ..profiler import Profiler, section
from ..spatial import make_index
from ..types import Primitive
from ..util import (
    check_dt,
    f64,
    readonly,
    require_non_negative,
    require_positive,
    require_unit_range,
    vec3,
)
from .aero import face_aero_forces

logger = logging.getLogger(__name__)


class StrutKind(Enum):
    """What deformation a strut resists."""
    TENSILE = "tensile"
    SHEAR = "shear"
    BEND = "bend"


@dataclass
class MassPoint:
    """
    A mesh vertex with mass.

    Attributes:
        position: Position [x, y, z] in meters.
        velocity: Velocity in m/s.
        mass: Mass in kg (> 0).
        pinned: Pinned points never move.
    """
    position: np.ndarray | tuple[float, float, float] = (0.0, 0.0, 0.0)
    velocity: np.ndarray | tuple[float, float, float] = (0.0, 0.0, 0.0)
    mass: float = 1.0
    pinned: bool = False

    def __post_init__(self) -> None:
        self.position = vec3(self.position)
        self.velocity = vec3(self.velocity)
        self.mass = require_positive("MassPoint mass", self.mass)


@dataclass(frozen=True)
class Strut:
    """
    Damped spring between points i and j.

    The rest length is fixed when the strut is created.
    """
    i: int
    j: int
    rest_length: float
    stiffness: float
    damping: float = 0.0
    kind: StrutKind = StrutKind.TENSILE

    def __post_init__(self) -> None:
        if self.i == self.j:
            raise ConfigurationError(f"Strut endpoints must differ, got ({self.i}, {self.j})")
        require_positive("Strut rest_length", self.rest_length)
        require_positive("Strut stiffness", self.stiffness)
        require_non_negative("Strut damping", self.damping)

    @property
    def key(self) -> tuple[int, int]:
        """Endpoint pair in ascending order; equal for (i, j) and (j, i)."""
        return (self.i, self.j) if self.i < self.j else (self.j, self.i)


@dataclass(frozen=True)
class StrutParams:
    """Stiffness (N/m, > 0) and damping (N·s/m, >= 0) for one strut kind."""
    stiffness: float
    damping: float = 0.0

    def __post_init__(self) -> None:
        require_positive("stiffness", self.stiffness)
        require_non_negative("damping", self.damping)


@dataclass
class MeshConfig:
    """
    Construction-time parameters of a DeformableMesh.

    Attributes:
        gravity: Uniform gravitational acceleration.
        tensile, shear, bend: Spring parameters per strut kind, used by
            the builders (from_triangles, make_cloth).
        torsion_stiffness, torsion_damping: Torsional springs across every
            edge shared by two faces (0 disables), resisting changes of
            the fold angle from the one at construction.
        length_scaled: Scale a strut's stiffness and damping by
            NOMINAL_STRUT_LENGTH / rest_length so refining a mesh keeps
            its overall stiffness.
        wind: Uniform wind velocity for the aerodynamic model.
        drag_coefficient, lift_coefficient: Per-face aerodynamic
            coefficients (0 disables).
        colliders: Planes, spheres and triangle meshes the mesh collides with.
        material: Overrides every collider's material when given.
        self_collision_radius: Points not joined by a strut are kept at
            least twice this apart (0 disables).
        self_restitution: Bounciness of point-point contacts in [0, 1].
        index: Spatial index kind for self-collision ("grid", "kdtree").
        max_displacement: Cap on how far a point moves in one substep; a
            capped point's velocity is scaled down with its displacement.
        substeps: Fixed number of substeps per step (>= 1).
        integrator: Scheme name, see core.integrators.INTEGRATORS.
    """
    gravity: np.ndarray | tuple[float, float, float] = GRAVITY
    tensile: StrutParams = field(default_factory=lambda: StrutParams(2000.0, 5.0))
    shear: StrutParams = field(default_factory=lambda: StrutParams(500.0, 2.0))
    bend: StrutParams = field(default_factory=lambda: StrutParams(100.0, 0.5))
    torsion_stiffness: float = 0.0
    torsion_damping: float = 0.0
    length_scaled: bool = False
    wind: np.ndarray | tuple[float, float, float] = (0.0, 0.0, 0.0)
    drag_coefficient: float = 0.0
    lift_coefficient: float = 0.0
    colliders: list[Primitive] = field(default_factory=list)
    material: Material | None = None
    self_collision_radius: float = 0.0
    self_restitution: float = 0.0
    index: str = "grid"
    max_displacement: float | None = None
    substeps: int = 1
    integrator: str = "semi_implicit"

    def __post_init__(self) -> None:
        self.gravity = vec3(self.gravity)
        self.wind = vec3(self.wind)
        self.drag_coefficient = require_non_negative("drag_coefficient", self.drag_coefficient)
        self.lift_coefficient = require_non_negative("lift_coefficient", self.lift_coefficient)
        self.torsion_stiffness = require_non_negative("torsion_stiffness", self.torsion_stiffness)
        self.torsion_damping = require_non_negative("torsion_damping", self.torsion_damping)
        self.self_collision_radius = require_non_negative("self_collision_radius", self.self_collision_radius)
        self.self_restitution = require_unit_range("self_restitution", self.self_restitution)
        if self.max_displacement is not None:
            self.max_displacement = require_positive("max_displacement", self.max_displacement)
        if int(self.substeps) < 1:
            raise ConfigurationError(f"substeps must be >= 1, got {self.substeps}")
        self.substeps = int(self.substeps)
        self._scheme = get_integrator(self.integrator)

    def params(self, kind: StrutKind) -> StrutParams:
        return {
            StrutKind.TENSILE: self.tensile,
            StrutKind.SHEAR: self.shear,
            StrutKind.BEND: self.bend,
        }[kind]

    def make_strut(self, i: int, j: int, rest_length: float, kind: StrutKind) -> Strut:
        """Strut between i and j with this config's parameters for kind."""
        p = self.params(kind)
        scale = NOMINAL_STRUT_LENGTH / rest_length if self.length_scaled else 1.0
        return Strut(i, j, rest_length, p.stiffness * scale, p.damping * scale, kind)


@dataclass(frozen=True)
class MeshSnapshot:
    """Read-only per-frame view for renderers."""
    time: float
    positions: np.ndarray
    velocities: np.ndarray
    pinned: np.ndarray
    faces: np.ndarray


class DeformableMesh:
    """
    A set of mass points joined by damped springs.

    Example:
        points = [MassPoint((0, 1, 0), pinned=True), MassPoint((0, 0, 0))]
        mesh = DeformableMesh(points, [Strut(0, 1, 1.0, 100.0, 1.0)])
        mesh.step(1 / 240)
    """

    def __init__(
        self,
        points: Sequence[MassPoint],
        struts: Iterable[Strut] = (),
        faces: np.ndarray | Sequence[Sequence[int]] | None = None,
        config: MeshConfig | None = None,
        profiler: Profiler | None = None,
    ) -> None:
        self.config = config if config is not None else MeshConfig()
        self.profiler = profiler
        self.time = 0.0

        n = len(points)
        self.x = np.array([p.position for p in points], dtype=np.float64).reshape(n, 3)
        self.v = np.array([p.velocity for p in points], dtype=np.float64).reshape(n, 3)
        self.mass = np.array([p.mass for p in points], dtype=np.float64)
        self.pinned = np.array([p.pinned for p in points], dtype=bool)
        self.v[self.pinned] = 0.0
        # Force accumulated at the start of the last substep
        self.force = np.zeros_like(self.x)

        self.struts: list[Strut] = list(struts)
        for s in self.struts:
            if not (0 <= s.i < n and 0 <= s.j < n):
                raise ConfigurationError(f"Strut ({s.i}, {s.j}) references a point outside 0..{n - 1}")
        self._linked = frozenset(s.key for s in self.struts)
        self._si = np.array([s.i for s in self.struts], dtype=np.int64)
        self._sj = np.array([s.j for s in self.struts], dtype=np.int64)
        self._rest = np.array([s.rest_length for s in self.struts], dtype=np.float64)
        self._k = np.array([s.stiffness for s in self.struts], dtype=np.float64)
        self._c = np.array([s.damping for s in self.struts], dtype=np.float64)

        self.faces = np.zeros((0, 3), dtype=np.int64) if faces is None else np.array(faces, dtype=np.int64).reshape(-1, 3)
        if len(self.faces) and (self.faces.min() < 0 or self.faces.max() >= n):
            raise ConfigurationError("Face references a point outside the mesh")
        # Fold angles are measured against the shape the mesh is built in
        self.hinges = _hinges_from_faces(self.faces)
        self.hinge_rest = hinge_angles(self.x, self.hinges)

        self._index = make_index(self.config.index, **self._index_args())
        logger.debug(
            "DeformableMesh created: %d points, %d struts, %d faces, %d hinges, %d pinned",
            n, len(self.struts), len(self.faces), len(self.hinges), int(self.pinned.sum()),
        )

    def _index_args(self) -> dict:
        r = self.config.self_collision_radius
        if self.config.index == "grid" and r > 0.0:
            return {"cell_size": 2.0 * r}
        return {}

    # -------------------------------------------------------------------------
    # Builders
    # -------------------------------------------------------------------------

    @classmethod
    def from_triangles(
        cls,
        vertices: np.ndarray | Sequence[Sequence[float]],
        triangles: np.ndarray | Sequence[Sequence[int]],
        config: MeshConfig | None = None,
        total_mass: float = 1.0,
        pinned: Iterable[int] = (),
        bend_struts: bool = False,
        profiler: Profiler | None = None,
    ) -> DeformableMesh:
        """
        Build a mesh from a triangle soup.

        Every triangle edge becomes one TENSILE strut; an edge shared by two
        triangles is added once. With ``bend_struts`` the two vertices
        opposite each interior edge are joined by a BEND strut.

        Args:
            vertices: Vertex positions (N, 3).
            triangles: Vertex indices (F, 3).
            config: Mesh parameters; strut stiffness comes from here.
            total_mass: Mass spread evenly over the vertices.
            pinned: Indices of vertices to pin.
        """
        config = config if config is not None else MeshConfig()
        verts = f64(vertices).reshape(-1, 3)
        tris = np.array(triangles, dtype=np.int64).reshape(-1, 3)
        n = len(verts)
        if n == 0:
            raise ConfigurationError("A mesh needs at least one vertex")
        if len(tris) and (tris.min() < 0 or tris.max() >= n):
            raise ConfigurationError("Triangle references a vertex outside the mesh")
        point_mass = require_positive("total_mass", total_mass) / n
        pins = set(int(i) for i in pinned)
        points = [MassPoint(verts[i], mass=point_mass, pinned=i in pins) for i in range(n)]

        struts: dict[tuple[int, int], Strut] = {}
        # edge -> vertices opposite it, one per adjacent triangle
        opposite: dict[tuple[int, int], list[int]] = {}
        for a, b, c in tris:
            for i, j, o in ((a, b, c), (b, c, a), (c, a, b)):
                key = (int(min(i, j)), int(max(i, j)))
                opposite.setdefault(key, []).append(int(o))
                if key not in struts:
                    struts[key] = _strut_between(config, verts, key[0], key[1], StrutKind.TENSILE)

        if bend_struts:
            for (i, j), opp in opposite.items():
                if len(opp) != 2:
                    continue
                key = (min(opp), max(opp))
                if key[0] != key[1] and key not in struts:
                    struts[key] = _strut_between(config, verts, key[0], key[1], StrutKind.BEND)

        return cls(points, struts.values(), faces=tris, config=config, profiler=profiler)

    # -------------------------------------------------------------------------
    # Pins
    # -------------------------------------------------------------------------

    def pin(self, i: int, position=None) -> None:
        """Fix point i in place (optionally moving it to position first)."""
        if position is not None:
            self.x[i] = vec3(position)
        self.pinned[i] = True
        self.v[i] = 0.0

    def unpin(self, i: int) -> None:
        self.pinned[i] = False

    def __len__(self) -> int:
        return len(self.x)

    def point(self, i: int) -> MassPoint:
        """Copy of point i as a MassPoint."""
        return MassPoint(self.x[i].copy(), self.v[i].copy(), float(self.mass[i]), bool(self.pinned[i]))

    # -------------------------------------------------------------------------
    # Simulation
    # -------------------------------------------------------------------------

    def _forces(self, state: PointState) -> np.ndarray:
        cfg = self.config
        f = gravity_forces(self.mass, cfg.gravity)
        f += strut_forces(state.x, state.v, self._si, self._sj, self._rest, self._k, self._c)
        if len(self.hinges) and (cfg.torsion_stiffness > 0.0 or cfg.torsion_damping > 0.0):
            f += hinge_forces(state.x, state.v, self.hinges, self.hinge_rest, cfg.torsion_stiffness, cfg.torsion_damping)
        f += face_aero_forces(state.x, state.v, self.faces, cfg.wind, cfg.drag_coefficient, cfg.lift_coefficient)
        f[self.pinned] = 0.0
        return f

    def _derivative_fn(self, state: PointState) -> PointState:
        acc = self._forces(state) / self.mass[:, None]
        vel = state.v.copy()
        vel[self.pinned] = 0.0
        return PointState.rate(vel, acc)

    def step(self, dt: float) -> None:
        """
        Advance the mesh by dt seconds (split into config.substeps).

        Raises:
            InvalidStepError: dt <= 0; the mesh is left unchanged.
        """
        dt = check_dt(dt)
        h = dt / self.config.substeps
        for _ in range(self.config.substeps):
            self._substep(h)
        self.time += dt
        if not np.all(np.isfinite(self.x)):
            logger.warning("Non-finite mesh positions at t=%.6f; stiffness may be too high for dt=%g", self.time, dt)

    def _substep(self, h: float) -> None:
        cfg = self.config
        prof = self.profiler
        if len(self.x) == 0:
            return

        state = PointState(self.x, self.v)
        with section(prof, "forces"):
            self.force = self._forces(state)
        with section(prof, "integrate"):
            new = cfg._scheme(state, h, self._derivative_fn)

        x, v = new.x.copy(), new.v.copy()
        x[self.pinned] = self.x[self.pinned]
        v[self.pinned] = 0.0

        if cfg.max_displacement is not None:
            step = x - self.x
            length = np.linalg.norm(step, axis=1)
            capped = length > cfg.max_displacement
            if np.any(capped):
                scale = cfg.max_displacement / length[capped]
                x[capped] = self.x[capped] + step[capped] * scale[:, None]
                v[capped] *= scale[:, None]

        with section(prof, "collide"):
            free = ~self.pinned
            collide_all(x, v, cfg.colliders, active=free, material=cfg.material)
            if cfg.self_collision_radius > 0.0:
                self._self_collide(x, v)

        # Write phase
        self.x, self.v = x, v

    def _self_collide(self, x: np.ndarray, v: np.ndarray) -> int:
        """Separate unlinked point pairs closer than twice the collision radius."""
        min_dist = 2.0 * self.config.self_collision_radius
        e = self.config.self_restitution
        inv_mass = np.where(self.pinned, 0.0, 1.0 / self.mass)
        self._index.rebuild(x)
        contacts = 0
        for a, b, d2 in self._index.pairs_within(min_dist):
            if (a, b) in self._linked:
                continue
            w = inv_mass[a] + inv_mass[b]
            if w == 0.0:
                continue
            d = x[b] - x[a]
            dist = float(np.sqrt(np.dot(d, d)))
            if dist >= min_dist:
                continue
            n = d / dist if dist > GEOMETRY_EPSILON else np.array([0.0, 1.0, 0.0])
            corr = (min_dist - dist) / w
            x[a] -= n * corr * inv_mass[a]
            x[b] += n * corr * inv_mass[b]
            vn = float(np.dot(v[b] - v[a], n))
            if vn < 0.0:
                j = -(1.0 + e) * vn / w
                v[a] -= n * j * inv_mass[a]
                v[b] += n * j * inv_mass[b]
            contacts += 1
        if contacts:
            logger.debug("Resolved %d self-collision contacts", contacts)
        return contacts

    def state_snapshot(self) -> MeshSnapshot:
        """Positions, velocities, pin flags and faces, read-only."""
        pinned = self.pinned.copy()
        pinned.setflags(write=False)
        faces = self.faces.copy()
        faces.setflags(write=False)
        return MeshSnapshot(
            time=self.time,
            positions=readonly(self.x),
            velocities=readonly(self.v),
            pinned=pinned,
            faces=faces,
        )


def _strut_between(config: MeshConfig, x: np.ndarray, i: int, j: int, kind: StrutKind) -> Strut:
    length = float(np.linalg.norm(x[j] - x[i]))
    if length <= GEOMETRY_EPSILON:
        raise ConfigurationError(f"Points {i} and {j} coincide; cannot build a strut between them")
    return config.make_strut(i, j, length, kind)


def _hinges_from_faces(faces: np.ndarray) -> np.ndarray:
    """
    (x0, x1, x2, x3) for every edge shared by two consistently wound faces.

    x0 -> x1 runs along the face whose third vertex is x2; the other face
    runs x1 -> x0 and has x3. Edges on a boundary, edges whose faces are
    wound against each other and edges of more than two faces get no hinge.
    """
    wing: dict[tuple[int, int], int] = {}
    uses: dict[tuple[int, int], int] = {}
    for a, b, c in faces.tolist():
        for i, j, o in ((a, b, c), (b, c, a), (c, a, b)):
            wing[(i, j)] = o
            key = (min(i, j), max(i, j))
            uses[key] = uses.get(key, 0) + 1
    hinges = [
        (i, j, o, wing[(j, i)])
        for (i, j), o in wing.items()
        if i < j and (j, i) in wing and uses[(i, j)] == 2
    ]
    return np.array(hinges, dtype=np.int64).reshape(-1, 4)
