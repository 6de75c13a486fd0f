import numpy as np
import pytest

from physanim.collision import collide_all, collide_points
from physanim.constants import CONTACT_EPSILON
from physanim.errors import ConfigurationError
from physanim.materials import Material
from physanim.types import BoundingBox, Plane, PointAttractor, Sphere, TriangleMesh


def test_plane_projection_and_bounce():
    """
    v = (2, -3, 0) into y=0 with e = 1, μ = 0:
    perfectly elastic, so v' = (2, 3, 0) and the point ends on the surface.
    """
    x = np.array([[0.0, -0.1, 0.0]])
    v = np.array([[2.0, -3.0, 0.0]])
    hit = collide_points(x, v, Plane(material=Material(friction=0.0, restitution=1.0)))
    assert hit.tolist() == [True]
    assert x[0, 1] == pytest.approx(CONTACT_EPSILON)
    assert v[0] == pytest.approx([2.0, 3.0, 0.0])


def test_friction_never_reverses_sliding():
    """Tangential speed lost is min(μ |v_n|, |v_t|)."""
    x = np.array([[0.0, -0.01, 0.0]])
    v = np.array([[0.5, -10.0, 0.0]])
    collide_points(x, v, Plane(material=Material(friction=1.0, restitution=0.0)))
    assert v[0] == pytest.approx([0.0, 0.0, 0.0])


def test_separating_point_only_projected():
    x = np.array([[0.0, -0.01, 0.0]])
    v = np.array([[1.0, 2.0, 0.0]])
    collide_points(x, v, Plane())
    assert x[0, 1] > 0.0
    assert v[0] == pytest.approx([1.0, 2.0, 0.0])


def test_sphere_pushes_out_along_normal():
    s = Sphere((0.0, 0.0, 0.0), 1.0, material=Material(friction=0.0, restitution=0.0))
    x = np.array([[0.5, 0.0, 0.0], [3.0, 0.0, 0.0]])
    v = np.array([[-1.0, 0.0, 0.0], [-1.0, 0.0, 0.0]])
    hit = collide_points(x, v, s)
    assert hit.tolist() == [True, False]
    assert np.linalg.norm(x[0]) == pytest.approx(1.0 + CONTACT_EPSILON)
    assert v[0] == pytest.approx([0.0, 0.0, 0.0])
    assert v[1] == pytest.approx([-1.0, 0.0, 0.0])


def test_moving_plane_uses_relative_velocity():
    """A point resting on a plane that moves up is carried along."""
    plane = Plane(velocity=(0.0, 1.0, 0.0), material=Material(friction=0.0, restitution=0.0))
    x = np.array([[0.0, -0.01, 0.0]])
    v = np.array([[0.0, 0.0, 0.0]])
    collide_points(x, v, plane)
    assert v[0] == pytest.approx([0.0, 1.0, 0.0])


def test_inactive_points_untouched():
    x = np.array([[0.0, -1.0, 0.0], [0.0, -1.0, 0.0]])
    v = np.zeros((2, 3))
    count = collide_all(x, v, [Plane()], active=np.array([False, True]))
    assert count == 1
    assert x[0, 1] == -1.0
    assert x[1, 1] > 0.0


def test_material_override():
    x = np.array([[0.0, -0.01, 0.0]])
    v = np.array([[0.0, -2.0, 0.0]])
    collide_all(x, v, [Plane(material=Material(restitution=0.0))], material=Material(friction=0.0, restitution=1.0))
    assert v[0] == pytest.approx([0.0, 2.0, 0.0])


def test_attractor_field_and_bounds():
    a = PointAttractor((0.0, 0.0, 0.0), strength=2.0, softening=1e-6)
    acc = a.acceleration(np.array([[2.0, 0.0, 0.0]]))
    # inverse square: 2 / 2^2 = 0.5 toward the center
    assert acc[0] == pytest.approx([-0.5, 0.0, 0.0], rel=1e-6)
    assert a.advanced(1.0).position == pytest.approx([0.0, 0.0, 0.0])

    box = BoundingBox((-1, -1, -1), (1, 1, 1))
    assert box.contains(np.array([[0, 0, 0], [2, 0, 0]])).tolist() == [True, False]
    push = box.repulsion(np.array([[0.9, 0.0, 0.0]]))
    assert push[0, 0] < 0.0


def test_invalid_primitives():
    with pytest.raises(ConfigurationError):
        Plane(normal=(0.0, 0.0, 0.0))
    with pytest.raises(ConfigurationError):
        Sphere(radius=-1.0)
    with pytest.raises(ConfigurationError):
        Material(restitution=1.5)
    with pytest.raises(ConfigurationError):
        BoundingBox((1, 1, 1), (0, 0, 0))
    with pytest.raises(ConfigurationError):
        TriangleMesh([(0, 0, 0), (1, 0, 0), (2, 0, 0)], [(0, 1, 2)])
    with pytest.raises(ConfigurationError):
        TriangleMesh([(0, 0, 0), (1, 0, 0), (0, 0, 1)], [(0, 2, 5)])


# Square [-1, 1]² at y = 0 from two triangles, normals +y
GROUND_VERTS = [(-1.0, 0.0, -1.0), (1.0, 0.0, -1.0), (1.0, 0.0, 1.0), (-1.0, 0.0, 1.0)]
GROUND_TRIS = [(0, 3, 2), (0, 2, 1)]

# Corner tetrahedron O, X, Y, Z with outward windings
TETRA_VERTS = [(0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0, 1.0)]
TETRA_TRIS = [(0, 2, 1), (0, 3, 2), (0, 1, 3), (1, 2, 3)]


def test_triangle_mesh_signed_distance():
    """
    Above a face: the height. Past the square's edge x = 1 by 0.05 and
    0.05 up: distance to the edge, sqrt(2) * 0.05. Outside the padded
    bounding box: infinite.
    """
    ground = TriangleMesh(GROUND_VERTS, GROUND_TRIS)
    d = ground.signed_distance(np.array([
        [0.2, 0.05, 0.1],
        [0.3, -0.04, -0.2],
        [1.05, 0.05, 0.0],
        [5.0, 0.0, 0.0],
    ]))
    assert d[:3] == pytest.approx([0.05, -0.04, np.sqrt(2.0) * 0.05])
    assert np.isinf(d[3])
    assert ground.normals(np.array([[0.2, -0.05, 0.1]]))[0] == pytest.approx([0.0, 1.0, 0.0])


def test_triangle_mesh_bounce():
    """
    Same response as an equivalent plane: v = (1, -2, 0) with e = 0.5,
    μ = 0 leaves as (1, 1, 0), projected onto the top face.
    """
    ground = TriangleMesh(GROUND_VERTS, GROUND_TRIS, material=Material(friction=0.0, restitution=0.5))
    x = np.array([[0.3, -0.05, 0.2], [3.0, -0.05, 0.0], [0.0, -0.5, 0.0]])
    v = np.array([[1.0, -2.0, 0.0], [1.0, -2.0, 0.0], [1.0, -2.0, 0.0]])
    hit = collide_points(x, v, ground)
    # Off the square, and deeper than the sheet's thickness: untouched
    assert hit.tolist() == [True, False, False]
    assert x[0] == pytest.approx([0.3, CONTACT_EPSILON, 0.2])
    assert v[0] == pytest.approx([1.0, 1.0, 0.0])
    assert x[2] == pytest.approx([0.0, -0.5, 0.0])


def test_closed_triangle_mesh_pushes_out_nearest_face():
    """
    (0.1, 0.3, 0.3) inside the corner tetrahedron is 0.1 from the x = 0
    face, 0.3 from y = 0 and z = 0 and 0.3 / sqrt(3) from the slanted
    face, so it leaves through x = 0.
    """
    tetra = TriangleMesh(TETRA_VERTS, TETRA_TRIS, closed=True)
    p = np.array([[0.1, 0.3, 0.3]])
    assert tetra.signed_distance(p)[0] == pytest.approx(-0.1)
    x, v = p.copy(), np.zeros((1, 3))
    assert collide_points(x, v, tetra).tolist() == [True]
    assert x[0] == pytest.approx([-CONTACT_EPSILON, 0.3, 0.3])

    # Open, with a thin shell, the same point is too deep to count
    shell = TriangleMesh(TETRA_VERTS, TETRA_TRIS, thickness=0.05)
    assert np.isinf(shell.signed_distance(p)[0])


def test_triangle_mesh_skips_degenerate_faces():
    mesh = TriangleMesh(GROUND_VERTS + [(2.0, 0.0, 0.0)], GROUND_TRIS + [(1, 4, 1)])
    assert mesh.signed_distance(np.array([[0.0, 0.08, 0.0]]))[0] == pytest.approx(0.08)
    # The degenerate face does not widen the bounding box
    assert np.isinf(mesh.signed_distance(np.array([[1.5, 0.0, 0.0]]))[0])
