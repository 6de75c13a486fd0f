import numpy as np
import pytest

from physanim.core.invariants import point_kinetic_energy, point_linear_momentum
from physanim.errors import ConfigurationError, InvalidStepError
from physanim.materials import Material
from physanim.particles import DiskEmitter, Particle, ParticleConfig, ParticleSystem
from physanim.types import BoundingBox, Plane, PointAttractor, TriangleMesh


def test_freefall_accuracy():
    """
    A single particle at rest under g with no drag:
      v(t) = g t,  p(t) = p0 + 1/2 g t^2
    RK4 is exact for constant acceleration.
    """
    g = -9.81
    dt, T = 1 / 240, 1.0
    system = ParticleSystem(ParticleConfig(gravity=(0.0, g, 0.0), integrator="rk4"))
    p = system.seed((0.0, 10.0, 0.0))
    for _ in range(int(round(T / dt))):
        system.step(dt)

    y_exp = 10.0 + 0.5 * g * T * T
    print("freefall y", p.position[1], "exp", y_exp)
    assert abs(system.time - T) < 1e-9
    assert p.velocity[1] == pytest.approx(g * T, abs=1e-9)
    assert p.position[1] == pytest.approx(y_exp, abs=1e-9)


def test_emitter_never_exceeds_cap():
    """Live count never exceeds max_particles whatever the emission rate."""
    cap = 50
    system = ParticleSystem(
        ParticleConfig(max_particles=cap),
        emitter=DiskEmitter(rate=10_000.0, lifetime=None, seed=1),
    )
    for _ in range(100):
        system.step(1 / 60)
        assert len(system) <= cap
    assert len(system) == cap
    assert system.dropped > 0
    assert system.seed((0.0, 0.0, 0.0)) is None


def test_emission_rate_carries_fractions():
    """32 particles/s at 256 Hz is a fraction per step, yet 32 after one second."""
    system = ParticleSystem(emitter=DiskEmitter(rate=32.0, seed=2))
    for _ in range(256):
        system.step(1 / 256)
    assert len(system) == 32


def test_lifetime_culling():
    """Particles are removed at the end of the step in which they expire."""
    system = ParticleSystem(ParticleConfig(gravity=(0.0, 0.0, 0.0)))
    system.seed((0.0, 0.0, 0.0), lifetime=0.1)
    system.seed((1.0, 0.0, 0.0))
    for _ in range(5):
        system.step(0.01)
    assert len(system) == 2
    for _ in range(10):
        system.step(0.01)
    assert len(system) == 1
    assert system.particles[0].lifetime is None


def test_bounds_culling():
    system = ParticleSystem(ParticleConfig(bounds=BoundingBox((-1, -1, -1), (1, 1, 1))))
    system.seed((0.0, 0.0, 0.0), velocity=(100.0, 0.0, 0.0))
    system.seed((0.0, 0.0, 0.0))
    system.step(0.05)
    assert len(system) == 1


def test_drag_reaches_terminal_velocity():
    """
    Quadratic drag F = -c |v| v balances gravity at v_t = sqrt(m g / c).
    """
    c, m, g = 0.5, 2.0, 9.81
    system = ParticleSystem(ParticleConfig(gravity=(0.0, -g, 0.0), drag_coefficient=c))
    p = system.seed((0.0, 0.0, 0.0), mass=m)
    for _ in range(2000):
        system.step(1 / 240)
    v_t = np.sqrt(m * g / c)
    print("terminal", p.velocity[1], "exp", -v_t)
    assert p.velocity[1] == pytest.approx(-v_t, rel=1e-3)


def test_wind_pushes_particle_at_rest():
    system = ParticleSystem(ParticleConfig(gravity=(0, 0, 0), drag_coefficient=1.0, wind=(2.0, 0.0, 0.0)))
    p = system.seed((0.0, 0.0, 0.0))
    system.step(0.01)
    assert p.velocity[0] > 0.0


def test_ground_plane_bounce():
    """A particle falling onto y=0 ends above the plane moving upward."""
    ground = Plane((0, 0, 0), (0, 1, 0), material=Material(friction=0.0, restitution=0.8))
    system = ParticleSystem(ParticleConfig(colliders=[ground]))
    p = system.seed((0.0, 0.05, 0.0), velocity=(0.0, -5.0, 0.0))
    system.step(1 / 60)
    assert p.position[1] >= 0.0
    assert p.velocity[1] > 0.0


def test_triangle_mesh_obstacle_bounce():
    """
    A 2 x 2 square of two triangles at y = 0: a particle over it bounces,
    one beside it falls past.
    """
    square = TriangleMesh(
        [(-1.0, 0.0, -1.0), (1.0, 0.0, -1.0), (1.0, 0.0, 1.0), (-1.0, 0.0, 1.0)],
        [(0, 3, 2), (0, 2, 1)],
        material=Material(friction=0.0, restitution=0.8),
    )
    system = ParticleSystem(ParticleConfig(colliders=[square]))
    over = system.seed((0.2, 0.05, 0.3), velocity=(0.0, -5.0, 0.0))
    beside = system.seed((1.5, 0.05, 0.0), velocity=(0.0, -5.0, 0.0))
    system.step(1 / 60)
    assert over.position[1] >= 0.0
    assert over.velocity[1] > 0.0
    assert beside.position[1] < 0.0
    assert beside.velocity[1] < 0.0


def test_attractor_pulls_and_repeller_pushes():
    for strength, sign in [(5.0, 1.0), (-5.0, -1.0)]:
        system = ParticleSystem(ParticleConfig(gravity=(0, 0, 0), attractors=[PointAttractor((0, 0, 0), strength)]))
        p = system.seed((2.0, 0.0, 0.0))
        system.step(0.01)
        assert np.sign(-p.velocity[0]) == sign


def test_emitter_is_deterministic():
    a = DiskEmitter(rate=100.0, spread=0.3, seed=42).spawn(10)
    b = DiskEmitter(rate=100.0, spread=0.3, seed=42).spawn(10)
    for pa, pb in zip(a, b):
        assert np.array_equal(pa.position, pb.position)
        assert np.array_equal(pa.velocity, pb.velocity)


def test_emitter_disk_and_cone():
    """Spawned positions lie on the disk; directions within the spread cone."""
    em = DiskEmitter(position=(0, 2, 0), normal=(0, 1, 0), radius=0.5, spread=0.2, speed=(1, 1), seed=0)
    for p in em.spawn(200):
        offset = p.position - em.position
        assert abs(offset[1]) < 1e-12
        assert np.linalg.norm(offset) <= 0.5 + 1e-12
        assert np.dot(p.velocity, em.normal) >= np.cos(0.2) - 1e-9


def test_snapshot_is_read_only():
    system = ParticleSystem()
    system.seed((0.0, 1.0, 0.0))
    snap = system.state_snapshot()
    assert snap.positions.shape == (1, 3)
    with pytest.raises(ValueError):
        snap.positions[0, 0] = 5.0
    system.step(0.01)
    assert snap.positions[0, 1] == 1.0


def test_invalid_dt_leaves_state_unchanged():
    system = ParticleSystem(emitter=DiskEmitter(rate=100.0, seed=0))
    system.step(0.1)
    before = system.state_snapshot()
    with pytest.raises(InvalidStepError):
        system.step(0.0)
    after = system.state_snapshot()
    assert np.array_equal(before.positions, after.positions)
    assert system.time == before.time


def test_invalid_configuration():
    with pytest.raises(ConfigurationError):
        ParticleConfig(max_particles=0)
    with pytest.raises(ConfigurationError):
        ParticleConfig(drag_coefficient=-1.0)
    with pytest.raises(ConfigurationError):
        ParticleConfig(integrator="nope")
    with pytest.raises(ConfigurationError):
        Particle(mass=0.0)
    with pytest.raises(ConfigurationError):
        DiskEmitter(mass=(0.0, 1.0))
    with pytest.raises(ConfigurationError):
        DiskEmitter(speed=(2.0, 1.0))


def test_free_particles_conserve_momentum_and_energy():
    """Without gravity, drag or fields, P and T of the system stay constant."""
    system = ParticleSystem(ParticleConfig(gravity=(0.0, 0.0, 0.0)))
    system.seed((0.0, 0.0, 0.0), velocity=(1.0, 2.0, 0.0), mass=2.0)
    system.seed((1.0, 0.0, 0.0), velocity=(-3.0, 0.0, 1.0), mass=0.5)

    def measure():
        m = np.array([p.mass for p in system.particles])
        v = np.array([p.velocity for p in system.particles])
        return point_linear_momentum(m, v), point_kinetic_energy(m, v)

    P0, T0 = measure()
    for _ in range(100):
        system.step(0.01)
    P1, T1 = measure()
    assert P1 == pytest.approx(P0)
    assert T1 == pytest.approx(T0)
