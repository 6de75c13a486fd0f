import numpy as np
import pytest

from physanim.core.invariants import angular_momentum, kinetic_energy, linear_momentum
from physanim.errors import ConfigurationError, InvalidStepError
from physanim.rigid import RigidBody, RigidBodyConfig, RigidBodySystem, box_inertia, sphere_inertia
from physanim.util import quat_from_axis_angle


NO_GRAVITY = RigidBodyConfig(gravity=(0.0, 0.0, 0.0))


def test_free_body_preserves_momenta():
    """
    No force, no torque: P and L are constant, the body drifts at constant
    velocity and a body without spin keeps its orientation.
    """
    body = RigidBody(2.0, box_inertia(2.0, (1.0, 2.0, 3.0)), velocity=(1.0, 0.5, -0.25))
    q0 = body.orientation.copy()
    system = RigidBodySystem([body], NO_GRAVITY)
    P0, L0 = linear_momentum([body]), body.angular_momentum.copy()
    for _ in range(1000):
        system.step(1 / 120)
    assert np.allclose(linear_momentum([body]), P0)
    assert np.allclose(body.angular_momentum, L0)
    assert np.allclose(body.orientation, q0)
    assert body.position == pytest.approx(np.array([1.0, 0.5, -0.25]) * 1000 / 120)


def test_torque_free_spin_keeps_angular_momentum():
    """
    An asymmetric body spinning about a tilted axis precesses, but L is
    exactly conserved and kinetic energy stays constant to RK4 accuracy.
    """
    body = RigidBody(1.0, np.diag([1.0, 2.0, 3.0]), angular_velocity=(1.0, 0.2, 0.5))
    system = RigidBodySystem([body], NO_GRAVITY)
    L0 = body.angular_momentum.copy()
    E0 = kinetic_energy([body])
    for _ in range(2000):
        system.step(1 / 240)
    E1 = kinetic_energy([body])
    print("energy", E0, E1)
    assert np.allclose(body.angular_momentum, L0)
    assert abs(E1 - E0) / E0 < 1e-4


def test_quaternion_stays_unit():
    body = RigidBody(1.0, np.diag([1.0, 2.0, 3.0]), angular_velocity=(5.0, -3.0, 2.0))
    system = RigidBodySystem([body], RigidBodyConfig(gravity=(0, 0, 0), integrator="semi_implicit"))
    for _ in range(500):
        system.step(1 / 60)
        assert np.linalg.norm(body.orientation) == pytest.approx(1.0, abs=1e-12)


def test_constant_spin_rotates_by_omega_t():
    """A sphere spinning at ω about z turns by ω t."""
    omega, T = 2.0, 1.0
    body = RigidBody(1.0, sphere_inertia(1.0, 0.5), angular_velocity=(0.0, 0.0, omega))
    system = RigidBodySystem([body], NO_GRAVITY)
    for _ in range(240):
        system.step(T / 240)
    expected = quat_from_axis_angle((0, 0, 1), omega * T)
    assert body.orientation == pytest.approx(expected, abs=1e-8)


def test_freefall_under_gravity():
    """x(t) = x0 + 1/2 g t^2; RK4 is exact for constant force."""
    body = RigidBody(3.0, position=(0.0, 10.0, 0.0))
    system = RigidBodySystem([body])
    for _ in range(120):
        system.step(1 / 120)
    assert body.position[1] == pytest.approx(10.0 - 0.5 * 9.81, abs=1e-9)
    assert body.velocity[1] == pytest.approx(-9.81, abs=1e-9)


def test_off_center_force_produces_torque():
    body = RigidBody(1.0, sphere_inertia(1.0, 0.5))
    system = RigidBodySystem([body], NO_GRAVITY)
    body.apply_force((0.0, 1.0, 0.0), at=(1.0, 0.0, 0.0))
    assert body.torque == pytest.approx([0.0, 0.0, 1.0])
    system.step(0.1)
    # r x F = +z: spins counter-clockwise about z, accumulators cleared
    assert body.angular_velocity[2] > 0.0
    assert body.velocity[1] > 0.0
    assert np.array_equal(body.force, np.zeros(3))
    assert np.array_equal(body.torque, np.zeros(3))


def test_apply_torque_world_inertia():
    """
    Angular acceleration uses the world-frame inverse inertia R I⁻¹ Rᵀ:
    a box rotated 90 degrees about z swaps its x and y moments.
    """
    q = quat_from_axis_angle((0, 0, 1), np.pi / 2)
    body = RigidBody(1.0, np.diag([1.0, 4.0, 1.0]), orientation=q)
    body.apply_torque((1.0, 0.0, 0.0))
    system = RigidBodySystem([body], RigidBodyConfig(gravity=(0, 0, 0), integrator="semi_implicit"))
    system.step(1e-4)
    # World x is the body's y axis, where the moment is 4
    assert body.angular_velocity[0] == pytest.approx(1e-4 / 4.0, rel=1e-3)


def test_apply_impulse():
    """P += J, L += r x J."""
    body = RigidBody(2.0, position=(1.0, 0.0, 0.0))
    body.apply_impulse((0.0, 4.0, 0.0), at=(1.0, 0.0, 1.0))
    assert body.velocity == pytest.approx([0.0, 2.0, 0.0])
    assert body.angular_momentum == pytest.approx(np.cross([0.0, 0.0, 1.0], [0.0, 4.0, 0.0]))


def test_system_angular_momentum_about_origin():
    a = RigidBody(1.0, position=(1.0, 0.0, 0.0), velocity=(0.0, 1.0, 0.0))
    b = RigidBody(1.0, position=(-1.0, 0.0, 0.0), velocity=(0.0, -1.0, 0.0))
    assert angular_momentum([a, b]) == pytest.approx([0.0, 0.0, 2.0])
    assert linear_momentum([a, b]) == pytest.approx([0.0, 0.0, 0.0])


def test_snapshot():
    system = RigidBodySystem([RigidBody(1.0), RigidBody(2.0, position=(0, 1, 0))])
    system.step(0.01)
    snap = system.state_snapshot()
    assert snap.positions.shape == (2, 3)
    assert snap.orientations.shape == (2, 4)
    with pytest.raises(ValueError):
        snap.orientations[0, 0] = 0.0


def test_invalid_dt_and_configuration():
    body = RigidBody(1.0, velocity=(1.0, 0.0, 0.0))
    system = RigidBodySystem([body])
    with pytest.raises(InvalidStepError):
        system.step(-0.1)
    assert np.array_equal(body.position, np.zeros(3))

    with pytest.raises(ConfigurationError):
        RigidBody(0.0)
    with pytest.raises(ConfigurationError):
        RigidBody(1.0, inertia=np.diag([1.0, -1.0, 1.0]))
    with pytest.raises(ConfigurationError):
        RigidBody(1.0, inertia=[[1.0, 0.5, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]])
    with pytest.raises(ConfigurationError):
        RigidBody(1.0, orientation=(0.0, 0.0, 0.0, 0.0))
    with pytest.raises(ConfigurationError):
        RigidBodyConfig(integrator="nope")
