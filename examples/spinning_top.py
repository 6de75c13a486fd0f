# examples/spinning_top.py
from physanim.core.invariants import kinetic_energy
from physanim.rigid import RigidBody, RigidBodyConfig, RigidBodySystem, box_inertia

body = RigidBody(mass=2.0, inertia=box_inertia(2.0, (0.2, 1.0, 0.5)), position=(0.0, 5.0, 0.0), angular_velocity=(0.1, 4.0, 0.1))
system = RigidBodySystem([body], RigidBodyConfig(gravity=(0.0, 0.0, 0.0)))

# Kick it off-center once, then let it tumble freely
body.apply_impulse((0.0, 0.0, 1.0), at=(0.1, 5.3, 0.0))
E0 = kinetic_energy([body])

for _ in range(1200):
    system.step(1 / 240)

print("t:", system.time)
print("orientation:", body.orientation)
print("angular momentum:", body.angular_momentum)
print("energy drift:", kinetic_energy([body]) - E0)
