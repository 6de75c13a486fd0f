# examples/fountain.py
from physanim.particles import DiskEmitter, ParticleConfig, ParticleSystem
from physanim.types import Plane, PointAttractor
from physanim.materials import Material

config = ParticleConfig(
    drag_coefficient=0.02,
    wind=(0.5, 0.0, 0.0),
    attractors=[PointAttractor(position=(0.0, 4.0, 0.0), strength=-2.0)],
    colliders=[Plane(point=(0.0, 0.0, 0.0), normal=(0.0, 1.0, 0.0), material=Material(friction=0.2, restitution=0.4))],
    max_particles=2000,
)
emitter = DiskEmitter(position=(0.0, 0.1, 0.0), radius=0.1, rate=400.0, speed=(5.0, 6.0), spread=0.2, lifetime=(2.0, 3.0), seed=7)
system = ParticleSystem(config, emitter=emitter)

dt = 1 / 240
while system.time < 3.0:
    system.step(dt)

frame = system.state_snapshot()
print("t:", frame.time)
print("live particles:", len(frame.positions), "dropped:", system.dropped)
print("highest:", frame.positions[:, 1].max() if len(frame.positions) else None)
