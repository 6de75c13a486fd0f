# examples/cloth_in_wind.py
import logging

import numpy as np

from physanim.mesh import MeshConfig, StrutParams, make_cloth
from physanim.profiler import Profiler
from physanim.types import Plane, Sphere

logging.basicConfig(level=logging.DEBUG)

config = MeshConfig(
    tensile=StrutParams(400.0, 1.0),
    shear=StrutParams(100.0, 0.5),
    bend=StrutParams(20.0, 0.1),
    wind=(0.0, 0.0, 3.0),
    drag_coefficient=0.6,
    lift_coefficient=0.3,
    colliders=[Plane(), Sphere(center=(0.0, 0.6, 0.4), radius=0.3)],
    self_collision_radius=0.01,
    substeps=4,
)
profiler = Profiler()
cloth = make_cloth(16, 16, 0.06, position=(0.0, 1.2, 0.0), pinned="top_row", config=config, profiler=profiler)

for _ in range(480):
    cloth.step(1 / 240)

frame = cloth.state_snapshot()
print("t:", frame.time)
print("lowest point:", float(frame.positions[:, 1].min()))
print("mean z (pushed by wind):", float(np.mean(frame.positions[:, 2])))
for name, stats in profiler.stats.summary().items():
    print(f"  {name:10s} {stats['mean_ms']:.3f} ms")
