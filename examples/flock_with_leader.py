# examples/flock_with_leader.py
import numpy as np

from physanim.flocking import Boid, FlockConfig, FlockSystem, SteeringWeights
from physanim.types import BoundingBox, PointAttractor, Sphere


def figure_eight(t):
    return np.array([4.0 * np.sin(0.5 * t), 2.0, 2.0 * np.sin(t)])


rng = np.random.default_rng(1)
boids = [Boid(path=figure_eight)]
boids += [Boid(rng.uniform(-2, 2, 3) + (0, 2, 0), rng.uniform(-1, 1, 3)) for _ in range(60)]

config = FlockConfig(
    perception_radius=1.5,
    falloff=0.5,
    view_angle=np.radians(270.0),
    min_spacing=0.4,
    max_speed=4.0,
    max_force=8.0,
    weights=SteeringWeights(separation=2.0, cohesion=0.8, alignment=1.0, avoidance=5.0, leader=2.5),
    obstacles=[Sphere(center=(0.0, 2.0, 0.0), radius=0.5)],
    attractors=[PointAttractor(position=(0.0, 6.0, 0.0), strength=-1.0)],
    bounds=BoundingBox((-8, -1, -8), (8, 6, 8)),
    index="kdtree",
)
flock = FlockSystem(boids, config)

for _ in range(600):
    flock.step(1 / 60)

frame = flock.state_snapshot()
followers = ~frame.leaders
print("t:", frame.time)
print("leader:", frame.positions[0])
print("flock centroid:", frame.positions[followers].mean(axis=0))
print("max speed:", float(np.linalg.norm(frame.velocities[followers], axis=1).max()))
