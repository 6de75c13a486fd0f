"""
Microbenchmark: time per step vs problem size for each simulation.
Run:
  python benchmarks/bench_steps.py
"""
import time
import numpy as np
from physanim.flocking import Boid, FlockConfig, FlockSystem
from physanim.mesh import MeshConfig, StrutParams, make_cloth
from physanim.particles import DiskEmitter, ParticleConfig, ParticleSystem
from physanim.profiler import Profiler
from physanim.types import Plane


def _time(sim, dt, steps):
    # warmup
    for _ in range(10):
        sim.step(dt)
    t0 = time.perf_counter()
    for _ in range(steps):
        sim.step(dt)
    return (time.perf_counter() - t0) / steps


def run_cloth(side: int, steps: int = 100):
    prof = Profiler()
    cfg = MeshConfig(tensile=StrutParams(400.0, 1.0), colliders=[Plane()], self_collision_radius=0.01)
    cloth = make_cloth(side, side, 1.0 / side, position=(0.0, 1.0, 0.0), config=cfg, profiler=prof)
    return _time(cloth, 1 / 240, steps), prof.stats.summary()


def run_flock(n: int, index: str, steps: int = 50):
    prof = Profiler()
    rng = np.random.default_rng(12345)  # determinism
    boids = [Boid(rng.uniform(-5, 5, 3), rng.uniform(-1, 1, 3)) for _ in range(n)]
    flock = FlockSystem(boids, FlockConfig(index=index), profiler=prof)
    return _time(flock, 1 / 60, steps), prof.stats.summary()


def run_particles(cap: int, steps: int = 100):
    prof = Profiler()
    system = ParticleSystem(
        ParticleConfig(max_particles=cap, colliders=[Plane()]),
        emitter=DiskEmitter(rate=1e6, lifetime=None, seed=1),
        profiler=prof,
    )
    return _time(system, 1 / 240, steps), prof.stats.summary()


def _report(label, per_step, summary):
    print(f"{label:24s} step={1e3*per_step:8.3f} ms  steps/s={1/per_step:8.1f}")
    for k in ["emit", "neighbors", "forces", "integrate", "collide", "cull"]:
        if k in summary:
            print("   ", k, summary[k])


if __name__ == "__main__":
    for side in [10, 20, 40]:
        _report(f"cloth {side}x{side}", *run_cloth(side))
    for n in [50, 200, 500]:
        for index in ["grid", "kdtree"]:
            _report(f"flock N={n} ({index})", *run_flock(n, index))
    for cap in [1000, 10000]:
        _report(f"particles cap={cap}", *run_particles(cap))
    print()
