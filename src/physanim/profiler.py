# MIT License (see LICENSE)
"""
Wall-clock timing of the phases inside a simulation step.

Every simulation takes an optional Profiler and wraps its phases in named
sections: the particle system times "emit", "forces", "integrate",
"collide" and "cull"; the mesh times "forces", "integrate" and "collide";
the flock times "neighbors" and "integrate"; rigid bodies time "integrate".
With no profiler attached the sections cost nothing.

Example:
    profiler = Profiler()
    cloth = make_cloth(20, 20, 0.05, profiler=profiler)
    cloth.step(1 / 240)
    print(profiler.stats.summary()["forces"]["mean_ms"])
"""
from __future__ import annotations
from contextlib import contextmanager, nullcontext
import time
from dataclasses import dataclass, field
from typing import ContextManager, Iterator


@dataclass
class ProfileStats:
    """Seconds spent per step phase, one sample per pass through a section."""
    samples: dict[str, list[float]] = field(default_factory=dict)

    def add(self, name: str, dt: float) -> None:
        self.samples.setdefault(name, []).append(dt)

    def summary(self) -> dict[str, dict[str, float]]:
        """
        Per phase: sample count "n", and "mean_ms", "max_ms" and "total_ms"
        in milliseconds. A mesh with substeps records one sample per
        substep, so "n" counts substeps there.
        """
        out = {}
        for name, times in self.samples.items():
            n = len(times)
            total = sum(times)
            out[name] = {
                "n": n,
                "mean_ms": 1e3 * total / n,
                "max_ms": 1e3 * max(times),
                "total_ms": 1e3 * total,
            }
        return out

    def clear(self) -> None:
        self.samples.clear()


class Profiler:
    """
    Collects ProfileStats from the simulations it is passed to.

    One profiler may be shared by several simulations; their samples for
    a phase of the same name are pooled.
    """

    def __init__(self) -> None:
        self.stats = ProfileStats()

    @contextmanager
    def section(self, name: str) -> Iterator[None]:
        t0 = time.perf_counter()
        try:
            yield
        finally:
            self.stats.add(name, time.perf_counter() - t0)


def section(profiler: Profiler | None, name: str) -> ContextManager:
    """profiler.section(name), or a no-op context when profiling is off."""
    return profiler.section(name) if profiler is not None else nullcontext()
