# MIT License (see LICENSE)
"""
Exception types raised by the simulation core.

Only misuse is reported: invalid configuration at construction time and
invalid step parameters. Steady-state events (particle expiry, emitter cap
reached, degenerate geometry) are handled locally and never raise.

Both concrete errors subclass ValueError so callers that already catch
ValueError for bad arguments keep working.
"""
from __future__ import annotations


class PhysanimError(Exception):
    """Base class for all errors raised by physanim."""


class ConfigurationError(PhysanimError, ValueError):
    """A simulation or component was constructed with invalid parameters."""


class InvalidStepError(PhysanimError, ValueError):
    """step() was called with a non-positive or non-finite dt."""
