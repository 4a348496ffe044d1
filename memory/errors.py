from __future__ import annotations


class ArenaError(Exception):
    """Base class for arena bookkeeping errors."""


class OutOfRangeError(ArenaError, IndexError):
    """A positional index falls outside the block list."""


class InvalidArgumentError(ArenaError, ValueError):
    """A block, handle or address is not tracked where it was expected."""


class InvariantViolation(ArenaError, AssertionError):
    """Free and allocated blocks no longer tile the arena exactly."""
