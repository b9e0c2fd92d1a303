"""Wave sizing for a fixed slot allocation."""

from __future__ import annotations

from typing import List, Sequence, Tuple, TypeVar

from contracts.errors import ConfigurationError

T = TypeVar("T")


def wave_width(total_slots: int, slots_per_job: int) -> int:
    """Return how many jobs may run concurrently in one wave.

    The result is ``total_slots // slots_per_job`` and always at least one.
    """

    if slots_per_job <= 0:
        raise ConfigurationError(f"Slots per job must be positive (got {slots_per_job})")
    if total_slots <= 0:
        raise ConfigurationError(f"Allocation has no execution slots (got {total_slots})")
    if slots_per_job > total_slots:
        raise ConfigurationError(
            f"Each job needs {slots_per_job} slots but the allocation only has {total_slots}"
        )
    return total_slots // slots_per_job


def plan_waves(items: Sequence[T], width: int) -> List[Tuple[T, ...]]:
    """Split *items* into consecutive waves of at most *width* entries."""

    if width < 1:
        raise ConfigurationError(f"Wave width must be at least 1 (got {width})")
    return [tuple(items[start : start + width]) for start in range(0, len(items), width)]


__all__ = ["plan_waves", "wave_width"]
