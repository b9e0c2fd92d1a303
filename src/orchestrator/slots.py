"""Execution slot pool shared by the jobs of a wave."""

from __future__ import annotations

import logging
import os
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Mapping, Optional, Sequence, Tuple

from contracts.errors import ConfigurationError, SlotExhaustedError

LOCALHOST = "localhost"

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionHandle:
    """Slots owned by one running job.

    ``targets`` holds one host name per slot, in the order the slots appear
    in the allocation.
    """

    slot_ids: Tuple[int, ...]
    targets: Tuple[str, ...]

    @property
    def size(self) -> int:
        return len(self.slot_ids)

    def hosts(self) -> List[str]:
        return sorted(set(self.targets))

    def write_nodefile(self, path: Path) -> Path:
        """Write the distinct hosts of this handle, one per line."""

        path = Path(path)
        path.write_text("".join(f"{host}\n" for host in self.hosts()), encoding="utf-8")
        return path

    @contextmanager
    def nodefile(self, path: Path) -> Iterator[Path]:
        written = self.write_nodefile(path)
        try:
            yield written
        finally:
            written.unlink(missing_ok=True)


class SlotPool:
    """Fixed-capacity set of execution slots guarded by a lock.

    Acquisition always hands out the lowest-numbered free slots so repeated
    runs of the same batch map cases to the same targets.
    """

    def __init__(self, targets: Sequence[str]) -> None:
        if not targets:
            raise ConfigurationError("Slot pool needs at least one execution slot")
        self._targets: Tuple[str, ...] = tuple(targets)
        self._free: List[bool] = [True] * len(self._targets)
        self._lock = threading.Lock()

    @classmethod
    def from_nodefile(cls, path: Path) -> "SlotPool":
        """Build a pool from a scheduler node file (one line per core)."""

        path = Path(path)
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError as exc:
            raise ConfigurationError(f"Node file {path} does not exist") from exc
        targets = [line.strip() for line in lines if line.strip()]
        if not targets:
            raise ConfigurationError(f"Node file {path} lists no execution slots")
        return cls(targets)

    @classmethod
    def from_count(cls, count: int, host: str = LOCALHOST) -> "SlotPool":
        if count <= 0:
            raise ConfigurationError(f"Slot count must be positive (got {count})")
        return cls([host] * count)

    @property
    def capacity(self) -> int:
        return len(self._targets)

    @property
    def available(self) -> int:
        with self._lock:
            return sum(self._free)

    @property
    def targets(self) -> Tuple[str, ...]:
        return self._targets

    def acquire(self, count: int) -> ExecutionHandle:
        if count <= 0:
            raise SlotExhaustedError(f"Cannot acquire {count} slots")
        with self._lock:
            chosen = [index for index, free in enumerate(self._free) if free][:count]
            if len(chosen) < count:
                raise SlotExhaustedError(
                    f"Requested {count} slots but only {len(chosen)} of {self.capacity} are free"
                )
            for index in chosen:
                self._free[index] = False
        return ExecutionHandle(
            slot_ids=tuple(chosen),
            targets=tuple(self._targets[index] for index in chosen),
        )

    def release(self, handle: ExecutionHandle) -> None:
        with self._lock:
            for index in handle.slot_ids:
                if self._free[index]:
                    raise SlotExhaustedError(f"Slot {index} released twice")
            for index in handle.slot_ids:
                self._free[index] = True

    @contextmanager
    def lease(self, count: int) -> Iterator[ExecutionHandle]:
        """Acquire *count* slots for the duration of the ``with`` block."""

        handle = self.acquire(count)
        try:
            yield handle
        finally:
            self.release(handle)


def load_pool(
    nodefile: Optional[Path],
    total_slots: Optional[int],
    env: Mapping[str, str] | None = None,
) -> SlotPool:
    """Resolve the slot pool for this allocation.

    Precedence: configured node file, ``PBS_NODEFILE``, configured slot
    count on ``localhost``, then the local CPU count.
    """

    source = os.environ if env is None else env
    if nodefile is not None:
        return SlotPool.from_nodefile(nodefile)
    env_nodefile = source.get("PBS_NODEFILE")
    if env_nodefile:
        return SlotPool.from_nodefile(Path(env_nodefile))
    if total_slots is not None:
        return SlotPool.from_count(total_slots)
    count = os.cpu_count() or 1
    _LOGGER.warning("No node file or slot count configured; using %d local CPUs", count)
    return SlotPool.from_count(count)


__all__ = ["ExecutionHandle", "LOCALHOST", "SlotPool", "load_pool"]
