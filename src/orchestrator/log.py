"""JSONL batch event log.

Events land in ``<log_dir>/events_NN.jsonl``; a new file is started once the
current one reaches the size limit.  Until :func:`configure` is called every
event is dropped, which keeps library use and tests free of stray files.
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

__all__ = ["configure", "append_event", "current_log_path", "reset"]

_DEFAULT_MAX_BYTES = 16 * 1024 * 1024
_LOCK = threading.Lock()


@dataclass
class _EventSink:
    log_dir: Path
    max_bytes: int
    current: Optional[Path] = None

    def _full(self, path: Path) -> bool:
        return path.exists() and path.stat().st_size >= self.max_bytes

    def target(self) -> Path:
        if self.current is not None and not self._full(self.current):
            return self.current
        self.log_dir.mkdir(parents=True, exist_ok=True)
        counter = 0
        while self._full(self.log_dir / f"events_{counter:02d}.jsonl"):
            counter += 1
        self.current = self.log_dir / f"events_{counter:02d}.jsonl"
        return self.current


_SINK: Optional[_EventSink] = None


def configure(base_dir: str | Path, *, max_bytes: int | None = None) -> None:
    """Write events into ``base_dir`` from now on."""

    global _SINK
    with _LOCK:
        _SINK = _EventSink(Path(base_dir), max_bytes or _DEFAULT_MAX_BYTES)


def reset() -> None:
    global _SINK
    with _LOCK:
        _SINK = None


def append_event(event: Dict[str, Any]) -> Path | None:
    """Append ``event`` as one JSON line; returns ``None`` when unconfigured."""

    payload = dict(event)
    payload.setdefault("ts", datetime.now(timezone.utc).isoformat(timespec="milliseconds"))
    line = json.dumps(payload, sort_keys=True, ensure_ascii=False, default=str)

    with _LOCK:
        if _SINK is None:
            return None
        path = _SINK.target()
        with path.open("a", encoding="utf-8") as handle:
            handle.write(line + "\n")
    return path


def current_log_path() -> Path | None:
    sink = _SINK
    return sink.current if sink is not None else None
