from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Sequence, TextIO, Tuple

import pytest

from orchestrator import log


class FakeSpawn:
    """Stand-in for the solver process.

    Exit codes are looked up by program name first, then by case directory
    name.  Every call records the files present in the case directory and the
    content of the node file passed with ``-cnf=``.
    """

    def __init__(
        self,
        exit_codes: Dict[str, int] | None = None,
        delays: Dict[str, float] | None = None,
        raise_for: Iterable[str] = (),
    ) -> None:
        self.exit_codes = dict(exit_codes or {})
        self.delays = dict(delays or {})
        self.raise_for = set(raise_for)
        self.calls: List[Tuple[str, Tuple[str, ...]]] = []
        self.listings: Dict[str, List[str]] = {}
        self.nodefiles: Dict[str, str] = {}
        self.active = 0
        self.peak = 0
        self._lock = threading.Lock()

    def __call__(self, argv: Sequence[str], cwd: Path, stream: TextIO) -> int:
        name = Path(cwd).name
        with self._lock:
            self.calls.append((name, tuple(argv)))
            self.listings[name] = sorted(path.name for path in Path(cwd).iterdir())
            for arg in argv:
                if arg.startswith("-cnf="):
                    self.nodefiles[name] = (Path(cwd) / arg[len("-cnf=") :]).read_text()
            self.active += 1
            self.peak = max(self.peak, self.active)
        try:
            if name in self.raise_for:
                raise FileNotFoundError(2, "No such file or directory", argv[0])
            time.sleep(self.delays.get(name, 0.0))
            stream.write(f"solver output for {name}\n")
            return self.exit_codes.get(argv[0], self.exit_codes.get(name, 0))
        finally:
            with self._lock:
                self.active -= 1

    def cases(self) -> List[str]:
        return [name for name, _ in self.calls]


@pytest.fixture(autouse=True)
def _reset_event_log():
    log.reset()
    yield
    log.reset()


@pytest.fixture
def spawn_factory() -> Callable[..., FakeSpawn]:
    return FakeSpawn


@pytest.fixture
def make_cases() -> Callable[..., List[Path]]:
    def _make(root: Path, names: Iterable[str], files: Iterable[str] = ("airfoil.cas",)) -> List[Path]:
        created = []
        for name in names:
            case_dir = Path(root) / name
            case_dir.mkdir(parents=True, exist_ok=True)
            for filename in files:
                target = case_dir / filename
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(f"{filename} for {name}\n")
            created.append(case_dir)
        return created

    return _make
