"""Canonical JSON storage of final batch reports."""

from __future__ import annotations

import copy
import hashlib
import json
import math
import unicodedata
from pathlib import Path
from typing import Any, Dict

REPORT_FILENAME = "report.json"


def _normalize(obj: Any) -> Any:
    """Return a deep-normalised structure suitable for canonical JSON."""

    if isinstance(obj, dict):
        return {str(k): _normalize(v) for k, v in sorted(obj.items(), key=lambda item: str(item[0]))}
    if isinstance(obj, (list, tuple)):
        return [_normalize(item) for item in obj]
    if isinstance(obj, str):
        return unicodedata.normalize("NFC", obj)
    if isinstance(obj, float):
        if not math.isfinite(obj):
            raise ValueError("Non-finite numbers are not allowed in reports")
        return obj
    return obj


def canonicalize(obj: Dict[str, Any]) -> bytes:
    """Serialise *obj* with sorted keys and no insignificant whitespace."""

    normalised = _normalize(obj)
    return json.dumps(normalised, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def compute_report_id(obj: Dict[str, Any]) -> str:
    """Hash the canonical form of *obj* without its ``report_id`` field."""

    base = copy.deepcopy(obj)
    base.pop("report_id", None)
    digest = hashlib.sha256(canonicalize(base)).hexdigest()
    return f"sha256-{digest}"


def save_report(obj: Dict[str, Any], directory: Path) -> Path:
    """Write *obj* to ``<directory>/report.json`` and return the path."""

    if not isinstance(obj, dict):
        raise TypeError("Report must be a mapping")

    payload = copy.deepcopy(obj)
    payload["report_id"] = compute_report_id(payload)
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    target = directory / REPORT_FILENAME
    target.write_bytes(canonicalize(payload))
    return target


def load_report(path: Path) -> Dict[str, Any]:
    """Load a saved report and check it has not been edited since."""

    path = Path(path)
    if path.is_dir():
        path = path / REPORT_FILENAME
    payload = json.loads(path.read_text("utf-8"))
    expected = compute_report_id(payload)
    if payload.get("report_id") != expected:
        raise ValueError(f"Report {path} does not match its report_id")
    return payload


__all__ = ["REPORT_FILENAME", "canonicalize", "compute_report_id", "load_report", "save_report"]
