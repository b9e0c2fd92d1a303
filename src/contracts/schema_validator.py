"""JSON Schema validation for batch configuration documents."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Mapping

import jsonschema

from .errors import ConfigurationError

_SCHEMA_ROOT = Path(__file__).resolve().parent / "schemas"
CONFIG_SCHEMA = "batch_config.schema.json"

_schema_cache: Dict[str, Dict[str, Any]] = {}
_validator_cache: Dict[str, Any] = {}


def load_schema(name: str) -> Dict[str, Any]:
    """Load a schema shipped next to this module."""

    resolved = (_SCHEMA_ROOT / name).resolve()
    if not str(resolved).startswith(str(_SCHEMA_ROOT)):
        raise ValueError("Schema path escapes the schemas directory")

    cache_key = str(resolved)
    if cache_key not in _schema_cache:
        _schema_cache[cache_key] = json.loads(resolved.read_text("utf-8"))
    return _schema_cache[cache_key]


def _compiled(name: str) -> Any:
    if name in _validator_cache:
        return _validator_cache[name]

    schema = load_schema(name)
    Validator = jsonschema.validators.validator_for(schema)
    Validator.check_schema(schema)
    validator = Validator(schema)
    _validator_cache[name] = validator
    return validator


def _format_path(error: jsonschema.ValidationError) -> str:
    parts = [str(part) for part in error.absolute_path]
    return ".".join(parts) if parts else "<root>"


def validate_config(document: Mapping[str, Any], *, schema: str = CONFIG_SCHEMA) -> None:
    """Validate *document* and raise :class:`ConfigurationError` on the first issue.

    Errors are ordered by their location in the document so the reported
    problem is stable between runs.
    """

    validator = _compiled(schema)
    errors = sorted(validator.iter_errors(dict(document)), key=lambda err: [str(p) for p in err.absolute_path])
    if errors:
        first = errors[0]
        raise ConfigurationError(f"Invalid configuration at '{_format_path(first)}': {first.message}")


__all__ = ["CONFIG_SCHEMA", "load_schema", "validate_config"]
