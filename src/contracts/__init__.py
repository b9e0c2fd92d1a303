"""Configuration contracts and error taxonomy for the batch engine."""

from __future__ import annotations

from .errors import (
    BatchError,
    ConfigurationError,
    DirectoryMissingError,
    ExternalProcessError,
    InputNotFoundError,
    JobError,
    SlotExhaustedError,
)
from .schema_validator import validate_config

__all__ = [
    "BatchError",
    "ConfigurationError",
    "DirectoryMissingError",
    "ExternalProcessError",
    "InputNotFoundError",
    "JobError",
    "SlotExhaustedError",
    "validate_config",
]
