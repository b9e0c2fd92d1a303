"""Solver families keyed by name."""

from __future__ import annotations

from typing import Dict, Type

from contracts.errors import ConfigurationError

from .base import (
    ARTIFACT_EXPLICIT_DISCOVERED,
    ARTIFACT_EXPLICIT_SINGLE,
    ARTIFACT_SYNTHESIZED,
    Command,
    InputArtifact,
    Invocation,
    SolverFamily,
    SolverSettings,
)
from .fluent import FluentFamily
from .generic import CfxFamily, CustomFamily, StarCcmFamily, Su2Family
from .openfoam import OpenFoamFamily

FAMILIES: Dict[str, Type[SolverFamily]] = {
    family.name: family
    for family in (
        FluentFamily,
        OpenFoamFamily,
        CfxFamily,
        StarCcmFamily,
        Su2Family,
        CustomFamily,
    )
}


def get_family(settings: SolverSettings) -> SolverFamily:
    """Instantiate the family named by ``settings.family``."""

    family_cls = FAMILIES.get(settings.family)
    if family_cls is None:
        known = ", ".join(sorted(FAMILIES))
        raise ConfigurationError(f"Unknown solver type: {settings.family} (expected one of {known})")
    return family_cls(settings)


__all__ = [
    "ARTIFACT_EXPLICIT_DISCOVERED",
    "ARTIFACT_EXPLICIT_SINGLE",
    "ARTIFACT_SYNTHESIZED",
    "Command",
    "FAMILIES",
    "InputArtifact",
    "Invocation",
    "SolverFamily",
    "SolverSettings",
    "get_family",
]
