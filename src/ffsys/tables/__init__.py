"""Static feature matrix and probe tables.

The tables are JSON files shipped inside the package and read through
importlib.resources so they work from a wheel as well as from a checkout:

    components.json          - FFmpeg sub-libraries
    license_gates.json       - gpl / version3 / nonfree switches
    external_libraries.json  - third-party codec, filter, TLS and protocol libraries
    hardware_backends.json   - acceleration backends with their OS/arch gates
    probes.json              - deprecation macros checked in the installed headers
    version_gates.json       - libavcodec version comparisons and release labels

Each loader parses its table once and returns frozen dataclasses.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from importlib import resources
from typing import Any

from ..errors import ConfigurationError
from .models import (
    EraLabel,
    ExternalLibrary,
    FeatureProbeSpec,
    HardwareBackend,
    LibraryComponent,
    LicenseGate,
    VersionGateSpec,
    version_gate_name,
)

logger = logging.getLogger(__name__)


def load_table(name: str) -> dict[str, Any]:
    """Load one JSON table from the package.

    Raises:
        ConfigurationError: If the table is missing or not valid JSON
    """
    table_file = resources.files(__package__).joinpath(name)
    try:
        with table_file.open("r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Missing feature table: {name}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in feature table {name}: {e}") from e


def _parse(name: str, key: str, factory):
    data = load_table(name)
    try:
        return tuple(factory(entry) for entry in data[key])
    except KeyError as e:
        raise ConfigurationError(f"Feature table {name} has no {e} section") from e
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid entry in feature table {name}: {e}") from e


@lru_cache(maxsize=None)
def load_components() -> tuple[LibraryComponent, ...]:
    components = _parse("components.json", "components", LibraryComponent.from_dict)
    base = load_table("components.json").get("base")
    names = [c.name for c in components]
    if base not in names:
        raise ConfigurationError(f"Base component {base!r} is not listed in components.json")
    if len(set(names)) != len(names):
        raise ConfigurationError("Duplicate component names in components.json")
    return components


def base_component() -> LibraryComponent:
    """The component that is always built and linked (avutil)."""
    return next(c for c in load_components() if not c.optional)


def optional_components() -> tuple[LibraryComponent, ...]:
    return tuple(c for c in load_components() if c.optional)


@lru_cache(maxsize=None)
def load_license_gates() -> tuple[LicenseGate, ...]:
    return _parse("license_gates.json", "gates", LicenseGate.from_dict)


@lru_cache(maxsize=None)
def load_external_libraries() -> tuple[ExternalLibrary, ...]:
    return _parse("external_libraries.json", "libraries", ExternalLibrary.from_dict)


@lru_cache(maxsize=None)
def load_hardware_backends() -> tuple[HardwareBackend, ...]:
    return _parse("hardware_backends.json", "backends", HardwareBackend.from_dict)


@lru_cache(maxsize=None)
def load_probe_specs() -> tuple[FeatureProbeSpec, ...]:
    """Flatten probes.json into one spec per symbol, in table order.

    Raises:
        ConfigurationError: If a symbol is listed twice or a gate names an
            unknown component
    """
    data = load_table("probes.json")
    known = {c.name for c in load_components()}
    specs = []
    seen = set()
    for group in data.get("groups", []):
        header = group.get("header")
        gate = group.get("gate")
        if not header:
            raise ConfigurationError(f"Probe group without header in probes.json: {group}")
        if gate is not None and gate not in known:
            raise ConfigurationError(f"Probe group {header} is gated on unknown component {gate!r}")
        for symbol in group.get("symbols", []):
            if symbol in seen:
                raise ConfigurationError(f"Probe symbol {symbol} is listed twice in probes.json")
            seen.add(symbol)
            specs.append(FeatureProbeSpec(header=header, gating_component=gate, signal_name=symbol))
    return tuple(specs)


@lru_cache(maxsize=None)
def load_version_gates() -> tuple[VersionGateSpec, ...]:
    return _parse("version_gates.json", "gates", VersionGateSpec.from_dict)


@lru_cache(maxsize=None)
def load_era_labels() -> tuple[EraLabel, ...]:
    """Load release labels, checking each one reads a comparison that is actually emitted.

    Raises:
        ConfigurationError: If a label's gate lies outside every version gate range
    """
    eras = _parse("version_gates.json", "eras", EraLabel.from_dict)
    gates = load_version_gates()
    for era in eras:
        major, minor = era.gate
        if not any(g.library_id == era.library_id and g.covers(major, minor) for g in gates):
            raise ConfigurationError(
                f"Release label {era.label} reads {version_gate_name(era.library_id, major, minor)}, "
                "which no version gate emits"
            )
    return eras


def table_summary() -> dict[str, int]:
    """Number of entries per table (shown by ``ffsys tables``)."""
    return {
        "components": len(load_components()),
        "license_gates": len(load_license_gates()),
        "external_libraries": len(load_external_libraries()),
        "hardware_backends": len(load_hardware_backends()),
        "probes": len(load_probe_specs()),
        "version_comparisons": sum(1 for g in load_version_gates() for _ in g.pairs()),
        "release_labels": len(load_era_labels()),
    }


__all__ = [
    "EraLabel",
    "ExternalLibrary",
    "FeatureProbeSpec",
    "HardwareBackend",
    "LibraryComponent",
    "LicenseGate",
    "VersionGateSpec",
    "base_component",
    "load_components",
    "load_era_labels",
    "load_external_libraries",
    "load_hardware_backends",
    "load_license_gates",
    "load_probe_specs",
    "load_table",
    "load_version_gates",
    "optional_components",
    "table_summary",
    "version_gate_name",
]
