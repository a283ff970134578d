"""
Type-safe feature matrix and probe table models.

Every JSON table under ``ffsys/tables`` is parsed into these frozen
dataclasses once per process, so the rest of the code never touches raw
dictionaries.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple


def _require(data: Dict[str, Any], key: str, table: str) -> Any:
    try:
        return data[key]
    except KeyError as e:
        raise ValueError(f"Missing required field in {table}: {e}") from e


@dataclass(frozen=True)
class LibraryComponent:
    """An FFmpeg sub-library.

    Attributes:
        name: Library name without the "lib" prefix (avcodec, avutil, ...)
        optional: False only for the base library, which is always built
        removed_in_major: First FFmpeg major version that no longer ships it
    """

    name: str
    optional: bool = True
    removed_in_major: Optional[int] = None

    @property
    def feature(self) -> str:
        return self.name

    @property
    def link_name(self) -> str:
        return self.name

    @property
    def pkg_config_name(self) -> str:
        return f"lib{self.name}"

    def exists_in(self, major: int) -> bool:
        """Whether the component still exists in the given FFmpeg major version."""
        return self.removed_in_major is None or major < self.removed_in_major

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LibraryComponent":
        removed = data.get("removed_in_major")
        return cls(
            name=_require(data, "name", "components.json"),
            optional=bool(data.get("optional", True)),
            removed_in_major=int(removed) if removed is not None else None,
        )


@dataclass(frozen=True)
class ExternalLibrary:
    """A third-party library FFmpeg can be built against."""

    feature: str
    flag: str
    category: str = "codec"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExternalLibrary":
        return cls(
            feature=_require(data, "feature", "external_libraries.json"),
            flag=_require(data, "flag", "external_libraries.json"),
            category=data.get("category", "codec"),
        )


@dataclass(frozen=True)
class HardwareBackend:
    """
    A hardware acceleration backend.

    Attributes:
        feature: Feature selecting the backend
        flags: Configure flags passed when the backend applies
        os: Target OSes the backend supports, empty for any
        arch: Target architectures the backend supports, empty for any
        toolkit: External SDK the backend needs ("cuda"), if any
        cflags: Extra compiler flags per target OS
        cross_cflags: Extra compiler flags per target OS, cross builds only
    """

    feature: str
    flags: Tuple[str, ...]
    os: Tuple[str, ...] = ()
    arch: Tuple[str, ...] = ()
    toolkit: Optional[str] = None
    cflags: Dict[str, str] = field(default_factory=dict)
    cross_cflags: Dict[str, str] = field(default_factory=dict)

    def supports(self, target_os: str, target_arch: str) -> bool:
        if self.os and target_os not in self.os:
            return False
        if self.arch and target_arch not in self.arch:
            return False
        return True

    def extra_cflags(self, target_os: str, is_cross: bool) -> List[str]:
        flags = []
        if target_os in self.cflags:
            flags.append(self.cflags[target_os])
        if is_cross and target_os in self.cross_cflags:
            flags.append(self.cross_cflags[target_os])
        return flags

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HardwareBackend":
        return cls(
            feature=_require(data, "feature", "hardware_backends.json"),
            flags=tuple(_require(data, "flags", "hardware_backends.json")),
            os=tuple(data.get("os") or ()),
            arch=tuple(data.get("arch") or ()),
            toolkit=data.get("toolkit"),
            cflags=dict(data.get("cflags") or {}),
            cross_cflags=dict(data.get("cross_cflags") or {}),
        )


@dataclass(frozen=True)
class LicenseGate:
    """A license switch: always passed as --enable-<flag> or --disable-<flag>."""

    feature: str
    flag: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LicenseGate":
        return cls(
            feature=_require(data, "feature", "license_gates.json"),
            flag=_require(data, "flag", "license_gates.json"),
        )


@dataclass(frozen=True)
class FeatureProbeSpec:
    """A preprocessor symbol to probe.

    Attributes:
        header: Header declaring the symbol (e.g. "libavcodec/avcodec.h")
        gating_component: Component that must be selected for the probe to run,
            None for symbols from the base library
        signal_name: Symbol name, also the emitted signal name
    """

    header: str
    gating_component: Optional[str]
    signal_name: str

    @property
    def defined_signal(self) -> str:
        return f"{self.signal_name}_is_defined"

    def is_active(self, components: "frozenset[str]") -> bool:
        return self.gating_component is None or self.gating_component in components


@dataclass(frozen=True)
class VersionGateSpec:
    """Half-open ranges of (major, minor) versions compared against a library."""

    library_id: str
    major_lo: int
    major_hi: int
    minor_lo: int
    minor_hi: int

    def pairs(self) -> Iterator[Tuple[int, int]]:
        """Every (major, minor) pair covered by the gate, in ascending order."""
        for major in range(self.major_lo, self.major_hi):
            for minor in range(self.minor_lo, self.minor_hi):
                yield major, minor

    def covers(self, major: int, minor: int) -> bool:
        return self.major_lo <= major < self.major_hi and self.minor_lo <= minor < self.minor_hi

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VersionGateSpec":
        major = _require(data, "major", "version_gates.json")
        minor = _require(data, "minor", "version_gates.json")
        if len(major) != 2 or len(minor) != 2:
            raise ValueError(f"Version gate ranges must be [lo, hi] pairs: {data}")
        gate = cls(
            library_id=_require(data, "library", "version_gates.json"),
            major_lo=int(major[0]),
            major_hi=int(major[1]),
            minor_lo=int(minor[0]),
            minor_hi=int(minor[1]),
        )
        if gate.major_lo >= gate.major_hi or gate.minor_lo >= gate.minor_hi:
            raise ValueError(f"Empty version gate range: {data}")
        return gate


@dataclass(frozen=True)
class EraLabel:
    """A named release, true once the library reached ``major.minor``."""

    label: str
    library_id: str
    major: int
    minor: int

    @property
    def gate(self) -> Tuple[int, int]:
        """The (major, minor) comparison this label is read from."""
        return self.major, self.minor - 1

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EraLabel":
        return cls(
            label=_require(data, "label", "version_gates.json"),
            library_id=_require(data, "library", "version_gates.json"),
            major=int(_require(data, "major", "version_gates.json")),
            minor=int(_require(data, "minor", "version_gates.json")),
        )


def version_gate_name(library_id: str, major: int, minor: int) -> str:
    """Signal name of a version comparison, e.g. ``avcodec_version_greater_than_58_10``."""
    return f"{library_id}_version_greater_than_{major}_{minor}"
