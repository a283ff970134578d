"""Build Configuration - the feature matrix resolved for one target.

Design:
    BuildConfiguration is created once from the BuildEnvironment and the static
    tables. It answers every "is X enabled?" question the configure builder,
    the link plan and the probe need, so none of them look at features
    directly. Hardware backends are filtered by target (os, arch) here;
    requests for backends the target cannot use are dropped silently.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..tables import (
    ExternalLibrary,
    HardwareBackend,
    LibraryComponent,
    load_components,
    load_external_libraries,
    load_hardware_backends,
    load_license_gates,
)
from .build_profiles import BuildProfile, ProfileFlags, get_profile, select_profile

if TYPE_CHECKING:
    from ffsys.config import BuildEnvironment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildConfiguration:
    """Feature matrix resolved against one BuildEnvironment.

    Attributes:
        profile: Build profile enum value
        profile_flags: Pre-resolved profile flags
        components: Every component that exists in the pinned FFmpeg version
        enabled_components: Names of components that are built and linked (base included)
        license_switches: (flag, enabled) per license gate, table order
        external_libraries: Selected external libraries, table order
        hardware_backends: Selected backends that apply to the target, table order
        dropped_backends: Features of selected backends the target cannot use
    """

    profile: BuildProfile
    profile_flags: ProfileFlags
    components: tuple[LibraryComponent, ...]
    enabled_components: frozenset[str]
    license_switches: tuple[tuple[str, bool], ...]
    external_libraries: tuple[ExternalLibrary, ...]
    hardware_backends: tuple[HardwareBackend, ...]
    dropped_backends: tuple[str, ...]

    @classmethod
    def from_environment(cls, env: "BuildEnvironment") -> "BuildConfiguration":
        """Resolve the feature matrix for a configuration."""
        major = env.major_version
        components = tuple(c for c in load_components() if c.exists_in(major))
        for component in load_components():
            if not component.exists_in(major) and env.has_feature(component.feature):
                logger.debug("Ignoring %s: removed in FFmpeg %d", component.name, component.removed_in_major)

        enabled = frozenset(c.name for c in components if not c.optional or env.has_feature(c.feature))

        backends = []
        dropped = []
        for backend in load_hardware_backends():
            if not env.has_feature(backend.feature):
                continue
            if backend.supports(env.target_os, env.target_arch):
                backends.append(backend)
            else:
                logger.debug(
                    "Dropping %s: not available for %s/%s", backend.feature, env.target_os, env.target_arch
                )
                dropped.append(backend.feature)

        profile = select_profile(env.debug)
        return cls(
            profile=profile,
            profile_flags=get_profile(profile),
            components=components,
            enabled_components=enabled,
            license_switches=tuple((g.flag, env.has_feature(g.feature)) for g in load_license_gates()),
            external_libraries=tuple(lib for lib in load_external_libraries() if env.has_feature(lib.feature)),
            hardware_backends=tuple(backends),
            dropped_backends=tuple(dropped),
        )

    @property
    def optional_switches(self) -> list[tuple[str, bool]]:
        """(component, enabled) for every optional component, table order."""
        return [(c.name, c.name in self.enabled_components) for c in self.components if c.optional]

    def is_enabled(self, component: str) -> bool:
        return component in self.enabled_components

    def uses_toolkit(self, toolkit: str) -> bool:
        return any(b.toolkit == toolkit for b in self.hardware_backends)
