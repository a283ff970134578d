"""Build Profile Configuration.

This module defines the configure flags each FFmpeg build profile controls.

Design:
    Profiles declare ALL flags they control explicitly: the configure switches
    (debug info, stripping) and the extra compile/link flags handed to
    configure as --extra-cflags / --extra-ldflags. The configure builder just
    renders profile.configure_flags, profile.compile_flags and
    profile.link_flags without knowing what is in them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List


class BuildProfile(Enum):
    """Build profile enum for type-safe profile selection."""

    RELEASE = "release"
    DEBUG = "debug"

    def __str__(self) -> str:
        """Return the string value for display."""
        return self.value


@dataclass(frozen=True)
class ProfileFlags:
    """FFmpeg build profile flags.

    All fields are mandatory - no defaults.

    Attributes:
        name: Profile identifier (matches BuildProfile enum value)
        description: Human-readable profile description
        configure_flags: Switches passed to configure verbatim
        compile_flags: Flags joined into one --extra-cflags argument
        link_flags: Flags passed as --extra-ldflags
        windows_host_link_flags: Whether link_flags also apply on Windows hosts
    """

    name: str
    description: str
    configure_flags: tuple[str, ...]
    compile_flags: tuple[str, ...]
    link_flags: tuple[str, ...]
    windows_host_link_flags: bool


# Profile configurations - keyed by BuildProfile enum
PROFILES: dict[BuildProfile, ProfileFlags] = {
    BuildProfile.RELEASE: ProfileFlags(
        name="release",
        description="Optimized, stripped build with LTO (default)",
        configure_flags=(
            "--disable-debug",
            "--enable-stripping",
        ),
        compile_flags=(
            "-O3",
            "-ffast-math",
            "-funroll-loops",
        ),
        link_flags=("-flto",),
        windows_host_link_flags=False,
    ),
    BuildProfile.DEBUG: ProfileFlags(
        name="debug",
        description="Unstripped build with debug info",
        configure_flags=(
            "--enable-debug",
            "--disable-stripping",
        ),
        compile_flags=(),
        link_flags=(),
        windows_host_link_flags=False,
    ),
}


def select_profile(debug: bool) -> BuildProfile:
    return BuildProfile.DEBUG if debug else BuildProfile.RELEASE


def get_profile(profile: BuildProfile) -> ProfileFlags:
    """Get profile configuration by enum.

    Args:
        profile: BuildProfile enum value

    Returns:
        ProfileFlags for the requested profile
    """
    return PROFILES[profile]


def get_configure_flags(profile: BuildProfile, host_os: str) -> List[str]:
    """Render a profile as configure arguments.

    Args:
        profile: BuildProfile enum value
        host_os: OS of the machine running configure (LTO is skipped on Windows hosts)

    Returns:
        List of configure arguments in profile order
    """
    profile_flags = get_profile(profile)
    args = list(profile_flags.configure_flags)
    if profile_flags.compile_flags:
        args.append(f"--extra-cflags={' '.join(profile_flags.compile_flags)}")
    if profile_flags.link_flags and (host_os != "windows" or profile_flags.windows_host_link_flags):
        args.extend(f"--extra-ldflags={flag}" for flag in profile_flags.link_flags)
    return args
