"""FFmpeg build orchestration.

This module provides the source build of FFmpeg:
- Build profiles (release/debug flag sets)
- Feature matrix resolution against the target (BuildConfiguration)
- configure command construction
- Source acquisition and the configure/make/make install driver
"""

from .build_context import BuildConfiguration
from .build_profiles import BuildProfile, ProfileFlags, get_profile
from .configure import ConfigureCommandBuilder, build_configure_flags
from .driver import BuildDriver, Installation
from .source import acquire_source

__all__ = [
    "BuildConfiguration",
    "BuildDriver",
    "BuildProfile",
    "ConfigureCommandBuilder",
    "Installation",
    "ProfileFlags",
    "acquire_source",
    "build_configure_flags",
    "get_profile",
]
