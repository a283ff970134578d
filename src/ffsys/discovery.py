"""Locating FFmpeg headers and libraries.

Four sources, tried in this order by the pipeline:

1. Source build (``build`` feature): the private install prefix.
2. ``FFMPEG_DIR``: a prebuilt tree with ``include/`` and an arch-specific
   ``lib/`` directory (``lib/amd64``, ``lib/armhf``, ``lib/arm64``, or ``lib``).
3. vcpkg (MSVC targets): ``$VCPKG_ROOT/installed/<triplet>``.
4. pkg-config: ``libavutil``, every selected optional component and
   ``libavcodec``.
"""

import logging
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, List, Optional

from .build.build_context import BuildConfiguration
from .build.driver import Installation
from .errors import DiscoveryError
from .output import log_detail
from .subprocess_utils import safe_run
from .tables import base_component

if TYPE_CHECKING:
    from ffsys.config import BuildEnvironment

logger = logging.getLogger(__name__)

# Arch-specific library directories of prebuilt FFmpeg distributions
PREBUILT_LIB_DIRS = {
    "x86_64": "amd64",
    "arm": "armhf",
    "aarch64": "arm64",
}


@dataclass(frozen=True)
class LibraryLocation:
    """Where the FFmpeg headers and libraries were found.

    Attributes:
        source: "build", "prebuilt", "vcpkg" or "pkg-config"
        include_paths: Directories to pass to the probe compiler with -I
        lib_dirs: Library search directories
        libraries: Libraries reported by pkg-config (empty for other sources)
        installation: The source build, when FFmpeg was built by us
    """

    source: str
    include_paths: tuple[Path, ...]
    lib_dirs: tuple[Path, ...] = ()
    libraries: tuple[str, ...] = ()
    installation: Optional[Installation] = field(default=None)


def from_installation(installation: Installation) -> LibraryLocation:
    return LibraryLocation(
        source="build",
        include_paths=(installation.include_dir,),
        lib_dirs=(installation.lib_dir,),
        installation=installation,
    )


def prebuilt_lib_dir(root: Path, arch: str) -> Path:
    """Pick the library directory of a prebuilt FFmpeg tree for ``arch``."""
    subdir = PREBUILT_LIB_DIRS.get(arch)
    if subdir:
        candidate = root / "lib" / subdir
        if candidate.exists():
            return candidate
    return root / "lib"


def discover_prebuilt(env: "BuildEnvironment") -> LibraryLocation:
    """Use the prebuilt FFmpeg named by FFMPEG_DIR."""
    root = env.prebuilt_dir
    if root is None:
        raise DiscoveryError("FFMPEG_DIR is not set")
    if not root.exists():
        raise DiscoveryError(f"FFMPEG_DIR does not exist: {root}")
    lib_dir = prebuilt_lib_dir(root, env.target_arch)
    log_detail(f"Using prebuilt FFmpeg: {root} (libraries in {lib_dir})")
    return LibraryLocation(source="prebuilt", include_paths=(root / "include",), lib_dirs=(lib_dir,))


# vcpkg triplet architecture names
VCPKG_ARCH = {
    "x86_64": "x64",
    "x86": "x86",
    "aarch64": "arm64",
    "arm": "arm",
}


def vcpkg_triplet(env: "BuildEnvironment") -> Optional[str]:
    """Triplet holding FFmpeg: ``x64-windows`` or ``x64-windows-static-md`` for static builds."""
    if env.vcpkg_triplet:
        return env.vcpkg_triplet
    arch = VCPKG_ARCH.get(env.target_arch)
    if arch is None:
        return None
    return f"{arch}-windows-static-md" if env.static else f"{arch}-windows"


def discover_vcpkg(env: "BuildEnvironment") -> Optional[LibraryLocation]:
    """Look for FFmpeg installed by vcpkg (MSVC targets only).

    Returns:
        LibraryLocation, or None when vcpkg is not configured or holds no
        FFmpeg for the target triplet
    """
    if env.target_env != "msvc":
        return None
    if env.vcpkg_root is None:
        log_detail("Could not find ffmpeg with vcpkg: VCPKG_ROOT is not set")
        return None
    triplet = vcpkg_triplet(env)
    if triplet is None:
        log_detail(f"Could not find ffmpeg with vcpkg: no triplet for {env.target_arch}")
        return None

    installed = env.vcpkg_root / "installed" / triplet
    marker = installed / "include" / "libavutil" / "avutil.h"
    if not marker.exists():
        log_detail(f"Could not find ffmpeg with vcpkg: {marker} does not exist")
        return None
    log_detail(f"Using FFmpeg from vcpkg: {installed}")
    return LibraryLocation(source="vcpkg", include_paths=(installed / "include",), lib_dirs=(installed / "lib",))


def pkg_config_packages(config: BuildConfiguration) -> List[str]:
    """pkg-config package names to query, base library first and libavcodec last."""
    packages = [base_component().pkg_config_name]
    for component in config.components:
        if component.optional and config.is_enabled(component.name) and component.name != "avcodec":
            packages.append(component.pkg_config_name)
    packages.append("libavcodec")
    return packages


def query_pkg_config(package: str, static: bool) -> List[str]:
    """Return the -I/-L/-l tokens pkg-config reports for a package.

    Raises:
        DiscoveryError: If pkg-config is missing or does not know the package
    """
    cmd = ["pkg-config"]
    if static:
        cmd.append("--static")
    cmd += ["--cflags-only-I", "--libs", package]
    try:
        result = safe_run(cmd, capture_output=True, text=True, check=False)
    except OSError as e:
        raise DiscoveryError(
            f"pkg-config could not be started ({e}). Enable the 'build' feature or set FFMPEG_DIR."
        ) from e
    if result.returncode != 0:
        raise DiscoveryError(
            f"pkg-config could not find {package}: {result.stderr.strip()}. "
            "Enable the 'build' feature or set FFMPEG_DIR."
        )
    return shlex.split(result.stdout)


def _unique(items: Iterable) -> tuple:
    seen = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return tuple(seen)


def discover_pkg_config(env: "BuildEnvironment", config: BuildConfiguration) -> LibraryLocation:
    """Locate a system FFmpeg through pkg-config."""
    includes: List[Path] = []
    lib_dirs: List[Path] = []
    libraries: List[str] = []
    for package in pkg_config_packages(config):
        tokens = query_pkg_config(package, env.static)
        logger.debug("pkg-config %s: %s", package, tokens)
        for token in tokens:
            if token.startswith("-I"):
                includes.append(Path(token[2:]))
            elif token.startswith("-L"):
                lib_dirs.append(Path(token[2:]))
            elif token.startswith("-l"):
                libraries.append(token[2:])
    log_detail(f"Using system FFmpeg found by pkg-config ({len(_unique(libraries))} libraries)")
    return LibraryLocation(
        source="pkg-config",
        include_paths=_unique(includes),
        lib_dirs=_unique(lib_dirs),
        libraries=_unique(libraries),
    )
