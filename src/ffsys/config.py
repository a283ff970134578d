"""Pipeline configuration.

All environment lookups happen here, once, when the pipeline starts.
``BuildEnvironment.from_environ()`` snapshots the variables ffsys understands
into a frozen dataclass that is passed to every component, so no other module
looks up configuration variables and each component can be unit tested with a plain
``BuildEnvironment(...)``.

Recognised variables:
    FFSYS_HOST / FFSYS_TARGET      host and target triples
    FFSYS_TARGET_OS / _ARCH        override the OS/arch parsed from the target
    FFSYS_FEATURES                 feature selection ("build,avcodec,build_lib_x264")
    FFSYS_FFMPEG_VERSION           pinned FFmpeg release, major.minor
    FFSYS_OUT_DIR                  scratch and install directory
    FFSYS_DEBUG                    any value selects the debug build profile
    FFSYS_JOBS                     parallelism for make
    FFSYS_SOURCE_URL               upstream git repository
    FFSYS_VERBOSE                  echo external commands
    SYSROOT                        explicit sysroot for cross builds
    CARGO_NDK_SYSROOT_PATH         Android sysroot exported by cargo-ndk
    NDK_SYSROOT_PATH               Android sysroot for other NDK helpers (used when the above is unset)
    CUDA_PATH                      CUDA toolkit root for the NVIDIA backend
    FFMPEG_DIR                     use a prebuilt FFmpeg instead of building
    VCPKG_ROOT                     vcpkg installation searched for MSVC targets
    VCPKGRS_TRIPLET                vcpkg triplet (default derived from the target)
    HOST_CC / CC                   host C compiler (probe program)
    CC_<target> / TARGET_CC        target C compiler
    CFLAGS_<target>                extra target compiler flags
"""

import os
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Iterable, Mapping, Optional

from .errors import ConfigurationError
from .platform.triple import detect_host_triple, parse_triple

DEFAULT_FFMPEG_VERSION = (8, 0)
DEFAULT_SOURCE_URL = "https://github.com/FFmpeg/FFmpeg"
DEFAULT_OUT_DIR = Path("target") / "ffsys"

_VERSION_RE = re.compile(r"^\s*(\d+)\.(\d+)\s*$")


def normalize_feature(name: str) -> str:
    """Normalize a feature name: lowercase, dashes become underscores."""
    return name.strip().lower().replace("-", "_")


def parse_features(value: Optional[str]) -> frozenset[str]:
    """Parse a comma or whitespace separated feature list."""
    if not value:
        return frozenset()
    return frozenset(normalize_feature(part) for part in re.split(r"[,\s]+", value) if part.strip())


def parse_version(value: str) -> tuple[int, int]:
    """Parse ``major.minor``.

    Raises:
        ConfigurationError: If the value is not of the form N.N
    """
    match = _VERSION_RE.match(value)
    if not match:
        raise ConfigurationError(f"Invalid FFmpeg version {value!r}: expected major.minor (e.g. 8.0)")
    return int(match.group(1)), int(match.group(2))


def _lookup_target_var(environ: Mapping[str, str], prefix: str, target: str) -> Optional[str]:
    """Look up ``<prefix>_<target>`` with both dash and underscore spellings."""
    for key in (f"{prefix}_{target}", f"{prefix}_{target.replace('-', '_')}"):
        value = environ.get(key)
        if value:
            return value
    return None


@dataclass(frozen=True)
class BuildEnvironment:
    """Immutable snapshot of everything the pipeline reads from its environment.

    Attributes:
        host: Host triple (the machine running the build and the probe)
        target: Target triple FFmpeg is built for
        target_os: Normalized target OS (linux, android, ios, macos, windows, ...)
        target_arch: Normalized target architecture
        target_env: Target ABI suffix (gnu, msvc, android, ...)
        host_os: Normalized host OS
        features: Selected features (components, licenses, external libs, backends)
        ffmpeg_version: Pinned FFmpeg release as (major, minor)
        out_dir: Directory holding the source checkout, install prefix and probe scratch files
        debug: Build FFmpeg with the debug profile
        jobs: Explicit make parallelism, None means one job per CPU
        source_url: Upstream git repository
        verbose: Echo external commands
        sysroot_override: Explicit sysroot (SYSROOT)
        ndk_sysroot: Android sysroot supplied by the NDK helper
        cuda_path: CUDA toolkit root
        prebuilt_dir: Prebuilt FFmpeg root (FFMPEG_DIR)
        vcpkg_root: vcpkg installation root (VCPKG_ROOT)
        vcpkg_triplet: Explicit vcpkg triplet (VCPKGRS_TRIPLET)
        host_cc: Host compiler override
        target_cc: Target compiler override
        target_cflags: Extra target compiler flags
    """

    host: str
    target: str
    target_os: str
    target_arch: str
    target_env: str = ""
    host_os: str = ""
    features: frozenset[str] = field(default_factory=frozenset)
    ffmpeg_version: tuple[int, int] = DEFAULT_FFMPEG_VERSION
    out_dir: Path = DEFAULT_OUT_DIR
    debug: bool = False
    jobs: Optional[int] = None
    source_url: str = DEFAULT_SOURCE_URL
    verbose: bool = False
    sysroot_override: Optional[str] = None
    ndk_sysroot: Optional[str] = None
    cuda_path: Optional[str] = None
    prebuilt_dir: Optional[Path] = None
    vcpkg_root: Optional[Path] = None
    vcpkg_triplet: Optional[str] = None
    host_cc: Optional[str] = None
    target_cc: Optional[str] = None
    target_cflags: Optional[str] = None

    @classmethod
    def from_environ(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        overrides: Optional[Mapping[str, str]] = None,
    ) -> "BuildEnvironment":
        """Create the configuration from process environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)
            overrides: Variables that take precedence over ``environ`` (used by the CLI)

        Returns:
            Frozen BuildEnvironment

        Raises:
            ConfigurationError: If a variable holds an invalid value
        """
        environ = dict(os.environ if environ is None else environ)
        environ.update(overrides or {})

        host = environ.get("FFSYS_HOST") or detect_host_triple()
        target = environ.get("FFSYS_TARGET") or host
        try:
            host_triple = parse_triple(host)
            target_triple = parse_triple(target)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        jobs: Optional[int] = None
        if environ.get("FFSYS_JOBS"):
            try:
                jobs = int(environ["FFSYS_JOBS"])
            except ValueError as e:
                raise ConfigurationError(f"FFSYS_JOBS must be an integer, got {environ['FFSYS_JOBS']!r}") from e
            if jobs < 1:
                raise ConfigurationError(f"FFSYS_JOBS must be at least 1, got {jobs}")

        version = DEFAULT_FFMPEG_VERSION
        if environ.get("FFSYS_FFMPEG_VERSION"):
            version = parse_version(environ["FFSYS_FFMPEG_VERSION"])

        is_cross = host != target
        prebuilt = environ.get("FFMPEG_DIR")
        vcpkg_root = environ.get("VCPKG_ROOT")

        return cls(
            host=host,
            target=target,
            target_os=environ.get("FFSYS_TARGET_OS") or target_triple.os,
            target_arch=environ.get("FFSYS_TARGET_ARCH") or target_triple.arch,
            target_env=target_triple.env,
            host_os=host_triple.os,
            features=parse_features(environ.get("FFSYS_FEATURES")),
            ffmpeg_version=version,
            out_dir=Path(environ.get("FFSYS_OUT_DIR") or DEFAULT_OUT_DIR),
            debug="FFSYS_DEBUG" in environ,
            jobs=jobs,
            source_url=environ.get("FFSYS_SOURCE_URL") or DEFAULT_SOURCE_URL,
            verbose=bool(environ.get("FFSYS_VERBOSE")),
            sysroot_override=environ.get("SYSROOT") or None,
            ndk_sysroot=environ.get("CARGO_NDK_SYSROOT_PATH") or environ.get("NDK_SYSROOT_PATH") or None,
            cuda_path=environ.get("CUDA_PATH") or None,
            prebuilt_dir=Path(prebuilt) if prebuilt else None,
            vcpkg_root=Path(vcpkg_root) if vcpkg_root else None,
            vcpkg_triplet=environ.get("VCPKGRS_TRIPLET") or None,
            host_cc=environ.get("HOST_CC") or environ.get("CC") or None,
            target_cc=(_lookup_target_var(environ, "CC", target) or environ.get("TARGET_CC")) if is_cross else None,
            target_cflags=_lookup_target_var(environ, "CFLAGS", target),
        )

    def with_features(self, features: Iterable[str]) -> "BuildEnvironment":
        return replace(self, features=frozenset(normalize_feature(f) for f in features))

    def has_feature(self, name: str) -> bool:
        return normalize_feature(name) in self.features

    @property
    def is_cross(self) -> bool:
        return self.host != self.target

    @property
    def builds_from_source(self) -> bool:
        return self.has_feature("build")

    @property
    def static(self) -> bool:
        return self.has_feature("static")

    @property
    def version_string(self) -> str:
        return f"{self.ffmpeg_version[0]}.{self.ffmpeg_version[1]}"

    @property
    def major_version(self) -> int:
        return self.ffmpeg_version[0]

    @property
    def source_dir(self) -> Path:
        """Checkout directory for the pinned FFmpeg release."""
        return self.out_dir / f"ffmpeg-{self.version_string}"

    @property
    def install_prefix(self) -> Path:
        """Private install prefix passed to ./configure --prefix."""
        return (self.out_dir / "dist").absolute()

    @property
    def probe_dir(self) -> Path:
        """Scratch directory for the generated probe program."""
        return self.out_dir / "probe"

    @property
    def signals_path(self) -> Path:
        return self.out_dir / "signals.json"
