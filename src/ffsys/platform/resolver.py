"""Platform and cross toolchain resolution.

Decides whether the build is native or cross, finds the sysroot a cross build
needs (for FFmpeg's configure and for the binding generator's parser), and
derives the cross toolchain prefix from the target compiler.

Sysroot resolution order for cross builds:
    1. $SYSROOT, used verbatim
    2. iOS: ``xcrun --sdk iphoneos --show-sdk-path`` (fatal if unavailable)
    3. Android: $CARGO_NDK_SYSROOT_PATH exported by cargo-ndk, or
       $NDK_SYSROOT_PATH (fatal if neither is set)
    4. anything else: warning, no sysroot
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from ..errors import PlatformResolutionError
from ..output import log_warning
from .toolchain import Compiler, derive_cross_prefix, find_target_compiler, xcrun_sdk_path
from .triple import parse_triple

if TYPE_CHECKING:
    from ..config import BuildEnvironment

logger = logging.getLogger(__name__)

# Targets whose toolchain needs a sysroot we cannot guess
APPLE_MOBILE_OS = "ios"
NDK_OS = "android"


@dataclass(frozen=True)
class TargetPlatform:
    """Where the build runs and what it produces.

    Attributes:
        host_triple: Triple of the machine running the build
        target_triple: Triple FFmpeg is built for
        os: Normalized target OS
        arch: Normalized target architecture
        env: Target ABI suffix (gnu, msvc, ...)
        host_os: Normalized host OS
        is_cross: True when host and target triples differ
    """

    host_triple: str
    target_triple: str
    os: str
    arch: str
    env: str
    host_os: str
    is_cross: bool

    @property
    def is_msvc(self) -> bool:
        return self.env == "msvc"

    @property
    def is_apple(self) -> bool:
        return self.os in ("macos", "ios")


@dataclass(frozen=True)
class SysrootSpec:
    """Resolved sysroot for a cross build.

    Attributes:
        path: Sysroot directory
        source: Where it came from ("override", "xcrun" or "ndk")
    """

    path: Path
    source: str


@dataclass(frozen=True)
class ResolvedPlatform:
    """Output of platform resolution, consumed by the build driver and the probe."""

    platform: TargetPlatform
    sysroot: Optional[SysrootSpec] = None
    target_compiler: Optional[Compiler] = None
    cross_prefix: Optional[str] = None

    @property
    def is_cross(self) -> bool:
        return self.platform.is_cross


def describe_platform(env: "BuildEnvironment") -> TargetPlatform:
    """Build the TargetPlatform for a configuration."""
    host = parse_triple(env.host)
    return TargetPlatform(
        host_triple=env.host,
        target_triple=env.target,
        os=env.target_os,
        arch=env.target_arch,
        env=env.target_env,
        host_os=env.host_os or host.os,
        is_cross=env.is_cross,
    )


def find_sysroot(env: "BuildEnvironment", platform: TargetPlatform) -> Optional[SysrootSpec]:
    """Find the sysroot required for a cross compilation.

    Args:
        env: Pipeline configuration
        platform: Resolved target platform

    Returns:
        SysrootSpec, or None for native builds, when nothing is built from
        source, and for cross targets whose toolchain already knows its sysroot

    Raises:
        PlatformResolutionError: If an iOS or Android sysroot cannot be found
    """
    if not platform.is_cross or not env.builds_from_source:
        return None

    if env.sysroot_override:
        return SysrootSpec(path=Path(env.sysroot_override), source="override")

    if platform.os == APPLE_MOBILE_OS:
        return SysrootSpec(path=xcrun_sdk_path("iphoneos"), source="xcrun")

    if platform.os == NDK_OS:
        if not env.ndk_sysroot:
            raise PlatformResolutionError(
                "Missing android sysroot path. For android cross compilation please use cargo-ndk, "
                "which exposes all the required NDK paths through environment variables "
                "(CARGO_NDK_SYSROOT_PATH, CC_<target>, CFLAGS_<target>). Other NDK helpers can set NDK_SYSROOT_PATH."
            )
        sysroot = Path(env.ndk_sysroot)
        if not sysroot.exists():
            raise PlatformResolutionError(f"Android sysroot path does not exist: {sysroot}")
        return SysrootSpec(path=sysroot, source="ndk")

    log_warning("Detected cross compilation but sysroot not provided")
    return None


def resolve_platform(env: "BuildEnvironment") -> ResolvedPlatform:
    """Resolve the target platform, sysroot and cross prefix.

    Native builds need neither a sysroot nor a prefix; configure tunes the
    build for the host CPU instead.

    Raises:
        PlatformResolutionError: If a required sysroot or toolchain path is missing
    """
    platform = describe_platform(env)
    if not platform.is_cross:
        logger.debug("Native build for %s", platform.target_triple)
        return ResolvedPlatform(platform=platform)

    sysroot = find_sysroot(env, platform)

    host_fallback = Compiler.parse(env.host_cc) if env.host_cc else Compiler(path="cc")
    target_compiler = find_target_compiler(parse_triple(env.target), env.target_cc, host_fallback)
    cross_prefix = derive_cross_prefix(target_compiler, platform.os)
    logger.debug(
        "Cross build %s -> %s: compiler=%s prefix=%s sysroot=%s",
        platform.host_triple,
        platform.target_triple,
        target_compiler.path,
        cross_prefix,
        sysroot,
    )
    return ResolvedPlatform(
        platform=platform,
        sysroot=sysroot,
        target_compiler=target_compiler,
        cross_prefix=cross_prefix,
    )
