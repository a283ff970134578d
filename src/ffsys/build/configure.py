"""FFmpeg ./configure command construction.

ConfigureCommandBuilder turns a BuildEnvironment, the resolved platform and
the resolved feature matrix into the exact argument list for FFmpeg's
configure script. Building the list performs no side effects beyond the
toolchain queries cross builds need (flag support check, xcrun, NDK tool
lookup), so ``ffsys flags`` can show it without building anything.

Argument order:
    --prefix
    cross-compile switches or host CPU tuning
    iOS / Android toolchain paths
    build profile (debug or release)
    static library switches
    license gates, components, external libraries, hardware backends
    --extra-cflags=-w
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Callable, List, Optional

from ..errors import PlatformResolutionError
from ..platform.resolver import ResolvedPlatform
from ..platform.toolchain import Compiler, android_tool_path, is_flag_supported, xcrun_find_tool
from ..platform.triple import ffmpeg_target_os
from .build_context import BuildConfiguration
from .build_profiles import get_configure_flags

if TYPE_CHECKING:
    from ffsys.config import BuildEnvironment

logger = logging.getLogger(__name__)

STATIC_FLAGS = ("--enable-static", "--disable-shared")
COMMON_FLAGS = ("--enable-pic", "--disable-autodetect", "--disable-programs", "--disable-doc")

# Silences the thousands of warnings FFmpeg's sources produce with recent compilers
QUIET_FLAG = "--extra-cflags=-w"

NATIVE_TUNING_FLAG = "--extra-cflags=-march=native -mtune=native"


def switch(enabled: bool, name: str) -> str:
    """Render a configure switch as --enable-<name> or --disable-<name>."""
    return f"--{'enable' if enabled else 'disable'}-{name}"


class ConfigureCommandBuilder:
    """Builds the configure invocation for one FFmpeg build.

    Example:
        >>> builder = ConfigureCommandBuilder(env, resolved, BuildConfiguration.from_environment(env))
        >>> builder.flags()[:2]
        ['--prefix=/work/target/ffsys/dist', '--extra-cflags=-march=native -mtune=native']
    """

    def __init__(
        self,
        env: "BuildEnvironment",
        platform: ResolvedPlatform,
        config: BuildConfiguration,
        flag_checker: Callable[[Compiler, str], bool] = is_flag_supported,
    ):
        self.env = env
        self.platform = platform
        self.config = config
        self.flag_checker = flag_checker

    def flags(self) -> List[str]:
        """Every configure argument, in order."""
        args = [f"--prefix={self.env.install_prefix}"]
        args.extend(self._target_flags())

        target_os = self.env.target_os
        if target_os == "ios":
            args.extend(self._ios_flags())
        elif target_os == "android":
            args.extend(self._android_flags())

        args.extend(get_configure_flags(self.config.profile, self.env.host_os))

        args.extend(STATIC_FLAGS)
        if not self.platform.platform.is_msvc:
            args.append("--enable-pthreads")
        args.extend(COMMON_FLAGS)

        args.extend(switch(enabled, flag) for flag, enabled in self.config.license_switches)
        args.extend(switch(enabled, name) for name, enabled in self.config.optional_switches)
        args.extend(f"--enable-{lib.flag}" for lib in self.config.external_libraries)
        args.extend(self._hardware_flags())

        args.append(QUIET_FLAG)
        return args

    def command(self, source_dir: Path) -> List[str]:
        """Full argv for running configure from ``source_dir``.

        Windows hosts run the script through ``sh``; MSVC targets also select
        FFmpeg's msvc toolchain.
        """
        script = source_dir / "configure"
        if self.env.host_os == "windows":
            argv = ["sh", str(script)]
            if self.platform.platform.is_msvc:
                argv.append("--toolchain=msvc")
        else:
            argv = [str(script)]
        return argv + self.flags()

    def _target_flags(self) -> List[str]:
        if not self.platform.is_cross:
            return [NATIVE_TUNING_FLAG]

        args = ["--enable-cross-compile"]
        compiler = self.platform.target_compiler
        target_flag = f"--target={self.env.target}"
        if compiler is not None and self.flag_checker(compiler, target_flag):
            args.append(f"--extra-cflags={target_flag}")
            args.append(f"--extra-ldflags={target_flag}")

        args.append(f"--arch={self.env.target_arch}")
        args.append(f"--target-os={ffmpeg_target_os(self.env.target_os)}")
        if self.platform.cross_prefix:
            args.append(f"--cross-prefix={self.platform.cross_prefix}")
        return args

    def _ios_flags(self) -> List[str]:
        sysroot = self.platform.sysroot
        if sysroot is None:
            raise PlatformResolutionError(
                "The sysroot is required for ios cross compilation, make sure to have Xcode "
                "available or provide the $SYSROOT env var"
            )
        return [f"--sysroot={sysroot.path}", f"--cc={xcrun_find_tool('clang', 'iphoneos')}"]

    def _android_flags(self) -> List[str]:
        cc = self._android_compiler()
        args = [f"--cc={cc.path}"]
        for tool in ("nm", "strip"):
            args.append(f"--{tool}={android_tool_path(cc, tool)}")

        if self.env.target_cflags:
            args.append(f"--extra-cflags={self.env.target_cflags}")
            args.append(f"--extra-ldflags={self.env.target_cflags}")

        # x86 asm contains position dependent code
        if self.env.target_arch in ("x86_64", "x86"):
            args.append("--disable-asm")

        args.append("--extra-cflags=-fPIC")
        return args

    def _android_compiler(self) -> Compiler:
        if not self.env.target_cc:
            raise PlatformResolutionError(
                f"Missing CC_{self.env.target} for android. Use cargo-ndk (or an equivalent NDK helper) "
                "for android cross compilation."
            )
        cc = Compiler.parse(self.env.target_cc)
        if not Path(cc.path).exists():
            raise PlatformResolutionError(f"Android CC path does not exist: {cc.path}")
        return cc

    def _hardware_flags(self) -> List[str]:
        args: List[str] = []
        for backend in self.config.hardware_backends:
            args.extend(backend.flags)
            args.extend(
                f"--extra-cflags={flag}" for flag in backend.extra_cflags(self.env.target_os, self.platform.is_cross)
            )
            if backend.toolkit == "cuda" and self.env.cuda_path:
                args.append(f"--cuda-path={self.env.cuda_path}")
        return args


def build_configure_flags(
    env: "BuildEnvironment",
    platform: ResolvedPlatform,
    config: Optional[BuildConfiguration] = None,
) -> List[str]:
    """Convenience wrapper returning the configure arguments for a configuration."""
    config = config or BuildConfiguration.from_environment(env)
    return ConfigureCommandBuilder(env, platform, config).flags()
