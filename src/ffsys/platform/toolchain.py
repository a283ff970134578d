"""C toolchain discovery.

Locates the compilers the pipeline needs and derives the information FFmpeg's
configure wants about them:

- the *host* compiler, used for the capability probe (never cross compiled)
- the *target* compiler, whose file name yields the ``--cross-prefix``
- Apple SDK paths and tools through ``xcrun``
- Android ``llvm-nm``/``llvm-strip`` living next to the NDK clang

Binary Naming Conventions:
    GNU cross toolchains:   aarch64-linux-gnu-gcc, arm-linux-gnueabihf-gcc
    MinGW:                  x86_64-w64-mingw32-gcc
    Wind River wrappers:    x86_64-wrs-linux-wr-c++ (the "-wr" is not part of the prefix)
    Android NDK:            aarch64-linux-android21-clang (one binary per API level)
"""

import logging
import shlex
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..errors import PlatformResolutionError
from ..subprocess_utils import safe_run
from .triple import TargetTriple

logger = logging.getLogger(__name__)

HOST_COMPILER_CANDIDATES = ("cc", "gcc", "clang")

# Suffix some vendor toolchains append to the prefix of their compiler wrappers
WRAPPER_SUFFIX = "-wr"


@dataclass(frozen=True)
class Compiler:
    """A C compiler invocation.

    Attributes:
        path: Compiler executable (name on PATH or absolute path)
        args: Extra arguments that are part of the compiler command (e.g. from CC="clang -m32")
    """

    path: str
    args: tuple[str, ...] = ()

    @classmethod
    def parse(cls, value: str) -> "Compiler":
        """Parse a CC-style value that may carry arguments."""
        parts = shlex.split(value)
        if not parts:
            raise PlatformResolutionError(f"Empty compiler command: {value!r}")
        return cls(path=parts[0], args=tuple(parts[1:]))

    def command(self) -> list[str]:
        return [self.path, *self.args]

    @property
    def file_stem(self) -> str:
        """Executable name without directory or extension."""
        return Path(self.path).stem


def guess_gnu_prefix(triple: TargetTriple) -> Optional[str]:
    """Guess the conventional GNU toolchain prefix for a target.

    Args:
        triple: Parsed target triple

    Returns:
        Prefix without the trailing dash (e.g. "aarch64-linux-gnu"), or None
        when the target has no conventional GNU cross toolchain
    """
    arch = triple.arch
    if triple.os == "linux":
        cpu = {"x86": "i686"}.get(arch, arch)
        if triple.env.startswith("musl"):
            return f"{cpu}-linux-{triple.env}"
        if arch == "arm":
            return f"arm-linux-{triple.env or 'gnueabihf'}"
        return f"{cpu}-linux-gnu"
    if triple.os == "windows" and triple.env == "gnu":
        return {"x86_64": "x86_64-w64-mingw32", "x86": "i686-w64-mingw32"}.get(arch)
    if triple.os == "android":
        return "arm-linux-androideabi" if arch == "arm" else f"{arch}-linux-android"
    return None


def find_host_compiler(host_cc: Optional[str] = None) -> Compiler:
    """Find the C compiler for the machine running the build.

    Args:
        host_cc: Explicit compiler command (HOST_CC / CC)

    Returns:
        Compiler for the host

    Raises:
        PlatformResolutionError: If no compiler is configured or on PATH
    """
    if host_cc:
        return Compiler.parse(host_cc)

    for candidate in HOST_COMPILER_CANDIDATES:
        found = shutil.which(candidate)
        if found:
            logger.debug("Host compiler: %s", found)
            return Compiler(path=found)

    raise PlatformResolutionError(
        f"No host C compiler found (tried {', '.join(HOST_COMPILER_CANDIDATES)}). "
        "Install a C toolchain or set HOST_CC/CC."
    )


def find_target_compiler(triple: TargetTriple, target_cc: Optional[str], host: Compiler) -> Compiler:
    """Find the C compiler producing code for the target.

    Resolution order: explicit ``CC_<target>``/``TARGET_CC``, then
    ``<gnu-prefix>-gcc`` on PATH, then the host compiler (clang style
    compilers target other platforms through ``--target``).
    """
    if target_cc:
        return Compiler.parse(target_cc)

    prefix = guess_gnu_prefix(triple)
    if prefix:
        found = shutil.which(f"{prefix}-gcc")
        if found:
            logger.debug("Target compiler for %s: %s", triple, found)
            return Compiler(path=found)

    logger.debug("No dedicated compiler for %s, falling back to %s", triple, host.path)
    return host


def derive_cross_prefix(compiler: Compiler, target_os: str) -> Optional[str]:
    """Derive FFmpeg's ``--cross-prefix`` from the target compiler's file name.

    The prefix is everything before the last dash of the executable name, with
    a trailing wrapper suffix removed, plus a dash.

    Example:
        >>> derive_cross_prefix(Compiler("/usr/bin/aarch64-linux-gnu-gcc"), "linux")
        "aarch64-linux-gnu-"

    Args:
        compiler: Target compiler
        target_os: Normalized target OS

    Returns:
        The prefix including its trailing dash, or None when the name has no
        dash or the target is Android (the NDK ships one compiler per API level,
        so the compiler paths are passed directly instead)
    """
    if target_os == "android":
        return None

    stem = compiler.file_stem
    suffix_pos = stem.rfind("-")
    if suffix_pos == -1:
        return None

    prefix = stem[:suffix_pos]
    while prefix.endswith(WRAPPER_SUFFIX):
        prefix = prefix[: -len(WRAPPER_SUFFIX)]
    if not prefix:
        return None
    return f"{prefix}-"


def is_flag_supported(compiler: Compiler, flag: str) -> bool:
    """Check whether a compiler accepts a flag by compiling an empty unit with it."""
    with tempfile.TemporaryDirectory(prefix="ffsys-flag-") as tmp:
        source = Path(tmp) / "flag_check.c"
        source.write_text("int main(void) { return 0; }\n", encoding="utf-8")
        cmd = [*compiler.command(), flag, "-c", str(source), "-o", str(Path(tmp) / "flag_check.o")]
        try:
            result = safe_run(cmd, capture_output=True, text=True, check=False)
        except OSError as e:
            logger.debug("Flag check for %s could not run %s: %s", flag, compiler.path, e)
            return False
    logger.debug("Flag %s supported by %s: %s", flag, compiler.path, result.returncode == 0)
    return result.returncode == 0


def _run_xcrun(args: list[str], what: str) -> str:
    cmd = ["xcrun", *args]
    try:
        result = safe_run(cmd, capture_output=True, text=True, check=False)
    except OSError as e:
        raise PlatformResolutionError(
            f"Failed to run xcrun to get the {what}: {e}. "
            "Install the Xcode command line tools or provide the sysroot through $SYSROOT."
        ) from e
    if result.returncode != 0:
        raise PlatformResolutionError(
            f"Failed to run xcrun to get the {what}, please install Xcode tools or provide "
            f"the sysroot through $SYSROOT. Error: {result.stderr.strip()}"
        )
    return result.stdout.strip()


def xcrun_sdk_path(sdk: str = "iphoneos") -> Path:
    """Query the Apple SDK path.

    Raises:
        PlatformResolutionError: If xcrun is missing, fails, or returns a path that does not exist
    """
    sdk_path = _run_xcrun(["--sdk", sdk, "--show-sdk-path"], f"{sdk} sysroot").replace("\n", "")
    if not sdk_path or not Path(sdk_path).exists():
        raise PlatformResolutionError(f"xcrun returned invalid sysroot path: {sdk_path!r}")
    return Path(sdk_path)


def xcrun_find_tool(tool: str, sdk: str = "iphoneos") -> str:
    """Locate an SDK tool (e.g. clang) through xcrun."""
    return _run_xcrun(["--sdk", sdk, "-f", tool], f"{sdk} {tool} path")


def android_tool_path(compiler: Compiler, tool: str) -> Path:
    """Locate ``llvm-<tool>`` next to an Android NDK compiler.

    Raises:
        PlatformResolutionError: If the tool does not exist
    """
    candidate = Path(compiler.path).parent / f"llvm-{tool}"
    try:
        return candidate.resolve(strict=True)
    except (FileNotFoundError, RuntimeError) as e:
        raise PlatformResolutionError(f"Failed to resolve a path to android {tool}: {candidate}") from e
