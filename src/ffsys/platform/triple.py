"""Target triple parsing.

Triples follow the usual ``arch-vendor-os[-env]`` convention, with the vendor
sometimes omitted (``aarch64-linux-android``). Only the pieces the FFmpeg
build cares about are extracted: the CPU architecture, the operating system
and the ABI/environment suffix.

Examples:
    x86_64-unknown-linux-gnu   -> arch=x86_64  os=linux    env=gnu
    aarch64-linux-android      -> arch=aarch64 os=android  env=android
    armv7-linux-androideabi    -> arch=arm     os=android  env=androideabi
    aarch64-apple-ios          -> arch=aarch64 os=ios      env=""
    x86_64-pc-windows-msvc     -> arch=x86_64  os=windows  env=msvc
"""

import platform
import sys
from dataclasses import dataclass

# Checked in order: "android" triples also contain "linux"
_OS_TOKENS = (
    ("android", "android"),
    ("androideabi", "android"),
    ("ios", "ios"),
    ("darwin", "macos"),
    ("macos", "macos"),
    ("windows", "windows"),
    ("linux", "linux"),
    ("freebsd", "freebsd"),
    ("netbsd", "netbsd"),
    ("openbsd", "openbsd"),
)

_ENV_TOKENS = ("gnu", "gnueabi", "gnueabihf", "musl", "musleabihf", "msvc", "android", "androideabi", "sim", "macabi")


@dataclass(frozen=True)
class TargetTriple:
    """A parsed target triple.

    Attributes:
        triple: The triple exactly as given
        arch: Normalized architecture (x86_64, x86, aarch64, arm, riscv64, ...)
        os: Normalized OS (linux, android, macos, ios, windows, ...)
        env: ABI/environment suffix, empty when the triple has none
    """

    triple: str
    arch: str
    os: str
    env: str

    @property
    def is_msvc(self) -> bool:
        return self.env == "msvc"

    def __str__(self) -> str:
        return self.triple


def normalize_arch(arch: str) -> str:
    """Map architecture spellings onto the names FFmpeg's configure accepts."""
    arch = arch.lower()
    if arch in ("amd64", "x86_64", "x64"):
        return "x86_64"
    if arch in ("i386", "i486", "i586", "i686", "x86"):
        return "x86"
    if arch in ("arm64", "aarch64"):
        return "aarch64"
    if arch.startswith("thumb") or arch.startswith("arm"):
        return "arm"
    return arch


def parse_triple(triple: str) -> TargetTriple:
    """Parse a target triple.

    Args:
        triple: Triple such as ``aarch64-linux-android``

    Returns:
        TargetTriple with arch, os and env filled in. An unrecognised OS is
        reported as the third component (or "unknown").

    Raises:
        ValueError: If the triple has fewer than two components
    """
    parts = triple.strip().split("-")
    if len(parts) < 2 or not all(parts):
        raise ValueError(f"Invalid target triple: {triple!r}")

    arch = normalize_arch(parts[0])

    os_name = ""
    for token, name in _OS_TOKENS:
        if any(part == token or part.startswith(token) for part in parts[1:]):
            os_name = name
            break
    if not os_name:
        os_name = parts[2] if len(parts) > 2 else "unknown"

    env = parts[-1] if len(parts) > 2 and parts[-1] in _ENV_TOKENS else ""
    return TargetTriple(triple=triple, arch=arch, os=os_name, env=env)


def ffmpeg_target_os(os_name: str) -> str:
    """Translate an OS name into FFmpeg's ``--target-os`` value."""
    if os_name == "ios":
        return "darwin"
    return os_name


def detect_host_triple() -> str:
    """Build a triple describing the machine we are running on."""
    arch = normalize_arch(platform.machine() or "x86_64")
    if arch == "x86":
        arch = "i686"

    if sys.platform == "win32":
        return f"{arch}-pc-windows-msvc"
    if sys.platform == "darwin":
        return f"{arch}-apple-darwin"
    if sys.platform.startswith("freebsd"):
        return f"{arch}-unknown-freebsd"
    return f"{arch}-unknown-linux-gnu"
