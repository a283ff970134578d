"""Link plan for the binding layer.

The pipeline never links anything itself. It records what a consumer of the
installed FFmpeg has to link against: the FFmpeg libraries, the extra system
libraries FFmpeg's configure detected (EXTRALIBS in ffbuild/config.mak),
platform system libraries and frameworks, and toolkit search paths.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from .build.build_context import BuildConfiguration
from .discovery import LibraryLocation

if TYPE_CHECKING:
    from ffsys.config import BuildEnvironment

logger = logging.getLogger(__name__)

WINDOWS_SYSTEM_LIBS = (
    "ole32",
    "oleaut32",
    "gdi32",
    "user32",
    "vfw32",
    "strmiids",
    "bcrypt",
    "shlwapi",
    "shell32",
)

APPLE_FRAMEWORKS = (
    "AppKit",
    "AudioToolbox",
    "AVFoundation",
    "CoreFoundation",
    "CoreGraphics",
    "CoreMedia",
    "CoreServices",
    "CoreVideo",
    "Foundation",
    "OpenCL",
    "OpenGL",
    "QTKit",
    "QuartzCore",
    "Security",
    "VideoDecodeAcceleration",
    "VideoToolbox",
)

DEFAULT_CUDA_PATHS = {
    "linux": "/usr/local/cuda",
    "windows": "C:\\Program Files\\NVIDIA GPU Computing Toolkit\\CUDA",
}

CONFIG_MAK = Path("ffbuild") / "config.mak"


@dataclass(frozen=True)
class LinkLibrary:
    """A library to link, with an optional kind (static, dylib, framework)."""

    name: str
    kind: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.kind}={self.name}" if self.kind else self.name


@dataclass(frozen=True)
class ExtraLibs:
    """EXTRALIBS entries from FFmpeg's generated config.mak."""

    libraries: tuple[str, ...] = ()
    search_paths: tuple[Path, ...] = ()


@dataclass(frozen=True)
class LinkPlan:
    """Everything a consumer needs to link against the FFmpeg installation."""

    search_paths: tuple[Path, ...] = ()
    libraries: tuple[LinkLibrary, ...] = ()
    frameworks: tuple[str, ...] = ()
    link_args: tuple[str, ...] = field(default_factory=tuple)

    def render_directives(self) -> List[str]:
        """Line-oriented form: link-search=, link-lib=, link-arg=."""
        lines = [f"link-search=native={path}" for path in self.search_paths]
        lines += [f"link-lib={lib}" for lib in self.libraries]
        lines += [f"link-lib=framework={name}" for name in self.frameworks]
        lines += [f"link-arg={arg}" for arg in self.link_args]
        return lines

    def to_dict(self) -> Dict[str, Any]:
        return {
            "search_paths": [str(p) for p in self.search_paths],
            "libraries": [str(lib) for lib in self.libraries],
            "frameworks": list(self.frameworks),
            "link_args": list(self.link_args),
        }


def parse_extralibs(config_mak: Path, source_dir: Path) -> ExtraLibs:
    """Parse the EXTRALIBS lines of ``ffbuild/config.mak``.

    Each ``EXTRALIBS*`` line is split on its last ``=`` and then on spaces;
    ``-l`` entries become libraries and ``-L`` entries search paths, relative
    ones resolved against the source directory.

    Returns:
        ExtraLibs, empty when the file does not exist
    """
    if not config_mak.exists():
        logger.debug("No %s, skipping EXTRALIBS", config_mak)
        return ExtraLibs()

    tokens: List[str] = []
    for line in config_mak.read_text(encoding="utf-8", errors="replace").splitlines():
        if line.startswith("EXTRALIBS"):
            tokens.extend(line.rsplit("=", 1)[-1].split(" "))

    libraries = [token[2:] for token in tokens if token.startswith("-l")]
    search_paths = []
    for token in tokens:
        if token.startswith("-L"):
            path = token[2:]
            search_paths.append(Path(path) if path.startswith("/") else source_dir / path)
    return ExtraLibs(libraries=tuple(libraries), search_paths=tuple(search_paths))


def vcpkg_system_libs(config: BuildConfiguration) -> List[str]:
    """System libraries a static vcpkg FFmpeg needs; vcpkg does not report them."""
    libs = []
    if config.is_enabled("avcodec") or config.is_enabled("avdevice"):
        libs += ["ole32", "mfplat", "strmiids", "mfuuid"]
    if config.is_enabled("avformat"):
        libs += ["secur32", "ws2_32"]
    libs += ["bcrypt", "user32"]
    return libs


def build_link_plan(
    env: "BuildEnvironment",
    config: BuildConfiguration,
    location: LibraryLocation,
) -> LinkPlan:
    """Assemble the link plan for a configuration and an FFmpeg location."""
    search_paths: List[Path] = list(location.lib_dirs)
    libraries: List[LinkLibrary] = []
    link_args: List[str] = []

    if location.source == "pkg-config":
        libraries.extend(LinkLibrary(name) for name in location.libraries)
    else:
        # a source build installs static archives only
        kind = "static" if env.static or location.source == "build" else "dylib"
        for component in config.components:
            if config.is_enabled(component.name):
                libraries.append(LinkLibrary(component.link_name, kind))
        if location.source != "vcpkg":
            link_args.append("-Wl,--no-as-needed")
        if env.has_feature("build_zlib") and env.host_os == "linux":
            libraries.append(LinkLibrary("z"))

    if location.installation is not None:
        extra = parse_extralibs(location.installation.source_dir / CONFIG_MAK, location.installation.source_dir)
        libraries.extend(LinkLibrary(name) for name in extra.libraries)
        search_paths.extend(extra.search_paths)

    if location.source == "vcpkg":
        if env.static:
            libraries.extend(LinkLibrary(name) for name in vcpkg_system_libs(config))
    elif env.target_os == "windows":
        libraries.extend(LinkLibrary(name, "dylib") for name in WINDOWS_SYSTEM_LIBS)

    frameworks: tuple[str, ...] = ()
    if env.static and env.target_os in ("macos", "ios"):
        frameworks = APPLE_FRAMEWORKS

    if config.uses_toolkit("cuda"):
        cuda = env.cuda_path or DEFAULT_CUDA_PATHS.get(env.target_os, DEFAULT_CUDA_PATHS["linux"])
        link_args.append(f"-L{cuda}/lib64")
        link_args.append(f"-I{cuda}/include")

    return LinkPlan(
        search_paths=tuple(search_paths),
        libraries=tuple(libraries),
        frameworks=frameworks,
        link_args=tuple(link_args),
    )
