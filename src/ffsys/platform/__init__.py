"""Platform and toolchain resolution for native and cross FFmpeg builds.

Modules:
    triple     - target triple parsing and host triple detection
    toolchain  - compiler discovery, cross prefix derivation, xcrun / NDK helpers
    resolver   - TargetPlatform, SysrootSpec and resolve_platform()
"""

from ffsys.platform.triple import TargetTriple, detect_host_triple, ffmpeg_target_os, parse_triple

__all__ = ["TargetTriple", "detect_host_triple", "ffmpeg_target_os", "parse_triple"]
