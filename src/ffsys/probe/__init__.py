"""Capability probe for installed FFmpeg headers.

Modules:
    compiler    - CapabilityCompiler protocol and the host compiler implementation
    codegen     - probe program synthesis
    protocol    - tag validation and output parsing
    capability  - CapabilityProbe tying the three together
"""

from .capability import CapabilityProbe, ProbeReport, ProbeResult, VersionGateResult
from .codegen import ProbeProgram
from .compiler import CapabilityCompiler, HostCompiler

__all__ = [
    "CapabilityCompiler",
    "CapabilityProbe",
    "HostCompiler",
    "ProbeProgram",
    "ProbeReport",
    "ProbeResult",
    "VersionGateResult",
]
