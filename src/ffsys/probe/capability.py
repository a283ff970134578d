"""Capability probe: synthesize, compile, execute, parse.

The probe never interprets C itself. It generates a program (see
``codegen``), has a CapabilityCompiler build and run it, and reads the tagged
digits back (see ``protocol``). Either every expected value is read or the
probe fails; there are no partial results.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

from ..output import log_detail
from ..tables import FeatureProbeSpec, VersionGateSpec, version_gate_name
from .codegen import ProbeProgram
from .compiler import CapabilityCompiler
from .protocol import read_flag, read_symbol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of probing one symbol."""

    signal_name: str
    exists_as_nonzero: bool
    is_defined: bool


@dataclass(frozen=True)
class VersionGateResult:
    """Outcome of one version comparison: is ``library_id`` newer than major.minor?"""

    library_id: str
    major: int
    minor: int
    crossed: bool

    @property
    def name(self) -> str:
        return version_gate_name(self.library_id, self.major, self.minor)


@dataclass(frozen=True)
class ProbeReport:
    """Everything one probe run produced."""

    results: tuple[ProbeResult, ...]
    gate_results: tuple[VersionGateResult, ...]
    source: str
    output: str


class CapabilityProbe:
    """Discovers compile-time facts about installed headers.

    Example:
        >>> probe = CapabilityProbe(compiler, load_probe_specs(), load_version_gates(), {"avutil", "avcodec"})
        >>> report = probe.run()
        >>> report.results[0]
        ProbeResult(signal_name='FF_API_OLD_AVOPTIONS', exists_as_nonzero=False, is_defined=False)
    """

    def __init__(
        self,
        compiler: CapabilityCompiler,
        specs: Sequence[FeatureProbeSpec],
        gates: Sequence[VersionGateSpec],
        components: Iterable[str],
    ):
        self.compiler = compiler
        self.program = ProbeProgram(specs, gates, components)

    def run(self) -> ProbeReport:
        """Compile and execute the probe, then parse its output.

        Raises:
            ProbeProtocolError: If tag names collide or an expected tag is
                missing from the output
            ProbeCompileError: If the probe does not compile
            ProbeExecutionError: If the probe exits non-zero
        """
        source = self.program.render()
        executable = self.compiler.compile(source)
        output = self.compiler.run(executable)
        logger.debug("Probe output:\n%s", output)

        results = tuple(self._parse_symbol(output, spec) for spec in self.program.specs)
        gate_results = tuple(
            VersionGateResult(
                library_id=lib,
                major=major,
                minor=minor,
                crossed=read_flag(output, version_gate_name(lib, major, minor)),
            )
            for lib, major, minor in self.program.gate_points()
        )
        log_detail(
            f"Probed {len(results)} symbols ({sum(r.is_defined for r in results)} defined) "
            f"and {len(gate_results)} version comparisons"
        )
        return ProbeReport(results=results, gate_results=gate_results, source=source, output=output)

    @staticmethod
    def _parse_symbol(output: str, spec: FeatureProbeSpec) -> ProbeResult:
        value, defined = read_symbol(output, spec.signal_name)
        return ProbeResult(signal_name=spec.signal_name, exists_as_nonzero=value, is_defined=defined)
