"""The ffsys pipeline: Resolve -> Build (or locate) -> Probe -> Emit.

Stages run strictly in sequence and hand over through the filesystem: the
install prefix, the generated probe program and the signal document. The
build stage is skipped when FFmpeg is already installed; probe and emit
always run.
"""

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Sequence

from . import __version__
from .build.build_context import BuildConfiguration
from .build.driver import BuildDriver, Installation
from .discovery import LibraryLocation, discover_pkg_config, discover_prebuilt, discover_vcpkg, from_installation
from .linking import LinkPlan, build_link_plan
from .output import TimedLogger, log_detail, log_header, log_pipeline_complete, log_signal_summary, set_verbose
from .platform.resolver import ResolvedPlatform, resolve_platform
from .platform.toolchain import find_host_compiler
from .probe.capability import CapabilityProbe, ProbeReport, ProbeResult, VersionGateResult
from .probe.compiler import CapabilityCompiler, HostCompiler
from .signals import SignalEmitter, SignalSet
from .tables import load_components, load_era_labels, load_probe_specs, load_version_gates

if TYPE_CHECKING:
    from ffsys.config import BuildEnvironment

logger = logging.getLogger(__name__)

TOTAL_PHASES = 4
LINK_PLAN_FILE = "link-plan.json"


@dataclass(frozen=True)
class PipelineResult:
    """Everything one pipeline run produced.

    Attributes:
        platform: Resolved platform, sysroot and cross prefix
        include_paths: Include directories the probe compiled against
        installation: The source build, None for prebuilt or pkg-config FFmpeg
        link_plan: What consumers must link
        probe_results: One result per probed symbol
        gate_results: One result per version comparison
        signals: The emitted signal set
        signals_path: Where the signal document was written
    """

    platform: ResolvedPlatform
    include_paths: tuple[Path, ...]
    installation: Optional[Installation]
    link_plan: LinkPlan
    probe_results: tuple[ProbeResult, ...]
    gate_results: tuple[VersionGateResult, ...]
    signals: SignalSet
    signals_path: Path


def locate_ffmpeg(
    env: "BuildEnvironment",
    platform: ResolvedPlatform,
    config: BuildConfiguration,
    driver: Optional[BuildDriver] = None,
) -> LibraryLocation:
    """Build FFmpeg from source, or find a prebuilt / system installation."""
    if env.builds_from_source:
        driver = driver or BuildDriver(env, platform, config)
        return from_installation(driver.ensure_installed())
    if env.prebuilt_dir is not None:
        return discover_prebuilt(env)
    location = discover_vcpkg(env)
    if location is not None:
        return location
    return discover_pkg_config(env, config)


def run_probe(
    env: "BuildEnvironment",
    include_paths: Sequence[Path],
    enabled_components: frozenset,
    compiler: Optional[CapabilityCompiler] = None,
) -> ProbeReport:
    """Probe the headers in ``include_paths`` with the host compiler."""
    if compiler is None:
        compiler = HostCompiler(find_host_compiler(env.host_cc), include_paths, env.probe_dir)
    probe = CapabilityProbe(compiler, load_probe_specs(), load_version_gates(), enabled_components)
    return probe.run()


def emit_signals(env: "BuildEnvironment", enabled_components: frozenset, report: ProbeReport) -> SignalSet:
    emitter = SignalEmitter(load_components(), load_probe_specs(), load_version_gates(), load_era_labels())
    signals = emitter.emit(enabled_components, report.results, report.gate_results)
    signals.write(env.signals_path)
    return signals


def run_pipeline(
    env: "BuildEnvironment",
    compiler: Optional[CapabilityCompiler] = None,
    driver: Optional[BuildDriver] = None,
) -> PipelineResult:
    """Run the whole pipeline for one configuration.

    Args:
        env: Pipeline configuration
        compiler: Probe compiler (defaults to the host C compiler)
        driver: Build driver (defaults to a BuildDriver for ``env``)

    Returns:
        PipelineResult

    Raises:
        FfsysError: Any stage failure; nothing is written in that case
    """
    start = time.time()
    if env.verbose:
        set_verbose(True)
    log_header("ffsys FFmpeg pipeline", __version__)

    with TimedLogger("Resolving platform", phase=(1, TOTAL_PHASES)) as timed:
        platform = resolve_platform(env)
        config = BuildConfiguration.from_environment(env)
        mode = "cross" if platform.is_cross else "native"
        timed.detail(f"Target: {env.target} ({mode})")
        if platform.sysroot is not None:
            timed.detail(f"Sysroot: {platform.sysroot.path} ({platform.sysroot.source})")
        if platform.cross_prefix:
            timed.detail(f"Cross prefix: {platform.cross_prefix}")
        if config.dropped_backends:
            logger.debug("Backends unavailable for %s: %s", env.target, ", ".join(config.dropped_backends))

    source = "Building" if env.builds_from_source else "Locating"
    with TimedLogger(f"{source} FFmpeg {env.version_string}", phase=(2, TOTAL_PHASES)):
        location = locate_ffmpeg(env, platform, config, driver)
        link_plan = build_link_plan(env, config, location)

    with TimedLogger("Probing headers", phase=(3, TOTAL_PHASES)):
        report = run_probe(env, location.include_paths, config.enabled_components, compiler)

    with TimedLogger("Emitting signals", phase=(4, TOTAL_PHASES)):
        signals = emit_signals(env, config.enabled_components, report)
        link_plan_path = env.out_dir / LINK_PLAN_FILE
        link_plan_path.write_text(json.dumps(link_plan.to_dict(), indent=2) + "\n", encoding="utf-8")
        log_signal_summary(len(signals.signals), len(signals.enabled()), len(signals.universe))
        log_detail(f"Signals written to {env.signals_path}")

    log_pipeline_complete(time.time() - start)
    return PipelineResult(
        platform=platform,
        include_paths=tuple(location.include_paths),
        installation=location.installation,
        link_plan=link_plan,
        probe_results=report.results,
        gate_results=report.gate_results,
        signals=signals,
        signals_path=env.signals_path,
    )
