"""
Command-line interface for ffsys.

This module provides the `ffsys` CLI tool:

    ffsys build                      # resolve, build (or locate), probe, emit
    ffsys probe --include /opt/ffmpeg/include
    ffsys flags --target aarch64-linux-android --features build,avcodec
    ffsys tables

Configuration comes from the environment (see ffsys.config); the options
below override it for one invocation.
"""

import argparse
import logging
import sys
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional

from rich.console import Console
from rich.table import Table

from . import __version__
from .build.build_context import BuildConfiguration
from .build.configure import ConfigureCommandBuilder
from .config import BuildEnvironment, parse_features
from .errors import FfsysError
from .linking import LinkPlan
from .output import init_timer, log_error, set_output_file, set_verbose
from .pipeline import emit_signals, run_pipeline, run_probe
from .platform.resolver import resolve_platform
from .signals import SignalSet
from .tables import table_summary

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_log_handlers: List[logging.Handler] = []


@dataclass
class CommonArgs:
    """Options shared by every command."""

    verbose: bool = False
    features: Optional[str] = None
    target: Optional[str] = None
    out_dir: Optional[Path] = None


@dataclass
class BuildArgs(CommonArgs):
    """Arguments for the build command."""

    directives: bool = False
    log_file: Optional[Path] = None


@dataclass
class ProbeArgs(CommonArgs):
    """Arguments for the probe command."""

    include: List[Path] = field(default_factory=list)
    directives: bool = False


def setup_logging(verbose: bool) -> None:
    """Send internal diagnostics to stderr (debug level in verbose mode)."""
    root = logging.getLogger()
    for handler in _log_handlers:
        root.removeHandler(handler)
    _log_handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)
    _log_handlers.append(handler)


def load_environment(args: CommonArgs) -> BuildEnvironment:
    """Build the configuration from the environment plus command-line overrides."""
    overrides = {}
    if args.target:
        overrides["FFSYS_TARGET"] = args.target
    if args.out_dir:
        overrides["FFSYS_OUT_DIR"] = str(args.out_dir)
    if args.verbose:
        overrides["FFSYS_VERBOSE"] = "1"

    env = BuildEnvironment.from_environ(overrides=overrides)
    if args.features:
        env = env.with_features(env.features | parse_features(args.features))
    return env


def _start(args: CommonArgs, machine_output: bool = False) -> None:
    # progress goes to stderr when stdout carries directives
    init_timer(sys.stderr if machine_output else sys.stdout)
    set_verbose(args.verbose)
    setup_logging(args.verbose)


def render_signals(signals: SignalSet, console: Console) -> None:
    """Print the true signals as a table; version comparisons are only counted."""
    table = Table(title="Signals", show_lines=False)
    table.add_column("Signal", style="bold", no_wrap=True)
    table.add_column("Value", no_wrap=True)

    gate_count = 0
    for name in sorted(signals.signals):
        if "_version_greater_than_" in name:
            gate_count += signals.is_set(name)
            continue
        value = signals.is_set(name)
        table.add_row(name, "[green]true[/green]" if value else "[dim]false[/dim]")

    console.print(table)
    console.print(f"{gate_count} version comparisons true, {len(signals.universe)} names declared")


def _print_directives(signals: SignalSet, link_plan: Optional[LinkPlan] = None) -> None:
    lines = signals.render_directives()
    if link_plan is not None:
        lines += link_plan.render_directives()
    for line in lines:
        print(line)


@contextmanager
def mirrored_output(log_file: Optional[Path]) -> Iterator[None]:
    """Copy console progress into ``log_file`` while the block runs."""
    if log_file is None:
        yield
        return
    log_file.parent.mkdir(parents=True, exist_ok=True)
    with open(log_file, "w", encoding="utf-8") as f:
        set_output_file(f)
        try:
            yield
        finally:
            set_output_file(None)


def build_command(args: BuildArgs, console: Optional[Console] = None) -> int:
    """Run the full pipeline.

    Examples:
        ffsys build --features build,avcodec,avformat
        ffsys build --target aarch64-linux-android --features build
        ffsys build --directives        # print cfg and link lines instead of a table
        ffsys build --log-file build.log
    """
    console = console or Console()
    _start(args, machine_output=args.directives)
    with mirrored_output(args.log_file):
        try:
            env = load_environment(args)
            result = run_pipeline(env)
        except FfsysError as e:
            log_error(str(e))
            return 1
        except KeyboardInterrupt:
            log_error("Build interrupted")
            return 130

    if args.directives:
        _print_directives(result.signals, result.link_plan)
    else:
        render_signals(result.signals, console)
    return 0


def probe_command(args: ProbeArgs, console: Optional[Console] = None) -> int:
    """Probe already installed headers without building anything."""
    console = console or Console()
    _start(args, machine_output=args.directives)
    try:
        env = load_environment(args)
        config = BuildConfiguration.from_environment(env)
        report = run_probe(env, args.include, config.enabled_components)
        signals = emit_signals(env, config.enabled_components, report)
    except FfsysError as e:
        log_error(str(e))
        return 1

    if args.directives:
        _print_directives(signals)
    else:
        render_signals(signals, console)
    return 0


def flags_command(args: CommonArgs) -> int:
    """Print the configure arguments for the current configuration, one per line."""
    _start(args, machine_output=True)
    try:
        env = load_environment(args)
        platform = resolve_platform(env)
        config = BuildConfiguration.from_environment(env)
        flags = ConfigureCommandBuilder(env, platform, config).flags()
    except FfsysError as e:
        log_error(str(e))
        return 1

    for flag in flags:
        print(flag)
    return 0


def tables_command(args: CommonArgs, console: Optional[Console] = None) -> int:
    """Show the size of every static table."""
    console = console or Console()
    _start(args)
    try:
        summary = table_summary()
    except FfsysError as e:
        log_error(str(e))
        return 1

    table = Table(title="Feature matrix and probe tables")
    table.add_column("Table", style="bold", no_wrap=True)
    table.add_column("Entries", justify="right")
    for name, count in summary.items():
        table.add_row(name, str(count))
    console.print(table)
    return 0


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Echo external commands and show debug diagnostics",
    )
    parser.add_argument(
        "-f",
        "--features",
        default=None,
        help="Extra features, comma separated (added to FFSYS_FEATURES)",
    )
    parser.add_argument(
        "-t",
        "--target",
        default=None,
        help="Target triple (default: FFSYS_TARGET or the host)",
    )
    parser.add_argument(
        "-o",
        "--out-dir",
        type=Path,
        default=None,
        help="Output directory (default: FFSYS_OUT_DIR or target/ffsys)",
    )


def main(argv: Optional[List[str]] = None) -> None:
    """ffsys - FFmpeg build and capability probe for binding generators."""
    parser = argparse.ArgumentParser(
        prog="ffsys",
        description="ffsys - FFmpeg build and capability probe for binding generators",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"ffsys {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    build_parser = subparsers.add_parser("build", help="Resolve, build or locate FFmpeg, probe and emit signals")
    _add_common_arguments(build_parser)
    build_parser.add_argument(
        "--directives",
        action="store_true",
        help="Print cfg/check-cfg and link lines instead of the signal table",
    )
    build_parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write progress output to this file",
    )

    probe_parser = subparsers.add_parser("probe", help="Probe installed FFmpeg headers and emit signals")
    _add_common_arguments(probe_parser)
    probe_parser.add_argument(
        "-I",
        "--include",
        action="append",
        type=Path,
        default=[],
        help="Include directory holding the libav*/ headers (repeatable)",
    )
    probe_parser.add_argument(
        "--directives",
        action="store_true",
        help="Print cfg/check-cfg lines instead of the signal table",
    )

    flags_parser = subparsers.add_parser("flags", help="Print the FFmpeg configure arguments")
    _add_common_arguments(flags_parser)

    tables_parser = subparsers.add_parser("tables", help="Show the feature matrix and probe table sizes")
    _add_common_arguments(tables_parser)

    parsed_args = parser.parse_args(argv)

    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    common = dict(
        verbose=parsed_args.verbose,
        features=parsed_args.features,
        target=parsed_args.target,
        out_dir=parsed_args.out_dir,
    )

    if parsed_args.command == "build":
        exit_code = build_command(BuildArgs(directives=parsed_args.directives, log_file=parsed_args.log_file, **common))
    elif parsed_args.command == "probe":
        exit_code = probe_command(ProbeArgs(include=parsed_args.include, directives=parsed_args.directives, **common))
    elif parsed_args.command == "flags":
        exit_code = flags_command(CommonArgs(**common))
    else:
        exit_code = tables_command(CommonArgs(**common))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
